from pydantic import BaseModel, Field

from hangoutz.schemas.users import UserOut

PHONE_PATTERN = r"^\+?[0-9]{7,15}$"


class SendOtpRequest(BaseModel):
    phone: str = Field(..., pattern=PHONE_PATTERN)


class SendOtpResponse(BaseModel):
    success: bool = True
    message: str


class VerifyOtpRequest(BaseModel):
    phone: str = Field(..., pattern=PHONE_PATTERN)
    otp: str = Field(..., min_length=4, max_length=8)


class AuthResponse(BaseModel):
    success: bool = True
    token: str
    user: UserOut
    is_new_user: bool
