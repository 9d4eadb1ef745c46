import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hangoutz.init_db import get_db
from hangoutz.schemas.auth import AuthResponse, SendOtpRequest, SendOtpResponse, VerifyOtpRequest
from hangoutz.schemas.users import UserOut
from hangoutz.services import otp_service
from hangoutz.services.user_service import verify_otp_and_login

# Configure logger for this module
logger = logging.getLogger(__name__)

# Initialize router with prefix and tags for API documentation
router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/send-otp", response_model=SendOtpResponse)
async def send_otp(request: SendOtpRequest):
    """
    Issue a one-time code for the given phone number.

    Args:
        request: SendOtpRequest with the phone number

    Returns:
        SendOtpResponse acknowledging the code was issued
    """
    otp_service.send_otp(request.phone)
    return SendOtpResponse(message="OTP sent successfully")


@router.post("/verify-otp", response_model=AuthResponse)
async def verify_otp(request: VerifyOtpRequest, db: AsyncSession = Depends(get_db)):
    """
    Exchange a one-time code for an access token, creating the account on
    first login.

    Raises:
        ValidationError: If the code is wrong or expired
    """
    result = await verify_otp_and_login(db, request.phone, request.otp)
    return AuthResponse(
        token=result["token"],
        user=UserOut.model_validate(result["user"]),
        is_new_user=result["is_new_user"],
    )
