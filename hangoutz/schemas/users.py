from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class UserSnapshot(BaseModel):
    """Denormalized identity copied into events, conversations and messages."""
    id: str
    name: Optional[str] = None
    photo_url: Optional[str] = None


class UserOut(BaseModel):
    id: str
    phone: str
    name: Optional[str] = None
    bio: Optional[str] = None
    photos: List[str] = []
    photo_url: Optional[str] = None
    interests: List[str] = []
    verified: bool = False
    trust_score: int = 50
    completed_profile: bool = False
    last_active: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MeUserOut(UserOut):
    blocked_user_ids: List[str] = []


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    interests: Optional[List[str]] = None
    photos: Optional[List[str]] = None


class VerificationRequest(BaseModel):
    verification_photo_url: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    success: bool = True
    user: UserOut


class MeUserResponse(BaseModel):
    success: bool = True
    user: MeUserOut


class UserListResponse(BaseModel):
    success: bool = True
    users: List[UserOut]
    pagination: Pagination


class MessageResponse(BaseModel):
    """Plain acknowledgement."""
    success: bool = True
    message: str
