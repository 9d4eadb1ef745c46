import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hangoutz.common import get_current_user
from hangoutz.init_db import get_db
from hangoutz.models import User
from hangoutz.schemas.users import (
    MessageResponse,
    UserListResponse,
    UserOut,
    UserResponse,
    UserUpdate,
    VerificationRequest,
)
from hangoutz.services import user_service

# Configure logger for this module
logger = logging.getLogger(__name__)

# Initialize router with prefix and tags for API documentation
router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=UserListResponse)
async def list_users(
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Search users by name or bio.

    Args:
        search: Optional case-insensitive search term
        page: 1-based page number
        limit: Page size (1-100)

    Returns:
        UserListResponse with the page of users and pagination info
    """
    result = await user_service.search_users(db, search, page, limit)
    return UserListResponse(
        users=[UserOut.model_validate(u) for u in result["users"]],
        pagination=result["pagination"],
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.get_user_or_404(db, user_id)
    return UserResponse(user=UserOut.model_validate(user))


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    request: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Update the current user's profile. Only the owner may edit a profile.
    """
    user = await user_service.update_profile(db, current_user, user_id, request)
    return UserResponse(user=UserOut.model_validate(user))


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await user_service.delete_account(db, current_user, user_id)
    return MessageResponse(message="Account deleted successfully")


@router.post("/{user_id}/verify", response_model=UserResponse)
async def verify_user(
    user_id: str,
    request: VerificationRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Submit a verification photo. The user is marked verified and their trust
    score is recomputed from recent activity.
    """
    user = await user_service.submit_verification(db, current_user, user_id, request.verification_photo_url)
    return UserResponse(user=UserOut.model_validate(user))


@router.post("/{user_id}/block/{target_id}", response_model=MessageResponse)
async def block_user(
    user_id: str,
    target_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await user_service.block_user(db, current_user, user_id, target_id)
    return MessageResponse(message="User blocked")


@router.delete("/{user_id}/block/{target_id}", response_model=MessageResponse)
async def unblock_user(
    user_id: str,
    target_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await user_service.unblock_user(db, current_user, user_id, target_id)
    return MessageResponse(message="User unblocked")
