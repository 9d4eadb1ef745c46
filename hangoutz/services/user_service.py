import logging
import math
from typing import Optional, Tuple

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hangoutz.core.exceptions import NotFoundError, ValidationError
from hangoutz.core.permissions import ensure_owner
from hangoutz.core.security import create_access_token
from hangoutz.models import User, UserBlock
from hangoutz.schemas.users import Pagination, UserUpdate
from hangoutz.services import otp_service
from hangoutz.services.trust_service import calculate_trust_score, get_recent_activity
from hangoutz.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


async def get_user_by_id(db: AsyncSession, user_id: str) -> Optional[User]:
    """
    Retrieve a user by their unique identifier.

    Args:
        db: AsyncSession - Database session for executing queries
        user_id: str - Unique identifier of the user

    Returns:
        Optional[User]: User object if found, None otherwise
    """
    query = select(User).where(User.id == user_id)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_user_or_404(db: AsyncSession, user_id: str, message: str = "User not found") -> User:
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError(message)
    return user


async def get_user_by_phone(db: AsyncSession, phone: str) -> Optional[User]:
    """
    Retrieve a user by their phone number.

    Args:
        db: AsyncSession - Database session for executing queries
        phone: str - Phone number of the user

    Returns:
        Optional[User]: User object if found, None otherwise
    """
    query = select(User).where(User.phone == phone)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_or_create_user_by_phone(db: AsyncSession, phone: str) -> Tuple[User, bool]:
    """
    Fetch the account for a verified phone number, creating it on first login.

    Returns:
        Tuple[User, bool]: The user and whether it was just created
    """
    user = await get_user_by_phone(db, phone)
    if user is not None:
        return user, False

    user = User(phone=phone)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Another login for the same phone won the insert
        await db.rollback()
        user = await get_user_by_phone(db, phone)
        if user is None:
            raise
        return user, False

    await db.refresh(user)
    logger.info(f"Created user {user.id} on first OTP verification")
    return user, True


async def verify_otp_and_login(db: AsyncSession, phone: str, otp: str) -> dict:
    """
    Exchange a one-time code for an access token.

    Raises:
        ValidationError: If the code is wrong or expired
    """
    if not otp_service.consume_otp(phone, otp):
        raise ValidationError("Invalid OTP")

    user, created = await get_or_create_user_by_phone(db, phone)
    return {
        "token": create_access_token(user.id),
        "user": user,
        "is_new_user": created,
    }


async def search_users(db: AsyncSession, search: Optional[str], page: int, limit: int) -> dict:
    """
    List users, optionally filtered by a case-insensitive match on name or bio.

    Results are ordered by trust score, then newest first.
    """
    query = select(User)
    count_query = select(func.count(User.id))

    if search:
        pattern = f"%{search}%"
        condition = or_(User.name.ilike(pattern), User.bio.ilike(pattern))
        query = query.where(condition)
        count_query = count_query.where(condition)

    query = (
        query.order_by(User.trust_score.desc(), User.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(query)
    total = (await db.execute(count_query)).scalar_one()

    return {
        "users": result.scalars().all(),
        "pagination": Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    }


async def update_profile(db: AsyncSession, current_user: User, user_id: str, update: UserUpdate) -> User:
    ensure_owner(current_user.id, user_id, "Not authorized to update this profile")

    data = update.model_dump(exclude_unset=True)
    if "name" in data and data["name"]:
        current_user.name = data["name"]
    if "bio" in data:
        current_user.bio = data["bio"]
    if data.get("interests") is not None:
        current_user.interests = data["interests"]
    if data.get("photos") is not None:
        current_user.photos = data["photos"]
        current_user.photo_url = data["photos"][0] if data["photos"] else current_user.photo_url

    current_user.completed_profile = bool(current_user.name and current_user.photos)

    await db.commit()
    await db.refresh(current_user)
    return current_user


async def delete_account(db: AsyncSession, current_user: User, user_id: str) -> None:
    ensure_owner(current_user.id, user_id, "Not authorized to delete this account")

    # The user's own blocks cascade with the user; blocks by others are removed here
    await db.execute(delete(UserBlock).where(UserBlock.blocked_id == user_id))
    await db.delete(current_user)
    await db.commit()
    logger.info(f"Deleted account {user_id} on owner request")


async def submit_verification(db: AsyncSession, current_user: User, user_id: str, photo_url: str) -> User:
    """
    Mark a user verified and recompute their trust score.

    Photo review is manual and happens out of band.
    """
    ensure_owner(current_user.id, user_id)

    current_user.verification_photo_url = photo_url
    current_user.verified = True
    activity = await get_recent_activity(db, current_user)
    current_user.trust_score = calculate_trust_score(current_user, activity)

    await db.commit()
    await db.refresh(current_user)
    return current_user


async def block_user(db: AsyncSession, current_user: User, user_id: str, target_id: str) -> None:
    ensure_owner(current_user.id, user_id)

    if target_id == current_user.id:
        raise ValidationError("You cannot block yourself")
    await get_user_or_404(db, target_id, "User to block not found")

    if target_id in current_user.blocked_user_ids:
        return

    current_user.blocked_users.append(UserBlock(blocker_id=current_user.id, blocked_id=target_id))
    await db.commit()


async def unblock_user(db: AsyncSession, current_user: User, user_id: str, target_id: str) -> None:
    ensure_owner(current_user.id, user_id)

    for block in list(current_user.blocked_users):
        if block.blocked_id == target_id:
            current_user.blocked_users.remove(block)
    await db.commit()


async def touch_last_active(db: AsyncSession, user_id: str) -> None:
    user = await get_user_by_id(db, user_id)
    if user is None:
        return
    user.last_active = utcnow()
    await db.commit()
