import logging
from typing import List, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hangoutz.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from hangoutz.models import Conversation, ConversationParticipant, Message, User
from hangoutz.models.conversation import ConversationType, make_direct_key
from hangoutz.services.user_service import get_user_by_id

logger = logging.getLogger(__name__)


def _participant_snapshot(user: User) -> ConversationParticipant:
    return ConversationParticipant(user_id=user.id, name=user.name, photo_url=user.photo_url, unread_count=0)


async def get_conversation_by_id(db: AsyncSession, conversation_id: str) -> Optional[Conversation]:
    result = await db.execute(select(Conversation).where(Conversation.id == conversation_id))
    return result.scalar_one_or_none()


async def get_conversation_for_participant(
    db: AsyncSession, current_user: User, conversation_id: str
) -> Conversation:
    """
    Load a conversation the current user takes part in.

    Raises:
        NotFoundError: If the conversation does not exist
        ForbiddenError: If the user is not a participant
    """
    conversation = await get_conversation_by_id(db, conversation_id)
    if conversation is None:
        raise NotFoundError("Conversation not found")
    if not conversation.is_participant(current_user.id):
        raise ForbiddenError("Not a participant of this conversation")
    return conversation


async def get_direct_conversation(db: AsyncSession, user_a: str, user_b: str) -> Optional[Conversation]:
    query = select(Conversation).where(Conversation.direct_key == make_direct_key(user_a, user_b))
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def create_or_get_direct_conversation(
    db: AsyncSession, current_user: User, other_user_id: str
) -> Tuple[Conversation, bool]:
    """
    Return the direct conversation between the current user and another user,
    creating it if it does not exist yet.

    Args:
        db: Database session
        current_user: Requesting user
        other_user_id: The other participant

    Returns:
        Tuple[Conversation, bool]: The conversation and whether it was created

    Raises:
        NotFoundError: If the other user does not exist
        ValidationError: If the other user is the requester
    """
    if str(other_user_id) == str(current_user.id):
        raise ValidationError("You cannot start a conversation with yourself")

    other_user = await get_user_by_id(db, other_user_id)
    if other_user is None:
        raise NotFoundError("User not found")

    # Plain ids survive the rollback below, which expires loaded instances
    user_id, other_id = current_user.id, other_user.id
    existing = await get_direct_conversation(db, user_id, other_id)
    if existing is not None:
        return existing, False

    conversation = Conversation(
        type=ConversationType.DIRECT.value,
        direct_key=make_direct_key(user_id, other_id),
        participants=[_participant_snapshot(current_user), _participant_snapshot(other_user)],
    )
    db.add(conversation)
    try:
        await db.commit()
    except IntegrityError:
        # Lost the race against a concurrent create for the same pair
        await db.rollback()
        existing = await get_direct_conversation(db, user_id, other_id)
        if existing is None:
            raise
        logger.info(f"Direct conversation {existing.id} created concurrently, returning it")
        return existing, False

    await db.refresh(conversation)
    logger.info(f"Created direct conversation {conversation.id} between {user_id} and {other_id}")
    return conversation, True


async def create_group_conversation(
    db: AsyncSession,
    current_user: User,
    participant_ids: List[str],
    group_name: Optional[str] = None,
    group_photo: Optional[str] = None,
) -> Conversation:
    # Requester first, duplicates dropped
    ids = [current_user.id] + [str(pid) for pid in participant_ids if str(pid) != current_user.id]
    ids = list(dict.fromkeys(ids))
    if len(ids) < 2:
        raise ValidationError("A group conversation needs at least one other participant")

    result = await db.execute(select(User).where(User.id.in_(ids)))
    users = {u.id: u for u in result.scalars().all()}
    missing = [pid for pid in ids if pid not in users]
    if missing:
        raise NotFoundError("User not found")

    conversation = Conversation(
        type=ConversationType.GROUP.value,
        group_name=group_name,
        group_photo=group_photo,
        participants=[_participant_snapshot(users[pid]) for pid in ids],
    )
    db.add(conversation)
    await db.commit()
    await db.refresh(conversation)

    logger.info(f"User {current_user.id} created group conversation {conversation.id} with {len(ids)} participants")
    return conversation


async def list_conversations(db: AsyncSession, current_user: User) -> List[Conversation]:
    """Conversations the user takes part in, most recently active first."""
    query = (
        select(Conversation)
        .join(ConversationParticipant, ConversationParticipant.conversation_id == Conversation.id)
        .where(ConversationParticipant.user_id == current_user.id)
        .order_by(Conversation.last_message_at.desc())
    )
    result = await db.execute(query)
    return result.scalars().unique().all()


async def get_conversation(db: AsyncSession, current_user: User, conversation_id: str) -> Conversation:
    return await get_conversation_for_participant(db, current_user, conversation_id)


async def delete_conversation(db: AsyncSession, current_user: User, conversation_id: str) -> None:
    conversation = await get_conversation_for_participant(db, current_user, conversation_id)

    await db.execute(delete(Message).where(Message.conversation_id == conversation.id))
    await db.delete(conversation)
    await db.commit()
    logger.info(f"User {current_user.id} deleted conversation {conversation_id}")


async def mark_conversation_read(db: AsyncSession, current_user: User, conversation_id: str) -> Conversation:
    """Reset the current user's unread counter. Other counters are untouched."""
    conversation = await get_conversation_for_participant(db, current_user, conversation_id)

    for participant in conversation.participants:
        if participant.user_id == current_user.id:
            participant.unread_count = 0
    await db.commit()
    return conversation
