import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hangoutz.core.exceptions import NotFoundError, ValidationError
from hangoutz.core.permissions import ensure_owner, is_owner
from hangoutz.core.websocket.websocket_manager import manager
from hangoutz.models import ConversationParticipant, Message, User
from hangoutz.models.message import MessageType
from hangoutz.schemas.messages import MessageOut
from hangoutz.schemas.websocket import WebSocketEventType
from hangoutz.services.conversation_service import get_conversation_for_participant
from hangoutz.services.moderation_service import classify
from hangoutz.utils.time_utils import as_utc, isoformat, utcnow

logger = logging.getLogger(__name__)


async def get_message_or_404(db: AsyncSession, message_id: str) -> Message:
    result = await db.execute(select(Message).where(Message.id == message_id))
    message = result.scalar_one_or_none()
    if message is None:
        raise NotFoundError("Message not found")
    return message


async def _participant_ids(db: AsyncSession, conversation_id: str) -> List[str]:
    query = (
        select(ConversationParticipant)
        .where(ConversationParticipant.conversation_id == conversation_id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(query)
    return [p.user_id for p in result.scalars().all()]


async def send_message(
    db: AsyncSession,
    current_user: User,
    conversation_id: str,
    body: str,
    message_type: MessageType = MessageType.TEXT,
) -> Message:
    """
    Post a message to a conversation and notify the other participants.

    The message insert, the conversation's last-message fields and the unread
    counters are written in one transaction. Counters are incremented in SQL
    so concurrent sends never lose an increment.

    Raises:
        NotFoundError: If the conversation does not exist
        ForbiddenError: If the sender is not a participant
        ValidationError: If moderation blocks the content
    """
    conversation = await get_conversation_for_participant(db, current_user, conversation_id)

    moderation = classify(body)
    if moderation.blocked:
        logger.info(f"Blocked message from {current_user.id} in {conversation.id}: {moderation.reason}")
        raise ValidationError("Message contains inappropriate content")

    now = utcnow()
    message = Message(
        conversation_id=conversation.id,
        sender_id=current_user.id,
        sender_name=current_user.name,
        body=body,
        type=getattr(message_type, "value", message_type),
        is_moderated=moderation.flagged,
        moderation_flag=moderation.reason if moderation.flagged else None,
        read_by=[],
        created_at=now,
        updated_at=now,
    )
    db.add(message)

    conversation.last_message = message.body
    conversation.last_message_at = now
    conversation.updated_at = now

    await db.execute(
        update(ConversationParticipant)
        .where(
            ConversationParticipant.conversation_id == conversation.id,
            ConversationParticipant.user_id != current_user.id,
        )
        .values(unread_count=ConversationParticipant.unread_count + 1)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(message)

    # Membership may have changed since the conversation was loaded
    recipients = [pid for pid in await _participant_ids(db, conversation.id) if pid != current_user.id]
    payload = {
        "conversationId": conversation.id,
        "message": MessageOut.from_model(message).model_dump(mode="json"),
    }
    for recipient_id in recipients:
        await manager.emit_to_user(recipient_id, WebSocketEventType.MESSAGE_NEW, payload)

    return message


async def list_messages(
    db: AsyncSession,
    current_user: User,
    conversation_id: str,
    limit: int = 50,
    before: Optional[datetime] = None,
) -> List[Message]:
    """
    Newest `limit` messages of a conversation, oldest first.

    Args:
        before: Only messages created strictly before this instant
    """
    conversation = await get_conversation_for_participant(db, current_user, conversation_id)

    query = select(Message).where(Message.conversation_id == conversation.id)
    if before is not None:
        query = query.where(Message.created_at < as_utc(before))
    query = query.order_by(Message.created_at.desc()).limit(limit)

    result = await db.execute(query)
    return list(reversed(result.scalars().all()))


async def mark_message_read(db: AsyncSession, current_user: User, message_id: str) -> Message:
    """
    Record that the current user read a message.

    Only participants may mark a message read. Reading one's own message
    is a no-op. Sequential repeated reads keep a single receipt and notify
    the sender only the first time; read_by is rewritten without a lock, so
    two simultaneous first reads by the same user can both append and
    both notify.
    """
    message = await get_message_or_404(db, message_id)
    await get_conversation_for_participant(db, current_user, message.conversation_id)

    if is_owner(current_user.id, message.sender_id):
        return message
    if message.was_read_by(current_user.id):
        return message

    read_at = utcnow()
    # Reassign so the JSON column is flagged dirty
    message.read_by = [*(message.read_by or []), {"user_id": current_user.id, "read_at": isoformat(read_at)}]
    message.is_read = True
    await db.commit()
    await db.refresh(message)

    await manager.emit_to_user(
        message.sender_id,
        WebSocketEventType.MESSAGE_READ,
        {
            "conversationId": message.conversation_id,
            "messageId": message.id,
            "readBy": current_user.id,
            "readAt": isoformat(read_at),
        },
    )
    return message


async def delete_message(db: AsyncSession, current_user: User, message_id: str) -> None:
    """
    Delete a message. Only its sender may do so; every participant, the
    sender included, is notified.
    """
    message = await get_message_or_404(db, message_id)
    ensure_owner(current_user.id, message.sender_id, "Not authorized to delete this message")

    conversation_id = message.conversation_id
    await db.delete(message)
    await db.commit()
    logger.info(f"User {current_user.id} deleted message {message_id}")

    participant_ids = await _participant_ids(db, conversation_id)
    await manager.emit_to_users(
        participant_ids,
        WebSocketEventType.MESSAGE_DELETED,
        {"conversationId": conversation_id, "messageId": message_id},
    )
