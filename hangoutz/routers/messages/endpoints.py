import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from hangoutz.common import get_current_user
from hangoutz.init_db import get_db
from hangoutz.models import User
from hangoutz.schemas.messages import MessageCreate, MessageListResponse, MessageOut, SentMessageResponse
from hangoutz.schemas.users import MessageResponse
from hangoutz.services import message_service

# Configure logger for this module
logger = logging.getLogger(__name__)

# Initialize router with prefix and tags for API documentation
router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/{conversation_id}", response_model=MessageListResponse)
async def list_messages(
    conversation_id: str,
    limit: int = Query(50, ge=1, le=100),
    before: Optional[datetime] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Retrieve the latest messages of a conversation.

    Args:
        conversation_id: Conversation to read
        limit: Maximum number of messages to return (1-100)
        before: Only messages sent before this timestamp, for paging back

    Returns:
        MessageListResponse with messages in chronological order
    """
    messages = await message_service.list_messages(db, current_user, conversation_id, limit, before)
    return MessageListResponse(messages=[MessageOut.from_model(m) for m in messages])


@router.post("", response_model=SentMessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    request: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Send a message. Content is moderated first; high severity content is
    rejected, lower severities are stored with the moderation flag.
    """
    message = await message_service.send_message(
        db, current_user, request.conversation_id, request.body, request.type
    )
    return SentMessageResponse(message=MessageOut.from_model(message))


@router.delete("/{message_id}", response_model=MessageResponse)
async def delete_message(
    message_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await message_service.delete_message(db, current_user, message_id)
    return MessageResponse(message="Message deleted successfully")


@router.put("/{message_id}/read", response_model=MessageResponse)
async def mark_message_read(
    message_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    message = await message_service.mark_message_read(db, current_user, message_id)
    if message.sender_id == current_user.id:
        return MessageResponse(message="Own message, nothing to mark")
    return MessageResponse(message="Message marked as read")
