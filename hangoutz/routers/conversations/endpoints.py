import logging
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from hangoutz.common import get_current_user
from hangoutz.core.exceptions import ValidationError
from hangoutz.init_db import get_db
from hangoutz.models import User
from hangoutz.models.conversation import ConversationType
from hangoutz.schemas.conversations import (
    ConversationCreate,
    ConversationListResponse,
    ConversationOut,
    ConversationResponse,
    GroupConversationCreate,
)
from hangoutz.schemas.users import MessageResponse
from hangoutz.services import conversation_service

# Configure logger for this module
logger = logging.getLogger(__name__)

# Initialize router with prefix and tags for API documentation
router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.get("", response_model=ConversationListResponse)
async def list_conversations(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    conversations = await conversation_service.list_conversations(db, current_user)
    return ConversationListResponse(conversations=[ConversationOut.from_model(c) for c in conversations])


@router.post("", response_model=ConversationResponse)
async def create_or_get_conversation(
    request: ConversationCreate,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Open the direct conversation with another user.

    Returns the existing conversation (200) when one already exists for the
    pair, otherwise creates it (201).

    Raises:
        NotFoundError: If the other user does not exist
    """
    if request.type != ConversationType.DIRECT:
        raise ValidationError("Use /conversations/group to create group conversations")

    conversation, created = await conversation_service.create_or_get_direct_conversation(
        db, current_user, request.other_user_id
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return ConversationResponse(conversation=ConversationOut.from_model(conversation), is_new=created)


@router.post("/group", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
async def create_group_conversation(
    request: GroupConversationCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    conversation = await conversation_service.create_group_conversation(
        db, current_user, request.participant_ids, request.group_name, request.group_photo
    )
    return ConversationResponse(conversation=ConversationOut.from_model(conversation), is_new=True)


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    conversation = await conversation_service.get_conversation(db, current_user, conversation_id)
    return ConversationResponse(conversation=ConversationOut.from_model(conversation))


@router.delete("/{conversation_id}", response_model=MessageResponse)
async def delete_conversation(
    conversation_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await conversation_service.delete_conversation(db, current_user, conversation_id)
    return MessageResponse(message="Conversation deleted successfully")


@router.put("/{conversation_id}/read", response_model=ConversationResponse)
async def mark_conversation_read(
    conversation_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Reset the current user's unread counter for a conversation.
    """
    conversation = await conversation_service.mark_conversation_read(db, current_user, conversation_id)
    return ConversationResponse(conversation=ConversationOut.from_model(conversation))
