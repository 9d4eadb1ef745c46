from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

from hangoutz.models.message import MAX_MESSAGE_LENGTH, MessageType


class SenderOut(BaseModel):
    id: str
    name: Optional[str] = None


class ReadReceipt(BaseModel):
    user_id: str
    read_at: datetime


class MessageCreate(BaseModel):
    """
    Attributes:
        conversation_id: Conversation the message is posted to
        body: Text content, or the image URL for image messages
        type: Type of message content
    """
    conversation_id: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
    type: MessageType = MessageType.TEXT


class MessageOut(BaseModel):
    id: str
    conversation_id: str
    sender: SenderOut
    body: str
    type: MessageType
    is_read: bool = False
    read_by: List[ReadReceipt] = []
    is_moderated: bool = False
    moderation_flag: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, message) -> "MessageOut":
        return cls(
            id=message.id,
            conversation_id=message.conversation_id,
            sender=SenderOut(id=message.sender_id, name=message.sender_name),
            body=message.body,
            type=message.type,
            is_read=message.is_read,
            read_by=message.read_by or [],
            is_moderated=message.is_moderated,
            moderation_flag=message.moderation_flag,
            created_at=message.created_at,
            updated_at=message.updated_at,
        )


class MessageListResponse(BaseModel):
    success: bool = True
    messages: List[MessageOut]


class SentMessageResponse(BaseModel):
    success: bool = True
    message: MessageOut
