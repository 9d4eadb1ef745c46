from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from hangoutz.models.conversation import ConversationType


class ParticipantOut(BaseModel):
    id: str
    name: Optional[str] = None
    photo_url: Optional[str] = None


class ConversationCreate(BaseModel):
    other_user_id: str = Field(..., min_length=1)
    type: ConversationType = ConversationType.DIRECT


class GroupConversationCreate(BaseModel):
    participant_ids: List[str] = Field(..., min_length=1)
    group_name: Optional[str] = Field(None, max_length=100)
    group_photo: Optional[str] = None


class ConversationOut(BaseModel):
    id: str
    type: ConversationType
    group_name: Optional[str] = None
    group_photo: Optional[str] = None
    participants: List[ParticipantOut]
    last_message: str = ""
    last_message_at: Optional[datetime] = None
    unread_count: Dict[str, int] = {}
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, conversation) -> "ConversationOut":
        return cls(
            id=conversation.id,
            type=conversation.type,
            group_name=conversation.group_name,
            group_photo=conversation.group_photo,
            participants=[
                ParticipantOut(id=p.user_id, name=p.name, photo_url=p.photo_url)
                for p in conversation.participants
            ],
            last_message=conversation.last_message or "",
            last_message_at=conversation.last_message_at,
            unread_count=conversation.unread_counts,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        )


class ConversationResponse(BaseModel):
    success: bool = True
    conversation: ConversationOut
    is_new: Optional[bool] = None


class ConversationListResponse(BaseModel):
    success: bool = True
    conversations: List[ConversationOut]
