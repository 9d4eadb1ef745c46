import enum
import uuid
from typing import Iterable, Optional

from sqlalchemy import Column, String, DateTime, Integer, Text, ForeignKey, event
from sqlalchemy.orm import relationship, validates

from hangoutz.core.exceptions import ValidationError
from hangoutz.database import Base
from hangoutz.utils.time_utils import utcnow


class ConversationType(str, enum.Enum):
    DIRECT = "direct"
    GROUP = "group"


def make_direct_key(user_a: str, user_b: str) -> str:
    """Order-independent key identifying the direct conversation between two users."""
    u1, u2 = sorted([str(user_a), str(user_b)])
    return f"{u1}:{u2}"


class ConversationParticipant(Base):
    __tablename__ = "conversation_participants"

    conversation_id = Column(String, ForeignKey("conversations.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String, primary_key=True, index=True)

    # Snapshot taken when the conversation was created
    name = Column(String, nullable=True)
    photo_url = Column(String, nullable=True)

    unread_count = Column(Integer, nullable=False, default=0)

    conversation = relationship("Conversation", back_populates="participants")


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    type = Column(String, nullable=False, default=ConversationType.DIRECT.value)
    group_name = Column(String, nullable=True)
    group_photo = Column(String, nullable=True)
    last_message = Column(Text, nullable=False, default="")
    last_message_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    # Set only for direct conversations; the unique constraint makes the pair unique
    direct_key = Column(String, unique=True, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, index=True)

    participants = relationship(
        "ConversationParticipant",
        back_populates="conversation",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def participant_ids(self):
        return [p.user_id for p in self.participants]

    @property
    def unread_counts(self):
        return {p.user_id: p.unread_count or 0 for p in self.participants}

    def is_participant(self, user_id: Optional[str]) -> bool:
        return user_id is not None and str(user_id) in self.participant_ids

    def other_participant_ids(self, user_id: str) -> Iterable[str]:
        return [pid for pid in self.participant_ids if pid != str(user_id)]

    @validates("type")
    def validate_type(self, key, value):
        try:
            return ConversationType(value).value
        except ValueError:
            raise ValidationError(f"Invalid conversation type: {value}")


@event.listens_for(Conversation, "before_insert")
def _require_two_participants(mapper, connection, target):
    if len(target.participants) < 2:
        raise ValidationError("A conversation must have at least 2 participants")
