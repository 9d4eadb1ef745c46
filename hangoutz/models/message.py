import enum
import uuid
from sqlalchemy import Column, String, DateTime, Boolean, Text, ForeignKey
from sqlalchemy.orm import validates

from hangoutz.core.exceptions import ValidationError
from hangoutz.database import Base, JSONType
from hangoutz.utils.time_utils import utcnow

MAX_MESSAGE_LENGTH = 5000


class MessageType(str, enum.Enum):
    TEXT = "text"      # Plain text messages
    IMAGE = "image"    # Image attachments (body holds the URL)
    SYSTEM = "system"  # Generated by the server


class Message(Base):
    __tablename__ = "messages"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    conversation_id = Column(
        String, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Sender snapshot
    sender_id = Column(String, nullable=False, index=True)
    sender_name = Column(String, nullable=True)

    body = Column(Text, nullable=False)
    type = Column(String, nullable=False, default=MessageType.TEXT.value)

    # Read receipts: [{"user_id": ..., "read_at": iso timestamp}]
    is_read = Column(Boolean, nullable=False, default=False)
    read_by = Column(JSONType, nullable=False, default=list)

    is_moderated = Column(Boolean, nullable=False, default=False)
    moderation_flag = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def was_read_by(self, user_id: str) -> bool:
        return any(entry.get("user_id") == str(user_id) for entry in (self.read_by or []))

    @validates("body")
    def validate_body(self, key, value):
        value = (value or "").strip()
        if not 1 <= len(value) <= MAX_MESSAGE_LENGTH:
            raise ValidationError(f"Message must be between 1 and {MAX_MESSAGE_LENGTH} characters")
        return value

    @validates("type")
    def validate_type(self, key, value):
        try:
            return MessageType(value).value
        except ValueError:
            raise ValidationError(f"Invalid message type: {value}")
