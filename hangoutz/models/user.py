import uuid
from sqlalchemy import Column, String, DateTime, Boolean, Integer, Text
from sqlalchemy.orm import relationship, validates

from hangoutz.core.exceptions import ValidationError
from hangoutz.database import Base, JSONType
from hangoutz.utils.time_utils import utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    phone = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)
    bio = Column(Text, nullable=True)
    photos = Column(JSONType, nullable=False, default=list)
    photo_url = Column(String, nullable=True)  # first photo, used for snapshots
    interests = Column(JSONType, nullable=False, default=list)
    verified = Column(Boolean, nullable=False, default=False)
    verification_photo_url = Column(String, nullable=True)
    trust_score = Column(Integer, nullable=False, default=50)
    completed_profile = Column(Boolean, nullable=False, default=False)
    last_active = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    blocked_users = relationship(
        "UserBlock",
        foreign_keys="UserBlock.blocker_id",
        back_populates="blocker",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def blocked_user_ids(self):
        return [block.blocked_id for block in self.blocked_users]

    @validates("trust_score")
    def validate_trust_score(self, key, value):
        if value is None or not 0 <= value <= 100:
            raise ValidationError("Trust score must be between 0 and 100")
        return value

    @validates("bio")
    def validate_bio(self, key, value):
        if value is not None and len(value) > 500:
            raise ValidationError("Bio cannot be longer than 500 characters")
        return value
