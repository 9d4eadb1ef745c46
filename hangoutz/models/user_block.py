from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
import uuid

from hangoutz.database import Base
from hangoutz.utils.time_utils import utcnow


class UserBlock(Base):
    __tablename__ = "user_blocks"
    __table_args__ = (UniqueConstraint("blocker_id", "blocked_id", name="uq_user_blocks_pair"),)

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    blocker_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    blocked_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    blocker = relationship("User", foreign_keys=[blocker_id], back_populates="blocked_users")
