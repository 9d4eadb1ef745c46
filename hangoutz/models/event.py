import enum
import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import Column, String, DateTime, Boolean, Integer, Float, Text, ForeignKey, event
from sqlalchemy.orm import relationship, validates
from sqlalchemy.orm.attributes import set_committed_value

from hangoutz.config import settings
from hangoutz.core.exceptions import ValidationError
from hangoutz.database import Base, JSONType
from hangoutz.utils.time_utils import as_utc, utcnow


class EventCategory(str, enum.Enum):
    MUSIC = "🎵 Music"
    WELLNESS = "🧘 Wellness"
    TECH = "💻 Tech"
    FOOD = "🍔 Food"
    CHESS = "♟️ Chess"
    PHOTOGRAPHY = "📸 Photography"
    GAMING = "🎮 Gaming"
    TRAVEL = "✈️ Travel"
    ART = "🎨 Art"
    BOOKS = "📚 Books"
    SPORTS = "🏃 Sports"
    MOVIES = "🎬 Movies"
    OTHER = "Other"


class EventStatus(str, enum.Enum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def derive_event_status(
    date_time: datetime,
    now: Optional[datetime] = None,
    current: Optional[str] = None,
) -> EventStatus:
    """
    Compute an event's status from its start time and an assumed fixed duration.

    A cancelled status survives only when cancellation is configured as sticky;
    otherwise it is recomputed like any other status.
    """
    if current == EventStatus.CANCELLED and settings.event_cancellation_sticky:
        return EventStatus.CANCELLED

    now = as_utc(now or utcnow())
    start = as_utc(date_time)
    end = start + timedelta(hours=settings.event_duration_hours)

    if now > end:
        return EventStatus.COMPLETED
    if start <= now <= end:
        return EventStatus.ONGOING
    return EventStatus.UPCOMING


class EventParticipant(Base):
    __tablename__ = "event_participants"

    event_id = Column(String, ForeignKey("events.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True)
    joined_at = Column(DateTime(timezone=True), default=utcnow)

    event = relationship("Event", back_populates="participants")


class Event(Base):
    __tablename__ = "events"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String, nullable=False)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    date_time = Column(DateTime(timezone=True), nullable=False, index=True)
    category = Column(String, nullable=False, index=True)
    image_url = Column(String, nullable=False)

    # Host snapshot, taken at creation and never refreshed
    host_id = Column(String, nullable=False, index=True)
    host_name = Column(String, nullable=True)
    host_photo_url = Column(String, nullable=True)

    max_participants = Column(Integer, nullable=True)  # None means unlimited
    tags = Column(JSONType, nullable=False, default=list)
    is_featured = Column(Boolean, nullable=False, default=False)
    status = Column(String, nullable=False, default=EventStatus.UPCOMING.value, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    participants = relationship(
        "EventParticipant",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by=EventParticipant.joined_at,
        lazy="selectin",
    )

    @property
    def participant_ids(self):
        return [p.user_id for p in self.participants]

    @property
    def participant_count(self) -> int:
        return len(self.participants)

    @property
    def is_full(self) -> bool:
        if not self.max_participants:
            return False
        return self.participant_count >= self.max_participants

    def has_participant(self, user_id: str) -> bool:
        return user_id in self.participant_ids

    def refresh_status(self, now: Optional[datetime] = None) -> None:
        self.status = derive_event_status(self.date_time, now, self.status).value

    @validates("title")
    def validate_title(self, key, value):
        value = (value or "").strip()
        if not 3 <= len(value) <= 200:
            raise ValidationError("Title must be between 3 and 200 characters")
        return value

    @validates("description")
    def validate_description(self, key, value):
        if value is None or not 10 <= len(value) <= 2000:
            raise ValidationError("Description must be between 10 and 2000 characters")
        return value

    @validates("location")
    def validate_location(self, key, value):
        value = (value or "").strip()
        if not value:
            raise ValidationError("Location is required")
        return value

    @validates("lat")
    def validate_lat(self, key, value):
        if value is None or not -90 <= value <= 90:
            raise ValidationError("Latitude must be between -90 and 90")
        return value

    @validates("lng")
    def validate_lng(self, key, value):
        if value is None or not -180 <= value <= 180:
            raise ValidationError("Longitude must be between -180 and 180")
        return value

    @validates("date_time")
    def validate_date_time(self, key, value):
        if value is None or as_utc(value) <= utcnow():
            raise ValidationError("Event date must be in the future")
        return as_utc(value)

    @validates("category")
    def validate_category(self, key, value):
        try:
            return EventCategory(value).value
        except ValueError:
            raise ValidationError(f"Invalid category: {value}")

    @validates("status")
    def validate_status(self, key, value):
        try:
            return EventStatus(value).value
        except ValueError:
            raise ValidationError(f"Invalid status: {value}")

    @validates("max_participants")
    def validate_max_participants(self, key, value):
        if value is not None and value < 1:
            raise ValidationError("Max participants must be at least 1")
        return value

    @validates("tags")
    def validate_tags(self, key, value):
        value = list(value or [])
        if any(len(tag) > 30 for tag in value):
            raise ValidationError("Tags cannot be longer than 30 characters")
        return value


@event.listens_for(Event, "before_insert")
@event.listens_for(Event, "before_update")
def _recompute_status_on_save(mapper, connection, target):
    target.refresh_status()


@event.listens_for(Event, "load")
def _recompute_status_on_load(target, context):
    # Committed value, so a read alone never schedules a write
    derived = derive_event_status(target.date_time, current=target.status)
    set_committed_value(target, "status", derived.value)
