from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from hangoutz.models.event import EventCategory, EventStatus
from hangoutz.schemas.users import Pagination, UserSnapshot


class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class EventCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=10, max_length=2000)
    location: str = Field(..., min_length=1)
    date_time: datetime
    category: EventCategory
    coordinates: Coordinates
    max_participants: Optional[int] = Field(None, ge=1)
    tags: List[str] = []


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, min_length=10, max_length=2000)
    location: Optional[str] = Field(None, min_length=1)
    date_time: Optional[datetime] = None
    category: Optional[EventCategory] = None
    coordinates: Optional[Coordinates] = None
    max_participants: Optional[int] = Field(None, ge=1)
    tags: Optional[List[str]] = None
    status: Optional[EventStatus] = None


class EventOwnership(str, Enum):
    HOSTED = "hosted"
    JOINED = "joined"
    ALL = "all"


class ParticipantProfile(BaseModel):
    id: str
    name: Optional[str] = None
    photo_url: Optional[str] = None
    verified: bool = False
    trust_score: int = 50

    class Config:
        from_attributes = True


class EventOut(BaseModel):
    id: str
    title: str
    description: str
    location: str
    coordinates: Coordinates
    date_time: datetime
    category: str
    image_url: str
    host: UserSnapshot
    participants: List[str]
    participant_count: int
    max_participants: Optional[int] = None
    is_full: bool
    tags: List[str] = []
    is_featured: bool = False
    status: EventStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, event) -> "EventOut":
        return cls(
            id=event.id,
            title=event.title,
            description=event.description,
            location=event.location,
            coordinates=Coordinates(lat=event.lat, lng=event.lng),
            date_time=event.date_time,
            category=event.category,
            image_url=event.image_url,
            host=UserSnapshot(id=event.host_id, name=event.host_name, photo_url=event.host_photo_url),
            participants=event.participant_ids,
            participant_count=event.participant_count,
            max_participants=event.max_participants,
            is_full=event.is_full,
            tags=event.tags or [],
            is_featured=event.is_featured,
            status=event.status,
            created_at=event.created_at,
            updated_at=event.updated_at,
        )


class EventDetailOut(EventOut):
    participant_profiles: List[ParticipantProfile] = []


class EventResponse(BaseModel):
    success: bool = True
    event: EventOut


class EventDetailResponse(BaseModel):
    success: bool = True
    event: EventDetailOut


class EventActionResponse(BaseModel):
    success: bool = True
    message: str
    event: EventOut


class EventListResponse(BaseModel):
    success: bool = True
    events: List[EventOut]
    pagination: Optional[Pagination] = None
