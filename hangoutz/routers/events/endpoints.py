import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from hangoutz.common import get_current_user
from hangoutz.core.exceptions import ValidationError
from hangoutz.init_db import get_db
from hangoutz.models import User
from hangoutz.models.event import EventCategory, EventStatus
from hangoutz.schemas.events import (
    EventActionResponse,
    EventCreate,
    EventDetailOut,
    EventDetailResponse,
    EventListResponse,
    EventOut,
    EventOwnership,
    EventResponse,
    EventUpdate,
    ParticipantProfile,
)
from hangoutz.schemas.users import MessageResponse
from hangoutz.services import event_service

# Configure logger for this module
logger = logging.getLogger(__name__)

# Initialize router with prefix and tags for API documentation
router = APIRouter(prefix="/events", tags=["events"])


def _parse_status(value: Optional[str]) -> Optional[EventStatus]:
    if not value or value == "all":
        return None
    try:
        return EventStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid status: {value}")


@router.get("", response_model=EventListResponse)
async def list_events(
    category: Optional[EventCategory] = None,
    status_filter: Optional[str] = Query("upcoming", alias="status"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort_by: str = Query("-createdAt", alias="sortBy"),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    max_distance: float = Query(50_000, alias="maxDistance", gt=0),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    List events.

    Args:
        category: Only events of this category
        status_filter: upcoming, ongoing, completed, cancelled or all
        search: Free-text match on title, description or location
        page: 1-based page number
        limit: Page size (1-100)
        sort_by: createdAt, dateTime or title, "-" prefix for descending
        lat, lng: Centre point; when given, results are sorted by distance
        max_distance: Radius in metres around the centre point

    Returns:
        EventListResponse with the page of events and pagination info
    """
    result = await event_service.list_events(
        db,
        category=category.value if category else None,
        status=_parse_status(status_filter),
        search=search,
        page=page,
        limit=limit,
        sort_by=sort_by,
        lat=lat,
        lng=lng,
        max_distance=max_distance,
    )
    return EventListResponse(
        events=[EventOut.from_model(e) for e in result["events"]],
        pagination=result["pagination"],
    )


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    request: EventCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    event = await event_service.create_event(db, current_user, request)
    return EventResponse(event=EventOut.from_model(event))


@router.get("/user/{user_id}", response_model=EventListResponse)
async def list_user_events(
    user_id: str,
    ownership: EventOwnership = Query(EventOwnership.ALL, alias="type"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Events a user hosts, has joined, or both.
    """
    events = await event_service.list_user_events(db, user_id, ownership)
    return EventListResponse(events=[EventOut.from_model(e) for e in events])


@router.get("/{event_id}", response_model=EventDetailResponse)
async def get_event(
    event_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    event = await event_service.get_event_or_404(db, event_id)
    profiles = await event_service.get_participant_profiles(db, event)
    detail = EventDetailOut(
        **EventOut.from_model(event).model_dump(),
        participant_profiles=[ParticipantProfile.model_validate(p) for p in profiles],
    )
    return EventDetailResponse(event=detail)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: str,
    request: EventUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Update an event. Only the host may edit it.
    """
    event = await event_service.update_event(db, current_user, event_id, request)
    return EventResponse(event=EventOut.from_model(event))


@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event(
    event_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await event_service.delete_event(db, current_user, event_id)
    return MessageResponse(message="Event deleted successfully")


@router.post("/{event_id}/join", response_model=EventActionResponse)
async def join_event(
    event_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Join an event. The host is notified over the realtime gateway.

    Raises:
        ValidationError: If the event is full or already joined
    """
    event = await event_service.join_event(db, current_user, event_id)
    return EventActionResponse(message="Successfully joined event", event=EventOut.from_model(event))


@router.post("/{event_id}/leave", response_model=EventActionResponse)
async def leave_event(
    event_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    event = await event_service.leave_event(db, current_user, event_id)
    return EventActionResponse(message="Successfully left event", event=EventOut.from_model(event))
