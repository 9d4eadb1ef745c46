import logging
import math
import time
from datetime import timedelta
from typing import List, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hangoutz.config import settings
from hangoutz.core.exceptions import NotFoundError, ValidationError
from hangoutz.core.permissions import ensure_owner, is_owner
from hangoutz.core.websocket.websocket_manager import manager
from hangoutz.models import Event, EventParticipant, User
from hangoutz.models.event import EventStatus
from hangoutz.schemas.events import EventCreate, EventOwnership, EventUpdate
from hangoutz.schemas.users import Pagination
from hangoutz.schemas.websocket import WebSocketEventType
from hangoutz.utils.geo_utils import bounding_box, haversine_distance
from hangoutz.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "createdAt": Event.created_at,
    "dateTime": Event.date_time,
    "title": Event.title,
}


def _order_by(sort_by: str):
    """Translate a "-field" / "field" sort key into an ORDER BY clause."""
    descending = sort_by.startswith("-")
    column = SORT_FIELDS.get(sort_by.lstrip("-"), Event.created_at)
    return column.desc() if descending else column.asc()


def _status_condition(status: EventStatus):
    now = utcnow()
    duration = timedelta(hours=settings.event_duration_hours)
    not_cancelled = Event.status != EventStatus.CANCELLED.value

    if status == EventStatus.CANCELLED:
        return Event.status == EventStatus.CANCELLED.value
    if status == EventStatus.UPCOMING:
        return and_(not_cancelled, Event.date_time > now)
    if status == EventStatus.ONGOING:
        return and_(not_cancelled, Event.date_time <= now, Event.date_time >= now - duration)
    return and_(not_cancelled, Event.date_time < now - duration)


async def get_event_or_404(db: AsyncSession, event_id: str, for_update: bool = False) -> Event:
    query = select(Event).where(Event.id == event_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    event = result.scalar_one_or_none()
    if event is None:
        raise NotFoundError("Event not found")
    return event


async def list_events(
    db: AsyncSession,
    category: Optional[str] = None,
    status: Optional[EventStatus] = EventStatus.UPCOMING,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    sort_by: str = "-createdAt",
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    max_distance: float = 50_000,
) -> dict:
    """
    List events matching the given filters.

    Args:
        db: Database session
        category: Only events of this category
        status: Only events in this derived status
        search: Case-insensitive match on title, description or location
        page: 1-based page number
        limit: Page size
        sort_by: Sort field, prefixed with "-" for descending
        lat, lng: Centre of an optional radius search
        max_distance: Radius in metres for the radius search

    Returns:
        dict: events and pagination
    """
    conditions = []
    if status:
        conditions.append(_status_condition(status))
    if category:
        conditions.append(Event.category == category)
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(
            Event.title.ilike(pattern),
            Event.description.ilike(pattern),
            Event.location.ilike(pattern),
        ))

    if lat is not None and lng is not None:
        # Coarse box in SQL, exact radius in Python
        min_lat, max_lat, min_lng, max_lng = bounding_box(lat, lng, max_distance)
        conditions.append(Event.lat.between(min_lat, max_lat))
        conditions.append(Event.lng.between(min_lng, max_lng))

        result = await db.execute(select(Event).where(*conditions))
        nearby = [
            e for e in result.scalars().all()
            if haversine_distance(lat, lng, e.lat, e.lng) <= max_distance
        ]
        nearby.sort(key=lambda e: haversine_distance(lat, lng, e.lat, e.lng))
        total = len(nearby)
        events = nearby[(page - 1) * limit: page * limit]
    else:
        query = (
            select(Event)
            .where(*conditions)
            .order_by(_order_by(sort_by))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await db.execute(query)
        events = result.scalars().all()
        total = (await db.execute(select(func.count(Event.id)).where(*conditions))).scalar_one()

    return {
        "events": events,
        "pagination": Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    }


async def get_participant_profiles(db: AsyncSession, event: Event) -> List[User]:
    ids = event.participant_ids
    if not ids:
        return []
    result = await db.execute(select(User).where(User.id.in_(ids)))
    users = {u.id: u for u in result.scalars().all()}
    return [users[i] for i in ids if i in users]


async def create_event(db: AsyncSession, current_user: User, request: EventCreate) -> Event:
    """
    Create an event hosted by the current user.

    The host is stored as a snapshot and is the first participant.
    """
    event = Event(
        title=request.title,
        description=request.description,
        location=request.location,
        date_time=request.date_time,
        category=request.category.value,
        lat=request.coordinates.lat,
        lng=request.coordinates.lng,
        image_url=f"https://picsum.photos/seed/{int(time.time() * 1000)}/800/400",
        host_id=current_user.id,
        host_name=current_user.name,
        host_photo_url=current_user.photo_url,
        max_participants=request.max_participants,
        tags=request.tags,
        status=EventStatus.UPCOMING.value,
    )
    event.participants.append(EventParticipant(user_id=current_user.id))
    db.add(event)
    await db.commit()
    await db.refresh(event)

    logger.info(f"User {current_user.id} created event {event.id}")
    return event


async def update_event(db: AsyncSession, current_user: User, event_id: str, update: EventUpdate) -> Event:
    event = await get_event_or_404(db, event_id)
    ensure_owner(current_user.id, event.host_id, "Not authorized to update this event")

    data = update.model_dump(exclude_unset=True)
    for field in ("title", "description", "location", "date_time", "tags"):
        if data.get(field) is not None:
            setattr(event, field, data[field])
    if data.get("category") is not None:
        event.category = update.category.value
    if update.coordinates is not None:
        event.lat = update.coordinates.lat
        event.lng = update.coordinates.lng
    if "max_participants" in data:
        if update.max_participants is not None and update.max_participants < event.participant_count:
            raise ValidationError("Max participants cannot be lower than the current participant count")
        event.max_participants = update.max_participants
    if update.status is not None:
        # Recomputed on save; only survives when cancellation is sticky
        event.status = update.status.value

    event.updated_at = utcnow()
    await db.commit()
    await db.refresh(event)
    return event


async def delete_event(db: AsyncSession, current_user: User, event_id: str) -> None:
    event = await get_event_or_404(db, event_id)
    ensure_owner(current_user.id, event.host_id, "Not authorized to delete this event")

    await db.delete(event)
    await db.commit()
    logger.info(f"Host {current_user.id} deleted event {event_id}")


async def join_event(db: AsyncSession, current_user: User, event_id: str) -> Event:
    """
    Add the current user to an event's participants and notify the host.

    Raises:
        NotFoundError: If the event does not exist
        ValidationError: If the event is full or the user already joined
    """
    event = await get_event_or_404(db, event_id, for_update=True)

    if event.is_full:
        raise ValidationError("Event is full")

    if event.has_participant(current_user.id):
        raise ValidationError("Already joined this event")

    event.participants.append(EventParticipant(user_id=current_user.id))
    event.updated_at = utcnow()
    try:
        await db.commit()
    except IntegrityError:
        # A concurrent join by the same user already inserted the row
        await db.rollback()
        raise ValidationError("Already joined this event")
    await db.refresh(event)

    await manager.emit_to_user(
        event.host_id,
        WebSocketEventType.EVENT_NEW_PARTICIPANT,
        {
            "eventId": event.id,
            "participant": {
                "_id": current_user.id,
                "name": current_user.name,
                "photoURL": current_user.photo_url,
            },
        },
    )
    return event


async def leave_event(db: AsyncSession, current_user: User, event_id: str) -> Event:
    """
    Remove the current user from an event.

    Raises:
        NotFoundError: If the event does not exist
        ValidationError: If the user hosts the event or is not a participant
    """
    event = await get_event_or_404(db, event_id, for_update=True)

    if is_owner(current_user.id, event.host_id):
        raise ValidationError("Host cannot leave their own event")

    if not event.has_participant(current_user.id):
        raise ValidationError("Not a participant of this event")

    for participant in list(event.participants):
        if participant.user_id == current_user.id:
            event.participants.remove(participant)
    event.updated_at = utcnow()
    await db.commit()
    await db.refresh(event)
    return event


async def list_user_events(db: AsyncSession, user_id: str, ownership: EventOwnership) -> List[Event]:
    joined = select(EventParticipant.event_id).where(EventParticipant.user_id == user_id)

    if ownership == EventOwnership.HOSTED:
        condition = Event.host_id == user_id
    elif ownership == EventOwnership.JOINED:
        condition = Event.id.in_(joined)
    else:
        condition = or_(Event.host_id == user_id, Event.id.in_(joined))

    result = await db.execute(select(Event).where(condition).order_by(Event.date_time.asc()))
    return result.scalars().all()
