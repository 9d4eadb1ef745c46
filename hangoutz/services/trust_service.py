import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hangoutz.models import Event, EventParticipant, Message, User
from hangoutz.utils.time_utils import as_utc, utcnow

logger = logging.getLogger(__name__)

DEFAULT_TRUST_SCORE = 50
MIN_TRUST_SCORE = 0
MAX_TRUST_SCORE = 100


def calculate_trust_score(user, recent_activity: Optional[dict] = None, now: Optional[datetime] = None) -> int:
    """
    Derive a bounded reputation score from verification, account age and activity.

    Args:
        user: User record (anything with trust_score, verified and created_at)
        recent_activity: Counters events_hosted, events_attended, messages_moderated
        now: Reference time, defaults to the current time

    Returns:
        int: Score clamped to [0, 100]
    """
    recent_activity = recent_activity or {}
    score = user.trust_score if user.trust_score is not None else DEFAULT_TRUST_SCORE

    if user.verified:
        score += 10

    if user.created_at is not None:
        account_age_days = (as_utc(now or utcnow()) - as_utc(user.created_at)).total_seconds() / 86400
        if account_age_days > 30:
            score += 5
        if account_age_days > 90:
            score += 5

    if recent_activity.get("events_hosted", 0) > 0:
        score += 5
    if recent_activity.get("events_attended", 0) > 5:
        score += 5
    if recent_activity.get("messages_moderated", 0) > 0:
        score -= 10  # Penalty for moderated content

    return max(MIN_TRUST_SCORE, min(MAX_TRUST_SCORE, score))


async def get_recent_activity(db: AsyncSession, user: User) -> dict:
    """Count the activity that feeds into the trust score."""
    hosted = await db.execute(select(func.count(Event.id)).where(Event.host_id == user.id))
    attended = await db.execute(
        select(func.count())
        .select_from(EventParticipant)
        .join(Event, Event.id == EventParticipant.event_id)
        .where(EventParticipant.user_id == user.id, Event.host_id != user.id)
    )
    moderated = await db.execute(
        select(func.count(Message.id)).where(Message.sender_id == user.id, Message.is_moderated == True)
    )
    return {
        "events_hosted": hosted.scalar_one(),
        "events_attended": attended.scalar_one(),
        "messages_moderated": moderated.scalar_one(),
    }
