import re
import logging
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.core.cache import cache
from django.utils import timezone

logger = logging.getLogger(__name__)

# Index matches date.weekday()
DAY_NAMES = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']

_NON_ALNUM_RE = re.compile(r'[^a-z0-9]+')
_SESSION_TIME_RE = re.compile(r'^(\d{1,2}):(\d{2})$')


def generate_slug(name):
    """
    URL slug for catalog names.

    Lower-cases, turns every run of non [a-z0-9] characters into a single
    hyphen and trims hyphens from both ends: "Tom's Room!" -> "tom-s-room".
    """
    return _NON_ALNUM_RE.sub('-', (name or '').lower()).strip('-')


def parse_session_time(value):
    """Parse "HH:MM" into a time. Raises ValueError on anything else."""
    match = _SESSION_TIME_RE.match((value or '').strip())
    if not match:
        raise ValueError(f"Invalid session time: {value!r}")

    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Invalid session time: {value!r}")

    return time(hour, minute)


def get_business_timezone(business):
    try:
        return ZoneInfo(business.timezone_name or 'UTC')
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {business.timezone_name!r} for business {business.id}, using UTC")
        return ZoneInfo('UTC')


def generate_session_slots(start_date, end_date, session_times, selected_days, duration_minutes, tz):
    """
    Expand a weekly schedule into concrete (start, end) datetimes.

    Walks every calendar date between start_date and end_date (inclusive,
    as seen in ``tz``); on each selected weekday a slot starts at every
    session time and lasts ``duration_minutes``.
    """
    selected = {day.lower() for day in selected_days}
    times = sorted({parse_session_time(value) for value in session_times})
    duration = timedelta(minutes=duration_minutes)

    day = timezone.localtime(start_date, tz).date()
    last_day = timezone.localtime(end_date, tz).date()

    slots = []
    while day <= last_day:
        if DAY_NAMES[day.weekday()] in selected:
            for slot_time in times:
                start = datetime.combine(day, slot_time, tzinfo=tz)
                slots.append((start, start + duration))
        day += timedelta(days=1)

    return slots


def build_event_sessions(event, session_times, selected_days, skip_existing=False):
    """Create the sessions an event's weekly schedule describes."""
    from .models import Session

    experience = event.experience
    tz = get_business_timezone(experience.business)

    existing = set()
    if skip_existing:
        existing = set(event.sessions.values_list('start_time', flat=True))

    sessions = [
        Session(event=event, start_time=start, end_time=end)
        for start, end in generate_session_slots(
            event.start_date, event.end_date, session_times, selected_days,
            experience.duration, tz
        )
        if start not in existing
    ]
    Session.objects.bulk_create(sessions)

    logger.info(f"Generated {len(sessions)} sessions for event {event.id}")
    return sessions


def regenerate_event_sessions(event, session_times, selected_days):
    """
    Replace an event's schedule.

    Sessions that already have bookings are kept; everything else is
    rebuilt from the new schedule without duplicating kept slots.
    """
    removed, _ = event.sessions.filter(bookings__isnull=True).delete()
    logger.info(f"Removed {removed} unbooked sessions from event {event.id}")
    return build_event_sessions(event, session_times, selected_days, skip_existing=True)


def public_business_cache_key(business_slug):
    return f"public_business:{business_slug}"


def invalidate_public_business_cache(business):
    cache.delete(public_business_cache_key(business.slug))
