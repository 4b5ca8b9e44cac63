"""Day-granularity date helpers for deadlines and follow-ups.

Every function takes the reference time ``now`` explicitly. Both sides of a
comparison are normalized to the start of their day, so "3 days left" reads
the same whether it is asked at 08:00 or 23:00.

Unparsable input is treated as absent rather than raised, which keeps the
display and export helpers total.
"""

import calendar
import logging
from datetime import date, datetime, time
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DateLike = Union[datetime, date, str, None]

# Tried in order after ISO-8601 fails
DATE_FORMATS = (
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
)

FOLLOW_UP_WINDOW_DAYS = 2


class Urgency(str, Enum):
    """How soon a deadline falls."""

    NONE = "none"
    OVERDUE = "overdue"
    TODAY = "today"
    URGENT = "urgent"
    SOON = "soon"
    NORMAL = "normal"


class DeadlineStatus(BaseModel):
    """Urgency bucket plus the label shown next to a deadline."""

    urgency: Urgency
    message: str


class FollowUpStatus(BaseModel):
    """Whether a follow-up needs attention, with its label."""

    is_due: bool
    message: str = ""


def _parse_string(text: str) -> Optional[datetime]:
    if not text:
        return None

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    logger.debug(f"Could not parse date: {text!r}")
    return None


def to_datetime(value: DateLike) -> Optional[datetime]:
    """Parse a date-like value into a naive local datetime.

    Accepts datetimes, dates (as midnight), ISO-8601 strings including a
    trailing ``Z``, and a few common human formats. Timezone-aware values are
    converted to local time and stripped of their tzinfo.

    Returns:
        The parsed datetime, or None for absent or unparsable input.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime.combine(value, time.min)
    elif isinstance(value, str):
        parsed = _parse_string(value.strip())
        if parsed is None:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def to_date(value: DateLike) -> Optional[date]:
    """Parse a date-like value into a calendar date, or None."""
    parsed = to_datetime(value)
    return parsed.date() if parsed is not None else None


def is_valid_date(value: DateLike) -> bool:
    return to_datetime(value) is not None


def start_of_day(value: Union[datetime, date]) -> datetime:
    return datetime.combine(to_date(value), time.min)


def end_of_day(value: Union[datetime, date]) -> datetime:
    return datetime.combine(to_date(value), time.max)


def subtract_months(value: datetime, months: int) -> datetime:
    """Step back whole calendar months, clamping the day to the month length."""
    month_index = value.month - 1 - months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def days_until(now: datetime, target: DateLike) -> Optional[int]:
    """Whole days from ``now`` to ``target``; negative when target is past.

    Returns:
        The day difference, or None when target is absent or unparsable.
    """
    target_day = to_date(target)
    if target_day is None:
        return None
    return (target_day - to_date(now)).days


def deadline_status(now: datetime, deadline: DateLike) -> DeadlineStatus:
    """Classify a deadline into an urgency bucket."""
    days = days_until(now, deadline)

    if days is None:
        return DeadlineStatus(urgency=Urgency.NONE, message="No deadline")
    if days < 0:
        return DeadlineStatus(urgency=Urgency.OVERDUE, message=f"{abs(days)} days overdue")
    if days == 0:
        return DeadlineStatus(urgency=Urgency.TODAY, message="Due today")
    if days <= 3:
        return DeadlineStatus(urgency=Urgency.URGENT, message=f"{days} days left")
    if days <= 7:
        return DeadlineStatus(urgency=Urgency.SOON, message=f"{days} days left")
    return DeadlineStatus(urgency=Urgency.NORMAL, message=f"{days} days left")


def follow_up_status(now: datetime, follow_up_date: DateLike) -> FollowUpStatus:
    """Card-level follow-up indicator.

    Only looks FOLLOW_UP_WINDOW_DAYS ahead; anything later is not due.
    """
    days = days_until(now, follow_up_date)

    if days is None:
        return FollowUpStatus(is_due=False)
    if days < 0:
        return FollowUpStatus(is_due=True, message=f"overdue by {abs(days)} days")
    if days == 0:
        return FollowUpStatus(is_due=True, message="due today")
    if days <= FOLLOW_UP_WINDOW_DAYS:
        return FollowUpStatus(is_due=True, message=f"in {days} days")
    return FollowUpStatus(is_due=False)


def is_follow_up_due(now: datetime, follow_up_date: DateLike) -> bool:
    """True when the follow-up falls today or earlier."""
    days = days_until(now, follow_up_date)
    return days is not None and days <= 0


def format_days_remaining(days: Optional[int]) -> str:
    """Render a day difference for tabular output."""
    if days is None:
        return ""
    if days < 0:
        return f"{abs(days)} days overdue"
    if days == 0:
        return "Due today"
    return f"{days} days"


def format_date(value: DateLike, fmt: str = "%b %d, %Y") -> str:
    parsed = to_datetime(value)
    if parsed is None:
        return ""
    return parsed.strftime(fmt)


def relative_time(now: datetime, value: DateLike) -> str:
    """Describe a date relative to now ("Yesterday", "in 3 days", ...)."""
    days = days_until(now, value)
    if days is None:
        return ""

    if days == 0:
        return "Today"
    if days == -1:
        return "Yesterday"
    if days == 1:
        return "Tomorrow"
    if days < 0:
        return f"{abs(days)} days ago"
    return f"in {days} days"
