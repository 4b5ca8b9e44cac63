"""Filtering of the application list and the facet values behind its pickers."""

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from .dates import start_of_day, subtract_months
from .models import DateBucket, FilterCriteria, JobApplication

logger = logging.getLogger(__name__)


def bucket_window(bucket: str, now: datetime) -> Optional[tuple[datetime, Optional[datetime]]]:
    """Return the [start, end) window for a date bucket.

    ``end`` is None for open-ended windows. Unknown buckets return None.
    """
    if bucket == DateBucket.TODAY.value:
        today = start_of_day(now)
        return today, today + timedelta(days=1)
    if bucket == DateBucket.WEEK.value:
        return now - timedelta(days=7), None
    if bucket == DateBucket.MONTH.value:
        return subtract_months(now, 1), None
    if bucket == DateBucket.QUARTER.value:
        return subtract_months(now, 3), None
    return None


def matches_search(app: JobApplication, search: str) -> bool:
    """Case-insensitive substring match on company, title, notes or a tag."""
    needle = search.lower()
    return (
        needle in app.company.lower()
        or needle in app.job_title.lower()
        or needle in app.notes.lower()
        or any(needle in tag.lower() for tag in app.tags)
    )


def matches(
    app: JobApplication,
    criteria: FilterCriteria,
    window: Optional[tuple[datetime, Optional[datetime]]] = None,
) -> bool:
    """Check a single application against every set criterion."""
    if criteria.search and not matches_search(app, criteria.search):
        return False

    if criteria.status and app.status != criteria.status:
        return False

    if criteria.source and app.source != criteria.source:
        return False

    if criteria.tag and criteria.tag not in app.tags:
        return False

    if window is not None:
        start, end = window
        effective = app.effective_date
        if effective < start or (end is not None and effective >= end):
            return False

    return True


def filter_applications(
    applications: Iterable[JobApplication],
    criteria: Optional[FilterCriteria] = None,
    now: Optional[datetime] = None,
) -> list[JobApplication]:
    """Return the applications matching ``criteria``, in their original order.

    Args:
        applications: Applications to filter.
        criteria: Filter to apply; None or an empty filter keeps everything.
        now: Reference time for the date bucket. Defaults to the current time.

    Returns:
        A new list with the matching applications.
    """
    applications = list(applications)
    if criteria is None or not criteria.is_active():
        return applications

    window = None
    if criteria.date_bucket:
        window = bucket_window(criteria.date_bucket, now or datetime.now())
        if window is None:
            logger.debug(f"Ignoring unknown date bucket: {criteria.date_bucket!r}")

    result = [app for app in applications if matches(app, criteria, window)]
    logger.debug(f"Filter kept {len(result)} of {len(applications)} applications")
    return result


def distinct_sources(applications: Iterable[JobApplication]) -> list[str]:
    """Sorted, unique, non-blank sources."""
    return sorted({app.source for app in applications if app.source.strip()})


def distinct_tags(applications: Iterable[JobApplication]) -> list[str]:
    """Sorted, unique, non-blank tags."""
    return sorted({tag for app in applications for tag in app.tags if tag.strip()})
