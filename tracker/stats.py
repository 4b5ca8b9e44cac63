"""Summary statistics over a collection of applications.

Everything here is recomputed from scratch on each call; ``now`` moves
between calls, so nothing date-derived may be cached.
"""

import logging
import math
from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable

from .dates import end_of_day, start_of_day
from .models import (
    ApplicationStatistics,
    ApplicationStatus,
    ExportStatistics,
    ExportValidation,
    JobApplication,
)

logger = logging.getLogger(__name__)

UPCOMING_DEADLINE_DAYS = 7
RECENT_ACTIVITY_DAYS = 30
TOP_TAGS = 5


def response_rate(by_status: dict[ApplicationStatus, int]) -> int:
    """Interviews plus offers as a percentage of applications in Applied.

    The counts are independent status buckets, not a funnel, so the result
    can exceed 100.
    """
    applied = by_status.get(ApplicationStatus.APPLIED, 0)
    if applied == 0:
        return 0
    responses = by_status.get(ApplicationStatus.INTERVIEW, 0) + by_status.get(
        ApplicationStatus.OFFER, 0
    )
    # Half-up rounding, not banker's rounding
    return math.floor(100 * responses / applied + 0.5)


def upcoming_deadlines(
    applications: Iterable[JobApplication], now: datetime, days: int = UPCOMING_DEADLINE_DAYS
) -> list[JobApplication]:
    """Applications whose deadline falls in [now, now + days], soonest first."""
    horizon = now + timedelta(days=days)
    upcoming = [
        app
        for app in applications
        if app.deadline is not None and now <= start_of_day(app.deadline) <= horizon
    ]
    return sorted(upcoming, key=lambda app: app.deadline)


def follow_ups_due(applications: Iterable[JobApplication], now: datetime) -> list[JobApplication]:
    """Applications with a follow-up today or earlier, oldest first."""
    cutoff = end_of_day(now)
    due = [
        app
        for app in applications
        if app.follow_up_date is not None and start_of_day(app.follow_up_date) <= cutoff
    ]
    return sorted(due, key=lambda app: app.follow_up_date)


def summarize(
    applications: Iterable[JobApplication],
    now: datetime,
    upcoming_days: int = UPCOMING_DEADLINE_DAYS,
    recent_days: int = RECENT_ACTIVITY_DAYS,
) -> ApplicationStatistics:
    """Compute the statistics panel for ``applications`` as of ``now``."""
    applications = list(applications)
    by_status = dict(Counter(app.status for app in applications))
    recent_cutoff = now - timedelta(days=recent_days)

    stats = ApplicationStatistics(
        total=len(applications),
        by_status=by_status,
        recent_activity=sum(1 for app in applications if app.created_at >= recent_cutoff),
        response_rate=response_rate(by_status),
        upcoming_deadlines=upcoming_deadlines(applications, now, upcoming_days),
        follow_ups_due=follow_ups_due(applications, now),
    )
    logger.debug(
        f"Summarized {stats.total} applications: response rate {stats.response_rate}%, "
        f"{len(stats.upcoming_deadlines)} upcoming deadlines, "
        f"{len(stats.follow_ups_due)} follow-ups due"
    )
    return stats


def export_statistics(applications: Iterable[JobApplication]) -> ExportStatistics:
    """Describe what an export of ``applications`` would contain."""
    applications = list(applications)
    if not applications:
        return ExportStatistics(total=0, status_breakdown={})

    dates = sorted(app.effective_date for app in applications)
    sources = Counter(app.source for app in applications if app.source)
    tags = Counter(tag for app in applications for tag in app.tags)

    return ExportStatistics(
        total=len(applications),
        status_breakdown=dict(Counter(app.status for app in applications)),
        earliest=dates[0],
        latest=dates[-1],
        most_common_source=sources.most_common(1)[0][0] if sources else None,
        most_common_tags=tags.most_common(TOP_TAGS),
    )


def validate_for_export(applications: Iterable[JobApplication]) -> ExportValidation:
    """Check an export for blocking issues and data-quality warnings."""
    applications = list(applications)
    if not applications:
        return ExportValidation(is_valid=False, issues=["No jobs to export"])

    warnings = []
    missing_company = sum(1 for app in applications if not app.company.strip())
    missing_title = sum(1 for app in applications if not app.job_title.strip())
    if missing_company:
        warnings.append(f"{missing_company} jobs missing company name")
    if missing_title:
        warnings.append(f"{missing_title} jobs missing job title")
    invalid_dates = sum(1 for app in applications if app.invalid_dates)
    if invalid_dates:
        warnings.append(f"{invalid_dates} jobs have invalid dates")

    return ExportValidation(is_valid=True, warnings=warnings)
