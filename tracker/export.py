"""CSV export of job applications."""

import csv
import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from .dates import days_until, format_date, format_days_remaining
from .models import JobApplication

logger = logging.getLogger(__name__)

# Returned instead of a table when there is nothing to export
NO_DATA = "No data to export"

HEADERS = [
    "Company",
    "Job Title",
    "Status",
    "Source",
    "Application Date",
    "Deadline",
    "Follow-up Date",
    "Days Until Deadline",
    "Tags",
    "Resume URL",
    "Notes",
]

# Locale short date
DATE_FORMAT = "%x"


def to_row(app: JobApplication, now: datetime) -> list[str]:
    """Convert an application to a row in HEADERS order."""
    return [
        app.company,
        app.job_title,
        app.status.value,
        app.source,
        format_date(app.date_applied, DATE_FORMAT),
        format_date(app.deadline, DATE_FORMAT),
        format_date(app.follow_up_date, DATE_FORMAT),
        format_days_remaining(days_until(now, app.deadline)),
        "; ".join(app.tags),
        app.resume_url or "",
        app.notes,
    ]


def to_delimited_text(applications: Iterable[JobApplication], now: Optional[datetime] = None) -> str:
    """Serialize applications as CSV text.

    Fields containing a comma, a double quote or a newline are quoted, with
    embedded quotes doubled.

    Returns:
        The CSV text, or NO_DATA when there are no applications. Check for
        NO_DATA before writing the result to a file.
    """
    applications = list(applications)
    if not applications:
        return NO_DATA

    now = now or datetime.now()
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(HEADERS)
    writer.writerows(to_row(app, now) for app in applications)
    return output.getvalue()


def export_filename(now: Optional[datetime] = None) -> str:
    """Suggested file name, e.g. ``job-applications-2024-03-05.csv``."""
    now = now or datetime.now()
    return f"job-applications-{now.strftime('%Y-%m-%d')}.csv"


def write_export(
    applications: Iterable[JobApplication],
    directory: Path,
    now: Optional[datetime] = None,
) -> Optional[Path]:
    """Write the CSV export into ``directory``.

    Returns:
        The written path, or None if there was nothing to export.
    """
    applications = list(applications)
    now = now or datetime.now()
    content = to_delimited_text(applications, now)
    if content == NO_DATA:
        logger.info("No job applications to export")
        return None

    directory.mkdir(parents=True, exist_ok=True)
    path = directory / export_filename(now)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)

    logger.info(f"Exported {len(applications)} applications to {path}")
    return path
