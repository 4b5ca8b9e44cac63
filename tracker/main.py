"""Command-line entry point for the job application tracker."""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from filelock import FileLock, Timeout

from .config import Config, load_config
from .dates import deadline_status, follow_up_status, format_date
from .errors import NotFoundError, StorageError, ValidationError
from .export import write_export
from .filters import distinct_sources, distinct_tags, filter_applications
from .models import (
    ApplicationInput,
    ApplicationPatch,
    ApplicationStatus,
    DateBucket,
    FilterCriteria,
    JobApplication,
)
from .stats import summarize, validate_for_export
from .storage import ApplicationStore, SqliteStore

STATUSES = [status.value for status in ApplicationStatus]
DATE_BUCKETS = [bucket.value for bucket in DateBucket]

# argparse dest -> model field, for the fields add and update share
FIELD_ARGS = {
    "company": "company",
    "title": "job_title",
    "status": "status",
    "source": "source",
    "deadline": "deadline",
    "follow_up": "follow_up_date",
    "notes": "notes",
    "resume_url": "resume_url",
    "tags": "tags",
}

CLEAR_ARGS = {
    "deadline": "deadline",
    "follow-up": "follow_up_date",
    "resume-url": "resume_url",
}


def setup_logging(config: Config) -> None:
    """Configure logging for the application."""
    config.log_dir.mkdir(parents=True, exist_ok=True)
    log_file = config.log_dir / "app.log"

    level = getattr(logging, config.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stderr),
        ],
    )


def add_field_arguments(parser: argparse.ArgumentParser, required: bool) -> None:
    parser.add_argument("--company", required=required, help="Company name")
    parser.add_argument("--title", required=required, help="Job title")
    parser.add_argument("--status", choices=STATUSES, help="Application status")
    parser.add_argument("--source", help="Where the job was found")
    parser.add_argument("--deadline", help="Application deadline (YYYY-MM-DD)")
    parser.add_argument("--follow-up", dest="follow_up", help="Follow-up date (YYYY-MM-DD)")
    parser.add_argument("--notes", help="Free-form notes")
    parser.add_argument("--resume-url", dest="resume_url", help="Resume or application URL")
    parser.add_argument("--tags", help="Comma-separated tags")


def add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--search", default="", help="Text to look for")
    parser.add_argument("--status", choices=STATUSES, help="Only this status")
    parser.add_argument("--source", default="", help="Only this source")
    parser.add_argument("--tag", default="", help="Only applications with this tag")
    parser.add_argument("--date", dest="date_bucket", choices=DATE_BUCKETS, default="",
                        help="Only applications applied to (or added) in this window")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Track job applications")
    parser.add_argument("--config", type=Path, help="Path to config YAML")
    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add", help="Record a new application")
    add_field_arguments(add, required=True)
    add.add_argument("--allow-past-deadline", action="store_true",
                     help="Accept a deadline that has already passed")

    listing = commands.add_parser("list", help="List applications")
    add_filter_arguments(listing)

    update = commands.add_parser("update", help="Change an application")
    update.add_argument("id", help="Application id")
    add_field_arguments(update, required=False)
    update.add_argument("--clear", nargs="+", choices=sorted(CLEAR_ARGS),
                        default=[], help="Remove optional dates or the resume URL")

    delete = commands.add_parser("delete", help="Delete an application")
    delete.add_argument("id", help="Application id")

    commands.add_parser("stats", help="Show summary statistics")
    commands.add_parser("reminders", help="Show follow-ups due today or overdue")
    commands.add_parser("facets", help="Show known sources and tags")

    export = commands.add_parser("export", help="Export applications to CSV")
    add_filter_arguments(export)
    export.add_argument("--output-dir", type=Path, help="Directory for the CSV file")

    return parser


def field_values(args: argparse.Namespace) -> dict[str, Any]:
    """Collect the field options the user actually passed."""
    values = {}
    for dest, field in FIELD_ARGS.items():
        value = getattr(args, dest, None)
        if value is None:
            continue
        if field == "tags":
            value = [tag.strip() for tag in value.split(",")]
        values[field] = value
    return values


def criteria_from_args(args: argparse.Namespace) -> FilterCriteria:
    return FilterCriteria(
        search=args.search,
        status=args.status,
        source=args.source,
        tag=args.tag,
        date_bucket=args.date_bucket,
    )


def describe(app: JobApplication, now: datetime) -> str:
    """One-line summary of an application."""
    line = f"{app.id}  {app.company} - {app.job_title}  [{app.status.value}]"
    if app.deadline is not None:
        line += f"  deadline: {deadline_status(now, app.deadline).message}"
    follow_up = follow_up_status(now, app.follow_up_date)
    if follow_up.is_due:
        line += f"  follow-up {follow_up.message}"
    if app.tags:
        line += f"  #{' #'.join(app.tags)}"
    return line


def run_command(args: argparse.Namespace, store: ApplicationStore, config: Config, now: datetime) -> int:
    """Execute one parsed command. Returns the process exit code."""
    if args.command == "add":
        data = ApplicationInput.from_data(field_values(args))
        if not args.allow_past_deadline:
            data.validate_deadline(now)
        app = store.create(data)
        print(f"Added {app.company} - {app.job_title} ({app.id})")
        return 0

    if args.command == "list":
        applications = store.list()
        matching = filter_applications(applications, criteria_from_args(args), now)
        for app in matching:
            print(describe(app, now))
        print(f"Showing {len(matching)} of {len(applications)} applications")
        return 0

    if args.command == "update":
        values = field_values(args)
        for name in args.clear:
            values[CLEAR_ARGS[name]] = None
        app = store.update(args.id, ApplicationPatch.from_data(values))
        if app is None:
            raise NotFoundError(args.id)
        print(f"Updated {app.company} - {app.job_title} ({app.id})")
        return 0

    if args.command == "delete":
        if not store.delete(args.id):
            raise NotFoundError(args.id)
        print(f"Deleted {args.id}")
        return 0

    if args.command == "stats":
        stats = summarize(
            store.list(),
            now,
            upcoming_days=config.upcoming_deadline_days,
            recent_days=config.recent_activity_days,
        )
        print(f"Total applications: {stats.total}")
        for status in ApplicationStatus:
            print(f"  {status.value}: {stats.by_status.get(status, 0)}")
        print(f"Added in the last {config.recent_activity_days} days: {stats.recent_activity}")
        print(f"Response rate: {stats.response_rate}%")
        print(f"Upcoming deadlines: {len(stats.upcoming_deadlines)}")
        for app in stats.upcoming_deadlines:
            print(f"  {format_date(app.deadline)}  {app.company} - {app.job_title}")
        print(f"Follow-ups due: {len(stats.follow_ups_due)}")
        return 0

    if args.command == "reminders":
        due = summarize(store.list(), now).follow_ups_due
        if not due:
            print("No follow-ups due")
        for app in due:
            print(f"Follow-up due {format_date(app.follow_up_date)}: {app.company} - {app.job_title}")
        return 0

    if args.command == "facets":
        applications = store.list()
        print(f"Sources: {', '.join(distinct_sources(applications))}")
        print(f"Tags: {', '.join(distinct_tags(applications))}")
        return 0

    if args.command == "export":
        matching = filter_applications(store.list(), criteria_from_args(args), now)
        validation = validate_for_export(matching)
        if not validation.is_valid:
            print("No job applications to export")
            return 1
        for warning in validation.warnings:
            print(f"Warning: {warning}")
        path = write_export(matching, args.output_dir or config.export_dir, now)
        print(f"Exported {len(matching)} applications to {path}")
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point with concurrency protection."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        setup_logging(config)
    except FileNotFoundError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    logger = logging.getLogger(__name__)
    lock_path = config.data_path.with_name(config.data_path.name + ".lock")
    try:
        config.data_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        print(f"Error: Could not create data directory: {e}", file=sys.stderr)
        return 1

    try:
        with FileLock(lock_path, timeout=config.lock_timeout):
            store = ApplicationStore(SqliteStore(config.data_path), key=config.storage_key)
            return run_command(args, store, config, datetime.now())

    except Timeout:
        logger.warning("Could not acquire lock - another instance is running")
        return 1

    except (ValidationError, NotFoundError, StorageError) as e:
        logger.debug(f"{args.command} failed: {e!r}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
