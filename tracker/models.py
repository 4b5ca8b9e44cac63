"""Data models for job application tracking."""

import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import (
    AnyUrl,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .dates import to_date, to_datetime
from .errors import ValidationError

logger = logging.getLogger(__name__)

_url_adapter = TypeAdapter(AnyUrl)


class ApplicationStatus(str, Enum):
    WISHLIST = "Wishlist"
    APPLIED = "Applied"
    INTERVIEW = "Interview"
    OFFER = "Offer"
    REJECTED = "Rejected"


class DateBucket(str, Enum):
    """Relative windows for the date filter."""

    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"


def unique_tags(tags) -> list[str]:
    """Trim tags, drop blanks and duplicates, keep first-seen order."""
    if isinstance(tags, str):
        tags = [tags]
    result: list[str] = []
    for tag in tags or []:
        tag = str(tag).strip()
        if tag and tag not in result:
            result.append(tag)
    return result


class CamelModel(BaseModel):
    """Accepts and emits the camelCase keys of the stored document."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JobApplication(CamelModel):
    """A stored job application.

    Stored data is parsed leniently: anything the user could have left out
    gets its default, and malformed dates become None instead of failing the
    whole collection.
    """

    id: str
    company: str = ""
    job_title: str = ""
    status: ApplicationStatus = ApplicationStatus.WISHLIST
    source: str = ""
    deadline: Optional[date] = None
    follow_up_date: Optional[date] = None
    date_applied: Optional[datetime] = None
    notes: str = ""
    resume_url: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    # Date fields whose stored value could not be parsed and was dropped
    invalid_dates: list[str] = Field(default_factory=list, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _record_invalid_dates(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        invalid = []
        for name in ("deadline", "follow_up_date", "date_applied"):
            value = data.get(to_camel(name), data.get(name))
            if value not in (None, "") and to_datetime(value) is None:
                invalid.append(name)
        return {**data, "invalid_dates": invalid}

    @field_validator("company", "job_title", "source", "notes", mode="before")
    @classmethod
    def _text_or_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("resume_url", mode="before")
    @classmethod
    def _url_or_none(cls, value: Any) -> Any:
        return value or None

    @field_validator("status", mode="before")
    @classmethod
    def _known_status(cls, value: Any) -> ApplicationStatus:
        if not value:
            return ApplicationStatus.WISHLIST
        try:
            return ApplicationStatus(value)
        except ValueError:
            logger.warning(f"Unknown status {value!r}, falling back to Wishlist")
            return ApplicationStatus.WISHLIST

    @field_validator("deadline", "follow_up_date", mode="before")
    @classmethod
    def _lenient_date(cls, value: Any) -> Optional[date]:
        if value in (None, ""):
            return None
        parsed = to_date(value)
        if parsed is None:
            logger.warning(f"Dropping unparsable date {value!r}")
        return parsed

    @field_validator("date_applied", mode="before")
    @classmethod
    def _lenient_datetime(cls, value: Any) -> Optional[datetime]:
        if value in (None, ""):
            return None
        parsed = to_datetime(value)
        if parsed is None:
            logger.warning(f"Dropping unparsable timestamp {value!r}")
        return parsed

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _local_timestamp(cls, value: Any) -> Any:
        # Stored UTC strings become naive local time, comparable with now
        return to_datetime(value) or value

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, value: Any) -> list[str]:
        return unique_tags(value)

    @property
    def effective_date(self) -> datetime:
        """Date used by the date filter: when applied, else when created."""
        return self.date_applied or self.created_at

    def to_document(self) -> dict[str, Any]:
        """Serialize to the JSON-ready, camelCase stored form."""
        return self.model_dump(mode="json", by_alias=True)


class ApplicationFields(CamelModel):
    """Validation shared by new applications and partial updates."""

    @classmethod
    def from_data(cls, data: dict[str, Any]):
        """Validate raw user input, raising the tracker's ValidationError."""
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e) from e

    @field_validator("company", "job_title", "source", "notes", mode="before", check_fields=False)
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("deadline", "follow_up_date", "resume_url", mode="before", check_fields=False)
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
        return value or None

    @field_validator("company", check_fields=False)
    @classmethod
    def _company_required(cls, value: Optional[str]) -> str:
        if not value:
            raise ValueError("Company name is required")
        return value

    @field_validator("job_title", check_fields=False)
    @classmethod
    def _job_title_required(cls, value: Optional[str]) -> str:
        if not value:
            raise ValueError("Job title is required")
        return value

    @field_validator("resume_url", check_fields=False)
    @classmethod
    def _valid_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        try:
            _url_adapter.validate_python(value)
        except PydanticValidationError:
            raise ValueError("Please enter a valid URL")
        return value

    @field_validator("tags", mode="before", check_fields=False)
    @classmethod
    def _tags(cls, value: Any) -> Any:
        return None if value is None else unique_tags(value)


class ApplicationInput(ApplicationFields):
    """Payload for creating an application."""

    company: str
    job_title: str
    status: ApplicationStatus = ApplicationStatus.WISHLIST
    source: str = ""
    deadline: Optional[date] = None
    follow_up_date: Optional[date] = None
    notes: str = ""
    resume_url: Optional[str] = None
    tags: list[str] = Field(default_factory=list)

    def validate_deadline(self, now: datetime) -> None:
        """Reject a deadline already in the past.

        A soft check for the point of entry; the store never calls it.
        """
        if self.deadline is not None and self.deadline < now.date():
            raise ValidationError({"deadline": "Deadline cannot be in the past"})


# Fields a patch may explicitly clear by setting them to None
CLEARABLE_FIELDS = frozenset({"deadline", "follow_up_date", "resume_url"})


class ApplicationPatch(ApplicationFields):
    """A partial update. Only fields that were explicitly set are applied."""

    company: Optional[str] = None
    job_title: Optional[str] = None
    status: Optional[ApplicationStatus] = None
    source: Optional[str] = None
    deadline: Optional[date] = None
    follow_up_date: Optional[date] = None
    notes: Optional[str] = None
    resume_url: Optional[str] = None
    tags: Optional[list[str]] = None

    def changes(self) -> dict[str, Any]:
        """Return the explicitly set fields, keyed by field name."""
        return {
            name: value
            for name, value in self.model_dump(exclude_unset=True).items()
            if value is not None or name in CLEARABLE_FIELDS
        }


class FilterCriteria(BaseModel):
    """Compound filter; every set criterion must match."""

    search: str = ""
    status: Optional[ApplicationStatus] = None
    source: str = ""
    tag: str = ""
    date_bucket: str = ""

    @field_validator("status", mode="before")
    @classmethod
    def _blank_status(cls, value: Any) -> Any:
        return value or None

    def is_active(self) -> bool:
        return bool(self.search or self.status or self.source or self.tag or self.date_bucket)


class ApplicationStatistics(BaseModel):
    """Summary shown on the statistics panel."""

    total: int
    by_status: dict[ApplicationStatus, int]
    recent_activity: int
    response_rate: int
    upcoming_deadlines: list[JobApplication]
    follow_ups_due: list[JobApplication]


class ExportStatistics(BaseModel):
    total: int
    status_breakdown: dict[ApplicationStatus, int]
    earliest: Optional[datetime] = None
    latest: Optional[datetime] = None
    most_common_source: Optional[str] = None
    most_common_tags: list[tuple[str, int]] = Field(default_factory=list)


class ExportValidation(BaseModel):
    is_valid: bool
    issues: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class StorageStats(BaseModel):
    total: int
    bytes_used: int
    last_updated: Optional[datetime] = None
