"""Tests for input validation and lenient parsing of stored records."""

from datetime import date, datetime

import pytest

from tracker.errors import ValidationError
from tracker.models import (
    ApplicationInput,
    ApplicationPatch,
    ApplicationStatus,
    FilterCriteria,
    JobApplication,
)


def test_input_trims_and_defaults():
    data = ApplicationInput.from_data(
        {"company": "  Acme  ", "jobTitle": " Engineer ", "notes": "  hi ", "resumeUrl": " "}
    )
    assert data.company == "Acme"
    assert data.job_title == "Engineer"
    assert data.notes == "hi"
    assert data.status == ApplicationStatus.WISHLIST
    assert data.resume_url is None
    assert data.tags == []


@pytest.mark.parametrize(
    "payload, fields",
    [
        ({"company": "   ", "job_title": "Engineer"}, {"company"}),
        ({"company": "Acme", "job_title": ""}, {"job_title", "jobTitle"}),
        ({"company": "Acme", "job_title": "Engineer", "resume_url": "not a url"}, {"resume_url", "resumeUrl"}),
        ({"company": "Acme", "job_title": "Engineer", "deadline": "2024-02-30"}, {"deadline"}),
    ],
)
def test_input_rejects_bad_fields(payload, fields):
    with pytest.raises(ValidationError) as exc_info:
        ApplicationInput.from_data(payload)
    assert fields & set(exc_info.value.errors)


def test_input_error_message_is_readable():
    with pytest.raises(ValidationError) as exc_info:
        ApplicationInput.from_data({"company": "", "job_title": "Engineer"})
    assert "Company name is required" in str(exc_info.value)


def test_input_accepts_valid_url():
    data = ApplicationInput.from_data(
        {"company": "Acme", "job_title": "Engineer", "resume_url": "https://example.com/cv.pdf"}
    )
    assert data.resume_url == "https://example.com/cv.pdf"


def test_input_tags_deduplicated_in_order():
    data = ApplicationInput.from_data(
        {"company": "Acme", "job_title": "Engineer", "tags": ["remote", " python", "remote", ""]}
    )
    assert data.tags == ["remote", "python"]


def test_stored_single_string_tag_stays_whole():
    app = JobApplication.model_validate(
        {
            "id": "x",
            "tags": " python ",
            "createdAt": "2024-03-01T09:00:00",
            "updatedAt": "2024-03-01T09:00:00",
        }
    )
    assert app.tags == ["python"]


def test_validate_deadline_rejects_past():
    data = ApplicationInput.from_data(
        {"company": "Acme", "job_title": "Engineer", "deadline": "2024-03-01"}
    )
    with pytest.raises(ValidationError):
        data.validate_deadline(datetime(2024, 3, 15))
    data.validate_deadline(datetime(2024, 2, 1))


def test_patch_changes_only_set_fields():
    patch = ApplicationPatch.from_data({"notes": "called", "deadline": None})
    assert patch.changes() == {"notes": "called", "deadline": None}
    assert ApplicationPatch().changes() == {}


def test_patch_cannot_blank_required_fields():
    with pytest.raises(ValidationError):
        ApplicationPatch.from_data({"company": "  "})


def test_stored_record_is_lenient():
    app = JobApplication.model_validate(
        {
            "id": "x",
            "company": None,
            "status": "Ghosted",
            "deadline": "whenever",
            "followUpDate": "2024-03-20T00:00:00",
            "tags": ["a", "a", "b"],
            "createdAt": "2024-03-01T09:00:00",
            "updatedAt": "2024-03-01T09:00:00",
        }
    )
    assert app.company == ""
    assert app.status == ApplicationStatus.WISHLIST
    assert app.deadline is None
    assert app.follow_up_date == date(2024, 3, 20)
    assert app.tags == ["a", "b"]
    assert app.invalid_dates == ["deadline"]
    assert "invalidDates" not in app.to_document()


def test_document_uses_camel_case_keys(make_app):
    document = make_app(follow_up_date=date(2024, 4, 1)).to_document()
    assert document["jobTitle"] == "Engineer"
    assert document["followUpDate"] == "2024-04-01"
    assert "job_title" not in document


def test_effective_date_prefers_date_applied(make_app):
    applied = datetime(2024, 3, 10)
    assert make_app(date_applied=applied).effective_date == applied
    assert make_app().effective_date == datetime(2024, 3, 15, 10, 30)


def test_filter_criteria_blank_status():
    assert FilterCriteria(status="").status is None
    assert not FilterCriteria().is_active()
    assert FilterCriteria(tag="remote").is_active()
