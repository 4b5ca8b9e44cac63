"""Persistence of the application collection in a key-value store.

The whole collection is kept as one JSON document under a single key. Every
write replaces the document; every read parses and normalizes it.
"""

import json
import logging
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, Union

from pydantic import ValidationError as PydanticValidationError

from .dates import to_datetime
from .errors import NotFoundError, StorageError
from .models import (
    ApplicationInput,
    ApplicationPatch,
    ApplicationStatus,
    JobApplication,
    StorageStats,
)

logger = logging.getLogger(__name__)

STORAGE_KEY = "jobApplicationTracker"


def generate_id() -> str:
    """Return a fresh opaque identifier."""
    return uuid.uuid4().hex


class KeyValueStore(Protocol):
    """Durable text store addressed by key."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Dict-backed store. ``capacity`` (in characters) simulates a full disk."""

    def __init__(self, capacity: Optional[int] = None):
        self.capacity = capacity
        self.data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.capacity is not None and len(value) > self.capacity:
            raise StorageError("Failed to save data. Storage might be full.", key=key)
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class SqliteStore:
    """Key-value store in a single SQLite table."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.init_db()

    def get_connection(self) -> sqlite3.Connection:
        """Get SQLite database connection.

        Raises:
            StorageError: If the database directory or file cannot be opened.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            return sqlite3.connect(self.path)
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Could not open {self.path}: {e}") from e

    def init_db(self) -> None:
        """Initialize database schema."""
        conn = self.get_connection()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.commit()
            logger.debug(f"Database initialized at {self.path}")
        except sqlite3.Error as e:
            raise StorageError(f"Could not initialize {self.path}: {e}") from e
        finally:
            conn.close()

    def get(self, key: str) -> Optional[str]:
        conn = self.get_connection()
        try:
            cursor = conn.execute("SELECT value FROM kv WHERE key = ?", (key,))
            row = cursor.fetchone()
            return row[0] if row else None
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read {key}: {e}", key=key) from e
        finally:
            conn.close()

    def set(self, key: str, value: str) -> None:
        conn = self.get_connection()
        try:
            conn.execute(
                """
                INSERT OR REPLACE INTO kv (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                """,
                (key, value),
            )
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(f"Failed to save data: {e}", key=key) from e
        finally:
            conn.close()

    def delete(self, key: str) -> None:
        conn = self.get_connection()
        try:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to delete {key}: {e}", key=key) from e
        finally:
            conn.close()


class ApplicationStore:
    """CRUD over the persisted application collection.

    Args:
        kv: Durable key-value store holding the collection.
        key: Key the collection document is stored under.
        clock: Returns the current time; injectable for tests.
        id_factory: Produces identifiers for new applications.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        key: str = STORAGE_KEY,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[], str] = generate_id,
    ):
        self.kv = kv
        self.key = key
        self.clock = clock
        self.id_factory = id_factory

    def _normalize(self, raw: dict[str, Any], now: datetime) -> JobApplication:
        data = dict(raw)
        if not data.get("id"):
            data["id"] = self.id_factory()
        for stamp in ("createdAt", "updatedAt"):
            if to_datetime(data.get(stamp)) is None:
                data[stamp] = now
        try:
            return JobApplication.model_validate(data)
        except PydanticValidationError as e:
            raise StorageError(f"Stored application {data['id']} is malformed: {e}", key=self.key) from e

    def _load(self) -> list[JobApplication]:
        document = self.kv.get(self.key)
        if not document:
            return []

        try:
            items = json.loads(document)
        except json.JSONDecodeError as e:
            raise StorageError(f"Stored data is not valid JSON: {e}", key=self.key) from e
        if not isinstance(items, list):
            raise StorageError("Stored data is not a list of applications", key=self.key)

        now = self.clock()
        return [self._normalize(item, now) for item in items if isinstance(item, dict)]

    def _save(self, applications: list[JobApplication]) -> None:
        document = json.dumps([app.to_document() for app in applications], ensure_ascii=False)
        try:
            self.kv.set(self.key, document)
        except StorageError:
            logger.error(f"Failed to save {len(applications)} applications")
            raise

    def list(self) -> list[JobApplication]:
        """Return every application, normalized to the current schema."""
        return self._load()

    def get(self, application_id: str) -> Optional[JobApplication]:
        for app in self._load():
            if app.id == application_id:
                return app
        return None

    def require(self, application_id: str) -> JobApplication:
        """Like ``get`` but raises NotFoundError for an unknown id."""
        app = self.get(application_id)
        if app is None:
            raise NotFoundError(application_id)
        return app

    def create(self, data: Union[ApplicationInput, dict[str, Any]]) -> JobApplication:
        """Add a new application and persist the collection."""
        if not isinstance(data, ApplicationInput):
            data = ApplicationInput.from_data(data)

        applications = self._load()
        now = self.clock()
        app = JobApplication(
            **data.model_dump(),
            id=self.id_factory(),
            date_applied=now if data.status == ApplicationStatus.APPLIED else None,
            created_at=now,
            updated_at=now,
        )

        self._save(applications + [app])
        logger.info(f"Created application {app.id}: {app.company} - {app.job_title}")
        return app

    def update(
        self, application_id: str, patch: Union[ApplicationPatch, dict[str, Any]]
    ) -> Optional[JobApplication]:
        """Merge ``patch`` onto an application.

        ``date_applied`` is set the first time the status moves into Applied
        and is never cleared afterwards.

        Returns:
            The updated application, or None if the id does not exist.
        """
        if not isinstance(patch, ApplicationPatch):
            patch = ApplicationPatch.from_data(patch)

        applications = self._load()
        index = next(
            (i for i, app in enumerate(applications) if app.id == application_id), None
        )
        if index is None:
            logger.warning(f"Job application not found: {application_id}")
            return None

        current = applications[index]
        changes = patch.changes()
        now = self.clock()

        merged = {**current.model_dump(), **changes, "updated_at": now}
        if (
            changes.get("status") == ApplicationStatus.APPLIED
            and current.status != ApplicationStatus.APPLIED
        ):
            merged["date_applied"] = now

        updated = JobApplication.model_validate(merged)
        self._save(applications[:index] + [updated] + applications[index + 1:])
        logger.info(f"Updated application {application_id}: {sorted(changes)}")
        return updated

    def delete(self, application_id: str) -> bool:
        """Remove an application. Returns False if the id does not exist."""
        applications = self._load()
        remaining = [app for app in applications if app.id != application_id]

        if len(remaining) == len(applications):
            logger.warning(f"Job application not found for deletion: {application_id}")
            return False

        self._save(remaining)
        logger.info(f"Deleted application {application_id}")
        return True

    def clear(self) -> None:
        """Remove the entire collection."""
        self.kv.delete(self.key)
        logger.info("Cleared all applications")

    def storage_stats(self) -> StorageStats:
        document = self.kv.get(self.key) or ""
        applications = self._load()
        return StorageStats(
            total=len(applications),
            bytes_used=len(document.encode("utf-8")),
            last_updated=max((app.updated_at for app in applications), default=None),
        )
