"""
The persisted restore job record and the store that reads and updates it.
"""

import dataclasses
from dataclasses import dataclass
from enum import Enum
from logging import getLogger
from typing import Any, Callable, Iterable, Optional

from django.utils import timezone

from configuration.utils import get_option, locked_option
from restoration.logging import RestorationLogger

logger = getLogger(__name__)
structured_logger = RestorationLogger.get_logger(__name__)

OPTION_NAME = "backup_restore"
JOB_KEY = "import"
ENABLED_SINCE_KEY = "enabled_since"


class JobStatus(str, Enum):
    # There is no member for "no job": a missing status is None
    SCHEDULED = "scheduled"
    RUNNING = "running"
    DONE = "done"

    @classmethod
    def parse(cls, value: Any) -> Optional["JobStatus"]:
        if value is None or value == "":
            return None
        try:
            return cls(value)
        except ValueError:
            logger.warning("Ignoring unknown restore job status %r", value)
            return None


IN_FLIGHT_STATUSES = frozenset({JobStatus.SCHEDULED, JobStatus.RUNNING})


def now_timestamp() -> int:
    return int(timezone.now().timestamp())


@dataclass
class ImportJob:
    status: Optional[JobStatus] = None
    previous_import_count: int = 0
    user_notified: bool = False
    task_id: Optional[str] = None
    scheduled_at: Optional[int] = None
    started_at: Optional[int] = None
    completed_at: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ImportJob":
        if not isinstance(data, dict):
            return cls()
        return cls(
            status=JobStatus.parse(data.get("status")),
            previous_import_count=max(0, int(data.get("previous_import_count") or 0)),
            user_notified=bool(data.get("user_notified", False)),
            task_id=data.get("task_id") or None,
            scheduled_at=data.get("scheduled_at"),
            started_at=data.get("started_at"),
            completed_at=data.get("completed_at"),
        )

    def to_dict(self) -> dict:
        """
        Serialize the job for the option blob. Fields holding their default
        value are left out, so an untouched job serializes to ``{}``.
        """
        data = {}
        if self.status is not None:
            data["status"] = self.status.value
        if self.previous_import_count:
            data["previous_import_count"] = self.previous_import_count
        if self.user_notified:
            data["user_notified"] = True
        for field in ("task_id", "scheduled_at", "started_at", "completed_at"):
            value = getattr(self, field)
            if value is not None:
                data[field] = value
        return data

    @property
    def is_in_flight(self) -> bool:
        return self.status in IN_FLIGHT_STATUSES


class JobStore:
    """
    Reads and writes the restore job kept under the ``import`` key of the
    ``backup_restore`` option.

    All writes go through ``compare_and_set``, which locks the option row, so
    status transitions made by concurrent requests or workers serialize.
    """

    def __init__(self, option_name: str = OPTION_NAME):
        self.option_name = option_name

    def load(self) -> ImportJob:
        settings_blob = get_option(self.option_name, {}) or {}
        return ImportJob.from_dict(settings_blob.get(JOB_KEY))

    def compare_and_set(
        self,
        expected: Iterable[Optional[JobStatus]],
        when: Optional[Callable[[ImportJob], bool]] = None,
        **changes: Any,
    ) -> Optional[ImportJob]:
        """
        Apply ``changes`` to the job if its current status is one of
        ``expected`` and the optional ``when`` predicate accepts it.

        Returns:
            Optional[ImportJob]: The updated job, or None if the job did not
            match and nothing was written.
        """
        expected = frozenset(expected)
        with locked_option(self.option_name) as option:
            current = ImportJob.from_dict(option.value.get(JOB_KEY))
            if current.status not in expected or (when and not when(current)):
                return None
            updated = dataclasses.replace(current, **changes)
            data = updated.to_dict()
            if data:
                option.value[JOB_KEY] = data
            else:
                option.value.pop(JOB_KEY, None)
        structured_logger.debug(
            "Restore job updated.",
            event_code="restore_job_updated",
            job=updated,
            previous_status=current.status.value if current.status else None,
        )
        return updated

    def claim(
        self, expected: Optional[JobStatus] = None, **changes: Any
    ) -> Optional[ImportJob]:
        """
        Move the job from ``expected`` (no job by default) to ``scheduled``.
        Of several concurrent callers only one gets the job back.
        """
        return self.compare_and_set(
            {expected},
            status=JobStatus.SCHEDULED,
            task_id=None,
            scheduled_at=now_timestamp(),
            started_at=None,
            completed_at=None,
            **changes,
        )

    def mark_notified(self) -> bool:
        """
        Flip ``user_notified`` on a finished job. Returns True only for the
        caller which actually flipped it.
        """
        job = self.compare_and_set(
            {JobStatus.DONE},
            when=lambda current: not current.user_notified,
            user_notified=True,
        )
        return job is not None

    def clear(self) -> None:
        with locked_option(self.option_name) as option:
            option.value.pop(JOB_KEY, None)

    def get_enabled_since(self) -> Optional[int]:
        settings_blob = get_option(self.option_name, {}) or {}
        value = settings_blob.get(ENABLED_SINCE_KEY)
        return int(value) if value else None

    def mark_enabled(self, timestamp: Optional[int] = None) -> int:
        """
        Record when backups were enabled. The first recorded value is kept.
        """
        with locked_option(self.option_name) as option:
            if not option.value.get(ENABLED_SINCE_KEY):
                option.value[ENABLED_SINCE_KEY] = timestamp or now_timestamp()
            return int(option.value[ENABLED_SINCE_KEY])
