from logging import getLogger
from typing import Optional

from celery import states
from celery.result import AsyncResult
from django.db import DatabaseError
from kombu.exceptions import OperationalError

from configuration.utils import configuration_value
from restoration.celery import app as celery_app
from restoration.logging import RestorationLogger
from restorer.counter import EntryCounter
from restorer.jobs import ImportJob, JobStatus, JobStore
from restorer.models import RestoredEntry
from restorer.transients import (
    IMPORT_TASK_LOCK,
    get_failure_count,
    get_imported_entries,
    is_locked,
)

logger = getLogger(__name__)
structured_logger = RestorationLogger.get_logger(__name__)

DEFAULT_FAIL_LIMIT = 3


class BackupIntegration:
    """
    Everything the restore job needs from its surroundings: counts, the
    enabled-since date, the fail limit, the Celery task engine, and the local
    entry storage.
    """

    def __init__(
        self,
        store: Optional[JobStore] = None,
        counter: Optional[EntryCounter] = None,
    ):
        self.store = store or JobStore()
        self.counter = counter or EntryCounter()

    def get_entries_count(self) -> Optional[int]:
        return self.counter.get_entries_count()

    def get_new_entries_count(self, refresh: bool = False) -> Optional[int]:
        return self.counter.get_new_entries_count(refresh=refresh)

    def get_enabled_since(self) -> Optional[int]:
        return self.store.get_enabled_since()

    def mark_enabled(self) -> int:
        return self.store.mark_enabled()

    def get_imported_entries_count(self) -> int:
        return len(get_imported_entries())

    def has_reached_fail_limit(self) -> bool:
        limit = configuration_value("restore_import_fail_limit", DEFAULT_FAIL_LIMIT)
        return get_failure_count() >= limit

    def is_task_engine_usable(self) -> bool:
        """
        Whether Celery can accept the import task: eager mode, or a broker
        which answers a connection attempt.
        """
        if celery_app.conf.task_always_eager:
            return True
        try:
            with celery_app.connection_for_write() as connection:
                connection.ensure_connection(max_retries=1)
        except (OperationalError, OSError) as exc:
            structured_logger.warning(
                "Task broker is not reachable.",
                event_code="restore_task_engine_unusable",
                reason=str(exc),
                reason_code="broker_unreachable",
            )
            return False
        return True

    def create_import_task(self) -> str:
        from restorer.tasks import import_backup_entries

        result = import_backup_entries.apply_async()
        return result.id

    def schedule_import(self, expected: Optional[JobStatus] = None, **changes) -> bool:
        """
        Move the job from ``expected`` to ``scheduled`` and enqueue the import
        task. Only the caller which wins the compare-and-set enqueues; if the
        task cannot be enqueued the job goes back to ``expected``.

        Returns:
            bool: True if a task was enqueued.
        """
        job = self.store.claim(expected, **changes)
        if job is None:
            structured_logger.info(
                "Restore job was already claimed.",
                event_code="restore_import_claim_lost",
                expected_status=expected.value if expected else None,
            )
            return False

        try:
            task_id = self.create_import_task()
        except (OperationalError, OSError) as exc:
            structured_logger.error(
                "Could not enqueue the import task.",
                event_code="restore_import_enqueue_failed",
                reason=str(exc),
                reason_code="broker_unreachable",
                job=job,
            )
            self.store.compare_and_set(
                {JobStatus.SCHEDULED},
                when=lambda current: current.task_id is None,
                status=expected,
                scheduled_at=None,
            )
            return False

        job = self.store.compare_and_set(
            {JobStatus.SCHEDULED, JobStatus.RUNNING},
            when=lambda current: current.task_id is None,
            task_id=task_id,
        )
        structured_logger.info(
            "Import task enqueued.",
            event_code="restore_import_enqueued",
            job=job,
            task_id=task_id,
        )
        return True

    def is_import_task_finished(self, task_id: str) -> bool:
        try:
            return AsyncResult(task_id, app=celery_app).state in states.READY_STATES
        except (OperationalError, OSError) as exc:
            logger.warning("Could not read state of task %s: %s", task_id, exc)
            return False

    def is_stalled(self, job: ImportJob) -> bool:
        """
        Whether a job lost its task without reaching the expected status:

        * ``scheduled`` with no task, or with a task which already finished
        * ``running`` while no import task holds the task lock
        * ``done`` but not yet announced, with entries still left upstream
        """
        if job.status is None or job.user_notified:
            return False
        if job.status == JobStatus.SCHEDULED:
            return not job.task_id or self.is_import_task_finished(job.task_id)
        if job.status == JobStatus.RUNNING:
            return not is_locked(IMPORT_TASK_LOCK)
        return bool(self.get_new_entries_count(refresh=True))

    def maybe_restart_import(self) -> bool:
        """
        Re-schedule a stalled job. Locks and ``user_notified`` are left alone.

        Returns:
            bool: True if the import task was enqueued again.
        """
        job = self.store.load()
        if not self.is_stalled(job):
            logger.debug("Restore job %s is not stalled", job)
            return False

        changes = {}
        if job.status == JobStatus.DONE:
            # Only entries restored from now on count as new
            changes["previous_import_count"] = self.get_imported_entries_count()

        structured_logger.info(
            "Restarting stalled restore job.",
            event_code="restore_import_restart",
            job=job,
        )
        return self.schedule_import(job.status, **changes)

    def purge_restored_entries(self) -> int:
        try:
            deleted, _ = RestoredEntry.objects.all().delete()
        except DatabaseError as exc:
            structured_logger.error(
                "Could not purge restored entries.",
                event_code="restore_purge_failed",
                reason=str(exc),
                reason_code="database_error",
            )
            return 0
        structured_logger.info(
            "Restored entries purged.",
            event_code="restore_entries_purged",
            deleted=deleted,
        )
        return deleted
