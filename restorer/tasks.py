from logging import getLogger

from django.conf import settings
from django.core.cache import cache
from django.db import transaction

from configuration.utils import configuration_value
from restoration.celery import app as celery_app
from restoration.logging import RestorationLogger
from restorer.client import get_backup_client
from restorer.exceptions import ImportAbandoned
from restorer.integration import DEFAULT_FAIL_LIMIT
from restorer.jobs import JobStatus, JobStore, now_timestamp
from restorer.models import RestoredEntry
from restorer.transients import (
    BACKED_UP_COUNT,
    IMPORT_TASK_LOCK,
    add_imported_entries,
    cache_lock,
    clear_last_error,
    record_failure,
)

logger = getLogger(__name__)
structured_logger = RestorationLogger.get_logger(__name__)

DEFAULT_BATCH_SIZE = 100
DEFAULT_RETRY_DELAY = 5  # minutes


def restore_batch(records) -> list[str]:
    """
    Store one batch of backup records. Records which were restored before
    are left untouched.

    Returns:
        list[str]: Backup ids of the entries created by this batch.
    """
    created_ids = []
    with transaction.atomic():
        for record in records:
            backup_id = str(record["id"])
            entry, created = RestoredEntry.objects.get_or_create(
                backup_id=backup_id,
                defaults=RestoredEntry.defaults_from_record(record),
            )
            if created:
                created_ids.append(backup_id)
            else:
                logger.debug("Entry %s was already restored", entry)
    return created_ids


def import_entries(store: JobStore) -> int:
    """
    Copy every entry from the backup service, batch by batch.

    The job is re-read after each batch so an operator reset stops the import
    between two batches.

    Returns:
        int: Number of entries created.

    Raises:
        ImportAbandoned: If the job is no longer running.
    """
    client = get_backup_client()
    batch_size = configuration_value("restore_import_batch_size", DEFAULT_BATCH_SIZE)

    imported = 0
    cursor = None
    while True:
        records = client.fetch_entries(after=cursor, limit=batch_size)
        if not records:
            break

        created_ids = restore_batch(records)
        # A reset may have cleared the imported entries while the batch was stored
        if store.load().status != JobStatus.RUNNING:
            raise ImportAbandoned("Restore job is no longer running")

        add_imported_entries(created_ids)
        imported += len(created_ids)
        cursor = str(records[-1]["id"])
        logger.debug(
            "Restored %d of %d entries up to %s", len(created_ids), len(records), cursor
        )

        if len(records) < batch_size:
            break

    return imported


# Retries are bounded by the restore_import_fail_limit configuration value
@celery_app.task(bind=True, ignore_result=False, max_retries=None)
def import_backup_entries(self):
    """
    Restore all backed up entries into local storage.

    Moves the job from ``scheduled`` to ``running`` and, once every batch is
    stored, to ``done``. Only one instance runs at a time. On failure the job
    goes back to ``scheduled`` and the task is retried until the configured
    fail limit is reached.
    """
    store = JobStore()
    task_id = self.request.id or ""

    with cache_lock(
        IMPORT_TASK_LOCK, task_id, settings.RESTORE_IMPORT_LOCK_SECONDS
    ) as acquired:
        if not acquired:
            structured_logger.warning(
                "Import task skipped.",
                event_code="restore_import_skipped",
                reason="Another import task holds the import lock.",
                reason_code="import_locked",
                task_id=task_id,
            )
            return 0

        job = store.compare_and_set(
            {JobStatus.SCHEDULED, JobStatus.RUNNING},
            status=JobStatus.RUNNING,
            started_at=now_timestamp(),
            task_id=task_id or None,
        )
        if job is None:
            structured_logger.info(
                "Import task found no scheduled job.",
                event_code="restore_import_no_job",
                task_id=task_id,
            )
            return 0

        structured_logger.info(
            "Import started.", event_code="restore_import_started", job=job
        )

        try:
            imported = import_entries(store)
        except ImportAbandoned:
            structured_logger.info(
                "Import abandoned.", event_code="restore_import_abandoned", job=job
            )
            return 0
        except Exception as exc:
            failures = record_failure(str(exc))
            store.compare_and_set({JobStatus.RUNNING}, status=JobStatus.SCHEDULED)
            limit = configuration_value("restore_import_fail_limit", DEFAULT_FAIL_LIMIT)
            structured_logger.error(
                "Import failed.",
                event_code="restore_import_failed",
                reason=str(exc),
                reason_code="import_error",
                failures=failures,
                fail_limit=limit,
                job=job,
            )
            if failures < limit:
                delay = configuration_value(
                    "restore_import_retry_delay", DEFAULT_RETRY_DELAY
                )
                raise self.retry(exc=exc, countdown=delay * 60)
            raise

        job = store.compare_and_set(
            {JobStatus.RUNNING}, status=JobStatus.DONE, completed_at=now_timestamp()
        )
        clear_last_error()
        # Recount the backup service on the next tick
        cache.delete(BACKED_UP_COUNT)

        structured_logger.info(
            "Import completed.",
            event_code="restore_import_completed",
            job=job,
            imported=imported,
        )
        return imported
