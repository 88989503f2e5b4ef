from logging import getLogger
from typing import Optional

from django.core.cache import cache as default_cache
from django.db import DatabaseError

from restoration.logging import RestorationLogger
from restorer.jobs import JobStore
from restorer.transients import RESET_KEYS

logger = getLogger(__name__)
structured_logger = RestorationLogger.get_logger(__name__)


class ResetEngine:
    """
    Clears the restore job and every transient tied to a previous run.

    ``reset()`` never raises. Each part is attempted even if an earlier one
    failed: a single stray key is better than every lock left in place.
    """

    def __init__(self, store: Optional[JobStore] = None, cache=None):
        self.store = store or JobStore()
        self.cache = cache or default_cache
        self.keys = RESET_KEYS

    def reset(self) -> None:
        try:
            self.store.clear()
        except DatabaseError as exc:
            structured_logger.error(
                "Could not clear the restore job record.",
                event_code="restore_reset_job_failed",
                reason=str(exc),
                reason_code="database_error",
            )

        self.clear_transients()

        structured_logger.info(
            "Restore job reset.",
            event_code="restore_job_reset",
        )

    def clear_transients(self) -> list[str]:
        """
        Delete every reset key. Returns the keys which could not be deleted.
        """
        try:
            self.cache.delete_many(self.keys)
            return []
        except Exception as exc:
            logger.warning(
                "Bulk delete of restore transients failed (%s), "
                "falling back to single deletes",
                exc,
            )

        failed = []
        for key in self.keys:
            try:
                self.cache.delete(key)
            except Exception as exc:
                failed.append(key)
                structured_logger.warning(
                    "Could not delete a restore transient.",
                    event_code="restore_reset_key_failed",
                    reason=str(exc),
                    reason_code="cache_error",
                    cache_key=key,
                )
        return failed
