from logging import getLogger
from typing import Callable, Optional

from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError

from restoration.logging import RestorationLogger
from restorer.client import BackupClient, get_backup_client
from restorer.exceptions import BackupClientError
from restorer.models import RestoredEntry
from restorer.transients import BACKED_UP_COUNT

logger = getLogger(__name__)
structured_logger = RestorationLogger.get_logger(__name__)


class EntryCounter:
    """
    Read-only view of the entry counts.

    ``None`` means "unknown": the backup service or the database could not be
    read, and callers must not act on the count.
    """

    def __init__(self, client_factory: Callable[[], BackupClient] = get_backup_client):
        self.client_factory = client_factory

    def get_entries_count(self) -> Optional[int]:
        """Number of entries restored locally."""
        try:
            return RestoredEntry.objects.count()
        except DatabaseError as exc:
            structured_logger.warning(
                "Could not count restored entries.",
                event_code="restore_count_failed",
                reason=str(exc),
                reason_code="database_error",
            )
            return None

    def get_backed_up_count(self, refresh: bool = False) -> Optional[int]:
        """
        Number of entries held by the backup service. The answer is cached for
        ``settings.RESTORE_COUNT_CACHE_TIMEOUT`` seconds unless ``refresh`` is
        set.
        """
        if not refresh:
            cached = cache.get(BACKED_UP_COUNT)
            if cached is not None:
                return cached

        try:
            count = int(self.client_factory().count_entries())
        except (BackupClientError, OSError, ValueError, TypeError) as exc:
            structured_logger.warning(
                "Could not count backed up entries.",
                event_code="restore_backup_count_failed",
                reason=str(exc),
                reason_code="backup_unavailable",
            )
            return None

        cache.set(BACKED_UP_COUNT, count, timeout=settings.RESTORE_COUNT_CACHE_TIMEOUT)
        logger.debug("Backup service holds %d entries", count)
        return count

    def get_new_entries_count(self, refresh: bool = False) -> Optional[int]:
        """Entries held by the backup service which were not restored yet."""
        backed_up = self.get_backed_up_count(refresh=refresh)
        if backed_up is None:
            return None
        restored = self.get_entries_count()
        if restored is None:
            return None
        return max(0, backed_up - restored)
