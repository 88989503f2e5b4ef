# Based on code from
# https://docs.celeryq.dev/en/v5.5.0/tutorials/task-cookbook.html#ensuring-a-task-is-only-executed-one-at-a-time

import time
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any, Iterable, Optional

from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

SITE_KEY_LOCK = "restore_site_key_lock"
ACCESS_TOKEN_LOCK = "restore_access_token_lock"
IMPORTED_ENTRIES = "restore_imported_entries"
LAST_ERROR = "restore_last_error"
BACKED_UP_COUNT = "restore_backed_up_count"

#: Held by the import task while it runs; never part of a reset
IMPORT_TASK_LOCK = "restore_import_task_lock"

#: Every key a reset must clear, as one unit
RESET_KEYS = (
    LAST_ERROR,
    IMPORTED_ENTRIES,
    SITE_KEY_LOCK,
    ACCESS_TOKEN_LOCK,
    BACKED_UP_COUNT,
)

DEFAULT_LOCK_DURATION = 60 * 10  # 10 minutes


@contextmanager
def cache_lock(
    lock_id: str,
    oid: str,
    lock_duration: int = DEFAULT_LOCK_DURATION,
) -> Generator[bool, None, None]:
    """
    Acquire a cache-based lock shared by every worker using the same cache.

    ``cache.add`` only stores the key when it is absent, so exactly one caller
    gets ``True``. The lock is released on exit if it was acquired and has not
    expired yet.

    Args:
        lock_id (str): Cache key identifying the lock.
        oid (str): Identifier of the owner, stored as the cache value.
        lock_duration (int): Seconds before the lock expires on its own.

    Yields:
        bool: True if the lock was acquired, False otherwise.
    """
    status = False
    try:
        timeout_at = time.monotonic() + lock_duration
        status = cache.add(lock_id, oid, lock_duration)
        yield status
    finally:
        if status and time.monotonic() < timeout_at:
            # An expired lock may already belong to someone else
            cache.delete(lock_id)


def is_locked(lock_id: str) -> bool:
    return cache.get(lock_id) is not None


def get_imported_entries() -> list[str]:
    """Backup ids restored by the current job, oldest first."""
    return list(cache.get(IMPORTED_ENTRIES) or [])


def add_imported_entries(backup_ids: Iterable[str]) -> int:
    """
    Append ``backup_ids`` to the imported entries list and return its new
    length. Only the import task writes this key, under IMPORT_TASK_LOCK.
    """
    imported = get_imported_entries()
    imported.extend(backup_ids)
    cache.set(
        IMPORTED_ENTRIES, imported, timeout=settings.RESTORE_IMPORTED_ENTRIES_TIMEOUT
    )
    return len(imported)


def get_last_error() -> Optional[dict[str, Any]]:
    return cache.get(LAST_ERROR)


def get_failure_count() -> int:
    last_error = get_last_error() or {}
    return int(last_error.get("count", 0))


def record_failure(message: str) -> int:
    """
    Count one more failed import attempt and remember its message.

    Returns:
        int: The number of failures recorded since the last success or reset.
    """
    count = get_failure_count() + 1
    cache.set(
        LAST_ERROR,
        {
            "count": count,
            "message": message,
            "failed_at": int(timezone.now().timestamp()),
        },
        timeout=None,
    )
    return count


def clear_last_error() -> None:
    cache.delete(LAST_ERROR)
