from typing import Any, Optional

from django.conf import settings
from django.utils.module_loading import import_string

from restorer.exceptions import BackupClientError


class BackupClient:
    """
    Access to the entries kept by the remote backup service.

    Deployments subclass this with the transport and authentication their
    backup service needs and point ``settings.RESTORE_BACKUP_CLIENT`` at the
    subclass. Implementations which fetch credentials should guard that with
    ``restorer.transients.cache_lock`` on ``SITE_KEY_LOCK`` /
    ``ACCESS_TOKEN_LOCK`` so a reset clears them along with the job.

    Records returned by ``fetch_entries`` are dicts with at least an ``id``;
    ``form_id``, ``fields`` and ``date`` (epoch seconds or ISO 8601) are used
    when present.

    Any failure to talk to the service should be raised as
    ``BackupClientError``.
    """

    def count_entries(self) -> int:
        """Return the number of entries held by the backup service."""
        raise BackupClientError("No backup client is configured")

    def fetch_entries(
        self, after: Optional[str] = None, limit: int = 100
    ) -> list[dict[str, Any]]:
        """
        Return up to ``limit`` entries ordered by id, starting after the entry
        whose id is ``after`` (from the first entry when ``after`` is None).
        """
        raise BackupClientError("No backup client is configured")


def get_backup_client() -> BackupClient:
    return import_string(settings.RESTORE_BACKUP_CLIENT)()
