from dataclasses import asdict, dataclass
from datetime import datetime, timezone as dt_timezone
from enum import Enum
from logging import getLogger
from typing import Optional

from django.conf import settings
from django.utils import dateformat, timezone
from django.utils.http import urlencode
from django.utils.translation import gettext as _
from django.utils.translation import ngettext

from restoration.logging import RestorationLogger
from restorer.jobs import ImportJob, JobStatus, JobStore
from restorer.state_machine import Action, normalize_action

logger = getLogger(__name__)
structured_logger = RestorationLogger.get_logger(__name__)


class NoticeKind(str, Enum):
    IN_PROGRESS = "in_progress"
    RESTORE = "restore"
    COMPLETED = "completed"
    ERROR = "error"


class DismissPolicy(str, Enum):
    NONE = "none"
    GLOBAL = "global"


@dataclass(frozen=True)
class Notice:
    kind: NoticeKind
    title: str
    body: str
    slug: str
    level: str = "info"
    action_title: Optional[str] = None
    action_url: Optional[str] = None
    dismiss_policy: DismissPolicy = DismissPolicy.NONE

    def as_dict(self) -> dict:
        data = asdict(self)
        data["kind"] = self.kind.value
        data["dismiss_policy"] = self.dismiss_policy.value
        return data


def action_url(action: Action) -> str:
    return "?" + urlencode({settings.RESTORE_ACTION_PARAM: action.value})


class Notifier:
    """
    Chooses the notice to show for the current state of the restore job.

    ``render`` follows a fixed priority: completion, then progress, then the
    call to action. The error notice is computed separately by
    ``error_notice`` and may be shown alongside any of them.
    """

    def __init__(self, integration, store: Optional[JobStore] = None):
        self.integration = integration
        self.store = store or integration.store

    def render(
        self,
        action,
        status: Optional[JobStatus],
        new_count: Optional[int],
        job: ImportJob,
    ) -> Optional[Notice]:
        action = normalize_action(action)
        status = JobStatus.parse(status)

        if status == JobStatus.DONE:
            if not job.user_notified:
                return self.completed_notice(job)
            return None

        if action == Action.IMPORT or status in (
            JobStatus.SCHEDULED,
            JobStatus.RUNNING,
        ):
            return self.in_progress_notice()

        if status is None:
            if not new_count or new_count <= 0:
                return None
            if not self.integration.is_task_engine_usable():
                return None
            return self.restore_notice(new_count)

        return None

    def widget_notice(
        self, action, status: Optional[JobStatus], new_count: Optional[int]
    ) -> Optional[Notice]:
        """
        Compact notice for summary surfaces such as a dashboard: progress or
        the call to action only, and nothing while Celery is unusable.
        """
        action = normalize_action(action)
        status = JobStatus.parse(status)

        if not self.integration.is_task_engine_usable():
            return None

        if action == Action.IMPORT or status in (
            JobStatus.SCHEDULED,
            JobStatus.RUNNING,
        ):
            return self.in_progress_notice()

        if status is None and new_count and new_count > 0:
            return self.restore_notice(new_count)

        return None

    def imported_delta(self, job: ImportJob) -> int:
        imported = self.integration.get_imported_entries_count()
        return max(0, imported - job.previous_import_count)

    def completed_notice(self, job: ImportJob) -> Optional[Notice]:
        imported = self.imported_delta(job)
        if imported <= 0:
            return None

        # Only the caller flipping the flag gets to show the notice
        if not self.store.mark_notified():
            logger.debug("Completion notice was already delivered")
            return None

        total = self.integration.get_entries_count() or 0
        notice = Notice(
            kind=NoticeKind.COMPLETED,
            title=_("Entry Restore Complete"),
            body=ngettext(
                "%(count)d entry has been successfully imported.",
                "%(count)d entries have been successfully imported.",
                imported,
            )
            % {"count": imported},
            slug=f"restore_import_success_notice_{total}",
            level="success",
            action_title=_("View Entries"),
            action_url=settings.RESTORE_ENTRIES_URL,
            dismiss_policy=DismissPolicy.GLOBAL,
        )
        structured_logger.info(
            "Completion notice delivered.",
            event_code="restore_completion_notified",
            notice=notice,
            imported=imported,
        )
        return notice

    def in_progress_notice(self) -> Notice:
        return Notice(
            kind=NoticeKind.IN_PROGRESS,
            title=_("Entry Restore in Progress"),
            body=_(
                "Your entries are currently being imported. This should only take "
                "a few minutes. A notice will be displayed when the process is "
                "complete."
            ),
            slug="restore_entries_in_progress",
        )

    def restore_notice(self, new_count: int) -> Notice:
        return Notice(
            kind=NoticeKind.RESTORE,
            title=_("Restore Your Form Entries"),
            body=self.since_info(new_count),
            slug="restore_entries_available",
            action_title=_("Restore Entries Now"),
            action_url=action_url(Action.IMPORT),
        )

    def error_notice(self) -> Optional[Notice]:
        if not self.integration.has_reached_fail_limit():
            return None
        return Notice(
            kind=NoticeKind.ERROR,
            title=_("Entry Restore Failed"),
            body=_(
                "Unfortunately, there were some issues during the entries importing "
                "process. Don't worry - data is not lost. Please try again later."
            ),
            slug="restore_import_error_alert",
            level="error",
            dismiss_policy=DismissPolicy.GLOBAL,
        )

    def since_info(self, new_count: int) -> str:
        text = ngettext(
            "%(count)d form entry has been backed up",
            "%(count)d form entries have been backed up",
            new_count,
        ) % {"count": new_count}

        enabled_since = self.integration.get_enabled_since()
        if enabled_since:
            enabled_on = timezone.localtime(
                datetime.fromtimestamp(enabled_since, tz=dt_timezone.utc)
            )
            text += " " + _("since you enabled backups on %(date)s") % {
                "date": dateformat.format(enabled_on, "M j, Y")
            }

        return text + "."
