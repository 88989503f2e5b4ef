from dataclasses import dataclass, field
from logging import getLogger
from typing import Optional

from django.db import DatabaseError
from django_redis.exceptions import ConnectionInterrupted

from restoration.logging import RestorationLogger
from restorer.integration import BackupIntegration
from restorer.jobs import ImportJob
from restorer.notices import Notice, Notifier
from restorer.reset import ResetEngine
from restorer.state_machine import Action, Decision, decide, normalize_action

logger = getLogger(__name__)
structured_logger = RestorationLogger.get_logger(__name__)

#: Failures of the option store or the cache which mean "no new information"
STORAGE_ERRORS = (DatabaseError, ConnectionInterrupted)


@dataclass
class TickResult:
    action: Action
    decision: Decision
    started: bool = False
    restarted: bool = False
    notices: list[Notice] = field(default_factory=list)

    @property
    def notice(self) -> Optional[Notice]:
        return self.notices[0] if self.notices else None


class RestoreController:
    """
    Entry point of the restore job for a single request or command run.

    The caller passes the action the operator asked for, read from wherever
    the caller keeps it (a query parameter, a command line argument), to
    ``on_tick``. Nothing is read from global request state.
    """

    def __init__(
        self,
        integration: Optional[BackupIntegration] = None,
        notifier: Optional[Notifier] = None,
        reset_engine: Optional[ResetEngine] = None,
    ):
        self.integration = integration or BackupIntegration()
        self.store = self.integration.store
        self.notifier = notifier or Notifier(self.integration, self.store)
        self.reset_engine = reset_engine or ResetEngine(self.store)

    def _load_job(self) -> Optional[ImportJob]:
        try:
            return self.store.load()
        except STORAGE_ERRORS as exc:
            structured_logger.warning(
                "Could not read the restore job.",
                event_code="restore_job_read_failed",
                reason=str(exc),
                reason_code="storage_error",
            )
            return None

    def on_tick(self, action="") -> TickResult:
        action = normalize_action(action)

        job = self._load_job()
        if job is None:
            return TickResult(action=action, decision=Decision())

        decision = decide(action, job.status)
        result = TickResult(action=action, decision=decision)

        try:
            if decision.purge_entries:
                self.integration.purge_restored_entries()
            if decision.reset_job:
                self.reset_engine.reset()
            if decision.restart_job:
                result.restarted = self.integration.maybe_restart_import()
            if decision.start_import:
                result.started = self.integration.schedule_import()
        except STORAGE_ERRORS as exc:
            structured_logger.error(
                "Restore tick could not be applied.",
                event_code="restore_tick_failed",
                reason=str(exc),
                reason_code="storage_error",
                action=action.value,
                job=job,
            )
            return result

        if not decision.is_noop:
            structured_logger.info(
                "Restore tick applied.",
                event_code="restore_tick_applied",
                action=action.value,
                started=result.started,
                restarted=result.restarted,
                job=job,
            )

        result.notices = self.current_notices(
            action, refresh_counts=decision.refresh_counts
        )
        return result

    def current_notices(self, action="", refresh_counts: bool = False) -> list[Notice]:
        """
        Notices for the current state, the error notice last. Rendering the
        completion notice marks it as delivered.
        """
        job = self._load_job()
        if job is None:
            return []

        notices = []
        try:
            new_count = self.integration.get_new_entries_count(refresh=refresh_counts)
            notice = self.notifier.render(action, job.status, new_count, job)
        except STORAGE_ERRORS as exc:
            structured_logger.warning(
                "Could not render the restore notice.",
                event_code="restore_notice_failed",
                reason=str(exc),
                reason_code="storage_error",
                job=job,
            )
            notice = None
        if notice is not None:
            notices.append(notice)

        try:
            error = self.notifier.error_notice()
        except STORAGE_ERRORS as exc:
            structured_logger.warning(
                "Could not check the import fail limit.",
                event_code="restore_error_notice_failed",
                reason=str(exc),
                reason_code="storage_error",
            )
            error = None
        if error is not None:
            notices.append(error)
        return notices

    def current_notice(self, action="") -> Optional[Notice]:
        notices = self.current_notices(action)
        return notices[0] if notices else None

    def widget_notice(self, action="") -> Optional[Notice]:
        job = self._load_job()
        if job is None:
            return None
        try:
            new_count = self.integration.get_new_entries_count()
            return self.notifier.widget_notice(action, job.status, new_count)
        except STORAGE_ERRORS as exc:
            logger.warning("Could not render the restore widget notice: %s", exc)
            return None
