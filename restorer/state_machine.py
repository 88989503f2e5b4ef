"""
Decision logic for one restore tick.

``decide`` is pure: it looks only at the requested action and the job status
and never touches storage. The controller applies the returned ``Decision``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from restorer.jobs import JobStatus


class Action(str, Enum):
    NONE = ""
    IMPORT = "import"
    RESET = "reset"
    COUNT = "count"
    RESTART = "restart"


#: Statuses in which an import request must not create another task
BLOCKING_STATUSES = frozenset({JobStatus.SCHEDULED, JobStatus.RUNNING, JobStatus.DONE})


def normalize_action(value: Any) -> Action:
    """
    Turn a raw action token into an ``Action``. Anything unrecognised is
    treated as no action at all.
    """
    if isinstance(value, Action):
        return value
    if not isinstance(value, str):
        return Action.NONE
    try:
        return Action(value.strip().lower())
    except ValueError:
        return Action.NONE


@dataclass(frozen=True)
class Decision:
    start_import: bool = False
    reset_job: bool = False
    purge_entries: bool = False
    restart_job: bool = False
    refresh_counts: bool = False

    @property
    def is_noop(self) -> bool:
        return not (
            self.start_import
            or self.reset_job
            or self.purge_entries
            or self.restart_job
            or self.refresh_counts
        )


def decide(action: Any, status: Optional[JobStatus]) -> Decision:
    action = normalize_action(action)
    status = JobStatus.parse(status)

    if action == Action.IMPORT:
        return Decision(start_import=status not in BLOCKING_STATUSES)

    if action == Action.RESET:
        # An explicit reset also drops what previous runs restored
        return Decision(reset_job=True, purge_entries=True, refresh_counts=True)

    if action == Action.COUNT:
        return Decision(reset_job=True, refresh_counts=True)

    if action == Action.RESTART:
        return Decision(restart_job=True, refresh_counts=True)

    return Decision()
