from typing import Any, Callable, Mapping, Optional

import structlog

Extractor = Callable[[Any], dict[str, Any]]


def _job_fields(job) -> dict[str, Any]:
    status = getattr(job, "status", None)
    return {
        "job_status": getattr(status, "value", status),
        "job_task_id": getattr(job, "task_id", None),
    }


def _entry_fields(entry) -> dict[str, Any]:
    return {
        "backup_id": getattr(entry, "backup_id", None),
        "form_id": getattr(entry, "form_id", None) or None,
    }


def _notice_fields(notice) -> dict[str, Any]:
    return {
        "notice_slug": getattr(notice, "slug", None),
        "notice_kind": getattr(getattr(notice, "kind", None), "value", None),
    }


#: Context keyword -> function flattening the passed object into log fields
EXTRACTORS: Mapping[str, Extractor] = {
    "job": _job_fields,
    "entry": _entry_fields,
    "notice": _notice_fields,
}


class RestorationLogger:
    """
    Structured logger for the restore job, on top of structlog.

    Every event needs a message and an ``event_code``; warnings and errors
    also need ``reason`` and ``reason_code``. The ``job``, ``entry`` and
    ``notice`` keywords take the objects themselves and are flattened into
    fields (``job_status``, ``backup_id``, ``notice_slug`` and so on).
    Fields given explicitly win over flattened ones, and ``None`` values are
    dropped.

    Usage:
        structured_logger = RestorationLogger.get_logger(__name__)
        structured_logger.info(
            "Import task enqueued.", event_code="restore_import_enqueued", job=job
        )
    """

    def __init__(self, logger, extractors: Optional[Mapping[str, Extractor]] = None):
        self._logger = logger
        self._extractors = dict(EXTRACTORS if extractors is None else extractors)

    @classmethod
    def get_logger(cls, name: str) -> "RestorationLogger":
        # Routed through "structlog.*" so the structlog handlers pick it up
        return cls(structlog.get_logger(f"structlog.{name}"))

    def _emit(self, level: str, message: str, event_code: str, **fields: Any) -> None:
        if not message:
            raise ValueError("Log message is required.")
        if not event_code:
            raise ValueError("Structured logs must include an 'event_code' field.")

        event = {"event_code": event_code}
        for key, extractor in self._extractors.items():
            obj = fields.pop(key, None)
            if obj is None:
                continue
            for name, value in extractor(obj).items():
                if value is not None and fields.get(name) is None:
                    event[name] = value
        event.update((key, value) for key, value in fields.items() if value is not None)

        getattr(self._logger, level)(message, **event)

    def _emit_problem(
        self, level: str, message: str, event_code: str, reason, reason_code, fields
    ) -> None:
        if not reason or not reason_code:
            raise ValueError(
                "Warnings and errors must include both 'reason' and 'reason_code'."
            )
        self._emit(
            level,
            message,
            event_code,
            reason=reason,
            reason_code=reason_code,
            **fields,
        )

    def debug(self, message: str, *, event_code: str, **fields):
        self._emit("debug", message, event_code, **fields)

    def info(self, message: str, *, event_code: str, **fields):
        self._emit("info", message, event_code, **fields)

    def warning(
        self, message: str, *, event_code: str, reason: str, reason_code: str, **fields
    ):
        self._emit_problem("warning", message, event_code, reason, reason_code, fields)

    def error(
        self, message: str, *, event_code: str, reason: str, reason_code: str, **fields
    ):
        self._emit_problem("error", message, event_code, reason, reason_code, fields)
