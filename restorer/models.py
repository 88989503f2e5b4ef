from datetime import datetime, timezone as dt_timezone

from django.db import models
from django.utils.dateparse import parse_datetime


class RestoredEntry(models.Model):
    """
    An entry copied from the backup service into local storage
    """

    created = models.DateTimeField(auto_now_add=True)
    modified = models.DateTimeField(auto_now=True)

    backup_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Identifier of the entry in the backup service",
    )
    form_id = models.CharField(max_length=255, blank=True, default="")
    payload = models.JSONField(
        help_text="Field values of the entry as stored by the backup service",
        default=dict,
        blank=True,
    )
    submitted = models.DateTimeField(
        help_text="Time when the entry was originally submitted",
        null=True,
        blank=True,
    )

    class Meta:
        verbose_name_plural = "restored entries"
        ordering = ("backup_id",)

    def __str__(self):
        return "RestoredEntry(backup_id=%s, form_id=%s)" % (
            self.backup_id,
            self.form_id,
        )

    @staticmethod
    def parse_submitted(value):
        if value in (None, ""):
            return None
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value, tz=dt_timezone.utc)
        return parse_datetime(str(value))

    @classmethod
    def defaults_from_record(cls, record):
        return {
            "form_id": str(record.get("form_id") or ""),
            "payload": record.get("fields") or {},
            "submitted": cls.parse_submitted(record.get("date")),
        }
