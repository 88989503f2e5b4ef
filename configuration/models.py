import json

from django.db import models


class Configuration(models.Model):
    class DataType(models.TextChoices):
        TEXT = "text", "Plain text"
        NUMBER = "number", "Number"
        BOOLEAN = "boolean", "Boolean"
        JSON = "json", "JSON"

    key = models.CharField(
        max_length=255,
        unique=True,
        help_text="Unique identifier for the configuration setting",
    )
    data_type = models.CharField(
        max_length=10,
        choices=DataType.choices,
        default=DataType.TEXT,
        help_text="Data type of the value",
    )
    value = models.TextField(help_text="Value of the configuration setting")
    description = models.TextField(
        blank=True, help_text="Optional description of the configuration setting"
    )

    def __str__(self):
        return self.key

    def get_value(self):
        if self.data_type == Configuration.DataType.NUMBER:
            try:
                return int(self.value)
            except ValueError:
                try:
                    return float(self.value)
                except ValueError:
                    return 0
        elif self.data_type == Configuration.DataType.BOOLEAN:
            return self.value.strip().lower() == "true"
        elif self.data_type == Configuration.DataType.JSON:
            return json.loads(self.value)
        else:
            # DataType.TEXT or an unknown type,
            # so just return the value itself
            return self.value


class Option(models.Model):
    """
    A named JSON document holding state owned by the application rather than
    by an administrator, such as the restore job record.

    Options are never cached: they are read from and written to the database
    so that compare-and-set updates made under ``select_for_update`` see the
    latest committed value.
    """

    name = models.CharField(max_length=191, unique=True)
    value = models.JSONField(default=dict, blank=True)
    modified = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name
