from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="RestoredEntry",
            fields=[
                (
                    "id",
                    models.AutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("created", models.DateTimeField(auto_now_add=True)),
                ("modified", models.DateTimeField(auto_now=True)),
                (
                    "backup_id",
                    models.CharField(
                        help_text="Identifier of the entry in the backup service",
                        max_length=255,
                        unique=True,
                    ),
                ),
                ("form_id", models.CharField(blank=True, default="", max_length=255)),
                (
                    "payload",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Field values of the entry as stored by the "
                        "backup service",
                    ),
                ),
                (
                    "submitted",
                    models.DateTimeField(
                        blank=True,
                        help_text="Time when the entry was originally submitted",
                        null=True,
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "restored entries",
                "ordering": ("backup_id",),
            },
        ),
    ]
