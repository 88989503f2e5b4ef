from django.db import migrations


def populate_configuration(apps, schema_editor):
    Configuration = apps.get_model("configuration", "Configuration")

    initial_data = [
        {
            "key": "restore_import_fail_limit",
            "data_type": "number",
            "value": "3",
            "description": "Number of failed import attempts after which the restore "
            "error notice is shown and the import task stops retrying.",
        },
        {
            "key": "restore_import_retry_delay",
            "data_type": "number",
            "value": "5",
            "description": "Minutes to wait before retrying a failed import task.",
        },
        {
            "key": "restore_import_batch_size",
            "data_type": "number",
            "value": "100",
            "description": "Number of entries requested from the backup service "
            "per batch.",
        },
    ]

    for entry in initial_data:
        Configuration.objects.update_or_create(key=entry["key"], defaults=entry)


def revert_populate_configuration(apps, schema_editor):
    # Nothing to revert, but the function lets the migration be reversed
    pass


class Migration(migrations.Migration):

    dependencies = [
        ("configuration", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(populate_configuration, revert_populate_configuration),
    ]
