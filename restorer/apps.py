from django.apps import AppConfig


class RestorerConfig(AppConfig):
    name = "restorer"
    verbose_name = "Backup restore"
