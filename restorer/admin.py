from django.contrib import admin, messages
from django.db.models import QuerySet
from django.http import HttpRequest

from .controller import RestoreController
from .models import RestoredEntry


@admin.action(description="Reset the restore job")
def reset_restore_job(
    modeladmin: admin.ModelAdmin,
    request: HttpRequest,
    queryset: QuerySet[RestoredEntry],
) -> None:
    """
    Reset the restore job and purge every restored entry, whatever the
    selection.
    """
    RestoreController().on_tick("reset")
    messages.add_message(request, messages.INFO, "Restore job reset")


@admin.register(RestoredEntry)
class RestoredEntryAdmin(admin.ModelAdmin):
    list_display = ("backup_id", "form_id", "submitted", "created")
    search_fields = ("backup_id", "form_id")
    readonly_fields = ("created", "modified")
    actions = (reset_restore_job,)
