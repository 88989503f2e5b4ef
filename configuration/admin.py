from django.contrib import admin
from django.utils.html import format_html

from configuration.models import Configuration, Option


@admin.register(Configuration)
class ConfigurationAdmin(admin.ModelAdmin):
    list_display = ("key", "value", "data_type", "description")
    readonly_fields = ("validated_value",)

    def validated_value(self, obj):
        try:
            value = obj.get_value()
        except ValueError as exc:
            value = f"Invalid value: {exc}"
        return format_html(
            "<div>{}</div><div style='color: #777; font-size: 0.9em;'>{}</div>",
            value,
            "This is the interpreted value based on the selected data type. "
            "This value is what will be seen by the code that uses this configuration.",
        )


@admin.register(Option)
class OptionAdmin(admin.ModelAdmin):
    list_display = ("name", "modified")
    readonly_fields = ("name", "value", "modified")

    def has_add_permission(self, request):
        return False
