from django.contrib import admin

from .models import LogEntry


@admin.register(LogEntry)
class LogEntryAdmin(admin.ModelAdmin):
    list_display = ("timestamp", "level", "logger_name", "message")
    list_filter = ("level", "logger_name")
    search_fields = ("message",)
    readonly_fields = ("timestamp", "logger_name", "level", "message", "user", "context")

    def has_add_permission(self, request):  # pragma: no cover - admin wiring
        return False
