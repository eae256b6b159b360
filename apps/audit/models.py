"""Persistent operational log records."""

from __future__ import annotations

from django.conf import settings
from django.db import models


class LogEntry(models.Model):
    """A log record emitted by lifecycle code and kept for reconciliation."""

    LEVEL_CHOICES = [
        ("DEBUG", "Debug"),
        ("INFO", "Info"),
        ("WARNING", "Warning"),
        ("ERROR", "Error"),
        ("CRITICAL", "Critical"),
    ]

    timestamp = models.DateTimeField(auto_now_add=True, db_index=True)
    logger_name = models.CharField(max_length=255, db_index=True)
    level = models.CharField(max_length=16, choices=LEVEL_CHOICES, db_index=True)
    message = models.TextField()
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="log_entries",
    )
    context = models.JSONField(blank=True, null=True)

    class Meta:
        ordering = ("-timestamp", "-id")
        verbose_name_plural = "log entries"

    def __str__(self) -> str:  # pragma: no cover - human readable representation
        return f"[{self.level}] {self.logger_name}: {self.message[:75]}"

    @property
    def action(self) -> str:
        return (self.context or {}).get("action", "")
