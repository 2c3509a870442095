"""Change and conflict notifications."""

from coderef.notify.formatting import (
    format_change_message,
    format_conflict_message,
    format_repository_summary,
    truncate,
)
from coderef.notify.models import (
    ConflictResolution,
    NotificationPayload,
    NotificationSink,
    Resolution,
)
from coderef.notify.notifier import Notifier
from coderef.notify.sinks import LogSink, SlackWebhookSink

__all__ = [
    "Notifier",
    "LogSink",
    "SlackWebhookSink",
    "ConflictResolution",
    "NotificationPayload",
    "NotificationSink",
    "Resolution",
    "format_change_message",
    "format_conflict_message",
    "format_repository_summary",
    "truncate",
]
