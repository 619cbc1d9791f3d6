"""
Notifications

Payloads and sinks for review-request notifications.
"""

from .notifier import (
    CallbackNotifier,
    LoggingNotifier,
    Notification,
    Notifier,
    pull_request_notification,
    summary_notification,
)

__all__ = [
    'CallbackNotifier',
    'LoggingNotifier',
    'Notification',
    'Notifier',
    'pull_request_notification',
    'summary_notification',
]
