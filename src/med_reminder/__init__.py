"""med-reminder: Slack medication reminders with per-day acknowledgment."""

__version__ = "0.1.0"

from med_reminder.acknowledgment import AckOutcome, AckResult, AcknowledgmentHandler
from med_reminder.config import (
    ConfigError,
    Medication,
    ReminderConfig,
    SlackConfig,
    load_config,
)
from med_reminder.dispatcher import DispatchError, NotificationDispatcher, SlackDispatcher
from med_reminder.due_window import REMINDER_WINDOW_HOURS, is_due, resolve_timezone
from med_reminder.scheduler import ReminderPassError, ReminderService
from med_reminder.store import RecordNotFoundError, ReminderRecord, ReminderStore, StoreError

__all__ = [
    # acknowledgment
    "AckOutcome",
    "AckResult",
    "AcknowledgmentHandler",
    # config
    "ConfigError",
    "Medication",
    "ReminderConfig",
    "SlackConfig",
    "load_config",
    # dispatcher
    "DispatchError",
    "NotificationDispatcher",
    "SlackDispatcher",
    # due_window
    "REMINDER_WINDOW_HOURS",
    "is_due",
    "resolve_timezone",
    # scheduler
    "ReminderPassError",
    "ReminderService",
    # store
    "RecordNotFoundError",
    "ReminderRecord",
    "ReminderStore",
    "StoreError",
]
