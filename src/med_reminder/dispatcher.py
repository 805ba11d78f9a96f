"""Notification dispatch for medication reminders.

Defines the dispatcher interface the scheduler and acknowledgment handler
depend on, and the Slack implementation that sends, deletes, and finalizes
reminder messages through SlackClient and slack_formatter.

Unlike fire-and-forget notifications, every method here raises
DispatchError on failure: callers decide which failures are fatal.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from med_reminder.due_window import reminder_window
from med_reminder.slack_client import SlackAPIError, SlackClient
from med_reminder.slack_formatter import format_reminder, format_taken

if TYPE_CHECKING:
    from med_reminder.config import Medication, SlackConfig

logger = logging.getLogger(__name__)


class DispatchError(Exception):
    """A notification could not be sent, deleted, or finalized."""


class NotificationDispatcher(Protocol):
    """Channel that delivers reminders and returns an opaque message reference."""

    def send(self, medication: Medication) -> str: ...

    def delete(self, message_id: str) -> None: ...

    def finalize(self, message_id: str, medication_name: str) -> None: ...


class SlackDispatcher:
    """Deliver reminders as Slack messages with an "I took it" button.

    Args:
        client: Slack Web API client bound to the reminder channel.
        user_id_to_ping: Optional Slack user ID mentioned in each reminder.
    """

    def __init__(self, client: SlackClient, user_id_to_ping: str = "") -> None:
        self.client = client
        self.user_id_to_ping = user_id_to_ping

    @classmethod
    def from_config(cls, slack: SlackConfig) -> SlackDispatcher:
        return cls(SlackClient.from_config(slack), user_id_to_ping=slack.user_id_to_ping)

    def send(self, medication: Medication) -> str:
        """Post a reminder and return its message timestamp.

        Raises:
            DispatchError: If Slack rejects the post or returns no ts.
        """
        text, blocks = format_reminder(
            medication.name,
            user_id_to_ping=self.user_id_to_ping,
            window=reminder_window(medication),
        )
        try:
            resp = self.client.post_message(text, blocks=blocks)
        except SlackAPIError as exc:
            raise DispatchError(
                f"failed to send reminder for {medication.name}: {exc}"
            ) from exc
        ts = resp.get("ts", "")
        if not ts:
            raise DispatchError(f"Slack returned no ts for {medication.name} reminder")
        logger.info("Sent reminder for %s (ts=%s)", medication.name, ts)
        return ts

    def delete(self, message_id: str) -> None:
        """Delete a previously sent reminder. Empty references are ignored."""
        if not message_id:
            return
        try:
            self.client.delete_message(message_id)
        except SlackAPIError as exc:
            raise DispatchError(f"failed to delete message {message_id}: {exc}") from exc
        logger.debug("Deleted message %s", message_id)

    def finalize(self, message_id: str, medication_name: str) -> None:
        """Replace a reminder with the "taken" text and remove its button."""
        text, blocks = format_taken(medication_name)
        try:
            self.client.update_message(message_id, text, blocks=blocks)
        except SlackAPIError as exc:
            raise DispatchError(
                f"failed to update message {message_id} for {medication_name}: {exc}"
            ) from exc
