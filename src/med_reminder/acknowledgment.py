"""Acknowledgment handling for "I took it" confirmations.

Marks today's reminder for a medication as acknowledged and finalizes the
reminder message. Never raises: every path ends in an AckResult whose
message is ready to show to the user.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from med_reminder.config import ReminderConfig
from med_reminder.dispatcher import DispatchError, NotificationDispatcher
from med_reminder.slack_formatter import (
    format_ack_already,
    format_ack_confirmed,
    format_ack_error,
    format_ack_unknown,
)
from med_reminder.store import ReminderStore, StoreError

logger = logging.getLogger(__name__)


class AckOutcome(StrEnum):
    CONFIRMED = "confirmed"
    ALREADY_ACKNOWLEDGED = "already_acknowledged"
    UNKNOWN_MEDICATION = "unknown_medication"
    ERROR = "error"


@dataclass(frozen=True)
class AckResult:
    """Outcome of one acknowledgment attempt."""

    outcome: AckOutcome
    medication_name: str
    message: str

    @property
    def ok(self) -> bool:
        return self.outcome in (AckOutcome.CONFIRMED, AckOutcome.ALREADY_ACKNOWLEDGED)


class AcknowledgmentHandler:
    """Record medication confirmations coming from the chat transport."""

    def __init__(
        self,
        config: ReminderConfig,
        store: ReminderStore,
        dispatcher: NotificationDispatcher,
    ) -> None:
        self.config = config
        self.store = store
        self.dispatcher = dispatcher

    def on_acknowledge(self, medication_name: str, message_id: str) -> AckResult:
        """Acknowledge today's reminder for a medication.

        Args:
            medication_name: Name carried by the confirmation button.
            message_id: Reference of the message that was clicked.

        Returns:
            AckResult describing what happened. Names not in the current
            configuration are rejected without creating a record.
        """
        if self.config.medication(medication_name) is None:
            logger.warning("Acknowledgment for unknown medication %r", medication_name)
            return AckResult(
                AckOutcome.UNKNOWN_MEDICATION,
                medication_name,
                format_ack_unknown(medication_name),
            )

        try:
            reminder = self.store.get_today_reminder(medication_name)
        except StoreError as exc:
            logger.error("Error getting reminder for %s: %s", medication_name, exc)
            return AckResult(
                AckOutcome.ERROR,
                medication_name,
                format_ack_error(f"Error getting reminder: {exc}"),
            )

        if reminder.acknowledged:
            return AckResult(
                AckOutcome.ALREADY_ACKNOWLEDGED,
                medication_name,
                format_ack_already(medication_name),
            )

        try:
            already = self.store.update_reminder_status(reminder.id, True, message_id)
        except StoreError as exc:
            logger.error("Error updating reminder for %s: %s", medication_name, exc)
            return AckResult(
                AckOutcome.ERROR,
                medication_name,
                format_ack_error(f"Error updating reminder: {exc}"),
            )
        if already:
            # Another click won the race between our read and our write.
            logger.debug("%s was acknowledged concurrently", medication_name)
            return AckResult(
                AckOutcome.ALREADY_ACKNOWLEDGED,
                medication_name,
                format_ack_already(medication_name),
            )
        logger.info("%s acknowledged for %s", medication_name, reminder.date)

        try:
            self.dispatcher.finalize(message_id, medication_name)
        except DispatchError as exc:
            logger.warning("Error updating message for %s: %s", medication_name, exc)

        return AckResult(
            AckOutcome.CONFIRMED,
            medication_name,
            format_ack_confirmed(medication_name),
        )
