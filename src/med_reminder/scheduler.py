"""Reminder scheduler loop.

Runs one evaluation pass at startup and then one per configured interval on
a background thread. Each pass walks the configured medications in order
and, for every due and unacknowledged one, deletes the previous reminder
message and posts a fresh one so it resurfaces at the bottom of the channel.

A pass stops at the first send or store failure; the loop logs it and tries
again on the next tick.
"""

from __future__ import annotations

import datetime
import logging
import threading
from collections.abc import Callable

from med_reminder.config import ReminderConfig
from med_reminder.dispatcher import DispatchError, NotificationDispatcher
from med_reminder.due_window import is_due
from med_reminder.store import ReminderStore, StoreError

logger = logging.getLogger(__name__)


class ReminderPassError(Exception):
    """An evaluation pass was aborted."""

    def __init__(self, message: str, medication_name: str = ""):
        super().__init__(message)
        self.medication_name = medication_name


class ReminderService:
    """Periodic reminder evaluation bound to one store and one dispatcher.

    Args:
        config: Validated reminder configuration.
        store: Acknowledgment state store.
        dispatcher: Notification channel.
        clock: Callable returning the current aware datetime (for testing).
    """

    def __init__(
        self,
        config: ReminderConfig,
        store: ReminderStore,
        dispatcher: NotificationDispatcher,
        *,
        clock: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.dispatcher = dispatcher
        self._clock = clock or (lambda: datetime.datetime.now(datetime.UTC))
        self._tz = config.location
        self._stop_event = threading.Event()
        self._stop_lock = threading.Lock()
        self._stopped = False
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background loop. The first pass runs immediately.

        Raises:
            RuntimeError: If the service was already started or stopped.
        """
        if self._thread is not None:
            raise RuntimeError("reminder service already started")
        if self._stop_event.is_set():
            raise RuntimeError("reminder service already stopped")
        self._thread = threading.Thread(
            target=self._run, name="reminder-loop", daemon=True
        )
        self._thread.start()
        logger.info(
            "Reminder service started (%d medications, every %d min, tz=%s)",
            len(self.config.medications),
            self.config.reminder_interval_minutes,
            self.config.timezone,
        )

    def stop(self) -> None:
        """Stop the loop and wait for an in-flight pass to finish.

        Safe to call more than once; later calls return immediately.
        """
        with self._stop_lock:
            if self._stopped:
                return
            self._stopped = True
            self._stop_event.set()
            if self._thread is not None:
                self._thread.join()
            logger.info("Reminder service stopped")

    def _run(self) -> None:
        interval = self.config.reminder_interval.total_seconds()
        while True:
            try:
                self.check_and_send_reminders()
            except ReminderPassError:
                logger.exception("Error checking and sending reminders")
            except Exception:
                logger.exception("Unexpected error in reminder pass")
            if self._stop_event.wait(interval):
                logger.info("Reminder loop stopped")
                return

    def check_and_send_reminders(self) -> None:
        """Run one evaluation pass over all configured medications.

        Raises:
            ReminderPassError: If reading state, sending, or recording a
                reminder failed. Medications after the failing one are not
                processed in this pass.
        """
        now = self._clock()
        for medication in self.config.medications:
            if not is_due(medication, now, self._tz):
                logger.debug("%s is not due", medication.name)
                continue

            try:
                reminder = self.store.get_today_reminder(medication.name)
            except StoreError as exc:
                raise ReminderPassError(
                    f"failed to get reminder for {medication.name}: {exc}",
                    medication.name,
                ) from exc

            if reminder.acknowledged:
                logger.debug("%s already acknowledged today", medication.name)
                continue

            if reminder.message_id:
                try:
                    self.dispatcher.delete(reminder.message_id)
                except DispatchError as exc:
                    logger.warning(
                        "Error deleting previous message for %s: %s",
                        medication.name,
                        exc,
                    )

            try:
                new_message_id = self.dispatcher.send(medication)
            except DispatchError as exc:
                raise ReminderPassError(
                    f"failed to send reminder for {medication.name}: {exc}",
                    medication.name,
                ) from exc

            try:
                acknowledged = self.store.update_reminder_status(
                    reminder.id, False, new_message_id
                )
            except StoreError as exc:
                raise ReminderPassError(
                    f"failed to update reminder status for {medication.name}: {exc}",
                    medication.name,
                ) from exc

            if acknowledged:
                # Clicked after our read: the fresh message becomes the
                # "taken" note instead of a live reminder.
                logger.info(
                    "%s was acknowledged while its reminder was being sent",
                    medication.name,
                )
                try:
                    self.dispatcher.finalize(new_message_id, medication.name)
                except DispatchError as exc:
                    logger.warning(
                        "Error finalizing reminder for %s: %s", medication.name, exc
                    )
