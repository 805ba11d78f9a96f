"""Shared fixtures: a fixed clock, a recording dispatcher, and a temp store."""

from __future__ import annotations

import datetime
import threading
from pathlib import Path

import pytest

from med_reminder.config import Medication, ReminderConfig, SlackConfig
from med_reminder.dispatcher import DispatchError
from med_reminder.store import ReminderStore

# 2026-02-23 is a Monday
MONDAY = datetime.date(2026, 2, 23)


class FakeClock:
    """Settable clock; call it to read the current time."""

    def __init__(self, now: datetime.datetime) -> None:
        self.now = now

    def __call__(self) -> datetime.datetime:
        return self.now

    def set_hour(self, hour: int, day: datetime.date = MONDAY) -> None:
        self.now = datetime.datetime(
            day.year, day.month, day.day, hour, 0, tzinfo=datetime.UTC
        )


class FakeDispatcher:
    """Records every call and hands out sequential message references."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.deleted: list[str] = []
        self.finalized: list[tuple[str, str]] = []
        self.fail_send_for: set[str] = set()
        self.fail_delete = False
        self.fail_finalize = False
        self.sent_event = threading.Event()

    def send(self, medication: Medication) -> str:
        if medication.name in self.fail_send_for:
            self.sent_event.set()
            raise DispatchError(f"channel down for {medication.name}")
        self.sent.append(medication.name)
        self.sent_event.set()
        return f"ts-{len(self.sent)}"

    def delete(self, message_id: str) -> None:
        if self.fail_delete:
            raise DispatchError(f"cannot delete {message_id}")
        self.deleted.append(message_id)

    def finalize(self, message_id: str, medication_name: str) -> None:
        if self.fail_finalize:
            raise DispatchError(f"cannot edit {message_id}")
        self.finalized.append((message_id, medication_name))


def make_config(*medications: Medication, timezone: str = "UTC") -> ReminderConfig:
    return ReminderConfig(
        slack=SlackConfig(
            bot_token="xoxb-test", app_token="xapp-test", channel_id="C_MEDS"
        ),
        reminder_interval_minutes=30,
        medications=medications,
        timezone=timezone,
    )


@pytest.fixture()
def clock() -> FakeClock:
    c = FakeClock(datetime.datetime(2026, 2, 23, 8, 0, tzinfo=datetime.UTC))
    return c


@pytest.fixture()
def dispatcher() -> FakeDispatcher:
    return FakeDispatcher()


@pytest.fixture()
def store(tmp_path: Path, clock: FakeClock):
    s = ReminderStore(str(tmp_path / "reminders.db"), clock=clock)
    yield s
    s.close()
