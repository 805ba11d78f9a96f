"""Due-window gate for medication reminders.

Decides whether a medication reminder should fire at a given instant.
Pure functions -- no I/O, no state.
"""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

if TYPE_CHECKING:
    from med_reminder.config import Medication

logger = logging.getLogger(__name__)

# Once due, a reminder stays due for this many local hours.
REMINDER_WINDOW_HOURS = 5

VALID_DAYS = {
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
}


def resolve_timezone(name: str) -> datetime.tzinfo:
    """Resolve an IANA timezone name, falling back to UTC.

    Args:
        name: Timezone identifier (e.g. 'Europe/Berlin'). Empty means UTC.

    Returns:
        A tzinfo for the zone, or UTC if it cannot be loaded.
    """
    if not name or name.upper() == "UTC":
        return datetime.UTC
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Error loading timezone %r, using UTC", name)
        return datetime.UTC


def reminder_window(medication: Medication) -> tuple[int, int]:
    """Return the ``[start, end)`` local-hour window for a medication."""
    return medication.hour, medication.hour + REMINDER_WINDOW_HOURS


def is_due(
    medication: Medication,
    now: datetime.datetime,
    tz: datetime.tzinfo,
) -> bool:
    """Check whether a medication reminder should fire at the given time.

    Args:
        medication: Medication configuration.
        now: Current instant. Naive datetimes are taken as UTC.
        tz: Timezone the medication hour is expressed in.

    Returns:
        True if the local hour falls inside the reminder window and, for
        weekly medications, the local weekday matches.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=datetime.UTC)
    local = now.astimezone(tz)

    if medication.is_weekly and local.strftime("%A").lower() != medication.day.lower():
        return False

    start, end = reminder_window(medication)
    return start <= local.hour < end
