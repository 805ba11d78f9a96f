"""Slack Block Kit message formatters for medication reminders.

Pure functions that return (text, blocks) tuples for channel messages, and
plain strings for ephemeral interaction replies. text is the
fallback/notification preview; blocks provide rich formatting.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ActionKind(StrEnum):
    """Interactive actions the reminder messages can emit.

    The value is the Block Kit ``action_id``; the medication name rides in
    the element's ``value``.
    """

    MEDICATION_TAKEN = "medication_taken"


def _section_block(mrkdwn: str) -> dict[str, Any]:
    """Create a section block with mrkdwn text."""
    return {"type": "section", "text": {"type": "mrkdwn", "text": mrkdwn}}


def _context_block(elements: list[str]) -> dict[str, Any]:
    """Create a context block with mrkdwn elements."""
    return {
        "type": "context",
        "elements": [{"type": "mrkdwn", "text": t} for t in elements],
    }


def _taken_button(medication_name: str) -> dict[str, Any]:
    return {
        "type": "button",
        "style": "primary",
        "action_id": ActionKind.MEDICATION_TAKEN.value,
        "value": medication_name,
        "text": {
            "type": "plain_text",
            "text": f":white_check_mark: I took {medication_name}",
            "emoji": True,
        },
    }


def format_reminder(
    medication_name: str,
    user_id_to_ping: str = "",
    window: tuple[int, int] | None = None,
) -> tuple[str, list[dict[str, Any]]]:
    """Format a reminder message with a confirmation button.

    Args:
        medication_name: Medication to remind about.
        user_id_to_ping: Optional Slack user ID to @-mention.
        window: Optional (start, end) local hours the reminder repeats in.

    Returns:
        (text, blocks) tuple.
    """
    mention = f"<@{user_id_to_ping}> " if user_id_to_ping else ""
    text = f"{mention}:bell: Medication Reminder: {medication_name}"
    blocks: list[dict[str, Any]] = [
        _section_block(
            f"{mention}:bell: *Medication Reminder: {medication_name}* :bell:\n"
            f"It's time to take your {medication_name}! "
            "Please click the button below once you've taken it."
        ),
        {"type": "actions", "elements": [_taken_button(medication_name)]},
    ]
    if window is not None:
        start, end = window
        blocks.append(
            _context_block(
                [f"Repeats until acknowledged, between {start:02d}:00 and {end:02d}:00."]
            )
        )
    return text, blocks


def format_taken(medication_name: str) -> tuple[str, list[dict[str, Any]]]:
    """Format the replacement content for an acknowledged reminder (no buttons)."""
    text = f":white_check_mark: {medication_name} Taken"
    blocks = [
        _section_block(
            f":white_check_mark: *{medication_name} Taken* :white_check_mark:\n"
            f"Thank you for taking your {medication_name} today!"
        )
    ]
    return text, blocks


# ---------------------------------------------------------------------------
# Ephemeral replies to button clicks
# ---------------------------------------------------------------------------


def format_ack_confirmed(medication_name: str) -> str:
    return (
        f"Thank you for taking your {medication_name}! "
        "Your response has been recorded."
    )


def format_ack_already(medication_name: str) -> str:
    return (
        f"You've already acknowledged taking your {medication_name} today. "
        "Thank you!"
    )


def format_ack_unknown(medication_name: str) -> str:
    return (
        f"{medication_name} is no longer in the reminder schedule, "
        "so nothing was recorded."
    )


def format_ack_error(detail: str) -> str:
    return f"Error: {detail}"
