"""Slack interaction listener for reminder buttons.

Receives Block Kit button clicks via Socket Mode and routes them to the
acknowledgment handler by action kind. Each click is acknowledged to Slack
immediately and answered with an ephemeral reply to the clicking user.

Listener methods never raise into slack_bolt.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from med_reminder.acknowledgment import AcknowledgmentHandler
from med_reminder.config import SlackConfig
from med_reminder.slack_formatter import ActionKind, format_ack_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ButtonInteraction:
    """A parsed block_actions payload for one button click."""

    kind: ActionKind
    value: str
    message_ts: str
    user_id: str = ""
    channel_id: str = ""


def parse_interaction(body: dict[str, Any]) -> ButtonInteraction | None:
    """Extract the first recognised action from a block_actions payload.

    Returns:
        ButtonInteraction, or None if the payload carries no known action.
    """
    actions = body.get("actions") or []
    if not actions or not isinstance(actions[0], dict):
        return None
    action = actions[0]
    try:
        kind = ActionKind(action.get("action_id", ""))
    except ValueError:
        return None

    message = body.get("message") or {}
    container = body.get("container") or {}
    return ButtonInteraction(
        kind=kind,
        value=action.get("value", ""),
        message_ts=message.get("ts") or container.get("message_ts", ""),
        user_id=(body.get("user") or {}).get("id", ""),
        channel_id=(body.get("channel") or {}).get("id", ""),
    )


class ReminderBot:
    """slack_bolt app wiring for reminder interactions.

    Args:
        slack: Slack credentials (bot and app-level tokens).
        handler: Acknowledgment handler that records confirmations.
        app: Optional pre-built slack_bolt.App (for testing).
    """

    def __init__(
        self,
        slack: SlackConfig,
        handler: AcknowledgmentHandler,
        app: Any = None,
    ) -> None:
        self.slack = slack
        self.handler = handler
        self._socket_handler: Any = None

        if app is None:
            from slack_bolt import App

            app = App(token=slack.bot_token)
        self.app = app

        self._routes: dict[ActionKind, Callable[[ButtonInteraction], str]] = {
            ActionKind.MEDICATION_TAKEN: self._medication_taken,
        }
        for kind in self._routes:
            self.app.action(kind.value)(self._handle_action)

    # -- Socket Mode --------------------------------------------------------

    def connect(self) -> None:
        """Open the Socket Mode connection without blocking."""
        from slack_bolt.adapter.socket_mode import SocketModeHandler

        self._socket_handler = SocketModeHandler(self.app, self.slack.app_token)
        self._socket_handler.connect()
        logger.info("Connected to Slack via Socket Mode")

    def close(self) -> None:
        """Close the Socket Mode connection if open."""
        if self._socket_handler is None:
            return
        handler, self._socket_handler = self._socket_handler, None
        try:
            handler.close()
        except Exception:
            logger.exception("Error closing Slack connection")

    # -- Interaction handling -----------------------------------------------

    def _handle_action(self, ack: Any, body: dict[str, Any], respond: Any) -> None:
        """Shared listener for every registered action kind."""
        ack()
        try:
            interaction = parse_interaction(body)
            if interaction is None:
                logger.warning("Ignoring unrecognised interaction payload")
                return
            logger.info(
                "Interaction %s from user=%s value=%s",
                interaction.kind,
                interaction.user_id,
                interaction.value,
            )
            text = self._routes[interaction.kind](interaction)
            respond(text=text, response_type="ephemeral", replace_original=False)
        except Exception:
            logger.exception("Error handling interaction")
            with contextlib.suppress(Exception):
                respond(
                    text=format_ack_error("could not record your response"),
                    response_type="ephemeral",
                    replace_original=False,
                )

    def _medication_taken(self, interaction: ButtonInteraction) -> str:
        result = self.handler.on_acknowledge(interaction.value, interaction.message_ts)
        return result.message
