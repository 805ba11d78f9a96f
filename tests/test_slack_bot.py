"""Tests for the Slack interaction listener."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from med_reminder.acknowledgment import AckOutcome, AckResult, AcknowledgmentHandler
from med_reminder.config import SlackConfig
from med_reminder.slack_bot import ButtonInteraction, ReminderBot, parse_interaction
from med_reminder.slack_formatter import ActionKind

SLACK = SlackConfig(bot_token="xoxb-test", app_token="xapp-test", channel_id="C_MEDS")


def _body(action_id: str = "medication_taken", value: str = "Morning Pill") -> dict:
    return {
        "type": "block_actions",
        "user": {"id": "U_ME"},
        "channel": {"id": "C_MEDS"},
        "message": {"ts": "1700000000.0001"},
        "actions": [{"action_id": action_id, "value": value, "type": "button"}],
    }


@pytest.fixture()
def mock_app() -> MagicMock:
    """Create a mock slack_bolt App."""
    app = MagicMock()
    # action() should return a decorator that accepts a handler
    app.action = MagicMock(side_effect=lambda action_id: lambda fn: fn)
    return app


@pytest.fixture()
def handler() -> MagicMock:
    h = MagicMock(spec=AcknowledgmentHandler)
    h.on_acknowledge.return_value = AckResult(
        AckOutcome.CONFIRMED, "Morning Pill", "Thank you!"
    )
    return h


@pytest.fixture()
def bot(mock_app: MagicMock, handler: MagicMock) -> ReminderBot:
    return ReminderBot(SLACK, handler, app=mock_app)


# ---------------------------------------------------------------------------
# parse_interaction
# ---------------------------------------------------------------------------


class TestParseInteraction:
    def test_button_click(self):
        interaction = parse_interaction(_body())
        assert interaction == ButtonInteraction(
            kind=ActionKind.MEDICATION_TAKEN,
            value="Morning Pill",
            message_ts="1700000000.0001",
            user_id="U_ME",
            channel_id="C_MEDS",
        )

    def test_name_with_underscores_is_kept_whole(self):
        interaction = parse_interaction(_body(value="Vitamin_D_3"))
        assert interaction.value == "Vitamin_D_3"

    def test_container_ts_fallback(self):
        body = _body()
        del body["message"]
        body["container"] = {"message_ts": "1700000000.0002"}
        assert parse_interaction(body).message_ts == "1700000000.0002"

    def test_unknown_action(self):
        assert parse_interaction(_body(action_id="something_else")) is None

    def test_no_actions(self):
        assert parse_interaction({"type": "block_actions", "actions": []}) is None
        assert parse_interaction({}) is None


# ---------------------------------------------------------------------------
# Listener wiring
# ---------------------------------------------------------------------------


class TestReminderBot:
    def test_registers_action_listener(self, bot: ReminderBot, mock_app: MagicMock):
        mock_app.action.assert_called_once_with("medication_taken")

    def test_click_acknowledges_and_replies_ephemeral(
        self, bot: ReminderBot, handler: MagicMock
    ):
        ack = MagicMock()
        respond = MagicMock()
        bot._handle_action(ack=ack, body=_body(), respond=respond)

        ack.assert_called_once()
        handler.on_acknowledge.assert_called_once_with(
            "Morning Pill", "1700000000.0001"
        )
        respond.assert_called_once_with(
            text="Thank you!", response_type="ephemeral", replace_original=False
        )

    def test_unrecognised_payload_is_ignored(
        self, bot: ReminderBot, handler: MagicMock
    ):
        ack = MagicMock()
        respond = MagicMock()
        bot._handle_action(ack=ack, body=_body(action_id="nope"), respond=respond)

        ack.assert_called_once()
        handler.on_acknowledge.assert_not_called()
        respond.assert_not_called()

    def test_handler_exception_still_replies(
        self, bot: ReminderBot, handler: MagicMock
    ):
        handler.on_acknowledge.side_effect = RuntimeError("boom")
        respond = MagicMock()
        bot._handle_action(ack=MagicMock(), body=_body(), respond=respond)

        respond.assert_called_once()
        assert respond.call_args.kwargs["text"].startswith("Error:")
        assert respond.call_args.kwargs["response_type"] == "ephemeral"

    def test_failing_respond_does_not_raise(
        self, bot: ReminderBot, handler: MagicMock
    ):
        respond = MagicMock(side_effect=RuntimeError("network"))
        bot._handle_action(ack=MagicMock(), body=_body(), respond=respond)
        assert respond.call_count == 2

    def test_close_without_connect(self, bot: ReminderBot):
        bot.close()
        bot.close()

    def test_close_closes_socket_handler(self, bot: ReminderBot):
        socket_handler = MagicMock()
        bot._socket_handler = socket_handler
        bot.close()
        bot.close()
        socket_handler.close.assert_called_once()
