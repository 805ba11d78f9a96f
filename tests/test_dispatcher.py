"""Tests for med_reminder.dispatcher."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from med_reminder.config import Medication, SlackConfig
from med_reminder.dispatcher import DispatchError, SlackDispatcher
from med_reminder.slack_client import SlackAPIError, SlackClient

MORNING = Medication(name="Morning Pill", hour=8)


@pytest.fixture()
def client() -> MagicMock:
    c = MagicMock(spec=SlackClient)
    c.post_message.return_value = {"ok": True, "ts": "1700000000.0001"}
    return c


class TestSend:
    def test_returns_ts(self, client: MagicMock):
        dispatcher = SlackDispatcher(client, user_id_to_ping="U1")
        assert dispatcher.send(MORNING) == "1700000000.0001"

        text, = client.post_message.call_args.args
        blocks = client.post_message.call_args.kwargs["blocks"]
        assert text.startswith("<@U1>")
        assert "Morning Pill" in text
        assert "between 08:00 and 13:00" in blocks[-1]["elements"][0]["text"]

    def test_api_error(self, client: MagicMock):
        client.post_message.side_effect = SlackAPIError("boom", "channel_not_found")
        with pytest.raises(DispatchError, match="Morning Pill"):
            SlackDispatcher(client).send(MORNING)

    def test_missing_ts(self, client: MagicMock):
        client.post_message.return_value = {"ok": True}
        with pytest.raises(DispatchError, match="no ts"):
            SlackDispatcher(client).send(MORNING)


class TestDelete:
    def test_delete(self, client: MagicMock):
        SlackDispatcher(client).delete("1.2")
        client.delete_message.assert_called_once_with("1.2")

    def test_empty_reference_is_noop(self, client: MagicMock):
        SlackDispatcher(client).delete("")
        client.delete_message.assert_not_called()

    def test_api_error(self, client: MagicMock):
        client.delete_message.side_effect = SlackAPIError("gone", "message_not_found")
        with pytest.raises(DispatchError, match="1.2"):
            SlackDispatcher(client).delete("1.2")


class TestFinalize:
    def test_replaces_content_without_buttons(self, client: MagicMock):
        SlackDispatcher(client).finalize("1.2", "Morning Pill")

        args = client.update_message.call_args
        assert args.args == ("1.2", ":white_check_mark: Morning Pill Taken")
        assert all(b["type"] != "actions" for b in args.kwargs["blocks"])

    def test_api_error(self, client: MagicMock):
        client.update_message.side_effect = SlackAPIError("no", "cant_update_message")
        with pytest.raises(DispatchError, match="Morning Pill"):
            SlackDispatcher(client).finalize("1.2", "Morning Pill")


class TestFromConfig:
    def test_builds_client(self):
        slack = SlackConfig(
            bot_token="xoxb-1",
            app_token="xapp-1",
            channel_id="C_MEDS",
            user_id_to_ping="U_ME",
        )
        dispatcher = SlackDispatcher.from_config(slack)
        assert dispatcher.client.default_channel == "C_MEDS"
        assert dispatcher.user_id_to_ping == "U_ME"
