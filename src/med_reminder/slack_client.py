"""Slack Web API client for reminder messages.

Posts, edits, and deletes messages in the reminder channel via the Slack Web
API. Stdlib-only (urllib); every request is bounded by ``timeout_s``.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from med_reminder.config import SlackConfig

logger = logging.getLogger(__name__)

SLACK_API_BASE = "https://slack.com/api"
DEFAULT_TIMEOUT_S = 10.0


class SlackAPIError(Exception):
    """Error communicating with the Slack Web API."""

    def __init__(self, message: str, error_code: str | None = None):
        super().__init__(message)
        self.error_code = error_code


@dataclass
class SlackClient:
    """Client for the Slack Web API.

    Args:
        bot_token: Bot User OAuth Token (xoxb-...).
        default_channel: Channel ID reminders are posted to.
        timeout_s: Per-request HTTP timeout.
    """

    bot_token: str
    default_channel: str = ""
    timeout_s: float = DEFAULT_TIMEOUT_S

    @classmethod
    def from_config(cls, slack: SlackConfig) -> SlackClient:
        """Create client from a validated SlackConfig."""
        return cls(bot_token=slack.bot_token, default_channel=slack.channel_id)

    def _request(
        self,
        method: str,
        *,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an HTTP POST request to the Slack Web API.

        Args:
            method: Slack API method (e.g. 'chat.postMessage').
            params: JSON body parameters.

        Returns:
            Parsed JSON response dict.

        Raises:
            SlackAPIError: On HTTP errors, timeouts, or Slack API errors (ok=false).
        """
        url = f"{SLACK_API_BASE}/{method}"
        headers = {
            "Authorization": f"Bearer {self.bot_token}",
            "Content-Type": "application/json; charset=utf-8",
        }
        body = json.dumps(params or {}).encode("utf-8")

        req = urllib.request.Request(url, data=body, headers=headers, method="POST")
        logger.debug("Slack API call: %s", method)

        try:
            with urllib.request.urlopen(req, timeout=self.timeout_s) as resp:
                data = json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as exc:
            raw = exc.read().decode("utf-8", errors="replace")
            raise SlackAPIError(f"{method} -> HTTP {exc.code}: {raw}") from exc
        except urllib.error.URLError as exc:
            raise SlackAPIError(f"{method} -> Connection failed: {exc.reason}") from exc
        except TimeoutError as exc:
            raise SlackAPIError(f"{method} -> Timed out after {self.timeout_s}s") from exc

        if not data.get("ok"):
            error = data.get("error", "unknown_error")
            raise SlackAPIError(f"{method} -> Slack error: {error}", error_code=error)

        return data

    def _channel(self, channel: str) -> str:
        ch = channel or self.default_channel
        if not ch:
            raise SlackAPIError(
                "No channel specified and no default_channel configured"
            )
        return ch

    def post_message(
        self,
        text: str,
        channel: str = "",
        *,
        blocks: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        """Post a message to a Slack channel.

        Args:
            text: Fallback text (also used for notifications).
            channel: Channel ID. Falls back to default_channel.
            blocks: Optional Block Kit blocks for rich formatting.

        Returns:
            Slack API response dict (includes 'ts' of the posted message).

        Raises:
            SlackAPIError: If channel is not specified and no default is set.
        """
        params: dict[str, Any] = {"channel": self._channel(channel), "text": text}
        if blocks:
            params["blocks"] = blocks
        return self._request("chat.postMessage", params=params)

    def update_message(
        self,
        ts: str,
        text: str,
        channel: str = "",
        *,
        blocks: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        """Replace the content of an existing message.

        Passing ``blocks=[]`` strips all blocks, including buttons.
        """
        params: dict[str, Any] = {
            "channel": self._channel(channel),
            "ts": ts,
            "text": text,
        }
        if blocks is not None:
            params["blocks"] = blocks
        return self._request("chat.update", params=params)

    def delete_message(self, ts: str, channel: str = "") -> None:
        """Delete a message posted by the bot. An empty ts is a no-op."""
        if not ts:
            return
        self._request("chat.delete", params={"channel": self._channel(channel), "ts": ts})
