"""Slack Web API client for posting release notes.

Only ``chat.postMessage`` is used. Slack reports most failures as HTTP 200
with ``{"ok": false, "error": "channel_not_found"}``, so the body is
checked as well as the status code.

API docs: https://api.slack.com/methods/chat.postMessage
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from linear_release.errors import SlackAPIError


class SlackClientProtocol(Protocol):
    """Protocol for chat backends that can post a message."""

    async def post_message(
        self,
        channel: str,
        text: str,
        *,
        unfurl_links: bool = False,
        unfurl_media: bool = False,
        mrkdwn: bool = True,
    ) -> dict[str, Any]:
        """Post ``text`` to ``channel`` and return the API response."""
        ...


class SlackClient:
    """Slack Web API client using httpx.

    Usage:
        client = SlackClient(token="xoxb-...")
        await client.post_message("#releases", "*Release Notes* ...")
    """

    BASE_URL = "https://slack.com/api"

    def __init__(
        self,
        token: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json; charset=utf-8",
        }
        self._timeout = timeout
        self._transport = transport

    async def post_message(
        self,
        channel: str,
        text: str,
        *,
        unfurl_links: bool = False,
        unfurl_media: bool = False,
        mrkdwn: bool = True,
    ) -> dict[str, Any]:
        """Post a message.

        Raises:
            httpx.HTTPStatusError: On a non-2xx response
            SlackAPIError: If Slack answers ``ok: false``
        """
        async with httpx.AsyncClient(
            base_url=self.BASE_URL,
            headers=self._headers,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            resp = await client.post(
                "/chat.postMessage",
                json={
                    "channel": channel,
                    "text": text,
                    "unfurl_links": unfurl_links,
                    "unfurl_media": unfurl_media,
                    "mrkdwn": mrkdwn,
                },
            )
            resp.raise_for_status()
            data = resp.json()

        if not data.get("ok"):
            error = data.get("error", "unknown_error")
            raise SlackAPIError(f"Slack chat.postMessage failed: {error}", error)
        return data


class MockSlackClient:
    """Records posted messages instead of sending them."""

    def __init__(self, error: str | None = None) -> None:
        """Initialize the mock.

        Args:
            error: If set, every post fails with this Slack error code
        """
        self._error = error
        self.messages: list[dict[str, Any]] = []

    async def post_message(
        self,
        channel: str,
        text: str,
        *,
        unfurl_links: bool = False,
        unfurl_media: bool = False,
        mrkdwn: bool = True,
    ) -> dict[str, Any]:
        if self._error:
            raise SlackAPIError(f"Slack chat.postMessage failed: {self._error}", self._error)
        message = {
            "channel": channel,
            "text": text,
            "unfurl_links": unfurl_links,
            "unfurl_media": unfurl_media,
            "mrkdwn": mrkdwn,
        }
        self.messages.append(message)
        return {"ok": True, "channel": channel, "ts": f"{len(self.messages)}.000000"}
