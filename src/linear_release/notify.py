"""Publishing the changelog to Slack."""

from __future__ import annotations

from typing import Any

from linear_release.clients.slack import SlackClientProtocol
from linear_release.logging_config import get_logger

logger = get_logger(__name__)


async def send_to_slack(
    client: SlackClientProtocol,
    channel: str,
    text: str,
) -> dict[str, Any]:
    """Post the changelog once, with link and media previews off.

    Errors propagate; there is no retry.
    """
    logger.info("slack_post_started", channel=channel)
    response = await client.post_message(
        channel,
        text,
        unfurl_links=False,
        unfurl_media=False,
        mrkdwn=True,
    )
    logger.info("slack_post_complete", channel=channel, ts=response.get("ts"))
    return response
