"""Changelog compilation in Slack mrkdwn.

Output looks like:

    *Release Notes: `mobile-2.3.0`* has been successfully released! :rocket:
    *Release Date:* 10/19/2026
    *Total Issues:* 2

    Here's a summary of the completed issues:
    • (<https://linear.app/acme/issue/MOB-1|MOB-1>) Fix login - _Ada Lovelace_
        PRs: <https://github.com/acme/app/pull/42|#42>

Assignee and attachments are fetched per issue. If that lookup fails the
issue is left out of the list (the total still counts it) and a warning is
logged. Connection and HTTP status errors propagate.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from linear_release.clients.linear import LinearClientProtocol
from linear_release.errors import LinearAPIError
from linear_release.logging_config import get_logger
from linear_release.schemas import Attachment, ChangelogEntry, Issue

logger = get_logger(__name__)

# Attachment source types that point at pull/merge requests
PULL_REQUEST_SOURCES = frozenset({"github", "gitlab"})


def format_release_date(day: date) -> str:
    """US-style M/D/YYYY, without zero padding."""
    return f"{day.month}/{day.day}/{day.year}"


def pull_request_links(attachments: Sequence[Attachment]) -> list[Attachment]:
    """Keep the attachments that come from a source-control provider."""
    return [a for a in attachments if (a.source_type or "").lower() in PULL_REQUEST_SOURCES]


def pull_request_id(url: str) -> str:
    """Display id of a PR link: the last path segment of its URL."""
    return url.rstrip("/").rsplit("/", 1)[-1]


def format_entry(entry: ChangelogEntry) -> list[str]:
    assignee = entry.assignee_name or "Unassigned"
    lines = [f"• (<{entry.url}|{entry.identifier}>) {entry.title} - _{assignee}_"]
    if entry.pull_requests:
        links = ", ".join(
            f"<{pr.url}|#{pull_request_id(pr.url)}>" for pr in entry.pull_requests
        )
        lines.append(f"    PRs: {links}\n")
    return lines


def render_changelog(
    entries: Sequence[ChangelogEntry],
    scope_name: str,
    version: str,
    total: int,
    release_date: date | None = None,
) -> str:
    """Render the header and one block per entry."""
    day = release_date or date.today()
    lines = [
        f"*Release Notes: `{scope_name}-{version}`* has been successfully released! :rocket:",
        f"*Release Date:* {format_release_date(day)}",
        f"*Total Issues:* {total}\n",
        "Here's a summary of the completed issues:",
    ]
    for entry in entries:
        lines.extend(format_entry(entry))
    return "\n".join(lines)


async def build_entries(
    client: LinearClientProtocol,
    issues: Sequence[Issue],
    include_pull_requests: bool = True,
) -> list[ChangelogEntry]:
    """Fetch per-issue details and project them into changelog entries.

    Issues whose details cannot be fetched are skipped with a warning.
    """
    entries = []
    for issue in issues:
        try:
            details = await client.get_issue_details(issue.id)
        except LinearAPIError as exc:
            logger.warning(
                "issue_details_failed",
                issue=issue.identifier,
                error=str(exc),
            )
            continue

        prs = pull_request_links(details.attachments) if include_pull_requests else []
        entries.append(
            ChangelogEntry(
                identifier=issue.identifier,
                title=issue.title,
                url=issue.url,
                assignee_name=details.assignee.name if details.assignee else None,
                pull_requests=prs,
            )
        )
    return entries


async def compile_changelog(
    client: LinearClientProtocol,
    issues: Sequence[Issue],
    scope_name: str,
    version: str,
    include_pull_requests: bool = True,
    release_date: date | None = None,
) -> str:
    """Build the Slack changelog for the released issues.

    Args:
        client: Linear client used for assignee and attachment lookups
        issues: Issues in release, in tracker order
        scope_name: Release scope shown in the title
        version: Release version shown in the title
        include_pull_requests: Add a "PRs:" line under issues with linked PRs
        release_date: Date line value. Defaults to today.

    Returns:
        The changelog text
    """
    entries = await build_entries(client, issues, include_pull_requests)
    return render_changelog(
        entries,
        scope_name=scope_name,
        version=version,
        total=len(issues),
        release_date=release_date,
    )
