"""Issue transitions for a release.

Every issue labelled with the release scope and sitting in "Ready For
Release" is moved to Done and tagged with the version label. Issues are
handled one at a time in the order Linear returns them. A failure on one
issue is recorded and logged, and the batch moves on; nothing already
applied to that issue is rolled back. Only errors Linear reports for the
issue count as per-issue failures; transport and HTTP status errors mean
Linear is unreachable and abort the run.
"""

from __future__ import annotations

from linear_release.clients.linear import LinearClientProtocol
from linear_release.errors import LinearAPIError, NoIssuesError, WorkflowStateError
from linear_release.logging_config import get_logger
from linear_release.schemas import (
    Issue,
    IssueBatchResult,
    IssueUpdateResult,
    UpdateStatus,
    VersionLabel,
    WorkflowState,
    ZeroIssuesPolicy,
)

logger = get_logger(__name__)

READY_FOR_RELEASE = "Ready For Release"
DONE = "Done"


async def get_done_state(
    client: LinearClientProtocol,
    name: str = DONE,
    team_id: str | None = None,
) -> WorkflowState:
    """Look up the workflow state issues are moved to.

    Raises:
        WorkflowStateError: If no state with that name exists.
    """
    states = await client.find_workflow_states(name, team_id=team_id)
    if not states:
        raise WorkflowStateError(f"{name} status not found in Linear.")
    return states[0]


async def update_issue(
    client: LinearClientProtocol,
    issue: Issue,
    version_label: VersionLabel,
    state_id: str,
) -> IssueUpdateResult:
    """Move one issue to ``state_id`` and attach the version label."""
    logger.info("issue_update_started", issue=issue.identifier)
    try:
        await client.update_issue_state(issue.id, state_id)
        await client.add_issue_label(issue.id, version_label.id)
    except LinearAPIError as exc:
        logger.warning(
            "issue_update_failed",
            issue=issue.identifier,
            error=str(exc),
        )
        return IssueUpdateResult(issue=issue, status=UpdateStatus.FAILED, error=str(exc))

    logger.info(
        "issue_updated",
        issue=issue.identifier,
        label=version_label.name,
    )
    return IssueUpdateResult(issue=issue, status=UpdateStatus.UPDATED)


async def update_issues(
    client: LinearClientProtocol,
    version_label: VersionLabel,
    label_name: str,
    state_id: str,
    ready_state: str = READY_FOR_RELEASE,
    zero_issues: ZeroIssuesPolicy = ZeroIssuesPolicy.FAIL,
) -> IssueBatchResult:
    """Transition every ready issue and attach the version label.

    Args:
        client: Linear client
        version_label: Label to attach
        label_name: Scope label the issues carry (e.g. "mobile")
        state_id: Target workflow state id
        ready_state: Name of the state issues are picked from
        zero_issues: What an empty query means

    Returns:
        The queried issues plus one result per issue. Issues whose update
        failed stay in ``issues``.

    Raises:
        NoIssuesError: No issue matched and the policy is FAIL
    """
    logger.info("issue_search_started", state=ready_state, label=label_name)
    issues = await client.find_issues(label_name, ready_state)

    if not issues:
        if zero_issues == ZeroIssuesPolicy.FAIL:
            raise NoIssuesError("No issues found to update.")
        logger.info("no_issues_found", label=label_name)
        return IssueBatchResult()

    logger.info("issues_found", count=len(issues))
    results = []
    for issue in issues:
        results.append(await update_issue(client, issue, version_label, state_id))

    batch = IssueBatchResult(issues=issues, results=results)
    logger.info(
        "issue_update_complete",
        updated=len(batch.updated),
        failed=len(batch.failed),
    )
    return batch
