"""Pydantic models for the data that flows through a release run.

Nothing here is persisted. Linear owns labels, issues and workflow states;
these models are the request-scoped views of them that the pipeline passes
from stage to stage:

- ReleaseContext: version + scope name, resolved once per run
- VersionLabel / WorkflowState / Issue: projections of Linear entities
- IssueUpdateResult / IssueBatchResult: per-issue outcome of the updater
- ChangelogEntry: what the changelog renders for one issue
- ReleaseSummary: what a finished run returns

Linear's GraphQL responses use camelCase and nested ``{ id }`` objects; the
``from_node`` constructors flatten them.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class LabelNaming(StrEnum):
    """How the version label under "Versions - {scope}" is named.

    SCOPED: "{scope} - {version}" (unique across scopes in one team)
    VERSION: bare "{version}"
    """

    SCOPED = "scoped"
    VERSION = "version"


class ZeroIssuesPolicy(StrEnum):
    """What to do when no issue is ready for release.

    FAIL: abort the run with "No issues found to update."
    EMPTY: continue and publish a changelog listing zero issues
    """

    FAIL = "fail"
    EMPTY = "empty"


class ScopeSource(StrEnum):
    """Where the release scope name comes from.

    APP: the appName input, mapped through the configured scope table
    REPOSITORY: the repository part of GITHUB_REPOSITORY
    """

    APP = "app"
    REPOSITORY = "repository"


class UpdateStatus(StrEnum):
    UPDATED = "updated"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Release context
# ---------------------------------------------------------------------------


class ReleaseContext(BaseModel):
    """Version and scope of the release being processed."""

    model_config = ConfigDict(frozen=True)

    version: str = Field(..., min_length=1, description="Resolved release version")
    scope_name: str = Field(..., min_length=1, description="Label scope, e.g. 'mobile'")


# ---------------------------------------------------------------------------
# Linear entities
# ---------------------------------------------------------------------------


class VersionLabel(BaseModel):
    """An issue label in Linear.

    Used both for the "Versions - {scope}" parent and the version label
    created beneath it.
    """

    id: str
    name: str
    team_id: str | None = None
    parent_id: str | None = None
    color: str | None = None

    @classmethod
    def from_node(cls, node: dict) -> VersionLabel:
        team = node.get("team") or {}
        parent = node.get("parent") or {}
        return cls(
            id=node["id"],
            name=node["name"],
            team_id=team.get("id"),
            parent_id=parent.get("id"),
            color=node.get("color"),
        )


class WorkflowState(BaseModel):
    id: str
    name: str


class Assignee(BaseModel):
    id: str
    name: str


class Attachment(BaseModel):
    """A link attached to an issue (pull request, Sentry event, etc.)."""

    url: str
    source_type: str | None = None

    @classmethod
    def from_node(cls, node: dict) -> Attachment:
        return cls(url=node["url"], source_type=node.get("sourceType"))


class Issue(BaseModel):
    """An issue as returned by the "ready for release" query."""

    id: str
    identifier: str = Field(..., description="Human key, e.g. 'MOB-123'")
    title: str
    url: str
    assignee: Assignee | None = None
    state_id: str | None = None
    labels: list[str] = Field(default_factory=list, description="Label names")

    @classmethod
    def from_node(cls, node: dict) -> Issue:
        assignee = node.get("assignee")
        state = node.get("state") or {}
        label_nodes = (node.get("labels") or {}).get("nodes", [])
        return cls(
            id=node["id"],
            identifier=node["identifier"],
            title=node["title"],
            url=node["url"],
            assignee=Assignee.model_validate(assignee) if assignee else None,
            state_id=state.get("id"),
            labels=[label["name"] for label in label_nodes],
        )


class IssueDetails(BaseModel):
    """Per-issue data fetched lazily while compiling the changelog."""

    assignee: Assignee | None = None
    attachments: list[Attachment] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class IssueUpdateResult(BaseModel):
    """Outcome of moving one issue to Done and attaching the version label."""

    issue: Issue
    status: UpdateStatus
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == UpdateStatus.UPDATED


class IssueBatchResult(BaseModel):
    """All issues returned by the query, with one result per issue.

    ``issues`` is the query result, in tracker order, regardless of whether
    the individual mutations succeeded.
    """

    issues: list[Issue] = Field(default_factory=list)
    results: list[IssueUpdateResult] = Field(default_factory=list)

    @property
    def updated(self) -> list[Issue]:
        return [r.issue for r in self.results if r.ok]

    @property
    def failed(self) -> list[IssueUpdateResult]:
        return [r for r in self.results if not r.ok]


class ChangelogEntry(BaseModel):
    """One rendered issue block in the changelog."""

    identifier: str
    title: str
    url: str
    assignee_name: str | None = None
    pull_requests: list[Attachment] = Field(default_factory=list)


class ReleaseSummary(BaseModel):
    """Everything a completed run produced."""

    context: ReleaseContext
    label: VersionLabel
    batch: IssueBatchResult
    changelog: str
