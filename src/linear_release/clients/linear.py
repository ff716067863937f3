"""Linear GraphQL client for labels, issues and workflow states.

The release run needs a small slice of Linear's API:
- issue label lookup and creation (the "Versions - {scope}" hierarchy)
- the "ready for release" issue query
- issue state updates and label attachment
- workflow state lookup ("Done")
- per-issue assignee and attachments for the changelog

Design notes:
- Plain GraphQL over httpx; only the first page of any connection is read
- GraphQL errors raise LinearAPIError; a duplicate-label rejection raises
  LabelConflictError so callers can tell it apart from real failures
- A Protocol keeps the label manager, issue updater and changelog compiler
  independent of the transport

Linear API docs: https://developers.linear.app/docs/graphql/working-with-the-graphql-api
"""

from __future__ import annotations

import re
from typing import Any, Protocol

import httpx

from linear_release.errors import LabelConflictError, LinearAPIError
from linear_release.schemas import (
    Assignee,
    Attachment,
    Issue,
    IssueDetails,
    VersionLabel,
    WorkflowState,
)

# Linear rejects a duplicate label name under the same parent with an input
# error whose message mentions the duplicate.
_CONFLICT_PATTERN = re.compile(r"already exists|duplicate", re.IGNORECASE)

LABEL_FIELDS = "id name color team { id } parent { id }"

ISSUE_LABELS_QUERY = f"""
query IssueLabels($filter: IssueLabelFilter) {{
  issueLabels(filter: $filter) {{
    nodes {{ {LABEL_FIELDS} }}
  }}
}}
"""

CREATE_LABEL_MUTATION = f"""
mutation CreateIssueLabel($input: IssueLabelCreateInput!) {{
  issueLabelCreate(input: $input) {{
    success
    issueLabel {{ {LABEL_FIELDS} }}
  }}
}}
"""

WORKFLOW_STATES_QUERY = """
query WorkflowStates($filter: WorkflowStateFilter) {
  workflowStates(filter: $filter) {
    nodes { id name }
  }
}
"""

ISSUES_QUERY = """
query Issues($filter: IssueFilter) {
  issues(filter: $filter) {
    nodes {
      id
      identifier
      title
      url
      state { id }
      labels { nodes { id name } }
    }
  }
}
"""

UPDATE_ISSUE_MUTATION = """
mutation UpdateIssue($id: String!, $input: IssueUpdateInput!) {
  issueUpdate(id: $id, input: $input) { success }
}
"""

ADD_LABEL_MUTATION = """
mutation IssueAddLabel($id: String!, $labelId: String!) {
  issueAddLabel(id: $id, labelId: $labelId) { success }
}
"""

ISSUE_DETAILS_QUERY = """
query IssueDetails($id: String!) {
  issue(id: $id) {
    assignee { id name }
    attachments { nodes { url sourceType } }
  }
}
"""


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class LinearClientProtocol(Protocol):
    """Operations the release pipeline needs from the issue tracker."""

    async def find_labels(
        self,
        name: str,
        team_id: str | None = None,
        parent_id: str | None = None,
    ) -> list[VersionLabel]:
        """Labels with exactly this name, optionally under a team/parent."""
        ...

    async def create_label(
        self,
        name: str,
        team_id: str,
        parent_id: str,
        color: str | None = None,
    ) -> VersionLabel:
        """Create a label. Raises LabelConflictError if it already exists."""
        ...

    async def find_workflow_states(
        self, name: str, team_id: str | None = None
    ) -> list[WorkflowState]:
        ...

    async def find_issues(self, label_name: str, state_name: str) -> list[Issue]:
        """Issues carrying ``label_name`` in the state named ``state_name``."""
        ...

    async def update_issue_state(self, issue_id: str, state_id: str) -> None:
        ...

    async def add_issue_label(self, issue_id: str, label_id: str) -> None:
        ...

    async def get_issue_details(self, issue_id: str) -> IssueDetails:
        ...


# ---------------------------------------------------------------------------
# Concrete Implementation
# ---------------------------------------------------------------------------


class LinearClient:
    """Linear GraphQL client using httpx.

    Usage:
        client = LinearClient(api_key="lin_api_...")
        labels = await client.find_labels("Versions - mobile")
    """

    API_URL = "https://api.linear.app/graphql"

    def __init__(
        self,
        api_key: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Linear client.

        Args:
            api_key: Linear personal API key (sent without a Bearer prefix)
            timeout: Per-request timeout in seconds
            transport: httpx transport override, used by tests
        """
        self._headers = {
            "Authorization": api_key,
            "Content-Type": "application/json",
        }
        self._timeout = timeout
        self._transport = transport

    async def _execute(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """POST one GraphQL operation and return its ``data`` object.

        Raises:
            httpx.HTTPStatusError: On a non-2xx response without GraphQL errors
            LabelConflictError: If the errors describe a duplicate entity
            LinearAPIError: For any other GraphQL error
        """
        async with httpx.AsyncClient(
            headers=self._headers,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            resp = await client.post(
                self.API_URL, json={"query": query, "variables": variables}
            )

        try:
            payload = resp.json()
        except ValueError:
            resp.raise_for_status()
            raise LinearAPIError(f"Linear returned a non-JSON response ({resp.status_code})")

        errors = payload.get("errors") or []
        if errors:
            raise _error_from(errors)
        resp.raise_for_status()
        return payload.get("data") or {}

    async def find_labels(
        self,
        name: str,
        team_id: str | None = None,
        parent_id: str | None = None,
    ) -> list[VersionLabel]:
        label_filter: dict[str, Any] = {"name": {"eq": name}}
        if team_id:
            label_filter["team"] = {"id": {"eq": team_id}}
        if parent_id:
            label_filter["parent"] = {"id": {"eq": parent_id}}

        data = await self._execute(ISSUE_LABELS_QUERY, {"filter": label_filter})
        nodes = data.get("issueLabels", {}).get("nodes", [])
        return [VersionLabel.from_node(node) for node in nodes]

    async def create_label(
        self,
        name: str,
        team_id: str,
        parent_id: str,
        color: str | None = None,
    ) -> VersionLabel:
        label_input: dict[str, Any] = {
            "name": name,
            "teamId": team_id,
            "parentId": parent_id,
        }
        if color:
            label_input["color"] = color

        data = await self._execute(CREATE_LABEL_MUTATION, {"input": label_input})
        result = data.get("issueLabelCreate") or {}
        node = result.get("issueLabel")
        if not result.get("success") or not node:
            raise LinearAPIError(f"Linear did not create label {name!r}")
        return VersionLabel.from_node(node)

    async def find_workflow_states(
        self, name: str, team_id: str | None = None
    ) -> list[WorkflowState]:
        state_filter: dict[str, Any] = {"name": {"eq": name}}
        if team_id:
            state_filter["team"] = {"id": {"eq": team_id}}

        data = await self._execute(WORKFLOW_STATES_QUERY, {"filter": state_filter})
        nodes = data.get("workflowStates", {}).get("nodes", [])
        return [WorkflowState.model_validate(node) for node in nodes]

    async def find_issues(self, label_name: str, state_name: str) -> list[Issue]:
        issue_filter = {
            "labels": {"name": {"eq": label_name}},
            "state": {"name": {"eq": state_name}},
        }
        data = await self._execute(ISSUES_QUERY, {"filter": issue_filter})
        nodes = data.get("issues", {}).get("nodes", [])
        return [Issue.from_node(node) for node in nodes]

    async def update_issue_state(self, issue_id: str, state_id: str) -> None:
        data = await self._execute(
            UPDATE_ISSUE_MUTATION, {"id": issue_id, "input": {"stateId": state_id}}
        )
        if not (data.get("issueUpdate") or {}).get("success"):
            raise LinearAPIError(f"Linear did not update issue {issue_id}")

    async def add_issue_label(self, issue_id: str, label_id: str) -> None:
        data = await self._execute(
            ADD_LABEL_MUTATION, {"id": issue_id, "labelId": label_id}
        )
        if not (data.get("issueAddLabel") or {}).get("success"):
            raise LinearAPIError(f"Linear did not add label {label_id} to issue {issue_id}")

    async def get_issue_details(self, issue_id: str) -> IssueDetails:
        data = await self._execute(ISSUE_DETAILS_QUERY, {"id": issue_id})
        node = data.get("issue")
        if not node:
            raise LinearAPIError(f"Issue {issue_id} not found")

        assignee = node.get("assignee")
        attachment_nodes = (node.get("attachments") or {}).get("nodes", [])
        return IssueDetails(
            assignee=Assignee.model_validate(assignee) if assignee else None,
            attachments=[Attachment.from_node(a) for a in attachment_nodes],
        )


def _error_from(errors: list[dict]) -> LinearAPIError:
    """Build the right exception for a GraphQL ``errors`` array."""
    messages = []
    for error in errors:
        messages.append(error.get("message", "unknown error"))
        presentable = (error.get("extensions") or {}).get("userPresentableMessage")
        if presentable:
            messages.append(presentable)

    text = "; ".join(messages)
    if any(_CONFLICT_PATTERN.search(m) for m in messages):
        return LabelConflictError(text, errors)
    return LinearAPIError(text, errors)


# ---------------------------------------------------------------------------
# Mock Implementation (for testing)
# ---------------------------------------------------------------------------


class MockLinearClient:
    """In-memory Linear workspace.

    Behaves like the API for everything the pipeline does: duplicate label
    names under the same team/parent raise LabelConflictError, updates move
    issues between states, and ``issue_labels`` records attachments.
    Failures can be injected per issue identifier.

    Usage:
        client = MockLinearClient(
            labels=[VersionLabel(id="P", name="Versions - mobile", team_id="T")],
            states=[WorkflowState(id="S-done", name="Done")],
        )
    """

    def __init__(
        self,
        labels: list[VersionLabel] | None = None,
        states: list[WorkflowState] | None = None,
        issues: list[Issue] | None = None,
        issue_states: dict[str, str] | None = None,
        details: dict[str, IssueDetails] | None = None,
        fail_updates: set[str] | None = None,
        fail_label_adds: set[str] | None = None,
        fail_details: set[str] | None = None,
        create_error: Exception | None = None,
    ) -> None:
        """Initialize the workspace.

        Args:
            labels: Existing labels
            states: Workflow states
            issues: Existing issues
            issue_states: issue id -> state name. Defaults to "Ready For Release".
            details: issue id -> assignee/attachments
            fail_updates: Identifiers whose state update raises
            fail_label_adds: Identifiers whose label attachment raises
            fail_details: Identifiers whose detail lookup raises
            create_error: Raised by create_label instead of creating
        """
        self.labels = list(labels or [])
        self.states = list(states or [])
        self.issues = list(issues or [])
        self.issue_states = dict(issue_states or {})
        self.details = dict(details or {})
        self.issue_labels: dict[str, list[str]] = {}
        self.fail_updates = set(fail_updates or ())
        self.fail_label_adds = set(fail_label_adds or ())
        self.fail_details = set(fail_details or ())
        self.create_error = create_error
        self.created: list[VersionLabel] = []
        self.state_updates: list[tuple[str, str]] = []

    def _state_name(self, issue: Issue) -> str:
        return self.issue_states.get(issue.id, "Ready For Release")

    def _issue(self, issue_id: str) -> Issue:
        for issue in self.issues:
            if issue.id == issue_id:
                return issue
        raise LinearAPIError(f"Entity not found: Issue {issue_id}")

    async def find_labels(
        self,
        name: str,
        team_id: str | None = None,
        parent_id: str | None = None,
    ) -> list[VersionLabel]:
        return [
            label
            for label in self.labels
            if label.name == name
            and (team_id is None or label.team_id == team_id)
            and (parent_id is None or label.parent_id == parent_id)
        ]

    async def create_label(
        self,
        name: str,
        team_id: str,
        parent_id: str,
        color: str | None = None,
    ) -> VersionLabel:
        if self.create_error is not None:
            raise self.create_error
        if await self.find_labels(name, team_id, parent_id):
            raise LabelConflictError(f"Label {name!r} already exists")

        label = VersionLabel(
            id=f"label-{len(self.labels) + 1}",
            name=name,
            team_id=team_id,
            parent_id=parent_id,
            color=color,
        )
        self.labels.append(label)
        self.created.append(label)
        return label

    async def find_workflow_states(
        self, name: str, team_id: str | None = None
    ) -> list[WorkflowState]:
        return [state for state in self.states if state.name == name]

    async def find_issues(self, label_name: str, state_name: str) -> list[Issue]:
        return [
            issue
            for issue in self.issues
            if label_name in issue.labels and self._state_name(issue) == state_name
        ]

    async def update_issue_state(self, issue_id: str, state_id: str) -> None:
        issue = self._issue(issue_id)
        if issue.identifier in self.fail_updates:
            raise LinearAPIError(f"Failed to update {issue.identifier}")
        for state in self.states:
            if state.id == state_id:
                self.issue_states[issue_id] = state.name
        self.state_updates.append((issue_id, state_id))

    async def add_issue_label(self, issue_id: str, label_id: str) -> None:
        issue = self._issue(issue_id)
        if issue.identifier in self.fail_label_adds:
            raise LinearAPIError(f"Failed to label {issue.identifier}")
        self.issue_labels.setdefault(issue_id, []).append(label_id)

    async def get_issue_details(self, issue_id: str) -> IssueDetails:
        issue = self._issue(issue_id)
        if issue.identifier in self.fail_details:
            raise LinearAPIError(f"Failed to load {issue.identifier}")
        return self.details.get(issue_id, IssueDetails(assignee=issue.assignee))
