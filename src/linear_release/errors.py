"""Error types for a release run.

Every ReleaseError aborts the run. Per-issue failures never raise out of the
issue updater or the changelog compiler; they are recorded and logged
instead.
"""

from __future__ import annotations


class ReleaseError(Exception):
    """Fatal error: the run cannot continue."""


class ConfigError(ReleaseError):
    """Missing input or invalid configuration file."""


class ManifestError(ReleaseError):
    """Neither app.json nor package.json yielded a version."""


class LabelHierarchyError(ReleaseError):
    """The "Versions - {scope}" parent label or its team is missing."""


class LabelResolutionError(ReleaseError):
    """The version label could neither be created nor found."""


class WorkflowStateError(ReleaseError):
    """The target workflow state does not exist in the workspace."""


class NoIssuesError(ReleaseError):
    """No issues are ready for release."""


class LinearAPIError(ReleaseError):
    """The Linear API answered with GraphQL errors."""

    def __init__(self, message: str, errors: list[dict] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class LabelConflictError(LinearAPIError):
    """A label with the same name already exists under the parent."""


class SlackAPIError(ReleaseError):
    """Slack rejected the message (``ok: false``)."""

    def __init__(self, message: str, error_code: str = "") -> None:
        super().__init__(message)
        self.error_code = error_code
