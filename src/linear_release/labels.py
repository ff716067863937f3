"""Version label management.

Version labels live under a per-scope parent label that is provisioned by
hand in Linear:

    Versions - mobile          (parent, owns the team and color)
    ├── mobile - 2.2.0
    └── mobile - 2.3.0         (created by this run)

Creation is create-or-get: two overlapping runs may both try to create the
same label. The loser gets a conflict from Linear and looks the label up
instead, so both end up with the same label id. Only a conflict triggers the
lookup; auth, network and validation errors propagate.
"""

from __future__ import annotations

from linear_release.clients.linear import LinearClientProtocol
from linear_release.errors import (
    LabelConflictError,
    LabelHierarchyError,
    LabelResolutionError,
)
from linear_release.logging_config import get_logger
from linear_release.schemas import LabelNaming, VersionLabel

logger = get_logger(__name__)


def parent_label_name(scope_name: str) -> str:
    return f"Versions - {scope_name}"


def version_label_name(
    scope_name: str, version: str, naming: LabelNaming = LabelNaming.SCOPED
) -> str:
    """Name of the label for ``version`` under the scope's parent label."""
    if naming == LabelNaming.VERSION:
        return version
    return f"{scope_name} - {version}"


async def get_parent_label(
    client: LinearClientProtocol, scope_name: str
) -> VersionLabel:
    """Fetch the "Versions - {scope}" parent label.

    Raises:
        LabelHierarchyError: If the label or its team is missing.
    """
    name = parent_label_name(scope_name)
    labels = await client.find_labels(name)
    if not labels:
        raise LabelHierarchyError(f'Parent label "{name}" not found in Linear.')

    parent = labels[0]
    if not parent.team_id:
        raise LabelHierarchyError(f'Team not found for label "{name}"')
    return parent


async def ensure_version_label(
    client: LinearClientProtocol,
    scope_name: str,
    version: str,
    naming: LabelNaming = LabelNaming.SCOPED,
) -> VersionLabel:
    """Return the version label for this release, creating it if needed.

    Args:
        client: Linear client
        scope_name: Release scope, e.g. "mobile"
        version: Release version, e.g. "2.3.0"
        naming: Whether the label is "{scope} - {version}" or "{version}"

    Returns:
        The created label, or the existing one after a conflict

    Raises:
        LabelHierarchyError: Parent label or its team is missing
        LabelResolutionError: Creation conflicted but no label was found
        LinearAPIError: Creation failed for any reason other than a conflict
    """
    parent = await get_parent_label(client, scope_name)
    name = version_label_name(scope_name, version, naming)
    team_id = parent.team_id

    logger.info("label_create_started", name=name, parent=parent.name)
    try:
        label = await client.create_label(
            name=name,
            team_id=team_id,
            parent_id=parent.id,
            color=parent.color,
        )
    except LabelConflictError as exc:
        logger.info("label_exists", name=name, reason=str(exc))
        matches = await client.find_labels(name, team_id=team_id, parent_id=parent.id)
        if not matches:
            raise LabelResolutionError(
                f"Failed to create or find label {name} in Linear."
            ) from exc
        label = matches[0]
        logger.info("label_found", name=label.name, label_id=label.id)
        return label

    logger.info("label_created", name=label.name, label_id=label.id)
    return label
