"""Release scope resolution.

The scope name keys both the "Versions - {scope}" parent label and the
label that marks issues as belonging to the app or repository being
released. Monorepos release per app; single-app repositories release per
repository.
"""

from __future__ import annotations

from collections.abc import Mapping

from linear_release.errors import ConfigError
from linear_release.schemas import ScopeSource


def repo_name_from_slug(repository: str | None) -> str:
    """Return "repo" from an "owner/repo" slug, or "" when there is none."""
    if not repository:
        return ""
    parts = repository.split("/")
    return parts[1] if len(parts) > 1 else ""


def resolve_scope_name(
    app_name: str | None,
    repository: str | None,
    scopes: Mapping[str, str] | None = None,
    source: ScopeSource | None = None,
) -> str:
    """Pick the scope name for this release.

    Args:
        app_name: The appName input, if any
        repository: "owner/repo" from GITHUB_REPOSITORY
        scopes: appName -> scope name table; unmapped apps use their own name
        source: Force a source. Defaults to APP when app_name is set,
                REPOSITORY otherwise.

    Raises:
        ConfigError: If the selected source yields no name.
    """
    if source is None:
        source = ScopeSource.APP if app_name else ScopeSource.REPOSITORY

    if source == ScopeSource.APP:
        if not app_name:
            raise ConfigError("Scope source is 'app' but no appName was provided")
        return (scopes or {}).get(app_name, app_name)

    name = repo_name_from_slug(repository)
    if not name:
        raise ConfigError(
            "Cannot determine repository name: GITHUB_REPOSITORY is not set "
            "(expected 'owner/repo')"
        )
    return name
