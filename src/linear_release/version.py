"""Release version resolution from project manifests.

Expo apps carry two numbers: the store version (``expo.version``) and an
over-the-air update revision (``expo.extra.ota.version``). A release of such
an app is "{version}-{ota}". Anything else falls back to the package.json
version.
"""

from __future__ import annotations

import json
from pathlib import Path

from linear_release.errors import ManifestError
from linear_release.logging_config import get_logger

logger = get_logger(__name__)


def manifest_dir(app_name: str | None, root: str | Path = ".") -> Path:
    """Directory holding the manifests: ``apps/{app_name}/`` or the root."""
    base = Path(root)
    return base / "apps" / app_name if app_name else base


def _blank(value: object) -> bool:
    return value is None or str(value).strip() == ""


def read_expo_version(path: Path) -> str | None:
    """Return "{version}-{ota}" from an app.json, or None if unusable."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        expo = data["expo"]
        version = expo["version"]
        ota = expo["extra"]["ota"]["version"]
    except (OSError, ValueError, KeyError, TypeError):
        return None
    if _blank(version) or _blank(ota):
        return None
    return f"{version}-{ota}"


def resolve_version(app_name: str | None = None, root: str | Path = ".") -> str:
    """Resolve the release version.

    Args:
        app_name: Monorepo app; manifests are read from ``apps/{app_name}/``
        root: Repository checkout root

    Returns:
        "{version}-{ota}" from app.json, else package.json's version

    Raises:
        ManifestError: If neither manifest yields a version.
    """
    directory = manifest_dir(app_name, root)

    expo_version = read_expo_version(directory / "app.json")
    if expo_version is not None:
        logger.info("version_resolved", source="app.json", version=expo_version)
        return expo_version

    package_path = directory / "package.json"
    try:
        data = json.loads(package_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ManifestError(f"Cannot read {package_path}: {exc}") from exc
    except ValueError as exc:
        raise ManifestError(f"Invalid JSON in {package_path}: {exc}") from exc

    version = data.get("version") if isinstance(data, dict) else None
    if not version:
        raise ManifestError(f"No version field in {package_path}")

    logger.info("version_resolved", source="package.json", version=version)
    return str(version)
