"""Tests for version resolution from app.json / package.json.

Run with: pytest tests/test_version.py -v
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from linear_release.errors import ManifestError
from linear_release.version import manifest_dir, read_expo_version, resolve_version


def write_json(path: Path, data: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))


EXPO_MANIFEST = {"expo": {"version": "2.3.0", "extra": {"ota": {"version": "7"}}}}


class TestResolveVersion:
    def test_expo_manifest_with_ota(self, tmp_path: Path) -> None:
        """app.json with an OTA revision yields "{version}-{ota}"."""
        write_json(tmp_path / "app.json", EXPO_MANIFEST)
        write_json(tmp_path / "package.json", {"version": "9.9.9"})

        assert resolve_version(root=tmp_path) == "2.3.0-7"

    def test_falls_back_to_package_json(self, tmp_path: Path) -> None:
        write_json(tmp_path / "package.json", {"version": "2.3.0"})

        assert resolve_version(root=tmp_path) == "2.3.0"

    def test_app_json_without_ota_falls_back(self, tmp_path: Path) -> None:
        """An app.json missing expo.extra.ota is unusable, not an error."""
        write_json(tmp_path / "app.json", {"expo": {"version": "2.3.0"}})
        write_json(tmp_path / "package.json", {"version": "1.0.0"})

        assert resolve_version(root=tmp_path) == "1.0.0"

    def test_blank_ota_falls_back(self, tmp_path: Path) -> None:
        write_json(
            tmp_path / "app.json",
            {"expo": {"version": "2.3.0", "extra": {"ota": {"version": ""}}}},
        )
        write_json(tmp_path / "package.json", {"version": "1.0.0"})

        assert resolve_version(root=tmp_path) == "1.0.0"

    def test_invalid_app_json_falls_back(self, tmp_path: Path) -> None:
        (tmp_path / "app.json").write_text("{not json")
        write_json(tmp_path / "package.json", {"version": "1.0.0"})

        assert resolve_version(root=tmp_path) == "1.0.0"

    def test_app_name_reads_from_apps_dir(self, tmp_path: Path) -> None:
        write_json(tmp_path / "apps" / "mobile" / "app.json", EXPO_MANIFEST)
        write_json(tmp_path / "package.json", {"version": "0.0.1"})

        assert resolve_version("mobile", root=tmp_path) == "2.3.0-7"

    def test_app_name_package_json_fallback(self, tmp_path: Path) -> None:
        write_json(tmp_path / "apps" / "web" / "package.json", {"version": "4.1.0"})

        assert resolve_version("web", root=tmp_path) == "4.1.0"

    def test_no_manifest_is_fatal(self, tmp_path: Path) -> None:
        with pytest.raises(ManifestError, match="package.json"):
            resolve_version(root=tmp_path)

    def test_package_json_without_version_is_fatal(self, tmp_path: Path) -> None:
        write_json(tmp_path / "package.json", {"name": "app"})

        with pytest.raises(ManifestError, match="No version"):
            resolve_version(root=tmp_path)

    def test_invalid_package_json_is_fatal(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text("]")

        with pytest.raises(ManifestError, match="Invalid JSON"):
            resolve_version(root=tmp_path)


class TestHelpers:
    def test_manifest_dir(self, tmp_path: Path) -> None:
        assert manifest_dir(None, tmp_path) == tmp_path
        assert manifest_dir("mobile", tmp_path) == tmp_path / "apps" / "mobile"

    def test_read_expo_version_missing_file(self, tmp_path: Path) -> None:
        assert read_expo_version(tmp_path / "app.json") is None

    def test_read_expo_version_rejects_blank_values(self, tmp_path: Path) -> None:
        path = tmp_path / "app.json"
        write_json(path, {"expo": {"version": "", "extra": {"ota": {"version": "5"}}}})
        assert read_expo_version(path) is None

        write_json(path, {"expo": {"version": "2.3.0", "extra": {"ota": {"version": " "}}}})
        assert read_expo_version(path) is None

    def test_read_expo_version_numeric_ota(self, tmp_path: Path) -> None:
        path = tmp_path / "app.json"
        write_json(path, {"expo": {"version": "2.3.0", "extra": {"ota": {"version": 0}}}})
        assert read_expo_version(path) == "2.3.0-0"
