"""Input resolution and configuration for a release run.

Inputs can arrive three ways, checked in this order:

1. Explicit values (CLI flags or keyword arguments)
2. An environment variable with the input's own name (``linearApiKey``),
   which is what local runs and ``.env.local`` provide
3. The GitHub Actions input variable (``INPUT_LINEARAPIKEY``), which is
   how ``with:`` values reach a step

Repository-level behavior (scope table, label naming, zero-issue policy,
state names) lives in an optional YAML file:

    # .github/linear-release.yml
    scopes:
      mobile-app: mobile
      web: web
    label_naming: scoped
    zero_issues: fail
    ready_state: Ready For Release
    done_state: Done
    include_pull_requests: true
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from linear_release.errors import ConfigError
from linear_release.schemas import LabelNaming, ScopeSource, ZeroIssuesPolicy

RECOGNIZED_INPUTS: tuple[str, ...] = (
    "linearApiKey",
    "slackToken",
    "slackChannel",
    "appName",
    "labelNaming",
    "zeroIssues",
    "scopeSource",
    "includePullRequests",
    "configPath",
)

REQUIRED_INPUTS: tuple[str, ...] = ("linearApiKey", "slackToken", "slackChannel")

DEFAULT_CONFIG_PATH = ".github/linear-release.yml"
LOCAL_ENV_FILE = ".env.local"


def load_local_env(path: str | Path = LOCAL_ENV_FILE) -> bool:
    """Load ``.env.local`` for local development.

    Variables already present in the environment win.
    """
    return load_dotenv(path, override=False)


def get_input(
    name: str,
    explicit: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Resolve one input by precedence: explicit, env var, action input.

    Args:
        name: One of RECOGNIZED_INPUTS
        explicit: Value passed directly (CLI flag). Empty strings count as unset.
        environ: Environment to read from. Defaults to os.environ.

    Returns:
        The resolved value, stripped, or "" if nothing provides it.

    Raises:
        ConfigError: If ``name`` is not a recognized input.
    """
    if name not in RECOGNIZED_INPUTS:
        raise ConfigError(f"Unknown input {name!r}")

    env = os.environ if environ is None else environ
    if explicit:
        return explicit.strip()

    value = env.get(name)
    if value:
        return value.strip()

    action_key = "INPUT_" + name.replace(" ", "_").upper()
    return env.get(action_key, "").strip()


def _parse_bool(name: str, raw: str) -> bool:
    lowered = raw.lower()
    if lowered in ("true", "1", "yes", "on"):
        return True
    if lowered in ("false", "0", "no", "off"):
        return False
    raise ConfigError(f"Input {name!r} must be true or false, got {raw!r}")


# ---------------------------------------------------------------------------
# YAML config
# ---------------------------------------------------------------------------


class ReleaseConfig(BaseModel):
    """Repository-level release configuration loaded from YAML."""

    scopes: dict[str, str] = Field(
        default_factory=dict,
        description="appName -> label scope name",
    )
    label_naming: LabelNaming = LabelNaming.SCOPED
    zero_issues: ZeroIssuesPolicy = ZeroIssuesPolicy.FAIL
    scope_source: ScopeSource | None = None
    ready_state: str = "Ready For Release"
    done_state: str = "Done"
    include_pull_requests: bool = True
    fail_on_update_errors: bool = False


def load_release_config(path: str | Path) -> ReleaseConfig:
    """Load and validate a YAML release config file.

    Returns defaults if the file doesn't exist.

    Raises:
        ConfigError: If the YAML is malformed or fails validation.
    """
    config_path = Path(path)
    if not config_path.exists():
        return ReleaseConfig()

    try:
        raw = yaml.safe_load(config_path.read_text()) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    try:
        return ReleaseConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid release config in {path}: {exc}") from exc


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class ReleaseSettings(BaseModel):
    """Fully resolved settings for one run."""

    linear_api_key: str
    slack_token: str
    slack_channel: str
    app_name: str | None = None
    repository: str | None = Field(None, description="owner/repo from GITHUB_REPOSITORY")
    root: Path = Path(".")
    config: ReleaseConfig = Field(default_factory=ReleaseConfig)


def resolve_settings(
    explicit: Mapping[str, str | None] | None = None,
    environ: Mapping[str, str] | None = None,
    root: str | Path = ".",
) -> ReleaseSettings:
    """Resolve every recognized input and overlay them on the YAML config.

    Input values (labelNaming, zeroIssues, scopeSource, includePullRequests)
    override the matching YAML keys.

    Raises:
        ConfigError: If a required input is missing or a value is invalid.
    """
    explicit = explicit or {}
    env = os.environ if environ is None else environ
    values = {name: get_input(name, explicit.get(name), env) for name in RECOGNIZED_INPUTS}

    missing = [name for name in REQUIRED_INPUTS if not values[name]]
    if missing:
        raise ConfigError(f"Missing required input(s): {', '.join(missing)}")

    root_path = Path(root)
    config_path = Path(values["configPath"] or DEFAULT_CONFIG_PATH)
    if not config_path.is_absolute():
        config_path = root_path / config_path
    config = load_release_config(config_path)

    overrides: dict[str, object] = {}
    try:
        if values["labelNaming"]:
            overrides["label_naming"] = LabelNaming(values["labelNaming"].lower())
        if values["zeroIssues"]:
            overrides["zero_issues"] = ZeroIssuesPolicy(values["zeroIssues"].lower())
        if values["scopeSource"]:
            overrides["scope_source"] = ScopeSource(values["scopeSource"].lower())
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc
    if values["includePullRequests"]:
        overrides["include_pull_requests"] = _parse_bool(
            "includePullRequests", values["includePullRequests"]
        )
    if overrides:
        config = config.model_copy(update=overrides)

    return ReleaseSettings(
        linear_api_key=values["linearApiKey"],
        slack_token=values["slackToken"],
        slack_channel=values["slackChannel"],
        app_name=values["appName"] or None,
        repository=env.get("GITHUB_REPOSITORY") or None,
        root=root_path,
        config=config,
    )
