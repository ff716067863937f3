"""Command-line entry point.

Usage:
    linear-release --app-name mobile-app
    python -m linear_release

In GitHub Actions the inputs come from ``with:`` (INPUT_* variables); flags
and plain environment variables take precedence over them. For local runs,
put the tokens in ``.env.local``.
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from linear_release.actions import set_failed, set_outputs
from linear_release.config import load_local_env, resolve_settings
from linear_release.logging_config import get_logger, setup_logging
from linear_release.pipeline import ReleasePipeline

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="linear-release",
        description="Label released Linear issues, mark them Done and post a changelog to Slack",
    )
    parser.add_argument("--linear-api-key", dest="linearApiKey", help="Linear API key")
    parser.add_argument("--slack-token", dest="slackToken", help="Slack bot token")
    parser.add_argument("--slack-channel", dest="slackChannel", help="Slack channel id or name")
    parser.add_argument(
        "--app-name",
        dest="appName",
        help="Monorepo app; reads apps/<name>/ manifests and scopes labels to it",
    )
    parser.add_argument(
        "--label-naming",
        dest="labelNaming",
        choices=["scoped", "version"],
        help="Version label name: '<scope> - <version>' or '<version>'",
    )
    parser.add_argument(
        "--zero-issues",
        dest="zeroIssues",
        choices=["fail", "empty"],
        help="Fail, or post an empty changelog, when no issue is ready",
    )
    parser.add_argument(
        "--scope-source",
        dest="scopeSource",
        choices=["app", "repository"],
        help="Take the scope from appName or from GITHUB_REPOSITORY",
    )
    parser.add_argument(
        "--include-pull-requests",
        dest="includePullRequests",
        choices=["true", "false"],
        help="List linked PRs under each issue",
    )
    parser.add_argument("--config", dest="configPath", help="Path to the YAML release config")
    parser.add_argument("--root", default=".", help="Repository checkout root")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run a release. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    load_local_env()
    explicit = {key: value for key, value in vars(args).items() if key != "root"}
    try:
        setup_logging()
        logger.info("release_action_started")
        settings = resolve_settings(explicit=explicit, root=args.root)
        summary = asyncio.run(ReleasePipeline(settings).run())
    except Exception as exc:
        # set_failed emits the one ::error:: annotation for the run
        logger.info("release_action_failed", error=str(exc))
        set_failed(f"Action failed: {exc}")
        return 1

    set_outputs(
        {
            "version": summary.context.version,
            "label": summary.label.name,
            "issue-count": str(len(summary.batch.issues)),
        }
    )
    logger.info("release_action_done")
    return 0


if __name__ == "__main__":
    sys.exit(main())
