"""End-to-end tests for the release pipeline with mock clients.

Run with: pytest tests/test_pipeline.py -v
"""

from __future__ import annotations

import asyncio
import json
from datetime import date
from pathlib import Path
from unittest.mock import AsyncMock

import httpx
import pytest

from linear_release.clients.linear import MockLinearClient
from linear_release.clients.slack import MockSlackClient
from linear_release.config import ReleaseConfig, ReleaseSettings
from linear_release.errors import (
    LabelHierarchyError,
    NoIssuesError,
    ReleaseError,
    SlackAPIError,
)
from linear_release.pipeline import ReleasePipeline
from linear_release.schemas import (
    Assignee,
    Issue,
    IssueDetails,
    LabelNaming,
    VersionLabel,
    WorkflowState,
    ZeroIssuesPolicy,
)

PARENT = VersionLabel(id="P", name="Versions - mobile", team_id="T", color="#5e6ad2")
DONE = WorkflowState(id="S-done", name="Done")


def make_issue(n: int) -> Issue:
    return Issue(
        id=f"issue-{n}",
        identifier=f"MOB-{n}",
        title=f"Ship feature {n}",
        url=f"https://linear.app/acme/issue/MOB-{n}",
        assignee=Assignee(id=f"u{n}", name=f"Dev {n}"),
        labels=["mobile"],
    )


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    (tmp_path / "package.json").write_text(json.dumps({"version": "2.3.0"}))
    return tmp_path


def make_settings(root: Path, **config: object) -> ReleaseSettings:
    return ReleaseSettings(
        linear_api_key="lin_api_test",
        slack_token="xoxb-test",
        slack_channel="#releases",
        repository="acme/mobile",
        root=root,
        config=ReleaseConfig(**config),
    )


class TestReleasePipeline:
    @pytest.mark.asyncio
    async def test_full_run(self, repo: Path) -> None:
        issues = [make_issue(1), make_issue(2)]
        linear = MockLinearClient(labels=[PARENT], states=[DONE], issues=issues)
        slack = MockSlackClient()
        pipeline = ReleasePipeline(make_settings(repo), linear=linear, slack=slack)

        summary = await pipeline.run(release_date=date(2026, 10, 19))

        assert summary.context.version == "2.3.0"
        assert summary.context.scope_name == "mobile"
        assert summary.label.name == "mobile - 2.3.0"
        assert [i.identifier for i in summary.batch.updated] == ["MOB-1", "MOB-2"]
        assert all(linear.issue_states[i.id] == "Done" for i in issues)

        assert len(slack.messages) == 1
        message = slack.messages[0]
        assert message["channel"] == "#releases"
        assert message["text"] == summary.changelog
        assert "*Release Notes: `mobile-2.3.0`*" in message["text"]
        assert "*Release Date:* 10/19/2026" in message["text"]
        assert "*Total Issues:* 2" in message["text"]
        assert "Ship feature 1 - _Dev 1_" in message["text"]

    @pytest.mark.asyncio
    async def test_app_scope_and_expo_version(self, tmp_path: Path) -> None:
        app_dir = tmp_path / "apps" / "mobile-app"
        app_dir.mkdir(parents=True)
        (app_dir / "app.json").write_text(
            json.dumps({"expo": {"version": "2.3.0", "extra": {"ota": {"version": "4"}}}})
        )
        settings = make_settings(tmp_path, scopes={"mobile-app": "mobile"})
        settings = settings.model_copy(update={"app_name": "mobile-app"})
        linear = MockLinearClient(labels=[PARENT], states=[DONE], issues=[make_issue(1)])

        summary = await ReleasePipeline(settings, linear=linear, slack=MockSlackClient()).run()

        assert summary.context.version == "2.3.0-4"
        assert summary.label.name == "mobile - 2.3.0-4"

    @pytest.mark.asyncio
    async def test_no_ready_issues_fails_by_default(self, repo: Path) -> None:
        linear = MockLinearClient(labels=[PARENT], states=[DONE])
        slack = MockSlackClient()

        with pytest.raises(NoIssuesError, match="No issues found to update"):
            await ReleasePipeline(make_settings(repo), linear=linear, slack=slack).run()
        assert slack.messages == []

    @pytest.mark.asyncio
    async def test_no_ready_issues_empty_policy(self, repo: Path) -> None:
        linear = MockLinearClient(labels=[PARENT], states=[DONE])
        slack = MockSlackClient()
        settings = make_settings(repo, zero_issues=ZeroIssuesPolicy.EMPTY)

        summary = await ReleasePipeline(settings, linear=linear, slack=slack).run()

        assert summary.batch.issues == []
        assert "*Total Issues:* 0" in slack.messages[0]["text"]
        assert "•" not in slack.messages[0]["text"]

    @pytest.mark.asyncio
    async def test_missing_parent_label(self, repo: Path) -> None:
        linear = MockLinearClient(states=[DONE], issues=[make_issue(1)])

        with pytest.raises(LabelHierarchyError):
            await ReleasePipeline(make_settings(repo), linear=linear, slack=MockSlackClient()).run()
        assert linear.state_updates == []

    @pytest.mark.asyncio
    async def test_partial_failure_still_publishes(self, repo: Path) -> None:
        issues = [make_issue(1), make_issue(2), make_issue(3)]
        linear = MockLinearClient(
            labels=[PARENT], states=[DONE], issues=issues, fail_updates={"MOB-2"}
        )
        slack = MockSlackClient()

        summary = await ReleasePipeline(make_settings(repo), linear=linear, slack=slack).run()

        assert len(summary.batch.issues) == 3
        assert [r.issue.identifier for r in summary.batch.failed] == ["MOB-2"]
        assert "*Total Issues:* 3" in slack.messages[0]["text"]
        assert "MOB-2" in slack.messages[0]["text"]

    @pytest.mark.asyncio
    async def test_fail_on_update_errors(self, repo: Path) -> None:
        linear = MockLinearClient(
            labels=[PARENT], states=[DONE], issues=[make_issue(1)], fail_updates={"MOB-1"}
        )
        slack = MockSlackClient()
        settings = make_settings(repo, fail_on_update_errors=True)

        with pytest.raises(ReleaseError, match="MOB-1"):
            await ReleasePipeline(settings, linear=linear, slack=slack).run()
        assert slack.messages == []

    @pytest.mark.asyncio
    async def test_slack_failure_is_fatal(self, repo: Path) -> None:
        linear = MockLinearClient(labels=[PARENT], states=[DONE], issues=[make_issue(1)])

        with pytest.raises(SlackAPIError):
            await ReleasePipeline(
                make_settings(repo), linear=linear, slack=MockSlackClient(error="invalid_auth")
            ).run()

    @pytest.mark.asyncio
    async def test_overlapping_runs_share_one_label(self, repo: Path) -> None:
        """Two runs against one workspace: one creates, the other finds it."""
        linear = MockLinearClient(
            labels=[PARENT],
            states=[DONE],
            issues=[make_issue(1)],
        )
        settings = make_settings(repo, zero_issues=ZeroIssuesPolicy.EMPTY)
        first = ReleasePipeline(settings, linear=linear, slack=MockSlackClient())
        second = ReleasePipeline(settings, linear=linear, slack=MockSlackClient())

        results = await asyncio.gather(first.run(), second.run())

        assert results[0].label.id == results[1].label.id
        assert len(linear.created) == 1
        assert [label.name for label in linear.labels].count("mobile - 2.3.0") == 1

    @pytest.mark.asyncio
    async def test_version_label_naming(self, repo: Path) -> None:
        linear = MockLinearClient(labels=[PARENT], states=[DONE], issues=[make_issue(1)])
        settings = make_settings(repo, label_naming=LabelNaming.VERSION)

        summary = await ReleasePipeline(settings, linear=linear, slack=MockSlackClient()).run()

        assert summary.label.name == "2.3.0"
        assert linear.issue_labels["issue-1"] == [summary.label.id]

    @pytest.mark.asyncio
    async def test_details_failure_omits_issue_from_changelog(self, repo: Path) -> None:
        linear = MockLinearClient(
            labels=[PARENT],
            states=[DONE],
            issues=[make_issue(1), make_issue(2)],
            details={"issue-2": IssueDetails(assignee=Assignee(id="u2", name="Dev 2"))},
            fail_details={"MOB-1"},
        )
        slack = MockSlackClient()

        await ReleasePipeline(make_settings(repo), linear=linear, slack=slack).run()

        text = slack.messages[0]["text"]
        assert "MOB-1" not in text
        assert "MOB-2" in text

    @pytest.mark.asyncio
    async def test_connection_error_during_updates_aborts_run(self, repo: Path) -> None:
        issues = [make_issue(1), make_issue(2)]
        linear = MockLinearClient(labels=[PARENT], states=[DONE], issues=issues)
        linear.update_issue_state = AsyncMock(
            side_effect=httpx.ConnectError("connection refused")
        )
        slack = MockSlackClient()

        with pytest.raises(httpx.ConnectError):
            await ReleasePipeline(make_settings(repo), linear=linear, slack=slack).run()

        assert linear.issue_labels == {}
        assert slack.messages == []

    @pytest.mark.asyncio
    async def test_connection_error_during_details_aborts_run(self, repo: Path) -> None:
        issues = [make_issue(1), make_issue(2)]
        linear = MockLinearClient(labels=[PARENT], states=[DONE], issues=issues)
        linear.get_issue_details = AsyncMock(
            side_effect=httpx.ConnectError("connection refused")
        )
        slack = MockSlackClient()

        with pytest.raises(httpx.ConnectError):
            await ReleasePipeline(make_settings(repo), linear=linear, slack=slack).run()

        assert all(linear.issue_states[i.id] == "Done" for i in issues)
        assert slack.messages == []
