"""Release pipeline orchestrator.

Stages run strictly in order, each consuming the previous one's output:

1. Version + scope resolution (local manifests, inputs)
2. Version label create-or-get (Linear)
3. Issue transitions to Done + label attachment (Linear)
4. Changelog compilation (Linear) and publishing (Slack)

Any ReleaseError raised by a stage aborts the run. Per-issue failures in
stages 3 and 4 are recorded and logged; ``fail_on_update_errors`` turns
stage-3 failures into a fatal error after the batch completes.
"""

from __future__ import annotations

from datetime import date

from linear_release.changelog import compile_changelog
from linear_release.clients.linear import LinearClient, LinearClientProtocol
from linear_release.clients.slack import SlackClient, SlackClientProtocol
from linear_release.config import ReleaseSettings
from linear_release.errors import ReleaseError
from linear_release.issues import get_done_state, update_issues
from linear_release.labels import ensure_version_label
from linear_release.logging_config import get_logger
from linear_release.notify import send_to_slack
from linear_release.schemas import ReleaseContext, ReleaseSummary
from linear_release.scope import resolve_scope_name
from linear_release.version import resolve_version

logger = get_logger(__name__)


class ReleasePipeline:
    """Runs one release end to end.

    Usage:
        pipeline = ReleasePipeline(settings)
        summary = await pipeline.run()

    Clients default to the real Linear and Slack APIs built from the
    settings' tokens; tests pass mocks.
    """

    def __init__(
        self,
        settings: ReleaseSettings,
        linear: LinearClientProtocol | None = None,
        slack: SlackClientProtocol | None = None,
    ) -> None:
        self.settings = settings
        self.linear = linear or LinearClient(api_key=settings.linear_api_key)
        self.slack = slack or SlackClient(token=settings.slack_token)

    def resolve_context(self) -> ReleaseContext:
        config = self.settings.config
        scope_name = resolve_scope_name(
            self.settings.app_name,
            self.settings.repository,
            scopes=config.scopes,
            source=config.scope_source,
        )
        version = resolve_version(self.settings.app_name, self.settings.root)
        return ReleaseContext(version=version, scope_name=scope_name)

    async def run(self, release_date: date | None = None) -> ReleaseSummary:
        """Execute all stages.

        Raises:
            ReleaseError: On any fatal condition
        """
        config = self.settings.config
        context = self.resolve_context()
        logger.info(
            "release_started",
            scope=context.scope_name,
            version=context.version,
        )

        label = await ensure_version_label(
            self.linear,
            context.scope_name,
            context.version,
            naming=config.label_naming,
        )
        done_state = await get_done_state(
            self.linear, config.done_state, team_id=label.team_id
        )

        batch = await update_issues(
            self.linear,
            version_label=label,
            label_name=context.scope_name,
            state_id=done_state.id,
            ready_state=config.ready_state,
            zero_issues=config.zero_issues,
        )
        if batch.failed and config.fail_on_update_errors:
            failed = ", ".join(r.issue.identifier for r in batch.failed)
            raise ReleaseError(f"Failed to update {len(batch.failed)} issue(s): {failed}")

        changelog = await compile_changelog(
            self.linear,
            batch.issues,
            scope_name=context.scope_name,
            version=context.version,
            include_pull_requests=config.include_pull_requests,
            release_date=release_date,
        )
        logger.info("changelog_compiled", changelog=changelog)

        await send_to_slack(self.slack, self.settings.slack_channel, changelog)
        logger.info("release_complete", scope=context.scope_name, version=context.version)
        return ReleaseSummary(
            context=context,
            label=label,
            batch=batch,
            changelog=changelog,
        )
