"""Batch pipeline: clone → branch → rewrite → detect → commit → publish.

Each repository is one unit processed start to finish before the next:
1. Parse the ``owner/name`` string
2. Clone into a private temporary workspace
3. Cut a uniquely named branch
4. Write the recipe descriptor and run OpenRewrite
5. Stop quietly if nothing changed
6. Commit everything except the descriptor
7. Push the branch and open a pull request

Any failure aborts only the current unit. The workspace is removed on
every exit path and the batch moves on to the next repository.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .changes import commit_changes, has_changes
from .config import Settings
from .errors import RewriteBotError
from .github import GitHubClient, publish
from .maven import run_transformation
from .models import (
    BatchReport,
    DependencyTarget,
    RepositoryRef,
    Status,
    UnitOutcome,
)
from .recipe import write_descriptor
from .shell import step
from .workspace import BranchNamer, create_branch, default_branch, open_workspace

log = logging.getLogger(__name__)


def process_repository(
    repo_token: str,
    target: DependencyTarget,
    settings: Settings,
    client: GitHubClient,
    namer: BranchNamer,
) -> UnitOutcome:
    """Run the full pipeline for one repository.

    Stage errors propagate to the caller; the workspace is gone by then.
    """
    repo = RepositoryRef.parse(repo_token)

    with open_workspace(repo, settings) as workspace:
        branch = namer(target.artifact_id)
        create_branch(workspace, branch)

        descriptor = write_descriptor(workspace, target, settings)
        run_transformation(workspace, descriptor, target, settings)

        if not has_changes(workspace, ignore=[descriptor]):
            log.info("No changes detected in %s", repo)
            return UnitOutcome(repo=repo_token, status=Status.NO_CHANGES, branch=branch)

        commit = commit_changes(workspace, descriptor, target, settings)
        if not commit.committed:
            return UnitOutcome(
                repo=repo_token,
                status=Status.SKIPPED,
                detail="only the recipe descriptor changed",
                branch=branch,
            )

        base = default_branch(workspace, settings)
        pr = publish(
            workspace,
            branch,
            target,
            client,
            base,
            settings=settings,
        )
        log.info("PR created successfully for %s", repo)
        return UnitOutcome(
            repo=repo_token,
            status=Status.SUCCESS,
            detail=commit.message,
            branch=branch,
            pull_request=pr,
        )


def _log_summary(report: BatchReport) -> None:
    step("Summary")
    for outcome in report.outcomes:
        suffix = f" ({outcome.detail})" if outcome.detail else ""
        if outcome.pull_request is not None:
            suffix = f" ({outcome.pull_request.url})"
        level = logging.ERROR if outcome.status is Status.FAILED else logging.INFO
        log.log(level, "  %s: %s%s", outcome.repo, outcome.status.value, suffix)


def run_batch(
    repos: Iterable[str],
    target: DependencyTarget,
    settings: Settings,
    *,
    client: GitHubClient | None = None,
    namer: BranchNamer | None = None,
) -> BatchReport:
    """Process every repository once, in order, isolating failures.

    Args:
        repos: ``owner/name`` strings.
        target: Dependency coordinate and version, shared by all units.
        settings: Shared configuration.
        client: GitHub client; created from settings and closed here when
            not supplied.
        namer: Branch name generator; one per batch by default.

    Returns:
        A BatchReport with one outcome per input string.
    """
    namer = namer or BranchNamer(settings.branch_prefix)
    owns_client = client is None
    client = client or GitHubClient.from_settings(settings)
    report = BatchReport()

    try:
        for repo_token in repos:
            step(f"Processing: {repo_token}")
            try:
                outcome = process_repository(repo_token, target, settings, client, namer)
            except RewriteBotError as exc:
                log.error("Error processing %s: %s", repo_token, exc)
                outcome = UnitOutcome(
                    repo=repo_token, status=Status.FAILED, detail=str(exc)
                )
            except Exception as exc:
                log.exception("Unexpected error processing %s", repo_token)
                outcome = UnitOutcome(
                    repo=repo_token,
                    status=Status.FAILED,
                    detail=f"{type(exc).__name__}: {exc}",
                )
            report.outcomes.append(outcome)
    finally:
        if owns_client:
            client.close()

    _log_summary(report)
    return report
