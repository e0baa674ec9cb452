"""Change detection and commit composition.

The commit composer stages the whole tree for simplicity, then takes the
recipe descriptor back out of the index before deciding whether anything
is left worth committing.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from .config import Settings
from .errors import CommitError, GitCommandError
from .models import CommitResult, DependencyTarget, Workspace
from .shell import git, git_raw

log = logging.getLogger(__name__)


def _relative(workspace: Workspace, path: Path | str) -> str:
    p = Path(path)
    if p.is_absolute():
        p = p.relative_to(workspace.root)
    return p.as_posix()


def _split_z(output: str) -> list[str]:
    return [item for item in output.split("\0") if item]


def changed_paths(workspace: Workspace, ignore: Iterable[Path | str] = ()) -> list[str]:
    """Paths that differ from HEAD, tracked or untracked.

    Args:
        workspace: Checkout to inspect.
        ignore: Paths (absolute or workspace-relative) to leave out.
    """
    ignored = {_relative(workspace, p) for p in ignore}
    out = git_raw(
        "status", "--porcelain", "-z", "--untracked-files=all", cwd=workspace.root
    )
    paths: list[str] = []
    entries = iter(out.split("\0"))
    for entry in entries:
        if not entry:
            continue
        status, path = entry[:2], entry[3:]
        if path not in ignored:
            paths.append(path)
        # Renames and copies are followed by the original path
        if "R" in status or "C" in status:
            next(entries, None)
    return paths


def has_changes(workspace: Workspace, ignore: Iterable[Path | str] = ()) -> bool:
    """True when the working tree is dirty, ignoring the given paths."""
    paths = changed_paths(workspace, ignore)
    for path in paths:
        log.debug("  changed: %s", path)
    return bool(paths)


def staged_paths(workspace: Workspace, *, diff_filter: str | None = None) -> list[str]:
    args = ["diff", "--cached", "--name-only", "-z"]
    if diff_filter:
        args.append(f"--diff-filter={diff_filter}")
    return _split_z(git_raw(*args, cwd=workspace.root))


def unstage(workspace: Workspace, path: Path | str) -> bool:
    """Remove ``path`` from the index if it is staged.

    Returns False when the path was not staged, which is not an error.
    """
    rel = _relative(workspace, path)
    if rel not in staged_paths(workspace):
        log.debug("%s is not staged, nothing to exclude", rel)
        return False
    git("reset", "-q", "--", rel, cwd=workspace.root)
    log.info("Excluded %s from the commit", rel)
    return True


def commit_changes(
    workspace: Workspace,
    descriptor: Path,
    target: DependencyTarget,
    settings: Settings,
) -> CommitResult:
    """Stage everything except the descriptor and commit as the bot.

    Returns a CommitResult with ``committed=False`` instead of creating an
    empty commit when only the descriptor had changed.

    Raises:
        CommitError: If any git step fails.
    """
    message = target.commit_message
    try:
        log.info("Staging files")
        git("add", "--all", cwd=workspace.root)
        unstage(workspace, descriptor)

        remaining = staged_paths(workspace, diff_filter="AM")
        if not remaining:
            log.warning("No changes besides %s were staged, skipping commit", descriptor.name)
            return CommitResult(committed=False, message=message)

        git(
            "-c", f"user.name={settings.bot_name}",
            "-c", f"user.email={settings.bot_email}",
            "commit", "-q",
            "-m", message,
            f"--author={settings.bot_name} <{settings.bot_email}>",
            cwd=workspace.root,
        )
        sha = git("rev-parse", "HEAD", cwd=workspace.root)
    except GitCommandError as exc:
        raise CommitError(f"{workspace.repo}: commit failed: {exc}") from exc

    log.info("Committed %s: %s", sha[:12], message)
    return CommitResult(committed=True, message=message, sha=sha, staged_paths=remaining)
