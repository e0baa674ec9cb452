"""Workspace acquisition, release and branch setup.

Each repository unit gets its own temporary directory holding a fresh
clone. open_workspace() guarantees the directory is removed on every exit
path, so a long batch never accumulates checkouts.
"""

from __future__ import annotations

import base64
import logging
import shutil
import tempfile
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from urllib.parse import urlsplit

from .config import Settings
from .errors import BranchError, CloneError, GitCommandError, redact
from .models import RepositoryRef, Workspace
from .shell import git

log = logging.getLogger(__name__)

TOKEN_USER = "x-access-token"


def clone_url(repo: RepositoryRef, settings: Settings) -> str:
    """Build the clone URL. Credentials never appear in it."""
    return f"{settings.git_base_url.rstrip('/')}/{repo.owner}/{repo.name}.git"


def git_auth_env(settings: Settings) -> dict[str, str]:
    """Environment that authenticates git against HTTPS remotes.

    The token travels as an ``http.extraHeader`` set through git's
    ``GIT_CONFIG_*`` variables, so it is neither on the command line nor
    written to the clone's ``.git/config``.
    """
    if urlsplit(settings.git_base_url).scheme != "https":
        return {}
    credentials = f"{TOKEN_USER}:{settings.token.get_secret_value()}"
    basic = base64.b64encode(credentials.encode()).decode("ascii")
    return {
        "GIT_CONFIG_COUNT": "1",
        "GIT_CONFIG_KEY_0": "http.extraHeader",
        "GIT_CONFIG_VALUE_0": f"Authorization: Basic {basic}",
    }


def acquire_workspace(repo: RepositoryRef, settings: Settings) -> Workspace:
    """Clone ``repo`` into a fresh temporary directory.

    Raises:
        CloneError: On network or authentication failure, or when the
            repository does not exist. The directory is already gone.
    """
    root = Path(tempfile.mkdtemp(prefix=f"rewrite-bot-{repo.name}-"))
    log.info("Cloning %s into %s", repo, root)
    try:
        git(
            "clone", "--quiet", clone_url(repo, settings), str(root),
            env=git_auth_env(settings),
        )
    except GitCommandError as exc:
        shutil.rmtree(root, ignore_errors=True)
        message = redact(exc.stderr, settings.token.get_secret_value())
        raise CloneError(f"Failed to clone {repo}: {message}") from None
    return Workspace(root=root, repo=repo)


def release_workspace(workspace: Workspace) -> None:
    """Recursively delete the workspace. A missing directory is fine."""
    if workspace.root.exists():
        shutil.rmtree(workspace.root)
        log.debug("Removed workspace %s", workspace.root)


@contextmanager
def open_workspace(repo: RepositoryRef, settings: Settings) -> Iterator[Workspace]:
    """Acquire a workspace for the duration of the block, then release it.

    When the block raises, a failure to remove the directory is logged and
    the block's own exception propagates.
    """
    workspace = acquire_workspace(repo, settings)
    try:
        yield workspace
    except BaseException:
        try:
            release_workspace(workspace)
        except OSError:
            log.exception("Failed to remove workspace %s", workspace.root)
        raise
    release_workspace(workspace)


def _now_millis() -> int:
    return time.time_ns() // 1_000_000


class BranchNamer:
    """Generates ``<prefix>/update-<artifact>-<millis>`` branch names.

    Timestamps never repeat within one namer: a call landing in the same
    millisecond as the previous one gets the previous stamp plus one.
    """

    def __init__(self, prefix: str, clock: Callable[[], int] = _now_millis) -> None:
        self.prefix = prefix.strip("/")
        self._clock = clock
        self._last = 0

    def __call__(self, artifact_id: str) -> str:
        stamp = max(self._clock(), self._last + 1)
        self._last = stamp
        return f"{self.prefix}/update-{artifact_id}-{stamp}"


def create_branch(workspace: Workspace, branch: str) -> None:
    """Create and check out ``branch`` from the current HEAD.

    Raises:
        BranchError: If HEAD is detached or the checkout fails.
    """
    log.info("Creating branch %s", branch)
    if not git("symbolic-ref", "-q", "HEAD", cwd=workspace.root, check=False):
        raise BranchError(f"{workspace.repo}: HEAD is detached, refusing to branch")
    try:
        git("checkout", "-q", "-b", branch, cwd=workspace.root)
    except GitCommandError as exc:
        raise BranchError(f"{workspace.repo}: cannot create {branch}: {exc.stderr}") from exc


def default_branch(workspace: Workspace, settings: Settings) -> str:
    """Branch pull requests should target.

    The configured base branch wins; otherwise whatever origin/HEAD
    pointed at when the clone was made, falling back to ``main``.
    """
    if settings.base_branch:
        return settings.base_branch
    ref = git(
        "symbolic-ref", "--short", "refs/remotes/origin/HEAD",
        cwd=workspace.root, check=False,
    )
    if ref.startswith("origin/"):
        return ref[len("origin/"):]
    return "main"
