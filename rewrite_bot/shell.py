"""Shell and git utilities.

Provides thin wrappers around subprocess calls for running git and other
external commands, plus logging helpers used across the pipeline.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping
from pathlib import Path

from .errors import GitCommandError

log = logging.getLogger(__name__)


def _git_env(extra: Mapping[str, str] | None = None) -> dict[str, str]:
    # Never block on a credential prompt; fail instead.
    return {**os.environ, "GIT_TERMINAL_PROMPT": "0", **(extra or {})}


def git(
    *args: str,
    cwd: Path | str | None = None,
    check: bool = True,
    env: Mapping[str, str] | None = None,
) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "status", "--porcelain").
        cwd: Repository to run in. Defaults to the current directory.
        check: If True (default), raise GitCommandError on non-zero exit.
               Set to False for checks that may legitimately fail.
        env: Extra environment variables for this invocation only.

    Returns:
        Stripped stdout from the git command.
    """
    result = subprocess.run(
        ["git", *args], cwd=cwd, env=_git_env(env), capture_output=True, text=True, check=False
    )
    if check and result.returncode != 0:
        raise GitCommandError(args, result.returncode, result.stderr.strip())
    return result.stdout.strip()


def git_raw(*args: str, cwd: Path | str | None = None) -> str:
    """Like git(), but return stdout untouched (needed for -z output)."""
    result = subprocess.run(
        ["git", *args], cwd=cwd, env=_git_env(), capture_output=True, text=True, check=False
    )
    if result.returncode != 0:
        raise GitCommandError(args, result.returncode, result.stderr.strip())
    return result.stdout


def run(
    *args: str, cwd: Path | str | None = None, timeout: float | None = None
) -> subprocess.CompletedProcess[str]:
    """Run an arbitrary command, capturing stdout and stderr together.

    The exit code is not checked; callers decide what a failure means.
    subprocess.TimeoutExpired propagates when ``timeout`` elapses, after
    the child has been killed.
    """
    return subprocess.run(
        args,
        cwd=cwd,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        timeout=timeout,
        check=False,
    )


def step(msg: str) -> None:
    """Log a visually distinct step header.

    Used to separate repositories in a batch run.
    """
    log.info("%s %s %s", "=" * 3, msg, "=" * 3)


def configure_logging(*, verbose: bool = False, force: bool = False) -> None:
    """Initialise the root logger with a terse format suitable for CLI output.

    Pass ``force=True`` to reconfigure during tests.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
