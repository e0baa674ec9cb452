"""Running OpenRewrite through Maven.

Which ``mvn`` gets executed is decided in this order:

1. ``Settings.maven_home`` (``--maven-home``), using ``<home>/bin/mvn``;
2. the ``MAVEN_HOME`` environment variable;
3. the ``M2_HOME`` environment variable;
4. ``mvn`` found on ``PATH``.

An explicitly configured home that lacks ``bin/mvn`` is an error rather
than a reason to fall through, so a typo never silently runs another Maven.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path

from .config import Settings
from .errors import TransformationFailed
from .models import DependencyTarget, TransformationResult, Workspace
from .recipe import UPGRADE_RECIPE, recipe_options
from .shell import run

log = logging.getLogger(__name__)

MAVEN_HOME_VARS = ("MAVEN_HOME", "M2_HOME")
OUTPUT_TAIL_LINES = 40


def _mvn_in(home: Path) -> Path:
    name = "mvn.cmd" if os.name == "nt" else "mvn"
    return home / "bin" / name


def resolve_maven_executable(settings: Settings) -> str:
    """Locate the Maven executable following the documented precedence.

    Raises:
        TransformationFailed: If no usable executable can be found.
    """
    if settings.maven_home is not None:
        exe = _mvn_in(settings.maven_home)
        if not exe.is_file():
            raise TransformationFailed(f"No Maven executable at {exe} (from --maven-home)")
        log.info("Using Maven home: %s", settings.maven_home)
        return str(exe)

    for var in MAVEN_HOME_VARS:
        home = os.environ.get(var)
        if home:
            log.info("Using Maven home from %s: %s", var, home)
            return str(_mvn_in(Path(home)))

    log.warning("MAVEN_HOME/M2_HOME not set, relying on mvn from PATH")
    exe = shutil.which("mvn")
    if exe is None:
        raise TransformationFailed("mvn not found on PATH and no Maven home configured")
    return exe


def build_command(
    executable: str, descriptor: Path, target: DependencyTarget, settings: Settings
) -> list[str]:
    """Maven command line for the configured invocation style.

    Both styles activate the same UpgradeDependencyVersion options.
    """
    cmd = [executable, "-B", settings.maven_goal]
    if settings.recipe_style == "inline":
        options = ",".join(f"{k}={v}" for k, v in recipe_options(target).items())
        cmd += [f"-Drewrite.activeRecipes={UPGRADE_RECIPE}", f"-Drewrite.options={options}"]
    else:
        cmd += [
            f"-Drewrite.configLocation={descriptor}",
            f"-Drewrite.activeRecipes={settings.recipe_name}",
        ]
    return cmd


def _tail(output: str, lines: int = OUTPUT_TAIL_LINES) -> str:
    return "\n".join(output.splitlines()[-lines:])


def run_transformation(
    workspace: Workspace,
    descriptor: Path,
    target: DependencyTarget,
    settings: Settings,
) -> TransformationResult:
    """Run the recipe against the workspace and wait for it to finish.

    Raises:
        TransformationFailed: On a non-zero exit, on timeout, or when Maven
            cannot be started.
    """
    log.info("Applying OpenRewrite recipe to upgrade %s", target.coordinate)
    cmd = build_command(resolve_maven_executable(settings), descriptor, target, settings)
    log.debug("Running: %s", " ".join(cmd))

    try:
        proc = run(*cmd, cwd=workspace.root, timeout=settings.transform_timeout)
    except subprocess.TimeoutExpired as exc:
        raise TransformationFailed(
            f"OpenRewrite timed out after {settings.transform_timeout}s"
        ) from exc
    except OSError as exc:
        raise TransformationFailed(f"Could not start {cmd[0]}: {exc}") from exc

    result = TransformationResult(exit_code=proc.returncode, output=proc.stdout or "", command=cmd)
    if not result.succeeded:
        log.error("OpenRewrite failed with exit code %d:\n%s", result.exit_code, _tail(result.output))
        raise TransformationFailed(
            f"OpenRewrite exited with code {result.exit_code}",
            exit_code=result.exit_code,
            output=result.output,
        )
    log.info("OpenRewrite completed successfully")
    return result
