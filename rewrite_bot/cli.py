"""CLI entry point for rewrite-bot."""

from __future__ import annotations

from pathlib import Path

import click
from pydantic import ValidationError

from .config import load_settings
from .errors import ConfigurationError
from .models import DependencyTarget
from .pipeline import run_batch
from .shell import configure_logging


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="rewrite-bot")
@click.argument("token")
@click.argument("group_id")
@click.argument("artifact_id")
@click.argument("new_version")
@click.argument("repos", nargs=-1, required=True)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="TOML file with settings (top level or [tool.rewrite-bot]).",
)
@click.option("--branch-prefix", help="First segment of branch names. [default: openrewrite]")
@click.option("--base-branch", help="PR target branch. [default: the repository's default branch]")
@click.option(
    "--maven-home",
    type=click.Path(file_okay=False, path_type=Path),
    help=(
        "Maven installation to use. Precedence: this option, then MAVEN_HOME, "
        "then M2_HOME, then mvn on PATH."
    ),
)
@click.option(
    "--recipe-style",
    type=click.Choice(["config-file", "inline"]),
    help="Pass the recipe via the rewrite.yml descriptor or as inline properties.",
)
@click.option(
    "--timeout",
    "transform_timeout",
    type=click.FloatRange(min=0, min_open=True),
    help="Kill OpenRewrite after this many seconds. [default: no limit]",
)
@click.option(
    "--fail-on-error/--no-fail-on-error",
    default=None,
    help="Exit with status 1 if any repository failed. [default: no]",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(
    ctx: click.Context,
    token: str,
    group_id: str,
    artifact_id: str,
    new_version: str,
    repos: tuple[str, ...],
    config_path: Path | None,
    branch_prefix: str | None,
    base_branch: str | None,
    maven_home: Path | None,
    recipe_style: str | None,
    transform_timeout: float | None,
    fail_on_error: bool | None,
    verbose: bool,
) -> None:
    """Upgrade GROUP_ID:ARTIFACT_ID to NEW_VERSION in every REPO (owner/name).

    Each repository is cloned, rewritten with OpenRewrite, and gets a pull
    request when the recipe changed something. Failures are logged and the
    batch carries on with the next repository.
    """
    configure_logging(verbose=verbose)

    try:
        settings = load_settings(
            token,
            config_path,
            branch_prefix=branch_prefix,
            base_branch=base_branch,
            maven_home=maven_home,
            recipe_style=recipe_style,
            transform_timeout=transform_timeout,
            fail_on_error=fail_on_error,
        )
        target = DependencyTarget(
            group_id=group_id, artifact_id=artifact_id, new_version=new_version
        )
    except ConfigurationError as exc:
        raise click.UsageError(str(exc)) from exc
    except ValidationError as exc:
        raise click.UsageError(f"Invalid dependency coordinate: {exc}") from exc

    report = run_batch(repos, target, settings)
    ctx.exit(report.exit_code(settings.fail_on_error))
