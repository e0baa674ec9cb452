"""Runtime configuration.

A single Settings object carries everything shared across repository
units (credentials, bot identity, engine location). It is built once per
batch from defaults, an optional TOML file, and CLI options, in increasing
order of precedence.

Config files are read with tomlkit. Keys may sit at the top level or under
``[tool.rewrite-bot]``, and may use dashes or underscores::

    [tool.rewrite-bot]
    branch-prefix = "deps"
    maven-home = "/opt/maven"
    transform-timeout = 900
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import tomlkit
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError
from tomlkit.exceptions import ParseError

from .errors import ConfigurationError

DEFAULT_RECIPE_NAME = "com.rewritebot.UpgradeDependencyVersion"

RecipeStyle = Literal["config-file", "inline"]


class Settings(BaseModel):
    """Process-wide settings passed explicitly into every pipeline stage.

    Attributes:
        token: GitHub token used for clone, push and the REST API.
        branch_prefix: First path segment of generated branch names.
        base_branch: PR target; None means the repository's default branch.
        bot_name: Commit author name.
        bot_email: Commit author email.
        git_base_url: Where repositories are cloned from.
        api_url: GitHub REST API root.
        maven_home: Explicit Maven installation; wins over MAVEN_HOME/M2_HOME.
        maven_goal: Goal that runs OpenRewrite.
        recipe_name: Name of the composite recipe in the descriptor.
        recipe_style: ``config-file`` points Maven at the descriptor,
            ``inline`` passes the recipe options as properties.
        descriptor_name: File name of the descriptor in the workspace root.
        transform_timeout: Seconds before the engine is killed; None waits forever.
        fail_on_error: Exit non-zero when any repository failed.
    """

    model_config = ConfigDict(extra="forbid")

    token: SecretStr
    branch_prefix: str = "openrewrite"
    base_branch: str | None = None
    bot_name: str = "OpenRewrite Bot"
    bot_email: str = "bot@example.com"
    git_base_url: str = "https://github.com"
    api_url: str = "https://api.github.com"
    maven_home: Path | None = None
    maven_goal: str = "rewrite:run"
    recipe_name: str = DEFAULT_RECIPE_NAME
    recipe_style: RecipeStyle = "config-file"
    descriptor_name: str = "rewrite.yml"
    transform_timeout: float | None = Field(default=None, gt=0)
    fail_on_error: bool = False


def _normalize_keys(table: dict[str, Any]) -> dict[str, Any]:
    return {key.replace("-", "_"): value for key, value in table.items()}


def load_config_file(path: Path) -> dict[str, Any]:
    """Read settings overrides from a TOML file.

    Returns a plain dict with underscore keys. A ``[tool.rewrite-bot]``
    table takes precedence over top-level keys.

    Raises:
        ConfigurationError: If the file is missing, not valid TOML, or its
            ``tool`` tables have the wrong shape.
    """
    try:
        doc = tomlkit.parse(path.read_text()).unwrap()
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Config file not found: {path}") from exc
    except ParseError as exc:
        raise ConfigurationError(f"Invalid TOML in {path}: {exc}") from exc

    tool = doc.get("tool", {})
    if not isinstance(tool, dict):
        raise ConfigurationError(f"'tool' in {path} must be a table")
    section = tool.get("rewrite-bot")
    if section is not None:
        if not isinstance(section, dict):
            raise ConfigurationError(f"'tool.rewrite-bot' in {path} must be a table")
        return _normalize_keys(section)
    return _normalize_keys({k: v for k, v in doc.items() if k != "tool"})


def load_settings(
    token: str, config_path: Path | None = None, **overrides: Any
) -> Settings:
    """Build Settings from defaults, an optional config file, and overrides.

    Overrides set to None are ignored so unset CLI options fall through to
    the file or the default.

    Raises:
        ConfigurationError: If any value fails validation.
    """
    values: dict[str, Any] = {}
    if config_path is not None:
        values.update(load_config_file(config_path))
    values.pop("token", None)
    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return Settings(token=token, **values)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}") from exc
