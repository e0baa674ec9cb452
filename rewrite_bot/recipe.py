"""OpenRewrite recipe descriptor.

The descriptor is a declarative YAML file naming one composite recipe that
wraps UpgradeDependencyVersion. It is written into the workspace root
before the engine runs and must never be committed.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from .config import Settings
from .models import DependencyTarget, Workspace

log = logging.getLogger(__name__)

RECIPE_TYPE = "specs.openrewrite.org/v1beta/recipe"
UPGRADE_RECIPE = "org.openrewrite.maven.UpgradeDependencyVersion"


def recipe_options(target: DependencyTarget) -> dict[str, str]:
    """Options of the UpgradeDependencyVersion recipe, in engine order."""
    return {
        "groupId": target.group_id,
        "artifactId": target.artifact_id,
        "newVersion": target.new_version,
    }


def render_descriptor(target: DependencyTarget, recipe_name: str) -> str:
    doc = {
        "type": RECIPE_TYPE,
        "name": recipe_name,
        "displayName": f"Upgrade {target.coordinate} to {target.new_version}",
        "recipeList": [{UPGRADE_RECIPE: recipe_options(target)}],
    }
    return yaml.safe_dump(doc, explicit_start=True, sort_keys=False)


def write_descriptor(
    workspace: Workspace, target: DependencyTarget, settings: Settings
) -> Path:
    """Write the descriptor into the workspace root and return its path."""
    path = workspace.root / settings.descriptor_name
    log.info("Writing recipe descriptor %s", path.name)
    path.write_text(render_descriptor(target, settings.recipe_name), encoding="utf-8")
    return path
