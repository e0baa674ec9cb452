"""Data models for rewrite-bot.

These Pydantic models represent the values passed between pipeline stages.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import InputError

_SEGMENT = re.compile(r"^[A-Za-z0-9_.-]+$")


class RepositoryRef(BaseModel):
    """A GitHub repository identified by ``owner/name``."""

    model_config = ConfigDict(frozen=True)

    owner: str
    name: str

    @classmethod
    def parse(cls, token: str) -> RepositoryRef:
        """Parse an ``owner/name`` token.

        A trailing ``.git`` on the name is dropped.

        Raises:
            InputError: If the token is not exactly two valid segments.
        """
        parts = token.strip().split("/")
        if len(parts) != 2:
            raise InputError(f"Invalid repository {token!r}: expected owner/name")
        owner, name = parts
        if name.endswith(".git"):
            name = name[: -len(".git")]
        for segment in (owner, name):
            if not segment or not _SEGMENT.match(segment) or segment in {".", ".."}:
                raise InputError(f"Invalid repository {token!r}: expected owner/name")
        return cls(owner=owner, name=name)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def __str__(self) -> str:
        return self.full_name


class DependencyTarget(BaseModel):
    """The Maven coordinate to upgrade and its new version.

    Shared by every repository in a batch, so it is frozen.
    """

    model_config = ConfigDict(frozen=True)

    group_id: str
    artifact_id: str
    new_version: str

    @field_validator("group_id", "artifact_id", "new_version")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @property
    def coordinate(self) -> str:
        return f"{self.group_id}:{self.artifact_id}"

    @property
    def commit_message(self) -> str:
        return f"chore: upgrade {self.artifact_id} to {self.new_version}"


class Workspace(BaseModel):
    """An ephemeral checkout owned by exactly one repository unit.

    Attributes:
        root: Temporary directory holding the clone.
        repo: The repository checked out there.
    """

    root: Path
    repo: RepositoryRef


class TransformationResult(BaseModel):
    """Outcome of one transformation engine invocation."""

    exit_code: int
    output: str = ""
    command: list[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class CommitResult(BaseModel):
    """Result of the commit composer.

    ``committed`` is False when nothing but pipeline artifacts was staged,
    in which case no commit was created.
    """

    committed: bool
    message: str
    sha: str | None = None
    staged_paths: list[str] = Field(default_factory=list)


class PullRequestDescriptor(BaseModel):
    """Payload for opening a pull request."""

    title: str
    body: str
    head: str
    base: str

    @classmethod
    def for_upgrade(
        cls, target: DependencyTarget, repo: RepositoryRef, head: str, base: str
    ) -> PullRequestDescriptor:
        body = "\n".join(
            [
                "Automated dependency update via OpenRewrite",
                "",
                f"Repository: {repo.full_name}",
                f"Dependency: {target.coordinate}",
                f"New Version: {target.new_version}",
                "Created by: OpenRewrite Dependency Update Bot",
            ]
        )
        return cls(title=target.commit_message, body=body, head=head, base=base)


class PullRequestRef(BaseModel):
    """A pull request created on the hosting platform."""

    number: int
    url: str


class Status(str, Enum):
    SUCCESS = "success"
    NO_CHANGES = "no-changes"
    SKIPPED = "skipped"
    FAILED = "failed"


class UnitOutcome(BaseModel):
    """Final state of one repository's pipeline run."""

    repo: str
    status: Status
    detail: str = ""
    branch: str | None = None
    pull_request: PullRequestRef | None = None


class BatchReport(BaseModel):
    """Outcomes for every repository in a batch, in input order."""

    outcomes: list[UnitOutcome] = Field(default_factory=list)

    @property
    def failed(self) -> list[UnitOutcome]:
        return [o for o in self.outcomes if o.status is Status.FAILED]

    @property
    def succeeded(self) -> list[UnitOutcome]:
        return [o for o in self.outcomes if o.status is Status.SUCCESS]

    def exit_code(self, fail_on_error: bool) -> int:
        """Process exit status for this batch under the given policy."""
        return 1 if fail_on_error and self.failed else 0
