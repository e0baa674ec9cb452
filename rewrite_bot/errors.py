"""Error taxonomy for the per-repository pipeline.

Every stage raises its own subclass of RewriteBotError. The batch
orchestrator catches them at the repository boundary, so none of these
ever terminates a batch.
"""

from __future__ import annotations

from collections.abc import Sequence

REDACTED = "***"


def redact(text: str, secret: str | None) -> str:
    """Replace every occurrence of ``secret`` in ``text``."""
    if not secret:
        return text
    return text.replace(secret, REDACTED)


class RewriteBotError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(RewriteBotError):
    """Raised when settings or the config file are invalid."""


class InputError(RewriteBotError):
    """Raised for a malformed ``owner/name`` repository token."""


class GitCommandError(RewriteBotError):
    """A git invocation exited non-zero."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str) -> None:
        self.command = ("git", *args)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"{' '.join(self.command)} exited with {returncode}: {stderr or '<no output>'}"
        )


class CloneError(RewriteBotError):
    """Cloning failed: network, authentication, or missing repository."""


class BranchError(RewriteBotError):
    """The feature branch could not be created (detached or corrupt HEAD)."""


class TransformationFailed(RewriteBotError):
    """The transformation engine exited non-zero, timed out, or was not found."""

    def __init__(self, message: str, *, exit_code: int | None = None, output: str = "") -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.output = output


class CommitError(RewriteBotError):
    """Staging or committing the transformed tree failed."""


class PushError(RewriteBotError):
    """Pushing the branch was rejected or failed in transit."""


class PublishError(RewriteBotError):
    """The hosting platform refused to open the pull request."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
