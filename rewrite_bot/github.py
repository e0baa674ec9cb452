"""Publishing: push the branch, then open a pull request on GitHub."""

from __future__ import annotations

import logging
from types import TracebackType

import httpx

from .config import Settings
from .errors import GitCommandError, PublishError, PushError, redact
from .models import (
    DependencyTarget,
    PullRequestDescriptor,
    PullRequestRef,
    RepositoryRef,
    Workspace,
)
from .shell import git
from .workspace import git_auth_env

log = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_SECONDS = 30.0


def push_branch(
    workspace: Workspace, branch: str, settings: Settings | None = None
) -> None:
    """Push ``branch`` to origin, authenticating with ``settings.token``.

    Raises:
        PushError: On rejection, authorization failure, or network failure.
    """
    log.info("Pushing %s", branch)
    try:
        git(
            "push", "--quiet", "--set-upstream", "origin", branch,
            cwd=workspace.root, env=git_auth_env(settings) if settings else None,
        )
    except GitCommandError as exc:
        token = settings.token.get_secret_value() if settings else None
        message = redact(exc.stderr, token)
        raise PushError(f"{workspace.repo}: push of {branch} failed: {message}") from None
    log.info("Branch pushed successfully")


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if not isinstance(payload, dict):
        return response.reason_phrase
    message = str(payload.get("message", response.reason_phrase))
    details = [
        e.get("message") or e.get("code", "")
        for e in payload.get("errors", [])
        if isinstance(e, dict)
    ]
    details = [d for d in details if d]
    if details:
        message += ": " + "; ".join(details)
    return message


class GitHubClient:
    """Minimal GitHub REST client shared by every unit of a batch.

    Owns its httpx.Client unless one is passed in, in which case the
    caller is responsible for closing it.
    """

    def __init__(
        self,
        token: str,
        api_url: str = "https://api.github.com",
        *,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(timeout=_DEFAULT_TIMEOUT_SECONDS)
        self._base_url = api_url.rstrip("/")
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> GitHubClient:
        return cls(settings.token.get_secret_value(), settings.api_url)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def create_pull_request(
        self, repo: RepositoryRef, pr: PullRequestDescriptor
    ) -> PullRequestRef:
        """Open a pull request from ``pr.head`` into ``pr.base``.

        Raises:
            PublishError: On a non-2xx response, a transport failure, or a
                success body without the pull request number and URL.
        """
        url = f"{self._base_url}/repos/{repo.owner}/{repo.name}/pulls"
        try:
            response = self._client.post(
                url, headers=self._headers, json=pr.model_dump()
            )
        except httpx.HTTPError as exc:
            raise PublishError(f"{repo}: GitHub request failed: {exc}") from exc

        if response.is_error:
            raise PublishError(
                f"{repo}: could not open pull request ({response.status_code}): "
                f"{_error_message(response)}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
            return PullRequestRef(number=data["number"], url=data["html_url"])
        except (ValueError, KeyError, TypeError) as exc:
            raise PublishError(
                f"{repo}: unexpected pull request response ({response.status_code}): "
                f"{response.text[:200]!r}",
                status_code=response.status_code,
            ) from exc


def publish(
    workspace: Workspace,
    branch: str,
    target: DependencyTarget,
    client: GitHubClient,
    base: str,
    settings: Settings | None = None,
) -> PullRequestRef:
    """Push the branch and open the upgrade pull request."""
    push_branch(workspace, branch, settings)
    log.info("Creating pull request into %s", base)
    pr = PullRequestDescriptor.for_upgrade(target, workspace.repo, head=branch, base=base)
    ref = client.create_pull_request(workspace.repo, pr)
    log.info("Pull request #%d created: %s", ref.number, ref.url)
    return ref
