"""Shared test fixtures.

End-to-end tests drive real git repositories: a bare "remote" per
repository under tmp_path, cloned through a file:// base URL, and a fake
``mvn`` script standing in for OpenRewrite.
"""

from __future__ import annotations

import shutil
import subprocess
import tempfile
from collections.abc import Callable, Iterator
from pathlib import Path

import httpx
import pytest

from rewrite_bot.config import Settings
from rewrite_bot.github import GitHubClient
from rewrite_bot.models import DependencyTarget

TOKEN = "s3cret-token"
API_URL = "https://api.github.test"

POM_V1 = """\
<project>
  <groupId>com.acme</groupId>
  <artifactId>widgets</artifactId>
  <version>1.0.0</version>
  <dependencies>
    <dependency>
      <groupId>com.acme</groupId>
      <artifactId>widgets-lib</artifactId>
      <version>1.0.0</version>
    </dependency>
  </dependencies>
</project>
"""

POM_V2 = POM_V1.replace(
    "<artifactId>widgets-lib</artifactId>\n      <version>1.0.0</version>",
    "<artifactId>widgets-lib</artifactId>\n      <version>2.0.0</version>",
)

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def sh_git(*args: str, cwd: Path) -> str:
    """Run git for test setup, with a throwaway identity."""
    result = subprocess.run(
        ["git", "-c", "user.name=Test", "-c", "user.email=test@example.com", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


@pytest.fixture
def remote_root(tmp_path: Path) -> Path:
    root = tmp_path / "remote"
    root.mkdir()
    return root


@pytest.fixture
def make_remote(tmp_path: Path, remote_root: Path) -> Callable[..., Path]:
    """Create a bare remote ``<remote_root>/<owner>/<name>.git``.

    Returns the path of the bare repository.
    """

    def make(
        owner: str = "acme",
        name: str = "widgets",
        files: dict[str, str] | None = None,
        branch: str = "main",
    ) -> Path:
        seed = tmp_path / "seed" / owner / name
        seed.mkdir(parents=True)
        for rel, text in (files or {"pom.xml": POM_V1}).items():
            path = seed / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text)
        sh_git("init", "-q", "-b", branch, cwd=seed)
        sh_git("add", "-A", cwd=seed)
        sh_git("commit", "-q", "-m", "initial", cwd=seed)

        bare = remote_root / owner / f"{name}.git"
        bare.parent.mkdir(parents=True, exist_ok=True)
        sh_git("clone", "-q", "--bare", str(seed), str(bare), cwd=tmp_path)
        return bare

    return make


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Redirect temporary workspaces into a directory the test can inspect."""
    path = tmp_path / "work"
    path.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(path))
    return path


@pytest.fixture
def fake_maven(tmp_path: Path) -> Callable[[str], Path]:
    """Write a fake ``<home>/bin/mvn`` shell script and return the home.

    The script appends its working directory and arguments to
    ``<tmp_path>/mvn.log`` before running ``body``.
    """

    def make(body: str) -> Path:
        home = tmp_path / "maven"
        (home / "bin").mkdir(parents=True, exist_ok=True)
        mvn = home / "bin" / "mvn"
        log_path = tmp_path / "mvn.log"
        mvn.write_text(f'#!/bin/sh\necho "$(pwd -P) $*" >> "{log_path}"\n{body}\n')
        mvn.chmod(0o755)
        return home

    return make


def upgrade_script() -> str:
    """Fake recipe body that bumps widgets-lib in pom.xml."""
    return f"cat > pom.xml <<'POM'\n{POM_V2}POM"


@pytest.fixture
def target() -> DependencyTarget:
    return DependencyTarget(group_id="com.acme", artifact_id="widgets-lib", new_version="2.0.0")


@pytest.fixture
def settings(remote_root: Path) -> Settings:
    return Settings(token=TOKEN, git_base_url=remote_root.as_uri(), api_url=API_URL)


class RecordingGitHub:
    """httpx transport that answers pull request creation like GitHub."""

    def __init__(self, status_code: int = 201, payload: dict | None = None) -> None:
        self.status_code = status_code
        self.payload = payload
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        payload = self.payload
        if payload is None:
            number = len(self.requests)
            owner, name = request.url.path.split("/")[2:4]
            payload = {
                "number": number,
                "html_url": f"https://github.test/{owner}/{name}/pull/{number}",
            }
        return httpx.Response(self.status_code, json=payload)


@pytest.fixture
def github_api() -> RecordingGitHub:
    return RecordingGitHub()


@pytest.fixture
def github_client(github_api: RecordingGitHub) -> Iterator[GitHubClient]:
    http_client = httpx.Client(transport=httpx.MockTransport(github_api))
    client = GitHubClient(TOKEN, API_URL, http_client=http_client)
    yield client
    http_client.close()
