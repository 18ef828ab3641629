"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import dataclasses
import typing as typ

import pytest

from flakehub_push.flake.packager import FlakeArtifact
from flakehub_push.github.models import GitHubRepositoryData
from flakehub_push.release.models import Tarball

if typ.TYPE_CHECKING:
    from pathlib import Path

HEAD_REVISION = "a" * 40


class FakeLogger:
    """Collects femtologging-style log calls for assertions."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str:
        self.calls.append((level, message))
        return message

    def messages(self, level: str) -> list[str]:
        """Return the messages logged at ``level``."""
        return [message for logged, message in self.calls if logged == level]


@dataclasses.dataclass(slots=True)
class FakePackager:
    """Packager that returns a canned artifact and records its calls."""

    artifact: FlakeArtifact
    calls: list[tuple[Path, Path | None]] = dataclasses.field(default_factory=list)

    async def evaluate_and_package(
        self, root: Path, subdir: Path | None
    ) -> FlakeArtifact:
        self.calls.append((root, subdir))
        return self.artifact


@dataclasses.dataclass(slots=True)
class FakeGitHubClient:
    """GraphQL client stand-in returning fixed repository data."""

    data: GitHubRepositoryData
    calls: list[tuple[str, str, str]] = dataclasses.field(default_factory=list)

    async def fetch_repository_data(
        self, owner: str, name: str, revision: str
    ) -> GitHubRepositoryData:
        self.calls.append((owner, name, revision))
        return self.data


@pytest.fixture
def fake_logger() -> FakeLogger:
    """Return a logger that records every call."""
    return FakeLogger()


@pytest.fixture
def flake_artifact() -> FlakeArtifact:
    """Return a small packaged flake."""
    return FlakeArtifact(
        metadata={
            "description": "A demo flake",
            "lastModified": 1_700_000_000,
            "path": "/nix/store/source",
        },
        outputs={"packages": {"x86_64-linux": {"default": {"type": "derivation"}}}},
        tarball=Tarball.from_bytes(b"tarball-bytes"),
        last_modified=1_700_000_000,
    )


@pytest.fixture
def fake_packager(flake_artifact: FlakeArtifact) -> FakePackager:
    """Return a packager yielding :func:`flake_artifact`."""
    return FakePackager(artifact=flake_artifact)


@pytest.fixture
def repository_data() -> GitHubRepositoryData:
    """Return GitHub repository data for ``HEAD_REVISION``."""
    return GitHubRepositoryData(
        revision=HEAD_REVISION,
        rev_count=42,
        spdx_identifier="MIT",
        project_id=1001,
        owner_id=2002,
        topics=("nix", "flakes"),
    )


@pytest.fixture
def fake_github_client(repository_data: GitHubRepositoryData) -> FakeGitHubClient:
    """Return a GraphQL client stand-in for :func:`repository_data`."""
    return FakeGitHubClient(data=repository_data)
