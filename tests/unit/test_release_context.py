"""Unit tests for release context assembly."""

from __future__ import annotations

import typing as typ
from pathlib import Path

import pytest

from flakehub_push.auth.tokens import (
    GenericTokenContext,
    GitHubTokenContext,
    GitLabTokenContext,
    LocalDevTokenContext,
)
from flakehub_push.config import PushConfig
from flakehub_push.environment import ExecutionEnvironment
from flakehub_push.errors import ConfigurationError
from flakehub_push.release import context as context_module
from flakehub_push.release.context import (
    assemble_release_context,
    read_readme,
    resolve_commit_count,
    resolve_spdx_identifier,
)
from flakehub_push.release.models import Visibility
from flakehub_push.release.revision import RevisionInfo

if typ.TYPE_CHECKING:
    from tests.conftest import FakeGitHubClient, FakeLogger, FakePackager

_HEAD = "a" * 40
_OTHER = "c" * 40


@pytest.fixture(autouse=True)
def _local_revision(monkeypatch: pytest.MonkeyPatch) -> list[Path]:
    """Answer local git lookups with a fixed HEAD of 42 commits."""
    roots: list[Path] = []

    async def fake_resolve(git_root: Path) -> RevisionInfo:
        roots.append(git_root)
        return RevisionInfo(revision=_HEAD, commit_count=42)

    monkeypatch.setattr(context_module, "resolve_revision_async", fake_resolve)
    return roots


@pytest.fixture
def context_logger(
    monkeypatch: pytest.MonkeyPatch, fake_logger: FakeLogger
) -> FakeLogger:
    """Capture log calls from context assembly."""
    monkeypatch.setattr(context_module, "logger", fake_logger)
    return fake_logger


def _github_environ(workspace: Path) -> dict[str, str]:
    return {
        "GITHUB_ACTIONS": "true",
        "GITHUB_REPOSITORY": "octo/reef",
        "GITHUB_REF_NAME": "v1.2.3",
        "GITHUB_REF_TYPE": "tag",
        "GITHUB_WORKSPACE": str(workspace),
        "ACTIONS_ID_TOKEN_REQUEST_TOKEN": "req",
        "ACTIONS_ID_TOKEN_REQUEST_URL": "https://token.example.test/oidc",
    }


@pytest.mark.asyncio
async def test_github_context(
    tmp_path: Path,
    fake_packager: FakePackager,
    fake_github_client: FakeGitHubClient,
) -> None:
    """GitHub runs combine backfilled options with repository data."""
    (tmp_path / "README.md").write_text("# Reef\n")
    config = PushConfig(
        visibility=Visibility.PUBLIC, extra_labels=frozenset({"Custom"})
    )

    context = await assemble_release_context(
        config,
        packager=fake_packager,
        environ=_github_environ(tmp_path),
        github_client=typ.cast("typ.Any", fake_github_client),
    )

    assert context.environment is ExecutionEnvironment.GITHUB
    assert context.upload_name == "octo/reef"
    assert context.version == "v1.2.3"
    assert isinstance(context.token_context, GitHubTokenContext)
    assert context.token_context.audience == "api.flakehub.com"
    assert fake_github_client.calls == [("octo", "reef", _HEAD)]
    assert fake_packager.calls == [(tmp_path.absolute(), None)]

    metadata = context.metadata
    assert metadata.commit_count == 42
    assert metadata.revision == _HEAD
    assert metadata.repo == "octo/reef"
    assert metadata.description == "A demo flake"
    assert metadata.readme == "# Reef\n"
    assert metadata.spdx_identifier == "MIT"
    assert metadata.labels == ["custom", "flakes", "nix"]
    assert metadata.source_subdirectory is None
    assert context.tarball is fake_packager.artifact.tarball


@pytest.mark.asyncio
async def test_github_context_fails_before_network_without_oidc(
    tmp_path: Path,
    fake_packager: FakePackager,
    fake_github_client: FakeGitHubClient,
) -> None:
    """Missing id-token permission fails before querying GitHub or packaging."""
    environ = _github_environ(tmp_path)
    del environ["ACTIONS_ID_TOKEN_REQUEST_TOKEN"]

    with pytest.raises(ConfigurationError, match="id-token: write"):
        await assemble_release_context(
            PushConfig(visibility=Visibility.PUBLIC),
            packager=fake_packager,
            environ=environ,
            github_client=typ.cast("typ.Any", fake_github_client),
        )

    assert fake_github_client.calls == []
    assert fake_packager.calls == []


@pytest.mark.asyncio
async def test_github_context_requires_github_token(
    tmp_path: Path, fake_packager: FakePackager
) -> None:
    """Without a client or token the GraphQL query cannot be made."""
    with pytest.raises(ConfigurationError, match="Could not determine GitHub token"):
        await assemble_release_context(
            PushConfig(visibility=Visibility.PUBLIC),
            packager=fake_packager,
            environ=_github_environ(tmp_path),
        )


@pytest.mark.asyncio
async def test_gitlab_context(
    tmp_path: Path, fake_packager: FakePackager
) -> None:
    """GitLab runs flatten subgroups and use the local commit count."""
    (tmp_path / "flake").mkdir()
    config = PushConfig(
        visibility=Visibility.PRIVATE, directory=Path("flake"), mirror=True
    )
    environ = {
        "GITLAB_CI": "true",
        "CI_PROJECT_PATH": "group/sub/project",
        "CI_COMMIT_TAG": "v0.1.0",
        "CI_PROJECT_DIR": str(tmp_path),
    }

    context = await assemble_release_context(
        config, packager=fake_packager, environ=environ
    )

    assert context.upload_name == "group/sub-project"
    assert isinstance(context.token_context, GitLabTokenContext)
    assert context.metadata.commit_count == 42
    assert context.metadata.source_subdirectory == "flake"
    assert context.metadata.mirrored is True
    assert context.metadata.visibility is Visibility.PRIVATE
    assert fake_packager.calls == [(tmp_path.absolute(), Path("flake"))]


@pytest.mark.asyncio
async def test_generic_context_needs_repository(
    tmp_path: Path, fake_packager: FakePackager
) -> None:
    """Generic CI has nothing to backfill the repository from."""
    with pytest.raises(ConfigurationError, match="Could not determine repository"):
        await assemble_release_context(
            PushConfig(visibility=Visibility.PUBLIC, git_root=tmp_path),
            packager=fake_packager,
            environ={"FLAKEHUB_PUSH_OIDC_TOKEN": "jwt"},
        )


@pytest.mark.asyncio
async def test_generic_context_rolling_release(
    tmp_path: Path, fake_packager: FakePackager
) -> None:
    """Rolling releases version by local commit count."""
    config = PushConfig(
        visibility=Visibility.PUBLIC,
        git_root=tmp_path,
        repository="owner/repo",
        rolling=True,
        rolling_minor=4,
    )

    context = await assemble_release_context(
        config, packager=fake_packager, environ={"FLAKEHUB_PUSH_OIDC_TOKEN": "jwt"}
    )

    assert isinstance(context.token_context, GenericTokenContext)
    assert context.version == f"0.4.42+rev-{_HEAD}"


@pytest.mark.asyncio
async def test_jwt_issuer_is_rejected_in_ci(
    tmp_path: Path, fake_packager: FakePackager
) -> None:
    """A dev issuer cannot be combined with a CI environment."""
    config = PushConfig(
        visibility=Visibility.PUBLIC,
        repository="owner/repo",
        jwt_issuer_uri="http://localhost:8081",
    )

    with pytest.raises(ConfigurationError, match="jwt_issuer_uri"):
        await assemble_release_context(
            config, packager=fake_packager, environ={"GITLAB_CI": "true"}
        )


@pytest.mark.asyncio
async def test_local_dev_requires_issuer(
    tmp_path: Path, fake_packager: FakePackager
) -> None:
    """Outside CI a dev issuer must be given."""
    config = PushConfig(
        visibility=Visibility.PUBLIC, git_root=tmp_path, repository="owner/repo"
    )

    with pytest.raises(ConfigurationError, match="execution environment"):
        await assemble_release_context(config, packager=fake_packager, environ={})


@pytest.mark.asyncio
async def test_local_dev_context(
    tmp_path: Path,
    fake_packager: FakePackager,
    fake_github_client: FakeGitHubClient,
) -> None:
    """Local runs mint claims from GitHub repository data."""
    config = PushConfig(
        visibility=Visibility.PUBLIC,
        git_root=tmp_path,
        repository="octo/reef",
        tag="v2.0.0",
        spdx_expression="Apache-2.0",
        jwt_issuer_uri="http://localhost:8081",
    )

    context = await assemble_release_context(
        config,
        packager=fake_packager,
        environ={},
        github_client=typ.cast("typ.Any", fake_github_client),
    )

    token_context = context.token_context
    assert isinstance(token_context, LocalDevTokenContext)
    assert token_context.issuer_url == "http://localhost:8081"
    assert token_context.repository == "octo/reef"
    assert token_context.repository_data is fake_github_client.data
    assert context.metadata.spdx_identifier == "Apache-2.0"


def test_commit_count_prefers_local_history(context_logger: FakeLogger) -> None:
    """A local count for the released revision wins, with a mismatch warning."""
    local = RevisionInfo(revision=_HEAD, commit_count=10)

    assert resolve_commit_count(local, _HEAD, 12) == 10
    assert len(context_logger.messages("WARNING")) == 1


def test_commit_count_falls_back_to_github() -> None:
    """Shallow checkouts and other revisions use GitHub's count."""
    shallow = RevisionInfo(revision=_HEAD, commit_count=None)
    full = RevisionInfo(revision=_HEAD, commit_count=10)

    assert resolve_commit_count(shallow, _HEAD, 12) == 12
    assert resolve_commit_count(full, _OTHER, 7) == 7


def test_commit_count_requires_a_source() -> None:
    """Without any usable count the revision is named in the error."""
    local = RevisionInfo(revision=_HEAD, commit_count=10)

    with pytest.raises(ConfigurationError, match=_OTHER):
        resolve_commit_count(local, _OTHER, None)


def test_spdx_explicit_value_wins(context_logger: FakeLogger) -> None:
    """An explicit expression overrides GitHub's licence with a warning."""
    assert resolve_spdx_identifier("MIT", "Apache-2.0") == "MIT"
    assert resolve_spdx_identifier(None, "Apache-2.0") == "Apache-2.0"
    assert resolve_spdx_identifier("MIT", None) == "MIT"
    assert len(context_logger.messages("WARNING")) == 1


def test_read_readme_is_case_insensitive(tmp_path: Path) -> None:
    """Any letter case of readme.md is accepted."""
    assert read_readme(tmp_path) is None
    (tmp_path / "ReadMe.MD").write_text("hello")

    assert read_readme(tmp_path) == "hello"
    assert read_readme(tmp_path / "missing") is None


def test_spdx_invalid_reported_licence_is_rejected(
    context_logger: FakeLogger,
) -> None:
    """A licence from GitHub that is not SPDX fails the run."""
    with pytest.raises(ConfigurationError, match="reported from the GitHub API"):
        resolve_spdx_identifier(None, "NOT A LICENCE ((")


def test_spdx_explicit_value_skips_reported_validation(
    context_logger: FakeLogger,
) -> None:
    """An explicit expression replaces an unusable reported licence."""
    assert resolve_spdx_identifier("MIT", "NOASSERTION") == "MIT"
