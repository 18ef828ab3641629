"""Unit tests for the command-line entry point."""

from __future__ import annotations

import typing as typ

import pytest

from flakehub_push import cli
from flakehub_push.errors import ConfigurationError, ConflictError
from flakehub_push.flakehub.publish import PublishOutcome, PublishState
from flakehub_push.release.models import Visibility

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from flakehub_push.config import PushConfig


@pytest.fixture(autouse=True)
def _no_logging_setup(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("flakehub_push.logging.basicConfig", lambda **_kwargs: None)


@pytest.fixture
def pushed(monkeypatch: pytest.MonkeyPatch) -> list[PushConfig]:
    """Replace the pipeline with one that records its configuration."""
    configs: list[PushConfig] = []

    async def fake_push(
        config: PushConfig, *, environ: cabc.Mapping[str, str]
    ) -> PublishOutcome:
        configs.append(config)
        return PublishOutcome(
            state=PublishState.PUBLISHED,
            upload_name="owner/repo",
            version="v1.0.0",
            release_id="rel-1",
        )

    monkeypatch.setattr(cli, "push_release", fake_push)
    return configs


def _failing_push(
    monkeypatch: pytest.MonkeyPatch, error: Exception
) -> None:
    async def fake_push(
        config: PushConfig, *, environ: cabc.Mapping[str, str]
    ) -> PublishOutcome:
        raise error

    monkeypatch.setattr(cli, "push_release", fake_push)


def test_main_merges_flags_and_environment(pushed: list[PushConfig]) -> None:
    """Flags override FLAKEHUB_PUSH_ defaults; booleans parse from the environment."""
    environ = {
        "FLAKEHUB_PUSH_VISIBILITY": "unlisted",
        "FLAKEHUB_PUSH_ROLLING": "true",
        "FLAKEHUB_PUSH_REPOSITORY": "env/repo",
        "FLAKEHUB_PUSH_EXTRA_LABELS": "nix,flakes",
    }

    argv = ["--repository", "owner/repo", "--rolling-minor", "2"]

    exit_code = cli.main(argv, environ=environ)

    assert exit_code == 0
    (config,) = pushed
    assert config.visibility is Visibility.UNLISTED
    assert config.rolling is True
    assert config.rolling_minor == 2
    assert config.repository == "owner/repo"
    assert config.extra_labels == frozenset({"nix", "flakes"})


def test_main_flag_disables_environment_boolean(pushed: list[PushConfig]) -> None:
    """--no-<flag> overrides a true environment default."""
    environ = {"FLAKEHUB_PUSH_VISIBILITY": "public", "FLAKEHUB_PUSH_MIRROR": "1"}

    assert cli.main(["--no-mirror"], environ=environ) == 0
    assert pushed[0].mirror is False


def test_main_accepts_misspelled_visibility_variable(pushed: list[PushConfig]) -> None:
    """FLAKEHUB_PUSH_VISIBLITY is honoured for older workflows."""
    assert cli.main([], environ={"FLAKEHUB_PUSH_VISIBLITY": "private"}) == 0
    assert pushed[0].visibility is Visibility.PRIVATE


def test_main_reports_configuration_errors(
    pushed: list[PushConfig], capsys: pytest.CaptureFixture[str]
) -> None:
    """Invalid options exit with 1 and a message on stderr."""
    exit_code = cli.main([], environ={"FLAKEHUB_PUSH_ROLLING": "sometimes"})

    assert exit_code == 1
    assert pushed == []
    assert "`rolling`" in capsys.readouterr().err


def test_main_requires_visibility(
    pushed: list[PushConfig], capsys: pytest.CaptureFixture[str]
) -> None:
    """Visibility has no default."""
    assert cli.main([], environ={}) == 1
    assert "`visibility`" in capsys.readouterr().err


def test_main_annotates_registry_errors_on_github(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """Conflicts print a workflow annotation under GitHub Actions."""
    _failing_push(monkeypatch, ConflictError("owner/repo", "v1.0.0"))
    environ = {"GITHUB_ACTIONS": "true", "FLAKEHUB_PUSH_VISIBILITY": "public"}

    assert cli.main([], environ=environ) == 1

    captured = capsys.readouterr()
    assert "Error: owner/repo/v1.0.0 already exists" in captured.err
    assert captured.out.strip() == (
        "::error title=ConflictError::owner/repo/v1.0.0 already exists"
    )


def test_main_skips_annotations_for_configuration_errors(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """Configuration errors are only printed to stderr."""
    _failing_push(monkeypatch, ConfigurationError("missing input"))
    environ = {"GITHUB_ACTIONS": "true", "FLAKEHUB_PUSH_VISIBILITY": "public"}

    assert cli.main([], environ=environ) == 1

    captured = capsys.readouterr()
    assert "missing input" in captured.err
    assert captured.out == ""


def test_main_skips_annotations_outside_github(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """Other platforms get the plain message only."""
    _failing_push(monkeypatch, ConflictError("owner/repo", "v1.0.0"))
    environ = {"GITLAB_CI": "true", "FLAKEHUB_PUSH_VISIBILITY": "public"}

    assert cli.main([], environ=environ) == 1
    assert capsys.readouterr().out == ""
