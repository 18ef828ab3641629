"""Push configuration and CI environment backfilling."""

from __future__ import annotations

import dataclasses
import typing as typ
from pathlib import Path

from flakehub_push.errors import ConfigurationError
from flakehub_push.release.labels import parse_label_list
from flakehub_push.release.licensing import validate_spdx_expression
from flakehub_push.release.models import Visibility

if typ.TYPE_CHECKING:
    import argparse
    import collections.abc as cabc

DEFAULT_HOST = "https://api.flakehub.com"
ENV_PREFIX = "FLAKEHUB_PUSH_"

_TRUE_VALUES = frozenset({"true", "1", "yes"})
_FALSE_VALUES = frozenset({"false", "0", "no"})


def empty_to_none(value: str | None) -> str | None:
    """Treat blank strings as unset.

    Examples
    --------
    >>> empty_to_none("  ") is None
    True

    """
    if value is None or not value.strip():
        return None
    return value.strip()


def parse_bool(raw: str | None, *, option: str, default: bool = False) -> bool:
    """Parse a boolean option value from the environment.

    Parameters
    ----------
    raw
        Raw value; blank or ``None`` selects ``default``.
    option
        Option name used in error messages.
    default
        Value used when ``raw`` is unset.

    Raises
    ------
    ConfigurationError
        If ``raw`` is not one of ``true/false/1/0/yes/no``.

    """
    value = empty_to_none(raw)
    if value is None:
        return default
    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError.invalid_value(option, value, "true or false")


def parse_int(raw: str | None, *, option: str) -> int | None:
    """Parse an optional non-negative integer option value."""
    value = empty_to_none(raw)
    if value is None:
        return None
    if not value.isdigit():
        raise ConfigurationError.invalid_value(option, value, "a non-negative integer")
    return int(value)


def env_option(environ: cabc.Mapping[str, str], name: str) -> str | None:
    """Return the ``FLAKEHUB_PUSH_{name}`` value, or ``None`` when blank."""
    return empty_to_none(environ.get(f"{ENV_PREFIX}{name}"))


@dataclasses.dataclass(frozen=True, slots=True)
class PushConfig:
    """User and environment supplied options for one push.

    Attributes
    ----------
    host
        Registry base URL.
    visibility
        Registry visibility of the release.
    tag
        Explicit version tag.
    rev
        Revision override; defaults to the local HEAD.
    rolling
        Whether to publish a rolling release.
    rolling_minor
        Minor version for rolling releases.
    github_token
        Token for the GitHub GraphQL API.
    name
        Explicit upload name.
    mirror
        Whether the release mirrors a repository hosted elsewhere.
    repository
        Forge repository slug.
    directory
        Flake directory; relative paths are taken from ``git_root``.
    git_root
        Root of the git work tree; defaults to the working directory.
    extra_labels
        User supplied labels.
    extra_tags
        Labels supplied through the deprecated ``extra-tags`` option.
    spdx_expression
        Licence expression for the release.
    error_on_conflict
        Whether an existing release is an error.
    include_output_paths
        Whether store paths are kept in the output graph.
    disable_rename_subgroups
        Reject nested subgroups instead of flattening them.
    jwt_issuer_uri
        Development JWT issuer for local runs.
    log_level
        Requested log level.

    """

    visibility: Visibility
    host: str = DEFAULT_HOST
    tag: str | None = None
    rev: str | None = None
    rolling: bool = False
    rolling_minor: int | None = None
    github_token: str | None = dataclasses.field(default=None, repr=False)
    name: str | None = None
    mirror: bool = False
    repository: str | None = None
    directory: Path | None = None
    git_root: Path | None = None
    extra_labels: frozenset[str] = frozenset()
    extra_tags: frozenset[str] = frozenset()
    spdx_expression: str | None = None
    error_on_conflict: bool = False
    include_output_paths: bool = False
    disable_rename_subgroups: bool = False
    jwt_issuer_uri: str | None = None
    log_level: str | None = None

    @classmethod
    def from_namespace(cls, args: argparse.Namespace) -> PushConfig:
        """Build configuration from parsed command-line arguments."""
        raw_visibility = empty_to_none(args.visibility)
        if raw_visibility is None:
            raise ConfigurationError.invalid_value(
                "visibility", "", "one of public, unlisted, hidden or private"
            )
        directory = empty_to_none(args.directory)
        git_root = empty_to_none(args.git_root)
        return cls(
            visibility=Visibility.parse(raw_visibility),
            host=empty_to_none(args.host) or DEFAULT_HOST,
            tag=empty_to_none(args.tag),
            rev=empty_to_none(args.rev),
            rolling=args.rolling,
            rolling_minor=parse_int(args.rolling_minor, option="rolling-minor"),
            github_token=empty_to_none(args.github_token),
            name=empty_to_none(args.name),
            mirror=args.mirror,
            repository=empty_to_none(args.repository),
            directory=Path(directory) if directory else None,
            git_root=Path(git_root) if git_root else None,
            extra_labels=parse_label_list(args.extra_labels),
            extra_tags=parse_label_list(args.extra_tags),
            spdx_expression=_optional_spdx(args.spdx_expression),
            error_on_conflict=args.error_on_conflict,
            include_output_paths=args.include_output_paths,
            disable_rename_subgroups=args.disable_rename_subgroups,
            jwt_issuer_uri=empty_to_none(args.jwt_issuer_uri),
            log_level=empty_to_none(args.log_level),
        )

    def local_git_root(self) -> Path:
        """Return the absolute git root."""
        return (self.git_root or Path.cwd()).absolute()

    def flake_subdirectory(self) -> Path | None:
        """Return the flake directory relative to the git root.

        Returns ``None`` when the flake lives at the git root.

        Raises
        ------
        ConfigurationError
            If the directory lies outside the git root.

        """
        git_root = self.local_git_root()
        if self.directory is None:
            return None
        directory = (git_root / self.directory).resolve()
        try:
            subdir = directory.relative_to(git_root.resolve())
        except ValueError as exc:
            raise ConfigurationError.invalid_value(
                "directory", str(self.directory), f"a directory inside {git_root}"
            ) from exc
        return None if subdir == Path() else subdir


def _optional_spdx(raw: str | None) -> str | None:
    value = empty_to_none(raw)
    return None if value is None else validate_spdx_expression(value)


def _fill(current: typ.Any, fallback: typ.Any) -> typ.Any:  # noqa: ANN401
    return fallback if current is None else current


def backfill_from_github_env(
    config: PushConfig, environ: cabc.Mapping[str, str]
) -> PushConfig:
    """Fill unset options from GitHub Actions variables.

    ``GITHUB_REF_NAME`` only supplies the tag when ``GITHUB_REF_TYPE`` is
    ``tag``.
    """
    ref_name = empty_to_none(environ.get("GITHUB_REF_NAME"))
    is_tag = empty_to_none(environ.get("GITHUB_REF_TYPE")) == "tag"
    workspace = empty_to_none(environ.get("GITHUB_WORKSPACE"))
    return dataclasses.replace(
        config,
        repository=_fill(
            config.repository, empty_to_none(environ.get("GITHUB_REPOSITORY"))
        ),
        tag=_fill(config.tag, ref_name if is_tag else None),
        git_root=_fill(config.git_root, Path(workspace) if workspace else None),
        github_token=_fill(
            config.github_token, empty_to_none(environ.get("GITHUB_TOKEN"))
        ),
        rev=_fill(config.rev, empty_to_none(environ.get("GITHUB_SHA"))),
    )


def backfill_from_gitlab_env(
    config: PushConfig, environ: cabc.Mapping[str, str]
) -> PushConfig:
    """Fill unset options from GitLab CI predefined variables."""
    project_dir = empty_to_none(environ.get("CI_PROJECT_DIR"))
    return dataclasses.replace(
        config,
        repository=_fill(
            config.repository, empty_to_none(environ.get("CI_PROJECT_PATH"))
        ),
        tag=_fill(config.tag, empty_to_none(environ.get("CI_COMMIT_TAG"))),
        git_root=_fill(config.git_root, Path(project_dir) if project_dir else None),
        rev=_fill(config.rev, empty_to_none(environ.get("CI_COMMIT_SHA"))),
    )


__all__ = [
    "DEFAULT_HOST",
    "ENV_PREFIX",
    "PushConfig",
    "backfill_from_github_env",
    "backfill_from_gitlab_env",
    "empty_to_none",
    "env_option",
    "parse_bool",
    "parse_int",
]
