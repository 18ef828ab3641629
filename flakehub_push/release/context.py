"""Release context assembly.

The assembler turns configuration and the execution environment into one
immutable :class:`ReleaseContext`: names, revision, commit count, labels,
version, packaged source and the token context used to authenticate later.
No credential is fetched here.
"""

from __future__ import annotations

import dataclasses
import os
import typing as typ

from flakehub_push.auth.tokens import (
    GenericTokenContext,
    GitHubTokenContext,
    GitLabTokenContext,
    LocalDevTokenContext,
    TokenContext,
)
from flakehub_push.common.slug import ReleaseNames, resolve_release_names
from flakehub_push.config import backfill_from_github_env, backfill_from_gitlab_env
from flakehub_push.environment import ExecutionEnvironment, classify
from flakehub_push.errors import ConfigurationError, TransportError
from flakehub_push.github.client import GitHubGraphQLClient, GitHubGraphQLConfig
from flakehub_push.logging import get_logger, log_debug, log_info, log_warning

from .labels import merge_labels
from .licensing import spdx_problems
from .models import ReleaseMetadata
from .revision import RevisionInfo, resolve_revision_async
from .version import resolve_release_version

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    import httpx

    from flakehub_push.config import PushConfig
    from flakehub_push.flake.packager import FlakeArtifact, FlakePackager
    from flakehub_push.github.models import GitHubRepositoryData

    from .models import Tarball, Visibility

README_FILENAME_LOWERCASE = "readme.md"

logger = get_logger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class ReleaseContext:
    """Everything needed to publish one release.

    Attributes
    ----------
    environment
        Execution environment the run was classified as.
    host
        Registry base URL.
    names
        Upload name and project identity.
    version
        Registry-facing version string.
    metadata
        Stage request body.
    tarball
        Packaged flake source.
    token_context
        Data needed to acquire the registry credential.
    error_on_conflict
        Whether an existing release is an error.

    """

    environment: ExecutionEnvironment
    host: str
    names: ReleaseNames
    version: str
    metadata: ReleaseMetadata
    tarball: Tarball
    token_context: TokenContext
    error_on_conflict: bool = False

    @property
    def upload_name(self) -> str:
        """Return the ``owner/name`` the release is uploaded under."""
        return self.names.upload_name


def backfill_config(
    config: PushConfig,
    environment: ExecutionEnvironment,
    environ: cabc.Mapping[str, str],
) -> PushConfig:
    """Apply the backfill pass for the detected CI platform."""
    match environment:
        case ExecutionEnvironment.GITHUB:
            return backfill_from_github_env(config, environ)
        case ExecutionEnvironment.GITLAB:
            return backfill_from_gitlab_env(config, environ)
        case _:
            return config


def resolve_commit_count(
    local: RevisionInfo, revision: str, github_count: int | None
) -> int:
    """Pick the commit count for ``revision``.

    The local count wins whenever it describes ``revision``; GitHub's count
    fills in for shallow checkouts and revision overrides.

    Raises
    ------
    ConfigurationError
        If neither source can count the commits of ``revision``.

    """
    if local.commit_count is not None and local.revision == revision:
        if github_count is not None and github_count != local.commit_count:
            log_warning(
                logger,
                "Local commit count %d for %s differs from GitHub's count %d; "
                "using the local count",
                local.commit_count,
                revision,
                github_count,
            )
        return local.commit_count
    if github_count is not None:
        return github_count
    raise ConfigurationError.missing_commit_count(revision)


def resolve_spdx_identifier(
    explicit: str | None, reported: str | None
) -> str | None:
    """Reconcile an explicit licence with the one the forge reports.

    Raises
    ------
    ConfigurationError
        If the reported licence is used and is not a valid SPDX expression.

    """
    if explicit is None:
        if reported is not None:
            log_debug(logger, "Received SPDX identifier `%s` from GitHub", reported)
            problems = spdx_problems(reported)
            if problems is not None:
                raise ConfigurationError.invalid_reported_spdx(reported, problems)
        return reported
    if reported is not None and reported != explicit:
        log_warning(
            logger,
            "SPDX identifier `%s` was passed via argument, but GitHub's API "
            "suggests it may be `%s`",
            explicit,
            reported,
        )
    return explicit


def read_readme(flake_dir: Path) -> str | None:
    """Return the contents of ``readme.md`` in any letter case, if present."""
    if not flake_dir.is_dir():
        return None
    candidates = sorted(
        path
        for path in flake_dir.iterdir()
        if path.name.lower() == README_FILENAME_LOWERCASE and path.is_file()
    )
    if not candidates:
        return None
    return candidates[0].read_text(encoding="utf-8")


def _flake_description(metadata: dict[str, typ.Any]) -> str | None:
    description = metadata.get("description")
    if description is None or isinstance(description, str):
        return description
    raise TransportError.malformed_response(
        "packaging", "`nix flake metadata --json` does not have a string `description`"
    )


async def _fetch_repository_data(
    config: PushConfig,
    names: ReleaseNames,
    revision: str,
    *,
    http_client: httpx.AsyncClient | None,
    github_client: GitHubGraphQLClient | None,
) -> GitHubRepositoryData:
    if github_client is not None:
        return await github_client.fetch_repository_data(
            names.project_owner, names.project_name, revision
        )
    if config.github_token is None:
        raise ConfigurationError.missing_github_token()
    client = GitHubGraphQLClient(
        GitHubGraphQLConfig(token=config.github_token), http_client=http_client
    )
    try:
        return await client.fetch_repository_data(
            names.project_owner, names.project_name, revision
        )
    finally:
        await client.aclose()


async def assemble_release_context(  # noqa: PLR0913
    config: PushConfig,
    *,
    packager: FlakePackager,
    environ: cabc.Mapping[str, str] | None = None,
    http_client: httpx.AsyncClient | None = None,
    github_client: GitHubGraphQLClient | None = None,
) -> ReleaseContext:
    """Resolve every release input and package the flake.

    Parameters
    ----------
    config
        Options from the command line and ``FLAKEHUB_PUSH_*`` variables.
    packager
        Collaborator that evaluates and packages the flake.
    environ
        Process environment; defaults to ``os.environ``.
    http_client
        Client used for the GitHub GraphQL query when ``github_client`` is
        not supplied.
    github_client
        Preconfigured GraphQL client, used instead of building one from
        ``config.github_token``.

    Returns
    -------
    ReleaseContext
        The immutable release description.

    Raises
    ------
    ConfigurationError
        If inputs are missing or inconsistent.
    TransportError
        If the GitHub query or packaging fails.

    """
    env = os.environ if environ is None else environ
    environment = classify(env)
    log_debug(logger, "Execution environment: %s", environment)

    local_dev = environment is ExecutionEnvironment.LOCAL_DEV
    if config.jwt_issuer_uri is not None and not local_dev:
        raise ConfigurationError.jwt_issuer_in_ci(environment)
    config = backfill_config(config, environment, env)

    if config.repository is None:
        raise ConfigurationError.missing_repository()
    names = resolve_release_names(
        config.name,
        config.repository,
        flatten_subgroups=not config.disable_rename_subgroups,
    )

    git_root = config.local_git_root()
    local = await resolve_revision_async(git_root)
    revision = config.rev or local.revision

    token_context: TokenContext
    repository_data: GitHubRepositoryData | None = None
    match environment:
        case ExecutionEnvironment.GITHUB:
            token_context = GitHubTokenContext.from_env(config.host, env)
            repository_data = await _fetch_repository_data(
                config,
                names,
                revision,
                http_client=http_client,
                github_client=github_client,
            )
        case ExecutionEnvironment.GITLAB:
            token_context = GitLabTokenContext()
        case ExecutionEnvironment.GENERIC:
            token_context = GenericTokenContext()
        case ExecutionEnvironment.LOCAL_DEV:
            if config.jwt_issuer_uri is None:
                raise ConfigurationError.undetermined_environment()
            repository_data = await _fetch_repository_data(
                config,
                names,
                revision,
                http_client=http_client,
                github_client=github_client,
            )
            token_context = LocalDevTokenContext(
                issuer_url=config.jwt_issuer_uri,
                project_owner=names.project_owner,
                repository=config.repository,
                repository_data=repository_data,
            )

    commit_count = resolve_commit_count(
        local,
        revision,
        repository_data.rev_count if repository_data is not None else None,
    )
    spdx_identifier = resolve_spdx_identifier(
        config.spdx_expression,
        repository_data.spdx_identifier if repository_data is not None else None,
    )
    labels = merge_labels(
        config.extra_labels,
        config.extra_tags,
        repository_data.topics if repository_data is not None else (),
    )
    version = resolve_release_version(
        config.tag,
        rolling=config.rolling,
        rolling_minor=config.rolling_minor,
        commit_count=commit_count,
        revision=revision,
    )

    subdir = config.flake_subdirectory()
    artifact = await packager.evaluate_and_package(git_root, subdir)
    metadata = build_release_metadata(
        artifact,
        names=names,
        revision=revision,
        commit_count=commit_count,
        visibility=config.visibility,
        mirrored=config.mirror,
        flake_dir=git_root / subdir if subdir is not None else git_root,
        source_subdirectory=subdir.as_posix() if subdir is not None else None,
        spdx_identifier=spdx_identifier,
        labels=labels,
    )
    log_info(logger, "Assembled release %s/%s", names.upload_name, version)
    return ReleaseContext(
        environment=environment,
        host=config.host,
        names=names,
        version=version,
        metadata=metadata,
        tarball=artifact.tarball,
        token_context=token_context,
        error_on_conflict=config.error_on_conflict,
    )


def build_release_metadata(  # noqa: PLR0913
    artifact: FlakeArtifact,
    *,
    names: ReleaseNames,
    revision: str,
    commit_count: int,
    visibility: Visibility,
    mirrored: bool,
    flake_dir: Path,
    source_subdirectory: str | None,
    spdx_identifier: str | None,
    labels: list[str],
) -> ReleaseMetadata:
    """Combine resolved release inputs into the stage request body."""
    return ReleaseMetadata(
        commit_count=commit_count,
        description=_flake_description(artifact.metadata),
        outputs=artifact.outputs,
        raw_flake_metadata=artifact.metadata,
        readme=read_readme(flake_dir),
        repo=names.upload_name,
        revision=revision,
        visibility=visibility,
        mirrored=mirrored,
        source_subdirectory=source_subdirectory,
        spdx_identifier=spdx_identifier,
        labels=labels,
    )


__all__ = [
    "ReleaseContext",
    "assemble_release_context",
    "backfill_config",
    "build_release_metadata",
    "read_readme",
    "resolve_commit_count",
    "resolve_spdx_identifier",
]
