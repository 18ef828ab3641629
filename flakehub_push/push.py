"""End-to-end release push pipeline."""

from __future__ import annotations

import os
import typing as typ

import httpx

from flakehub_push.auth.tokens import acquire_token
from flakehub_push.environment import ExecutionEnvironment
from flakehub_push.flake.packager import NixFlakePackager
from flakehub_push.flakehub.client import FlakeHubClient
from flakehub_push.flakehub.publish import ReleasePublisher
from flakehub_push.github.actions import GITHUB_OUTPUT_VAR, release_outputs, set_outputs
from flakehub_push.logging import get_logger, log_debug
from flakehub_push.release.context import assemble_release_context

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from flakehub_push.config import PushConfig
    from flakehub_push.flake.packager import FlakePackager
    from flakehub_push.flakehub.publish import PublishOutcome
    from flakehub_push.github.client import GitHubGraphQLClient

_HTTP_TIMEOUT_S = 60.0

logger = get_logger(__name__)


async def push_release(
    config: PushConfig,
    *,
    environ: cabc.Mapping[str, str] | None = None,
    packager: FlakePackager | None = None,
    http_client: httpx.AsyncClient | None = None,
    github_client: GitHubGraphQLClient | None = None,
) -> PublishOutcome:
    """Assemble, authenticate and publish one release.

    The credential is acquired only after the flake is packaged. On GitHub
    Actions the release coordinates are written as step outputs.

    Parameters
    ----------
    config
        Push options.
    environ
        Process environment; defaults to ``os.environ``.
    packager
        Flake packager; a :class:`NixFlakePackager` when omitted.
    http_client
        Client shared by every HTTP exchange; created and closed here when
        omitted.
    github_client
        Preconfigured GitHub GraphQL client.

    Returns
    -------
    PublishOutcome
        The published (or already existing) release.

    """
    env = os.environ if environ is None else environ
    packager = packager or NixFlakePackager(
        include_output_paths=config.include_output_paths
    )
    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=_HTTP_TIMEOUT_S)
    try:
        context = await assemble_release_context(
            config,
            packager=packager,
            environ=env,
            http_client=client,
            github_client=github_client,
        )
        token = await acquire_token(
            context.token_context, http_client=client, environ=env
        )
        publisher = ReleasePublisher(
            FlakeHubClient(context.host, token, http_client=client),
            error_on_conflict=context.error_on_conflict,
        )
        outcome = await publisher.publish(
            context.upload_name, context.version, context.metadata, context.tarball
        )
    finally:
        if owns_client:
            await client.aclose()

    if context.environment is ExecutionEnvironment.GITHUB and env.get(
        GITHUB_OUTPUT_VAR
    ):
        set_outputs(release_outputs(outcome.upload_name, outcome.version), environ=env)
        log_debug(logger, "Wrote GitHub Actions step outputs")
    return outcome


__all__ = ["push_release"]
