"""Bearer credential acquisition for each execution environment.

Token contexts are built while the release is assembled and carry only what
is needed to fetch a credential later. Acquisition is deferred until after
packaging so that short-lived OIDC tokens are fresh when the registry first
sees them.

Example:
>>> context = GitLabTokenContext()
>>> asyncio.run(acquire_token(context, environ={"GITLAB_JWT_ID_TOKEN": "jwt"}))
'jwt'

"""

from __future__ import annotations

import dataclasses
import os
import typing as typ
from urllib.parse import urlsplit

import httpx
import msgspec

from flakehub_push.environment import GENERIC_OIDC_TOKEN_VAR
from flakehub_push.errors import ConfigurationError, TransportError
from flakehub_push.logging import get_logger, log_debug, log_warning

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from flakehub_push.github.models import GitHubRepositoryData

ACTIONS_ID_TOKEN_REQUEST_TOKEN_VAR = "ACTIONS_ID_TOKEN_REQUEST_TOKEN"  # noqa: S105
ACTIONS_ID_TOKEN_REQUEST_URL_VAR = "ACTIONS_ID_TOKEN_REQUEST_URL"
GITLAB_JWT_ID_TOKEN_VAR = "GITLAB_JWT_ID_TOKEN"  # noqa: S105

DEV_AUDIENCE = "flakehub-localhost"
DEV_ISSUER = "flakehub-push-dev"

_OPERATION = "credential-acquisition"
_TIMEOUT_S = 30.0

logger = get_logger(__name__)


def registry_audience(host: str) -> str:
    """Return the hostname a registry URL is reachable at.

    Examples
    --------
    >>> registry_audience("https://api.flakehub.com/")
    'api.flakehub.com'

    """
    hostname = urlsplit(host).hostname
    if not hostname:
        raise ConfigurationError.invalid_host(host)
    return hostname


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubTokenContext:
    """GitHub Actions OIDC request details.

    Attributes
    ----------
    audience
        Registry hostname requested as the token audience.
    request_token
        Bearer token GitHub injects for the OIDC request.
    request_url
        Endpoint GitHub injects for the OIDC request.

    """

    audience: str
    request_token: str = dataclasses.field(repr=False)
    request_url: str

    @classmethod
    def from_env(
        cls, host: str, environ: cabc.Mapping[str, str]
    ) -> GitHubTokenContext:
        """Build a context, failing fast when the job lacks OIDC permissions."""
        audience = registry_audience(host)
        request_token = environ.get(ACTIONS_ID_TOKEN_REQUEST_TOKEN_VAR)
        if not request_token:
            raise ConfigurationError.missing_github_oidc_token()
        request_url = environ.get(ACTIONS_ID_TOKEN_REQUEST_URL_VAR)
        if not request_url:
            raise ConfigurationError.missing_github_oidc_url()
        return cls(
            audience=audience, request_token=request_token, request_url=request_url
        )


@dataclasses.dataclass(frozen=True, slots=True)
class GitLabTokenContext:
    """GitLab CI job with a pre-issued ``id_tokens`` JWT."""


@dataclasses.dataclass(frozen=True, slots=True)
class GenericTokenContext:
    """Generic CI with a pre-issued OIDC token in the environment."""


@dataclasses.dataclass(frozen=True, slots=True)
class LocalDevTokenContext:
    """Development issuer that mints tokens from a claim set.

    Attributes
    ----------
    issuer_url
        Base URL of the development JWT issuer.
    project_owner
        Repository owner the claims are minted for.
    repository
        Full repository slug.
    repository_data
        GitHub ids for the repository and its owner.

    """

    issuer_url: str
    project_owner: str
    repository: str
    repository_data: GitHubRepositoryData


TokenContext = (
    GitHubTokenContext | GitLabTokenContext | GenericTokenContext | LocalDevTokenContext
)


class DevClaims(msgspec.Struct, kw_only=True, frozen=True):
    """Claim set posted to the development issuer."""

    aud: str = DEV_AUDIENCE
    iss: str = DEV_ISSUER
    repository: str
    repository_owner: str
    repository_id: str
    repository_owner_id: str


class _ActionsIdTokenResponse(msgspec.Struct, kw_only=True):
    value: str


def _read_env_token(
    environ: cabc.Mapping[str, str], name: str, error: ConfigurationError
) -> str:
    token = environ.get(name)
    if not token:
        raise error
    return token


async def _send(
    client: httpx.AsyncClient, request: httpx.Request
) -> httpx.Response:
    try:
        response = await client.send(request)
    except httpx.RequestError as exc:
        raise TransportError.network(_OPERATION, exc) from exc
    if not response.is_success:
        raise TransportError(
            _OPERATION,
            f"Status {response.status_code} from {request.url.host}\n{response.text}",
            status_code=response.status_code,
        )
    return response


async def _github_token(
    context: GitHubTokenContext, client: httpx.AsyncClient
) -> str:
    url = httpx.URL(context.request_url).copy_merge_params(
        {"audience": context.audience}
    )
    request = client.build_request(
        "GET",
        url,
        headers={"Authorization": f"Bearer {context.request_token}"},
    )
    response = await _send(client, request)
    try:
        payload = msgspec.json.decode(response.content, type=_ActionsIdTokenResponse)
    except msgspec.DecodeError as exc:
        raise TransportError.malformed_response(
            _OPERATION, f"Getting value from Actions ID bearer token response: {exc}"
        ) from exc
    return payload.value


async def _local_dev_token(
    context: LocalDevTokenContext, client: httpx.AsyncClient
) -> str:
    log_warning(logger, "running outside github/gitlab - minting a dev-signed JWT")
    claims = DevClaims(
        repository=context.repository,
        repository_owner=context.project_owner,
        repository_id=str(context.repository_data.project_id),
        repository_owner_id=str(context.repository_data.owner_id),
    )
    request = client.build_request(
        "POST",
        f"{context.issuer_url.rstrip('/')}/token",
        content=msgspec.json.encode(claims),
        headers={"Content-Type": "application/json"},
    )
    response = await _send(client, request)
    return response.text.strip()


async def _network_token(
    context: GitHubTokenContext | LocalDevTokenContext,
    http_client: httpx.AsyncClient | None,
) -> str:
    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=_TIMEOUT_S)
    try:
        if isinstance(context, GitHubTokenContext):
            log_debug(logger, "Requesting OIDC token for %s", context.audience)
            return await _github_token(context, client)
        return await _local_dev_token(context, client)
    finally:
        if owns_client:
            await client.aclose()


async def acquire_token(
    context: TokenContext,
    *,
    http_client: httpx.AsyncClient | None = None,
    environ: cabc.Mapping[str, str] | None = None,
) -> str:
    """Acquire a registry bearer token for ``context``.

    Parameters
    ----------
    context
        Token context selected for the execution environment.
    http_client
        Client used for network-backed variants; a short-lived client is
        created when omitted.
    environ
        Environment mapping read by the environment-backed variants; defaults
        to ``os.environ``.

    Returns
    -------
    str
        Bearer token for the registry.

    Raises
    ------
    ConfigurationError
        If a required environment variable is missing.
    TransportError
        If the token endpoint cannot be reached or answers unexpectedly.

    """
    env = os.environ if environ is None else environ
    match context:
        case GitLabTokenContext():
            return _read_env_token(
                env, GITLAB_JWT_ID_TOKEN_VAR, ConfigurationError.missing_gitlab_token()
            )
        case GenericTokenContext():
            return _read_env_token(
                env, GENERIC_OIDC_TOKEN_VAR, ConfigurationError.missing_generic_token()
            )
        case GitHubTokenContext() | LocalDevTokenContext():
            return await _network_token(context, http_client)


__all__ = [
    "DevClaims",
    "GenericTokenContext",
    "GitHubTokenContext",
    "GitLabTokenContext",
    "LocalDevTokenContext",
    "TokenContext",
    "acquire_token",
    "registry_audience",
]
