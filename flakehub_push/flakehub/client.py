"""HTTP client for the FlakeHub release upload API."""

from __future__ import annotations

import typing as typ

import httpx
import msgspec

from flakehub_push.errors import (
    BadRequestError,
    ConflictError,
    RegistryStatusError,
    TransportError,
    UnauthorizedError,
)
from flakehub_push.logging import get_logger, log_debug
from flakehub_push.release.models import StageResult

if typ.TYPE_CHECKING:
    from flakehub_push.release.models import ReleaseMetadata, Tarball

USER_AGENT = "flakehub-push"

STAGE_OPERATION = "stage"
TRANSFER_OPERATION = "transfer"
PUBLISH_OPERATION = "publish"

_HTTP_OK = 200
_HTTP_BAD_REQUEST = 400
_HTTP_UNAUTHORIZED = 401
_HTTP_CONFLICT = 409

logger = get_logger(__name__)


def response_message(response: httpx.Response) -> str:
    """Return a response body, unwrapping a JSON string literal if present.

    Examples
    --------
    >>> response_message(httpx.Response(401, content=b'"token expired"'))
    'token expired'

    """
    try:
        return msgspec.json.decode(response.content, type=str)
    except msgspec.DecodeError:
        return response.text


class FlakeHubClient:
    """Client for the stage, transfer and publish endpoints.

    The bearer token is attached to registry requests only; the transfer
    request goes to a presigned URL and carries no credential.
    """

    def __init__(
        self,
        host: str,
        token: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout_s: float = 60.0,
    ) -> None:
        """Initialise the client for ``host`` using ``token``."""
        self._host = host.rstrip("/")
        self._token = token
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_s)

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    def _registry_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }

    def stage_url(self, upload_name: str, version: str, tarball: Tarball) -> str:
        """Return the stage endpoint for a release and its tarball."""
        return (
            f"{self._host}/upload/{upload_name}/{version}/"
            f"{tarball.size}/{tarball.hash_base64}"
        )

    async def _request(
        self, operation: str, method: str, url: str, **kwargs: typ.Any
    ) -> httpx.Response:
        log_debug(logger, "%s %s", method, url)
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            raise TransportError.network(operation, exc) from exc
        log_debug(
            logger, "Got %d response to %s request", response.status_code, operation
        )
        return response

    async def stage_release(
        self,
        upload_name: str,
        version: str,
        metadata: ReleaseMetadata,
        tarball: Tarball,
    ) -> StageResult:
        """Register release metadata and obtain an upload URL.

        Parameters
        ----------
        upload_name
            ``owner/name`` the release is uploaded under.
        version
            Release version string.
        metadata
            Release metadata sent as the request body.
        tarball
            Archive whose size and digest are announced in the URL.

        Returns
        -------
        StageResult
            Presigned upload URL and the release id.

        Raises
        ------
        ConflictError
            If the registry already holds this release.
        UnauthorizedError
            If the registry rejects the bearer token.
        BadRequestError
            If the registry rejects the metadata.
        RegistryStatusError
            For any other non-200 status.
        TransportError
            If the request fails or the response cannot be decoded.

        """
        response = await self._request(
            STAGE_OPERATION,
            "POST",
            self.stage_url(upload_name, version, tarball),
            content=msgspec.json.encode(metadata),
            headers=self._registry_headers(),
        )
        status = response.status_code
        if status == _HTTP_CONFLICT:
            raise ConflictError(upload_name, version)
        if status == _HTTP_UNAUTHORIZED:
            raise UnauthorizedError(response_message(response))
        if status == _HTTP_BAD_REQUEST:
            raise BadRequestError(response_message(response))
        if status != _HTTP_OK:
            raise RegistryStatusError(
                STAGE_OPERATION, status, response_message(response)
            )
        try:
            return msgspec.json.decode(response.content, type=StageResult)
        except msgspec.DecodeError as exc:
            raise TransportError.malformed_response(STAGE_OPERATION, str(exc)) from exc

    async def upload_tarball(self, upload_url: str, tarball: Tarball) -> None:
        """PUT the tarball to the presigned upload URL."""
        response = await self._request(
            TRANSFER_OPERATION,
            "PUT",
            upload_url,
            content=tarball.data,
            headers={
                "Content-Length": str(tarball.size),
                "Content-Type": "application/gzip",
                "x-amz-checksum-sha256": tarball.hash_base64,
            },
        )
        if not response.is_success:
            raise RegistryStatusError(
                TRANSFER_OPERATION, response.status_code, response.text
            )

    async def publish_release(self, release_id: str) -> None:
        """Make a staged and transferred release visible."""
        response = await self._request(
            PUBLISH_OPERATION,
            "POST",
            f"{self._host}/publish/{release_id}",
            headers=self._registry_headers(),
        )
        if response.status_code != _HTTP_OK:
            raise RegistryStatusError(
                PUBLISH_OPERATION, response.status_code, response.text
            )


__all__ = [
    "PUBLISH_OPERATION",
    "STAGE_OPERATION",
    "TRANSFER_OPERATION",
    "FlakeHubClient",
    "response_message",
]
