"""GitHub GraphQL client used to resolve repository data for a release."""

from __future__ import annotations

import dataclasses
import typing as typ

import httpx
import msgspec

from flakehub_push.logging import get_logger, log_debug, log_warning

from .errors import GitHubAPIError, GitHubConfigError, GitHubResponseShapeError
from .models import GitHubRepositoryData

GITHUB_ENDPOINT = "https://api.github.com/graphql"
MAX_NUM_EXTRA_TOPICS = 20

_HTTP_OK = 200

logger = get_logger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubGraphQLConfig:
    """Configuration for the GitHub GraphQL API client."""

    token: str
    endpoint: str = GITHUB_ENDPOINT
    timeout_s: float = 20.0
    user_agent: str = "flakehub-push/0.1"


_REPOSITORY_DATA_QUERY = """
query(
  $owner: String!
  $name: String!
  $revision: GitObjectID!
  $maxNumTopics: Int!
) {
  repository(owner: $owner, name: $name) {
    databaseId
    licenseInfo {
      spdxId
    }
    owner {
      ... on Organization {
        databaseId
      }
      ... on User {
        databaseId
      }
    }
    object(oid: $revision) {
      __typename
      ... on Commit {
        history {
          totalCount
        }
      }
    }
    repositoryTopics(first: $maxNumTopics) {
      edges {
        node {
          topic {
            name
          }
        }
      }
    }
  }
}
"""


class _LicenseInfo(msgspec.Struct, kw_only=True):
    spdx_id: str | None = msgspec.field(name="spdxId", default=None)


class _Owner(msgspec.Struct, kw_only=True):
    database_id: int | None = msgspec.field(name="databaseId", default=None)


class _History(msgspec.Struct, kw_only=True):
    total_count: int = msgspec.field(name="totalCount")


class _GitObject(msgspec.Struct, kw_only=True):
    typename: str = msgspec.field(name="__typename")
    history: _History | None = None


class _Topic(msgspec.Struct, kw_only=True):
    name: str


class _TopicNode(msgspec.Struct, kw_only=True):
    topic: _Topic


class _TopicEdge(msgspec.Struct, kw_only=True):
    node: _TopicNode | None = None


class _TopicConnection(msgspec.Struct, kw_only=True):
    edges: list[_TopicEdge | None] | None = None


class _Repository(msgspec.Struct, kw_only=True):
    database_id: int | None = msgspec.field(name="databaseId", default=None)
    license_info: _LicenseInfo | None = msgspec.field(name="licenseInfo", default=None)
    owner: _Owner | None = None
    git_object: _GitObject | None = msgspec.field(name="object", default=None)
    repository_topics: _TopicConnection = msgspec.field(
        name="repositoryTopics", default_factory=_TopicConnection
    )


class _QueryData(msgspec.Struct, kw_only=True):
    repository: _Repository | None = None


class _GraphQLResponse(msgspec.Struct, kw_only=True):
    data: _QueryData | None = None
    errors: list[typ.Any] | None = None


def _parse_graphql_payload(content: bytes) -> _QueryData:
    """Decode a GraphQL response body and extract its data field.

    Errors reported alongside data are logged and otherwise ignored, matching
    GitHub's partial-result semantics; errors without data are fatal.
    """
    try:
        payload = msgspec.json.decode(content, type=_GraphQLResponse)
    except msgspec.DecodeError as exc:
        raise GitHubResponseShapeError.undecodable(str(exc)) from exc

    if payload.errors:
        if payload.data is None:
            raise GitHubAPIError.graphql_errors(payload.errors)
        log_warning(logger, "Got errors from GraphQL query: %s", payload.errors)

    if payload.data is None:
        raise GitHubResponseShapeError.missing("data")
    return payload.data


def _topic_names(connection: _TopicConnection) -> tuple[str, ...]:
    return tuple(
        edge.node.topic.name
        for edge in connection.edges or []
        if edge is not None and edge.node is not None
    )


def _repository_data_from_payload(
    data: _QueryData, *, owner: str, name: str, revision: str
) -> GitHubRepositoryData:
    repository = data.repository
    if repository is None:
        raise GitHubAPIError.missing_repository(owner, name)

    git_object = repository.git_object
    if git_object is None:
        raise GitHubAPIError.missing_revision(revision)
    if git_object.typename != "Commit" or git_object.history is None:
        raise GitHubAPIError.not_a_commit(git_object.typename)

    if repository.database_id is None:
        raise GitHubResponseShapeError.missing("repository.databaseId")
    if repository.owner is None or repository.owner.database_id is None:
        raise GitHubResponseShapeError.missing("repository.owner.databaseId")

    license_info = repository.license_info
    return GitHubRepositoryData(
        revision=revision,
        rev_count=git_object.history.total_count,
        spdx_identifier=license_info.spdx_id if license_info is not None else None,
        project_id=repository.database_id,
        owner_id=repository.owner.database_id,
        topics=_topic_names(repository.repository_topics),
    )


class GitHubGraphQLClient:
    """Minimal GitHub GraphQL client for release repository data."""

    def __init__(
        self,
        config: GitHubGraphQLConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with the provided API configuration."""
        if not config.token.strip():
            raise GitHubConfigError.empty_token()

        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=config.timeout_s)
        self._headers = {
            "Authorization": f"Bearer {config.token}",
            "User-Agent": config.user_agent,
            "Accept": "application/json",
        }

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def fetch_repository_data(
        self, owner: str, name: str, revision: str
    ) -> GitHubRepositoryData:
        """Fetch licence, topics, ids and commit count for a revision.

        Parameters
        ----------
        owner
            Repository owner login.
        name
            Repository name.
        revision
            Full commit id the release is built from.

        Returns
        -------
        GitHubRepositoryData
            Repository facts used to assemble the release.

        Raises
        ------
        GitHubAPIError
            If GitHub rejects the query or does not know the revision.
        GitHubResponseShapeError
            If the response cannot be decoded.

        """
        data = await self._graphql(
            _REPOSITORY_DATA_QUERY,
            {
                "owner": owner,
                "name": name,
                "revision": revision,
                "maxNumTopics": MAX_NUM_EXTRA_TOPICS,
            },
        )
        result = _repository_data_from_payload(
            data, owner=owner, name=name, revision=revision
        )
        log_debug(
            logger,
            "GitHub reports %d commits for %s/%s at %s",
            result.rev_count,
            owner,
            name,
            revision,
        )
        return result

    async def _graphql(self, query: str, variables: dict[str, typ.Any]) -> _QueryData:
        """Execute a GraphQL query and return the validated data field."""
        try:
            response = await self._client.post(
                self._config.endpoint,
                json={"query": query, "variables": variables},
                headers=self._headers,
            )
        except httpx.RequestError as exc:
            raise GitHubAPIError(f"network error: {exc}") from exc
        if response.status_code != _HTTP_OK:
            raise GitHubAPIError.http_error(response.status_code)
        return _parse_graphql_payload(response.content)


__all__ = [
    "GITHUB_ENDPOINT",
    "MAX_NUM_EXTRA_TOPICS",
    "GitHubGraphQLClient",
    "GitHubGraphQLConfig",
]
