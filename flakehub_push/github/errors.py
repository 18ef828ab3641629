"""GitHub API errors."""

from __future__ import annotations

from flakehub_push.errors import ConfigurationError, PushError, TransportError

GRAPHQL_OPERATION = "github-graphql"


class GitHubAPIError(TransportError):
    """Raised when GitHub returns an error response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        super().__init__(GRAPHQL_OPERATION, message, status_code=status_code)

    @classmethod
    def http_error(cls, status_code: int) -> GitHubAPIError:
        """Return an error for non-2xx HTTP responses."""
        return cls(
            f"Got {status_code} status from GitHub's GraphQL API, expected 200",
            status_code=status_code,
        )

    @classmethod
    def graphql_errors(cls, errors: object) -> GitHubAPIError:
        """Return an error for GraphQL `errors` payloads without data."""
        return cls(f"GitHub GraphQL errors: {errors}")

    @classmethod
    def missing_repository(cls, owner: str, name: str) -> GitHubAPIError:
        """Return an error when GitHub did not report the repository."""
        return cls(
            f"Did not receive a `repository` from GitHub's GraphQL API. Does the "
            f"repository {owner}/{name} exist on GitHub, and does your GitHub "
            "access token have access to it?"
        )

    @classmethod
    def missing_revision(cls, revision: str) -> GitHubAPIError:
        """Return an error when the revision is unknown to GitHub."""
        return cls(
            "Did not receive a `repository.object` from GitHub's GraphQL API. "
            f"Is the current commit {revision} pushed to GitHub?"
        )

    @classmethod
    def not_a_commit(cls, typename: str) -> GitHubAPIError:
        """Return an error when the revision resolves to a non-commit object."""
        return cls(
            f"Retrieved a `repository.object` of type {typename} from GitHub's "
            "GraphQL API; only commits can be released"
        )


class GitHubResponseShapeError(TransportError):
    """Raised when GitHub GraphQL responses are missing expected fields."""

    def __init__(self, message: str) -> None:
        """Initialise with a description of the malformed field."""
        super().__init__(GRAPHQL_OPERATION, message)

    @classmethod
    def missing(cls, field: str) -> GitHubResponseShapeError:
        """Return an error for a missing GraphQL response field."""
        return cls(f"GitHub GraphQL response missing expected field: {field}")

    @classmethod
    def undecodable(cls, detail: str) -> GitHubResponseShapeError:
        """Return an error for a response body that is not the expected JSON."""
        return cls(f"malformed response: {detail}")


class GitHubConfigError(ConfigurationError):
    """Raised when GitHub client configuration is invalid."""

    @classmethod
    def empty_token(cls) -> GitHubConfigError:
        """Return an error when the provided token is empty."""
        return cls("GitHub token must be non-empty")


class GitHubOutputError(PushError):
    """Raised when a GitHub Actions step output cannot be written."""

    @classmethod
    def output_unset(cls) -> GitHubOutputError:
        """Return an error when ``GITHUB_OUTPUT`` is not set."""
        return cls("The `GITHUB_OUTPUT` environment variable is unset.")

    @classmethod
    def key_contains_delimiter(cls) -> GitHubOutputError:
        """Return an error when an output name collides with the delimiter."""
        return cls("Key contains delimiter")

    @classmethod
    def value_contains_delimiter(cls) -> GitHubOutputError:
        """Return an error when an output value collides with the delimiter."""
        return cls("Value contains delimiter")

    @classmethod
    def write_failed(cls, path: str, exc: OSError) -> GitHubOutputError:
        """Return an error when the outputs file cannot be appended to."""
        return cls(f"Writing to {path!r}: {exc}")
