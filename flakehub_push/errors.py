"""Error taxonomy for release pushes.

Every failure surfaced by the pipeline is a :class:`PushError`. The CLI is
the only place these are turned into exit codes; everything below it raises
and lets the error propagate without retrying.
"""

from __future__ import annotations

_GITHUB_PERMISSIONS_HINT = """\
flakehub-push requires a JWT. To provide this, add `permissions` to your job, eg:

# ...
jobs:
  example:
    runs-on: ubuntu-latest
    permissions:
      id-token: write # Authenticate against FlakeHub
      contents: read
    steps:
    - uses: actions/checkout@v4
    # ..."""


class PushError(Exception):
    """Base class for all release push errors."""

    annotate: bool = False


class ConfigurationError(PushError):
    """Raised when a required input or secret is absent or malformed."""

    @classmethod
    def missing_repository(cls) -> ConfigurationError:
        """Return an error when no repository could be determined."""
        return cls(
            "Could not determine repository name, pass `--repository` formatted "
            "like `determinatesystems/flakehub-push`"
        )

    @classmethod
    def missing_github_oidc_token(cls) -> ConfigurationError:
        """Return an error when the GitHub Actions OIDC request token is unset."""
        return cls(
            "No `ACTIONS_ID_TOKEN_REQUEST_TOKEN` found. " + _GITHUB_PERMISSIONS_HINT
        )

    @classmethod
    def missing_github_oidc_url(cls) -> ConfigurationError:
        """Return an error when the GitHub Actions OIDC request URL is unset."""
        return cls(
            "`ACTIONS_ID_TOKEN_REQUEST_URL` required if "
            "`ACTIONS_ID_TOKEN_REQUEST_TOKEN` is also present. "
            + _GITHUB_PERMISSIONS_HINT
        )

    @classmethod
    def missing_gitlab_token(cls) -> ConfigurationError:
        """Return an error when GitLab did not provide an ID token."""
        return cls(
            "Failed to get a JWT from GitLab: `GITLAB_JWT_ID_TOKEN` is unset. "
            "You must configure `id_tokens` in the job, eg:\n\n"
            "  id_tokens:\n"
            "    GITLAB_JWT_ID_TOKEN:\n"
            "      aud: api.flakehub.com"
        )

    @classmethod
    def missing_generic_token(cls) -> ConfigurationError:
        """Return an error when the generic OIDC token variable is unset."""
        return cls("missing FLAKEHUB_PUSH_OIDC_TOKEN environment variable")

    @classmethod
    def missing_github_token(cls) -> ConfigurationError:
        """Return an error when a GitHub API token is required but unset."""
        return cls(
            "Could not determine GitHub token, pass `--github-token`, or set "
            "either `FLAKEHUB_PUSH_GITHUB_TOKEN` or `GITHUB_TOKEN`"
        )

    @classmethod
    def invalid_host(cls, host: str) -> ConfigurationError:
        """Return an error when the registry host has no hostname."""
        return cls(
            f"`host` must contain a valid host (eg `https://api.flakehub.com` "
            f"contains `api.flakehub.com`), got {host!r}"
        )

    @classmethod
    def jwt_issuer_in_ci(cls, environment: str) -> ConfigurationError:
        """Return an error when a dev JWT issuer is combined with a CI run."""
        return cls(
            f"specifying the jwt_issuer_uri when running in {environment} is invalid"
        )

    @classmethod
    def undetermined_environment(cls) -> ConfigurationError:
        """Return an error when no CI environment or dev issuer is available."""
        return cls(
            "can't determine execution environment: not running in GitHub "
            "Actions or GitLab CI, `FLAKEHUB_PUSH_OIDC_TOKEN` is unset and no "
            "`--jwt-issuer-uri` was given"
        )

    @classmethod
    def missing_commit_count(cls, revision: str) -> ConfigurationError:
        """Return an error when no commit count is available for a revision."""
        return cls(
            f"Could not determine the commit count of revision {revision}; the "
            "local checkout is shallow or does not have it checked out. Fetch "
            "the full history (for example `fetch-depth: 0` with "
            "actions/checkout) and release the checked-out revision"
        )

    @classmethod
    def invalid_spdx_expression(cls, value: str, detail: str) -> ConfigurationError:
        """Return an error for a licence expression that is not valid SPDX."""
        return cls(
            f"Invalid SPDX expression {value!r} for `spdx-expression`: {detail}"
        )

    @classmethod
    def invalid_reported_spdx(cls, value: str, detail: str) -> ConfigurationError:
        """Return an error when GitHub reports a licence that is not valid SPDX."""
        return cls(
            f"Invalid SPDX license identifier {value!r} reported from the GitHub "
            "API, either you are using a non-standard license or GitHub has "
            f"returned a value that cannot be validated: {detail}. Pass "
            "`--spdx-expression` to override it"
        )

    @classmethod
    def invalid_value(cls, option: str, value: str, expected: str) -> ConfigurationError:
        """Return an error for a malformed option value."""
        return cls(f"Invalid value {value!r} for `{option}`: expected {expected}")


class RevisionError(ConfigurationError):
    """Raised when the release revision cannot be read from git."""

    @classmethod
    def git_unavailable(cls) -> RevisionError:
        """Return an error when no ``git`` executable is on ``PATH``."""
        return cls("git executable not found on PATH")

    @classmethod
    def git_failed(cls, command: str, exc: BaseException) -> RevisionError:
        """Return an error when ``git`` could not be run to completion."""
        return cls(f"Failed to execute `{command}`: {exc}")

    @classmethod
    def not_a_repository(cls, path: str) -> RevisionError:
        """Return an error when ``path`` is not inside a git work tree."""
        return cls(f"{path} is not a git repository; pass `--git-root`")

    @classmethod
    def symbolic_to_symbolic(cls) -> RevisionError:
        """Return an error for a symbolic ref pointing at another symbolic ref."""
        return cls(
            "Symbolic revision pointing to a symbolic revision is not supported "
            "at this time"
        )

    @classmethod
    def unborn(cls) -> RevisionError:
        """Return an error when HEAD names a branch with no commits."""
        return cls(
            "Newly initialized repository detected, at least one commit is necessary"
        )


class UnauthorizedError(PushError):
    """Raised when the registry rejects the bearer credential."""

    annotate = True

    def __init__(self, body: str) -> None:
        """Initialise with the registry's response body."""
        self.body = body
        super().__init__(f"Unauthorized: {body}")


class ConflictError(PushError):
    """Raised when a release already exists and conflicts are fatal."""

    annotate = True

    def __init__(self, upload_name: str, version: str) -> None:
        """Initialise with the upload name and version that already exist."""
        self.upload_name = upload_name
        self.version = version
        super().__init__(f"{upload_name}/{version} already exists")


class BadRequestError(PushError):
    """Raised when the registry rejects the release payload."""

    annotate = True

    def __init__(self, body: str) -> None:
        """Initialise with the registry's response body."""
        self.body = body
        super().__init__(f"Bad request: {body}")


class TransportError(PushError):
    """Raised for network failures and malformed responses.

    Attributes
    ----------
    operation
        Name of the step that failed, such as ``stage`` or ``transfer``.
    status_code
        HTTP status code when the failure was an unexpected response.

    """

    def __init__(
        self, operation: str, detail: str, *, status_code: int | None = None
    ) -> None:
        """Initialise with the failing operation and a description."""
        self.operation = operation
        self.detail = detail
        self.status_code = status_code
        super().__init__(f"{operation} failed: {detail}")

    @classmethod
    def network(cls, operation: str, exc: BaseException) -> TransportError:
        """Return an error for a request that never produced a response."""
        return cls(operation, f"network error: {exc}")

    @classmethod
    def malformed_response(cls, operation: str, detail: str) -> TransportError:
        """Return an error for a response body that could not be decoded."""
        return cls(operation, f"malformed response: {detail}")


class RegistryStatusError(TransportError):
    """Raised when the registry answers with an unexpected status code."""

    def __init__(self, operation: str, status_code: int, body: str) -> None:
        """Initialise with the status code and response body."""
        self.body = body
        super().__init__(
            operation,
            f"Status {status_code} from {operation} request\n{body}",
            status_code=status_code,
        )


__all__ = [
    "BadRequestError",
    "ConfigurationError",
    "ConflictError",
    "PushError",
    "RegistryStatusError",
    "RevisionError",
    "TransportError",
    "UnauthorizedError",
]
