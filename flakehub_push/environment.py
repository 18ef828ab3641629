"""Execution environment detection."""

from __future__ import annotations

import enum
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

GITHUB_ACTIONS_MARKER = "GITHUB_ACTIONS"
GITLAB_CI_MARKER = "GITLAB_CI"
GENERIC_OIDC_TOKEN_VAR = "FLAKEHUB_PUSH_OIDC_TOKEN"


class ExecutionEnvironment(enum.StrEnum):
    """Where the current push is running."""

    GITHUB = "github"
    GITLAB = "gitlab"
    GENERIC = "generic"
    LOCAL_DEV = "local-dev"

    @property
    def is_ci(self) -> bool:
        """Return True for the hosted CI platforms with their own markers."""
        return self in {ExecutionEnvironment.GITHUB, ExecutionEnvironment.GITLAB}


def classify(environ: cabc.Mapping[str, str]) -> ExecutionEnvironment:
    """Classify the execution environment from process environment signals.

    Markers are checked in a fixed order and the first match wins, so a run
    carrying both GitHub and GitLab markers is treated as GitHub.

    Parameters
    ----------
    environ
        Environment mapping, usually ``os.environ``.

    Returns
    -------
    ExecutionEnvironment
        The detected environment; ``LOCAL_DEV`` when no marker is present.

    Examples
    --------
    >>> classify({"GITLAB_CI": "true"})
    <ExecutionEnvironment.GITLAB: 'gitlab'>

    """
    if GITHUB_ACTIONS_MARKER in environ:
        return ExecutionEnvironment.GITHUB
    if GITLAB_CI_MARKER in environ:
        return ExecutionEnvironment.GITLAB
    if GENERIC_OIDC_TOKEN_VAR in environ:
        return ExecutionEnvironment.GENERIC
    return ExecutionEnvironment.LOCAL_DEV


__all__ = [
    "GENERIC_OIDC_TOKEN_VAR",
    "GITHUB_ACTIONS_MARKER",
    "GITLAB_CI_MARKER",
    "ExecutionEnvironment",
    "classify",
]
