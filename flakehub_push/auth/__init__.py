"""Registry credential acquisition for each execution environment."""

from __future__ import annotations

from .tokens import (
    GenericTokenContext,
    GitHubTokenContext,
    GitLabTokenContext,
    LocalDevTokenContext,
    TokenContext,
    acquire_token,
    registry_audience,
)

__all__ = [
    "GenericTokenContext",
    "GitHubTokenContext",
    "GitLabTokenContext",
    "LocalDevTokenContext",
    "TokenContext",
    "acquire_token",
    "registry_audience",
]
