"""GitHub GraphQL client and GitHub Actions integration."""

from __future__ import annotations

from .actions import format_error_annotation, release_outputs, set_outputs
from .client import GitHubGraphQLClient, GitHubGraphQLConfig
from .models import GitHubRepositoryData

__all__ = [
    "GitHubGraphQLClient",
    "GitHubGraphQLConfig",
    "GitHubRepositoryData",
    "format_error_annotation",
    "release_outputs",
    "set_outputs",
]
