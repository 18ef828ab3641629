"""Typed models for GitHub repository data."""

from __future__ import annotations

import dataclasses


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubRepositoryData:
    """Repository facts GitHub reports for a release revision.

    Attributes
    ----------
    revision
        Commit id the query was issued for.
    rev_count
        Number of commits in the history of ``revision``.
    spdx_identifier
        Licence identifier GitHub detected, if any.
    project_id
        Database id of the repository.
    owner_id
        Database id of the owning user or organization.
    topics
        Repository topics, in the order GitHub returns them.

    """

    revision: str
    rev_count: int
    spdx_identifier: str | None
    project_id: int
    owner_id: int
    topics: tuple[str, ...] = ()
