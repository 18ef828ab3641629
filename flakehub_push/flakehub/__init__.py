"""FlakeHub upload API client and the release publishing state machine."""

from __future__ import annotations

from .client import FlakeHubClient
from .publish import PublishOutcome, PublishState, ReleasePublisher

__all__ = ["FlakeHubClient", "PublishOutcome", "PublishState", "ReleasePublisher"]
