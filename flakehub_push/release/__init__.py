"""Release naming, versioning, labels and revision resolution.

Context assembly lives in :mod:`flakehub_push.release.context` and is not
re-exported here because it depends on :mod:`flakehub_push.config`, which
itself imports from this package.
"""

from __future__ import annotations

from .labels import merge_labels, parse_label_list
from .models import ReleaseMetadata, StageResult, Tarball, Visibility
from .revision import RevisionInfo, resolve_revision, resolve_revision_async
from .version import resolve_release_version, rolling_version

__all__ = [
    "ReleaseMetadata",
    "RevisionInfo",
    "StageResult",
    "Tarball",
    "Visibility",
    "merge_labels",
    "parse_label_list",
    "resolve_release_version",
    "resolve_revision",
    "resolve_revision_async",
    "rolling_version",
]
