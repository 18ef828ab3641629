"""Label merging for release metadata."""

from __future__ import annotations

import re
import typing as typ

from flakehub_push.logging import get_logger, log_warning

if typ.TYPE_CHECKING:
    import collections.abc as cabc

MAX_LABEL_LENGTH = 50
MAX_NUM_TOTAL_LABELS = 25

_LABEL_RE = re.compile(r"^[a-z0-9-]+$")

logger = get_logger(__name__)


def _normalize_label(label: str) -> str | None:
    normalized = label.strip().lower()
    if len(normalized) > MAX_LABEL_LENGTH or not _LABEL_RE.match(normalized):
        return None
    return normalized


def merge_labels(
    explicit_labels: cabc.Iterable[str],
    deprecated_extra_tags: cabc.Iterable[str],
    platform_topics: cabc.Iterable[str],
) -> list[str]:
    """Merge user labels and platform topics into the release label set.

    ``deprecated_extra_tags`` only stands in for ``explicit_labels`` when no
    labels were given. The union is capped at ``MAX_NUM_TOTAL_LABELS`` before
    normalization; labels that are empty, longer than ``MAX_LABEL_LENGTH`` or
    contain anything but ASCII letters, digits and ``-`` are dropped.

    Parameters
    ----------
    explicit_labels
        Labels supplied by the user.
    deprecated_extra_tags
        Labels supplied through the deprecated ``extra-tags`` option.
    platform_topics
        Topics reported by the forge for the repository.

    Returns
    -------
    list[str]
        Sorted, de-duplicated, lowercase labels.

    """
    labels = set(explicit_labels)
    extra_tags = set(deprecated_extra_tags)

    if extra_tags:
        log_warning(
            logger,
            "`extra-tags` is deprecated and will be removed in the future. "
            "Please use `extra-labels` instead.",
        )
        if labels:
            log_warning(
                logger,
                "Both `extra-tags` and `extra-labels` were set; `extra-tags` "
                "will be ignored.",
            )
        else:
            labels = extra_tags

    merged = sorted(labels | set(platform_topics))[:MAX_NUM_TOTAL_LABELS]
    normalized = {_normalize_label(label) for label in merged}
    return sorted(label for label in normalized if label is not None)


def parse_label_list(raw: str | None) -> frozenset[str]:
    """Split a comma separated label string, ignoring blank entries.

    Examples
    --------
    >>> sorted(parse_label_list("nix, flakes,,"))
    ['flakes', 'nix']

    """
    if not raw:
        return frozenset()
    return frozenset(part.strip() for part in raw.split(",") if part.strip())
