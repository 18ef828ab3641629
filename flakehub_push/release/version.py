"""Release version resolution for tagged and rolling releases."""

from __future__ import annotations

import semver

from flakehub_push.errors import ConfigurationError

DEFAULT_ROLLING_PREFIX = "0.1"


def is_semver(version: str) -> bool:
    """Return True when ``version`` is a valid semantic version.

    Examples
    --------
    >>> is_semver("1.2.3-rc.1+build.5")
    True
    >>> is_semver("01.2.3")
    False

    """
    return semver.Version.is_valid(version)


def rolling_version(prefix: str, commit_count: int, revision: str) -> str:
    """Format a rolling release version from its prefix and revision."""
    return f"{prefix}.{commit_count}+rev-{revision}"


def resolve_release_version(
    tag: str | None,
    *,
    rolling: bool,
    rolling_minor: int | None,
    commit_count: int,
    revision: str,
) -> str:
    """Compute the registry-facing version string.

    Rolling releases use ``0.{minor}.{commit_count}+rev-{revision}``, with the
    minor defaulting to ``1``. Otherwise the tag is used verbatim, including
    any leading ``v``, once the remainder validates as semver.

    Parameters
    ----------
    tag
        Explicit version tag, such as ``v1.2.3``.
    rolling
        Whether this is a rolling release.
    rolling_minor
        Minor version for rolling releases; requires ``rolling``.
    commit_count
        Number of commits reachable from ``revision``.
    revision
        Commit id being released.

    Returns
    -------
    str
        The version string used in the upload URL.

    Raises
    ------
    ConfigurationError
        If the inputs do not determine a valid version.

    """
    if rolling_minor is not None:
        if not rolling:
            msg = (
                "You must enable `rolling` to upload a release with a specific "
                "`rolling-minor`."
            )
            raise ConfigurationError(msg)
        return rolling_version(f"0.{rolling_minor}", commit_count, revision)

    if rolling:
        return rolling_version(DEFAULT_ROLLING_PREFIX, commit_count, revision)

    if tag is None:
        msg = (
            "Could not determine tag or rolling minor version, `--tag`, "
            "`GITHUB_REF_NAME`, or `--rolling-minor` must be set"
        )
        raise ConfigurationError(msg)

    if not is_semver(tag.removeprefix("v")):
        msg = (
            f"Failed to parse version `{tag}` as semver, see https://semver.org/ "
            "for specifications"
        )
        raise ConfigurationError(msg)
    return tag
