"""Repository slug utilities.

Repository slugs are forge identifiers in ``owner/name`` format, or
``owner/group/.../name`` on forges with nested subgroups such as GitLab.
They are not filesystem paths, even though they use ``/`` as a separator, so
they should be parsed using these helpers rather than ``pathlib``.
"""

from __future__ import annotations

import dataclasses

from flakehub_push.errors import ConfigurationError

_REPOSITORY_FORMAT_ERROR = (
    "Could not determine project owner and name; pass `--repository` formatted "
    "like `determinatesystems/flakehub-push`"
)
_REPOSITORY_SUBGROUP_FORMAT_ERROR = (
    "Could not determine project owner and name; pass `--repository` formatted "
    "like `determinatesystems/flakehub-push` or "
    "`determinatesystems/subgroup-segments.../flakehub-push`)"
)
_NAME_FORMAT_ERROR = (
    "The argument `--name` must be in the format of `owner-name/flake-name` and "
    "cannot contain whitespace or other special characters"
)


@dataclasses.dataclass(frozen=True, slots=True)
class ReleaseNames:
    """Names a release is uploaded under.

    Attributes
    ----------
    upload_name
        ``owner/name`` the registry stores the release as.
    project_owner
        First segment of the repository slug.
    project_name
        Repository name, possibly a ``-`` join of flattened subgroups.

    """

    upload_name: str
    project_owner: str
    project_name: str


def repo_slug(owner: str, name: str) -> str:
    """Build a repository slug from owner and name.

    Examples
    --------
    >>> repo_slug("DeterminateSystems", "flakehub-push")
    'DeterminateSystems/flakehub-push'

    """
    return f"{owner}/{name}"


def _is_valid_upload_name(name: str) -> bool:
    return (
        name.count("/") == 1
        and name.isascii()
        and not any(char.isspace() for char in name)
    )


def parse_repo_slug(slug: str, *, flatten_subgroups: bool = True) -> tuple[str, str]:
    """Parse a repository slug into owner and project name.

    Parameters
    ----------
    slug:
        Repository slug in ``owner/name`` format, or ``owner/group/.../name``
        when ``flatten_subgroups`` is enabled.
    flatten_subgroups:
        Join every segment after the owner with ``-`` instead of rejecting
        slugs with more than two segments.

    Returns
    -------
    tuple[str, str]
        ``(owner, project_name)``.

    Raises
    ------
    ConfigurationError
        If the slug does not match the expected format.

    Examples
    --------
    >>> parse_repo_slug("a/b/c/d")
    ('a', 'b-c-d')

    """
    message = (
        _REPOSITORY_SUBGROUP_FORMAT_ERROR
        if flatten_subgroups
        else _REPOSITORY_FORMAT_ERROR
    )
    owner, *segments = slug.split("/")
    if not owner or not segments or not all(segments):
        raise ConfigurationError(message)
    if not flatten_subgroups and len(segments) > 1:
        raise ConfigurationError(message)
    return owner, "-".join(segments)


def resolve_release_names(
    explicit_name: str | None,
    repository: str,
    *,
    flatten_subgroups: bool = True,
) -> ReleaseNames:
    """Resolve the upload name and project identity for a release.

    The repository is always parsed first, so a malformed repository is
    reported even when an explicit name is supplied.

    Parameters
    ----------
    explicit_name:
        ``owner/name`` override for the upload name, or ``None`` to derive it
        from the repository.
    repository:
        Forge repository slug.
    flatten_subgroups:
        Whether nested subgroup segments are joined into the project name.

    Returns
    -------
    ReleaseNames
        Upload name plus the owner and project parsed from the repository.

    Raises
    ------
    ConfigurationError
        If the repository or the explicit name is malformed.

    Examples
    --------
    >>> resolve_release_names(None, "DeterminateSystems/subgroup/flakehub").upload_name
    'DeterminateSystems/subgroup-flakehub'

    """
    owner, project = parse_repo_slug(repository, flatten_subgroups=flatten_subgroups)

    if explicit_name is None:
        upload_name = repo_slug(owner, project)
    elif _is_valid_upload_name(explicit_name):
        upload_name = explicit_name
    else:
        raise ConfigurationError(_NAME_FORMAT_ERROR)

    return ReleaseNames(
        upload_name=upload_name, project_owner=owner, project_name=project
    )
