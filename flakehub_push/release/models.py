"""Typed models for release metadata and uploaded artifacts."""

from __future__ import annotations

import base64
import dataclasses
import enum
import hashlib
import typing as typ

import msgspec

from flakehub_push.errors import ConfigurationError


class Visibility(enum.StrEnum):
    """Registry visibility of a released flake."""

    PUBLIC = "public"
    UNLISTED = "unlisted"
    PRIVATE = "private"

    @classmethod
    def parse(cls, raw: str) -> Visibility:
        """Parse a user supplied visibility, accepting ``hidden`` as ``unlisted``.

        Examples
        --------
        >>> Visibility.parse("Hidden")
        <Visibility.UNLISTED: 'unlisted'>

        """
        normalized = raw.strip().lower()
        if normalized == "hidden":
            return cls.UNLISTED
        try:
            return cls(normalized)
        except ValueError as exc:
            raise ConfigurationError.invalid_value(
                "visibility", raw, "one of public, unlisted, hidden or private"
            ) from exc


class ReleaseMetadata(msgspec.Struct, kw_only=True, frozen=True):
    """Release description sent as the stage request body.

    Attributes
    ----------
    commit_count
        Number of commits reachable from ``revision``.
    description
        Flake description from ``nix flake metadata``.
    outputs
        Output graph from ``nix flake show``; opaque to this package.
    raw_flake_metadata
        Full ``nix flake metadata`` document; opaque to this package.
    readme
        README contents from the flake directory.
    repo
        Upload name, ``owner/name``.
    revision
        Commit id the release is built from.
    visibility
        Registry visibility.
    mirrored
        Whether the release mirrors a repository hosted elsewhere.
    source_subdirectory
        Flake directory relative to the git root, when not the root itself.
    spdx_identifier
        Licence expression for the release.
    labels
        Sorted, unique release labels.

    """

    commit_count: int
    description: str | None = None
    outputs: typ.Any
    raw_flake_metadata: typ.Any
    readme: str | None = None
    repo: str
    revision: str
    visibility: Visibility
    mirrored: bool = False
    source_subdirectory: str | None = None
    spdx_identifier: str | None = None
    labels: list[str] = msgspec.field(default_factory=list)


class StageResult(msgspec.Struct, kw_only=True, frozen=True):
    """Registry response to a successful stage request."""

    upload_url: str = msgspec.field(name="s3_upload_url")
    release_id: str = msgspec.field(name="uuid")


@dataclasses.dataclass(frozen=True, slots=True)
class Tarball:
    """Compressed flake source with its SHA-256 digest.

    Attributes
    ----------
    data
        Gzip compressed tar archive.
    hash_base64
        Standard base64 encoding of the SHA-256 digest of ``data``.

    """

    data: bytes
    hash_base64: str

    @classmethod
    def from_bytes(cls, data: bytes) -> Tarball:
        """Wrap ``data`` and compute its digest."""
        digest = hashlib.sha256(data).digest()
        return cls(data=data, hash_base64=base64.b64encode(digest).decode("ascii"))

    @property
    def size(self) -> int:
        """Return the archive length in bytes."""
        return len(self.data)


__all__ = ["ReleaseMetadata", "StageResult", "Tarball", "Visibility"]
