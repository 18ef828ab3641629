"""Unit tests for release wire models."""

from __future__ import annotations

import base64
import hashlib

import msgspec
import pytest

from flakehub_push.errors import ConfigurationError
from flakehub_push.release.models import (
    ReleaseMetadata,
    StageResult,
    Tarball,
    Visibility,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("public", Visibility.PUBLIC),
        ("Unlisted", Visibility.UNLISTED),
        ("hidden", Visibility.UNLISTED),
        (" private ", Visibility.PRIVATE),
    ],
)
def test_visibility_parse(raw: str, expected: Visibility) -> None:
    """Visibility accepts 'hidden' as an alias of 'unlisted'."""
    assert Visibility.parse(raw) is expected


def test_visibility_parse_rejects_unknown() -> None:
    """Unknown visibilities list the accepted values."""
    with pytest.raises(ConfigurationError, match="public, unlisted, hidden"):
        Visibility.parse("internal")


def test_tarball_digest_is_base64_sha256() -> None:
    """The tarball hash is the standard base64 SHA-256 of its bytes."""
    tarball = Tarball.from_bytes(b"payload")

    assert tarball.size == len(b"payload")
    assert tarball.hash_base64 == base64.b64encode(
        hashlib.sha256(b"payload").digest()
    ).decode("ascii")


def test_release_metadata_wire_shape() -> None:
    """Metadata encodes every field the registry expects."""
    metadata = ReleaseMetadata(
        commit_count=5,
        description="demo",
        outputs={"packages": {}},
        raw_flake_metadata={"lastModified": 1},
        readme=None,
        repo="owner/flake",
        revision="abc",
        visibility=Visibility.UNLISTED,
        labels=["nix"],
    )

    encoded = msgspec.json.decode(msgspec.json.encode(metadata))

    assert encoded == {
        "commit_count": 5,
        "description": "demo",
        "outputs": {"packages": {}},
        "raw_flake_metadata": {"lastModified": 1},
        "readme": None,
        "repo": "owner/flake",
        "revision": "abc",
        "visibility": "unlisted",
        "mirrored": False,
        "source_subdirectory": None,
        "spdx_identifier": None,
        "labels": ["nix"],
    }


def test_stage_result_decodes_registry_field_names() -> None:
    """The stage response uses s3_upload_url and uuid on the wire."""
    result = msgspec.json.decode(
        b'{"s3_upload_url": "https://s3.test/put", "uuid": "rel-1", "extra": 1}',
        type=StageResult,
    )

    assert result == StageResult(upload_url="https://s3.test/put", release_id="rel-1")
