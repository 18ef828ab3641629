"""Flake evaluation and source packaging through the ``nix`` CLI."""

from __future__ import annotations

import asyncio
import dataclasses
import gzip
import io
import shutil
import subprocess
import tarfile
import tempfile
import typing as typ
from pathlib import Path

import msgspec

from flakehub_push.errors import TransportError
from flakehub_push.logging import get_logger, log_debug
from flakehub_push.release.models import Tarball

PACKAGING_OPERATION = "packaging"
TARBALL_NAME = "release.tar.gz"

_NIX_TIMEOUT_SECONDS = 30 * 60.0
_STORE_PATH_KEYS = frozenset({"outPath", "drvPath"})

logger = get_logger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class FlakeArtifact:
    """Evaluated flake and its packaged source.

    Attributes
    ----------
    metadata
        ``nix flake metadata --json`` document.
    outputs
        Output graph of the packaged source.
    tarball
        Reproducible gzip tarball of the flake source.
    last_modified
        ``lastModified`` timestamp; every archive member carries it.

    """

    metadata: dict[str, typ.Any]
    outputs: typ.Any
    tarball: Tarball
    last_modified: int


class FlakePackager(typ.Protocol):
    """Collaborator that evaluates a flake and packages its source."""

    async def evaluate_and_package(
        self, root: Path, subdir: Path | None
    ) -> FlakeArtifact:
        """Evaluate the flake at ``root / subdir`` and package it."""
        ...


def _normalize_member(
    last_modified: int,
) -> typ.Callable[[tarfile.TarInfo], tarfile.TarInfo]:
    def normalize(info: tarfile.TarInfo) -> tarfile.TarInfo:
        info.uid = 0
        info.gid = 0
        info.uname = ""
        info.gname = ""
        info.mtime = last_modified
        return info

    return normalize


def build_tarball(source: Path, last_modified: int) -> bytes:
    """Archive ``source`` as a byte-for-byte reproducible ``.tar.gz``.

    Members are added in sorted order under a top-level directory named
    after ``source``, with zeroed ownership and ``last_modified`` as the
    modification time. The gzip header timestamp is fixed at zero.

    Parameters
    ----------
    source
        Directory to archive.
    last_modified
        Timestamp applied to every member.

    Returns
    -------
    bytes
        The compressed archive.

    """
    normalize = _normalize_member(last_modified)
    buffer = io.BytesIO()
    with (
        gzip.GzipFile(fileobj=buffer, mode="wb", mtime=0) as compressed,
        tarfile.open(fileobj=compressed, mode="w", format=tarfile.PAX_FORMAT) as tar,
    ):
        for path in [source, *sorted(source.rglob("*"))]:
            arcname = (Path(source.name) / path.relative_to(source)).as_posix()
            tar.add(path, arcname=arcname, recursive=False, filter=normalize)
    return buffer.getvalue()


def strip_output_paths(node: typ.Any) -> typ.Any:  # noqa: ANN401
    """Remove store path details from an output graph.

    Examples
    --------
    >>> strip_output_paths({"x": {"type": "derivation", "outPath": "/nix/store/x"}})
    {'x': {'type': 'derivation'}}

    """
    if isinstance(node, dict):
        return {
            key: strip_output_paths(value)
            for key, value in node.items()
            if key not in _STORE_PATH_KEYS
        }
    if isinstance(node, list):
        return [strip_output_paths(value) for value in node]
    return node


class NixFlakePackager:
    """:class:`FlakePackager` backed by the ``nix`` executable."""

    def __init__(self, *, nix: str = "nix", include_output_paths: bool = False) -> None:
        """Initialise with the ``nix`` executable to run."""
        self._nix = nix
        self._include_output_paths = include_output_paths

    def _run_json(self, *args: str) -> typ.Any:  # noqa: ANN401
        nix_executable = shutil.which(self._nix)
        if nix_executable is None:
            raise TransportError(PACKAGING_OPERATION, f"{self._nix} not found on PATH")

        command = " ".join([self._nix, *args])
        try:
            result = subprocess.run(  # noqa: S603  # fixed nix argv
                [nix_executable, *args],
                check=False,
                capture_output=True,
                timeout=_NIX_TIMEOUT_SECONDS,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise TransportError(
                PACKAGING_OPERATION, f"Failed to execute `{command}`: {exc}"
            ) from exc
        if result.returncode != 0:
            raise TransportError(
                PACKAGING_OPERATION,
                f"Failed to execute command `{command}` with status "
                f"{result.returncode}\nstderr: "
                f"{result.stderr.decode('utf-8', errors='replace')}",
            )
        try:
            return msgspec.json.decode(result.stdout)
        except msgspec.DecodeError as exc:
            raise TransportError.malformed_response(
                PACKAGING_OPERATION, f"Parsing `{command}` as JSON: {exc}"
            ) from exc

    def _metadata(self, flake_dir: Path) -> tuple[dict[str, typ.Any], Path, int]:
        metadata = self._run_json(
            "flake", "metadata", "--json", "--no-write-lock-file", str(flake_dir)
        )
        if not isinstance(metadata, dict):
            raise TransportError.malformed_response(
                PACKAGING_OPERATION, "`nix flake metadata --json` is not an object"
            )

        last_modified = metadata.get("lastModified")
        if isinstance(last_modified, bool) or not isinstance(last_modified, int):
            raise TransportError.malformed_response(
                PACKAGING_OPERATION,
                "`nix flake metadata --json` does not have an integer "
                "`lastModified` field",
            )
        path = metadata.get("path")
        if not isinstance(path, str):
            raise TransportError.malformed_response(
                PACKAGING_OPERATION,
                "Could not get `path` attribute from `nix flake metadata --json` output",
            )

        source = Path(path)
        resolved = metadata.get("resolved")
        if isinstance(resolved, dict) and isinstance(resolved.get("dir"), str):
            source /= resolved["dir"]
        return metadata, source, last_modified

    def _package(self, root: Path, subdir: Path | None) -> FlakeArtifact:
        flake_dir = root / subdir if subdir is not None else root
        metadata, source, last_modified = self._metadata(flake_dir)
        log_debug(logger, "Packaging %s (lastModified %d)", source, last_modified)

        tarball = Tarball.from_bytes(build_tarball(source, last_modified))
        log_debug(
            logger, "Built tarball of %d bytes (%s)", tarball.size, tarball.hash_base64
        )

        with tempfile.TemporaryDirectory(prefix="flakehub_push") as tempdir:
            tarball_path = Path(tempdir) / TARBALL_NAME
            tarball_path.write_bytes(tarball.data)
            outputs = self._run_json(
                "flake",
                "show",
                "--json",
                "--no-write-lock-file",
                f"file://{tarball_path}",
            )

        if not self._include_output_paths:
            outputs = strip_output_paths(outputs)
        return FlakeArtifact(
            metadata=metadata,
            outputs=outputs,
            tarball=tarball,
            last_modified=last_modified,
        )

    async def evaluate_and_package(
        self, root: Path, subdir: Path | None
    ) -> FlakeArtifact:
        """Evaluate and package the flake without blocking the event loop."""
        return await asyncio.to_thread(self._package, root, subdir)


__all__ = [
    "PACKAGING_OPERATION",
    "FlakeArtifact",
    "FlakePackager",
    "NixFlakePackager",
    "build_tarball",
    "strip_output_paths",
]
