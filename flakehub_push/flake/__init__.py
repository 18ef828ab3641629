"""Flake evaluation and source packaging."""

from __future__ import annotations

from .packager import FlakeArtifact, FlakePackager, NixFlakePackager, build_tarball

__all__ = ["FlakeArtifact", "FlakePackager", "NixFlakePackager", "build_tarball"]
