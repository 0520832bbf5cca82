"""Locate the Manifest and ebuild directory for a user-supplied target."""

from __future__ import annotations

from pathlib import Path

from g2.manifest.manifest import MANIFEST_NAME


def resolve_manifest_path(target: str | Path, manifest_name: str = MANIFEST_NAME) -> Path:
    """
    Manifest path for a target.

    A path named like the Manifest is used as-is; any other file (an ebuild)
    maps to the Manifest beside it; anything else is treated as a package
    directory.
    """
    path = Path(target)
    if path.name == manifest_name:
        return path
    if path.is_file():
        return path.parent / manifest_name
    return path / manifest_name


def resolve_ebuild_dir(target: str | Path, manifest_name: str = MANIFEST_NAME) -> Path:
    """Package directory holding the ebuilds for a target."""
    path = Path(target)
    if path.name == manifest_name or path.is_file():
        return path.parent
    return path
