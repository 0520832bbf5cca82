"""Manifest model: entries, parsing, sorting, and upserts."""

from g2.manifest.entry import HashValue, ManifestEntry
from g2.manifest.manifest import (
    MANIFEST_NAME,
    Manifest,
    parse_manifest,
    parse_manifest_content,
    upsert_manifest,
)

__all__ = [
    "HashValue",
    "ManifestEntry",
    "MANIFEST_NAME",
    "Manifest",
    "parse_manifest",
    "parse_manifest_content",
    "upsert_manifest",
]
