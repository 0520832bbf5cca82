"""
Manifest files: the per-package ledger of distfile sizes and digests.

The whole file is read into memory, edited, and written back. There is no
locking; callers must not run concurrent writers against the same path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from g2.errors import FormatError
from g2.manifest.entry import ManifestEntry

logger = logging.getLogger(__name__)

MANIFEST_NAME = "Manifest"


@dataclass
class Manifest:
    """
    In-memory Manifest.

    Entries keep insertion order until ``sort`` is called. ``sort`` gives the
    canonical on-disk order by (type, filename).
    """

    entries: list[ManifestEntry] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def sort(self) -> None:
        """Sort entries by type then filename."""
        self.entries.sort(key=lambda e: (e.type.encode("utf-8"), e.filename.encode("utf-8")))

    def get_entry(self, filename: str) -> ManifestEntry | None:
        """First entry for ``filename``, or None."""
        for entry in self.entries:
            if entry.filename == filename:
                return entry
        return None

    def add_or_replace(self, entry: ManifestEntry) -> None:
        """
        Insert ``entry`` or replace the existing entry with the same filename.

        The match is on filename only: a distfile name is unique across the
        whole Manifest regardless of entry type.
        """
        for i, existing in enumerate(self.entries):
            if existing.filename == entry.filename:
                self.entries[i] = entry
                return
        self.entries.append(entry)

    def remove(self, filename: str) -> None:
        """Drop every entry for ``filename``."""
        self.entries = [e for e in self.entries if e.filename != filename]

    def to_string(self) -> str:
        """Render entries in their current order, one per line."""
        return "".join(f"{entry.to_string()}\n" for entry in self.entries)

    def __str__(self) -> str:
        return self.to_string()

    def save(self, path: Path) -> None:
        """Overwrite ``path`` with this manifest."""
        Path(path).write_text(self.to_string(), encoding="utf-8")


def parse_manifest_content(content: str) -> Manifest:
    """
    Parse Manifest text.

    Blank lines and ``#`` comments are skipped. Parsing is strict: one bad
    line fails the whole read.

    Args:
        content: Manifest text.

    Returns:
        Parsed Manifest in file order.

    Raises:
        FormatError: If any line is malformed.
    """
    manifest = Manifest()
    for raw in content.split("\n"):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        try:
            entry = ManifestEntry.parse(line)
        except FormatError as e:
            raise FormatError(f"parsing line {line!r}: {e}", line) from e
        manifest.entries.append(entry)
    return manifest


def parse_manifest(path: Path) -> Manifest:
    """
    Load a Manifest file.

    Args:
        path: Path to the Manifest.

    Returns:
        Parsed Manifest; empty if the file does not exist.

    Raises:
        FormatError: If the file is malformed.
        OSError: On any other read failure.
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Manifest()
    return parse_manifest_content(content)


def upsert_manifest(path: Path, entry: ManifestEntry) -> Manifest:
    """
    Add or replace one entry in a Manifest file.

    Reads the file (or starts empty), applies ``add_or_replace``, sorts, and
    rewrites the whole file.

    Args:
        path: Path to the Manifest.
        entry: Entry to write.

    Returns:
        The manifest as written.
    """
    manifest = parse_manifest(path)
    manifest.add_or_replace(entry)
    manifest.sort()
    manifest.save(path)
    logger.debug("Wrote %d entries to %s", len(manifest), path)
    return manifest
