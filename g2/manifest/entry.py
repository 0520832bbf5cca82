"""
Manifest entry records.

One entry is one Manifest line: ``TYPE FILENAME SIZE [ALG VALUE]...``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from g2.errors import FormatError

# Sizes are stored as signed 64-bit values on disk.
MAX_SIZE = 2**63 - 1


@dataclass(frozen=True)
class HashValue:
    """A named digest on a manifest entry."""

    algorithm: str
    value: str


@dataclass
class ManifestEntry:
    """
    A single Manifest line.

    Hash algorithms are unique within an entry; ``add_hash`` overwrites an
    existing value in place so the stored order is kept.
    """

    type: str
    filename: str
    size: int = 0
    hashes: list[HashValue] = field(default_factory=list)

    def add_hash(self, algorithm: str, value: str) -> None:
        """Set the digest for ``algorithm``, replacing any existing one."""
        for i, existing in enumerate(self.hashes):
            if existing.algorithm == algorithm:
                self.hashes[i] = HashValue(algorithm, value)
                return
        self.hashes.append(HashValue(algorithm, value))

    def get_hash(self, algorithm: str) -> str:
        """Digest for ``algorithm``, or an empty string if not recorded."""
        for existing in self.hashes:
            if existing.algorithm == algorithm:
                return existing.value
        return ""

    def to_string(self) -> str:
        """Render as a Manifest line (without newline)."""
        parts = [self.type, self.filename, str(self.size)]
        for h in self.hashes:
            parts.extend((h.algorithm, h.value))
        return " ".join(parts)

    def __str__(self) -> str:
        return self.to_string()

    @classmethod
    def create(
        cls,
        type: str,
        filename: str,
        size: int,
        *hashes: HashValue,
    ) -> ManifestEntry:
        """Build an entry, applying ``add_hash`` semantics to ``hashes``."""
        entry = cls(type=type, filename=filename, size=size)
        for h in hashes:
            entry.add_hash(h.algorithm, h.value)
        return entry

    @classmethod
    def parse(cls, line: str) -> ManifestEntry:
        """
        Parse a single Manifest line.

        Args:
            line: Line text, without comments.

        Returns:
            Parsed entry. Hash pairs keep their on-disk order.

        Raises:
            FormatError: If the line has fewer than three fields, the size is
                not a non-negative integer, or the hash fields are unpaired.
        """
        parts = line.split()
        if len(parts) < 3:
            raise FormatError("invalid manifest entry: not enough fields", line)

        size_field = parts[2]
        if not (size_field.isascii() and size_field.isdigit()):
            raise FormatError(f"invalid size: {size_field!r}", line)
        if int(size_field) > MAX_SIZE:
            raise FormatError(f"size out of range: {size_field}", line)

        hash_parts = parts[3:]
        if len(hash_parts) % 2 != 0:
            raise FormatError("invalid hashes: odd number of hash fields", line)

        entry = cls(type=parts[0], filename=parts[1], size=int(size_field))
        for i in range(0, len(hash_parts), 2):
            entry.hashes.append(HashValue(hash_parts[i], hash_parts[i + 1]))
        return entry
