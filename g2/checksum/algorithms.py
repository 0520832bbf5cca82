"""
Supported Manifest digest algorithms.

The set is closed: every member of ``HashAlgorithm`` must have an entry in
the constructor table, which is checked when the module is imported.
"""

from __future__ import annotations

import hashlib
from enum import Enum
from typing import Any, Callable, Iterable

from g2.errors import DigestInitError


class HashAlgorithm(str, Enum):
    """Digest algorithm, valued by its Manifest tag."""

    BLAKE2B = "BLAKE2B"
    BLAKE2S = "BLAKE2S"
    MD5 = "MD5"
    RMD160 = "RMD160"
    SHA1 = "SHA1"
    SHA256 = "SHA256"
    SHA3_256 = "SHA3_256"
    SHA3_512 = "SHA3_512"
    SHA512 = "SHA512"

    @property
    def tag(self) -> str:
        """Name written in Manifest lines."""
        return self.value

    def new(self) -> Any:
        """
        Construct a fresh streaming accumulator.

        Returns:
            A hashlib-style object with ``update`` and ``hexdigest``.

        Raises:
            DigestInitError: If the runtime cannot provide this algorithm
                (e.g. RIPEMD-160 on an OpenSSL build without legacy digests).
        """
        try:
            return _CONSTRUCTORS[self]()
        except ValueError as e:
            raise DigestInitError(
                f"bad {self.value.lower()} initialization: {e}", self.value
            ) from e

    @classmethod
    def parse(cls, name: str | HashAlgorithm) -> HashAlgorithm:
        """
        Look up an algorithm by Manifest tag, case-insensitively.

        Raises:
            ValueError: If ``name`` is not a supported algorithm.
        """
        if isinstance(name, cls):
            return name
        try:
            return cls(name.strip().upper())
        except ValueError:
            supported = ", ".join(a.value for a in cls)
            raise ValueError(
                f"Unsupported hash algorithm: {name}. Supported: {supported}"
            ) from None


_CONSTRUCTORS: dict[HashAlgorithm, Callable[[], Any]] = {
    HashAlgorithm.BLAKE2B: lambda: hashlib.blake2b(digest_size=64),
    HashAlgorithm.BLAKE2S: lambda: hashlib.blake2s(digest_size=32),
    HashAlgorithm.MD5: hashlib.md5,
    HashAlgorithm.RMD160: lambda: hashlib.new("ripemd160"),
    HashAlgorithm.SHA1: hashlib.sha1,
    HashAlgorithm.SHA256: hashlib.sha256,
    HashAlgorithm.SHA3_256: hashlib.sha3_256,
    HashAlgorithm.SHA3_512: hashlib.sha3_512,
    HashAlgorithm.SHA512: hashlib.sha512,
}

_missing = set(HashAlgorithm) - set(_CONSTRUCTORS)
if _missing:
    raise RuntimeError(f"No constructor for hash algorithms: {sorted(_missing)}")

# Written by the upsert and fix paths when the caller does not choose.
DEFAULT_ALGORITHMS: tuple[HashAlgorithm, ...] = (
    HashAlgorithm.BLAKE2B,
    HashAlgorithm.SHA512,
)


def parse_algorithms(names: Iterable[str | HashAlgorithm]) -> list[HashAlgorithm]:
    """
    Parse algorithm names, dropping duplicates but keeping order.

    Args:
        names: Manifest tags or HashAlgorithm members.

    Returns:
        Algorithms in first-seen order.
    """
    result: list[HashAlgorithm] = []
    for name in names:
        algorithm = HashAlgorithm.parse(name)
        if algorithm not in result:
            result.append(algorithm)
    return result
