"""Streaming checksum pipeline: algorithms, progress, fetch-and-hash."""

from g2.checksum.algorithms import DEFAULT_ALGORITHMS, HashAlgorithm, parse_algorithms
from g2.checksum.pipeline import ChecksumResult, fetch_and_hash
from g2.checksum.progress import DownloadProgress

__all__ = [
    "DEFAULT_ALGORITHMS",
    "HashAlgorithm",
    "parse_algorithms",
    "ChecksumResult",
    "fetch_and_hash",
    "DownloadProgress",
]
