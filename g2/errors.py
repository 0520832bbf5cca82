"""
Error taxonomy shared by the parser, manifest model, and checksum pipeline.
"""

from __future__ import annotations


class G2Error(Exception):
    """Base class for all g2 errors."""


class FormatError(G2Error, ValueError):
    """Malformed manifest line, ebuild filename, or SRC_URI block."""

    def __init__(self, message: str, line: str | None = None):
        super().__init__(message)
        self.line = line


class TransportError(G2Error):
    """Fetching a distfile failed (connection error or bad HTTP status)."""

    def __init__(
        self,
        message: str,
        url: str,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.cause = cause


class DigestInitError(G2Error):
    """A requested hash algorithm could not be constructed."""

    def __init__(self, message: str, algorithm: str):
        super().__init__(message)
        self.algorithm = algorithm
