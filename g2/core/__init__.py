"""Core ebuild handling: variable resolution and parsing."""

from g2.core.ebuild import (
    Ebuild,
    ParsingMode,
    URIEntry,
    extract_uris,
    parse_ebuild,
    parse_ebuild_content,
    parse_ebuild_variables,
)
from g2.core.resolver import resolve_variables

__all__ = [
    "Ebuild",
    "ParsingMode",
    "URIEntry",
    "extract_uris",
    "parse_ebuild",
    "parse_ebuild_content",
    "parse_ebuild_variables",
    "resolve_variables",
]
