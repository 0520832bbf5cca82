"""
Ebuild parsing and canonicalization.

Reads the subset of an ebuild that matters for distfile bookkeeping:
filename-derived metadata (P, PN, PV), top-level variable assignments, and
the SRC_URI download list. A parsed ebuild can be written back out in a
canonical form that re-parses to the same variables and entries.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path

from g2.core.resolver import resolve_variables

logger = logging.getLogger(__name__)

EBUILD_SUFFIX = ".ebuild"

# Variables implied by the filename; never written back into the body.
IMPLICIT_VARIABLES = frozenset({"P", "PN", "PV"})

VERSION_PATTERN = r"\d+(\.\d+)*([a-z]|_p\d+|_rc\d+|_beta\d+|_alpha\d+)?(-r\d+)?"

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_SRC_URI_DOUBLE_RE = re.compile(r'(?<![A-Za-z0-9_])SRC_URI\s*=\s*"([^"]*)"')
_SRC_URI_SINGLE_RE = re.compile(r"(?<![A-Za-z0-9_])SRC_URI\s*=\s*'([^']*)'")


class ParsingMode(IntEnum):
    """How much of an ebuild to parse. Each mode includes the previous ones."""

    METADATA_ONLY = 1
    VARIABLES = 2
    FULL = 3


@dataclass(frozen=True)
class URIEntry:
    """A distfile declared in SRC_URI."""

    url: str
    filename: str


@dataclass
class Ebuild:
    """
    Parsed ebuild.

    Only ``vars`` is populated in METADATA_ONLY and VARIABLES modes;
    ``src_uri`` is filled in FULL mode.
    """

    path: str
    vars: dict[str, str] = field(default_factory=dict)
    src_uri: list[URIEntry] = field(default_factory=list)
    mode: ParsingMode = ParsingMode.FULL

    def to_string(self) -> str:
        """
        Render the ebuild in canonical form.

        Variables are written as ``KEY="value"`` in key order, skipping the
        filename-derived ones. In FULL mode with entries, SRC_URI is
        regenerated from the parsed entries instead of its raw value.

        Returns:
            Canonical ebuild text.
        """
        emit_src_uri = self.mode >= ParsingMode.FULL and bool(self.src_uri)

        lines = []
        for key in sorted(self.vars):
            if key in IMPLICIT_VARIABLES:
                continue
            if key == "SRC_URI" and emit_src_uri:
                continue
            lines.append(f'{key}="{self.vars[key]}"')

        if emit_src_uri:
            lines.append('SRC_URI="')
            for entry in self.src_uri:
                if entry.filename == url_basename(entry.url):
                    lines.append(f"\t{entry.url}")
                else:
                    lines.append(f"\t{entry.url} -> {entry.filename}")
            lines.append('"')

        if not lines:
            return ""
        return "\n".join(lines) + "\n"

    def __str__(self) -> str:
        return self.to_string()


def url_basename(url: str) -> str:
    """Final path segment of a URL, ignoring trailing slashes."""
    stripped = url.rstrip("/")
    if not stripped:
        return url
    return stripped.rsplit("/", 1)[-1]


def is_identifier(name: str) -> bool:
    """Whether ``name`` is a valid shell variable name."""
    return bool(_IDENTIFIER_RE.match(name))


def parse_ebuild_variables(
    filename: str | Path,
    suffix: str = EBUILD_SUFFIX,
) -> dict[str, str] | None:
    """
    Derive P, PN and PV from an ebuild filename.

    Args:
        filename: Ebuild file name or path; only the basename is used.
        suffix: Expected file extension.

    Returns:
        Dict with P, PN and PV, or None if the name is not an ebuild name.

    Example:
        >>> parse_ebuild_variables("app-1.2.3_rc4-r1.ebuild")["PV"]
        '1.2.3_rc4-r1'
    """
    basename = Path(filename).name
    match = re.match(rf"^(.+)-({VERSION_PATTERN}){re.escape(suffix)}$", basename)
    if match is None:
        return None

    pn = match.group(1)
    pv = match.group(2)
    return {"P": f"{pn}-{pv}", "PN": pn, "PV": pv}


def _unquote_value(value: str, lines: list[str], index: int) -> tuple[str | None, int]:
    """
    Strip quoting from an assignment value.

    Handles values fully wrapped in one pair of quotes, and double-quoted
    values that continue over following lines.

    Args:
        value: Raw value after ``=`` (already stripped).
        lines: All lines of the ebuild.
        index: Index of the line holding the assignment.

    Returns:
        Tuple of (value or None if malformed, index of the last consumed line).
    """
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1], index

    if value.count('"') % 2 == 0 and value.count("'") % 2 == 0:
        return value, index

    if not value.startswith('"'):
        return None, index

    parts = [value[1:]]
    for next_index in range(index + 1, len(lines)):
        next_line = lines[next_index]
        if next_line.strip().endswith('"'):
            parts.append(next_line[: next_line.rindex('"')])
            return "\n".join(parts), next_index
        parts.append(next_line)

    # Ran off the end of the file without a closing quote.
    return None, len(lines) - 1


def parse_variables(content: str, variables: dict[str, str]) -> dict[str, str]:
    """
    Collect top-level ``KEY=VALUE`` assignments from ebuild content.

    Each accepted value is expanded against the variables gathered so far,
    so later assignments can build on earlier ones.

    Args:
        content: Ebuild text.
        variables: Starting variables (usually P/PN/PV). Updated in place.

    Returns:
        The updated variables mapping.
    """
    lines = content.splitlines()
    index = 0
    while index < len(lines):
        line = lines[index].strip()
        eq = line.find("=")
        if line.startswith("#") or eq <= 0:
            index += 1
            continue

        key = line[:eq].strip()
        if not is_identifier(key):
            # Comparisons, appends and other non-assignments.
            index += 1
            continue

        value, index = _unquote_value(line[eq + 1 :].strip(), lines, index)
        index += 1
        if value is None:
            continue

        variables[key] = resolve_variables(value, variables)

    return variables


def _strip_comments(content: str) -> str:
    lines = []
    for line in content.splitlines():
        hash_index = line.find("#")
        if hash_index != -1:
            line = line[:hash_index]
        lines.append(line)
    return "\n".join(lines)


def extract_uris(content: str, variables: dict[str, str]) -> list[URIEntry]:
    """
    Extract distfile entries from the SRC_URI block.

    Tokens containing ``://`` start an entry; ``URL -> name`` renames the
    distfile. A rename that expands to nothing falls back to the
    URL basename. Anything else (USE conditionals, parentheses) is ignored.

    Args:
        content: Ebuild text.
        variables: Variables used to expand URLs and file names.

    Returns:
        Entries in declaration order; empty if there is no SRC_URI block.
    """
    clean = _strip_comments(content)

    match = _SRC_URI_DOUBLE_RE.search(clean)
    if match is None:
        match = _SRC_URI_SINGLE_RE.search(clean)
    if match is None:
        return []

    tokens = match.group(1).split()
    entries: list[URIEntry] = []
    i = 0
    while i < len(tokens):
        token = tokens[i]
        if "://" not in token:
            i += 1
            continue

        url = token
        filename = url_basename(url)
        if i + 2 < len(tokens) and tokens[i + 1] == "->":
            filename = tokens[i + 2]
            i += 3
        else:
            i += 1

        resolved_url = resolve_variables(url, variables)
        resolved_name = resolve_variables(filename, variables)
        if not resolved_name:
            logger.warning("Empty distfile name for %s, using URL basename", resolved_url)
            resolved_name = url_basename(resolved_url)

        entries.append(URIEntry(url=resolved_url, filename=resolved_name))

    return entries


def parse_ebuild_content(
    path: str | Path,
    content: str,
    mode: ParsingMode = ParsingMode.FULL,
    suffix: str = EBUILD_SUFFIX,
) -> Ebuild:
    """
    Parse ebuild text that has already been read.

    Args:
        path: Ebuild path; its basename supplies P, PN and PV.
        content: Ebuild text.
        mode: Parsing depth.
        suffix: Ebuild file extension.

    Returns:
        Parsed Ebuild.
    """
    ebuild = Ebuild(path=str(path), mode=mode)
    ebuild.vars.update(parse_ebuild_variables(path, suffix) or {})

    if mode >= ParsingMode.VARIABLES:
        parse_variables(content, ebuild.vars)

    if mode >= ParsingMode.FULL:
        ebuild.src_uri = extract_uris(content, ebuild.vars)

    return ebuild


def parse_ebuild(
    path: str | Path,
    mode: ParsingMode = ParsingMode.FULL,
    suffix: str = EBUILD_SUFFIX,
) -> Ebuild:
    """
    Parse an ebuild file.

    The file is only read when ``mode`` needs the body.

    Args:
        path: Path to the ebuild.
        mode: Parsing depth.
        suffix: Ebuild file extension.

    Returns:
        Parsed Ebuild.

    Raises:
        OSError: If the file cannot be read.
    """
    if mode == ParsingMode.METADATA_ONLY:
        return parse_ebuild_content(path, "", mode, suffix)

    content = Path(path).read_text(encoding="utf-8")
    return parse_ebuild_content(path, content, mode, suffix)
