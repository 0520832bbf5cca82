"""
Manifest reconciliation.

Compares the distfiles declared by every ebuild in a package directory with
the entries in its Manifest. Missing entries are reported and, in fix mode,
downloaded and hashed; entries no ebuild references any more are pruned by
clean. Per-file problems are logged and the scan carries on.
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Iterator

import httpx
import orjson

from g2.checksum.algorithms import HashAlgorithm, parse_algorithms
from g2.checksum.pipeline import fetch_and_hash
from g2.config import G2Config
from g2.core.ebuild import ParsingMode, URIEntry, parse_ebuild, parse_ebuild_variables, url_basename
from g2.errors import G2Error
from g2.manifest.entry import ManifestEntry
from g2.manifest.manifest import parse_manifest, upsert_manifest
from g2.reconcile.paths import resolve_ebuild_dir, resolve_manifest_path

logger = logging.getLogger(__name__)


@dataclass
class EbuildScan:
    """Distfiles declared by the ebuilds of one package directory."""

    ebuild_dir: Path
    entries: dict[str, list[URIEntry]] = field(default_factory=dict)
    skipped: dict[str, str] = field(default_factory=dict)

    @property
    def used(self) -> set[str]:
        """Every distfile name referenced by a parsed ebuild."""
        return {entry.filename for entries in self.entries.values() for entry in entries}


@dataclass
class CleanReport:
    """Outcome of pruning unreferenced distfile entries."""

    manifest_path: str
    removed: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        """Whether the Manifest was rewritten."""
        return bool(self.removed)

    def to_dict(self) -> dict[str, Any]:
        return {
            "manifest_path": self.manifest_path,
            "removed": self.removed,
            "changed": self.changed,
        }


@dataclass
class VerifyReport:
    """Outcome of checking ebuild distfiles against a Manifest."""

    manifest_path: str
    ebuilds: list[str] = field(default_factory=list)
    skipped: dict[str, str] = field(default_factory=dict)
    missing: list[str] = field(default_factory=list)
    fixed: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    clean: CleanReport | None = None

    @property
    def unresolved(self) -> list[str]:
        """Missing distfiles that are still not in the Manifest."""
        return [name for name in self.missing if name not in self.fixed]

    @property
    def ok(self) -> bool:
        return not self.unresolved

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for reporting."""
        return {
            "manifest_path": self.manifest_path,
            "ebuilds": self.ebuilds,
            "skipped": self.skipped,
            "missing": self.missing,
            "fixed": self.fixed,
            "failed": self.failed,
            "unresolved": self.unresolved,
            "ok": self.ok,
            "clean": self.clean.to_dict() if self.clean else None,
        }

    def to_json(self, indent: bool = True) -> str:
        """Serialize to JSON with sorted keys."""
        option = orjson.OPT_SORT_KEYS
        if indent:
            option |= orjson.OPT_INDENT_2
        return orjson.dumps(self.to_dict(), option=option).decode("utf-8")


@contextlib.contextmanager
def _http_client(config: G2Config, client: httpx.Client | None) -> Iterator[httpx.Client]:
    """Yield ``client``, or a config-built one that is closed afterwards."""
    if client is not None:
        yield client
        return
    with config.build_client() as owned:
        yield owned


def _algorithms(
    algorithms: Iterable[str | HashAlgorithm] | None, config: G2Config
) -> list[HashAlgorithm]:
    selected = parse_algorithms(algorithms) if algorithms else list(config.algorithms)
    if not selected:
        raise ValueError("at least one hash algorithm is required")
    return selected


def collect_used_distfiles(
    ebuild_dir: str | Path,
    suffix: str = ".ebuild",
) -> EbuildScan:
    """
    Parse every ebuild in a directory and collect declared distfiles.

    Files whose names do not follow the ebuild naming scheme, or that cannot
    be read, are skipped with a log message.

    Args:
        ebuild_dir: Package directory.
        suffix: Ebuild file extension.

    Returns:
        EbuildScan with entries per ebuild name, in file name order.
    """
    ebuild_dir = Path(ebuild_dir)
    scan = EbuildScan(ebuild_dir=ebuild_dir)

    for path in sorted(ebuild_dir.glob(f"*{suffix}")):
        if not path.is_file():
            continue
        if parse_ebuild_variables(path.name, suffix) is None:
            logger.warning("Skipping %s: cannot derive package metadata from name", path.name)
            scan.skipped[path.name] = "invalid ebuild name"
            continue
        try:
            ebuild = parse_ebuild(path, ParsingMode.FULL, suffix)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Skipping %s: %s", path.name, e)
            scan.skipped[path.name] = str(e)
            continue

        logger.debug("%s declares %d distfiles", path.name, len(ebuild.src_uri))
        scan.entries[path.name] = list(ebuild.src_uri)

    return scan


def upsert_from_url(
    url: str,
    filename: str | None,
    target: str | Path,
    algorithms: Iterable[str | HashAlgorithm] | None = None,
    *,
    config: G2Config | None = None,
    client: httpx.Client | None = None,
) -> ManifestEntry:
    """
    Download ``url``, hash it, and write its entry into a Manifest.

    Args:
        url: Distfile URL.
        filename: Distfile name in the Manifest; defaults to the URL basename.
        target: Manifest path, ebuild path, or package directory.
        algorithms: Digests to record; defaults to the configured set.
        config: Tool configuration.
        client: HTTP client (a configured one is built when omitted).

    Returns:
        The entry that was written.

    Raises:
        TransportError: If the download fails.
        DigestInitError: If an algorithm is unavailable.
        FormatError: If the existing Manifest is malformed.
    """
    config = config or G2Config()
    selected = _algorithms(algorithms, config)
    manifest_path = resolve_manifest_path(target, config.manifest_name)
    filename = filename or url_basename(url)

    logger.info("Fetching %s", url)
    with _http_client(config, client) as http:
        result = fetch_and_hash(
            url,
            selected,
            client=http,
            progress_interval=config.progress_interval,
            chunk_size=config.chunk_size,
        )

    entry = result.to_manifest_entry(filename, config.distfile_type)
    upsert_manifest(manifest_path, entry)
    logger.info("Updated %s: %s (%d bytes)", manifest_path, filename, result.size)
    return entry


def _clean_manifest(manifest_path: Path, used: set[str], distfile_type: str) -> CleanReport:
    report = CleanReport(manifest_path=str(manifest_path))
    manifest = parse_manifest(manifest_path)

    for entry in list(manifest.entries):
        if entry.type == distfile_type and entry.filename not in used:
            report.removed.append(entry.filename)

    if not report.changed:
        logger.info("Manifest %s is clean", manifest_path)
        return report

    for filename in report.removed:
        logger.info("Removing unused entry: %s", filename)
    manifest.entries = [
        e for e in manifest.entries if not (e.type == distfile_type and e.filename not in used)
    ]
    manifest.sort()
    manifest.save(manifest_path)
    logger.info("Removed %d unused entries from %s", len(report.removed), manifest_path)
    return report


def clean(target: str | Path, *, config: G2Config | None = None) -> CleanReport:
    """
    Remove distfile entries that no ebuild references.

    Only entries of the distfile type are considered. The Manifest is
    rewritten only when something was removed.

    Args:
        target: Manifest path, ebuild path, or package directory.
        config: Tool configuration.

    Returns:
        CleanReport; ``changed`` is False for a no-op.
    """
    config = config or G2Config()
    manifest_path = resolve_manifest_path(target, config.manifest_name)
    ebuild_dir = resolve_ebuild_dir(target, config.manifest_name)

    scan = collect_used_distfiles(ebuild_dir, config.ebuild_suffix)
    return _clean_manifest(manifest_path, scan.used, config.distfile_type)


def verify(
    target: str | Path,
    algorithms: Iterable[str | HashAlgorithm] | None = None,
    fix: bool = False,
    clean: bool = False,
    *,
    config: G2Config | None = None,
    client: httpx.Client | None = None,
) -> VerifyReport:
    """
    Check that every distfile declared by the ebuilds has a Manifest entry.

    Args:
        target: Manifest path, ebuild path, or package directory.
        algorithms: Digests to record when fixing; defaults to the configured set.
        fix: Download and hash missing distfiles and add their entries.
        clean: Prune unreferenced distfile entries afterwards.
        config: Tool configuration.
        client: HTTP client used in fix mode.

    Returns:
        VerifyReport. A failed fix leaves that distfile unresolved; the scan
        continues with the next one.

    Raises:
        FormatError: If the Manifest is malformed.
    """
    config = config or G2Config()
    selected = _algorithms(algorithms, config)
    manifest_path = resolve_manifest_path(target, config.manifest_name)
    ebuild_dir = resolve_ebuild_dir(target, config.manifest_name)

    report = VerifyReport(manifest_path=str(manifest_path))
    manifest = parse_manifest(manifest_path)
    scan = collect_used_distfiles(ebuild_dir, config.ebuild_suffix)
    report.ebuilds = list(scan.entries)
    report.skipped = dict(scan.skipped)

    checked: set[str] = set()
    with contextlib.ExitStack() as stack:
        http: httpx.Client | None = None
        for ebuild_name, entries in scan.entries.items():
            for uri in entries:
                if uri.filename in checked:
                    continue
                checked.add(uri.filename)

                if manifest.get_entry(uri.filename) is not None:
                    continue

                logger.warning("%s: missing Manifest entry for %s", ebuild_name, uri.filename)
                report.missing.append(uri.filename)
                if not fix:
                    continue

                if http is None:
                    http = stack.enter_context(_http_client(config, client))

                logger.info("Fixing %s from %s", uri.filename, uri.url)
                try:
                    result = fetch_and_hash(
                        uri.url,
                        selected,
                        client=http,
                        progress_interval=config.progress_interval,
                        chunk_size=config.chunk_size,
                    )
                    entry = result.to_manifest_entry(uri.filename, config.distfile_type)
                    manifest = upsert_manifest(manifest_path, entry)
                except (G2Error, OSError) as e:
                    logger.error("Failed to fix %s: %s", uri.filename, e)
                    report.failed[uri.filename] = str(e)
                    continue

                logger.info("Added %s (%d bytes)", uri.filename, result.size)
                report.fixed.append(uri.filename)

    if report.ok:
        logger.info("All distfiles present in %s", manifest_path)

    if clean:
        report.clean = _clean_manifest(manifest_path, scan.used, config.distfile_type)

    return report
