"""Reconciliation of ebuild distfiles with Manifest entries."""

from g2.reconcile.engine import (
    CleanReport,
    EbuildScan,
    VerifyReport,
    clean,
    collect_used_distfiles,
    upsert_from_url,
    verify,
)
from g2.reconcile.paths import resolve_ebuild_dir, resolve_manifest_path

__all__ = [
    "CleanReport",
    "EbuildScan",
    "VerifyReport",
    "clean",
    "collect_used_distfiles",
    "upsert_from_url",
    "verify",
    "resolve_ebuild_dir",
    "resolve_manifest_path",
]
