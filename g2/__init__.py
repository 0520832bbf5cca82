"""
g2: Manifest and ebuild tooling for overlay maintainers.

Parses ebuilds, keeps Manifest checksums in sync with declared distfiles,
and streams remote archives through every supported digest in one pass.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
