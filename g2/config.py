"""
Tool configuration.

Settings come from an optional YAML file; everything has a default so the
tool works without one. The file is located from an explicit path, then the
``G2_CONFIG`` environment variable.
"""

from __future__ import annotations

import os
from pathlib import Path

import httpx
import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from g2 import __version__
from g2.checksum.algorithms import DEFAULT_ALGORITHMS, HashAlgorithm, parse_algorithms

CONFIG_ENV_VAR = "G2_CONFIG"


class G2Config(BaseModel):
    """Settings shared by the reconciliation engine and the CLI."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Layout
    manifest_name: str = Field(default="Manifest", description="Manifest file name")
    ebuild_suffix: str = Field(default=".ebuild", description="Ebuild file extension")
    distfile_type: str = Field(default="DIST", description="Manifest tag for distfiles")

    # Hashing
    algorithms: list[HashAlgorithm] = Field(
        default_factory=lambda: list(DEFAULT_ALGORITHMS),
        description="Digests written for new entries",
    )
    chunk_size: int = Field(default=65536, ge=1, description="Download read size")
    progress_interval: float = Field(
        default=5.0, ge=0, description="Seconds between progress log lines"
    )

    # HTTP
    user_agent: str = Field(default=f"g2/{__version__}", description="User-Agent header")
    connect_timeout: float = Field(default=10.0, gt=0, description="Connect timeout (s)")
    follow_redirects: bool = Field(default=True, description="Follow HTTP redirects")

    # Logging
    log_level: str = Field(default="INFO", description="Log level for the CLI")

    @field_validator("algorithms", mode="before")
    @classmethod
    def validate_algorithms(cls, v: object) -> list[HashAlgorithm]:
        """Accept Manifest tags in any case; reject unknown names."""
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, (list, tuple)):
            raise ValueError("algorithms must be a list of names")
        algorithms = parse_algorithms(v)
        if not algorithms:
            raise ValueError("at least one algorithm is required")
        return algorithms

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize to an upper-case standard level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    def build_client(self) -> httpx.Client:
        """HTTP client for distfile downloads. Reads never time out."""
        return httpx.Client(
            headers={"User-Agent": self.user_agent},
            timeout=httpx.Timeout(None, connect=self.connect_timeout),
            follow_redirects=self.follow_redirects,
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> G2Config:
        """
        Load configuration from a YAML file.

        Expected format:
        ```yaml
        algorithms: [BLAKE2B, SHA512]
        progress_interval: 5
        user_agent: my-overlay-bot/1.0
        ```

        Args:
            path: Path to YAML file.

        Returns:
            Loaded G2Config.
        """
        content = Path(path).read_text()
        data = yaml.safe_load(content) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        return cls.model_validate(data)


def load_config(path: str | Path | None = None) -> G2Config:
    """
    Resolve and load configuration.

    Args:
        path: Explicit config path. Falls back to ``$G2_CONFIG``.

    Returns:
        Loaded config, or defaults if no file is configured.

    Raises:
        FileNotFoundError: If a configured file does not exist.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or None
    if path is None:
        return G2Config()

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    return G2Config.from_yaml(config_path)
