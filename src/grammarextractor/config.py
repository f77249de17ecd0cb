"""
Tool configuration.

Settings come from an optional TOML file:

    encoder = "./encoder"     # native RePair encoder (optional)
    decoder = "./decoder"     # native RePair decoder (optional)
    timeout = 300
    workdir = "./out"
    chunk_size = 100000

The file is taken from ``--config`` or the GRAMMAREXTRACTOR_CONFIG
environment variable; without either, defaults apply and the built-in
codec is used.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path

from grammarextractor.corpus.generator import CHUNK_SIZE
from grammarextractor.drivers.repair_tools import RePairToolsConfig

logger = logging.getLogger(__name__)

CONFIG_ENV = "GRAMMAREXTRACTOR_CONFIG"
TIMESTAMP_ENV = "TIMESTAMP"
BASE_VERSION = "1.0"


def build_version(timestamp: str | None = None) -> str:
    """Build version of the form ``1.0-<timestamp>-SNAPSHOT``."""
    if timestamp is None:
        timestamp = os.environ.get(TIMESTAMP_ENV) or "local"
    return f"{BASE_VERSION}-{timestamp}-SNAPSHOT"


@dataclass
class ToolConfig:
    """Resolved tool settings."""
    encoder: str | None = None
    decoder: str | None = None
    timeout: float = 300.0
    workdir: Path = Path(".")
    chunk_size: int = CHUNK_SIZE

    @property
    def uses_external_tools(self) -> bool:
        return bool(self.encoder and self.decoder)

    def repair_tools(self) -> RePairToolsConfig:
        return RePairToolsConfig(
            encoder=self.encoder,
            decoder=self.decoder,
            timeout=self.timeout,
        )

    @classmethod
    def from_file(cls, path: Path | str) -> "ToolConfig":
        """Load settings from a TOML file; relative paths resolve against it."""
        path = Path(path)
        with open(path, "rb") as f:
            data = tomllib.load(f)

        unknown = set(data) - {"encoder", "decoder", "timeout", "workdir", "chunk_size"}
        if unknown:
            logger.warning(f"Ignoring unknown config keys in {path}: {sorted(unknown)}")

        def resolve(value):
            if value is None:
                return None
            candidate = Path(value)
            if not candidate.is_absolute():
                candidate = path.parent / candidate
            return str(candidate)

        timeout = float(data.get("timeout", 300.0))
        chunk_size = int(data.get("chunk_size", CHUNK_SIZE))
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        return cls(
            encoder=resolve(data.get("encoder")),
            decoder=resolve(data.get("decoder")),
            timeout=timeout,
            workdir=Path(resolve(data.get("workdir", "."))),
            chunk_size=chunk_size,
        )

    @classmethod
    def load(cls, path: Path | str | None = None) -> "ToolConfig":
        """Load from ``path``, else from $GRAMMAREXTRACTOR_CONFIG, else defaults."""
        if path is None:
            path = os.environ.get(CONFIG_ENV) or None
        if path is None:
            return cls()
        logger.debug(f"Loading config from {path}")
        return cls.from_file(path)
