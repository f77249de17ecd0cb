"""
Driver for native RePair encoder/decoder binaries.

The encoder is invoked as ``encoder <file>`` and writes ``<file>.rp``;
the decoder is invoked as ``decoder <file.rp> <grammar.txt>`` and writes
the human-readable grammar notation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from grammarextractor.drivers.base import ExecutionResult
from grammarextractor.drivers.subprocess_driver import SubprocessDriver, SubprocessDriverConfig

logger = logging.getLogger(__name__)


class ToolError(RuntimeError):
    """Raised when an external tool step fails."""

    def __init__(self, message: str, result: ExecutionResult | None = None):
        super().__init__(message)
        self.result = result


@dataclass
class RePairToolsConfig:
    """Configuration for the native RePair tools."""

    # Path to the encoder binary
    encoder: Path | str = "./encoder"

    # Path to the decoder binary
    decoder: Path | str = "./decoder"

    # Timeout per invocation
    timeout: float = 300.0


class RePairTools:
    """
    Runs an external RePair encoder and decoder.

    Each step is checked: a failing exit code or a missing output file
    raises ToolError carrying the execution result.
    """

    def __init__(self, config: RePairToolsConfig):
        self.config = config
        self._encoder = SubprocessDriver(SubprocessDriverConfig(
            command=[str(config.encoder)],
            timeout=config.timeout,
        ))
        self._decoder = SubprocessDriver(SubprocessDriverConfig(
            command=[str(config.decoder)],
            timeout=config.timeout,
        ))

    @classmethod
    def from_config_file(cls, path: Path | str) -> "RePairTools":
        """Load tool paths from a TOML config file."""
        from grammarextractor.config import ToolConfig

        tool_config = ToolConfig.from_file(path)
        if not tool_config.uses_external_tools:
            raise ToolError(f"No encoder/decoder configured in {path}")
        return cls(tool_config.repair_tools())

    def _check(self, result: ExecutionResult, output: Path) -> Path:
        if result.stdout:
            logger.debug(result.stdout.rstrip())
        if not result.is_pass:
            if result.stderr:
                logger.error(result.stderr.rstrip())
            raise ToolError(result.describe(), result)
        if not output.exists():
            raise ToolError(f"{result.command[0]} did not produce {output}", result)
        return output

    def encode(self, input_path: Path | str) -> Path:
        """Compress ``input_path``; returns the path of the ``.rp`` file."""
        input_path = Path(input_path)
        result = self._encoder.execute([str(input_path)])
        output = input_path.with_name(input_path.name + ".rp")
        logger.info(f"Encoder finished in {result.duration_ms:.0f} ms")
        return self._check(result, output)

    def decode(self, rp_path: Path | str, output_path: Path | str) -> Path:
        """Translate a ``.rp`` file into the human-readable grammar notation."""
        output_path = Path(output_path)
        result = self._decoder.execute([str(rp_path), str(output_path)])
        logger.info(f"Decoder finished in {result.duration_ms:.0f} ms")
        return self._check(result, output_path)
