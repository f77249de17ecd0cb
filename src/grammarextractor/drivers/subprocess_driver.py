"""
Generic subprocess-based driver.

Runs an external command with extra arguments appended.
"""

from __future__ import annotations

import logging
import subprocess
import time
from dataclasses import dataclass, field

from grammarextractor.drivers.base import Driver, ExecutionResult, ResultType

logger = logging.getLogger(__name__)


@dataclass
class SubprocessDriverConfig:
    """Configuration for subprocess driver."""

    # Base command; per-call arguments are appended
    command: list[str]

    # Timeout in seconds
    timeout: float = 300.0

    # Return codes to treat as "pass"
    pass_codes: set[int] = field(default_factory=lambda: {0})


class SubprocessDriver(Driver):
    """
    Executes a tool via subprocess.

    Captures output and classifies the result by exit code.
    """

    def __init__(self, config: SubprocessDriverConfig):
        self.config = config

    def execute(self, args: list[str]) -> ExecutionResult:
        command = [*self.config.command, *[str(a) for a in args]]
        logger.debug(f"Running: {' '.join(command)}")
        start_time = time.time()

        try:
            proc = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.config.timeout,
            )

            duration_ms = (time.time() - start_time) * 1000
            result_type = self.classify_result(proc.returncode, proc.stderr)

            return ExecutionResult(
                result_type=result_type,
                return_code=proc.returncode,
                command=command,
                stdout=proc.stdout,
                stderr=proc.stderr,
                duration_ms=duration_ms,
            )

        except subprocess.TimeoutExpired:
            return ExecutionResult(
                result_type=ResultType.TIMEOUT,
                return_code=-1,
                command=command,
                stderr="Timeout expired",
                duration_ms=self.config.timeout * 1000,
            )

        except OSError as e:
            return ExecutionResult(
                result_type=ResultType.ERROR,
                return_code=-1,
                command=command,
                stderr=str(e),
            )

    def classify_result(self, return_code: int, stderr: str) -> ResultType:
        if return_code in self.config.pass_codes:
            return ResultType.PASS
        return ResultType.FAIL
