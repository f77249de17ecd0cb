"""
Base class for external tool drivers.

Drivers are responsible for:
- Running an external program (e.g. a native RePair encoder)
- Classifying the outcome
- Never raising for tool failures; the caller decides what to do
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, auto


class ResultType(Enum):
    """Classification of a tool invocation."""
    PASS = auto()     # Exit code accepted
    FAIL = auto()     # Tool ran but reported failure
    TIMEOUT = auto()  # Tool did not finish in time
    ERROR = auto()    # Tool could not be started


@dataclass
class ExecutionResult:
    """Result of running an external tool."""
    result_type: ResultType
    return_code: int
    command: list[str] = field(default_factory=list)
    stdout: str = ""
    stderr: str = ""
    duration_ms: float = 0

    @property
    def is_pass(self) -> bool:
        return self.result_type == ResultType.PASS

    def describe(self) -> str:
        name = self.command[0] if self.command else "tool"
        if self.result_type == ResultType.TIMEOUT:
            return f"{name} timed out"
        if self.result_type == ResultType.ERROR:
            return f"{name} could not be run: {self.stderr}"
        if self.result_type == ResultType.FAIL:
            return f"{name} failed with exit code {self.return_code}"
        return f"{name} succeeded"


class Driver(ABC):
    """
    Abstract base for tool drivers.

    Subclasses implement execution and result classification.
    """

    @abstractmethod
    def execute(self, args: list[str]) -> ExecutionResult:
        """
        Run the tool.

        Args:
            args: Extra command-line arguments

        Returns:
            ExecutionResult with outcome details
        """
        ...

    @abstractmethod
    def classify_result(self, return_code: int, stderr: str) -> ResultType:
        """
        Classify a finished run.

        Args:
            return_code: Process exit code
            stderr: Standard error output

        Returns:
            ResultType classification
        """
        ...
