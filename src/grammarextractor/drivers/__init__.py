"""
External tool drivers.
"""

from grammarextractor.drivers.base import (
    Driver,
    ResultType,
    ExecutionResult,
)
from grammarextractor.drivers.subprocess_driver import (
    SubprocessDriver,
    SubprocessDriverConfig,
)
from grammarextractor.drivers.repair_tools import (
    RePairTools,
    RePairToolsConfig,
    ToolError,
)

__all__ = [
    "Driver",
    "ResultType",
    "ExecutionResult",
    "SubprocessDriver",
    "SubprocessDriverConfig",
    "RePairTools",
    "RePairToolsConfig",
    "ToolError",
]
