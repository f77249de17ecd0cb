"""
End-to-end workflows.
"""

from grammarextractor.engine.roundtrip import (
    RoundtripReport,
    ExtractReport,
    RecompressionReport,
    files_equal,
    first_difference,
    compress_roundtrip,
    extract_to_files,
    recompression_roundtrip,
)

__all__ = [
    "RoundtripReport",
    "ExtractReport",
    "RecompressionReport",
    "files_equal",
    "first_difference",
    "compress_roundtrip",
    "extract_to_files",
    "recompression_roundtrip",
]
