"""
Straight-line grammar model, notation and analysis.
"""

from grammarextractor.grammar.model import (
    TERMINAL_LIMIT,
    Grammar,
    GrammarError,
    GrammarFormatError,
    ExcerptRangeError,
    is_terminal,
)
from grammarextractor.grammar.parser import parse_file, parse_text
from grammarextractor.grammar.writer import (
    format_symbol,
    format_grammar,
    write_grammar,
    render_grammar,
)
from grammarextractor.grammar.decompressor import (
    expand,
    decompress,
    decompress_bytes,
)
from grammarextractor.grammar.metadata import (
    Block,
    RuleMetadata,
    compute_all,
    compute_vocc,
    format_metadata,
)
from grammarextractor.grammar.rle import CompressedRule, CompressedGrammar

__all__ = [
    # model
    "TERMINAL_LIMIT",
    "Grammar",
    "GrammarError",
    "GrammarFormatError",
    "ExcerptRangeError",
    "is_terminal",
    # notation
    "parse_file",
    "parse_text",
    "format_symbol",
    "format_grammar",
    "write_grammar",
    "render_grammar",
    # decompression
    "expand",
    "decompress",
    "decompress_bytes",
    # metadata
    "Block",
    "RuleMetadata",
    "compute_all",
    "compute_vocc",
    "format_metadata",
    # run-length form
    "CompressedRule",
    "CompressedGrammar",
]
