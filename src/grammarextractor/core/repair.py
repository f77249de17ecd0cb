"""
Built-in RePair compressor.

Starting from the raw byte sequence, the most frequent pair of adjacent
symbols is replaced by a new rule until no pair occurs twice. The result
is a binary grammar numbered from 257 upward, the same numbering the
``.rp`` decoder produces.
"""

from __future__ import annotations

import logging
from pathlib import Path

from grammarextractor.core.recompressor import Recompressor, binarize, renumber
from grammarextractor.grammar.model import Grammar

logger = logging.getLogger(__name__)


def compress(data: bytes | str, max_rounds: int | None = None) -> Grammar:
    """
    Compress ``data`` into a straight-line grammar.

    Args:
        data: Input bytes (str input is encoded as latin-1)
        max_rounds: Optional cap on the number of pair replacements

    Returns:
        Binary grammar deriving ``data``
    """
    if isinstance(data, str):
        data = data.encode("latin-1")

    initial = Grammar(rules={}, sequence=list(data))
    recompressed = Recompressor(initial).run(max_rounds=max_rounds)
    grammar = renumber(binarize(recompressed))

    logger.info(
        f"Compressed {len(data)} bytes into {grammar.rule_count} rules "
        f"and a sequence of {len(grammar.sequence)} symbols"
    )
    return grammar


def compress_file(path: Path | str, max_rounds: int | None = None) -> Grammar:
    path = Path(path)
    logger.debug(f"Compressing {path}")
    return compress(path.read_bytes(), max_rounds=max_rounds)
