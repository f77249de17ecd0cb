"""
Excerpt extraction.

Builds a grammar deriving text[start:end] directly from the compressed
representation. Symbols that lie entirely inside the excerpt are reused
as-is; only symbols cut by the excerpt boundaries are descended into.
"""

from __future__ import annotations

import logging
from bisect import bisect_right
from itertools import accumulate

from grammarextractor.grammar.model import ExcerptRangeError, Grammar, is_terminal

logger = logging.getLogger(__name__)


def _validate_range(size: int, start: int, end: int):
    if end > size:
        raise ExcerptRangeError(
            "Start and end must define a valid range within the uncompressed sequence."
        )
    if start < 0:
        raise ExcerptRangeError("Start must be greater than zero.")
    if start > end:
        raise ExcerptRangeError("Start must be less than or equal to end.")


def _cover(grammar: Grammar, symbol: int, lo: int, hi: int, out: list[int]):
    """Append the minimal symbol cover of val(symbol)[lo:hi] to ``out``."""
    stack = [(symbol, lo, hi)]
    while stack:
        current, lo, hi = stack.pop()
        if lo == 0 and hi == grammar.symbol_length(current):
            out.append(current)
            continue
        # A terminal is always fully covered, so current is a variable here
        pending = []
        offset = 0
        for child in grammar.rule(current):
            child_len = grammar.symbol_length(child)
            child_lo = max(lo - offset, 0)
            child_hi = min(hi - offset, child_len)
            if child_lo < child_hi:
                pending.append((child, child_lo, child_hi))
            offset += child_len
            if offset >= hi:
                break
        stack.extend(reversed(pending))


def excerpt_sequence(grammar: Grammar, start: int, end: int) -> list[int]:
    """Symbols whose concatenated expansion equals text[start:end]."""
    _validate_range(grammar.uncompressed_size(), start, end)
    if start == end:
        return []

    ends = list(accumulate(grammar.symbol_length(s) for s in grammar.sequence))
    index = bisect_right(ends, start)
    offset = ends[index - 1] if index else 0

    out: list[int] = []
    while index < len(grammar.sequence) and offset < end:
        symbol = grammar.sequence[index]
        length = grammar.symbol_length(symbol)
        _cover(grammar, symbol, max(start - offset, 0), min(end - offset, length), out)
        offset += length
        index += 1
    return out


def extract_excerpt(grammar: Grammar, start: int, end: int) -> Grammar:
    """
    Extract the grammar of an excerpt.

    Args:
        grammar: Source grammar
        start: First position of the excerpt (inclusive)
        end: Position after the last character of the excerpt (exclusive)

    Returns:
        Grammar deriving text[start:end], holding every rule it references

    Raises:
        ExcerptRangeError: If the range does not fit the derived text
    """
    sequence = excerpt_sequence(grammar, start, end)
    excerpt = grammar.subgrammar(sequence)
    logger.debug(
        f"Excerpt [{start}, {end}): {len(sequence)} symbols, {excerpt.rule_count} rules "
        f"({sum(1 for s in sequence if is_terminal(s))} loose terminals)"
    )
    return excerpt
