"""
Grammar decompression.

Expansion uses an explicit stack so that grammars of any height can be
decompressed without recursion.
"""

from __future__ import annotations

from typing import Iterator

from grammarextractor.grammar.metadata import topological_order
from grammarextractor.grammar.model import Grammar, GrammarError, is_terminal


def expand(grammar: Grammar, symbol: int) -> Iterator[int]:
    """Yield the terminals derived by ``symbol`` left to right."""
    stack = [symbol]
    while stack:
        current = stack.pop()
        if is_terminal(current):
            yield current
            continue
        rhs = grammar.rules.get(current)
        if rhs is None:
            raise GrammarError(f"Missing rule for non-terminal: R{current}")
        # Reversed so the leftmost child is popped first
        stack.extend(reversed(rhs))


def iter_terminals(grammar: Grammar) -> Iterator[int]:
    # Raises on a cycle, which would otherwise expand forever
    topological_order(grammar)
    for symbol in grammar.sequence:
        yield from expand(grammar, symbol)


def decompress_bytes(grammar: Grammar) -> bytes:
    return bytes(iter_terminals(grammar))


def decompress(grammar: Grammar) -> str:
    """Decompress a grammar to text; terminals map to latin-1 characters."""
    return decompress_bytes(grammar).decode("latin-1")
