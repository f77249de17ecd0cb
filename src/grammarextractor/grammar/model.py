"""
Straight-line grammar model.

A grammar derives exactly one text. Symbols below 256 are terminals
(byte values); every other symbol is a variable naming a rule in
``Grammar.rules``. The text is the concatenation of the expansions of
the symbols in ``Grammar.sequence``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

TERMINAL_LIMIT = 256


class GrammarError(ValueError):
    """Raised when a grammar is inconsistent or cannot be processed."""


class GrammarFormatError(GrammarError):
    """Raised when grammar input (text or binary) is malformed."""


class ExcerptRangeError(GrammarError):
    """Raised when an excerpt range does not fit the derived text."""


def is_terminal(symbol: int) -> bool:
    return symbol < TERMINAL_LIMIT


@dataclass
class Grammar:
    """A straight-line grammar: rules plus a top-level sequence."""
    rules: dict[int, tuple[int, ...]] = field(default_factory=dict)
    sequence: list[int] = field(default_factory=list)
    _lengths: dict[int, int] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        self.rules = {int(k): tuple(v) for k, v in self.rules.items()}
        self.sequence = list(self.sequence)

    def rule(self, symbol: int) -> tuple[int, ...]:
        """Return the RHS of a variable."""
        try:
            return self.rules[symbol]
        except KeyError:
            raise GrammarError(f"Rule for symbol {symbol} not found.") from None

    def symbol_length(self, symbol: int) -> int:
        """Return ``|val(symbol)|``; terminals have length 1."""
        if is_terminal(symbol):
            return 1
        cached = self._lengths.get(symbol)
        if cached is not None:
            return cached

        # Post-order walk so deep grammars don't hit the recursion limit
        stack = [(symbol, False)]
        on_path = set()
        while stack:
            current, expanded = stack.pop()
            if current in self._lengths:
                continue
            rhs = self.rule(current)
            if expanded:
                on_path.discard(current)
                self._lengths[current] = sum(
                    1 if is_terminal(s) else self._lengths[s] for s in rhs
                )
                continue
            if current in on_path:
                raise GrammarError(f"Rule R{current} is part of a cycle")
            on_path.add(current)
            stack.append((current, True))
            for child in rhs:
                if not is_terminal(child) and child not in self._lengths:
                    if child in on_path:
                        raise GrammarError(f"Rule R{child} is part of a cycle")
                    stack.append((child, False))
        return self._lengths[symbol]

    def uncompressed_size(self) -> int:
        """Length of the text derived by the whole sequence."""
        return sum(self.symbol_length(s) for s in self.sequence)

    def first_terminal(self, symbol: int) -> int:
        """Leftmost terminal of ``val(symbol)``."""
        while not is_terminal(symbol):
            rhs = self.rule(symbol)
            if not rhs:
                raise GrammarError(f"Rule R{symbol} derives the empty string")
            symbol = rhs[0]
        return symbol

    def last_terminal(self, symbol: int) -> int:
        """Rightmost terminal of ``val(symbol)``."""
        while not is_terminal(symbol):
            rhs = self.rule(symbol)
            if not rhs:
                raise GrammarError(f"Rule R{symbol} derives the empty string")
            symbol = rhs[-1]
        return symbol

    def reachable_rules(self, symbols: Iterable[int] | None = None) -> set[int]:
        """Variables reachable from ``symbols`` (default: the sequence)."""
        if symbols is None:
            symbols = self.sequence
        seen = set()
        stack = [s for s in symbols if not is_terminal(s)]
        while stack:
            symbol = stack.pop()
            if symbol in seen:
                continue
            seen.add(symbol)
            stack.extend(s for s in self.rule(symbol) if not is_terminal(s) and s not in seen)
        return seen

    def subgrammar(self, sequence: Iterable[int]) -> "Grammar":
        """New grammar over ``sequence`` keeping only the rules it needs."""
        sequence = list(sequence)
        needed = self.reachable_rules(sequence)
        return Grammar(
            rules={rule_id: self.rules[rule_id] for rule_id in sorted(needed)},
            sequence=sequence,
        )

    def max_rule_id(self) -> int:
        return max(self.rules, default=TERMINAL_LIMIT - 1)

    @property
    def rule_count(self) -> int:
        return len(self.rules)

    @property
    def rhs_size(self) -> int:
        """Total number of symbols on all right-hand sides."""
        return sum(len(rhs) for rhs in self.rules.values())

    def is_binary(self) -> bool:
        return all(len(rhs) == 2 for rhs in self.rules.values())

    def copy(self) -> "Grammar":
        return Grammar(rules=dict(self.rules), sequence=list(self.sequence))
