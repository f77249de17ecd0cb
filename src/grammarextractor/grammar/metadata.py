"""
Per-rule metadata used by recompression.

For every rule X we track:
- vocc(X): number of occurrences of X in the derivation tree
- |val(X)|: length of the derived string
- λ(X) / ρ(X): leftmost and rightmost maximal block (run) of val(X)
- isSB(X): whether val(X) is a single block

Blocks are combined bottom-up from the children's summaries, so no rule
is ever expanded.
"""

from __future__ import annotations

import logging
from collections import Counter, deque
from dataclasses import dataclass
from typing import Iterable

from grammarextractor.grammar.model import Grammar, GrammarError, is_terminal
from grammarextractor.grammar.writer import format_symbol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Block:
    """A maximal run of one symbol, e.g. a^3 for ``aaa``."""
    symbol: int
    count: int

    def __str__(self):
        if self.count == 1:
            return format_symbol(self.symbol)
        return f"{format_symbol(self.symbol)}^{self.count}"


@dataclass(frozen=True)
class RuleMetadata:
    vocc: int
    length: int
    leftmost_block: Block | None
    rightmost_block: Block | None
    is_single_block: bool

    @property
    def leftmost_terminal(self) -> int:
        return self.leftmost_block.symbol if self.leftmost_block else -1

    @property
    def rightmost_terminal(self) -> int:
        return self.rightmost_block.symbol if self.rightmost_block else -1


@dataclass(frozen=True)
class _Summary:
    length: int
    left: Block | None
    right: Block | None
    single: bool


_EMPTY = _Summary(0, None, None, False)


def _unit(symbol: int) -> _Summary:
    block = Block(symbol, 1)
    return _Summary(1, block, block, True)


def _concat(a: _Summary, b: _Summary) -> _Summary:
    if a.length == 0:
        return b
    if b.length == 0:
        return a

    length = a.length + b.length
    if a.single and b.single and a.left.symbol == b.left.symbol:
        merged = Block(a.left.symbol, a.left.count + b.left.count)
        return _Summary(length, merged, merged, True)

    left = a.left
    if a.single and b.left.symbol == a.left.symbol:
        left = Block(a.left.symbol, a.left.count + b.left.count)
    right = b.right
    if b.single and a.right.symbol == b.right.symbol:
        right = Block(b.right.symbol, a.right.count + b.right.count)
    return _Summary(length, left, right, False)


def _is_unit(symbol: int, artificial: frozenset[int]) -> bool:
    return is_terminal(symbol) or symbol in artificial


def topological_order(grammar: Grammar) -> list[int]:
    """
    Rule ids ordered so that every rule comes after the rules it uses.

    Raises:
        GrammarError: If a rule (transitively) uses itself
    """
    order = []
    done = set()
    on_path = set()
    for root in sorted(grammar.rules):
        if root in done:
            continue
        stack = [(root, False)]
        while stack:
            rule_id, expanded = stack.pop()
            if expanded:
                on_path.discard(rule_id)
                done.add(rule_id)
                order.append(rule_id)
                continue
            if rule_id in done:
                continue
            if rule_id in on_path:
                raise GrammarError(f"Rule R{rule_id} is part of a cycle")
            on_path.add(rule_id)
            stack.append((rule_id, True))
            for child in grammar.rule(rule_id):
                if is_terminal(child) or child in done:
                    continue
                if child in on_path:
                    raise GrammarError(f"Rule R{child} is part of a cycle")
                stack.append((child, False))
    return order


def compute_vocc(grammar: Grammar) -> dict[int, int]:
    """Occurrence count of every rule in the derivation tree."""
    rules = grammar.rules
    vocc = {rule_id: 0 for rule_id in rules}
    indegree = {rule_id: 0 for rule_id in rules}
    multiplicity = {}

    for parent, rhs in rules.items():
        children = Counter(s for s in rhs if s in rules)
        multiplicity[parent] = children
        for child, mul in children.items():
            indegree[child] += mul

    for symbol in grammar.sequence:
        if symbol in rules:
            vocc[symbol] += 1

    queue = deque(rule_id for rule_id in sorted(rules) if indegree[rule_id] == 0)
    while queue:
        parent = queue.popleft()
        count = vocc[parent]
        for child, mul in multiplicity[parent].items():
            vocc[child] += count * mul
            indegree[child] -= mul
            if indegree[child] == 0:
                queue.append(child)

    return vocc


def compute_all(
    grammar: Grammar,
    artificial_terminals: Iterable[int] | None = None,
) -> dict[int, RuleMetadata]:
    """
    Compute metadata for every rule of ``grammar``.

    Args:
        grammar: Grammar to analyse
        artificial_terminals: Variables to treat as opaque terminals

    Returns:
        Dict mapping rule id to its RuleMetadata
    """
    artificial = frozenset(artificial_terminals or ())
    vocc = compute_vocc(grammar)
    summaries: dict[int, _Summary] = {}
    metadata: dict[int, RuleMetadata] = {}

    for rule_id in topological_order(grammar):
        if rule_id in artificial:
            summary = _unit(rule_id)
        else:
            summary = _EMPTY
            for symbol in grammar.rules[rule_id]:
                child = _unit(symbol) if _is_unit(symbol, artificial) else summaries[symbol]
                summary = _concat(summary, child)
        summaries[rule_id] = summary
        metadata[rule_id] = RuleMetadata(
            vocc=vocc.get(rule_id, 0),
            length=summary.length,
            leftmost_block=summary.left,
            rightmost_block=summary.right,
            is_single_block=summary.single,
        )

    logger.debug(f"Computed metadata for {len(metadata)} rules")
    return metadata


def format_metadata(metadata: dict[int, RuleMetadata]) -> str:
    if not metadata:
        return "No metadata available."

    lines = ["=== Rule Metadata ==="]
    for rule_id in sorted(metadata):
        meta = metadata[rule_id]
        lines.append(
            f"R{rule_id}: vocc={meta.vocc}, length={meta.length}, "
            f"leftmost={meta.leftmost_block or 'None'}, "
            f"rightmost={meta.rightmost_block or 'None'}, "
            f"singleBlock={meta.is_single_block}"
        )
    return "\n".join(lines)
