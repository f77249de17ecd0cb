"""
Run-length rule representation.

Each rule takes the form X -> X' w X" where X' and X" are optional
variables and w is a run-length encoded string of blocks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from grammarextractor.grammar.metadata import Block, RuleMetadata, compute_all
from grammarextractor.grammar.model import Grammar, is_terminal


@dataclass(frozen=True)
class CompressedRule:
    """Rule of the form X -> X' w X"."""
    left_variable: int | None
    middle_blocks: tuple[Block, ...]
    right_variable: int | None

    @property
    def size(self) -> int:
        """|rule|_rle: blocks plus the outer variables that are present."""
        size = len(self.middle_blocks)
        if self.left_variable is not None:
            size += 1
        if self.right_variable is not None:
            size += 1
        return size

    def to_list(self) -> list[int]:
        result = []
        if self.left_variable is not None:
            result.append(self.left_variable)
        for block in self.middle_blocks:
            result.extend([block.symbol] * block.count)
        if self.right_variable is not None:
            result.append(self.right_variable)
        return result

    @classmethod
    def from_list(cls, rhs: Iterable[int]) -> "CompressedRule":
        rhs = list(rhs)
        if not rhs:
            return cls(None, (), None)

        left = right = None
        start, end = 0, len(rhs)

        if not is_terminal(rhs[0]):
            left = rhs[0]
            start = 1
        if end > start and not is_terminal(rhs[end - 1]):
            right = rhs[end - 1]
            end -= 1

        blocks = []
        i = start
        while i < end:
            symbol = rhs[i]
            count = 1
            while i + count < end and rhs[i + count] == symbol:
                count += 1
            blocks.append(Block(symbol, count))
            i += count

        return cls(left, tuple(blocks), right)

    def __str__(self):
        parts = []
        if self.left_variable is not None:
            parts.append(f"R{self.left_variable}")
        parts.extend(str(block) for block in self.middle_blocks)
        if self.right_variable is not None:
            parts.append(f"R{self.right_variable}")
        return " ".join(parts)


@dataclass
class CompressedGrammar:
    """Grammar whose rules are kept in run-length form."""
    rules: dict[int, CompressedRule]
    sequence: list[int]
    metadata: dict[int, RuleMetadata] = field(default_factory=dict)

    @classmethod
    def from_grammar(
        cls,
        grammar: Grammar,
        artificial_terminals: Iterable[int] | None = None,
    ) -> "CompressedGrammar":
        rules = {
            rule_id: CompressedRule.from_list(rhs)
            for rule_id, rhs in grammar.rules.items()
        }
        metadata = compute_all(grammar, artificial_terminals)
        return cls(rules=rules, sequence=list(grammar.sequence), metadata=metadata)

    def to_grammar(self) -> Grammar:
        return Grammar(
            rules={rule_id: tuple(rule.to_list()) for rule_id, rule in self.rules.items()},
            sequence=list(self.sequence),
        )

    @property
    def total_size(self) -> int:
        """|S| as the sum of the run-length sizes of all rules."""
        return sum(rule.size for rule in self.rules.values())

    def render(self) -> str:
        lines = ["=== Compressed Grammar ==="]
        for rule_id in sorted(self.rules):
            lines.append(f"R{rule_id}: {self.rules[rule_id]}")
        lines.append(f"SEQ: {self.sequence}")
        lines.append(f"Total size |S|: {self.total_size}")
        return "\n".join(lines)
