"""
Parser for the human-readable grammar notation.

Each rule is on its own line, e.g. ``R259:97,258``, and the top-level
sequence is given as ``SEQ:259,99,97,100,259``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from grammarextractor.grammar.metadata import topological_order
from grammarextractor.grammar.model import Grammar, GrammarError, GrammarFormatError, is_terminal

logger = logging.getLogger(__name__)


def _is_number(text: str) -> bool:
    return text.isascii() and text.isdigit()


def _parse_symbols(text: str, line_no: int) -> list[int]:
    if not text.strip():
        return []
    symbols = []
    for item in text.split(","):
        item = item.strip()
        if not _is_number(item):
            raise GrammarFormatError(f"Line {line_no}: invalid symbol {item!r}")
        symbols.append(int(item))
    return symbols


def parse_text(text: str) -> Grammar:
    """Parse grammar notation from a string."""
    rules: dict[int, tuple[int, ...]] = {}
    sequence: list[int] = []
    seen_sequence = False

    for line_no, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line:
            continue

        if line.startswith("SEQ:"):
            if seen_sequence:
                raise GrammarFormatError(f"Line {line_no}: duplicate SEQ line")
            sequence = _parse_symbols(line[4:], line_no)
            seen_sequence = True

        elif line.startswith("R"):
            head, sep, body = line[1:].partition(":")
            if not sep:
                raise GrammarFormatError(f"Line {line_no}: missing ':' in rule {line!r}")
            if not _is_number(head):
                raise GrammarFormatError(f"Line {line_no}: invalid rule name {head!r}")
            rule_id = int(head)
            if is_terminal(rule_id):
                raise GrammarFormatError(f"Line {line_no}: rule id {rule_id} collides with a terminal")
            if rule_id in rules:
                raise GrammarFormatError(f"Line {line_no}: rule R{rule_id} defined twice")
            rhs = _parse_symbols(body, line_no)
            if not rhs:
                raise GrammarFormatError(f"Line {line_no}: rule R{rule_id} has an empty body")
            rules[rule_id] = tuple(rhs)

        else:
            raise GrammarFormatError(f"Line {line_no}: unrecognized line {line!r}")

    for rule_id, rhs in rules.items():
        for symbol in rhs:
            if not is_terminal(symbol) and symbol not in rules:
                raise GrammarFormatError(f"Rule R{rule_id} references undefined rule R{symbol}")
    for symbol in sequence:
        if not is_terminal(symbol) and symbol not in rules:
            raise GrammarFormatError(f"Sequence references undefined rule R{symbol}")

    grammar = Grammar(rules=rules, sequence=sequence)
    try:
        topological_order(grammar)
    except GrammarError as e:
        raise GrammarFormatError(str(e)) from e
    logger.debug(f"Parsed {grammar.rule_count} rules, sequence length {len(sequence)}")
    return grammar


def parse_file(path: Path | str, encoding: str = "utf-8") -> Grammar:
    """Parse a grammar file in the human-readable notation."""
    path = Path(path)
    logger.debug(f"Parsing grammar from {path}")
    return parse_text(path.read_text(encoding=encoding))
