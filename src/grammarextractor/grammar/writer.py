"""
Serialization of grammars to the ``R<id>:...`` / ``SEQ:...`` notation
and to a readable listing.
"""

from __future__ import annotations

from pathlib import Path

from grammarextractor.grammar.model import Grammar, is_terminal


def format_symbol(symbol: int) -> str:
    """Render a symbol for humans: ``a``, ``\\x0a`` or ``R300``."""
    if not is_terminal(symbol):
        return f"R{symbol}"
    if 32 <= symbol < 127:
        return chr(symbol)
    return f"\\x{symbol:02x}"


def format_grammar(grammar: Grammar) -> str:
    lines = [
        f"R{rule_id}:" + ",".join(str(s) for s in grammar.rules[rule_id])
        for rule_id in sorted(grammar.rules)
    ]
    lines.append("SEQ:" + ",".join(str(s) for s in grammar.sequence))
    return "\n".join(lines) + "\n"


def write_grammar(grammar: Grammar, path: Path | str) -> Path:
    """Write a grammar in the machine-readable notation."""
    path = Path(path)
    path.write_text(format_grammar(grammar), encoding="utf-8")
    return path


def _quoted(symbol: int) -> str:
    if is_terminal(symbol):
        return f"'{format_symbol(symbol)}'"
    return format_symbol(symbol)


def render_grammar(grammar: Grammar) -> str:
    """Readable listing, one rule per line, then the sequence."""
    lines = ["=== Grammar ==="]
    for rule_id in sorted(grammar.rules):
        rhs = " ".join(_quoted(s) for s in grammar.rules[rule_id])
        lines.append(f"R{rule_id} -> {rhs}")
    lines.append("SEQ: " + " ".join(_quoted(s) for s in grammar.sequence))
    lines.append(f"Rules: {grammar.rule_count}, RHS symbols: {grammar.rhs_size}, "
                 f"sequence length: {len(grammar.sequence)}")
    return "\n".join(lines)
