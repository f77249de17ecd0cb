"""
Shared fixtures for grammarextractor tests.
"""

import pytest

from grammarextractor.grammar import Grammar, parse_text

# "ababc" + "ab" + "d" + "abab"
BINARY_GRAMMAR_TEXT = """\
R257:97,98
R258:257,257
R259:258,99
SEQ:259,257,100,258
"""
BINARY_GRAMMAR_EXPANSION = "ababcabdabab"


@pytest.fixture
def binary_grammar() -> Grammar:
    return parse_text(BINARY_GRAMMAR_TEXT)


@pytest.fixture
def paper_grammar() -> Grammar:
    """Grammar for "aabaaaabaaaa" with one n-ary rule."""
    return Grammar(
        rules={
            256: (97, 97),             # aa
            257: (98, 256),            # baa
            258: (256, 257),           # aabaa
            259: (258, 256, 257, 256), # aabaa aa baa aa
        },
        sequence=[259],
    )


@pytest.fixture
def run_grammar() -> Grammar:
    """Grammar with long runs of 'a' for block metadata."""
    return Grammar(
        rules={
            256: (97, 97),    # aa
            257: (256, 97),   # aaa
            258: (98, 257),   # baaa
            259: (257, 258),  # aaabaaa
            260: (257, 256),  # aaaaa
        },
        sequence=[259, 260],
    )


@pytest.fixture
def grammar_file(tmp_path):
    path = tmp_path / "grammar.txt"
    path.write_text(BINARY_GRAMMAR_TEXT)
    return path
