"""
Binary ``.rp`` grammar format.

Layout:
- Header: three little-endian uint32 values ``txt_len``, ``num_rules``
  and ``seq_len``.
- Body: an MSB-first bitstream holding one post-order encoded derivation
  tree per sequence symbol. An open bit (1) is followed by a leaf code
  whose width is the bit length of the last assigned code; a close bit
  (0) combines the two topmost stack entries into a new rule, or ends the
  tree when every open bit has been closed.

Decoded rules are numbered from 257 upward in creation order.
"""

from __future__ import annotations

import logging
import struct
from pathlib import Path

from grammarextractor.grammar.model import (
    TERMINAL_LIMIT,
    Grammar,
    GrammarError,
    GrammarFormatError,
    is_terminal,
)

logger = logging.getLogger(__name__)

HEADER = struct.Struct("<III")
OPEN = 1
CLOSE = 0


class BitReader:
    """Reads an MSB-first bitstream."""

    def __init__(self, data: bytes):
        self._data = data
        self._pos = 0  # bit position

    def read(self, n: int) -> int:
        result = 0
        for _ in range(n):
            byte_index = self._pos >> 3
            if byte_index >= len(self._data):
                raise GrammarFormatError("Unexpected end of file.")
            bit = (self._data[byte_index] >> (7 - (self._pos & 7))) & 1
            result = (result << 1) | bit
            self._pos += 1
        return result


class BitWriter:
    """Writes an MSB-first bitstream, zero-padding the last byte."""

    def __init__(self):
        self._buffer = bytearray()
        self._current = 0
        self._filled = 0

    def write(self, value: int, n: int):
        for shift in range(n - 1, -1, -1):
            self._current = (self._current << 1) | ((value >> shift) & 1)
            self._filled += 1
            if self._filled == 8:
                self._buffer.append(self._current)
                self._current = 0
                self._filled = 0

    def getvalue(self) -> bytes:
        if self._filled:
            return bytes(self._buffer) + bytes([self._current << (8 - self._filled)])
        return bytes(self._buffer)


def decode(data: bytes) -> Grammar:
    """Decode a ``.rp`` byte string into a grammar."""
    if len(data) < HEADER.size:
        raise GrammarFormatError(f"File too short for header ({len(data)} bytes)")

    txt_len, num_rules, seq_len = HEADER.unpack_from(data)
    logger.debug(f"txt_len = {txt_len}, num_rules = {num_rules}, seq_len = {seq_len}")

    reader = BitReader(data[HEADER.size:])
    rules: dict[int, tuple[int, int]] = {}
    sequence: list[int] = []
    newcode = TERMINAL_LIMIT

    for _ in range(seq_len):
        open_count = 0
        stack: list[int] = []
        while True:
            if reader.read(1) == OPEN:
                open_count += 1
                leaf = reader.read(newcode.bit_length())
                if not is_terminal(leaf) and leaf not in rules:
                    raise GrammarFormatError(f"Leaf references unknown code {leaf}")
                stack.append(leaf)
            else:
                open_count -= 1
                if open_count == 0:
                    break
                if open_count < 0 or len(stack) < 2:
                    raise GrammarFormatError("Malformed tree: close without matching open")
                newcode += 1
                right = stack.pop()
                left = stack.pop()
                rules[newcode] = (left, right)
                stack.append(newcode)
        sequence.append(stack[-1])

    grammar = Grammar(rules=rules, sequence=sequence)
    if grammar.uncompressed_size() != txt_len:
        logger.warning(
            f"Header text length {txt_len} differs from decoded length {grammar.uncompressed_size()}"
        )
    return grammar


def decode_file(path: Path | str) -> Grammar:
    path = Path(path)
    logger.debug(f"Decoding {path}")
    return decode(path.read_bytes())


def encode(grammar: Grammar) -> bytes:
    """
    Encode a binary grammar in the ``.rp`` format.

    Rules are renumbered in emission order; a rule's first occurrence
    emits its whole subtree, later occurrences emit a leaf.

    Raises:
        GrammarError: If the grammar has non-binary rules
    """
    if not grammar.is_binary():
        raise GrammarError("Only binary grammars can be encoded; binarize the grammar first")

    writer = BitWriter()
    codes: dict[int, int] = {}
    newcode = TERMINAL_LIMIT

    for root in grammar.sequence:
        stack = [(root, False)]
        while stack:
            symbol, closing = stack.pop()
            if closing:
                writer.write(CLOSE, 1)
                newcode += 1
                codes[symbol] = newcode
            elif is_terminal(symbol) or symbol in codes:
                writer.write(OPEN, 1)
                writer.write(symbol if is_terminal(symbol) else codes[symbol], newcode.bit_length())
            else:
                left, right = grammar.rule(symbol)
                stack.append((symbol, True))
                stack.append((right, False))
                stack.append((left, False))
        writer.write(CLOSE, 1)

    header = HEADER.pack(grammar.uncompressed_size(), newcode + 1, len(grammar.sequence))
    return header + writer.getvalue()


def encode_file(grammar: Grammar, path: Path | str) -> Path:
    path = Path(path)
    path.write_bytes(encode(grammar))
    logger.debug(f"Wrote {path}")
    return path
