"""
End-to-end workflows: compression roundtrips, excerpt extraction to
files, and recompression roundtrips.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import zip_longest
from pathlib import Path

from grammarextractor.codec import decode_file, encode_file
from grammarextractor.core import Recompressor, binarize, compress_file, extract_excerpt
from grammarextractor.drivers import RePairTools
from grammarextractor.grammar import (
    Grammar,
    decompress_bytes,
    format_grammar,
    parse_file,
    write_grammar,
)

logger = logging.getLogger(__name__)

TRANSLATED_NAME = "test_translated.txt"
OUTPUT_NAME = "test_output.txt"
EXCERPT_GRAMMAR_NAME = "extracted_grammar.txt"
EXCERPT_TEXT_NAME = "excerpt_output.txt"


def files_equal(a: Path | str, b: Path | str) -> bool:
    """Compare two files line by line, ignoring line terminators."""
    with open(a, encoding="latin-1", newline="") as fa, open(b, encoding="latin-1", newline="") as fb:
        for line_a, line_b in zip_longest(fa, fb):
            if line_a is None or line_b is None:
                return False
            if line_a.rstrip("\r\n") != line_b.rstrip("\r\n"):
                return False
    return True


def first_difference(a: bytes | str, b: bytes | str) -> int | None:
    """Index of the first mismatch, or None if ``a == b``."""
    for i, (x, y) in enumerate(zip(a, b)):
        if x != y:
            return i
    if len(a) != len(b):
        return min(len(a), len(b))
    return None


@dataclass
class RoundtripReport:
    """Outcome of compress -> .rp -> grammar -> text."""
    input_path: Path
    rp_path: Path
    grammar_path: Path
    output_path: Path
    input_length: int
    rp_size: int
    rule_count: int
    sequence_length: int
    identical: bool
    first_difference: int | None = None

    @property
    def compression_ratio(self) -> float:
        return self.rp_size / self.input_length if self.input_length else 0.0


def compress_roundtrip(
    input_path: Path | str,
    workdir: Path | str,
    tools: RePairTools | None = None,
) -> RoundtripReport:
    """
    Compress a file, translate the ``.rp`` output to the text notation,
    parse it back, decompress and compare against the input.

    Args:
        input_path: File to roundtrip
        workdir: Directory for intermediate and output files
        tools: External RePair binaries (built-in codec when None)
    """
    input_path = Path(input_path)
    workdir = Path(workdir)
    workdir.mkdir(parents=True, exist_ok=True)
    grammar_path = workdir / TRANSLATED_NAME

    if tools is not None:
        rp_path = tools.encode(input_path)
        tools.decode(rp_path, grammar_path)
    else:
        rp_path = encode_file(compress_file(input_path), workdir / f"{input_path.name}.rp")
        write_grammar(decode_file(rp_path), grammar_path)
    logger.info(f"Compressed {input_path} to {rp_path}")

    parsed = parse_file(grammar_path)
    output = decompress_bytes(parsed)
    output_path = workdir / OUTPUT_NAME
    output_path.write_bytes(output)
    logger.info(f"Decompressed text saved to {output_path}")

    original = input_path.read_bytes()
    identical = files_equal(input_path, output_path)
    report = RoundtripReport(
        input_path=input_path,
        rp_path=rp_path,
        grammar_path=grammar_path,
        output_path=output_path,
        input_length=len(original),
        rp_size=rp_path.stat().st_size,
        rule_count=parsed.rule_count,
        sequence_length=len(parsed.sequence),
        identical=identical,
        first_difference=None if identical else first_difference(original, output),
    )
    if identical:
        logger.info("Test successful. Input and output are identical")
    else:
        logger.error(f"Test failed, input and output differ at position {report.first_difference}")
    return report


@dataclass
class ExtractReport:
    excerpt: Grammar
    grammar_path: Path
    text_path: Path
    text: bytes


def extract_to_files(
    grammar: Grammar,
    start: int,
    end: int,
    workdir: Path | str,
) -> ExtractReport:
    """Extract text[start:end] as a grammar and write grammar and text."""
    workdir = Path(workdir)
    workdir.mkdir(parents=True, exist_ok=True)

    excerpt = extract_excerpt(grammar, start, end)
    grammar_path = write_grammar(excerpt, workdir / EXCERPT_GRAMMAR_NAME)
    text = decompress_bytes(excerpt)
    text_path = workdir / EXCERPT_TEXT_NAME
    text_path.write_bytes(text)

    logger.info(f"Excerpt grammar saved to {grammar_path}, text saved to {text_path}")
    return ExtractReport(excerpt=excerpt, grammar_path=grammar_path, text_path=text_path, text=text)


@dataclass
class RecompressionReport:
    """Before/after statistics of a recompression roundtrip."""
    before: Grammar
    after: Grammar
    rounds: int
    identical: bool
    size_before: int
    size_after: int

    @property
    def rules_before(self) -> int:
        return self.before.rule_count

    @property
    def rules_after(self) -> int:
        return self.after.rule_count

    @property
    def rhs_before(self) -> int:
        return self.before.rhs_size

    @property
    def rhs_after(self) -> int:
        return self.after.rhs_size

    @property
    def compression_ratio(self) -> float:
        """Serialized size before divided by size after."""
        return self.size_before / self.size_after if self.size_after else 0.0

    def summary(self) -> str:
        status = "successful. Text preserved." if self.identical else "failed. Text changed."
        return "\n".join([
            f"Recompression roundtrip {status}",
            f"  Rounds: {self.rounds}",
            f"  Number of rules before recompression: {self.rules_before}",
            f"  Number of rules after recompression : {self.rules_after}",
            f"  Total RHS symbols before recompression: {self.rhs_before}",
            f"  Total RHS symbols after recompression : {self.rhs_after}",
            f"  Size before recompression: {self.size_before} bytes",
            f"  Size after recompression : {self.size_after} bytes",
            f"  Compression ratio: {self.compression_ratio:.2f}x",
        ])


def recompression_roundtrip(
    grammar: Grammar,
    start: int | None = None,
    end: int | None = None,
    max_rounds: int | None = None,
) -> RecompressionReport:
    """
    Recompress a grammar (or an excerpt of it) and verify the text.

    Args:
        grammar: Source grammar
        start: Excerpt start; the whole text when start and end are None
        end: Excerpt end (exclusive)
        max_rounds: Optional cap on recompression rounds
    """
    if start is not None or end is not None:
        start = 0 if start is None else start
        end = grammar.uncompressed_size() if end is None else end
        before = extract_excerpt(grammar, start, end)
    else:
        before = grammar

    recompressor = Recompressor(before)
    after = binarize(recompressor.run(max_rounds=max_rounds))

    identical = decompress_bytes(before) == decompress_bytes(after)
    report = RecompressionReport(
        before=before,
        after=after,
        rounds=len(recompressor.history),
        identical=identical,
        size_before=len(format_grammar(before).encode()),
        size_after=len(format_grammar(after).encode()),
    )
    if not identical:
        logger.error("Recompression changed the derived text")
    return report
