"""
Core grammar algorithms: excerpt extraction, recompression and RePair.
"""

from grammarextractor.core.extractor import (
    extract_excerpt,
    excerpt_sequence,
)
from grammarextractor.core.recompressor import (
    Recompressor,
    Replacement,
    add_sentinels,
    strip_sentinels,
    bigram_frequencies,
    binarize,
    renumber,
    recompress_n_times,
)
from grammarextractor.core.repair import compress, compress_file

__all__ = [
    # extractor
    "extract_excerpt",
    "excerpt_sequence",
    # recompressor
    "Recompressor",
    "Replacement",
    "add_sentinels",
    "strip_sentinels",
    "bigram_frequencies",
    "binarize",
    "renumber",
    "recompress_n_times",
    # repair
    "compress",
    "compress_file",
]
