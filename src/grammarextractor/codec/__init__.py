"""
Binary grammar codecs.
"""

from grammarextractor.codec.rp import (
    BitReader,
    BitWriter,
    decode,
    decode_file,
    encode,
    encode_file,
)

__all__ = [
    "BitReader",
    "BitWriter",
    "decode",
    "decode_file",
    "encode",
    "encode_file",
]
