"""
Random test input generation for compression roundtrips.
"""

from __future__ import annotations

import logging
import random
import string
from pathlib import Path

logger = logging.getLogger(__name__)

CHAR_POOL = string.ascii_lowercase + string.ascii_uppercase + string.digits
CHUNK_SIZE = 100_000


def generate_random_string(length: int, rng: random.Random | None = None) -> str:
    """Random string of ``length`` characters from [a-zA-Z0-9]."""
    if length < 0:
        raise ValueError(f"Length must be non-negative, got {length}")
    rng = rng or random.Random()
    return "".join(rng.choices(CHAR_POOL, k=length))


def generate_random_string_to_file(
    length: int,
    path: Path | str,
    seed: int | None = None,
    chunk_size: int = CHUNK_SIZE,
) -> Path:
    """
    Write a random string to ``path`` in chunks.

    Args:
        length: Number of characters to write
        path: Output file
        seed: Random seed for reproducibility
        chunk_size: Characters generated per write

    Returns:
        The output path
    """
    if length < 0:
        raise ValueError(f"Length must be non-negative, got {length}")

    path = Path(path)
    rng = random.Random(seed)
    written = 0
    with open(path, "w", encoding="ascii", newline="") as f:
        while written < length:
            chunk = min(chunk_size, length - written)
            f.write(generate_random_string(chunk, rng))
            written += chunk

    logger.info(f"Random string of length {length} saved to {path}")
    return path
