"""
Test input generation and grammar caching.
"""

from grammarextractor.corpus.generator import (
    CHAR_POOL,
    generate_random_string,
    generate_random_string_to_file,
)
from grammarextractor.corpus.store import GrammarCache, CachedGrammar

__all__ = [
    "CHAR_POOL",
    "generate_random_string",
    "generate_random_string_to_file",
    "GrammarCache",
    "CachedGrammar",
]
