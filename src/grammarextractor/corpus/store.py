"""
Grammar cache storage.

Parsing a large grammar file and computing its metadata is expensive,
so both are persisted next to the source file:
- Grammar file: data/input_translated.txt
- Cached parse (dill): data/input_translated.txt.cache

The cache is keyed on the source file's size and modification time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import dill

from grammarextractor.grammar import Grammar, RuleMetadata, compute_all, parse_file

logger = logging.getLogger(__name__)

CACHE_SUFFIX = ".cache"


@dataclass
class CachedGrammar:
    """A parsed grammar plus the fingerprint of the file it came from."""
    grammar: Grammar
    metadata: dict[int, RuleMetadata]
    source_size: int
    source_mtime_ns: int


@dataclass
class GrammarCache:
    """
    Loads grammar files through a dill-backed cache.

    Attributes:
        path: The human-readable grammar file
        entry: The loaded cache entry (lazy)
    """
    path: Path
    entry: CachedGrammar | None = field(default=None, repr=False)

    def __post_init__(self):
        self.path = Path(self.path)

    @property
    def cache_path(self) -> Path:
        return self.path.with_suffix(self.path.suffix + CACHE_SUFFIX)

    def _fingerprint(self) -> tuple[int, int]:
        stat = self.path.stat()
        return stat.st_size, stat.st_mtime_ns

    def is_fresh(self) -> bool:
        """Check whether the cache file matches the current source file."""
        if not self.cache_path.exists():
            return False
        entry = self._read()
        if entry is None:
            return False
        return (entry.source_size, entry.source_mtime_ns) == self._fingerprint()

    def _read(self) -> CachedGrammar | None:
        try:
            with open(self.cache_path, "rb") as f:
                entry = dill.load(f)
        except (OSError, EOFError, dill.UnpicklingError) as e:
            logger.warning(f"Ignoring unreadable cache {self.cache_path}: {e}")
            return None
        if not isinstance(entry, CachedGrammar):
            logger.warning(f"Ignoring cache with unexpected content: {self.cache_path}")
            return None
        return entry

    def load(self) -> CachedGrammar:
        """Return the cached parse, rebuilding it if the source changed."""
        if not self.path.exists():
            raise FileNotFoundError(f"No grammar file at {self.path}")

        if self.entry is None and self.cache_path.exists():
            entry = self._read()
            if entry is not None and (entry.source_size, entry.source_mtime_ns) == self._fingerprint():
                logger.debug(f"Loaded cached grammar from {self.cache_path}")
                self.entry = entry

        if self.entry is None:
            self.entry = self.rebuild()
        return self.entry

    def rebuild(self) -> CachedGrammar:
        """Parse the source file and write a fresh cache."""
        grammar = parse_file(self.path)
        size, mtime_ns = self._fingerprint()
        entry = CachedGrammar(
            grammar=grammar,
            metadata=compute_all(grammar),
            source_size=size,
            source_mtime_ns=mtime_ns,
        )
        with open(self.cache_path, "wb") as f:
            dill.dump(entry, f)
        logger.debug(f"Wrote grammar cache {self.cache_path}")
        self.entry = entry
        return entry

    def grammar(self) -> Grammar:
        return self.load().grammar

    def metadata(self) -> dict[int, RuleMetadata]:
        return self.load().metadata

    def clear(self):
        """Remove the cache file."""
        self.entry = None
        if self.cache_path.exists():
            self.cache_path.unlink()
