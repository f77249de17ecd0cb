"""
RePair-style recompression of straight-line grammars.

The recompressor works directly on the grammar: bigrams are counted in
every right-hand side (weighted by how often the rule occurs in the
derivation tree) and in the top-level sequence, and the most frequent
bigram is replaced by a fresh variable until no bigram repeats.
"""

from __future__ import annotations

import heapq
import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from itertools import groupby

from grammarextractor.grammar.metadata import RuleMetadata, compute_vocc, topological_order
from grammarextractor.grammar.model import Grammar, GrammarError, TERMINAL_LIMIT, is_terminal
from grammarextractor.grammar.writer import format_symbol

logger = logging.getLogger(__name__)

Bigram = tuple[int, int]

SENTINEL_START = ord("#")
SENTINEL_END = ord("$")


def add_sentinels(grammar: Grammar) -> Grammar:
    """
    Wrap the start sequence in the sentinels ``#`` and ``$``.

    Adds X# -> '#' S and X$ -> X# '$'; the new sequence is [X$].
    """
    if not grammar.sequence:
        raise GrammarError("Cannot add sentinels to empty sequence")

    rules = dict(grammar.rules)
    next_id = grammar.max_rule_id() + 1

    if len(grammar.sequence) == 1:
        start = grammar.sequence[0]
    else:
        start = next_id
        rules[start] = tuple(grammar.sequence)
        next_id += 1

    sharp, dollar = next_id, next_id + 1
    rules[sharp] = (SENTINEL_START, start)
    rules[dollar] = (sharp, SENTINEL_END)
    logger.debug(f"Added sentinel rules R{sharp} -> '#' {format_symbol(start)}, R{dollar} -> R{sharp} '$'")
    return Grammar(rules=rules, sequence=[dollar])


def strip_sentinels(text: str) -> str:
    if text.startswith("#") and text.endswith("$") and len(text) >= 2:
        return text[1:-1]
    return text


def _count_pairs(symbols: list[int]) -> Counter:
    """Non-overlapping bigram counts: a run ``aaa`` holds one (a, a)."""
    counts = Counter(zip(symbols, symbols[1:]))
    for symbol, run in groupby(symbols):
        length = sum(1 for _ in run)
        if length >= 3:
            counts[(symbol, symbol)] -= (length - 1) - length // 2
    return counts


def bigram_frequencies(
    grammar: Grammar,
    metadata: dict[int, RuleMetadata] | None = None,
) -> Counter:
    """
    Weighted bigram frequencies over all right-hand sides and the sequence.

    A bigram inside rule X counts vocc(X) times; the sequence counts once.
    """
    if metadata is not None:
        vocc = {rule_id: meta.vocc for rule_id, meta in metadata.items()}
    else:
        vocc = compute_vocc(grammar)

    freqs = Counter(_count_pairs(grammar.sequence))
    for rule_id, rhs in grammar.rules.items():
        weight = vocc.get(rule_id, 0)
        if not weight:
            continue
        for pair, count in _count_pairs(list(rhs)).items():
            freqs[pair] += count * weight
    return freqs


@dataclass
class Replacement:
    """One recompression round."""
    pair: Bigram
    rule_id: int
    frequency: int
    occurrences: int


_SEQUENCE = None


class _PairIndex:
    """
    Bigram occurrences across the right-hand sides and the sequence.

    Each owner (a rule id, or ``_SEQUENCE``) is a doubly linked list of
    nodes. Node ids grow along every list, so sorting nodes gives text
    order. ``positions`` maps a bigram to the left nodes of its adjacent
    occurrences, while ``weighted`` and ``written`` hold the
    non-overlapping counts. A replacement recounts only the runs around
    the replaced occurrences.
    """

    def __init__(self):
        self.symbols: list[int] = []
        self.prev: list[int | None] = []
        self.next: list[int | None] = []
        self.owner: list[int | None] = []
        self.heads: dict[int | None, int | None] = {}
        self.weights: dict[int | None, int] = {}
        self.positions: defaultdict[Bigram, set[int]] = defaultdict(set)
        self.weighted: Counter = Counter()
        self.written: Counter = Counter()
        self._heap: list[tuple[int, Bigram]] = []

    def add_owner(self, owner: int | None, symbols, weight: int):
        self.weights[owner] = weight
        self.heads[owner] = len(self.symbols) if symbols else None
        last = None
        for symbol in symbols:
            node = len(self.symbols)
            self.symbols.append(symbol)
            self.prev.append(last)
            self.next.append(None)
            self.owner.append(owner)
            if last is not None:
                self.next[last] = node
                self.positions[(self.symbols[last], symbol)].add(last)
            last = node
        self._apply(_count_pairs(list(symbols)), weight)

    def symbols_of(self, owner: int | None) -> list[int]:
        out = []
        node = self.heads[owner]
        while node is not None:
            out.append(self.symbols[node])
            node = self.next[node]
        return out

    def best(self) -> Bigram | None:
        """Most frequent bigram written at least twice; smallest pair on ties."""
        while self._heap:
            neg, pair = self._heap[0]
            if -neg == self.weighted[pair] and -neg >= 2 and self.written[pair] >= 2:
                return pair
            # Stale or not eligible; any later change pushes a fresh entry
            heapq.heappop(self._heap)
        return None

    def replace(self, pair: Bigram, new_symbol: int):
        """Replace ``pair`` left to right without overlap in every owner."""
        by_owner = defaultdict(list)
        for node in self.positions.pop(pair, ()):
            by_owner[self.owner[node]].append(node)

        for owner, nodes in by_owner.items():
            # [start, end, xs]: runs touching merged occurrences
            clusters = []
            end = -1
            last_y = None
            for x in sorted(nodes):
                if x == last_y:
                    continue
                y = self.next[x]
                last_y = y
                left = self.prev[x]
                start = x if left is None else self._run_start(left, end)
                if clusters and start <= end:
                    clusters[-1][2].append(x)
                else:
                    clusters.append([start, end, [x]])
                right = self.next[y]
                if right is None:
                    end = y
                elif right > end:
                    end = self._run_end(right)
                clusters[-1][1] = end

            weight = self.weights[owner]
            for start, end, xs in clusters:
                self._rewrite(start, end, xs, new_symbol, weight)

    def _run_start(self, node: int, limit: int) -> int:
        symbol = self.symbols[node]
        while node > limit:
            before = self.prev[node]
            if before is None or self.symbols[before] != symbol:
                break
            node = before
        return node

    def _run_end(self, node: int) -> int:
        symbol = self.symbols[node]
        while True:
            after = self.next[node]
            if after is None or self.symbols[after] != symbol:
                return node
            node = after

    def _walk(self, first: int, stop: int | None) -> list[int]:
        nodes = []
        node = first
        while node is not None and node != stop:
            nodes.append(node)
            node = self.next[node]
        return nodes

    def _rewrite(self, start: int, end: int, xs: list[int], new_symbol: int, weight: int):
        # The window starts and ends on whole runs, plus one neighbour on
        # each side, so counts outside it are unaffected
        first = self.prev[start]
        if first is None:
            first = start
        outside = self.next[end]
        stop = None if outside is None else self.next[outside]

        nodes = self._walk(first, stop)
        old = [self.symbols[n] for n in nodes]
        for left, right in zip(nodes, nodes[1:]):
            occurrences = self.positions.get((self.symbols[left], self.symbols[right]))
            if occurrences is not None:
                occurrences.discard(left)

        for x in xs:
            y = self.next[x]
            self.symbols[x] = new_symbol
            after = self.next[y]
            self.next[x] = after
            if after is not None:
                self.prev[after] = x

        nodes = self._walk(first, stop)
        new = [self.symbols[n] for n in nodes]
        for left, right in zip(nodes, nodes[1:]):
            self.positions[(self.symbols[left], self.symbols[right])].add(left)

        delta = _count_pairs(new)
        delta.subtract(_count_pairs(old))
        self._apply(delta, weight)

    def _apply(self, delta: Counter, weight: int):
        for pair, count in delta.items():
            if not count:
                continue
            self.written[pair] += count
            self.weighted[pair] += count * weight
            heapq.heappush(self._heap, (-self.weighted[pair], pair))


@dataclass
class Recompressor:
    """
    Recompresses a grammar by repeated bigram replacement.

    Attributes:
        grammar: Input grammar (not modified)
        use_sentinels: Wrap the sequence in '#'/'$' before recompressing
        history: Replacements performed by the last ``run``
    """
    grammar: Grammar
    use_sentinels: bool = False
    history: list[Replacement] = field(default_factory=list)

    def run(self, max_rounds: int | None = None) -> Grammar:
        """
        Recompress until no bigram repeats or ``max_rounds`` is reached.

        vocc is computed once: replacing a bigram leaves the vocc of every
        existing rule unchanged, and the new rule occurs as often as the
        bigram's weighted frequency.

        Returns:
            A new grammar deriving the same text (plus sentinels if enabled)
        """
        grammar = add_sentinels(self.grammar) if self.use_sentinels else self.grammar
        vocc = compute_vocc(grammar)
        index = _PairIndex()
        for rule_id, rhs in grammar.rules.items():
            index.add_owner(rule_id, rhs, vocc.get(rule_id, 0))
        index.add_owner(_SEQUENCE, grammar.sequence, 1)
        next_id = grammar.max_rule_id() + 1
        self.history = []

        while max_rounds is None or len(self.history) < max_rounds:
            pair = index.best()
            if pair is None:
                break
            freq = index.weighted[pair]
            written = index.written[pair]

            new_id = next_id
            next_id += 1
            index.replace(pair, new_id)
            index.add_owner(new_id, pair, freq)

            self.history.append(Replacement(pair, new_id, freq, written))
            logger.debug(
                f"Round {len(self.history)}: ({format_symbol(pair[0])},{format_symbol(pair[1])}) "
                f"-> R{new_id} (frequency {freq}, written {written})"
            )

        result = Grammar(
            rules={owner: index.symbols_of(owner) for owner in index.heads if owner is not _SEQUENCE},
            sequence=index.symbols_of(_SEQUENCE),
        )
        result = result.subgrammar(result.sequence)
        logger.info(
            f"Recompression finished after {len(self.history)} rounds: "
            f"{grammar.rule_count} -> {result.rule_count} rules"
        )
        return result


def binarize(grammar: Grammar) -> Grammar:
    """
    Rewrite a grammar so that every rule has exactly two symbols.

    Unit rules are inlined, empty rules are dropped and longer rules are
    split by a left fold over fresh variables.
    """
    order = topological_order(grammar)
    alias: dict[int, tuple[int, ...]] = {}

    def resolve(symbols) -> list[int]:
        out = []
        for s in symbols:
            if s in alias:
                out.extend(alias[s])
            else:
                out.append(s)
        return out

    rules: dict[int, tuple[int, ...]] = {}
    for rule_id in order:
        rhs = resolve(grammar.rules[rule_id])
        if len(rhs) <= 1:
            alias[rule_id] = tuple(rhs)
        else:
            rules[rule_id] = tuple(rhs)

    next_id = grammar.max_rule_id() + 1
    pair_ids: dict[Bigram, int] = {}
    binary: dict[int, tuple[int, int]] = {}

    for rule_id in order:
        rhs = rules.get(rule_id)
        if rhs is None:
            continue
        acc = rhs[0]
        for symbol in rhs[1:-1]:
            pair = (acc, symbol)
            if pair not in pair_ids:
                pair_ids[pair] = next_id
                binary[next_id] = pair
                next_id += 1
            acc = pair_ids[pair]
        binary[rule_id] = (acc, rhs[-1])

    result = Grammar(rules=binary, sequence=resolve(grammar.sequence))
    return result.subgrammar(result.sequence)


def renumber(grammar: Grammar, first_id: int = TERMINAL_LIMIT + 1) -> Grammar:
    """
    Renumber variables densely from ``first_id`` so every rule is
    defined after the rules it uses.
    """
    reachable = grammar.reachable_rules()
    mapping = {}
    for rule_id in topological_order(grammar):
        if rule_id in reachable:
            mapping[rule_id] = first_id + len(mapping)

    def remap(symbol: int) -> int:
        return symbol if is_terminal(symbol) else mapping[symbol]

    return Grammar(
        rules={mapping[r]: tuple(remap(s) for s in grammar.rules[r]) for r in mapping},
        sequence=[remap(s) for s in grammar.sequence],
    )


def recompress_n_times(grammar: Grammar, n: int, binary: bool = True) -> Grammar:
    """Run at most ``n`` recompression rounds."""
    result = Recompressor(grammar).run(max_rounds=n)
    return binarize(result) if binary else result
