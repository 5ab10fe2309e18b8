from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from squart.engine.move import Move


class Bound(Enum):
    EXACT = "exact"
    LOWER = "lower"  # failed high: true value >= score
    UPPER = "upper"  # failed low: true value <= score


@dataclass
class TTEntry:
    depth: int
    score: float
    bound: Bound
    best_move: Optional[Move]
    generation: int


@dataclass
class TTProbe:
    """Outcome of a table lookup.

    ``cutoff`` is True when ``score`` can be returned as the node value
    directly. Otherwise ``alpha``/``beta`` hold the (possibly tightened)
    window to search with.
    """

    cutoff: bool
    score: Optional[float]
    best_move: Optional[Move]
    alpha: float
    beta: float


class TranspositionTable:
    """Search-result cache keyed by the Zobrist hash of (cells, side to move).

    An entry only answers a query when it was searched at least as deep as
    the query asks for; shallower results never shortcut deeper searches.
    A table lives for one search call and is dropped with it.
    """

    def __init__(self, max_entries: Optional[int] = None) -> None:
        self.max_entries = max_entries if max_entries and max_entries > 0 else None
        self.generation = 0
        self._entries: Dict[int, TTEntry] = {}
        self.probes = 0
        self.hits = 0
        self.exact_hits = 0
        self.lower_hits = 0
        self.upper_hits = 0
        self.stores = 0
        self.replacements = 0

    def __len__(self) -> int:
        return len(self._entries)

    def new_generation(self) -> None:
        self.generation += 1

    def get(self, key: int) -> Optional[TTEntry]:
        return self._entries.get(key)

    def probe(self, key: int, depth: int, alpha: float, beta: float) -> TTProbe:
        """Look up ``key`` for a search of ``depth`` plies in ``[alpha, beta]``."""
        self.probes += 1
        e = self._entries.get(key)
        if e is None or e.depth < depth:
            return TTProbe(False, None, None, alpha, beta)
        if e.bound is Bound.EXACT:
            self.hits += 1
            self.exact_hits += 1
            return TTProbe(True, e.score, e.best_move, alpha, beta)
        if e.bound is Bound.LOWER:
            alpha = max(alpha, e.score)
        else:
            beta = min(beta, e.score)
        if alpha >= beta:
            self.hits += 1
            if e.bound is Bound.LOWER:
                self.lower_hits += 1
            else:
                self.upper_hits += 1
            return TTProbe(True, e.score, e.best_move, alpha, beta)
        return TTProbe(False, None, e.best_move, alpha, beta)

    def store(
        self,
        key: int,
        depth: int,
        score: float,
        alpha_orig: float,
        beta_orig: float,
        best_move: Optional[Move],
    ) -> None:
        """Record a search result, classifying it against the original window."""
        bound: Bound
        if score <= alpha_orig:
            bound = Bound.UPPER
        elif score >= beta_orig:
            bound = Bound.LOWER
        else:
            bound = Bound.EXACT
        new_entry = TTEntry(depth, score, bound, best_move, self.generation)
        existing = self._entries.get(key)
        if existing is None:
            self._entries[key] = new_entry
            self.stores += 1
        elif depth >= existing.depth or existing.generation < self.generation:
            self._entries[key] = new_entry
            self.replacements += 1
        else:
            # keep the deeper entry from this generation
            return

        if self.max_entries is not None and len(self._entries) > self.max_entries:
            self._evict(protect=key)

    def _evict(self, protect: int) -> None:
        # Drop oldest, then shallowest entries down to 90% of the cap
        assert self.max_entries is not None
        target = self.max_entries - self.max_entries // 10
        to_evict = len(self._entries) - target
        victims = sorted((e.generation, e.depth, k) for k, e in self._entries.items() if k != protect)
        for _, _, k in victims[:to_evict]:
            del self._entries[k]
