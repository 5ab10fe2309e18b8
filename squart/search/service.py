from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Final, Iterable, List, Optional, Sequence, Tuple

from squart.engine.grid import InvalidPositionError, Position, Side
from squart.engine.move import Move, coerce_move
from squart.engine.movegen import generate_moves, has_moves
from squart.eval import evaluate, move_heuristic
from squart.search.transposition import TranspositionTable


logger = logging.getLogger(__name__)


# Proven outcomes; heuristic scores stay many orders of magnitude below these
WIN: Final = 1e9
LOSS: Final = -WIN
INF: Final = float("inf")


@dataclass(frozen=True)
class SearchConfig:
    """Tunables for the search driver.

    Attributes:
        movetime_ms: Default wall-clock budget used by ``choose_move`` and the
            protocol layers.
        stop_fraction: Deepening stops once this fraction of the budget is
            spent after a completed pass.
        win_margin: Scores within this distance of ``WIN``/``LOSS`` are proven.
        depth_caps: ``(max_grid_size, depth)`` pairs, first match wins.
        large_grid_depth: Depth cap for grids larger than every cap entry.
        tt_max_entries: Optional transposition table size cap.
    """

    movetime_ms: int = 3000
    stop_fraction: float = 0.9
    win_margin: float = 100.0
    depth_caps: Tuple[Tuple[int, int], ...] = ((8, 8), (12, 6))
    large_grid_depth: int = 5
    tt_max_entries: Optional[int] = None


DEFAULT_CONFIG = SearchConfig()


def max_depth_for(grid_size: int, move_count: int, config: SearchConfig = DEFAULT_CONFIG) -> int:
    """Adaptive depth cap: deeper on small grids, never above ``move_count``."""
    cap = config.large_grid_depth
    for limit, depth in config.depth_caps:
        if grid_size <= limit:
            cap = depth
            break
    return min(cap, move_count)


def is_proven(score: float, margin: float = DEFAULT_CONFIG.win_margin) -> bool:
    return abs(score) >= WIN - margin


def order_moves(position: Position, side: Side, moves: Iterable[Move]) -> List[Move]:
    """Sort moves by heuristic, best first; ties keep generator order."""
    return sorted(moves, key=lambda m: move_heuristic(position, side, m), reverse=True)


@dataclass
class SearchResult:
    best_move: Optional[Move]
    score: float
    depth: int
    max_depth: int
    nodes: int
    cutoffs: int
    tt_probes: int
    tt_hits: int
    tt_exact_hits: int
    tt_lower_hits: int
    tt_upper_hits: int
    tt_stores: int
    tt_replacements: int
    tt_size: int
    time_ms: int
    timed_out: bool
    iters: List[Dict[str, Any]] = field(default_factory=list)
    win_margin: float = DEFAULT_CONFIG.win_margin

    @property
    def proven(self) -> Optional[str]:
        """``"win"``/``"loss"`` for the side to move once the result is forced."""
        if self.score >= WIN - self.win_margin:
            return "win"
        if self.score <= LOSS + self.win_margin:
            return "loss"
        return None


IterCallback = Callable[[Dict[str, Any]], None]


class SearchService:
    """Iterative-deepening negamax alpha-beta search with a transposition table.

    Scores are from the perspective of the side to move at each node; at the
    root that is the side the engine plays for.
    """

    def __init__(
        self,
        config: SearchConfig = DEFAULT_CONFIG,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.config = config
        self._clock = clock

    def search(
        self,
        position: Position,
        *,
        root_moves: Optional[Sequence[Move]] = None,
        movetime_ms: Optional[int] = None,
        max_depth: Optional[int] = None,
        tt_max_entries: Optional[int] = None,
        on_iter: Optional[IterCallback] = None,
    ) -> SearchResult:
        """Search ``position`` for its side to move.

        Args:
            position: Root position.
            root_moves: Restrict the root to these moves (all must be legal);
                defaults to every legal move.
            movetime_ms: Wall-clock budget; ``None`` searches without a clock.
            max_depth: Optional cap below the adaptive depth limit.
            tt_max_entries: Optional table size cap for this search.
            on_iter: Called with the stats dict of every completed depth.

        Returns:
            SearchResult: Move of the deepest completed pass. ``best_move`` is
            ``None`` only when the root has no legal move.

        Raises:
            InvalidPositionError: If a root move is not legal in ``position``.
        """
        start = self._clock()
        root_side = position.side_to_move
        if root_moves is None:
            moves = generate_moves(position, root_side)
        else:
            moves = list(dict.fromkeys(root_moves))
            for m in moves:
                if not position.is_legal(m):
                    raise InvalidPositionError(f"root move {m.to_str()} is not legal")

        table = TranspositionTable(
            tt_max_entries if tt_max_entries is not None else self.config.tt_max_entries
        )
        nodes = 0
        cutoffs = 0
        time_up = False

        if not moves:
            return self._result(None, LOSS, 0, 0, nodes, cutoffs, table, start, False, [])

        ordered_root = order_moves(position, root_side, moves)
        depth_cap = max_depth_for(position.size, len(moves), self.config)
        if max_depth is not None:
            depth_cap = max(1, min(depth_cap, max_depth))

        def out_of_time() -> bool:
            nonlocal time_up
            if movetime_ms is None or time_up:
                return time_up
            elapsed_ms = (self._clock() - start) * 1000
            if elapsed_ms > movetime_ms:
                time_up = True
            return time_up

        def negamax(
            pos: Position, d: int, alpha: float, beta: float, ply: int
        ) -> Tuple[float, Optional[Move]]:
            nonlocal nodes, cutoffs
            nodes += 1
            side = pos.side_to_move

            # Soft-fail leaf; the enclosing pass is discarded
            if out_of_time():
                return evaluate(pos, side), None

            # Terminal test takes precedence over the depth cutoff
            if d == 0 and ply > 0:
                if not has_moves(pos, side):
                    return LOSS, None
                return evaluate(pos, side), None
            legal = ordered_root if ply == 0 else generate_moves(pos, side)
            if not legal:
                return LOSS, None

            alpha_orig, beta_orig = alpha, beta
            key = pos.zobrist_hash
            if ply > 0:
                hit = table.probe(key, d, alpha, beta)
                if hit.cutoff:
                    assert hit.score is not None
                    return hit.score, hit.best_move
                alpha, beta = hit.alpha, hit.beta
                legal = order_moves(pos, side, legal)

            value = -INF
            chosen: Optional[Move] = None
            for m in legal:
                child_score, _ = negamax(pos.apply(m), d - 1, -beta, -alpha, ply + 1)
                score = -child_score
                if time_up:
                    if chosen is None:
                        value, chosen = score, m
                    break
                if score > value:
                    value = score
                    chosen = m
                if score > alpha:
                    alpha = score
                if alpha >= beta:
                    cutoffs += 1
                    break

            if not time_up:
                table.store(key, d, value, alpha_orig, beta_orig, chosen)
            return value, chosen

        # Iterative deepening; fall back to the best-ordered move if no pass completes
        best_move: Optional[Move] = ordered_root[0]
        best_score: Optional[float] = None
        completed_depth = 0
        iters: List[Dict[str, Any]] = []
        stop_reason = "max_depth"

        for d in range(1, depth_cap + 1):
            table.new_generation()
            iter_start = self._clock()
            nodes_before = nodes
            score, move = negamax(position, d, -INF, INF, 0)
            if time_up:
                stop_reason = "time"
                logger.debug("depth %d aborted on time, keeping depth %d", d, completed_depth)
                break

            completed_depth = d
            best_score = score
            if move is not None:
                best_move = move
            info: Dict[str, Any] = {
                "depth": d,
                "score": score,
                "best_move": best_move.to_str() if best_move else None,
                "nodes": nodes - nodes_before,
                "time_ms": int((self._clock() - iter_start) * 1000),
            }
            iters.append(info)
            logger.debug("depth %d score %s nodes %d", d, score, info["nodes"])
            if on_iter is not None:
                try:
                    on_iter(dict(info))
                except Exception:
                    logger.exception("iteration callback failed at depth %d", d)

            if is_proven(score, self.config.win_margin):
                stop_reason = "proven"
                break
            if movetime_ms is not None:
                elapsed_ms = (self._clock() - start) * 1000
                if elapsed_ms > movetime_ms * self.config.stop_fraction:
                    stop_reason = "time"
                    break

        if best_score is None:
            best_score = evaluate(position, root_side)

        logger.debug(
            "search stopped (%s) at depth %d/%d with %s",
            stop_reason,
            completed_depth,
            depth_cap,
            best_move.to_str() if best_move else None,
        )
        return self._result(
            best_move,
            best_score,
            completed_depth,
            depth_cap,
            nodes,
            cutoffs,
            table,
            start,
            time_up,
            iters,
        )

    def _result(
        self,
        best_move: Optional[Move],
        score: float,
        depth: int,
        max_depth: int,
        nodes: int,
        cutoffs: int,
        table: TranspositionTable,
        start: float,
        timed_out: bool,
        iters: List[Dict[str, Any]],
    ) -> SearchResult:
        return SearchResult(
            best_move=best_move,
            score=score,
            depth=depth,
            max_depth=max_depth,
            nodes=nodes,
            cutoffs=cutoffs,
            tt_probes=table.probes,
            tt_hits=table.hits,
            tt_exact_hits=table.exact_hits,
            tt_lower_hits=table.lower_hits,
            tt_upper_hits=table.upper_hits,
            tt_stores=table.stores,
            tt_replacements=table.replacements,
            tt_size=len(table),
            time_ms=int((self._clock() - start) * 1000),
            timed_out=timed_out,
            iters=iters,
            win_margin=self.config.win_margin,
        )


def choose_move(
    grid: Sequence[Sequence[Any]],
    legal_moves: Sequence[Any],
    grid_size: int,
    *,
    movetime_ms: Optional[int] = DEFAULT_CONFIG.movetime_ms,
    max_depth: Optional[int] = None,
    service: Optional[SearchService] = None,
) -> Optional[Move]:
    """Pick a move for the side whose ``legal_moves`` are given.

    Args:
        grid: ``grid_size`` rows of cell tokens (see ``squart.engine.grid.parse_cell``).
        legal_moves: Moves precomputed by the rules owner for the side to
            move, as ``Move`` values, text notation or mappings. Their common
            orientation identifies the side to move.
        grid_size: Declared board dimension.
        movetime_ms: Search budget; ``None`` searches without a clock.
        max_depth: Optional depth cap.
        service: Search service to use; a default one is created otherwise.

    Returns:
        Optional[Move]: A member of ``legal_moves``, or ``None`` iff it is empty.

    Raises:
        InvalidPositionError: If the grid disagrees with ``grid_size``, holds
            unknown cells, or a move is malformed, mixed in orientation, or
            not legal on the grid.
    """
    position = Position.from_rows(grid, grid_size)
    if not legal_moves:
        return None

    moves: List[Move] = []
    for raw in legal_moves:
        try:
            moves.append(coerce_move(raw))
        except ValueError as e:
            raise InvalidPositionError(str(e)) from e
    orientations = {m.orientation for m in moves}
    if len(orientations) != 1:
        raise InvalidPositionError("legal moves mix horizontal and vertical placements")
    side = Side.for_orientation(orientations.pop())
    position = position.with_side_to_move(side)
    for m in moves:
        if not position.is_legal(m):
            raise InvalidPositionError(f"move {m.to_str()} is not legal on this grid")

    svc = service if service is not None else SearchService()
    res = svc.search(position, root_moves=moves, movetime_ms=movetime_ms, max_depth=max_depth)
    logger.info(
        "%s chose %s (depth %d, score %s, %d nodes, %d ms)",
        side.value,
        res.best_move.to_str() if res.best_move else None,
        res.depth,
        res.score,
        res.nodes,
        res.time_ms,
    )
    return res.best_move
