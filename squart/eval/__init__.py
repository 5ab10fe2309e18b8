"""Evaluation heuristics and related utilities.

Pure, deterministic, and side-effect free. Scores are small floats; the
search reserves ``WIN``/``LOSS`` for proven terminal outcomes and nothing in
here can come near them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Iterable, List, Optional

from squart.engine.grid import Cell, Position, Side
from squart.engine.move import Move, Orientation
from squart.engine.movegen import generate_moves


# Heuristic weights
BLOCK_BONUS: Final = 0.6  # per occupied/wall neighbour across the placement axis
CENTRALITY_WEIGHT: Final = 0.2  # per unit of Manhattan distance from the centre
MOBILITY_WEIGHT: Final = 4
TOP_K: Final = 3

# Pattern analysis (reporting only)
CLUSTER_CELL_SCORE: Final = 2
CLUSTER_MEDIUM_SIZE: Final = 4
CLUSTER_MEDIUM_BONUS: Final = 10
CLUSTER_LARGE_SIZE: Final = 6
CLUSTER_LARGE_BONUS: Final = 20

_KING_DIRS: Final = ((-1, -1), (-1, 0), (-1, 1), (0, -1), (0, 1), (1, -1), (1, 0), (1, 1))
_ORTHO_DIRS: Final = ((-1, 0), (1, 0), (0, -1), (0, 1))


def _occupied(position: Position, row: int, col: int) -> bool:
    # Walls count as occupied
    n = position.size
    if not (0 <= row < n and 0 <= col < n):
        return True
    return position.cells[row * n + col] != Cell.EMPTY


def move_heuristic(position: Position, side: Side, move: Move) -> float:
    """Score a candidate placement for move ordering.

    Each covered cell earns ``BLOCK_BONUS`` for every non-empty neighbour
    perpendicular to ``side``'s placement axis (above/below for horizontal
    dominoes, left/right for vertical ones) and loses ``CENTRALITY_WEIGHT``
    per unit of Manhattan distance from the grid centre.
    """
    center = (position.size - 1) / 2
    horizontal = side.orientation is Orientation.HORIZONTAL
    block = 0.0
    distance = 0.0
    for r, c in move.cells():
        distance += abs(r - center) + abs(c - center)
        if horizontal:
            if _occupied(position, r - 1, c):
                block += BLOCK_BONUS
            if _occupied(position, r + 1, c):
                block += BLOCK_BONUS
        else:
            if _occupied(position, r, c - 1):
                block += BLOCK_BONUS
            if _occupied(position, r, c + 1):
                block += BLOCK_BONUS
    return block - CENTRALITY_WEIGHT * distance


def top_k_quality(
    position: Position, side: Side, moves: Optional[List[Move]] = None, k: int = TOP_K
) -> float:
    """Sum of the ``k`` best move-heuristic scores available to ``side``."""
    if moves is None:
        moves = generate_moves(position, side)
    scores = sorted((move_heuristic(position, side, m) for m in moves), reverse=True)
    return sum(scores[:k])


def evaluate(position: Position, root_side: Side) -> float:
    """Evaluate a non-terminal position from ``root_side``'s perspective.

    ``4 * (mobility(root) - mobility(opp)) + (top3(root) - top3(opp))``.
    Antisymmetric: ``evaluate(p, s) == -evaluate(p, s.opponent)``.
    """
    opp = root_side.opponent
    mine = generate_moves(position, root_side)
    theirs = generate_moves(position, opp)
    score = MOBILITY_WEIGHT * (len(mine) - len(theirs))
    score += top_k_quality(position, root_side, mine) - top_k_quality(position, opp, theirs)
    return score


@dataclass(frozen=True)
class PatternSummary:
    clusters: int
    largest_cluster: int
    pattern_score: int
    connectivity: int


def _cluster_sizes(position: Position, target: Cell) -> Iterable[int]:
    n = position.size
    cells = position.cells
    visited = [False] * (n * n)
    for start in range(n * n):
        if visited[start] or cells[start] != target:
            continue
        size = 0
        stack = [start]
        visited[start] = True
        while stack:
            idx = stack.pop()
            size += 1
            r, c = divmod(idx, n)
            for dr, dc in _KING_DIRS:
                rr, cc = r + dr, c + dc
                if 0 <= rr < n and 0 <= cc < n:
                    j = rr * n + cc
                    if not visited[j] and cells[j] == target:
                        visited[j] = True
                        stack.append(j)
        yield size


def connectivity(position: Position, side: Side) -> int:
    """Count orthogonally adjacent ordered pairs of ``side``'s cells."""
    n = position.size
    cells = position.cells
    target = side.cell
    total = 0
    for idx, cell in enumerate(cells):
        if cell != target:
            continue
        r, c = divmod(idx, n)
        for dr, dc in _ORTHO_DIRS:
            rr, cc = r + dr, c + dc
            if 0 <= rr < n and 0 <= cc < n and cells[rr * n + cc] == target:
                total += 1
    return total


def analyze_patterns(position: Position, side: Side) -> PatternSummary:
    """Cluster analysis of ``side``'s tokens (8-connected).

    Used for position reports, never for search scores.
    """
    clusters = 0
    largest = 0
    pattern_score = 0
    for size in _cluster_sizes(position, side.cell):
        clusters += 1
        largest = max(largest, size)
        pattern_score += size * CLUSTER_CELL_SCORE
        if size >= CLUSTER_MEDIUM_SIZE:
            pattern_score += CLUSTER_MEDIUM_BONUS
        if size >= CLUSTER_LARGE_SIZE:
            pattern_score += CLUSTER_LARGE_BONUS
    return PatternSummary(
        clusters=clusters,
        largest_cluster=largest,
        pattern_score=pattern_score,
        connectivity=connectivity(position, side),
    )
