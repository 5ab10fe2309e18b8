from __future__ import annotations

from .grid import Position
from .movegen import count_moves, generate_moves


def perft(position: Position, depth: int) -> int:
    """Count move paths from ``position`` down to ``depth`` plies.

    Definition:
    - depth == 0 returns 1 (the current node).
    - a position whose side to move has no legal move is a leaf and returns 1.
    - otherwise returns the sum over all child positions' perft(depth-1).

    Children are produced with copy-apply, so ``position`` is never mutated.
    """
    if depth < 0:
        raise ValueError("depth must be >= 0")
    if depth == 0:
        return 1

    side = position.side_to_move
    if depth == 1:
        return count_moves(position, side) or 1

    moves = generate_moves(position, side)
    if not moves:
        return 1

    nodes = 0
    for m in moves:
        nodes += perft(position.apply(m), depth - 1)
    return nodes
