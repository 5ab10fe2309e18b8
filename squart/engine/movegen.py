from __future__ import annotations

from typing import List

from .grid import Cell, Position, Side
from .move import Move, Orientation


def generate_moves(position: Position, side: Side) -> List[Move]:
    """Enumerate every legal placement for ``side`` in row-major anchor order.

    Pure and deterministic; an empty list means ``side`` cannot move and the
    position is terminal for it.
    """
    n = position.size
    cells = position.cells
    empty = Cell.EMPTY
    moves: List[Move] = []
    if side is Side.FIRST:
        for r in range(n):
            base = r * n
            for c in range(n - 1):
                if cells[base + c] == empty and cells[base + c + 1] == empty:
                    moves.append(Move(r, c, Orientation.HORIZONTAL))
    else:
        for r in range(n - 1):
            base = r * n
            for c in range(n):
                if cells[base + c] == empty and cells[base + n + c] == empty:
                    moves.append(Move(r, c, Orientation.VERTICAL))
    return moves


def count_moves(position: Position, side: Side) -> int:
    """Number of legal placements for ``side`` (its mobility)."""
    n = position.size
    cells = position.cells
    empty = Cell.EMPTY
    total = 0
    if side is Side.FIRST:
        for r in range(n):
            base = r * n
            for c in range(n - 1):
                if cells[base + c] == empty and cells[base + c + 1] == empty:
                    total += 1
    else:
        for i in range(n * (n - 1)):
            if cells[i] == empty and cells[i + n] == empty:
                total += 1
    return total


def has_moves(position: Position, side: Side) -> bool:
    n = position.size
    cells = position.cells
    empty = Cell.EMPTY
    if side is Side.FIRST:
        for r in range(n):
            base = r * n
            for c in range(n - 1):
                if cells[base + c] == empty and cells[base + c + 1] == empty:
                    return True
        return False
    for i in range(n * (n - 1)):
        if cells[i] == empty and cells[i + n] == empty:
            return True
    return False
