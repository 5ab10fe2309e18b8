from __future__ import annotations

from typing import List, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .grid import Position, Side
    from .move import Move


MASK64 = 0xFFFFFFFFFFFFFFFF

# Enough keys for the largest supported grid (32 x 32)
MAX_CELLS = 32 * 32


class _SplitMix64:
    def __init__(self, seed: int) -> None:
        self.state = seed & MASK64

    def next(self) -> int:
        # Deterministic 64-bit SplitMix64
        self.state = (self.state + 0x9E3779B97F4A7C15) & MASK64
        z = self.state
        z = (z ^ (z >> 30)) * 0xBF58476D1CE4E5B9 & MASK64
        z = (z ^ (z >> 27)) * 0x94D049BB133111EB & MASK64
        z = z ^ (z >> 31)
        return z & MASK64


class Zobrist:
    """Zobrist hashing seeds.

    Table layout:
    - cell[state][index]: one key per non-empty cell state (indexed by the
      ``Cell`` value, row ``0`` for ``EMPTY`` is all zeros) and row-major cell
      index
    - second_to_move: toggled when the second side is to move
    """

    cell: List[List[int]]
    second_to_move: int

    def __init__(self, seed: int = 0x5C0A_27D0_0B1E, cells: int = MAX_CELLS) -> None:
        prng = _SplitMix64(seed)
        self.cell = [[0] * cells]
        for _ in range(3):  # BLOCKED, FIRST, SECOND
            self.cell.append([prng.next() for _ in range(cells)])
        self.second_to_move = prng.next()


# Global deterministic table
ZOBRIST = Zobrist()


def compute_hash_from_scratch(position: "Position") -> int:
    """Compute the 64-bit Zobrist hash of a position.

    Empty cells contribute nothing; every other cell XORs in the key for its
    state and index, and the side-to-move key is toggled for the second side.
    """
    h = 0
    for idx, cell in enumerate(position.cells):
        if cell:
            h ^= ZOBRIST.cell[cell][idx]
    if position.side_to_move.index:
        h ^= ZOBRIST.second_to_move
    return h & MASK64


def incremental_hash_update(current_hash: int, size: int, move: "Move", mover: "Side") -> int:
    """Return the hash after ``mover`` places ``move`` on a grid of ``size``.

    ``current_hash`` must be the hash of the position before the move; both
    covered cells are assumed empty there. The side to move always flips.
    """
    h = current_hash & MASK64
    keys = ZOBRIST.cell[mover.cell]
    for r, c in move.cells():
        h ^= keys[r * size + c]
    h ^= ZOBRIST.second_to_move
    return h & MASK64
