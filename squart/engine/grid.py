from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .move import Move, Orientation
from .zobrist import compute_hash_from_scratch, incremental_hash_update


MAX_GRID_SIZE = 32


class InvalidPositionError(ValueError):
    """Raised when a grid, layout, or move set is inconsistent or malformed."""


class Cell(IntEnum):
    EMPTY = 0
    BLOCKED = 1
    FIRST = 2
    SECOND = 3


class Side(Enum):
    """One of the two players; each places dominoes along a fixed axis."""

    FIRST = "first"
    SECOND = "second"

    @property
    def index(self) -> int:
        return 0 if self is Side.FIRST else 1

    @property
    def opponent(self) -> "Side":
        return Side.SECOND if self is Side.FIRST else Side.FIRST

    @property
    def orientation(self) -> Orientation:
        return Orientation.HORIZONTAL if self is Side.FIRST else Orientation.VERTICAL

    @property
    def cell(self) -> Cell:
        return Cell.FIRST if self is Side.FIRST else Cell.SECOND

    @classmethod
    def for_orientation(cls, orientation: Orientation) -> "Side":
        return cls.FIRST if orientation is Orientation.HORIZONTAL else cls.SECOND

    @classmethod
    def parse(cls, value: Any) -> "Side":
        if isinstance(value, Side):
            return value
        key = str(value).strip().lower()
        side = SIDE_TOKENS.get(key)
        if side is None:
            raise InvalidPositionError(f"invalid side: {value!r}")
        return side


SIDE_TOKENS: Dict[str, Side] = {
    "first": Side.FIRST,
    "blue": Side.FIRST,
    "h": Side.FIRST,
    "horizontal": Side.FIRST,
    "second": Side.SECOND,
    "red": Side.SECOND,
    "v": Side.SECOND,
    "vertical": Side.SECOND,
}

CELL_TO_CHAR = {
    Cell.EMPTY: ".",
    Cell.BLOCKED: "#",
    Cell.FIRST: "H",
    Cell.SECOND: "V",
}
CHAR_TO_CELL = {v: k for k, v in CELL_TO_CHAR.items()}

# Names used by the rules owner for cell contents; "inactive" and "invalid"
# (cells outside the board shape) are both unplayable.
CELL_TOKENS: Dict[str, Cell] = {
    "empty": Cell.EMPTY,
    "blocked": Cell.BLOCKED,
    "inactive": Cell.BLOCKED,
    "invalid": Cell.BLOCKED,
    "first": Cell.FIRST,
    "blue": Cell.FIRST,
    "second": Cell.SECOND,
    "red": Cell.SECOND,
}


def parse_cell(token: Any) -> Cell:
    """Convert a cell token (``Cell``, name, or layout character) into a ``Cell``.

    Raises:
        InvalidPositionError: If ``token`` is not a recognised cell value.
    """
    if isinstance(token, Cell):
        return token
    if isinstance(token, str):
        if token in CHAR_TO_CELL:
            return CHAR_TO_CELL[token]
        cell = CELL_TOKENS.get(token.strip().lower())
        if cell is not None:
            return cell
    raise InvalidPositionError(f"invalid cell value: {token!r}")


def _check_size(size: int) -> None:
    if not isinstance(size, int) or isinstance(size, bool):
        raise InvalidPositionError(f"grid size must be an integer, got {size!r}")
    if size < 1 or size > MAX_GRID_SIZE:
        raise InvalidPositionError(f"grid size must be in 1..{MAX_GRID_SIZE}, got {size}")


@dataclass(frozen=True)
class Position:
    """Immutable grid state plus the side to move.

    Notes:
    - Cells are stored row-major: index ``row * size + col``.
    - Equality compares cells and side to move; the hash field is derived.
    - ``apply`` returns a new position, siblings never share mutable state.
    """

    size: int
    cells: Tuple[Cell, ...]
    side_to_move: Side
    zobrist_hash: int = field(default=0, compare=False)

    @classmethod
    def _build(cls, size: int, cells: Tuple[Cell, ...], side_to_move: Side) -> "Position":
        pos = cls(size=size, cells=cells, side_to_move=side_to_move)
        object.__setattr__(pos, "zobrist_hash", compute_hash_from_scratch(pos))
        return pos

    @classmethod
    def empty(
        cls,
        size: int,
        blocked: Iterable[Tuple[int, int]] = (),
        side_to_move: Side = Side.FIRST,
    ) -> "Position":
        """Create an all-empty grid with optional blocked cells.

        Raises:
            InvalidPositionError: If ``size`` is out of range or a blocked
                cell lies outside the grid.
        """
        _check_size(size)
        cells = [Cell.EMPTY] * (size * size)
        for r, c in blocked:
            if not (0 <= r < size and 0 <= c < size):
                raise InvalidPositionError(f"blocked cell outside grid: ({r}, {c})")
            cells[r * size + c] = Cell.BLOCKED
        return cls._build(size, tuple(cells), Side.parse(side_to_move))

    @classmethod
    def from_rows(
        cls,
        rows: Sequence[Sequence[Any]],
        size: Optional[int] = None,
        side_to_move: Side = Side.FIRST,
    ) -> "Position":
        """Create a position from a 2D grid of cell tokens.

        Args:
            rows: ``size`` rows of ``size`` cell tokens each (see ``parse_cell``).
                A row may also be a layout string such as ``".#.."``.
            size: Declared grid dimension; defaults to ``len(rows)``.
            side_to_move: Side whose turn it is.

        Returns:
            Position: Parsed position.

        Raises:
            InvalidPositionError: If the dimensions disagree with ``size`` or a
                cell token is unknown.
        """
        if rows is None or isinstance(rows, (str, bytes)):
            raise InvalidPositionError("grid must be a sequence of rows")
        n = len(rows) if size is None else size
        _check_size(n)
        if len(rows) != n:
            raise InvalidPositionError(f"grid has {len(rows)} rows, expected {n}")
        cells: List[Cell] = []
        for r, row in enumerate(rows):
            try:
                got = len(row)
            except TypeError as e:
                raise InvalidPositionError(f"row {r} is not a sequence of cells") from e
            if got != n:
                raise InvalidPositionError(f"row {r} has {got} cells, expected {n}")
            for token in row:
                cells.append(parse_cell(token))
        return cls._build(n, tuple(cells), Side.parse(side_to_move))

    @classmethod
    def from_layout(cls, layout: str, side_to_move: Side = Side.FIRST) -> "Position":
        """Create a position from layout text.

        Rows are separated by ``/`` and use one character per cell:
        ``.`` empty, ``#`` blocked, ``H`` first side, ``V`` second side.

        Raises:
            InvalidPositionError: If ``layout`` is empty, not square, or
                contains unknown characters.
        """
        if not layout or not isinstance(layout, str):
            raise InvalidPositionError("layout must be a non-empty string")
        rows = layout.strip().split("/")
        return cls.from_rows(rows, side_to_move=side_to_move)

    def to_layout(self) -> str:
        n = self.size
        return "/".join(
            "".join(CELL_TO_CHAR[self.cells[r * n + c]] for c in range(n)) for r in range(n)
        )

    def cell_at(self, row: int, col: int) -> Cell:
        return self.cells[row * self.size + col]

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.size and 0 <= col < self.size

    def is_empty(self, row: int, col: int) -> bool:
        # Off-grid coordinates count as occupied (walls)
        return self.in_bounds(row, col) and self.cells[row * self.size + col] == Cell.EMPTY

    def is_legal(self, move: Move, side: Optional[Side] = None) -> bool:
        """Return True if ``side`` (default: side to move) may place ``move``."""
        mover = self.side_to_move if side is None else side
        if move.orientation is not mover.orientation:
            return False
        (r1, c1), (r2, c2) = move.cells()
        return self.is_empty(r1, c1) and self.is_empty(r2, c2)

    def apply(self, move: Move) -> "Position":
        """Return a new position with ``move`` placed by the side to move.

        Raises:
            ValueError: If the move is not legal for the side to move.
        """
        mover = self.side_to_move
        if not self.is_legal(move, mover):
            raise ValueError(f"illegal move: {move.to_str()}")
        cells = list(self.cells)
        for r, c in move.cells():
            cells[r * self.size + c] = mover.cell
        nxt = Position(size=self.size, cells=tuple(cells), side_to_move=mover.opponent)
        object.__setattr__(
            nxt,
            "zobrist_hash",
            incremental_hash_update(self.zobrist_hash, self.size, move, mover),
        )
        return nxt

    def with_side_to_move(self, side: Side) -> "Position":
        return self._build(self.size, self.cells, side)

    def legal_moves(self) -> List[Move]:
        from .movegen import generate_moves

        return generate_moves(self, self.side_to_move)

    def token_count(self, side: Side) -> int:
        """Number of cells covered by ``side``'s dominoes."""
        target = side.cell
        return sum(1 for c in self.cells if c == target)
