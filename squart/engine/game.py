from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .grid import Position, Side
from .move import Move
from .movegen import has_moves


POINTS_PER_CELL = 1


@dataclass
class Game:
    """Game wrapper around a position with helper operations.

    Responsibility: track the current position, expose legal moves, apply
    and undo moves, and report scores and the winner.
    """

    position: Position
    move_stack: List[Move] = field(default_factory=list)
    history: List[Position] = field(default_factory=list)

    @classmethod
    def new(
        cls,
        size: int = 5,
        blocked: Iterable[Tuple[int, int]] = (),
        side_to_move: Side = Side.FIRST,
    ) -> "Game":
        return cls(position=Position.empty(size, blocked, side_to_move))

    @classmethod
    def from_layout(cls, layout: str, side_to_move: Side = Side.FIRST) -> "Game":
        return cls(position=Position.from_layout(layout, side_to_move))

    def to_layout(self) -> str:
        return self.position.to_layout()

    @property
    def side_to_move(self) -> Side:
        return self.position.side_to_move

    def legal_moves(self) -> List[Move]:
        return self.position.legal_moves()

    def apply_move(self, move: Move) -> None:
        if not self.position.is_legal(move):
            raise ValueError("illegal move")
        self.history.append(self.position)
        self.position = self.position.apply(move)
        self.move_stack.append(move)

    def undo_move(self) -> None:
        if not self.move_stack:
            raise ValueError("no moves to undo")
        self.move_stack.pop()
        self.position = self.history.pop()

    # --- State flags for protocol ---
    def scores(self) -> Dict[Side, int]:
        # Each domino covers two cells, so a placement is worth two points
        return {side: self.position.token_count(side) * POINTS_PER_CELL for side in Side}

    def is_over(self) -> bool:
        return not has_moves(self.position, self.position.side_to_move)

    def winner(self) -> Optional[Side]:
        """Side that made the last move once the side to move is stuck."""
        if not self.is_over():
            return None
        return self.position.side_to_move.opponent

    def last_move(self) -> Optional[Move]:
        return self.move_stack[-1] if self.move_stack else None

    def move_history(self) -> List[str]:
        return [m.to_str() for m in self.move_stack]
