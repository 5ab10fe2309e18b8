from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from squart.engine.grid import Position, Side
from squart.engine.move import Move
from squart.search.service import SearchService


logger = logging.getLogger(__name__)


@dataclass
class PlayedMove:
    side: Side
    move: Move
    layout: str  # position after the move


@dataclass
class SelfPlayResult:
    winner: Optional[Side]
    final_position: Position
    moves: List[PlayedMove] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "winner": self.winner.value if self.winner else None,
            "final_layout": self.final_position.to_layout(),
            "moves": [
                {"side": pm.side.value, "move": pm.move.to_str(), "layout": pm.layout}
                for pm in self.moves
            ],
        }


def simulate_game(
    position: Position,
    first: SearchService,
    second: SearchService,
    *,
    movetime_ms: Optional[int] = None,
    max_depth: Optional[int] = None,
    max_moves: Optional[int] = None,
) -> SelfPlayResult:
    """Play ``position`` out with one search service per side.

    The side to move without a legal placement loses, so the winner is the
    side that made the last move. ``winner`` is ``None`` only when
    ``max_moves`` stops the game early.
    """
    engines = {Side.FIRST: first, Side.SECOND: second}
    played: List[PlayedMove] = []
    current = position
    while max_moves is None or len(played) < max_moves:
        side = current.side_to_move
        res = engines[side].search(current, movetime_ms=movetime_ms, max_depth=max_depth)
        if res.best_move is None:
            winner = side.opponent
            logger.info("self-play finished after %d moves, winner %s", len(played), winner.value)
            return SelfPlayResult(winner=winner, final_position=current, moves=played)
        current = current.apply(res.best_move)
        played.append(PlayedMove(side=side, move=res.best_move, layout=current.to_layout()))
    return SelfPlayResult(winner=None, final_position=current, moves=played)
