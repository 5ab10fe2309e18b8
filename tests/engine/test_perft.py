from __future__ import annotations

import pytest

from squart.engine.grid import Position, Side
from squart.engine.perft import perft


def test_perft_depth_zero_is_one() -> None:
    assert perft(Position.empty(4), 0) == 1


def test_perft_rejects_negative_depth() -> None:
    with pytest.raises(ValueError):
        perft(Position.empty(2), -1)


def test_perft_two_by_two() -> None:
    pos = Position.empty(2)
    assert perft(pos, 1) == 2
    # Every first placement leaves the vertical side stuck
    assert perft(pos, 2) == 2
    assert perft(pos, 5) == 2


def test_perft_three_by_three() -> None:
    pos = Position.empty(3)
    assert perft(pos, 1) == 6
    assert perft(pos, 2) == 20


def test_perft_terminal_position_is_a_leaf() -> None:
    pos = Position.from_layout("HH/..", Side.SECOND)
    assert perft(pos, 3) == 1


def test_perft_does_not_mutate_position() -> None:
    pos = Position.empty(3, blocked=[(1, 1)])
    before = (pos.cells, pos.side_to_move, pos.zobrist_hash)
    perft(pos, 3)
    assert (pos.cells, pos.side_to_move, pos.zobrist_hash) == before


def test_perft_depth_one_counts_stuck_side_as_leaf() -> None:
    stuck = Position.from_layout("HH/..", Side.SECOND)
    assert perft(stuck, 1) == 1
    open_row = Position.from_layout("HH/..", Side.FIRST)
    assert perft(open_row, 1) == 1
    assert perft(Position.from_layout("..../..../#.../....", Side.SECOND), 1) == 10
