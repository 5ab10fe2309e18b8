from __future__ import annotations

import pytest

from squart.engine.game import Game
from squart.engine.grid import Side
from squart.engine.move import Move, Orientation


H = Orientation.HORIZONTAL
V = Orientation.VERTICAL


def test_new_game_defaults() -> None:
    game = Game.new()
    assert game.position.size == 5
    assert game.side_to_move is Side.FIRST
    assert len(game.legal_moves()) == 20
    assert game.scores() == {Side.FIRST: 0, Side.SECOND: 0}
    assert not game.is_over()
    assert game.winner() is None
    assert game.last_move() is None


def test_apply_and_undo() -> None:
    game = Game.new(3)
    game.apply_move(Move(0, 0, H))
    game.apply_move(Move(1, 2, V))
    assert game.move_history() == ["h0,0", "v1,2"]
    assert game.last_move() == Move(1, 2, V)
    assert game.scores() == {Side.FIRST: 2, Side.SECOND: 2}
    assert game.to_layout() == "HH./..V/..V"

    game.undo_move()
    assert game.to_layout() == "HH./.../..."
    assert game.side_to_move is Side.SECOND
    game.undo_move()
    assert game.to_layout() == ".../.../..."
    with pytest.raises(ValueError):
        game.undo_move()


def test_illegal_move_leaves_game_unchanged() -> None:
    game = Game.new(3, blocked=[(0, 1)])
    with pytest.raises(ValueError, match="illegal move"):
        game.apply_move(Move(0, 0, H))
    with pytest.raises(ValueError):
        game.apply_move(Move(0, 0, V))
    assert game.move_history() == []
    assert game.to_layout() == ".#./.../..."


def test_side_that_cannot_move_loses() -> None:
    game = Game.new(2)
    game.apply_move(Move(0, 0, H))
    assert game.is_over()
    assert game.winner() is Side.FIRST


def test_from_layout_with_second_to_move() -> None:
    game = Game.from_layout("HH../..../..../....", Side.SECOND)
    assert game.side_to_move is Side.SECOND
    assert all(m.orientation is V for m in game.legal_moves())
    assert game.scores()[Side.FIRST] == 2
