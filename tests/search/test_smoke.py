from __future__ import annotations

from squart.engine.grid import Position, Side
from squart.engine.move import Move, Orientation
from squart.search.service import (
    SearchConfig,
    SearchService,
    is_proven,
    max_depth_for,
    order_moves,
)


def test_search_returns_legal_move_on_open_grid() -> None:
    pos = Position.empty(4)
    res = SearchService().search(pos, max_depth=2)
    assert res.best_move is not None
    assert res.best_move in pos.legal_moves()
    assert res.depth == 2
    assert res.max_depth == 2
    assert [it["depth"] for it in res.iters] == [1, 2]
    assert res.iters[-1]["best_move"] == res.best_move.to_str()
    assert res.nodes > 0
    assert res.tt_stores > 0
    assert not res.timed_out
    assert res.proven is None


def test_search_for_second_side() -> None:
    pos = Position.from_layout("HH.../...../..#../...../.....", Side.SECOND)
    res = SearchService().search(pos, max_depth=2)
    assert res.best_move is not None
    assert res.best_move.orientation is Orientation.VERTICAL
    assert pos.is_legal(res.best_move)


def test_adaptive_depth_cap() -> None:
    assert max_depth_for(5, 20) == 8
    assert max_depth_for(5, 3) == 3
    assert max_depth_for(8, 100) == 8
    assert max_depth_for(9, 100) == 6
    assert max_depth_for(12, 100) == 6
    assert max_depth_for(13, 100) == 5
    assert max_depth_for(32, 2) == 2
    cfg = SearchConfig(depth_caps=((4, 10),), large_grid_depth=2)
    assert max_depth_for(4, 50, cfg) == 10
    assert max_depth_for(5, 50, cfg) == 2


def test_ordering_is_stable_for_ties() -> None:
    pos = Position.empty(2)
    h = Orientation.HORIZONTAL
    moves = [Move(0, 0, h), Move(1, 0, h)]
    # Both rows score the same, generator order is kept
    assert order_moves(pos, Side.FIRST, moves) == moves
    assert order_moves(pos, Side.FIRST, list(reversed(moves))) == list(reversed(moves))


def test_is_proven_margin() -> None:
    assert is_proven(1e9)
    assert is_proven(-1e9)
    assert is_proven(1e9 - 50)
    assert not is_proven(1e9 - 500)
    assert not is_proven(37.5)


def test_root_moves_restrict_the_choice() -> None:
    pos = Position.empty(5)
    h = Orientation.HORIZONTAL
    allowed = [Move(4, 3, h), Move(0, 0, h)]
    res = SearchService().search(pos, root_moves=allowed, max_depth=2)
    assert res.best_move in allowed


def test_proven_uses_the_service_win_margin() -> None:
    pos = Position.empty(4)
    wide = SearchService(SearchConfig(win_margin=2e9))
    res = wide.search(pos, max_depth=4)
    # Every score counts as proven, so deepening stops after the first pass
    assert res.depth == 1
    assert res.proven is not None
    assert res.win_margin == 2e9

    default = SearchService().search(pos, max_depth=1)
    assert default.proven is None
