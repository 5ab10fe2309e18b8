from __future__ import annotations

import logging
from typing import Any, Dict

import pytest

from squart.engine.grid import Position, Side
from squart.engine.movegen import generate_moves
from squart.eval import evaluate
from squart.search.service import SearchService, order_moves


class FakeClock:
    """Manual clock in seconds; advances by ``step`` on every read."""

    def __init__(self) -> None:
        self.now = 0.0
        self.step = 0.0

    def __call__(self) -> float:
        self.now += self.step
        return self.now


def test_budget_spent_before_first_pass_falls_back_to_ordering() -> None:
    clock = FakeClock()
    clock.step = 0.001
    pos = Position.empty(6)
    res = SearchService(clock=clock).search(pos, movetime_ms=5)

    assert res.timed_out
    assert res.depth == 0
    assert res.iters == []
    expected = order_moves(pos, Side.FIRST, generate_moves(pos, Side.FIRST))[0]
    assert res.best_move == expected
    assert res.score == pytest.approx(evaluate(pos, Side.FIRST))


def test_aborted_pass_is_discarded() -> None:
    clock = FakeClock()

    def after_depth(info: Dict[str, Any]) -> None:
        if info["depth"] == 1:
            # Every later clock read costs 100ms, so depth 2 runs out
            clock.step = 0.1

    pos = Position.empty(6)
    res = SearchService(clock=clock).search(pos, movetime_ms=1000, on_iter=after_depth)

    assert res.timed_out
    assert res.depth == 1
    assert len(res.iters) == 1
    assert res.best_move is not None
    assert res.best_move.to_str() == res.iters[0]["best_move"]
    assert res.score == res.iters[0]["score"]


def test_deepening_stops_after_ninety_percent_of_budget() -> None:
    clock = FakeClock()

    def after_depth(info: Dict[str, Any]) -> None:
        clock.now = 0.96

    res = SearchService(clock=clock).search(
        Position.empty(6), movetime_ms=1000, on_iter=after_depth
    )
    assert not res.timed_out
    assert res.depth == 1
    assert res.time_ms >= 900


def test_unbounded_search_reaches_requested_depth() -> None:
    clock = FakeClock()
    clock.step = 10.0  # would blow any budget, but there is none
    res = SearchService(clock=clock).search(Position.empty(4), max_depth=3)
    assert not res.timed_out
    assert res.depth == 3


def test_failing_iteration_callback_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    def boom(info: Dict[str, Any]) -> None:
        raise RuntimeError("listener broke")

    with caplog.at_level(logging.ERROR, logger="squart.search.service"):
        res = SearchService().search(Position.empty(4), max_depth=2, on_iter=boom)
    assert res.depth == 2
    assert "iteration callback failed" in caplog.text
