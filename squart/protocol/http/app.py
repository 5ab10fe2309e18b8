from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from .error import (
    exception_handler,
    http_exception_handler,
    request_validation_exception_handler,
    value_error_handler,
)
from .logging_middleware import RequestIDLoggingMiddleware
from ...engine.game import Game
from ...engine.grid import MAX_GRID_SIZE, Position, Side
from ...engine.move import parse_move
from ...engine.perft import perft as perft_nodes
from ...eval import analyze_patterns
from ...search.service import DEFAULT_CONFIG, SearchService, choose_move
from .session import DEFAULT_MAX_SESSIONS, InMemorySessionStore


logger = logging.getLogger(__name__)


class CreateGameRequest(BaseModel):
    size: int = Field(default=5, ge=1, le=MAX_GRID_SIZE)
    layout: Optional[str] = Field(default=None, description="Rows joined by '/', e.g. '.#./.../...'")
    side_to_move: str = Field(default="first", description="'first' (horizontal) or 'second'")


class CreateGameResponse(BaseModel):
    game_id: str
    layout: str


class MoveRequest(BaseModel):
    move: str = Field(..., description="Move text, e.g. h0,1 or v2,0")


class SearchRequest(BaseModel):
    movetime_ms: int = Field(default=DEFAULT_CONFIG.movetime_ms, ge=1)
    max_depth: Optional[int] = Field(default=None, ge=1, le=64)
    tt_max_entries: Optional[int] = Field(default=None, ge=1)


class LegalMoveModel(BaseModel):
    row: int = Field(..., ge=0)
    col: int = Field(..., ge=0)
    orientation: str = Field(..., description="'horizontal' or 'vertical'")


class ChooseMoveRequest(BaseModel):
    grid: list[list[str]]
    legal_moves: list[LegalMoveModel]
    grid_size: int = Field(..., ge=1, le=MAX_GRID_SIZE)
    movetime_ms: int = Field(default=DEFAULT_CONFIG.movetime_ms, ge=1)


class ChooseMoveResponse(BaseModel):
    move: Optional[LegalMoveModel]


class PerftRequest(BaseModel):
    layout: str
    side_to_move: str = "first"
    depth: int = Field(default=1, ge=0, le=16)


class GameState(BaseModel):
    game_id: str
    size: int
    layout: str
    side_to_move: str
    legal_moves: list[str]
    scores: Dict[str, int]
    game_over: bool
    winner: Optional[str]
    last_move: Optional[str]
    move_history: list[str]
    patterns: Dict[str, Dict[str, int]]


def create_app(max_sessions: int = DEFAULT_MAX_SESSIONS) -> FastAPI:
    app = FastAPI(title="Squart Engine API", version="0.1.0")

    logging.basicConfig(level=logging.INFO)

    app.add_middleware(RequestIDLoggingMiddleware)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    # Bad layouts, sides and moves surface from the engine as ValueError
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(Exception, exception_handler)

    store = InMemorySessionStore(max_sessions=max_sessions)

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/games", response_model=CreateGameResponse)
    async def create_game(req: Optional[CreateGameRequest] = None) -> CreateGameResponse:
        req = req or CreateGameRequest()
        side = Side.parse(req.side_to_move)
        if req.layout is not None:
            game = Game.from_layout(req.layout, side)
        else:
            game = Game.new(req.size, side_to_move=side)
        game_id = store.create(game)
        logger.info("created game %s (%dx%d)", game_id, game.position.size, game.position.size)
        return CreateGameResponse(game_id=game_id, layout=game.to_layout())

    @app.get("/api/games/{game_id}/state", response_model=GameState)
    async def get_state(game_id: str) -> GameState:
        return _state(game_id, _require_game(store, game_id))

    @app.post("/api/games/{game_id}/move", response_model=GameState)
    async def make_move(game_id: str, req: MoveRequest) -> GameState:
        game = _require_game(store, game_id)
        try:
            move = parse_move(req.move)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        try:
            game.apply_move(move)
        except ValueError:
            raise HTTPException(status_code=400, detail="illegal move")
        return _state(game_id, game)

    @app.post("/api/games/{game_id}/undo", response_model=GameState)
    async def undo(game_id: str) -> GameState:
        game = _require_game(store, game_id)
        try:
            game.undo_move()
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _state(game_id, game)

    @app.post("/api/games/{game_id}/search")
    async def search(game_id: str, req: Optional[SearchRequest] = None) -> Dict[str, Any]:
        req = req or SearchRequest()
        game = _require_game(store, game_id)
        service = SearchService()
        # CPU-bound; keep it off the event loop
        res = await run_in_threadpool(
            service.search,
            game.position,
            movetime_ms=req.movetime_ms,
            max_depth=req.max_depth,
            tt_max_entries=req.tt_max_entries,
        )
        return {
            "best_move": res.best_move.to_str() if res.best_move else None,
            "score": res.score,
            "proven": res.proven,
            "depth": res.depth,
            "max_depth": res.max_depth,
            "nodes": res.nodes,
            "cutoffs": res.cutoffs,
            "time_ms": res.time_ms,
            "timed_out": res.timed_out,
            "iters": res.iters,
            "tt_probes": res.tt_probes,
            "tt_hits": res.tt_hits,
            "tt_exact_hits": res.tt_exact_hits,
            "tt_lower_hits": res.tt_lower_hits,
            "tt_upper_hits": res.tt_upper_hits,
            "tt_stores": res.tt_stores,
            "tt_replacements": res.tt_replacements,
            "tt_size": res.tt_size,
        }

    @app.post("/api/choose-move", response_model=ChooseMoveResponse)
    async def choose(req: ChooseMoveRequest) -> ChooseMoveResponse:
        move = await run_in_threadpool(
            choose_move,
            req.grid,
            [m.model_dump() for m in req.legal_moves],
            req.grid_size,
            movetime_ms=req.movetime_ms,
        )
        if move is None:
            return ChooseMoveResponse(move=None)
        return ChooseMoveResponse(
            move=LegalMoveModel(row=move.row, col=move.col, orientation=move.orientation.value)
        )

    @app.post("/api/perft")
    async def perft(req: PerftRequest) -> Dict[str, Any]:
        position = Position.from_layout(req.layout, Side.parse(req.side_to_move))
        nodes = await run_in_threadpool(perft_nodes, position, req.depth)
        return {"nodes": nodes}

    return app


def _state(game_id: str, game: Game) -> GameState:
    position = game.position
    winner = game.winner()
    last = game.last_move()
    return GameState(
        game_id=game_id,
        size=position.size,
        layout=game.to_layout(),
        side_to_move=game.side_to_move.value,
        legal_moves=[m.to_str() for m in game.legal_moves()],
        scores={side.value: pts for side, pts in game.scores().items()},
        game_over=game.is_over(),
        winner=winner.value if winner else None,
        last_move=last.to_str() if last else None,
        move_history=game.move_history(),
        patterns={side.value: asdict(analyze_patterns(position, side)) for side in Side},
    )


def _require_game(store: InMemorySessionStore, game_id: str) -> Game:
    game = store.get(game_id)
    if game is None:
        raise HTTPException(status_code=404, detail="game not found")
    return game


# Default app for non-factory servers
app = create_app()
