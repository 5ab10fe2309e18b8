from __future__ import annotations

from fastapi.testclient import TestClient

from squart.engine.game import Game
from squart.protocol.http.app import create_app
from squart.protocol.http.session import InMemorySessionStore


def _client() -> TestClient:
    return TestClient(create_app())


def test_create_game_and_get_state() -> None:
    client = _client()
    r = client.post("/api/games")
    assert r.status_code == 200
    body = r.json()
    assert isinstance(body["game_id"], str) and body["game_id"]
    assert body["layout"] == "...../...../...../...../....."
    game_id = body["game_id"]

    r2 = client.get(f"/api/games/{game_id}/state")
    assert r2.status_code == 200
    state = r2.json()
    assert state["game_id"] == game_id
    assert state["size"] == 5
    assert state["side_to_move"] == "first"
    assert len(state["legal_moves"]) == 20
    assert state["scores"] == {"first": 0, "second": 0}
    assert state["game_over"] is False
    assert state["winner"] is None
    assert state["last_move"] is None
    assert state["move_history"] == []
    assert set(state["patterns"]) == {"first", "second"}
    assert state["patterns"]["first"]["clusters"] == 0


def test_create_game_with_layout_and_side() -> None:
    client = _client()
    r = client.post("/api/games", json={"layout": "HH./.#./...", "side_to_move": "second"})
    assert r.status_code == 200
    game_id = r.json()["game_id"]
    state = client.get(f"/api/games/{game_id}/state").json()
    assert state["layout"] == "HH./.#./..."
    assert state["side_to_move"] == "second"
    assert state["legal_moves"] == ["v0,2", "v1,0", "v1,2"]
    assert state["scores"]["first"] == 2
    assert state["patterns"]["first"]["largest_cluster"] == 2


def test_create_game_with_size() -> None:
    client = _client()
    r = client.post("/api/games", json={"size": 3})
    assert r.json()["layout"] == ".../.../..."


def test_play_until_game_over_and_undo() -> None:
    client = _client()
    game_id = client.post("/api/games", json={"size": 2}).json()["game_id"]

    r = client.post(f"/api/games/{game_id}/move", json={"move": "h0,0"})
    assert r.status_code == 200
    state = r.json()
    assert state["layout"] == "HH/.."
    assert state["game_over"] is True
    assert state["winner"] == "first"
    assert state["last_move"] == "h0,0"
    assert state["move_history"] == ["h0,0"]
    assert state["legal_moves"] == []

    r_undo = client.post(f"/api/games/{game_id}/undo")
    assert r_undo.status_code == 200
    assert r_undo.json()["layout"] == "../.."
    assert r_undo.json()["game_over"] is False

    r_again = client.post(f"/api/games/{game_id}/undo")
    assert r_again.status_code == 400
    assert r_again.json()["error"]["code"] == "bad_request"


def test_bad_and_illegal_moves_are_400() -> None:
    client = _client()
    game_id = client.post("/api/games", json={"size": 3}).json()["game_id"]

    r_bad = client.post(f"/api/games/{game_id}/move", json={"move": "e2e4"})
    assert r_bad.status_code == 400
    assert r_bad.json()["error"]["code"] == "bad_request"

    r_illegal = client.post(f"/api/games/{game_id}/move", json={"move": "v0,0"})
    assert r_illegal.status_code == 400
    assert r_illegal.json()["error"]["message"] == "illegal move"

    state = client.get(f"/api/games/{game_id}/state").json()
    assert state["move_history"] == []


def test_bad_layout_and_side_are_400() -> None:
    client = _client()
    r = client.post("/api/games", json={"layout": "../..."})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "bad_request"

    r_side = client.post("/api/games", json={"side_to_move": "purple"})
    assert r_side.status_code == 400


def test_size_out_of_range_is_422() -> None:
    client = _client()
    r = client.post("/api/games", json={"size": 33})
    assert r.status_code == 422
    err = r.json()["error"]
    assert err["code"] == "unprocessable_entity"
    assert any(fe["field"].endswith("size") for fe in err["field_errors"])


def test_get_state_unknown_id_404() -> None:
    client = _client()
    r = client.get("/api/games/does-not-exist/state")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "not_found"


def test_store_evicts_oldest_sessions() -> None:
    store = InMemorySessionStore(max_sessions=2)
    a = store.create(Game.new(2))
    b = store.create(Game.new(3))
    c = store.create()
    assert len(store) == 2
    assert store.get(a) is None
    assert store.get(b) is not None
    assert store.get(c) is not None
    replacement = Game.new(4)
    store.set(c, replacement)
    assert store.get(c) is replacement
    assert store.delete(b) is True
    assert store.delete(b) is False


def test_app_session_cap() -> None:
    client = TestClient(create_app(max_sessions=1))
    first = client.post("/api/games").json()["game_id"]
    client.post("/api/games")
    assert client.get(f"/api/games/{first}/state").status_code == 404
