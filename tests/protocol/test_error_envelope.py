from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from squart.engine.grid import InvalidPositionError
from squart.protocol.http.app import create_app


def test_error_envelope_for_http_exception() -> None:
    app: FastAPI = create_app()

    @app.get("/boom")
    def boom():  # type: ignore[no-redef]
        raise HTTPException(status_code=409, detail="oops")

    client = TestClient(app)
    r = client.get("/boom")
    assert r.status_code == 409
    err = r.json()["error"]
    assert err["code"] == "conflict"
    assert err["message"] == "oops"
    assert err["type"] == "client_error"
    assert err["request_id"]


def test_engine_value_errors_map_to_400() -> None:
    app: FastAPI = create_app()

    @app.get("/bad-grid")
    def bad_grid():  # type: ignore[no-redef]
        raise InvalidPositionError("grid has 3 rows, expected 4")

    client = TestClient(app)
    r = client.get("/bad-grid", headers={"x-request-id": "rid-1"})
    assert r.status_code == 400
    err = r.json()["error"]
    assert err["code"] == "bad_request"
    assert err["message"] == "grid has 3 rows, expected 4"
    assert err["request_id"] == "rid-1"


def test_unhandled_errors_map_to_500() -> None:
    app: FastAPI = create_app()

    @app.get("/crash")
    def crash():  # type: ignore[no-redef]
        raise RuntimeError("kaboom")

    client = TestClient(app, raise_server_exceptions=False)
    r = client.get("/crash")
    assert r.status_code == 500
    err = r.json()["error"]
    assert err["code"] == "internal_error"
    assert err["type"] == "server_error"
    assert "kaboom" not in err["message"]


def test_validation_errors_list_fields() -> None:
    client = TestClient(create_app())
    r = client.post("/api/choose-move", json={"grid": [], "legal_moves": []})
    assert r.status_code == 422
    err = r.json()["error"]
    assert err["type"] == "client_error"
    assert any(fe["field"].endswith("grid_size") for fe in err["field_errors"])
