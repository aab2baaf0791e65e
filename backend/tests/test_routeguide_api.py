from __future__ import annotations

import time

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from api.streams import SseDecoder
from features.store import FeatureStore
from features.types import Feature
from geo.aoi import Location
from main import app, get_service
from routeguide.service import RouteGuideService
from telemetry.singleton import get_store, reset_store


def _point(lat: int, lon: int) -> dict:
    return {"latitude": lat, "longitude": lon}


def _note(lat: int, lon: int, message: str) -> dict:
    return {"location": _point(lat, lon), "message": message}


@pytest.fixture()
def service():
    svc = RouteGuideService(
        FeatureStore(
            [
                Feature(Location(-1, -1), "f1"),
                Feature(Location(2, 2), "f2"),
                Feature(Location(3, 3), "f3"),
                Feature(Location(4, 4)),
                Feature(Location(0, 0), "origin"),
            ]
        )
    )
    app.dependency_overrides[get_service] = lambda: svc
    yield svc
    app.dependency_overrides.clear()


@pytest.fixture()
def client(service):
    return TestClient(app)


def test_get_feature_found_and_not_found(client):
    resp = client.post("/routeguide/get-feature", json=_point(2, 2))
    assert resp.status_code == 200
    assert resp.json() == {"name": "f2", "location": _point(2, 2)}

    resp = client.post("/routeguide/get-feature", json=_point(1, 1))
    assert resp.status_code == 200
    assert resp.json() == {"name": "", "location": _point(1, 1)}


def test_get_feature_accepts_out_of_range_coordinates(client):
    resp = client.post("/routeguide/get-feature", json=_point(2_000_000_000, -2_000_000_000))
    assert resp.status_code == 200
    assert resp.json()["name"] == ""


def test_list_features_streams_named_features_in_rect(client):
    resp = client.post(
        "/routeguide/list-features", json={"lo": _point(10, 10), "hi": _point(1, 1)}
    )
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")

    decoder = SseDecoder()
    events = [
        e for line in resp.text.splitlines(keepends=True) if (e := decoder.feed(line))
    ]
    assert [name for name, _ in events] == ["next", "next", "completed"]
    assert '"f2"' in events[0][1]
    assert '"f3"' in events[1][1]


def test_record_route_over_websocket(client):
    with client.websocket_connect("/routeguide/record-route") as ws:
        ws.send_json({"event": "next", "data": _point(0, 0)})
        ws.send_json({"event": "next", "data": _point(44967, 0)})
        ws.send_json({"event": "completed"})

        summary = ws.receive_json()
        assert summary["event"] == "next"
        assert summary["data"]["pointCount"] == 2
        assert summary["data"]["featureCount"] == 1
        assert summary["data"]["distance"] == 500
        assert summary["data"]["elapsedTime"] >= 0
        assert ws.receive_json() == {"event": "completed"}


def test_record_route_client_error_abandons_session(client):
    with client.websocket_connect("/routeguide/record-route") as ws:
        ws.send_json({"event": "next", "data": _point(0, 0)})
        ws.send_json({"event": "error", "data": "client gave up"})
        with pytest.raises(WebSocketDisconnect):
            ws.receive_json()


def test_record_route_malformed_point_abandons_session(client):
    with client.websocket_connect("/routeguide/record-route") as ws:
        ws.send_json({"event": "next", "data": {"latitude": "north"}})
        with pytest.raises(WebSocketDisconnect):
            ws.receive_json()


def test_route_chat_over_websocket(client, service):
    with client.websocket_connect("/routeguide/route-chat") as ws:
        ws.send_json({"event": "next", "data": _note(1, 1, "n1")})
        ws.send_json({"event": "next", "data": _note(1, 1, "n2")})
        assert ws.receive_json() == {"event": "next", "data": _note(1, 1, "n1")}
        ws.send_json({"event": "next", "data": _note(2, 2, "n3")})
        ws.send_json({"event": "completed"})
        # n3 is the first note at its location: nothing before completion.
        assert ws.receive_json() == {"event": "completed"}

    assert len(service.notes) == 3


def test_route_chat_sessions_see_each_others_notes(client):
    with client.websocket_connect("/routeguide/route-chat") as ws:
        ws.send_json({"event": "next", "data": _note(7, 7, "from first")})
        ws.send_json({"event": "completed"})
        assert ws.receive_json() == {"event": "completed"}

    with client.websocket_connect("/routeguide/route-chat") as ws:
        ws.send_json({"event": "next", "data": _note(7, 7, "from second")})
        assert ws.receive_json() == {"event": "next", "data": _note(7, 7, "from first")}
        ws.send_json({"event": "completed"})
        assert ws.receive_json() == {"event": "completed"}


def test_route_chat_unknown_event_abandons_but_keeps_notes(client, service):
    with client.websocket_connect("/routeguide/route-chat") as ws:
        ws.send_json({"event": "next", "data": _note(9, 9, "kept")})
        ws.send_json({"event": "bogus"})
        with pytest.raises(WebSocketDisconnect):
            ws.receive_json()

    assert [n.message for n in service.notes.notes_at(Location(9, 9))] == ["kept"]


def test_say_hello(client):
    resp = client.post("/greeter/say-hello", json={"firstName": "Ada", "lastName": "Lovelace"})
    assert resp.status_code == 200
    assert resp.json() == {"message": "Hello Ada Lovelace"}


def test_healthz_reports_counts(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "features": 5, "notes": 0}


def test_telemetry_summary_empty_when_disabled(client, monkeypatch):
    monkeypatch.setenv("ROUTEGUIDE_TELEMETRY", "0")
    resp = client.get("/telemetry/summary")
    assert resp.status_code == 200
    assert resp.json() == []


def test_broken_telemetry_never_fails_calls(client, tmp_path, monkeypatch):
    not_a_dir = tmp_path / "occupied"
    not_a_dir.write_text("", encoding="utf-8")
    monkeypatch.setenv("ROUTEGUIDE_TELEMETRY", "1")
    monkeypatch.setenv("ROUTEGUIDE_TELEMETRY_PATH", str(not_a_dir / "t.duckdb"))

    resp = client.post("/routeguide/get-feature", json=_point(1, 1))
    assert resp.status_code == 200
    assert resp.json() == {"name": "", "location": _point(1, 1)}

    resp = client.post(
        "/routeguide/list-features", json={"lo": _point(0, 0), "hi": _point(3, 3)}
    )
    assert resp.status_code == 200
    assert "event: completed" in resp.text

    with client.websocket_connect("/routeguide/record-route") as ws:
        ws.send_json({"event": "next", "data": _point(2, 2)})
        ws.send_json({"event": "completed"})
        assert ws.receive_json()["data"]["pointCount"] == 1
        assert ws.receive_json() == {"event": "completed"}


def _wait_for_rows(store, n: int, timeout_s: float = 5.0) -> dict:
    deadline = time.time() + timeout_s
    while True:
        store.flush(timeout_s=1.0)
        rows = {(r["rpc"], r["outcome"]): r for r in store.summary()}
        if sum(r["n"] for r in rows.values()) >= n or time.time() > deadline:
            return rows
        time.sleep(0.02)


def test_calls_are_recorded_with_outcome_and_counts(client, tmp_path, monkeypatch):
    monkeypatch.setenv("ROUTEGUIDE_TELEMETRY", "1")
    monkeypatch.setenv("ROUTEGUIDE_TELEMETRY_PATH", str(tmp_path / "calls.duckdb"))
    store = get_store()
    assert store is not None
    try:
        assert client.post("/routeguide/get-feature", json=_point(2, 2)).status_code == 200

        with client.websocket_connect("/routeguide/record-route") as ws:
            ws.send_json({"event": "next", "data": _point(0, 0)})
            ws.send_json({"event": "next", "data": _point(2, 2)})
            ws.send_json({"event": "completed"})
            assert ws.receive_json()["event"] == "next"
            assert ws.receive_json() == {"event": "completed"}
            with pytest.raises(WebSocketDisconnect):
                ws.receive_json()

        with client.websocket_connect("/routeguide/route-chat") as ws:
            ws.send_json({"event": "next", "data": _note(5, 5, "left behind")})
            ws.send_json({"event": "error", "data": "client gave up"})
            with pytest.raises(WebSocketDisconnect):
                ws.receive_json()

        rows = _wait_for_rows(store, 3)
        assert rows[("GetFeature", "ok")]["requests"] == 1
        assert rows[("GetFeature", "ok")]["responses"] == 1
        assert rows[("RecordRoute", "ok")]["requests"] == 2
        assert rows[("RecordRoute", "ok")]["responses"] == 1
        assert rows[("RouteChat", "abandoned")]["requests"] == 1
        assert rows[("RouteChat", "abandoned")]["responses"] == 0
        assert ("RouteChat", "ok") not in rows

        resp = client.get("/telemetry/summary", params={"rpc": "RecordRoute"})
        assert [(r["rpc"], r["outcome"]) for r in resp.json()] == [("RecordRoute", "ok")]
    finally:
        reset_store()
