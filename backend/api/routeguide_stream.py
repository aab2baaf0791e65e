from __future__ import annotations

import logging
import time
from typing import AsyncIterator

from fastapi import WebSocket, WebSocketDisconnect

from api.models import ApiFeature, ApiPoint, ApiRouteNote, ApiRouteSummary
from api.streams import (
    EventType,
    FrameReader,
    WebSocketObserver,
    close_if_open,
    format_event,
)
from geo.aoi import Rectangle
from routeguide.service import RouteGuideService
from routeguide.sessions import drive
from routeguide.types import TERMINAL_STATES, SessionState
from telemetry.singleton import get_store

logger = logging.getLogger(__name__)


def record_call(
    rpc: str, *, ok: bool, requests: int, responses: int, started: float
) -> None:
    # Best-effort: a telemetry failure never fails the call.
    try:
        store = get_store()
        if store is not None:
            store.record(
                rpc=rpc,
                outcome="ok" if ok else "abandoned",
                requests=requests,
                responses=responses,
                elapsed_ms=(time.perf_counter() - started) * 1000.0,
            )
    except Exception:
        logger.debug("telemetry record failed for %s", rpc, exc_info=True)


async def stream_features(
    service: RouteGuideService, rect: Rectangle
) -> AsyncIterator[str]:
    t0 = time.perf_counter()
    sent = 0
    for feature in service.list_features(rect):
        yield format_event(
            EventType.next, ApiFeature.from_domain(feature).model_dump_json()
        )
        sent += 1
    yield format_event(EventType.completed, ".")
    record_call("ListFeatures", ok=True, requests=1, responses=sent, started=t0)


async def _drive_socket(session, source) -> SessionState:
    try:
        return await drive(session, source)
    except WebSocketDisconnect as e:
        # Peer left while a response was being written.
        if session.state not in TERMINAL_STATES:
            await session.on_error(e)
        return SessionState.abandoned


async def serve_record_route(websocket: WebSocket, service: RouteGuideService) -> None:
    await websocket.accept()
    t0 = time.perf_counter()
    responses = WebSocketObserver(websocket, ApiRouteSummary.from_domain)
    points = FrameReader(websocket, lambda d: ApiPoint.model_validate(d).to_domain())

    state = await _drive_socket(service.record_route(responses), points)

    await close_if_open(websocket)
    record_call(
        "RecordRoute",
        ok=state == SessionState.responded,
        requests=points.received,
        responses=responses.sent,
        started=t0,
    )


async def serve_route_chat(websocket: WebSocket, service: RouteGuideService) -> None:
    await websocket.accept()
    t0 = time.perf_counter()
    responses = WebSocketObserver(websocket, ApiRouteNote.from_domain)
    notes = FrameReader(websocket, lambda d: ApiRouteNote.model_validate(d).to_domain())

    state = await _drive_socket(service.route_chat(responses), notes)

    await close_if_open(websocket)
    record_call(
        "RouteChat",
        ok=state == SessionState.completed,
        requests=notes.received,
        responses=responses.sent,
        started=t0,
    )
