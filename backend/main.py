from __future__ import annotations

import time
from functools import lru_cache

import uvicorn
from fastapi import Depends, FastAPI, WebSocket
from fastapi.responses import StreamingResponse

from api.models import ApiFeature, ApiGreeting, ApiPerson, ApiPoint, ApiRectangle
from api.routeguide_stream import (
    record_call,
    serve_record_route,
    serve_route_chat,
    stream_features,
)
from features.loaders import load_features_json
from features.store import FeatureStore
from greeter.service import say_hello
from logging_config import setup_logging
from routeguide.service import RouteGuideService
from settings.loader import features_path, get_config
from telemetry.singleton import get_store

app = FastAPI(title="Route Guide")


@lru_cache(maxsize=1)
def get_service() -> RouteGuideService:
    """
    One service per process: the feature store is loaded once and the note log
    lives as long as the process.
    """
    return RouteGuideService(FeatureStore(load_features_json(features_path())))


@app.post("/routeguide/get-feature", response_model=ApiFeature)
def get_feature(body: ApiPoint, service: RouteGuideService = Depends(get_service)):
    t0 = time.perf_counter()
    feature = service.get_feature(body.to_domain())
    record_call("GetFeature", ok=True, requests=1, responses=1, started=t0)
    return ApiFeature.from_domain(feature)


@app.post("/routeguide/list-features")
def list_features(body: ApiRectangle, service: RouteGuideService = Depends(get_service)):
    return StreamingResponse(
        stream_features(service, body.to_domain()), media_type="text/event-stream"
    )


@app.websocket("/routeguide/record-route")
async def record_route(
    websocket: WebSocket, service: RouteGuideService = Depends(get_service)
):
    await serve_record_route(websocket, service)


@app.websocket("/routeguide/route-chat")
async def route_chat(
    websocket: WebSocket, service: RouteGuideService = Depends(get_service)
):
    await serve_route_chat(websocket, service)


@app.post("/greeter/say-hello", response_model=ApiGreeting)
def greeter_say_hello(body: ApiPerson):
    return ApiGreeting.from_domain(say_hello(body.to_domain()))


@app.get("/healthz")
def healthz(service: RouteGuideService = Depends(get_service)):
    return {"status": "ok", "features": len(service.features), "notes": len(service.notes)}


@app.get("/telemetry/summary")
def telemetry_summary(rpc: str | None = None):
    store = get_store()
    if store is None:
        return []
    return store.summary(rpc=rpc)


def run() -> None:
    config = get_config()
    setup_logging(config.logging)
    uvicorn.run(app, host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    run()
