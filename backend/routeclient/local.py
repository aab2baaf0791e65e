from __future__ import annotations

import asyncio
from typing import AsyncIterable, AsyncIterator

from features.types import Feature
from geo.aoi import Location, Rectangle
from notes.types import RouteNote
from routeclient.errors import RpcError
from routeguide.observer import CollectingObserver
from routeguide.service import RouteGuideService
from routeguide.sessions import drive
from routeguide.types import RouteSummary, SessionState

_DONE = object()


class _QueueObserver:
    def __init__(self, q: asyncio.Queue) -> None:
        self._q = q

    async def on_next(self, item) -> None:
        self._q.put_nowait(item)

    async def on_completed(self) -> None:
        self._q.put_nowait(_DONE)


class InProcessStub:
    """
    Calls a `RouteGuideService` directly, with the same call shapes a remote
    stub has. Useful for tests and for embedding the service.
    """

    def __init__(self, service: RouteGuideService) -> None:
        self._service = service

    async def get_feature(self, point: Location) -> Feature:
        return self._service.get_feature(point)

    async def list_features(self, rect: Rectangle) -> AsyncIterator[Feature]:
        for feature in self._service.list_features(rect):
            yield feature

    async def record_route(self, points: AsyncIterable[Location]) -> RouteSummary:
        responses: CollectingObserver[RouteSummary] = CollectingObserver()
        state = await drive(self._service.record_route(responses), points)
        if not responses.items:
            raise RpcError(f"record_route ended without a summary ({state.value})")
        return responses.items[0]

    async def route_chat(self, notes: AsyncIterable[RouteNote]) -> AsyncIterator[RouteNote]:
        q: asyncio.Queue = asyncio.Queue()
        session = self._service.route_chat(_QueueObserver(q))
        task = asyncio.create_task(drive(session, notes))
        # Wake the reader even if the session is abandoned without completing.
        task.add_done_callback(lambda _t: q.put_nowait(_DONE))
        try:
            while True:
                item = await q.get()
                if item is _DONE:
                    break
                yield item
            state = await task
            if state != SessionState.completed:
                raise RpcError(f"route_chat ended without completing ({state.value})")
        finally:
            if not task.done():
                task.cancel()
