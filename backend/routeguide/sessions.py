from __future__ import annotations

import asyncio
import logging
import time
from typing import AsyncIterable, Callable, TypeVar

from features.store import FeatureStore
from features.types import feature_exists
from geo.aoi import Location
from geo.ops import distance_m
from notes.log import NoteLog
from notes.types import RouteNote
from routeguide.observer import RequestObserver, ResponseObserver
from routeguide.types import (
    TERMINAL_STATES,
    RouteSummary,
    SessionClosedError,
    SessionState,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _Session:
    name = "session"
    state: SessionState

    def _check_open(self, event: str) -> None:
        if self.state in TERMINAL_STATES:
            raise SessionClosedError(
                f"{self.name}: {event} after session {self.state.value}"
            )

    async def on_error(self, exc: BaseException) -> None:
        self._check_open("error")
        self.state = SessionState.abandoned
        logger.warning("%s cancelled: %s", self.name, str(exc) or type(exc).__name__)


class RecordRouteSession(_Session):
    """
    Client-streaming session: collects points, answers once with a summary.

    collecting -> finalizing -> responded, or collecting -> abandoned on error.
    """

    name = "record_route"

    def __init__(
        self,
        features: FeatureStore,
        responses: ResponseObserver[RouteSummary],
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._features = features
        self._responses = responses
        self._clock = clock
        self._start = clock()
        self.state = SessionState.collecting
        self.point_count = 0
        self.feature_count = 0
        self.distance = 0
        self.previous: Location | None = None

    async def on_next(self, point: Location) -> None:
        self._check_open("point")
        self.point_count += 1
        if feature_exists(self._features.lookup(point)):
            self.feature_count += 1
        # The first point only sets the origin.
        if self.previous is not None:
            self.distance += distance_m(self.previous, point)
        self.previous = point

    async def on_completed(self) -> None:
        self._check_open("completion")
        self.state = SessionState.finalizing
        summary = RouteSummary(
            point_count=self.point_count,
            feature_count=self.feature_count,
            distance=self.distance,
            elapsed_time=int(self._clock() - self._start),
        )
        await self._responses.on_next(summary)
        await self._responses.on_completed()
        self.state = SessionState.responded


class RouteChatSession(_Session):
    """
    Bidirectional session: every note is answered with the notes left earlier
    at the same location.

    active -> completed, or active -> abandoned on error. Notes already appended
    stay in the log either way.
    """

    name = "route_chat"

    def __init__(self, notes: NoteLog, responses: ResponseObserver[RouteNote]) -> None:
        self._notes = notes
        self._responses = responses
        self.state = SessionState.active
        self.received = 0

    async def on_next(self, note: RouteNote) -> None:
        self._check_open("note")
        self.received += 1
        for prior in self._notes.append_and_snapshot(note.location, note):
            await self._responses.on_next(prior)

    async def on_completed(self) -> None:
        self._check_open("completion")
        self.state = SessionState.completed
        await self._responses.on_completed()


async def drive(session: RequestObserver[T], source: AsyncIterable[T]) -> SessionState:
    """
    Feed `source` into `session` until it is exhausted or fails.

    Only failures raised by `source` abandon the session; errors raised by the
    session itself propagate to the caller.
    """
    it = source.__aiter__()
    while True:
        try:
            item = await it.__anext__()
        except StopAsyncIteration:
            await session.on_completed()
            break
        except asyncio.CancelledError as exc:
            await session.on_error(exc)
            raise
        except Exception as exc:
            await session.on_error(exc)
            break
        await session.on_next(item)
    return session.state
