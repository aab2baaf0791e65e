from __future__ import annotations

import logging
import time
from typing import Callable, Iterator

from features.store import FeatureStore
from features.types import Feature
from geo.aoi import Location, Rectangle
from notes.log import NoteLog
from notes.types import RouteNote
from routeguide.observer import ResponseObserver
from routeguide.sessions import RecordRouteSession, RouteChatSession
from routeguide.types import RouteSummary

logger = logging.getLogger(__name__)


class RouteGuideService:
    """
    The four route guide calls over one feature store and one note log.

    - get_feature: unary -> unary
    - list_features: unary -> stream (a generator)
    - record_route: stream -> unary (returns a session to feed points into)
    - route_chat: stream <-> stream (returns a session to feed notes into)
    """

    def __init__(
        self,
        features: FeatureStore,
        notes: NoteLog | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.features = features
        self.notes = notes if notes is not None else NoteLog()
        self._clock = clock
        logger.info("Route guide service ready with %d features", len(features))

    def get_feature(self, point: Location) -> Feature:
        return self.features.lookup(point)

    def list_features(self, rect: Rectangle) -> Iterator[Feature]:
        yield from self.features.query(rect)

    def record_route(
        self, responses: ResponseObserver[RouteSummary]
    ) -> RecordRouteSession:
        return RecordRouteSession(self.features, responses, clock=self._clock)

    def route_chat(self, responses: ResponseObserver[RouteNote]) -> RouteChatSession:
        return RouteChatSession(self.notes, responses)
