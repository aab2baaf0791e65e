from __future__ import annotations

import logging
import random
from typing import Any, AsyncIterable, AsyncIterator, Protocol, Sequence

from features.types import Feature, feature_exists
from geo.aoi import Location, Rectangle
from geo.ops import latitude_degrees, longitude_degrees
from notes.types import RouteNote
from routeclient.errors import RpcError
from routeguide.types import RouteSummary

logger = logging.getLogger(__name__)


class RouteGuideStub(Protocol):
    async def get_feature(self, point: Location) -> Feature: ...

    def list_features(self, rect: Rectangle) -> AsyncIterator[Feature]: ...

    async def record_route(self, points: AsyncIterable[Location]) -> RouteSummary: ...

    def route_chat(self, notes: AsyncIterable[RouteNote]) -> AsyncIterator[RouteNote]: ...


class ClientObserver(Protocol):
    """
    Receives everything the client gets back: each response message, and the
    cause of any failed call.
    """

    def on_message(self, message: Any) -> None: ...

    def on_rpc_error(self, cause: BaseException) -> None: ...


CHAT_NOTES: tuple[RouteNote, ...] = (
    RouteNote(location=Location(0, 0), message="First message"),
    RouteNote(location=Location(0, 10_000_000), message="Second message"),
    RouteNote(location=Location(10_000_000, 0), message="Third message"),
    RouteNote(location=Location(10_000_000, 10_000_000), message="Fourth message"),
)


def _fmt(point: Location) -> str:
    return f"{latitude_degrees(point):.7f}, {longitude_degrees(point):.7f}"


class RouteGuideClient:
    """
    Drives the four route guide calls and reports results to an observer.

    Every call catches `RpcError`, reports it via `observer.on_rpc_error`, and
    returns whatever was received before the failure.
    """

    def __init__(
        self,
        stub: RouteGuideStub,
        observer: ClientObserver | None = None,
        *,
        rng: random.Random | None = None,
    ) -> None:
        self._stub = stub
        self.observer = observer
        self._rng = rng or random.Random()

    def _message(self, message: Any) -> None:
        if self.observer is not None:
            self.observer.on_message(message)

    def _failed(self, call: str, cause: RpcError) -> None:
        logger.warning("%s RPC failed: %s", call, cause)
        if self.observer is not None:
            self.observer.on_rpc_error(cause)

    async def get_feature(self, lat: int, lon: int) -> Feature | None:
        logger.info("*** GetFeature: lat=%s lon=%s", lat, lon)
        request = Location(latitude=lat, longitude=lon)
        try:
            feature = await self._stub.get_feature(request)
        except RpcError as e:
            self._failed("GetFeature", e)
            return None

        self._message(feature)
        if feature_exists(feature):
            logger.info("Found feature called %r at %s", feature.name, _fmt(feature.location))
        else:
            logger.info("Found no feature at %s", _fmt(feature.location))
        return feature

    async def list_features(
        self, lo_lat: int, lo_lon: int, hi_lat: int, hi_lon: int
    ) -> list[Feature]:
        logger.info(
            "*** ListFeatures: lowLat=%s lowLon=%s hiLat=%s hiLon=%s",
            lo_lat,
            lo_lon,
            hi_lat,
            hi_lon,
        )
        request = Rectangle(
            lo=Location(latitude=lo_lat, longitude=lo_lon),
            hi=Location(latitude=hi_lat, longitude=hi_lon),
        )
        out: list[Feature] = []
        try:
            async for feature in self._stub.list_features(request):
                out.append(feature)
                logger.info("Result #%d: %s", len(out), feature.name)
                self._message(feature)
        except RpcError as e:
            self._failed("ListFeatures", e)
        return out

    async def record_route(
        self, features: Sequence[Feature], num_points: int
    ) -> RouteSummary | None:
        """
        Send `num_points` locations picked at random from `features`.
        """
        logger.info("*** RecordRoute")
        if not features:
            raise ValueError("record_route needs at least one feature to pick from")

        async def points() -> AsyncIterator[Location]:
            for _ in range(num_points):
                point = self._rng.choice(features).location
                logger.info("Visiting point %s", _fmt(point))
                yield point

        try:
            summary = await self._stub.record_route(points())
        except RpcError as e:
            self._failed("RecordRoute", e)
            return None

        logger.info(
            "Finished trip with %d points. Passed %d features. "
            "Travelled %d meters. It took %d seconds.",
            summary.point_count,
            summary.feature_count,
            summary.distance,
            summary.elapsed_time,
        )
        self._message(summary)
        return summary

    async def route_chat(
        self, notes: Sequence[RouteNote] = CHAT_NOTES
    ) -> list[RouteNote]:
        logger.info("*** RouteChat")

        async def requests() -> AsyncIterator[RouteNote]:
            for note in notes:
                logger.info("Sending message %r at %s", note.message, _fmt(note.location))
                yield note

        out: list[RouteNote] = []
        try:
            async for note in self._stub.route_chat(requests()):
                logger.info("Got message %r at %s", note.message, _fmt(note.location))
                out.append(note)
                self._message(note)
        except RpcError as e:
            self._failed("RouteChat", e)
        return out
