import asyncio
import random
from unittest.mock import Mock

import pytest

from features.store import FeatureStore
from features.types import Feature
from geo.aoi import Location, Rectangle
from notes.types import RouteNote
from routeclient.errors import RpcError
from routeclient.helper import CHAT_NOTES, RouteGuideClient
from routeclient.local import InProcessStub
from routeguide.service import RouteGuideService
from routeguide.types import RouteSummary


class FakeStub:
    """Stands in for a server; records what the client sent."""

    def __init__(self) -> None:
        self.point_delivered = None
        self.rect_delivered = None
        self.points_delivered = []

    async def get_feature(self, point):
        self.point_delivered = point
        return Feature(name="dummyFeature", location=Location(-123, -123))

    async def list_features(self, rect):
        self.rect_delivered = rect
        yield Feature(name="feature 1")
        yield Feature(name="feature 2")

    async def record_route(self, points):
        async for p in points:
            self.points_delivered.append(p)
        return RouteSummary(point_count=len(self.points_delivered))

    async def route_chat(self, notes):
        async for note in notes:
            yield RouteNote(location=note.location, message=f"re: {note.message}")


class FailingStub:
    async def get_feature(self, point):
        raise RpcError("unavailable")

    async def list_features(self, rect):
        yield Feature(name="before failure")
        raise RpcError("stream reset")

    async def record_route(self, points):
        raise RpcError("unavailable")

    async def route_chat(self, notes):
        raise RpcError("unavailable")
        yield  # pragma: no cover


def test_get_feature_sends_point_and_reports_response():
    stub = FakeStub()
    observer = Mock()
    client = RouteGuideClient(stub, observer)

    feature = asyncio.run(client.get_feature(-1, -1))

    assert stub.point_delivered == Location(latitude=-1, longitude=-1)
    assert feature == Feature(name="dummyFeature", location=Location(-123, -123))
    observer.on_message.assert_called_once_with(feature)
    observer.on_rpc_error.assert_not_called()


def test_list_features_sends_rectangle_and_reports_each_feature():
    stub = FakeStub()
    observer = Mock()
    client = RouteGuideClient(stub, observer)

    result = asyncio.run(client.list_features(1, 2, 3, 4))

    assert stub.rect_delivered == Rectangle(lo=Location(1, 2), hi=Location(3, 4))
    assert [f.name for f in result] == ["feature 1", "feature 2"]
    observer.on_message.assert_any_call(Feature(name="feature 1"))
    observer.on_message.assert_any_call(Feature(name="feature 2"))
    observer.on_rpc_error.assert_not_called()


def test_record_route_sends_random_feature_locations():
    features = [Feature(Location(i, i), f"f{i}") for i in range(5)]
    stub = FakeStub()
    observer = Mock()
    client = RouteGuideClient(stub, observer, rng=random.Random(7))

    summary = asyncio.run(client.record_route(features, 4))

    rng = random.Random(7)
    expected = [rng.choice(features).location for _ in range(4)]
    assert stub.points_delivered == expected
    assert summary == RouteSummary(point_count=4)
    observer.on_message.assert_called_once_with(summary)


def test_record_route_needs_features():
    client = RouteGuideClient(FakeStub())
    with pytest.raises(ValueError):
        asyncio.run(client.record_route([], 3))


def test_route_chat_sends_canonical_notes():
    observer = Mock()
    client = RouteGuideClient(FakeStub(), observer)

    replies = asyncio.run(client.route_chat())

    assert [n.message for n in replies] == [f"re: {n.message}" for n in CHAT_NOTES]
    assert observer.on_message.call_count == 4


def test_failures_are_reported_to_observer():
    observer = Mock()
    client = RouteGuideClient(FailingStub(), observer)

    async def run():
        assert await client.get_feature(1, 1) is None
        assert [f.name for f in await client.list_features(0, 0, 1, 1)] == [
            "before failure"
        ]
        assert await client.record_route([Feature(Location(1, 1), "x")], 2) is None
        assert await client.route_chat() == []

    asyncio.run(run())

    assert observer.on_rpc_error.call_count == 4
    for call in observer.on_rpc_error.call_args_list:
        assert isinstance(call.args[0], RpcError)


def test_client_against_in_process_service():
    x = Location(0, 0)
    named = Feature(location=x, name="origin")
    service = RouteGuideService(FeatureStore([named, Feature(Location(5, 5), "five")]))
    observer = Mock()
    client = RouteGuideClient(InProcessStub(service), observer, rng=random.Random(1))

    async def run():
        assert await client.get_feature(0, 0) == named
        assert await client.get_feature(1, 1) == Feature(name="", location=Location(1, 1))
        assert [f.name for f in await client.list_features(10, 10, -1, -1)] == [
            "origin",
            "five",
        ]
        summary = await client.record_route([named], 3)
        assert summary.point_count == 3
        assert summary.feature_count == 3
        assert summary.distance == 0
        first = await client.route_chat()
        second = await client.route_chat()
        return first, second

    first, second = asyncio.run(run())

    # Each canonical note sits at its own location, so only the second run hears back.
    assert first == []
    assert second == list(CHAT_NOTES)
    observer.on_rpc_error.assert_not_called()


def test_in_process_route_chat_reports_abandoned_session():
    service = RouteGuideService(FeatureStore())
    stub = InProcessStub(service)
    x = Location(1, 1)
    service.notes.append_and_snapshot(x, RouteNote(x, "earlier"))

    async def notes():
        yield RouteNote(x, "now")
        raise ConnectionResetError("client went away")

    async def run():
        received = []
        with pytest.raises(RpcError):
            async for note in stub.route_chat(notes()):
                received.append(note)
        return received

    assert asyncio.run(run()) == [RouteNote(x, "earlier")]


def test_in_process_record_route_reports_abandoned_session():
    stub = InProcessStub(RouteGuideService(FeatureStore()))

    async def points():
        yield Location(1, 1)
        raise ConnectionResetError("client went away")

    with pytest.raises(RpcError):
        asyncio.run(stub.record_route(points()))
