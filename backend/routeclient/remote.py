"""
Route guide client stub speaking the HTTP/WebSocket transport.

- GetFeature: POST /routeguide/get-feature
- ListFeatures: POST /routeguide/list-features (server-sent events)
- RecordRoute: WS /routeguide/record-route
- RouteChat: WS /routeguide/route-chat
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterable, AsyncIterator, Callable, Optional

import aiohttp
from pydantic import BaseModel

from api.models import ApiFeature, ApiPoint, ApiRectangle, ApiRouteNote, ApiRouteSummary
from api.streams import EventType, SseDecoder, frame
from features.types import Feature
from geo.aoi import Location, Rectangle
from notes.types import RouteNote
from routeclient.errors import RpcError
from routeguide.types import RouteSummary

logger = logging.getLogger(__name__)


class HttpStub:
    def __init__(
        self,
        base_url: str,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        timeout_s: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        if not self.base_url.startswith("http"):
            self.base_url = f"http://{self.base_url}"
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=timeout_s)

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _ws_url(self, path: str) -> str:
        return "ws" + self._url(path)[len("http"):]

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "HttpStub":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def get_feature(self, point: Location) -> Feature:
        session = await self._get_session()
        try:
            async with session.post(
                self._url("/routeguide/get-feature"),
                json=ApiPoint.from_domain(point).model_dump(),
            ) as response:
                if response.status != 200:
                    raise RpcError(f"get_feature failed: HTTP {response.status}")
                return ApiFeature.model_validate(await response.json()).to_domain()
        except aiohttp.ClientError as e:
            raise RpcError(f"get_feature failed: {e}") from e

    async def list_features(self, rect: Rectangle) -> AsyncIterator[Feature]:
        session = await self._get_session()
        decoder = SseDecoder()
        try:
            async with session.post(
                self._url("/routeguide/list-features"),
                json=ApiRectangle.from_domain(rect).model_dump(),
            ) as response:
                if response.status != 200:
                    raise RpcError(f"list_features failed: HTTP {response.status}")
                async for raw in response.content:
                    event = decoder.feed(raw.decode("utf-8"))
                    if event is None:
                        continue
                    name, data = event
                    if name == EventType.next.value:
                        yield ApiFeature.model_validate_json(data).to_domain()
                    elif name == EventType.completed.value:
                        return
        except aiohttp.ClientError as e:
            raise RpcError(f"list_features failed: {e}") from e
        raise RpcError("list_features stream ended before completion")

    async def record_route(self, points: AsyncIterable[Location]) -> RouteSummary:
        session = await self._get_session()
        try:
            async with session.ws_connect(self._ws_url("/routeguide/record-route")) as ws:
                await _send_all(ws, points, ApiPoint.from_domain)
                summary: RouteSummary | None = None
                async for msg in ws:
                    if msg.type != aiohttp.WSMsgType.TEXT:
                        break
                    payload = msg.json()
                    event = payload.get("event")
                    if event == EventType.next.value:
                        summary = ApiRouteSummary.model_validate(
                            payload.get("data") or {}
                        ).to_domain()
                    elif event == EventType.completed.value:
                        break
        except aiohttp.ClientError as e:
            raise RpcError(f"record_route failed: {e}") from e
        if summary is None:
            raise RpcError("record_route ended without a summary")
        return summary

    async def route_chat(self, notes: AsyncIterable[RouteNote]) -> AsyncIterator[RouteNote]:
        session = await self._get_session()
        try:
            async with session.ws_connect(self._ws_url("/routeguide/route-chat")) as ws:
                sender = asyncio.create_task(_send_all(ws, notes, ApiRouteNote.from_domain))
                try:
                    async for msg in ws:
                        if msg.type != aiohttp.WSMsgType.TEXT:
                            break
                        payload = msg.json()
                        event = payload.get("event")
                        if event == EventType.next.value:
                            yield ApiRouteNote.model_validate(
                                payload.get("data") or {}
                            ).to_domain()
                        elif event == EventType.completed.value:
                            await sender
                            return
                    if sender.done() and sender.exception() is not None:
                        raise sender.exception()
                finally:
                    if not sender.done():
                        sender.cancel()
        except aiohttp.ClientError as e:
            raise RpcError(f"route_chat failed: {e}") from e
        raise RpcError("route_chat closed before completion")


async def _send_all(
    ws: aiohttp.ClientWebSocketResponse,
    items: AsyncIterable[Any],
    encode: Callable[[Any], BaseModel],
) -> None:
    """
    Send every item as a `next` frame, then `completed`. If the source fails, tell
    the server with an `error` frame so it abandons the call.
    """
    try:
        async for item in items:
            await _send(ws, frame(EventType.next, encode(item).model_dump()))
    except RpcError:
        raise
    except Exception as e:
        logger.warning("request stream failed: %s", e)
        try:
            await _send(ws, frame(EventType.error, str(e) or type(e).__name__))
        except RpcError as send_error:
            logger.debug("could not report request failure: %s", send_error)
        raise RpcError(f"request stream failed: {e}") from e
    await _send(ws, frame(EventType.completed))


async def _send(ws: aiohttp.ClientWebSocketResponse, payload: dict[str, Any]) -> None:
    try:
        await ws.send_json(payload)
    except (aiohttp.ClientError, ConnectionError) as e:
        raise RpcError(f"send failed: {e}") from e
