from __future__ import annotations

import json
from enum import Enum
from typing import Any, AsyncIterator, Callable, Generic, TypeVar

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ValidationError
from starlette.websockets import WebSocketState

T = TypeVar("T")


class EventType(str, Enum):
    next = "next"
    completed = "completed"
    error = "error"


class StreamAborted(Exception):
    """The peer's request stream failed: disconnect, error frame or bad payload."""


def format_event(type: EventType, data: str):
    return f"event: {type.value}\ndata: {data}\n\n"


def frame(type: EventType, data: Any = None) -> dict[str, Any]:
    out: dict[str, Any] = {"event": type.value}
    if data is not None:
        out["data"] = data
    return out


class SseDecoder:
    """
    Incremental decoder for `text/event-stream` lines.

    Feed one line at a time; a complete `(event, data)` pair comes back on the
    blank line that ends each event.
    """

    def __init__(self) -> None:
        self._event: str | None = None
        self._data: list[str] = []

    def feed(self, line: str) -> tuple[str, str] | None:
        line = line.rstrip("\r\n")
        if not line:
            if self._event is None and not self._data:
                return None
            out = (self._event or "message", "\n".join(self._data))
            self._event = None
            self._data = []
            return out
        if line.startswith(":"):
            return None
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "event":
            self._event = value
        elif name == "data":
            self._data.append(value)
        return None


class FrameReader(Generic[T]):
    """
    Async iterator over the `next` frames a WebSocket peer sends.

    Ends cleanly on a `completed` frame; raises `StreamAborted` on anything else.
    """

    def __init__(self, websocket: WebSocket, decode: Callable[[Any], T]) -> None:
        self._websocket = websocket
        self._decode = decode
        self.received = 0

    async def __aiter__(self) -> AsyncIterator[T]:
        while True:
            try:
                raw = await self._websocket.receive_text()
            except WebSocketDisconnect as e:
                raise StreamAborted(f"client disconnected (code {e.code})") from e
            except KeyError as e:
                raise StreamAborted("binary frames are not supported") from e
            try:
                payload = json.loads(raw)
            except ValueError as e:
                raise StreamAborted("malformed frame") from e
            event = payload.get("event") if isinstance(payload, dict) else None

            if event == EventType.completed.value:
                return
            if event == EventType.error.value:
                raise StreamAborted(str(payload.get("data") or "client error"))
            if event != EventType.next.value:
                raise StreamAborted(f"unknown event {event!r}")

            try:
                item = self._decode(payload.get("data") or {})
            except ValidationError as e:
                raise StreamAborted("invalid payload") from e
            self.received += 1
            yield item


class WebSocketObserver(Generic[T]):
    """
    Response observer writing `next` / `completed` frames to a WebSocket.
    """

    def __init__(self, websocket: WebSocket, encode: Callable[[T], BaseModel]) -> None:
        self._websocket = websocket
        self._encode = encode
        self.sent = 0

    async def on_next(self, item: T) -> None:
        await self._websocket.send_json(
            frame(EventType.next, self._encode(item).model_dump())
        )
        self.sent += 1

    async def on_completed(self) -> None:
        await self._websocket.send_json(frame(EventType.completed))


async def close_if_open(websocket: WebSocket) -> None:
    if (
        websocket.client_state == WebSocketState.CONNECTED
        and websocket.application_state == WebSocketState.CONNECTED
    ):
        await websocket.close()
