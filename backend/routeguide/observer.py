from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Protocol, TypeVar

T = TypeVar("T")
T_contra = TypeVar("T_contra", contravariant=True)


class ResponseObserver(Protocol[T_contra]):
    """
    Where a handler writes its responses.

    Transports implement this (e.g. a WebSocket writer); in-process callers use
    `CollectingObserver`.
    """

    async def on_next(self, item: T_contra) -> None: ...

    async def on_completed(self) -> None: ...


class RequestObserver(Protocol[T_contra]):
    """
    The three events a client-streaming session reacts to.
    """

    async def on_next(self, item: T_contra) -> None: ...

    async def on_error(self, exc: BaseException) -> None: ...

    async def on_completed(self) -> None: ...


@dataclass
class CollectingObserver(Generic[T]):
    items: list[T] = field(default_factory=list)
    completed: bool = False

    async def on_next(self, item: T) -> None:
        self.items.append(item)

    async def on_completed(self) -> None:
        self.completed = True
