from __future__ import annotations

import threading
from dataclasses import dataclass, field

from geo.aoi import Location
from notes.types import RouteNote


@dataclass
class _Thread:
    notes: list[RouteNote] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


@dataclass
class NoteLog:
    """
    Append-only chat notes keyed by location, shared by every chat session.

    Locking:
    - `_lock` only guards creation of per-location entries.
    - each location has its own lock around read-then-append, so chats at
      unrelated locations never wait on each other.
    """

    _threads: dict[Location, _Thread] = field(default_factory=dict, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def _thread(self, location: Location) -> _Thread:
        t = self._threads.get(location)
        if t is not None:
            return t
        with self._lock:
            return self._threads.setdefault(location, _Thread())

    def append_and_snapshot(
        self, location: Location, note: RouteNote
    ) -> tuple[RouteNote, ...]:
        """
        Append `note` at `location` and return the notes that were there before it.
        """
        t = self._thread(location)
        with t.lock:
            prior = tuple(t.notes)
            t.notes.append(note)
        return prior

    def notes_at(self, location: Location) -> tuple[RouteNote, ...]:
        t = self._threads.get(location)
        if t is None:
            return ()
        with t.lock:
            return tuple(t.notes)

    def locations(self) -> list[Location]:
        with self._lock:
            return [loc for loc, t in self._threads.items() if t.notes]

    def __len__(self) -> int:
        with self._lock:
            threads = list(self._threads.values())
        total = 0
        for t in threads:
            with t.lock:
                total += len(t.notes)
        return total
