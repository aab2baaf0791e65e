from __future__ import annotations

from dataclasses import dataclass


COORD_FACTOR = 1e7


@dataclass(frozen=True)
class Location:
    """
    A point on the globe, encoded as integer degrees x 1e7.

    Convention used throughout this repo (matches the route guide wire format):
    - latitude, longitude
    """

    latitude: int = 0
    longitude: int = 0


@dataclass(frozen=True)
class Bounds:
    """
    An axis-aligned box with its edges already sorted.
    """

    left: int
    right: int
    top: int
    bottom: int


@dataclass(frozen=True)
class Rectangle:
    """
    Two opposite corners of a box. Callers may send them in any order.
    """

    lo: Location
    hi: Location

    def normalized(self) -> Bounds:
        return Bounds(
            left=min(self.lo.longitude, self.hi.longitude),
            right=max(self.lo.longitude, self.hi.longitude),
            top=max(self.lo.latitude, self.hi.latitude),
            bottom=min(self.lo.latitude, self.hi.latitude),
        )

    def swapped(self) -> "Rectangle":
        return Rectangle(lo=self.hi, hi=self.lo)
