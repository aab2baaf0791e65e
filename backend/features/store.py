from __future__ import annotations

from typing import Iterable, Iterator

from features.types import Feature, feature_exists
from geo.aoi import Location, Rectangle
from geo.ops import contains


class FeatureStore:
    """
    Read-only, ordered collection of features loaded once at startup.

    The dataset is small, so both lookups are linear scans. Instances are safe to
    share between any number of concurrent calls without locking.
    """

    __slots__ = ("_features",)

    def __init__(self, features: Iterable[Feature] = ()) -> None:
        self._features: tuple[Feature, ...] = tuple(features)

    def __len__(self) -> int:
        return len(self._features)

    def __iter__(self) -> Iterator[Feature]:
        return iter(self._features)

    @property
    def features(self) -> tuple[Feature, ...]:
        return self._features

    def lookup(self, point: Location) -> Feature:
        """
        Feature stored exactly at `point`, or an unnamed feature carrying `point`.
        """
        for feature in self._features:
            if (
                feature.location.latitude == point.latitude
                and feature.location.longitude == point.longitude
            ):
                return feature
        return Feature(name="", location=point)

    def query(self, rect: Rectangle) -> Iterator[Feature]:
        """
        Lazily yield named features inside `rect`, in store order.
        """
        bounds = rect.normalized()
        for feature in self._features:
            if not feature_exists(feature):
                continue
            if contains(bounds, feature.location):
                yield feature
