from __future__ import annotations

from dataclasses import dataclass, field

from geo.aoi import Location


@dataclass(frozen=True)
class Feature:
    """
    A named point of interest. An empty name means "nothing here".
    """

    location: Location = field(default_factory=Location)
    name: str = ""


def feature_exists(feature: Feature | None) -> bool:
    return feature is not None and bool(feature.name)
