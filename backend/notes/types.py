from __future__ import annotations

from dataclasses import dataclass, field

from geo.aoi import Location


@dataclass(frozen=True)
class RouteNote:
    location: Location = field(default_factory=Location)
    message: str = ""
