from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from features.types import Feature
from geo.aoi import Location

# Shipped with the package so installed entry points find it.
BUNDLED_FEATURES_PATH = Path(__file__).resolve().parent / "data" / "route_guide_db.json"


def load_features_json(path: Path) -> list[Feature]:
    """
    Input: the route guide JSON database.

    Accepts either a bare list of features or `{"feature": [...]}`, where each entry
    looks like `{"location": {"latitude": 407838351, "longitude": -746143763}, "name": "..."}`.
    Missing fields take their protobuf defaults (0 / "").
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return parse_features(data, source=str(path))


def parse_features(data: Any, *, source: str = "<memory>") -> list[Feature]:
    if isinstance(data, dict):
        data = data.get("feature")
    if not isinstance(data, list):
        raise ValueError(f"Invalid features root (expected a list): {source}")

    out: list[Feature] = []
    for el in data:
        el = el or {}
        loc = el.get("location") or {}
        out.append(
            Feature(
                location=Location(
                    latitude=int(loc.get("latitude") or 0),
                    longitude=int(loc.get("longitude") or 0),
                ),
                name=str(el.get("name") or ""),
            )
        )
    return out
