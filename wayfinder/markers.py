from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from wayfinder.models import Coordinate, PlaceCandidate
from wayfinder.trip import TripState


class Bucket(str, Enum):
    RESTAURANT = "restaurant"
    CAFE = "cafe"
    SHOP = "shop"
    OTHER = "other"


# Checked in this order; first substring hit wins.
_BUCKET_ORDER = (Bucket.RESTAURANT, Bucket.CAFE, Bucket.SHOP)

ICONS: Dict[Bucket, Dict[str, Any]] = {
    Bucket.RESTAURANT: {
        "url": "https://cdn-icons-png.flaticon.com/512/3075/3075977.png",
        "size": [30, 30],
        "anchor": [15, 30],
        "popup_anchor": [0, -28],
    },
    Bucket.CAFE: {
        "url": "https://cdn-icons-png.flaticon.com/512/4151/4151022.png",
        "size": [30, 30],
        "anchor": [15, 30],
        "popup_anchor": [0, -28],
    },
    Bucket.SHOP: {
        "url": "https://cdn-icons-png.flaticon.com/512/2331/2331970.png",
        "size": [30, 30],
        "anchor": [15, 30],
        "popup_anchor": [0, -28],
    },
    # destination flag doubles as the "other" icon
    Bucket.OTHER: {
        "url": "https://cdn-icons-png.flaticon.com/512/684/684908.png",
        "size": [36, 36],
        "anchor": [18, 36],
        "popup_anchor": [0, -30],
    },
}


def bucket(tag: Optional[str]) -> Bucket:
    if not tag:
        return Bucket.OTHER
    t = str(tag).lower()
    for b in _BUCKET_ORDER:
        if b.value in t:
            return b
    return Bucket.OTHER


def _point(c: Coordinate) -> List[float]:
    return [c.lat, c.lon]


def _place_marker(place: PlaceCandidate) -> Dict[str, Any]:
    b = bucket(place.classification)
    return {
        "id": place.id,
        "name": place.display_name,
        "type": place.classification,
        "position": _point(place.coordinate),
        "bucket": b.value,
        "icon": ICONS[b],
    }


def map_view(state: Optional[TripState], recenter: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Payload for the map rendering surface."""
    if state is None:
        return {"ready": False}

    view: Dict[str, Any] = {
        "ready": True,
        "origin": {"position": _point(state.origin), "label": "You are here"},
        "destination": None,
        "nearby": [_place_marker(p) for p in state.nearby],
        "route": [_point(c) for c in state.route.path] if state.route else [],
        "recenter": recenter,
    }
    if state.destination is not None:
        b = bucket(state.destination_classification)
        view["destination"] = {
            "position": _point(state.destination),
            "label": state.destination_classification or "Destination",
            "bucket": b.value,
            "icon": ICONS[b],
        }
    return view
