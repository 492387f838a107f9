from __future__ import annotations

import math
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Coordinate(BaseModel):
    """WGS84 point, always (lat, lon) inside this package."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90.0, le=90.0)
    lon: float = Field(..., ge=-180.0, le=180.0)

    def as_lonlat(self) -> str:
        # OpenRouteService and GeoJSON want "lon,lat"
        return f"{self.lon},{self.lat}"

    @classmethod
    def from_lonlat(cls, pair) -> "Coordinate":
        lon, lat = pair[0], pair[1]
        return cls(lat=float(lat), lon=float(lon))


class TravelMode(str, Enum):
    DRIVING = "driving"
    WALKING = "walking"
    CYCLING = "cycling"

    @property
    def profile(self) -> str:
        """OpenRouteService routing profile."""
        return _PROFILES[self]


_PROFILES = {
    TravelMode.DRIVING: "driving-car",
    TravelMode.WALKING: "foot-walking",
    TravelMode.CYCLING: "cycling-regular",
}


class PlaceCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    classification: str = "other"
    coordinate: Coordinate


class RouteResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: Tuple[Coordinate, ...] = ()
    distance_km: float
    duration_min: int

    @classmethod
    def from_summary(cls, path, distance_m: float, duration_s: float) -> "RouteResult":
        """Meters -> km (1 decimal), seconds -> minutes; both round half up."""
        return cls(
            path=tuple(path),
            distance_km=math.floor(distance_m / 100 + 0.5) / 10,
            duration_min=int(math.floor(duration_s / 60 + 0.5)),
        )

    @property
    def distance_label(self) -> str:
        return f"{self.distance_km:.1f} km"

    @property
    def duration_label(self) -> str:
        return f"{self.duration_min} min"


class Notice(BaseModel):
    code: str
    message: str


class LocationReport(BaseModel):
    lat: Optional[float] = Field(None, ge=-90.0, le=90.0)
    lon: Optional[float] = Field(None, ge=-180.0, le=180.0)
    error: Optional[str] = Field(None, description="Set when the browser could not provide a position")


class TextInput(BaseModel):
    text: str = ""


class SubmitRequest(BaseModel):
    text: Optional[str] = Field(None, description="Query to commit; defaults to the current input text")
    enter: bool = Field(False, description="True when committed with the Enter key")


class ModeRequest(BaseModel):
    mode: TravelMode


class TranscriptReport(BaseModel):
    text: Optional[str] = None
    error: Optional[str] = None
