from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Wayfinder configuration (env-friendly, prefix ``WAYFINDER_``).

    Tip: put ``WAYFINDER_ORS_API_KEY=...`` into a .env file next to the app.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", env_prefix="WAYFINDER_")

    app_name: str = "Wayfinder"
    version: str = "0.1.0"
    log_level: str = "INFO"

    nominatim_base_url: AnyHttpUrl = "https://nominatim.openstreetmap.org/search"
    overpass_base_url: AnyHttpUrl = "https://overpass-api.de/api/interpreter"
    ors_base_url: AnyHttpUrl = "https://api.openrouteservice.org/v2/directions"

    # Nominatim's usage policy expects a proper User-Agent and (optionally) contact info.
    user_agent: str = "wayfinder/0.1.0"
    nominatim_email: Optional[str] = None
    ors_api_key: Optional[str] = None

    # Geocoding is bounded to this region (Nominatim viewbox is lon1,lat1,lon2,lat2).
    region_country_codes: str = "et"
    region_viewbox: str = "37.5,15,48,3"

    fallback_lat: float = 9.03
    fallback_lon: float = 38.74
    geolocation_timeout_s: float = 10.0

    http_timeout_s: float = 12.0

    suggestion_debounce_s: float = 0.35
    suggestion_limit: int = 5

    nearby_radius_m: int = 1000
    nearby_limit: int = 60

    cache_ttl_s: float = 120.0
    cache_max_size: int = 256

    speech_language: str = "en-US"


@lru_cache
def get_settings() -> Settings:
    return Settings()
