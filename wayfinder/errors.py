from __future__ import annotations


class NavigatorError(Exception):
    """Base error; ``message`` is safe to show to the user as a notice."""

    code = "navigator_error"

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class LocationUnavailable(NavigatorError):
    code = "location_unavailable"


class ConfigurationMissing(NavigatorError):
    code = "configuration_missing"


class ResolutionNotFound(NavigatorError):
    code = "resolution_not_found"

    def __init__(self, message: str = "Location not found.", details: dict | None = None) -> None:
        super().__init__(message, details)


class ResolutionUnavailable(NavigatorError):
    code = "resolution_unavailable"

    def __init__(self, message: str = "Search failed, try again.", details: dict | None = None) -> None:
        super().__init__(message, details)


class RouteUnavailable(NavigatorError):
    code = "route_unavailable"

    def __init__(
        self,
        message: str = "Could not calculate route. Check the routing key, your coordinates, or try again later.",
        details: dict | None = None,
    ) -> None:
        super().__init__(message, details)


class NearbyUnavailable(NavigatorError):
    code = "nearby_unavailable"


class SuggestionUnavailable(NavigatorError):
    code = "suggestion_unavailable"


class SpeechCaptureFailed(NavigatorError):
    code = "speech_capture_failed"


class OriginNotAcquired(NavigatorError):
    code = "origin_not_acquired"

    def __init__(self, message: str = "Still getting your location...", details: dict | None = None) -> None:
        super().__init__(message, details)
