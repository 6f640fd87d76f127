class GeoAttendError(Exception):
    """Base exception for the attendance core."""


class InvalidInputError(GeoAttendError):
    """Raised when a request carries missing or malformed data; nothing has been written."""


class ConfigurationError(GeoAttendError):
    """Raised when deployment configuration (e.g. the geofence anchor) is unusable."""


class StoreUnavailableError(GeoAttendError):
    """Raised when the backing store cannot complete a read or write. Retryable."""
