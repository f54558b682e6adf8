"""Error taxonomy for the connection registry.

Every error that can reach an API caller derives from ``RegistryError`` and
carries a ``message`` that is safe to show: no secrets, no driver output.
Failed probes are not errors; they come back as ``TestResult`` data.
"""
from typing import Optional


class RegistryError(Exception):
    """Base class for caller-visible registry failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RegistryError):
    """Bad or missing input the caller can correct."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class UnsupportedConnectionType(ValidationError):
    status_code = 400

    def __init__(self, value: object):
        super().__init__("type must be sonarr, radarr, or emby", field="type")
        self.value = value


class NotFound(RegistryError):
    status_code = 404

    def __init__(self, message: str = "connection not found"):
        super().__init__(message)


class StorageError(RegistryError):
    """The store could not be read or written."""

    status_code = 500

    def __init__(self, message: str = "storage unavailable"):
        super().__init__(message)


class MalformedResponse(Exception):
    """A service answered 2xx but the body is not the expected shape."""
