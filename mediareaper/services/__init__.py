from typing import assert_never

from mediareaper.errors import UnsupportedConnectionType
from mediareaper.models import ConnectionType
from mediareaper.services.base import ProbeIdentity, ProbeRequest, ServiceAdapter
from mediareaper.services.emby import EmbyAdapter
from mediareaper.services.radarr import RadarrAdapter
from mediareaper.services.sonarr import SonarrAdapter


def parse_connection_type(value: object) -> ConnectionType:
    """Map a raw ``type`` value onto the closed set of supported products."""
    if isinstance(value, ConnectionType):
        return value
    if isinstance(value, str):
        try:
            return ConnectionType(value.strip().lower())
        except ValueError:
            pass
    raise UnsupportedConnectionType(value)


def adapter_for(connection_type: ConnectionType) -> ServiceAdapter:
    match connection_type:
        case ConnectionType.SONARR:
            return SonarrAdapter()
        case ConnectionType.RADARR:
            return RadarrAdapter()
        case ConnectionType.EMBY:
            return EmbyAdapter()
        case _:
            assert_never(connection_type)


__all__ = [
    "EmbyAdapter",
    "ProbeIdentity",
    "ProbeRequest",
    "RadarrAdapter",
    "ServiceAdapter",
    "SonarrAdapter",
    "adapter_for",
    "parse_connection_type"
]
