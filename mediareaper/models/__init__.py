from mediareaper.models.connection import Connection, ConnectionStatus, ConnectionType

__all__ = [
    "Connection",
    "ConnectionStatus",
    "ConnectionType"
]
