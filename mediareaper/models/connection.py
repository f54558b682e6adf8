import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, Enum, Text, Index, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import TypeDecorator
from mediareaper.database import Base


class ConnectionType(str, enum.Enum):
    """Remote products a connection can point at."""

    SONARR = "sonarr"
    RADARR = "radarr"
    EMBY = "emby"


class ConnectionStatus(str, enum.Enum):
    UNKNOWN = "unknown"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class UTCDateTime(TypeDecorator):
    """Stores naive UTC and always hands back aware UTC datetimes (SQLite drops tzinfo)."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


def _enum_column(enum_cls):
    return Enum(enum_cls, native_enum=False, length=20, values_callable=lambda e: [m.value for m in e])


class Connection(Base):
    """Stores a Sonarr, Radarr or Emby endpoint and its encrypted API key."""
    
    __tablename__ = "connections"
    __table_args__ = (
        Index("ix_connections_enabled", "enabled"),
    )
    
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200))
    type: Mapped[ConnectionType] = mapped_column(_enum_column(ConnectionType))
    url: Mapped[str] = mapped_column(String(500))
    api_key_encrypted: Mapped[str] = mapped_column(Text)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    
    status: Mapped[ConnectionStatus] = mapped_column(
        _enum_column(ConnectionStatus),
        default=ConnectionStatus.UNKNOWN
    )
    last_checked_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    def __repr__(self) -> str:
        # never include api_key_encrypted
        return f"<Connection id={self.id} name={self.name!r} type={self.type.value}>"


# Names are unique case-insensitively
Index("uq_connections_name_lower", func.lower(Connection.name), unique=True)
