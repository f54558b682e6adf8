"""Persistence of connection records."""
import asyncio
import logging
from typing import Optional

from pydantic import AnyHttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mediareaper.errors import NotFound, StorageError, ValidationError
from mediareaper.models import Connection, ConnectionStatus
from mediareaper.models.connection import utcnow
from mediareaper.services import parse_connection_type
from mediareaper.services.crypto import CredentialCodec

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 200
URL_MAX_LENGTH = 500

_http_url = TypeAdapter(AnyHttpUrl)


def clean_name(name: Optional[str]) -> str:
    value = (name or "").strip()
    if not value:
        raise ValidationError("name is required", field="name")
    if len(value) > NAME_MAX_LENGTH:
        raise ValidationError(f"name must be at most {NAME_MAX_LENGTH} characters", field="name")
    return value


def clean_url(url: Optional[str]) -> str:
    """Validate an http(s) base URL and drop trailing slashes."""
    value = (url or "").strip().rstrip("/")
    if not value:
        raise ValidationError("url is required", field="url")
    if len(value) > URL_MAX_LENGTH:
        raise ValidationError(f"url must be at most {URL_MAX_LENGTH} characters", field="url")
    try:
        parsed = _http_url.validate_python(value)
    except PydanticValidationError:
        raise ValidationError("url must be a valid http or https URL", field="url") from None
    if not parsed.host:
        raise ValidationError("url must include a host", field="url")
    if parsed.query or parsed.fragment:
        raise ValidationError("url must not include a query or fragment", field="url")
    return value


def clean_api_key(api_key: Optional[str]) -> str:
    value = (api_key or "").strip()
    if not value:
        raise ValidationError("apiKey is required", field="apiKey")
    # Sent verbatim as an HTTP header value
    if not (value.isascii() and value.isprintable()):
        raise ValidationError("apiKey must contain only printable ASCII characters", field="apiKey")
    return value


class ConnectionStore:
    """SQL-backed store of connections.

    Writes go through one lock so that the name-uniqueness check and the write
    that depends on it happen as a single step. The unique index on
    ``lower(name)`` backs this up across processes.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], codec: CredentialCodec):
        self._sessions = session_factory
        self._codec = codec
        self._write_lock = asyncio.Lock()

    async def list_all(self) -> list[Connection]:
        return await self._select(select(Connection))

    async def list_enabled(self) -> list[Connection]:
        return await self._select(select(Connection).where(Connection.enabled == True))  # noqa: E712

    async def get(self, connection_id: str) -> Connection:
        try:
            async with self._sessions() as session:
                conn = await session.get(Connection, connection_id)
        except SQLAlchemyError as exc:
            logger.exception("Failed to load connection %s", connection_id)
            raise StorageError() from exc
        if conn is None:
            raise NotFound()
        return conn

    async def create(self, name: str, connection_type: object, url: str, api_key: str) -> Connection:
        name = clean_name(name)
        connection_type = parse_connection_type(connection_type)
        url = clean_url(url)
        api_key = clean_api_key(api_key)

        async with self._write_lock:
            try:
                async with self._sessions() as session:
                    await self._ensure_name_free(session, name)
                    now = utcnow()
                    conn = Connection(
                        name=name,
                        type=connection_type,
                        url=url,
                        api_key_encrypted=self._codec.encrypt(api_key),
                        enabled=True,
                        status=ConnectionStatus.UNKNOWN,
                        last_checked_at=None,
                        created_at=now,
                        updated_at=now,
                    )
                    session.add(conn)
                    await session.commit()
            except IntegrityError as exc:
                raise self._name_taken(name) from exc
            except SQLAlchemyError as exc:
                logger.exception("Failed to create connection %r", name)
                raise StorageError() from exc

        logger.info(f"Created connection {conn.id} ({conn.name}, {conn.type.value})")
        return conn

    async def update(
        self,
        connection_id: str,
        *,
        name: Optional[str] = None,
        connection_type: Optional[object] = None,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        enabled: Optional[bool] = None,
    ) -> Connection:
        """Apply only the supplied fields; an absent or blank api_key keeps the stored secret."""
        if name is not None:
            name = clean_name(name)
        connection_type = parse_connection_type(connection_type) if connection_type is not None else None
        if url is not None:
            url = clean_url(url)
        if api_key is not None:
            api_key = clean_api_key(api_key) if api_key.strip() else None

        async with self._write_lock:
            try:
                async with self._sessions() as session:
                    conn = await session.get(Connection, connection_id)
                    if conn is None:
                        raise NotFound()

                    changed = False
                    if name is not None and name != conn.name:
                        if name.lower() != conn.name.lower():
                            await self._ensure_name_free(session, name, exclude_id=conn.id)
                        conn.name = name
                        changed = True
                    if connection_type is not None and connection_type != conn.type:
                        logger.warning(
                            f"Connection {conn.id} changed type from {conn.type.value} to {connection_type.value}"
                        )
                        conn.type = connection_type
                        changed = True
                    if url is not None and url != conn.url:
                        conn.url = url
                        changed = True
                    if api_key is not None:
                        conn.api_key_encrypted = self._codec.encrypt(api_key)
                        changed = True
                    if enabled is not None and enabled != conn.enabled:
                        conn.enabled = enabled
                        changed = True

                    if changed:
                        conn.updated_at = _later_of(utcnow(), conn.updated_at)
                        await session.commit()
            except IntegrityError as exc:
                raise self._name_taken(name or "") from exc
            except SQLAlchemyError as exc:
                logger.exception("Failed to update connection %s", connection_id)
                raise StorageError() from exc

        if changed:
            logger.info(f"Updated connection {conn.id} ({conn.name}, {conn.type.value})")
        return conn

    async def delete(self, connection_id: str) -> None:
        async with self._write_lock:
            try:
                async with self._sessions() as session:
                    conn = await session.get(Connection, connection_id)
                    if conn is None:
                        raise NotFound()
                    await session.delete(conn)
                    await session.commit()
            except SQLAlchemyError as exc:
                logger.exception("Failed to delete connection %s", connection_id)
                raise StorageError() from exc

        logger.info(f"Deleted connection {connection_id} ({conn.name})")

    async def record_probe_result(self, connection_id: str, success: bool) -> Connection:
        """Set status and last_checked_at from a completed probe of a saved connection."""
        async with self._write_lock:
            try:
                async with self._sessions() as session:
                    conn = await session.get(Connection, connection_id)
                    if conn is None:
                        raise NotFound()
                    conn.status = ConnectionStatus.HEALTHY if success else ConnectionStatus.UNHEALTHY
                    conn.last_checked_at = _later_of(utcnow(), conn.last_checked_at)
                    await session.commit()
            except SQLAlchemyError as exc:
                logger.exception("Failed to record probe result for %s", connection_id)
                raise StorageError() from exc
        return conn

    async def _select(self, statement) -> list[Connection]:
        statement = statement.order_by(Connection.created_at.desc(), Connection.id)
        try:
            async with self._sessions() as session:
                result = await session.execute(statement)
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            logger.exception("Failed to list connections")
            raise StorageError() from exc

    async def _ensure_name_free(self, session: AsyncSession, name: str, exclude_id: Optional[str] = None):
        query = select(Connection.id).where(func.lower(Connection.name) == name.lower())
        if exclude_id is not None:
            query = query.where(Connection.id != exclude_id)
        result = await session.execute(query.limit(1))
        if result.scalar_one_or_none() is not None:
            raise self._name_taken(name)

    @staticmethod
    def _name_taken(name: str) -> ValidationError:
        return ValidationError(f"a connection named {name!r} already exists", field="name")


def _later_of(now, previous):
    if previous is None or now > previous:
        return now
    return previous
