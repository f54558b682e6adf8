"""The only entry point the HTTP layer uses for connections."""
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mediareaper.models import Connection
from mediareaper.schemas import (
    ConnectionCreate,
    ConnectionOut,
    ConnectionTestRequest,
    ConnectionUpdate,
    TestResult,
)
from mediareaper.services.crypto import CredentialCodec
from mediareaper.services.prober import HealthProber
from mediareaper.services.store import ConnectionStore


class ConnectionRegistry:
    """Composes the store and the prober and masks every outgoing record."""

    def __init__(self, store: ConnectionStore, prober: HealthProber, codec: CredentialCodec):
        self.store = store
        self.prober = prober
        self.codec = codec

    async def list_connections(self) -> list[ConnectionOut]:
        return [self._to_out(conn) for conn in await self.store.list_all()]

    async def get(self, connection_id: str) -> ConnectionOut:
        return self._to_out(await self.store.get(connection_id))

    async def create(self, body: ConnectionCreate) -> ConnectionOut:
        conn = await self.store.create(body.name, body.type, body.url, body.api_key)
        return self._to_out(conn)

    async def update(self, connection_id: str, body: ConnectionUpdate) -> ConnectionOut:
        conn = await self.store.update(
            connection_id,
            name=body.name,
            connection_type=body.type,
            url=body.url,
            api_key=body.api_key,
            enabled=body.enabled,
        )
        return self._to_out(conn)

    async def delete(self, connection_id: str) -> None:
        await self.store.delete(connection_id)

    async def test_saved(self, connection_id: str) -> TestResult:
        return await self.prober.test_saved(connection_id)

    async def test_unsaved(self, body: ConnectionTestRequest) -> TestResult:
        return await self.prober.test_unsaved(body.type, body.url, body.api_key)

    def _to_out(self, conn: Connection) -> ConnectionOut:
        return ConnectionOut(
            id=conn.id,
            name=conn.name,
            type=conn.type,
            url=conn.url,
            masked_api_key=self.codec.mask_encrypted(conn.api_key_encrypted),
            enabled=conn.enabled,
            status=conn.status,
            last_checked_at=conn.last_checked_at,
            created_at=conn.created_at,
            updated_at=conn.updated_at,
        )


def build_registry(
    session_factory: async_sessionmaker[AsyncSession],
    codec: CredentialCodec,
    probe_timeout: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ConnectionRegistry:
    store = ConnectionStore(session_factory, codec)
    prober = HealthProber(store, codec, timeout=probe_timeout, transport=transport)
    return ConnectionRegistry(store, prober, codec)
