"""Live reachability probes against Sonarr, Radarr and Emby."""
import asyncio
import logging
import re
from typing import Optional

import httpx

from mediareaper.errors import MalformedResponse, NotFound, StorageError
from mediareaper.schemas import TestResult
from mediareaper.services import adapter_for, parse_connection_type
from mediareaper.services.crypto import MASK_MARKER, CredentialCodec, DecryptionError
from mediareaper.services.store import ConnectionStore, clean_api_key, clean_url

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
CONNECT_TIMEOUT = 5.0
EXCERPT_LENGTH = 200
ERROR_BODY_LIMIT = 4096


class HealthProber:
    """Runs one probe per call: no retries, bounded by ``timeout`` seconds."""

    def __init__(
        self,
        store: ConnectionStore,
        codec: CredentialCodec,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.store = store
        self.codec = codec
        self.timeout = timeout
        self._transport = transport

    async def test_saved(self, connection_id: str) -> TestResult:
        """Probe a stored connection and record the outcome on it."""
        conn = await self.store.get(connection_id)
        try:
            api_key = self.codec.decrypt(conn.api_key_encrypted)
        except DecryptionError:
            logger.warning(f"Stored API key for connection {conn.id} could not be decrypted")
            result = TestResult(success=False, message="stored API key could not be decrypted")
        else:
            result = await self.test_raw(conn.type, conn.url, api_key)

        await self.store.record_probe_result(conn.id, result.success)
        return result

    async def test_unsaved(self, connection_type: object, url: str, api_key: str) -> TestResult:
        """Probe credentials that have not been saved; nothing is persisted."""
        connection_type = parse_connection_type(connection_type)
        return await self.test_raw(connection_type, clean_url(url), clean_api_key(api_key))

    async def test_raw(self, connection_type: object, url: str, api_key: str) -> TestResult:
        adapter = adapter_for(parse_connection_type(connection_type))
        request = adapter.build_probe_request(url, api_key)

        # A redirect is reported as a failed probe and never followed
        try:
            async with asyncio.timeout(self.timeout):
                async with httpx.AsyncClient(
                    timeout=httpx.Timeout(self.timeout, connect=min(CONNECT_TIMEOUT, self.timeout)),
                    transport=self._transport,
                    follow_redirects=False,
                ) as client:
                    async with client.stream(request.method, request.target, headers=request.headers) as response:
                        if response.is_success:
                            body = await response.aread()
                        else:
                            body = await _read_prefix(response, ERROR_BODY_LIMIT)
        except (TimeoutError, httpx.TimeoutException):
            return self._failed(adapter.name, url, f"timed out after {self.timeout:g}s")
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as exc:
            return self._failed(adapter.name, url, f"invalid url: {exc}")
        except httpx.RequestError as exc:
            return self._failed(adapter.name, url, f"connection failed: {_describe(exc, api_key)}")
        except UnicodeEncodeError:
            return self._failed(adapter.name, url, "api key cannot be sent in an HTTP header")

        if not response.is_success:
            text = body.decode("utf-8", errors="replace")
            excerpt = _excerpt(text, api_key)
            message = f"HTTP {response.status_code}"
            if excerpt:
                message = f"{message}: {excerpt}"
            return self._failed(adapter.name, url, message)

        try:
            identity = adapter.parse_probe_response(body, response.status_code)
        except MalformedResponse as exc:
            logger.warning(f"{adapter.name} probe of {url} returned an unusable body: {exc}")
            return TestResult(success=False, message="malformed response")

        return TestResult(success=True, app_name=identity.app_name, version=identity.version)

    async def check_enabled(self) -> dict[str, int]:
        """Probe every enabled connection concurrently and tally the outcomes."""
        connections = await self.store.list_enabled()
        results = await asyncio.gather(*(self._check_one(conn.id) for conn in connections))

        summary = {"checked": 0, "healthy": 0, "unhealthy": 0}
        for result in results:
            if result is None:
                continue
            summary["checked"] += 1
            summary["healthy" if result.success else "unhealthy"] += 1
        return summary

    async def _check_one(self, connection_id: str) -> Optional[TestResult]:
        try:
            return await self.test_saved(connection_id)
        except NotFound:
            logger.debug(f"Connection {connection_id} was deleted before its health check finished")
        except StorageError:
            logger.error(f"Health check of connection {connection_id} could not be stored")
        return None

    @staticmethod
    def _failed(service: str, url: str, message: str) -> TestResult:
        logger.warning(f"{service} probe of {url} failed: {message}")
        return TestResult(success=False, message=message)


def _describe(exc: httpx.RequestError, api_key: str) -> str:
    text = str(exc).strip() or exc.__class__.__name__
    return text.replace(api_key, MASK_MARKER) if api_key else text


def _excerpt(body: str, api_key: str) -> str:
    text = re.sub(r"\s+", " ", body or "").strip()
    if api_key:
        text = text.replace(api_key, MASK_MARKER)
    if len(text) > EXCERPT_LENGTH:
        text = text[:EXCERPT_LENGTH].rstrip() + "..."
    return text


async def _read_prefix(response: httpx.Response, limit: int) -> bytes:
    """Read at most ``limit`` bytes of a streamed body."""
    chunks = []
    size = 0
    async for chunk in response.aiter_bytes():
        chunks.append(chunk)
        size += len(chunk)
        if size >= limit:
            break
    return b"".join(chunks)[:limit]
