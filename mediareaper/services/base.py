"""Shared pieces of the per-product probe adapters."""
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from mediareaper.errors import MalformedResponse


@dataclass(frozen=True)
class ProbeRequest:
    """A single HTTP request that checks a service is reachable."""

    method: str
    target: str
    headers: dict[str, str] = field(default_factory=dict)

    def __repr__(self) -> str:
        # headers carry the API key
        return f"ProbeRequest(method={self.method!r}, target={self.target!r})"


@dataclass(frozen=True)
class ProbeIdentity:
    app_name: str
    version: str


class ServiceAdapter(ABC):
    """Knows one product's status endpoint and how to read its answer."""

    name: str
    status_path: str

    def build_probe_request(self, url: str, api_key: str) -> ProbeRequest:
        return ProbeRequest(
            method="GET",
            target=f"{url.rstrip('/')}{self.status_path}",
            headers={**self.auth_headers(api_key), "Accept": "application/json"},
        )

    @abstractmethod
    def auth_headers(self, api_key: str) -> dict[str, str]:
        ...

    @abstractmethod
    def parse_probe_response(self, raw_body: bytes, raw_status_code: int) -> ProbeIdentity:
        """Extract name and version; raise MalformedResponse if the body is not usable."""


def load_json_object(raw_body: bytes, raw_status_code: int) -> dict[str, Any]:
    """Decode a 2xx body that must be a JSON object."""
    if raw_status_code == 204 or not raw_body:
        raise MalformedResponse("empty response body")
    try:
        data = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError) as exc:
        raise MalformedResponse("response is not JSON") from exc
    if not isinstance(data, dict):
        raise MalformedResponse("response is not a JSON object")
    return data


def require_string(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise MalformedResponse(f"response is missing {key}")
    return value.strip()


class ArrAdapter(ServiceAdapter):
    """Sonarr and Radarr share the v3 API: ``/api/v3/system/status`` with ``X-Api-Key``."""

    status_path = "/api/v3/system/status"
    default_app_name: str

    def auth_headers(self, api_key: str) -> dict[str, str]:
        return {"X-Api-Key": api_key}

    def parse_probe_response(self, raw_body: bytes, raw_status_code: int) -> ProbeIdentity:
        data = load_json_object(raw_body, raw_status_code)
        version = require_string(data, "version")
        app_name = data.get("appName")
        if not isinstance(app_name, str) or not app_name.strip():
            app_name = self.default_app_name
        return ProbeIdentity(app_name=app_name.strip(), version=version)
