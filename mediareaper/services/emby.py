from mediareaper.services.base import ProbeIdentity, ServiceAdapter, load_json_object, require_string


class EmbyAdapter(ServiceAdapter):
    """Probe adapter for Emby.

    Uses the authenticated ``/System/Info`` rather than the public variant so
    that a wrong API key fails the probe with 401.
    """

    name = "emby"
    status_path = "/System/Info"

    def auth_headers(self, api_key: str) -> dict[str, str]:
        return {"X-Emby-Token": api_key}

    def parse_probe_response(self, raw_body: bytes, raw_status_code: int) -> ProbeIdentity:
        data = load_json_object(raw_body, raw_status_code)
        version = require_string(data, "Version")
        server_name = data.get("ServerName")
        if isinstance(server_name, str) and server_name.strip():
            app_name = f"Emby ({server_name.strip()})"
        else:
            app_name = "Emby"
        return ProbeIdentity(app_name=app_name, version=version)
