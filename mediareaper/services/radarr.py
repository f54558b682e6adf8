from mediareaper.services.base import ArrAdapter


class RadarrAdapter(ArrAdapter):
    """Probe adapter for Radarr."""

    name = "radarr"
    default_app_name = "Radarr"
