from mediareaper.services.base import ArrAdapter


class SonarrAdapter(ArrAdapter):
    """Probe adapter for Sonarr."""

    name = "sonarr"
    default_app_name = "Sonarr"
