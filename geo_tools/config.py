import os
from typing import Final, Optional


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _optional_float_env(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


class _Config:
    def __init__(self) -> None:
        # Security / limits
        self.api_key: str | None = os.getenv("GEO_TOOLS_API_KEY")
        self.rate_limit: str = os.getenv("GEO_TOOLS_RATE_LIMIT", "30/minute")

        # HTTP behavior
        self.user_agent: str = os.getenv("GEO_TOOLS_USER_AGENT", "GeoInsights-Tools")
        self.http_timeout_sec: float = _float_env("HTTP_TIMEOUT_SEC", 10.0)
        self.tool_call_timeout_sec: Optional[float] = _optional_float_env("TOOL_CALL_TIMEOUT_SEC")

        # External API bases
        self.nominatim_base: str = os.getenv("NOMINATIM_BASE", "https://nominatim.openstreetmap.org")
        self.open_meteo_base: str = os.getenv("OPEN_METEO_BASE", "https://api.open-meteo.com/v1/forecast")
        self.share_base: str = os.getenv("SHARE_BASE", "https://www.google.com/maps")

        # Aggregation tuning
        self.default_radius_m: float = _float_env("DEFAULT_RADIUS_M", 500.0)
        self.poi_query: str = os.getenv("POI_QUERY", "attraction")
        self.poi_limit: int = _int_env("POI_LIMIT", 20)
        self.max_landmarks: int = _int_env("MAX_LANDMARKS", 5)
        self.popularity_threshold: int = _int_env("POPULARITY_THRESHOLD", 2)

        # Summarization
        self.gemini_api_key: str | None = os.getenv("GEMINI_API_KEY")
        self.gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")


CONFIG: Final[_Config] = _Config()
