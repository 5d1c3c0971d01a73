import math
from typing import Any, Dict, Mapping

import httpx

from ..config import CONFIG
from ..errors import ProviderUnavailable
from ..models import WeatherSnapshot
from .http import get_json


PROVIDER = "Open-Meteo"
TOOL = "geo-weather"

# WMO weather interpretation codes
WEATHER_CODES: Dict[int, str] = {
    0: "Clear",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Foggy",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Heavy drizzle",
    61: "Light rain",
    63: "Moderate rain",
    65: "Heavy rain",
    71: "Light snow",
    73: "Moderate snow",
    75: "Heavy snow",
    80: "Light showers",
    81: "Moderate showers",
    82: "Heavy showers",
    85: "Light snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with hail",
    99: "Thunderstorm with hail",
}

# Snapshot field <- Open-Meteo "current" field. Missing or non-numeric -> 0.0
CURRENT_FIELDS: Dict[str, str] = {
    "temperature_c": "temperature_2m",
    "feels_like_c": "apparent_temperature",
    "humidity_pct": "relative_humidity_2m",
    "wind_kph": "wind_speed_10m",
}


def condition_for(code: Any) -> str:
    try:
        return WEATHER_CODES.get(int(code), "Unknown")
    except (TypeError, ValueError, OverflowError):
        return "Unknown"


def _number(current: Mapping[str, Any], key: str) -> float:
    try:
        value = float(current.get(key))
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


async def current(client: httpx.AsyncClient, lat: float, lng: float) -> WeatherSnapshot:
    params = {
        "latitude": lat,
        "longitude": lng,
        "current": "temperature_2m,apparent_temperature,weather_code,relative_humidity_2m,wind_speed_10m",
        "timezone": "auto",
    }
    data = await get_json(client, CONFIG.open_meteo_base, params, provider=PROVIDER, tool=TOOL, fn="current")
    cur = data.get("current") if isinstance(data, dict) else None
    if not isinstance(cur, dict) or not cur:
        raise ProviderUnavailable(PROVIDER, "No weather data received")

    fields = {name: _number(cur, key) for name, key in CURRENT_FIELDS.items()}
    return WeatherSnapshot(condition=condition_for(cur.get("weather_code")), **fields)
