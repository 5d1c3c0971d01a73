import json
from typing import Any, List, Literal, Optional

from mcp import types
from pydantic import BaseModel, ConfigDict, Field


Bucket = Literal["high", "medium", "low"]


class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class Landmark(BaseModel):
    name: str
    type: str
    distance_meters: float = Field(..., ge=0)


class WeatherSnapshot(BaseModel):
    """Current conditions at a point.

    The all-default instance is the placeholder returned when the weather
    provider fails.
    """

    model_config = ConfigDict(populate_by_name=True)

    temperature_c: float = Field(0.0, alias="temperatureC")
    feels_like_c: float = Field(0.0, alias="feelsLikeC")
    condition: str = "Unknown"
    humidity_pct: float = Field(0.0, alias="humidity")
    wind_kph: float = Field(0.0, alias="windKph")

    @classmethod
    def placeholder(cls) -> "WeatherSnapshot":
        return cls()


class ShareableLocation(BaseModel):
    coordinates: Coordinates
    shareable_link: str
    short_label: str
    description: str


class Insight(BaseModel):
    coordinates: Coordinates
    address: str
    landmarks: List[Landmark]
    popularity: Bucket
    safety_index: Bucket
    area_profile: str
    weather: Optional[WeatherSnapshot] = None
    ai_summary: str
    share: Optional[ShareableLocation] = None


class GeocodeResult(BaseModel):
    latitude: float
    longitude: float
    address: str


# --- Tool results ---
# Results travel as MCP ``CallToolResult``s holding a single text block whose
# text is always JSON.


def dump_value(value: Any) -> str:
    """Serialize a handler return value to the JSON text carried on the wire."""
    if isinstance(value, BaseModel):
        return value.model_dump_json(by_alias=True, exclude_none=True, indent=2)
    return json.dumps(value, indent=2)


def tool_result(value: Any, is_error: bool = False) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=dump_value(value))],
        isError=is_error,
    )


def error_result(message: str) -> types.CallToolResult:
    return tool_result({"error": message}, is_error=True)


def result_text(result: types.CallToolResult) -> str:
    return "".join(c.text for c in result.content if isinstance(c, types.TextContent))
