from typing import Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .config import CONFIG, _Config
from .insights import GeoInsights
from .server import ToolServer


MapQueryHandler = Callable[[Dict[str, str]], None]


class _Args(BaseModel):
    model_config = ConfigDict(strict=True)


class LocationArgs(_Args):
    location: str = Field(..., description="Place name or address")


class QueryArgs(_Args):
    query: str = Field(..., description="Place or query to show on the map")


class SearchArgs(_Args):
    search: str = Field(..., description="What to search for, e.g. 'cafes near the Louvre'")


class DirectionsArgs(_Args):
    origin: str
    destination: str


class PointArgs(_Args):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class InsightArgs(PointArgs):
    radiusMeters: Optional[float] = Field(
        default=None, ge=0, description="Landmark search radius in meters (default 500)"
    )


def build_geo_server(
    insights: GeoInsights,
    on_map_query: MapQueryHandler,
    config: Optional[_Config] = None,
) -> ToolServer:
    config = config or CONFIG
    server = ToolServer("geo-insights", call_timeout_sec=config.tool_call_timeout_sec)

    @server.tool(
        "geocode_location",
        "Convert a place name or address to latitude and longitude coordinates",
        LocationArgs,
    )
    async def geocode_location(args: LocationArgs):
        return await insights.geocode(args.location)

    @server.tool(
        "view_location_google_maps",
        "View a specific query or geographical location and display in the embedded maps interface",
        QueryArgs,
    )
    async def view_location(args: QueryArgs):
        on_map_query({"location": args.query})
        return f"Navigating to: {args.query}"

    @server.tool(
        "search_google_maps",
        "Search google maps for a series of places near a location and display it in the maps interface",
        SearchArgs,
    )
    async def search_maps(args: SearchArgs):
        on_map_query({"search": args.search})
        return f"Searching: {args.search}"

    @server.tool(
        "directions_on_google_maps",
        "Search google maps for directions from origin to destination.",
        DirectionsArgs,
    )
    async def directions(args: DirectionsArgs):
        on_map_query({"origin": args.origin, "destination": args.destination})
        return f"Navigating from {args.origin} to {args.destination}"

    @server.tool(
        "reverse_geo_insights",
        "Get detailed reverse geocoding insights for a location including nearby landmarks, "
        "weather, and AI-generated summary.",
        InsightArgs,
    )
    async def reverse_geo_insights(args: InsightArgs):
        # 0 means "use the default", not a zero radius
        radius = args.radiusMeters or config.default_radius_m
        return await insights.reverse_insights(args.latitude, args.longitude, radius)

    @server.tool(
        "share_location",
        "Generate a shareable location payload with a link and description for a given coordinate.",
        PointArgs,
    )
    async def share_location(args: PointArgs):
        return await insights.generate_shareable_location(args.latitude, args.longitude)

    @server.tool(
        "weather_at_location",
        "Get current weather conditions for a given location.",
        PointArgs,
    )
    async def weather_at_location(args: PointArgs):
        return await insights.weather_at(args.latitude, args.longitude)

    return server
