import math
from typing import Any, Dict, List, Optional, Tuple

import httpx
from pydantic import BaseModel, Field

from ..config import CONFIG
from .http import get_json


PROVIDER = "Nominatim"
TOOL = "geo-nominatim"

METERS_PER_DEGREE = 111_000.0

# Named address parts and the provider fields that supply them, in order of
# preference. A part with no populated field is missing.
ADDRESS_FALLBACKS: Dict[str, Tuple[str, ...]] = {
    "place": ("tourism", "name"),
    "locality": ("city", "town", "village"),
    "region": ("state",),
}


class ReverseGeocodeRecord(BaseModel):
    display_name: Optional[str] = None
    # Provider order is kept; share labels are built from the first entries.
    address: Dict[str, Any] = Field(default_factory=dict)

    def part(self, name: str) -> Optional[str]:
        for field in ADDRESS_FALLBACKS[name]:
            value = self.address.get(field)
            if value:
                return str(value)
        return None

    def tag(self, field: str) -> Optional[str]:
        value = self.address.get(field)
        return str(value) if value else None


async def search(client: httpx.AsyncClient, query: str, limit: int = 1) -> List[Dict[str, Any]]:
    params = {
        "q": query,
        "format": "json",
        "limit": limit,
    }
    data = await get_json(
        client, f"{CONFIG.nominatim_base}/search", params, provider=PROVIDER, tool=TOOL, fn="search"
    )
    return data if isinstance(data, list) else []


async def reverse(
    client: httpx.AsyncClient, lat: float, lng: float, detailed: bool = True
) -> ReverseGeocodeRecord:
    params: Dict[str, Any] = {"format": "json", "lat": lat, "lon": lng}
    if detailed:
        params["zoom"] = 18
        params["addressdetails"] = 1
    data = await get_json(
        client, f"{CONFIG.nominatim_base}/reverse", params, provider=PROVIDER, tool=TOOL, fn="reverse"
    )
    if not isinstance(data, dict):
        return ReverseGeocodeRecord()
    address = data.get("address")
    return ReverseGeocodeRecord(
        display_name=data.get("display_name"),
        address=address if isinstance(address, dict) else {},
    )


def bbox_from_center(lat: float, lng: float, radius_m: float) -> str:
    delta_lat = radius_m / METERS_PER_DEGREE
    delta_lng = radius_m / (METERS_PER_DEGREE * max(math.cos(math.radians(lat)), 1e-6))
    # Nominatim expects "left,top,right,bottom"
    return f"{lng - delta_lng},{lat + delta_lat},{lng + delta_lng},{lat - delta_lat}"


def planar_distance_m(lat: float, lng: float, other_lat: float, other_lng: float) -> float:
    """Equirectangular approximation, scaled at the origin's latitude."""
    dy = (other_lat - lat) * METERS_PER_DEGREE
    dx = (other_lng - lng) * METERS_PER_DEGREE * math.cos(lat * math.pi / 180)
    return math.sqrt(dx * dx + dy * dy)


async def nearby(
    client: httpx.AsyncClient,
    lat: float,
    lng: float,
    radius_m: float,
    query: str,
    limit: int,
) -> List[Dict[str, Any]]:
    params = {
        "q": query,
        "format": "jsonv2",
        "limit": limit,
        "viewbox": bbox_from_center(lat, lng, radius_m),
        "bounded": 1,
    }
    data = await get_json(
        client, f"{CONFIG.nominatim_base}/search", params, provider=PROVIDER, tool=TOOL, fn="nearby"
    )
    return data if isinstance(data, list) else []
