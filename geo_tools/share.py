from typing import Optional
from urllib.parse import parse_qs, urlparse

from .config import CONFIG
from .models import Coordinates


def share_link(lat: float, lng: float, base: Optional[str] = None) -> str:
    """Map-query URL for a point. No provider call; same input, same link."""
    # repr() of a float round-trips exactly
    return f"{base or CONFIG.share_base}?q={lat!r},{lng!r}"


def coordinates_from_share_link(url: str) -> Coordinates:
    query = parse_qs(urlparse(url).query)
    try:
        lat_s, lng_s = query["q"][0].split(",")
        return Coordinates(lat=float(lat_s), lng=float(lng_s))
    except (KeyError, IndexError, ValueError) as e:
        raise ValueError(f"Not a share link: {url}") from e
