"""Geo-Insights aggregation.

Turns a coordinate pair into a single ``Insight`` by composing independent
provider calls. Provider failures are converted to data here and never cross
the public methods as exceptions:

* reverse geocoding is load-bearing: its failure fails the whole insight
* POI search failure leaves the landmark list empty
* weather failure yields the all-zero placeholder snapshot
* summarization failure yields a fixed filler sentence

Nothing is retried. One call, one attempt per provider.
"""
import asyncio
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import httpx

from .config import CONFIG, _Config
from .errors import ProviderUnavailable
from .models import Bucket, Coordinates, GeocodeResult, Insight, Landmark, ShareableLocation, WeatherSnapshot
from .providers import geo, weather
from .providers.summary import Summarizer
from .share import share_link


FALLBACK_SUMMARY = "A notable location with interesting geographical features."
# Not derived from any signal yet.
SAFETY_INDEX: Bucket = "medium"

ErrorPayload = Dict[str, str]


def classify_popularity(landmark_count: int, threshold: int) -> Bucket:
    if landmark_count > threshold:
        return "high"
    if landmark_count > 0:
        return "medium"
    return "low"


def rank_landmarks(
    lat: float,
    lng: float,
    pois: Iterable[Mapping[str, Any]],
    radius_m: float,
    limit: int,
) -> List[Landmark]:
    """Nearest POIs within ``radius_m``, ascending by distance, then name."""
    found: List[Landmark] = []
    for poi in pois:
        try:
            p_lat = float(poi["lat"])
            p_lng = float(poi["lon"])
        except (KeyError, TypeError, ValueError):
            continue
        distance = round(geo.planar_distance_m(lat, lng, p_lat, p_lng), 1)
        if distance > radius_m:
            continue
        name = poi.get("name") or str(poi.get("display_name") or "").split(",")[0].strip()
        if not name:
            continue
        kind = poi.get("type") or poi.get("category") or poi.get("class") or "place"
        found.append(Landmark(name=str(name), type=str(kind), distance_meters=distance))

    found.sort(key=lambda lm: (lm.distance_meters, lm.name.lower()))
    return found[:limit]


def format_address(record: geo.ReverseGeocodeRecord, lat: float, lng: float) -> str:
    parts = [record.part("place"), record.part("locality"), record.part("region")]
    address = ", ".join(p for p in parts if p)
    return address or record.display_name or f"{lat:.4f}, {lng:.4f}"


def area_profile(landmarks: List[Landmark], record: geo.ReverseGeocodeRecord) -> str:
    if landmarks:
        kinds = dict.fromkeys(lm.type for lm in landmarks)
        return f"Known for {', '.join(kinds)}"
    return f"{record.part('locality') or 'Area'} region"


def build_summary_prompt(
    address: str,
    lat: float,
    lng: float,
    landmarks: List[Landmark],
    snapshot: WeatherSnapshot,
) -> str:
    if landmarks:
        landmark_text = "\n".join(
            f"- {lm.name} ({lm.type}, {lm.distance_meters:g}m away)" for lm in landmarks
        )
    else:
        landmark_text = "(No specific landmarks data available)"

    return (
        "You are a geo-intelligence assistant. Given the following location data, generate a concise, "
        "factual summary about the area. Keep it to 2-3 sentences max.\n\n"
        f"Location: {address}\n"
        f"Coordinates: {lat:.4f}, {lng:.4f}\n"
        f"Nearby Features:\n{landmark_text}\n\n"
        "Current Weather:\n"
        f"- Temperature: {snapshot.temperature_c:g}°C (feels like {snapshot.feels_like_c:g}°C)\n"
        f"- Condition: {snapshot.condition}\n"
        f"- Humidity: {snapshot.humidity_pct:g}%\n"
        f"- Wind: {snapshot.wind_kph:g} kph\n\n"
        "Generate a brief, natural summary covering:\n"
        "1. What this area is known for\n"
        "2. Current weather context\n"
        "3. General atmosphere/character\n\n"
        "Be factual and concise. No headers or markdown."
    )


class GeoInsights:
    def __init__(
        self,
        client: httpx.AsyncClient,
        summarizer: Summarizer,
        config: Optional[_Config] = None,
    ) -> None:
        self._client = client
        self._summarizer = summarizer
        self._config = config or CONFIG

    async def geocode(self, name: str) -> Union[GeocodeResult, ErrorPayload]:
        try:
            matches = await geo.search(self._client, name, limit=1)
        except ProviderUnavailable as e:
            logging.warning("Geocoding error: %s", e)
            return {"error": f'Failed to geocode "{name}": {e.detail}'}

        if not matches:
            return {"error": f'Could not find coordinates for "{name}"'}

        first = matches[0]
        try:
            lat = float(first["lat"])
            lng = float(first["lon"])
        except (KeyError, TypeError, ValueError):
            logging.warning("Geocoding error: malformed match for %r: %r", name, first)
            return {"error": f'Failed to geocode "{name}": malformed provider response'}
        return GeocodeResult(latitude=lat, longitude=lng, address=str(first.get("display_name") or name))

    async def weather_at(self, lat: float, lng: float) -> WeatherSnapshot:
        try:
            return await weather.current(self._client, lat, lng)
        except ProviderUnavailable as e:
            logging.warning("Weather API error: %s", e)
            return WeatherSnapshot.placeholder()

    async def nearby_landmarks(self, lat: float, lng: float, radius_m: float) -> List[Landmark]:
        try:
            pois = await geo.nearby(
                self._client, lat, lng, radius_m, self._config.poi_query, self._config.poi_limit
            )
        except ProviderUnavailable as e:
            logging.warning("POI search error: %s", e)
            return []
        return rank_landmarks(lat, lng, pois, radius_m, self._config.max_landmarks)

    async def _summarize(self, prompt: str) -> str:
        try:
            text = await self._summarizer.summarize(prompt)
        except ProviderUnavailable as e:
            logging.warning("Summarization error: %s", e)
            return FALLBACK_SUMMARY
        return text or FALLBACK_SUMMARY

    async def reverse_insights(
        self, lat: float, lng: float, radius_m: Optional[float] = None
    ) -> Union[Insight, ErrorPayload]:
        radius = radius_m or self._config.default_radius_m

        # Coordinate-only calls are independent; summarization needs all three.
        record, landmarks, snapshot = await asyncio.gather(
            geo.reverse(self._client, lat, lng),
            self.nearby_landmarks(lat, lng, radius),
            self.weather_at(lat, lng),
            return_exceptions=True,
        )
        if isinstance(record, ProviderUnavailable):
            logging.warning("Reverse geo insights error: %s", record)
            return {"error": f"Failed to get reverse geo insights: {record.detail}"}
        for outcome in (record, landmarks, snapshot):
            if isinstance(outcome, BaseException):
                raise outcome

        address = format_address(record, lat, lng)
        prompt = build_summary_prompt(address, lat, lng, landmarks, snapshot)
        ai_summary = await self._summarize(prompt)

        coordinates = Coordinates(lat=lat, lng=lng)
        return Insight(
            coordinates=coordinates,
            address=address,
            landmarks=landmarks,
            popularity=classify_popularity(len(landmarks), self._config.popularity_threshold),
            safety_index=SAFETY_INDEX,
            area_profile=area_profile(landmarks, record),
            weather=snapshot,
            ai_summary=ai_summary,
            share=ShareableLocation(
                coordinates=coordinates,
                shareable_link=share_link(lat, lng, self._config.share_base),
                short_label=address.split(",")[0].strip() or "Location",
                description=ai_summary.split(".")[0] + ".",
            ),
        )

    async def generate_shareable_location(
        self, lat: float, lng: float
    ) -> Union[ShareableLocation, ErrorPayload]:
        try:
            record = await geo.reverse(self._client, lat, lng, detailed=False)
        except ProviderUnavailable as e:
            logging.warning("Share location error: %s", e)
            return {"error": f"Failed to generate shareable location: {e.detail}"}

        label = ", ".join(str(v) for v in list(record.address.values())[:2]) or "Location"
        return ShareableLocation(
            coordinates=Coordinates(lat=lat, lng=lng),
            shareable_link=share_link(lat, lng, self._config.share_base),
            short_label=label,
            description=f"Location at coordinates {lat:.4f}, {lng:.4f}",
        )
