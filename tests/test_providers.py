import asyncio
import math

import httpx
import pytest

from geo_tools.config import CONFIG
from geo_tools.errors import ProviderUnavailable
from geo_tools.models import WeatherSnapshot
from geo_tools.providers import geo, weather
from geo_tools.providers.summary import GeminiSummarizer


def _run(handler, fn):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fn(client)

    return asyncio.run(go())


def test_search_sends_query_and_user_agent(providers):
    matches = _run(providers, lambda c: geo.search(c, "Paris"))
    assert matches[0]["lat"] == "48.8566"

    req = providers.requests[0]
    assert req.headers["user-agent"] == CONFIG.user_agent
    assert req.url.params["q"] == "Paris"
    assert req.url.params["format"] == "json"
    assert req.url.params["limit"] == "1"


def test_non_200_raises_provider_unavailable(providers):
    providers.status["search"] = 503
    with pytest.raises(ProviderUnavailable) as exc:
        _run(providers, lambda c: geo.search(c, "Paris"))
    assert exc.value.provider == "Nominatim"
    assert "503" in exc.value.detail


def test_transport_error_raises_provider_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ProviderUnavailable) as exc:
        _run(handler, lambda c: geo.search(c, "Paris"))
    assert "connection refused" in exc.value.detail


def test_unparsable_body_raises_provider_unavailable():
    def handler(request):
        return httpx.Response(200, text="<html>not json</html>")

    with pytest.raises(ProviderUnavailable):
        _run(handler, lambda c: geo.search(c, "Paris"))


def test_reverse_detail_params(providers):
    record = _run(providers, lambda c: geo.reverse(c, 48.8584, 2.2945))
    assert record.part("place") == "Tour Eiffel"
    assert record.part("locality") == "Paris"
    assert record.part("region") == "Ile-de-France"
    assert record.tag("country") == "France"
    detailed = providers.requests[-1].url.params
    assert detailed["zoom"] == "18"
    assert detailed["addressdetails"] == "1"

    _run(providers, lambda c: geo.reverse(c, 48.8584, 2.2945, detailed=False))
    plain = providers.requests[-1].url.params
    assert "zoom" not in plain
    assert "addressdetails" not in plain


def test_reverse_missing_address_parts(providers):
    providers.reverse = {"display_name": "Somewhere at sea"}
    record = _run(providers, lambda c: geo.reverse(c, 0.0, 0.0))
    assert record.part("place") is None
    assert record.part("locality") is None
    assert record.display_name == "Somewhere at sea"


def test_locality_falls_back_to_town_then_village():
    record = geo.ReverseGeocodeRecord(address={"village": "Giverny"})
    assert record.part("locality") == "Giverny"
    record = geo.ReverseGeocodeRecord(address={"town": "Vernon", "village": "Giverny"})
    assert record.part("locality") == "Vernon"


def test_nearby_uses_bounded_viewbox(providers):
    _run(providers, lambda c: geo.nearby(c, 48.8584, 2.2945, 500, "attraction", 20))
    params = providers.requests[-1].url.params
    assert params["bounded"] == "1"
    assert params["format"] == "jsonv2"
    left, top, right, bottom = (float(v) for v in params["viewbox"].split(","))
    assert left < 2.2945 < right
    assert bottom < 48.8584 < top


def test_planar_distance():
    assert geo.planar_distance_m(10.0, 20.0, 10.0, 20.0) == 0.0
    # One degree of latitude is the fixed scale factor
    assert geo.planar_distance_m(0.0, 0.0, 1.0, 0.0) == pytest.approx(111_000.0)
    # Longitude shrinks with latitude
    assert geo.planar_distance_m(60.0, 0.0, 60.0, 1.0) == pytest.approx(55_500.0, rel=1e-6)


def test_weather_current_maps_fields(providers):
    snapshot = _run(providers, lambda c: weather.current(c, 48.8584, 2.2945))
    assert snapshot.temperature_c == 18.4
    assert snapshot.feels_like_c == 17.9
    assert snapshot.condition == "Overcast"
    assert snapshot.humidity_pct == 64
    assert snapshot.wind_kph == 11.2

    params = providers.requests[-1].url.params
    assert "weather_code" in params["current"]
    assert params["timezone"] == "auto"


def test_weather_unknown_code_and_missing_numbers(providers):
    providers.weather = {"current": {"weather_code": 42, "temperature_2m": None, "wind_speed_10m": "n/a"}}
    snapshot = _run(providers, lambda c: weather.current(c, 1.0, 1.0))
    assert snapshot.condition == "Unknown"
    assert snapshot.temperature_c == 0.0
    assert snapshot.wind_kph == 0.0
    assert all(math.isfinite(v) for v in (snapshot.feels_like_c, snapshot.humidity_pct))


def test_weather_without_current_block_fails(providers):
    providers.weather = {"latitude": 1.0}
    with pytest.raises(ProviderUnavailable) as exc:
        _run(providers, lambda c: weather.current(c, 1.0, 1.0))
    assert exc.value.detail == "No weather data received"


def test_condition_for():
    assert weather.condition_for(0) == "Clear"
    assert weather.condition_for(95) == "Thunderstorm"
    assert weather.condition_for(None) == "Unknown"
    assert weather.condition_for("x") == "Unknown"


def test_weather_snapshot_wire_names():
    snapshot = WeatherSnapshot(temperature_c=1.5, condition="Clear")
    dumped = snapshot.model_dump(by_alias=True)
    assert dumped == {
        "temperatureC": 1.5,
        "feelsLikeC": 0.0,
        "condition": "Clear",
        "humidity": 0.0,
        "windKph": 0.0,
    }
    assert WeatherSnapshot.placeholder() == WeatherSnapshot(condition="Unknown")


class _Response:
    def __init__(self, text=None, blocked=False):
        self._text = text
        self._blocked = blocked

    @property
    def text(self):
        if self._blocked:
            raise ValueError("response has no text")
        return self._text


class _Model:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error

    async def generate_content_async(self, prompt):
        if self.error is not None:
            raise self.error
        return self.response


def test_summarizer_returns_stripped_text():
    summarizer = GeminiSummarizer(_Model(_Response("  A busy square.  ")))
    assert asyncio.run(summarizer.summarize("prompt")) == "A busy square."


def test_summarizer_blocked_response_is_empty():
    summarizer = GeminiSummarizer(_Model(_Response(blocked=True)))
    assert asyncio.run(summarizer.summarize("prompt")) == ""


def test_summarizer_sdk_error_becomes_provider_unavailable():
    summarizer = GeminiSummarizer(_Model(error=RuntimeError("403 API key not valid")))
    with pytest.raises(ProviderUnavailable) as exc:
        asyncio.run(summarizer.summarize("prompt"))
    assert "API key not valid" in exc.value.detail
