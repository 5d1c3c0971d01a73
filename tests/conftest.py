import asyncio
from typing import Any, Dict, List, Optional

import httpx
import pytest
from mcp import types

from geo_tools.errors import ProviderUnavailable
from geo_tools.insights import GeoInsights
from geo_tools.models import tool_result
from orchestrator.chunks import TurnState


PARIS_SEARCH = [
    {"lat": "48.8566", "lon": "2.3522", "display_name": "Paris, Ile-de-France, Metropolitan France, France"}
]

EIFFEL_REVERSE = {
    "display_name": "Tour Eiffel, 5, Avenue Anatole France, Gros-Caillou, Paris, Ile-de-France, France",
    "address": {
        "tourism": "Tour Eiffel",
        "house_number": "5",
        "road": "Avenue Anatole France",
        "city": "Paris",
        "state": "Ile-de-France",
        "country": "France",
    },
}

# Around 48.8584, 2.2945: Tour Eiffel ~0 m, Pont d'Iena ~209 m, Champ de Mars ~432 m,
# Trocadero ~520 m (outside the default 500 m radius).
EIFFEL_POIS = [
    {"lat": "48.8556", "lon": "2.2986", "name": "Champ de Mars", "type": "park"},
    {"lat": "48.8616", "lon": "2.2893", "name": "Trocadero", "type": "viewpoint"},
    {"lat": "48.8584", "lon": "2.2945", "name": "Tour Eiffel", "type": "attraction"},
    {"lat": "48.8600", "lon": "2.2930", "display_name": "Pont d'Iena, Paris, France", "category": "bridge"},
]

WEATHER_OK = {
    "current": {
        "temperature_2m": 18.4,
        "apparent_temperature": 17.9,
        "weather_code": 3,
        "relative_humidity_2m": 64,
        "wind_speed_10m": 11.2,
    }
}


class FakeProviders:
    """httpx.MockTransport handler standing in for Nominatim and Open-Meteo."""

    def __init__(self) -> None:
        self.search: Any = PARIS_SEARCH
        self.reverse: Any = EIFFEL_REVERSE
        self.pois: Any = EIFFEL_POIS
        self.weather: Any = WEATHER_OK
        self.status: Dict[str, int] = {}
        self.requests: List[httpx.Request] = []

    def requests_for(self, kind: str) -> List[httpx.Request]:
        return [r for r in self.requests if self._kind(r) == kind]

    @staticmethod
    def _kind(request: httpx.Request) -> str:
        if "open-meteo" in request.url.host:
            return "weather"
        if request.url.path.endswith("/reverse"):
            return "reverse"
        if request.url.params.get("format") == "jsonv2":
            return "pois"
        return "search"

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        kind = self._kind(request)
        status = self.status.get(kind, 200)
        if status != 200:
            return httpx.Response(status, json={"error": "unavailable"})
        return httpx.Response(200, json=getattr(self, kind))


class FakeSummarizer:
    def __init__(self, text: str = "The Eiffel Tower dominates this district. Mild and overcast today.", fail: bool = False) -> None:
        self.text = text
        self.fail = fail
        self.prompts: List[str] = []

    async def summarize(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.fail:
            raise ProviderUnavailable("Gemini", "quota exceeded")
        return self.text


class FakeView:
    def __init__(self, role: str) -> None:
        self.role = role
        self.renders: List[str] = []
        self.thoughts: List[str] = []
        self.thinking_closed = False

    def show_thinking(self, text: str) -> None:
        self.thoughts.append(text)

    def render(self, text: str) -> None:
        self.renders.append(text)

    def close_thinking(self) -> None:
        self.thinking_closed = True


class RecordingRenderer:
    def __init__(self) -> None:
        self.messages: List[FakeView] = []
        self.states: List[TurnState] = []

    def add_message(self, role: str) -> FakeView:
        view = FakeView(role)
        self.messages.append(view)
        return view

    def set_state(self, state: TurnState) -> None:
        self.states.append(state)

    def errors(self) -> List[str]:
        return [m.renders[-1] for m in self.messages if m.role == "error"]


class ScriptedModel:
    """Chat model that replays one list of chunks per round.

    A round given as an Exception instance raises mid-stream instead. A float
    before the chunks sleeps that many seconds first.
    """

    def __init__(self, *rounds: Any) -> None:
        self.rounds = list(rounds)
        self.sent: List[tuple] = []
        self.tool_results: List[list] = []

    async def _play(self):
        if not self.rounds:
            return
        script = self.rounds.pop(0)
        if isinstance(script, BaseException):
            raise script
        for item in script:
            if isinstance(item, (int, float)):
                await asyncio.sleep(item)
                continue
            yield item

    async def send(self, message: str, role: str = "user"):
        self.sent.append((message, role))
        async for chunk in self._play():
            yield chunk

    async def send_tool_results(self, outcomes):
        self.tool_results.append(list(outcomes))
        async for chunk in self._play():
            yield chunk


class FakeToolClient:
    def __init__(self, results: Optional[Dict[str, Any]] = None) -> None:
        self.results = results or {}
        self.calls: List[tuple] = []

    async def call_tool(self, name: str, arguments=None) -> types.CallToolResult:
        self.calls.append((name, dict(arguments or {})))
        return tool_result(self.results.get(name, {"ok": True}))


@pytest.fixture
def providers() -> FakeProviders:
    return FakeProviders()


@pytest.fixture
def summarizer() -> FakeSummarizer:
    return FakeSummarizer()


@pytest.fixture
def run_insights(providers, summarizer):
    """Run ``fn(insights)`` on a fresh event loop against the fake providers."""

    def run(fn, summarizer_override=None):
        async def go():
            async with httpx.AsyncClient(transport=httpx.MockTransport(providers)) as client:
                return await fn(GeoInsights(client, summarizer_override or summarizer))

        return asyncio.run(go())

    return run
