import asyncio
import itertools
import json
import logging
import os
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel
import uvicorn

from geo_tools.config import CONFIG as GEO_CONFIG
from geo_tools.insights import GeoInsights
from geo_tools.providers.summary import GeminiSummarizer
from geo_tools.tools import build_geo_server
from .chunks import TurnState
from .config import CONFIG
from .gemini import GeminiChat
from .runtime import Runtime


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)


class ChatRequest(BaseModel):
    prompt: str
    session_id: Optional[str] = None
    role: str = "user"


class SseMessage:
    def __init__(self, renderer: "SseRenderer", message_id: int) -> None:
        self._renderer = renderer
        self._id = message_id

    def show_thinking(self, text: str) -> None:
        self._renderer.emit({"type": "thought", "id": self._id, "content": text})

    def render(self, text: str) -> None:
        self._renderer.emit({"type": "render", "id": self._id, "content": text})

    def close_thinking(self) -> None:
        self._renderer.emit({"type": "thought_done", "id": self._id})


class SseRenderer:
    """Renderer that turns dispatcher callbacks into SSE event payloads."""

    def __init__(self) -> None:
        self.events: "asyncio.Queue[Optional[Dict[str, Any]]]" = asyncio.Queue()
        self._ids = itertools.count(1)

    def emit(self, payload: Dict[str, Any]) -> None:
        self.events.put_nowait(payload)

    def close(self) -> None:
        self.events.put_nowait(None)

    def add_message(self, role: str) -> SseMessage:
        message_id = next(self._ids)
        self.emit({"type": "message", "id": message_id, "role": role})
        return SseMessage(self, message_id)

    def set_state(self, state: TurnState) -> None:
        self.emit({"type": "state", "state": state.value})

    def map_query(self, params: Dict[str, str]) -> None:
        self.emit({"type": "map_query", "params": params})


async def stream_turn(runtime: Runtime, prompt: str, session_id: str, role: str = "user"):
    renderer = SseRenderer()
    dispatcher = runtime.dispatcher(session_id, renderer)
    runtime.listen(session_id, renderer.map_query)
    task = asyncio.create_task(dispatcher.submit_turn(prompt, role))
    task.add_done_callback(lambda _: renderer.close())
    try:
        while True:
            event = await renderer.events.get()
            if event is None:
                break
            yield f"data: {json.dumps(event)}\n\n"
        await task
    finally:
        runtime.unlisten(session_id, renderer.map_query)
    yield "data: [DONE]\n\n"


@asynccontextmanager
async def lifespan(app: FastAPI):
    http_client = httpx.AsyncClient(timeout=GEO_CONFIG.http_timeout_sec)
    insights = GeoInsights(http_client, GeminiSummarizer.from_config(GEO_CONFIG))
    runtime = Runtime(lambda descriptors: GeminiChat.create(descriptors, CONFIG), CONFIG)
    await runtime.start(build_geo_server(insights, runtime.forward_map_query, GEO_CONFIG))
    app.state.runtime = runtime
    try:
        yield
    finally:
        await runtime.stop()
        await http_client.aclose()


app = FastAPI(title="Geo Insights - Orchestrator", lifespan=lifespan)


@app.post("/chat")
async def chat(req: ChatRequest, request: Request):
    runtime: Runtime = request.app.state.runtime
    session_id = req.session_id or uuid.uuid4().hex
    return StreamingResponse(
        stream_turn(runtime, req.prompt, session_id, req.role),
        media_type="text/event-stream",
    )


if __name__ == "__main__":
    port = int(os.getenv("PORT", "3002"))
    uvicorn.run(app, host="0.0.0.0", port=port)
