import os
import json
import logging

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.gzip import GZipMiddleware
from contextlib import asynccontextmanager
import httpx
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
import uvicorn
from geo_tools.routers.tools import router as tools_router
from .config import CONFIG
from .deps import get_api_key
from .insights import GeoInsights
from .providers.summary import GeminiSummarizer
from .tools import build_geo_server


# --- Logging Configuration ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler()  # Ensure logs go to stdout/stderr
    ]
)
# --------------------------

limiter = Limiter(key_func=get_remote_address, default_limits=[CONFIG.rate_limit])


def log_map_query(params: dict) -> None:
    # No map surface behind the HTTP service; navigation requests are only recorded.
    logging.info(json.dumps({"tool": "geo-map", "fn": "map_query", "params": params}))


@asynccontextmanager
async def lifespan(app: FastAPI):
    http_client = httpx.AsyncClient(timeout=CONFIG.http_timeout_sec)
    insights = GeoInsights(http_client, GeminiSummarizer.from_config(CONFIG))
    app.state.http_client = http_client
    app.state.tool_server = build_geo_server(insights, log_map_query, CONFIG)
    try:
        yield
    finally:
        await http_client.aclose()

app = FastAPI(title="Geo Insights Tools", lifespan=lifespan)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(GZipMiddleware, minimum_size=512)
app.include_router(tools_router, prefix="/tools")


@app.get("/", dependencies=[Depends(get_api_key)])
async def root(_: Request):
    return {"status": "ok"}


if __name__ == "__main__":
    port = int(os.getenv("PORT", "3001"))
    uvicorn.run(app, host="0.0.0.0", port=port)
