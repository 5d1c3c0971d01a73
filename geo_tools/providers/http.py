"""Thin async clients for the external data providers.

Each provider call logs one JSON line (tool, fn, latency, status) and raises
``ProviderUnavailable`` on any transport error, non-200 status or unparsable
body. Callers decide how to degrade.
"""
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

import httpx

from ..config import CONFIG
from ..errors import ProviderUnavailable


def log_call(tool: str, fn: str, start_time: float, ok: bool, http_status: Optional[int]) -> None:
    latency_ms = (time.monotonic() - start_time) * 1000
    log_data = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "tool": tool,
        "fn": fn,
        "latency_ms": f"{latency_ms:.2f}",
        "ok": ok,
        "http_status": http_status,
    }
    logging.info(json.dumps(log_data))


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    params: Mapping[str, Any],
    *,
    provider: str,
    tool: str,
    fn: str,
) -> Any:
    start_time = time.monotonic()
    headers = {"User-Agent": CONFIG.user_agent}
    try:
        resp = await client.get(url, params=params, headers=headers)
    except httpx.HTTPError as e:
        log_call(tool, fn, start_time, False, None)
        raise ProviderUnavailable(provider, str(e) or e.__class__.__name__) from e

    if resp.status_code != 200:
        log_call(tool, fn, start_time, False, resp.status_code)
        raise ProviderUnavailable(provider, f"{provider} error: {resp.status_code}")

    try:
        data = resp.json()
    except ValueError as e:
        log_call(tool, fn, start_time, False, resp.status_code)
        raise ProviderUnavailable(provider, f"{provider} response malformed") from e

    log_call(tool, fn, start_time, True, resp.status_code)
    return data
