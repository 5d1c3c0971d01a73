from typing import Optional

from fastapi import Header, HTTPException, Request, status

from .config import CONFIG
from .server import ToolServer


def get_api_key(x_api_key: Optional[str] = Header(default=None)) -> str:
    expected_api_key = CONFIG.api_key
    if expected_api_key is None or x_api_key != expected_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
    return x_api_key


def get_tool_server(request: Request) -> ToolServer:
    server = getattr(request.app.state, "tool_server", None)
    if server is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Tool server not initialized",
        )
    return server
