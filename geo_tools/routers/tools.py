from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status
from mcp import types

from ..deps import get_api_key, get_tool_server
from ..errors import InvalidArgument, ToolNotFound
from ..models import error_result
from ..server import ToolServer


router = APIRouter(dependencies=[Depends(get_api_key)])


@router.get("", response_model=List[types.Tool], response_model_exclude_none=True)
async def list_tools(server: ToolServer = Depends(get_tool_server)) -> List[types.Tool]:
    return server.descriptors()


@router.post("/{name}", response_model=types.CallToolResult, response_model_exclude_none=True)
async def call_tool(
    name: str,
    arguments: Optional[Dict[str, Any]] = Body(default=None),
    server: ToolServer = Depends(get_tool_server),
) -> types.CallToolResult:
    try:
        return await server.handle(name, arguments)
    except ToolNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidArgument as e:
        # Caller's fault, but still a tool result rather than a transport error
        return error_result(str(e))
