import asyncio
import logging
from typing import Any, List, Mapping, Optional

from mcp import ClientSession, types
from mcp.shared.exceptions import McpError

from .models import error_result


class ToolClient:
    """Caller side of an MCP tool session.

    Requests are serialized: exactly one invocation is in flight at a time.
    ``caller`` names whoever owns the in-flight call, so server-side callbacks
    fired during it can be routed back to that caller.
    """

    def __init__(self, session: ClientSession) -> None:
        self._session = session
        self._lock = asyncio.Lock()
        self.caller: Optional[str] = None

    async def list_tools(self) -> List[types.Tool]:
        async with self._lock:
            result = await self._session.list_tools()
        return list(result.tools)

    async def call_tool(
        self,
        name: str,
        arguments: Optional[Mapping[str, Any]] = None,
        caller: Optional[str] = None,
    ) -> types.CallToolResult:
        async with self._lock:
            self.caller = caller
            try:
                return await self._session.call_tool(name, dict(arguments or {}))
            except McpError as e:
                logging.warning("Tool call %s failed: %s", name, e)
                return error_result(str(e))
            finally:
                self.caller = None
