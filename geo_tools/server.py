"""Typed tool server.

Tools are registered once, each with a pydantic model describing its
arguments, and served over MCP through a low-level ``mcp.server.lowlevel.Server``.
Every result is a ``CallToolResult`` whose text is JSON. Tool-level failures
(bad arguments, handler errors, unserializable results, timeouts) are answered
as ``{"error": ...}`` payloads with ``isError`` set; the session is never
dropped because a tool failed.
"""
import asyncio
from contextlib import asynccontextmanager
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Mapping, NamedTuple, Optional, Type

from mcp import ClientSession, types
from mcp.server.lowlevel import Server
from mcp.shared.memory import create_connected_server_and_client_session
from pydantic import BaseModel, ValidationError
from pydantic.errors import PydanticUserError

from .errors import DuplicateToolError, InvalidArgument, ToolError, ToolNotFound
from .models import error_result, result_text, tool_result


Handler = Callable[[Any], Awaitable[Any]]


class _Registration(NamedTuple):
    descriptor: types.Tool
    schema: Type[BaseModel]
    handler: Handler


class ToolCallFailed(Exception):
    """Raised inside the MCP handler to report an error payload.

    The SDK answers a raised handler error with an ``isError`` result whose
    text is the exception message, so the message is the JSON payload itself.
    """


def _describe(error: ValidationError) -> str:
    problems = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        problems.append(f"{loc}: {err.get('msg')}")
    return "; ".join(problems)


def _is_error_value(value: Any) -> bool:
    return isinstance(value, dict) and "error" in value


class ToolServer:
    def __init__(self, name: str, version: str = "1.0.0", call_timeout_sec: Optional[float] = None) -> None:
        self.name = name
        self.version = version
        self.call_timeout_sec = call_timeout_sec
        self._tools: Dict[str, _Registration] = {}

        self.mcp = Server(name, version=version)
        self.mcp.list_tools()(self._list_tools)
        # Arguments are validated against the pydantic models in handle()
        self.mcp.call_tool(validate_input=False)(self._call_tool)

    def register_tool(self, name: str, description: str, schema: Type[BaseModel], handler: Handler) -> None:
        if name in self._tools:
            raise DuplicateToolError(name)
        try:
            input_schema = schema.model_json_schema()
        except (PydanticUserError, TypeError, AttributeError) as e:
            raise ToolError(f"Malformed schema for tool '{name}': {e}") from e
        descriptor = types.Tool(name=name, description=description, inputSchema=input_schema)
        self._tools[name] = _Registration(descriptor, schema, handler)

    def tool(self, name: str, description: str, schema: Type[BaseModel]) -> Callable[[Handler], Handler]:
        """Decorator form of ``register_tool``."""

        def decorator(handler: Handler) -> Handler:
            self.register_tool(name, description, schema, handler)
            return handler

        return decorator

    def descriptors(self) -> List[types.Tool]:
        return [reg.descriptor for reg in self._tools.values()]

    async def handle(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> types.CallToolResult:
        """Validate and run one invocation.

        Raises ``ToolNotFound`` for an unknown name and ``InvalidArgument`` when
        the arguments fail the tool's schema. Anything the handler raises, and
        any result that cannot be serialized, is returned as an
        ``{"error": ...}`` payload.
        """
        reg = self._tools.get(name)
        if reg is None:
            raise ToolNotFound(name)

        try:
            params = reg.schema.model_validate(dict(arguments or {}))
        except ValidationError as e:
            raise InvalidArgument(name, _describe(e)) from e

        try:
            if self.call_timeout_sec:
                value = await asyncio.wait_for(reg.handler(params), self.call_timeout_sec)
            else:
                value = await reg.handler(params)
            return tool_result(value, is_error=_is_error_value(value))
        except asyncio.TimeoutError:
            logging.warning("Tool %s timed out after %ss", name, self.call_timeout_sec)
            return error_result(f"Tool '{name}' timed out after {self.call_timeout_sec}s")
        except Exception as e:
            logging.exception("Tool %s failed", name)
            return error_result(str(e) or e.__class__.__name__)

    async def invoke(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> types.CallToolResult:
        """Like ``handle`` but lookup and validation failures become error payloads."""
        try:
            return await self.handle(name, arguments)
        except ToolError as e:
            logging.warning("Rejected call to %s: %s", name, e)
            return error_result(str(e))

    async def _list_tools(self) -> List[types.Tool]:
        return self.descriptors()

    async def _call_tool(self, name: str, arguments: Dict[str, Any]) -> List[types.TextContent]:
        result = await self.invoke(name, arguments)
        if result.isError:
            raise ToolCallFailed(result_text(result))
        return [c for c in result.content if isinstance(c, types.TextContent)]

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[ClientSession]:
        """Serve this server in-process over linked memory streams.

        Yields an initialized client session; the server runs until the
        context exits.
        """
        async with create_connected_server_and_client_session(self.mcp) as session:
            logging.info("Tool server %s %s connected", self.name, self.version)
            yield session
        logging.info("Tool server %s disconnected", self.name)
