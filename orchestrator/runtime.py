import logging
from contextlib import AsyncExitStack
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from mcp import types

from geo_tools.client import ToolClient
from geo_tools.server import ToolServer
from .config import CONFIG, _Config
from .dispatcher import ChatModel, Renderer, TurnDispatcher


ModelFactory = Callable[[Sequence[types.Tool]], ChatModel]
MapListener = Callable[[Dict[str, str]], None]


class SessionTools:
    """Tool client view bound to one chat session."""

    def __init__(self, client: ToolClient, session_id: str) -> None:
        self._client = client
        self.session_id = session_id

    async def call_tool(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> types.CallToolResult:
        return await self._client.call_tool(name, arguments, caller=self.session_id)


class Runtime:
    """Process-level wiring: the tool server served in-process over MCP, one
    serialized tool client, and one chat session per conversation."""

    def __init__(self, model_factory: ModelFactory, config: Optional[_Config] = None) -> None:
        self._model_factory = model_factory
        self._config = config or CONFIG
        self._stack: Optional[AsyncExitStack] = None
        self.tool_client: Optional[ToolClient] = None
        self.descriptors: List[types.Tool] = []
        self._map_listeners: Dict[str, MapListener] = {}
        self._chats: Dict[str, ChatModel] = {}

    def listen(self, session_id: str, listener: MapListener) -> None:
        self._map_listeners[session_id] = listener

    def unlisten(self, session_id: str, listener: MapListener) -> None:
        if self._map_listeners.get(session_id) == listener:
            del self._map_listeners[session_id]

    def forward_map_query(self, params: Dict[str, str]) -> None:
        """UI callback handed to the tool server.

        Tool calls are serialized, so the session owning the in-flight call is
        the one that asked for this navigation.
        """
        caller = self.tool_client.caller if self.tool_client else None
        logging.info("Map query from session %s: %s", caller, params)
        listener = self._map_listeners.get(caller) if caller else None
        if listener is not None:
            listener(params)

    async def start(self, server: ToolServer) -> None:
        self._stack = AsyncExitStack()
        session = await self._stack.enter_async_context(server.connect())
        self.tool_client = ToolClient(session)
        self.descriptors = await self.tool_client.list_tools()
        logging.info("Advertising %d tools to the model", len(self.descriptors))

    async def stop(self) -> None:
        if self._stack is not None:
            await self._stack.aclose()
            self._stack = None
        self.tool_client = None

    def chat_for(self, session_id: str) -> ChatModel:
        chat = self._chats.get(session_id)
        if chat is None:
            chat = self._model_factory(self.descriptors)
            self._chats[session_id] = chat
        return chat

    def dispatcher(self, session_id: str, renderer: Renderer) -> TurnDispatcher:
        if self.tool_client is None:
            raise RuntimeError("Runtime not started")
        tools = SessionTools(self.tool_client, session_id)
        return TurnDispatcher(self.chat_for(session_id), tools, renderer, self._config)
