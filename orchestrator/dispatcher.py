"""Streaming turn dispatcher.

Drives one conversational turn: sends the user's input to the chat model,
classifies each streamed chunk (reasoning, answer text, tool call), routes
tool calls through the tool client, feeds their results back to the model and
keeps rendering until the model stops asking for tools.

State is explicit and turn-local. Every turn ends in ``TurnState.IDLE``,
whether it succeeds, fails, times out or is cancelled.
"""
import asyncio
import json
import logging
from typing import Any, AsyncIterator, List, Mapping, Optional, Protocol, Sequence

from mcp import types

from .chunks import AnswerChunk, StreamChunk, ThoughtChunk, ToolCallChunk, ToolOutcome, TurnState
from .config import CONFIG, _Config


class ChatModel(Protocol):
    def send(self, message: str, role: str) -> AsyncIterator[StreamChunk]: ...

    def send_tool_results(self, outcomes: Sequence[ToolOutcome]) -> AsyncIterator[StreamChunk]: ...


class ToolCaller(Protocol):
    async def call_tool(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> types.CallToolResult: ...


class MessageView(Protocol):
    def show_thinking(self, text: str) -> None: ...

    def render(self, text: str) -> None: ...

    def close_thinking(self) -> None: ...


class Renderer(Protocol):
    def add_message(self, role: str) -> MessageView: ...

    def set_state(self, state: TurnState) -> None: ...


class TurnCancelled(Exception):
    pass


class Turn:
    def __init__(self, input_text: str, role: str) -> None:
        self.input_text = input_text
        self.role = role
        self.state = TurnState.IDLE
        self.history: List[TurnState] = []
        self.thought_buffer = ""
        self.answer_buffer = ""
        self.tool_calls: List[ToolOutcome] = []
        self.error: Optional[str] = None


def extract_error_message(text: str) -> str:
    """Pull ``error.message`` out of a JSON body embedded in an error string.

    Falls back to the raw text when there is no parsable body.
    """
    split_pos = text.find("{")
    if split_pos == -1:
        return text
    try:
        body = json.loads(text[split_pos:])
    except ValueError:
        logging.warning("Unable to parse the error message: %s", text)
        return text
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return text


def announce_call(chunk: ToolCallChunk) -> str:
    call = {"name": chunk.name, "arguments": chunk.args}
    return "Calling function:\n```json\n" + json.dumps(call, indent=2) + "\n```"


class TurnDispatcher:
    def __init__(
        self,
        model: ChatModel,
        tools: ToolCaller,
        renderer: Renderer,
        config: Optional[_Config] = None,
    ) -> None:
        self._model = model
        self._tools = tools
        self._renderer = renderer
        self._config = config or CONFIG

    def _transition(self, turn: Turn, state: TurnState) -> None:
        if turn.state is state:
            return
        turn.state = state
        turn.history.append(state)
        self._renderer.set_state(state)

    async def submit_turn(
        self,
        input_text: str,
        role: str = "user",
        cancel: Optional[asyncio.Event] = None,
    ) -> Turn:
        turn = Turn(input_text, role)
        view = self._renderer.add_message("assistant")
        view.render("...")
        self._transition(turn, TurnState.GENERATING)

        try:
            if self._config.turn_timeout_sec:
                await asyncio.wait_for(self._consume(turn, view, cancel), self._config.turn_timeout_sec)
            else:
                await self._consume(turn, view, cancel)
        except TurnCancelled:
            self._fail(turn, "Turn cancelled")
        except asyncio.TimeoutError:
            self._fail(turn, f"Turn timed out after {self._config.turn_timeout_sec}s")
        except Exception as e:
            logging.error("Model stream error: %s", e)
            self._fail(turn, extract_error_message(str(e)))
        finally:
            view.close_thinking()
            # A failed turn shows only its error message
            if turn.error is None and not turn.answer_buffer.strip():
                view.render(self._config.done_placeholder)
            self._transition(turn, TurnState.IDLE)
        return turn

    def _fail(self, turn: Turn, message: str) -> None:
        turn.error = message
        self._renderer.add_message("error").render(message)

    async def _consume(self, turn: Turn, view: MessageView, cancel: Optional[asyncio.Event]) -> None:
        stream = self._model.send(turn.input_text, turn.role)
        rounds = 0
        while True:
            outcomes: List[ToolOutcome] = []
            async for chunk in stream:
                if cancel is not None and cancel.is_set():
                    raise TurnCancelled()
                await self._on_chunk(turn, view, chunk, outcomes)
            if not outcomes:
                return
            rounds += 1
            if rounds > self._config.max_tool_rounds:
                logging.warning("Stopping turn after %d tool rounds", self._config.max_tool_rounds)
                return
            stream = self._model.send_tool_results(outcomes)

    async def _on_chunk(
        self, turn: Turn, view: MessageView, chunk: StreamChunk, outcomes: List[ToolOutcome]
    ) -> None:
        if isinstance(chunk, ToolCallChunk):
            logging.info("FUNCTION CALL: %s %s", chunk.name, json.dumps(chunk.args))
            self._renderer.add_message("assistant").render(announce_call(chunk))
            result = await self._tools.call_tool(chunk.name, chunk.args)
            outcome = ToolOutcome(name=chunk.name, args=chunk.args, result=result)
            outcomes.append(outcome)
            turn.tool_calls.append(outcome)
        elif isinstance(chunk, ThoughtChunk):
            self._transition(turn, TurnState.THINKING)
            turn.thought_buffer += chunk.text
            view.show_thinking(turn.thought_buffer)
        elif isinstance(chunk, AnswerChunk):
            self._transition(turn, TurnState.EXECUTING)
            turn.answer_buffer += chunk.text
            view.render(turn.answer_buffer)
