from enum import Enum
from typing import Any, Dict, Literal, Union

from mcp import types
from pydantic import BaseModel, Field


class TurnState(str, Enum):
    IDLE = "idle"
    THINKING = "thinking"
    EXECUTING = "executing"
    GENERATING = "generating"


class ThoughtChunk(BaseModel):
    kind: Literal["thought"] = "thought"
    text: str


class AnswerChunk(BaseModel):
    kind: Literal["answer"] = "answer"
    text: str


class ToolCallChunk(BaseModel):
    kind: Literal["tool_call"] = "tool_call"
    name: str
    args: Dict[str, Any] = Field(default_factory=dict)


StreamChunk = Union[ThoughtChunk, AnswerChunk, ToolCallChunk]


class ToolOutcome(BaseModel):
    """A tool call made during a turn and the result sent back to the model."""

    name: str
    args: Dict[str, Any]
    result: types.CallToolResult
