"""Gemini chat adapter.

Advertises the tool server's descriptors as Gemini function declarations and
translates streamed response parts into ``StreamChunk``s. Automatic function
calling is not used; the dispatcher runs each call and hands the results back
through ``send_tool_results``.
"""
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

import google.generativeai as genai
from mcp import types

from geo_tools.models import result_text
from .chunks import AnswerChunk, StreamChunk, ThoughtChunk, ToolCallChunk, ToolOutcome
from .config import CONFIG, _Config
from .prompts import SYSTEM_INSTRUCTIONS


# OpenAPI subset accepted in function declarations
_SCHEMA_KEYS = {"type", "description", "properties", "required", "items", "enum", "format", "nullable"}


def to_gemini_schema(schema: Dict[str, Any]) -> Dict[str, Any]:
    """Reduce a pydantic JSON schema to what Gemini function declarations accept."""
    if "anyOf" in schema:
        variants = [s for s in schema["anyOf"] if s.get("type") != "null"]
        merged = dict(variants[0]) if variants else {"type": "string"}
        if "description" in schema:
            merged["description"] = schema["description"]
        if len(variants) < len(schema["anyOf"]):
            merged["nullable"] = True
        schema = merged

    out: Dict[str, Any] = {}
    for key, value in schema.items():
        if key not in _SCHEMA_KEYS:
            continue
        if key == "properties":
            out[key] = {name: to_gemini_schema(sub) for name, sub in value.items()}
        elif key == "items":
            out[key] = to_gemini_schema(value)
        elif key == "type":
            out[key] = str(value).upper()
        else:
            out[key] = value
    return out


def function_declarations(descriptors: Sequence[types.Tool]) -> List[Dict[str, Any]]:
    return [
        {
            "name": d.name,
            "description": d.description,
            "parameters": to_gemini_schema(d.inputSchema),
        }
        for d in descriptors
    ]


def chunks_from_part(part: Any) -> List[StreamChunk]:
    chunks: List[StreamChunk] = []
    if "function_call" in part:
        call = part.function_call
        args = type(call).to_dict(call).get("args") or {}
        chunks.append(ToolCallChunk(name=call.name, args=args))
    text = getattr(part, "text", "") or ""
    if text:
        if getattr(part, "thought", False):
            chunks.append(ThoughtChunk(text=text))
        else:
            chunks.append(AnswerChunk(text=text))
    return chunks


class GeminiChat:
    """One Gemini chat session; history lives in the session."""

    def __init__(self, model: "genai.GenerativeModel") -> None:
        self._session = model.start_chat()

    @classmethod
    def create(cls, descriptors: Sequence[types.Tool], config: Optional[_Config] = None) -> "GeminiChat":
        config = config or CONFIG
        genai.configure(api_key=config.gemini_api_key)
        model = genai.GenerativeModel(
            config.gemini_model,
            system_instruction=SYSTEM_INSTRUCTIONS,
            tools=[{"function_declarations": function_declarations(descriptors)}],
        )
        return cls(model)

    async def _stream(self, content: Any) -> AsyncIterator[StreamChunk]:
        response = await self._session.send_message_async(content, stream=True)
        async for chunk in response:
            for candidate in chunk.candidates or []:
                for part in candidate.content.parts or []:
                    for item in chunks_from_part(part):
                        yield item

    async def send(self, message: str, role: str = "user") -> AsyncIterator[StreamChunk]:
        async for chunk in self._stream({"role": role, "parts": [message]}):
            yield chunk

    async def send_tool_results(self, outcomes: Sequence[ToolOutcome]) -> AsyncIterator[StreamChunk]:
        parts = [
            genai.protos.Part(
                function_response=genai.protos.FunctionResponse(
                    name=o.name,
                    response={"result": result_text(o.result)},
                )
            )
            for o in outcomes
        ]
        async for chunk in self._stream(genai.protos.Content(role="user", parts=parts)):
            yield chunk
