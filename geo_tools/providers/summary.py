import time
from typing import Optional, Protocol

import google.generativeai as genai

from ..config import CONFIG, _Config
from ..errors import ProviderUnavailable
from .http import log_call


PROVIDER = "Gemini"
TOOL = "geo-summary"


class Summarizer(Protocol):
    async def summarize(self, prompt: str) -> str: ...


class GeminiSummarizer:
    """Prose summaries from a single, non-streamed Gemini completion."""

    def __init__(self, model: "genai.GenerativeModel") -> None:
        self._model = model

    @classmethod
    def from_config(cls, config: Optional[_Config] = None) -> "GeminiSummarizer":
        config = config or CONFIG
        genai.configure(api_key=config.gemini_api_key)
        model = genai.GenerativeModel(
            config.gemini_model,
            generation_config={"temperature": 0.2},
        )
        return cls(model)

    async def summarize(self, prompt: str) -> str:
        start_time = time.monotonic()
        try:
            response = await self._model.generate_content_async(prompt)
        except Exception as e:
            log_call(TOOL, "summarize", start_time, False, None)
            raise ProviderUnavailable(PROVIDER, str(e)) from e
        try:
            text = response.text or ""
        except ValueError:
            # Blocked or empty candidates have no text accessor
            text = ""
        log_call(TOOL, "summarize", start_time, True, None)
        return text.strip()
