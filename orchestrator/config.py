import os
from typing import Final, Optional


class _Config:
    def __init__(self) -> None:
        # Model
        self.gemini_api_key: str | None = os.getenv("GEMINI_API_KEY")
        self.gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

        # Turn behavior
        self.turn_timeout_sec: Optional[float] = None
        raw_timeout = os.getenv("TURN_TIMEOUT_SEC")
        if raw_timeout:
            try:
                self.turn_timeout_sec = float(raw_timeout)
            except ValueError:
                self.turn_timeout_sec = None
        try:
            self.max_tool_rounds: int = int(os.getenv("MAX_TOOL_ROUNDS", "8"))
        except ValueError:
            self.max_tool_rounds = 8
        self.done_placeholder: str = os.getenv("DONE_PLACEHOLDER", "Done")


CONFIG: Final[_Config] = _Config()
