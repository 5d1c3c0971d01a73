class ToolError(Exception):
    """Base class for tool-server errors."""


class InvalidArgument(ToolError):
    """Arguments did not match the tool's declared schema."""

    def __init__(self, tool_name: str, detail: str) -> None:
        self.tool_name = tool_name
        self.detail = detail
        super().__init__(f"Invalid arguments for {tool_name}: {detail}")


class ToolNotFound(ToolError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool '{name}' not found")


class DuplicateToolError(ToolError):
    """Raised at startup when a tool name is registered twice."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool '{name}' is already registered")


class ProviderUnavailable(Exception):
    """A remote provider failed, timed out or returned something unusable."""

    def __init__(self, provider: str, detail: str) -> None:
        self.provider = provider
        self.detail = detail
        super().__init__(f"{provider} request failed: {detail}")
