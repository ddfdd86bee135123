"""Exception hierarchy shared across the bot."""


class VibraniumError(Exception):
    """Base class for all bot errors."""


class MemoryStoreError(VibraniumError):
    """The memory store could not complete an operation."""


class BackendUnavailableError(MemoryStoreError):
    """The vector store could not be reached."""


class MalformedResponseError(MemoryStoreError):
    """A capability provider returned data we cannot use."""


class EmbeddingError(MemoryStoreError):
    """The embedding provider failed or returned vectors of the wrong size."""


class ProviderError(VibraniumError):
    """A language-model completion call failed."""


class ProviderRateLimitError(ProviderError):
    """The language-model provider rejected the call with a rate limit."""


class ArgumentParseError(VibraniumError):
    """Tool-call arguments were not valid structured data."""

    def __init__(self, tool_name: str, detail: str) -> None:
        self.tool_name = tool_name
        self.detail = detail
        super().__init__(f"Invalid arguments for tool '{tool_name}': {detail}")
