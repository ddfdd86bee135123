"""Base types for the tool-calling framework."""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

# Returned whenever a tool cannot produce an answer of its own
CUSTOM_TOOL_DEFAULT_MESSAGE = "I'm sorry, I'm not able to get this information right now."


class ToolParams(BaseModel):
    """Base class for tool parameter models.

    Subclass with Field() definitions. The JSON schema is auto-generated
    via model_json_schema() for the model's tool definitions. Unknown keys
    are ignored, so injected arguments never break validation.
    """


class BaseTool(ABC):
    """Abstract base for class-based tool implementations.

    Tools here need collaborators (memory store, Slack transport,
    summarizer), so they are classes constructed at startup and then
    handed to ``ToolRegistry.register``.

    Example::

        class MyTool(BaseTool):
            name = "my_tool"
            description = "Does a thing"
            params_model = MyToolParams

            async def execute(self, **kwargs) -> str | None:
                return "done"
    """

    name: str = ""
    description: str = ""
    params_model: type[ToolParams] | None = None

    @abstractmethod
    async def execute(self, **kwargs: Any) -> str | None:
        """Execute the tool with validated parameters. Returns reply text."""
        ...
