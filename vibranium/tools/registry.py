"""Tool registry: declares invocable tools and routes tool calls to them."""

from __future__ import annotations

import inspect
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from vibranium.errors import ArgumentParseError
from vibranium.tools.base import CUSTOM_TOOL_DEFAULT_MESSAGE, BaseTool, ToolParams

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

logger = logging.getLogger(__name__)


@dataclass
class ToolDef:
    """Internal representation of a registered tool."""

    name: str
    description: str
    handler: Callable[..., Awaitable[str | None]]
    params_model: type[ToolParams] | None = None


class ToolRegistry:
    """Catalog of tools the model may invoke.

    Supports two registration styles:

    1. Decorator (for simple stateless tools)::

        @registry.tool(name="ping", description="Ping")
        async def ping() -> str:
            return "pong"

    2. Class-based (for tools that need collaborators)::

        registry.register(KeywordLookupTool(store, summarizer))

    Handlers that declare ``channel`` or ``query`` parameters receive the
    request's channel and original user text automatically.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDef] = {}

    def tool(
        self,
        *,
        name: str,
        description: str,
        params_model: type[ToolParams] | None = None,
    ) -> Callable:
        """Decorator to register an async function as a tool."""

        def decorator(fn: Callable[..., Awaitable[str | None]]) -> Callable:
            if not inspect.iscoroutinefunction(fn):
                msg = f"Tool handler '{name}' must be an async function"
                raise TypeError(msg)

            self._tools[name] = ToolDef(
                name=name,
                description=description,
                handler=fn,
                params_model=params_model,
            )
            return fn

        return decorator

    def register(self, tool_instance: BaseTool) -> None:
        """Register a class-based tool instance."""
        self._tools[tool_instance.name] = ToolDef(
            name=tool_instance.name,
            description=tool_instance.description,
            handler=tool_instance.execute,
            params_model=tool_instance.params_model,
        )

    def get(self, name: str) -> ToolDef | None:
        """Look up a tool by name."""
        return self._tools.get(name)

    @property
    def tool_names(self) -> list[str]:
        """All registered tool names."""
        return list(self._tools.keys())

    def get_schemas(self, names: Iterable[str] | None = None) -> list[dict[str, Any]]:
        """Provider-neutral schemas for the named tools (all when ``names`` is None).

        Unregistered names are skipped.
        """
        if names is None:
            return [self._tool_schema(t) for t in self._tools.values()]
        return [self._tool_schema(self._tools[n]) for n in names if n in self._tools]

    async def execute(
        self,
        name: str,
        arguments: dict[str, Any],
        *,
        channel: str = "",
        query: str = "",
    ) -> str | None:
        """Run a tool by name.

        Unknown tools return ``CUSTOM_TOOL_DEFAULT_MESSAGE`` instead of
        raising. Arguments that fail the params model raise
        ``ArgumentParseError``; handler errors propagate.
        """
        tool_def = self._tools.get(name)
        if tool_def is None:
            logger.warning("Model selected unknown tool '%s'", name)
            return CUSTOM_TOOL_DEFAULT_MESSAGE

        logger.info("Tool '%s' called with %s", name, arguments)
        t0 = time.monotonic()

        if tool_def.params_model is not None:
            try:
                params = tool_def.params_model(**arguments)
            except ValidationError as exc:
                raise ArgumentParseError(name, str(exc)) from exc
            kwargs = params.model_dump()
        else:
            kwargs = {}

        if _accepts_param(tool_def.handler, "channel"):
            kwargs["channel"] = channel
        if _accepts_param(tool_def.handler, "query"):
            kwargs["query"] = query

        try:
            result = await tool_def.handler(**kwargs)
        except Exception:
            logger.exception("Tool '%s' failed in %.2fs", name, time.monotonic() - t0)
            raise

        logger.info("Tool '%s' finished in %.2fs", name, time.monotonic() - t0)
        return result

    @staticmethod
    def _tool_schema(tool_def: ToolDef) -> dict[str, Any]:
        """Build a single tool schema dict."""
        if tool_def.params_model is not None:
            input_schema = tool_def.params_model.model_json_schema()
        else:
            input_schema = {"type": "object", "properties": {}}

        return {
            "name": tool_def.name,
            "description": tool_def.description,
            "input_schema": input_schema,
        }


def _accepts_param(fn: Callable[..., Any], param_name: str) -> bool:
    """Check whether a callable accepts a given parameter name."""
    return param_name in inspect.signature(fn).parameters
