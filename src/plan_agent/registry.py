# registry.py
# Tool registry and dispatcher.
#
# The registry is populated once at startup and read-only afterwards, so a
# single instance is shared by reference with every dispatcher and agent.
# The dispatcher never performs side effects of its own; everything happens
# inside the registered executor.

import json
from collections.abc import Callable
from typing import Any

from plan_agent.errors import InvalidArgumentsError, ToolNotFoundError
from plan_agent.models import ToolCall, ToolDefinition, ToolResult

ToolExecutor = Callable[[dict[str, Any]], ToolResult | str]


class ToolRegistry:
    def __init__(self) -> None:
        self._definitions: dict[str, ToolDefinition] = {}
        self._executors: dict[str, ToolExecutor] = {}

    def register(self, definition: ToolDefinition, executor: ToolExecutor) -> None:
        """Store both keyed by name. A later registration replaces the earlier one entirely."""
        self._definitions[definition.name] = definition
        self._executors[definition.name] = executor

    def list_tools(self) -> list[ToolDefinition]:
        return list(self._definitions.values())

    def lookup(self, name: str) -> ToolExecutor | None:
        return self._executors.get(name)

    def get_definition(self, name: str) -> ToolDefinition | None:
        return self._definitions.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._executors

    def __len__(self) -> int:
        return len(self._executors)


def decode_arguments(arguments: str) -> dict[str, Any]:
    """Decode a JSON-encoded argument object. Raises InvalidArgumentsError otherwise."""
    try:
        params = json.loads(arguments)
    except (json.JSONDecodeError, TypeError) as exc:
        raise InvalidArgumentsError(f"Invalid tool arguments: {exc}") from exc
    if not isinstance(params, dict):
        raise InvalidArgumentsError(
            f"Invalid tool arguments: expected a JSON object, got {type(params).__name__}"
        )
    return params


class ToolDispatcher:
    """Routes a model-requested ToolCall to the registered executor."""

    def __init__(self, registry: ToolRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    def execute(self, tool_call: ToolCall) -> ToolResult:
        """
        Look up, decode, invoke.

        Only a missing tool or undecodable arguments raise; anything the
        executor itself raises is returned as ToolResult.failure so the model
        can see it and try again.
        """
        name = tool_call.function.name
        executor = self._registry.lookup(name)
        if executor is None:
            raise ToolNotFoundError(f"Tool not found: {name}")

        params = decode_arguments(tool_call.function.arguments)

        try:
            result = executor(params)
        except Exception as exc:
            return ToolResult.failure(f"Tool '{name}' failed: {exc}")

        if isinstance(result, ToolResult):
            return result
        return ToolResult.success(str(result))
