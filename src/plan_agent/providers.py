# providers.py
# Language-model backends.
#
# The agent depends only on the Provider protocol. Two backends satisfy it:
# any OpenAI-compatible endpoint (OpenRouter by default) through the openai
# SDK, and a local Ollama server over plain HTTP. create_provider() selects
# one from configuration.

import json
import os
import uuid
from collections.abc import Iterator
from typing import Any, Protocol, runtime_checkable

import httpx
from openai import OpenAI, OpenAIError

from plan_agent.config import ProviderConfig
from plan_agent.errors import ProviderError
from plan_agent.models import (
    FunctionCall,
    Message,
    ProviderCapabilities,
    ProviderMetadata,
    Role,
    ToolCall,
    ToolDefinition,
)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
OLLAMA_BASE_URL = "http://localhost:11434"

DEFAULT_MODELS = {
    "openrouter": "anthropic/claude-3.5-haiku",
    "openai": "gpt-4o-mini",
    "ollama": "qwen2.5-coder",
}


@runtime_checkable
class Provider(Protocol):
    def metadata(self) -> ProviderMetadata: ...

    def complete(self, messages: list[Message], tools: list[ToolDefinition]) -> Message:
        """Return exactly one assistant message, optionally carrying tool calls."""
        ...

    def complete_streaming(
        self, messages: list[Message], tools: list[ToolDefinition]
    ) -> Iterator[Message]:
        """Yield partial assistant messages as the backend produces them."""
        ...


def _tool_schema(tool: ToolDefinition) -> dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description,
            "parameters": tool.parameters,
        },
    }


# ---------------------------------------------------------------------------
# OpenAI-compatible backend
# ---------------------------------------------------------------------------


class OpenAICompatibleProvider:
    """
    Chat-completions backend with native tool calling.

    Example:
        provider = OpenAICompatibleProvider(
            model="anthropic/claude-3.5-haiku",
            api_key=os.getenv("OPENROUTER_API_KEY"),
        )
    """

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        base_url: str | None = OPENROUTER_BASE_URL,
        timeout: float = 600.0,
        name: str = "openrouter",
        client: Any = None,
    ) -> None:
        self._model = model
        self._name = name
        if client is None:
            try:
                client = OpenAI(base_url=base_url, api_key=api_key, timeout=timeout)
            except OpenAIError as exc:
                raise ProviderError(f"Cannot initialise {name} client: {exc}") from exc
        self._client = client

    def metadata(self) -> ProviderMetadata:
        return ProviderMetadata(
            name=self._name,
            models=[self._model],
            capabilities=ProviderCapabilities(streaming=True, tools=True, vision=False),
        )

    @staticmethod
    def _to_wire(message: Message) -> dict[str, Any]:
        wire: dict[str, Any] = {"role": message.role.value, "content": message.content}
        if message.tool_calls:
            wire["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.function.name, "arguments": call.function.arguments},
                }
                for call in message.tool_calls
            ]
        if message.tool_call_id:
            wire["tool_call_id"] = message.tool_call_id
        if message.name and message.role != Role.TOOL:
            wire["name"] = message.name
        return wire

    def _request(self, messages: list[Message], tools: list[ToolDefinition]) -> dict[str, Any]:
        request: dict[str, Any] = {
            "model": self._model,
            "messages": [self._to_wire(m) for m in messages],
        }
        if tools:
            request["tools"] = [_tool_schema(t) for t in tools]
        return request

    def complete(self, messages: list[Message], tools: list[ToolDefinition]) -> Message:
        try:
            response = self._client.chat.completions.create(**self._request(messages, tools))
        except OpenAIError as exc:
            raise ProviderError(f"{self._name} API error: {exc}") from exc

        if not response.choices:
            raise ProviderError(f"{self._name} returned no choices.")
        reply = response.choices[0].message

        tool_calls = None
        if reply.tool_calls:
            tool_calls = [
                ToolCall(
                    id=call.id,
                    function=FunctionCall(
                        name=call.function.name,
                        arguments=call.function.arguments or "{}",
                    ),
                )
                for call in reply.tool_calls
            ]
        return Message.assistant(reply.content or "", tool_calls=tool_calls)

    def complete_streaming(
        self, messages: list[Message], tools: list[ToolDefinition]
    ) -> Iterator[Message]:
        try:
            stream = self._client.chat.completions.create(
                stream=True, **self._request(messages, tools)
            )
            for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield Message.assistant(delta)
        except OpenAIError as exc:
            raise ProviderError(f"{self._name} API error: {exc}") from exc


# ---------------------------------------------------------------------------
# Ollama backend
# ---------------------------------------------------------------------------


class OllamaProvider:
    """Local Ollama server via /api/chat."""

    def __init__(
        self,
        model: str,
        base_url: str = OLLAMA_BASE_URL,
        timeout: float = 600.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._model = model
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)

    def metadata(self) -> ProviderMetadata:
        return ProviderMetadata(
            name="ollama",
            models=[self._model],
            capabilities=ProviderCapabilities(streaming=True, tools=True, vision=False),
        )

    @staticmethod
    def _to_wire(message: Message) -> dict[str, Any]:
        wire: dict[str, Any] = {"role": message.role.value, "content": message.content}
        if message.tool_calls:
            # Ollama expects argument objects, not JSON strings.
            wire["tool_calls"] = [
                {
                    "function": {
                        "name": call.function.name,
                        "arguments": json.loads(call.function.arguments or "{}"),
                    }
                }
                for call in message.tool_calls
            ]
        if message.role == Role.TOOL and message.name:
            wire["tool_name"] = message.name
        return wire

    def _request(
        self, messages: list[Message], tools: list[ToolDefinition], stream: bool
    ) -> dict[str, Any]:
        request: dict[str, Any] = {
            "model": self._model,
            "messages": [self._to_wire(m) for m in messages],
            "stream": stream,
        }
        if tools:
            request["tools"] = [_tool_schema(t) for t in tools]
        return request

    @staticmethod
    def _from_wire(data: dict[str, Any]) -> Message:
        reply = data.get("message") or {}
        tool_calls = None
        if reply.get("tool_calls"):
            tool_calls = [
                ToolCall(
                    id=f"call_{uuid.uuid4().hex[:12]}",
                    function=FunctionCall(
                        name=call["function"]["name"],
                        arguments=json.dumps(call["function"].get("arguments") or {}),
                    ),
                )
                for call in reply["tool_calls"]
            ]
        return Message.assistant(reply.get("content") or "", tool_calls=tool_calls)

    def complete(self, messages: list[Message], tools: list[ToolDefinition]) -> Message:
        try:
            response = self._client.post("/api/chat", json=self._request(messages, tools, False))
        except httpx.HTTPError as exc:
            raise ProviderError(f"Ollama network error: {exc}") from exc

        if not response.is_success:
            raise ProviderError(f"Ollama API error: {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(f"Ollama returned malformed JSON: {exc}") from exc
        try:
            return self._from_wire(data)
        except (KeyError, TypeError) as exc:
            raise ProviderError(f"Ollama response has unexpected shape: {exc}") from exc

    def complete_streaming(
        self, messages: list[Message], tools: list[ToolDefinition]
    ) -> Iterator[Message]:
        try:
            with self._client.stream(
                "POST", "/api/chat", json=self._request(messages, tools, True)
            ) as response:
                if not response.is_success:
                    raise ProviderError(f"Ollama API error: {response.status_code}")
                for line in response.iter_lines():
                    if not line.strip():
                        continue
                    try:
                        chunk = json.loads(line)
                    except json.JSONDecodeError as exc:
                        raise ProviderError(f"JSON parse error: {exc}") from exc
                    content = (chunk.get("message") or {}).get("content")
                    if content:
                        yield Message.assistant(content)
                    if chunk.get("done"):
                        break
        except httpx.HTTPError as exc:
            raise ProviderError(f"Ollama network error: {exc}") from exc


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_provider(config: ProviderConfig) -> Provider:
    kind = config.provider_type.lower()
    model = config.model or DEFAULT_MODELS.get(kind)

    if kind == "openrouter":
        return OpenAICompatibleProvider(
            model=model,
            api_key=os.getenv(config.api_key_env),
            base_url=config.base_url or OPENROUTER_BASE_URL,
            timeout=config.timeout_seconds,
            name="openrouter",
        )
    if kind == "openai":
        return OpenAICompatibleProvider(
            model=model,
            api_key=os.getenv(config.api_key_env) or os.getenv("OPENAI_API_KEY"),
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            name="openai",
        )
    if kind == "ollama":
        return OllamaProvider(
            model=model,
            base_url=config.base_url or OLLAMA_BASE_URL,
            timeout=config.timeout_seconds,
        )
    raise ProviderError(f"Unknown provider: {config.provider_type}")
