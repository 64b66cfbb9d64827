# models.py
# Data contracts for the conversation and tool layers.
# No business logic lives here — pure schema and validation.

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class FunctionCall(BaseModel):
    """Name and JSON-encoded arguments of a requested tool invocation."""

    model_config = ConfigDict(frozen=True)

    name: str
    arguments: str = Field(default="{}", description="JSON-encoded argument object.")


class ToolCall(BaseModel):
    """A tool invocation requested by the model. Only providers construct these."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Correlates the later tool-result message.")
    function: FunctionCall


class Message(BaseModel):
    """One entry of a conversation. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str = ""
    name: str | None = None
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str, tool_calls: list[ToolCall] | None = None) -> "Message":
        return cls(role=Role.ASSISTANT, content=content, tool_calls=tool_calls)

    @classmethod
    def tool_result(cls, call: ToolCall, content: str) -> "Message":
        return cls(
            role=Role.TOOL,
            content=content,
            tool_call_id=call.id,
            name=call.function.name,
        )


class ToolDefinition(BaseModel):
    """Schema advertised to the provider for one tool."""

    name: str
    description: str
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []},
        description="JSON schema of the argument object.",
    )


class ToolResult(BaseModel):
    """Outcome of a tool invocation: exactly one of output or error."""

    model_config = ConfigDict(frozen=True)

    output: str | None = None
    error: str | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "ToolResult":
        if (self.output is None) == (self.error is None):
            raise ValueError("ToolResult requires exactly one of 'output' or 'error'.")
        return self

    @classmethod
    def success(cls, output: str) -> "ToolResult":
        return cls(output=output)

    @classmethod
    def failure(cls, error: str) -> "ToolResult":
        return cls(error=error)

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def text(self) -> str:
        """The payload fed back to the model, whichever side is set."""
        return self.error if self.error is not None else self.output


class ProviderCapabilities(BaseModel):
    streaming: bool = False
    tools: bool = False
    vision: bool = False


class ProviderMetadata(BaseModel):
    name: str
    models: list[str] = Field(default_factory=list)
    capabilities: ProviderCapabilities = Field(default_factory=ProviderCapabilities)
