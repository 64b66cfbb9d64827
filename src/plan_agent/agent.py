# agent.py
# Bounded conversation / tool-call loop.
#
# Control flow per run():
#   user message → [snapshot → provider → append response
#   → tool calls? dispatch each → append results → repeat] → final answer
#
# The context lock is held only while snapshotting or appending. It is
# never held across the provider call or a tool invocation.

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from plan_agent import display
from plan_agent.config import Config
from plan_agent.context import ConversationContext
from plan_agent.errors import (
    ContextLockPoisonedError,
    IterationLimitExceeded,
    OperationCancelledError,
)
from plan_agent.models import Message, Role, ToolDefinition
from plan_agent.providers import Provider, create_provider
from plan_agent.registry import ToolDispatcher, ToolRegistry
from plan_agent.tools import default_registry

MAX_ITERATIONS = 5


def _check_cancelled(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelledError("Agent run cancelled by caller.")


def _drop_orphan_tool_results(messages: list[Message]) -> list[Message]:
    # Eviction is per message, so a tool result can outlive the assistant
    # turn that requested it. Backends reject a tool message with no
    # preceding tool call, so those are left out of the snapshot.
    requested: set[str] = set()
    kept = []
    for message in messages:
        if message.role == Role.ASSISTANT and message.tool_calls:
            requested.update(call.id for call in message.tool_calls)
        elif message.role == Role.TOOL and message.tool_call_id not in requested:
            continue
        kept.append(message)
    return kept


class Agent:
    """
    Drives one conversation against a Provider and a shared ToolRegistry.

    Example:
        agent = Agent(provider, "You are a release assistant.", default_registry())
        answer = agent.run("What changed since the last tag?")

    A model that keeps requesting tools is cut off after `max_iterations`
    provider calls with IterationLimitExceeded. Raise the ceiling rather
    than looping around run().
    """

    def __init__(
        self,
        provider: Provider,
        system_prompt: str,
        registry: ToolRegistry,
        max_tokens: int = 4096,
        max_iterations: int = MAX_ITERATIONS,
    ) -> None:
        self._provider = provider
        self._registry = registry
        self._dispatcher = ToolDispatcher(registry)
        self._context = ConversationContext(system_prompt, max_tokens)
        self._max_iterations = max_iterations
        self._lock = threading.Lock()
        self._poisoned = False

    @classmethod
    def from_config(
        cls,
        config: Config,
        registry: ToolRegistry | None = None,
        system_prompt: str | None = None,
    ) -> "Agent":
        return cls(
            provider=create_provider(config.provider),
            system_prompt=system_prompt if system_prompt is not None else config.agent.system_prompt,
            registry=registry if registry is not None else default_registry(),
            max_tokens=config.agent.max_tokens,
            max_iterations=config.agent.max_iterations,
        )

    @property
    def provider(self) -> Provider:
        return self._provider

    @property
    def context(self) -> ConversationContext:
        return self._context

    @property
    def max_iterations(self) -> int:
        return self._max_iterations

    # ------------------------------------------------------------------
    # Context access
    # ------------------------------------------------------------------

    @contextmanager
    def _locked(self) -> Iterator[ConversationContext]:
        with self._lock:
            if self._poisoned:
                raise ContextLockPoisonedError(
                    "Context lock poisoned: a previous mutation failed midway."
                )
            try:
                yield self._context
            except BaseException:
                self._poisoned = True
                raise

    def _append(self, message: Message) -> None:
        with self._locked() as context:
            context.add(message)
            compacted = context.compact_if_needed()
            remaining = len(context)
        if compacted:
            display.context_compacted(remaining)

    def _snapshot(self) -> tuple[list[Message], list[ToolDefinition]]:
        with self._locked() as context:
            messages = _drop_orphan_tool_results(list(context.messages()))
            system_prompt = context.system_prompt
        if system_prompt:
            messages.insert(0, Message.system(system_prompt))
        return messages, self._registry.list_tools()

    def history(self) -> tuple[Message, ...]:
        with self._locked() as context:
            return context.messages()

    def reset(self) -> None:
        with self._locked() as context:
            context.clear()

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(self, user_input: str, cancel: threading.Event | None = None) -> str:
        """
        Converse until the model answers without requesting tools.

        Tool failures are fed back to the model as tool messages. Unknown
        tools, undecodable arguments, provider errors, cancellation and the
        iteration ceiling abort the run by raising.
        """
        display.prompt_received(user_input)
        self._append(Message.user(user_input))

        for iteration in range(1, self._max_iterations + 1):
            display.agent_iteration(iteration, self._max_iterations)
            messages, tools = self._snapshot()

            _check_cancelled(cancel)
            response = self._provider.complete(messages, tools)
            _check_cancelled(cancel)

            self._append(response)
            display.model_response(response.content, len(response.tool_calls or []))

            if not response.tool_calls:
                return response.content

            for call in response.tool_calls:
                _check_cancelled(cancel)
                display.tool_call(call.function.name, call.function.arguments)
                result = self._dispatcher.execute(call)
                display.tool_result(result)
                self._append(Message.tool_result(call, result.text))

        raise IterationLimitExceeded(
            f"Max agent iterations reached ({self._max_iterations}) without a final answer."
        )
