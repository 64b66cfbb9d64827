# context.py
# Conversation log with a token budget.
#
# The system prompt lives outside the log: it is never counted against the
# budget and never evicted. Eviction removes whole messages, oldest first.

from plan_agent.models import Message

# Coarse heuristic, not a tokenizer: one token per four characters of content.
CHARS_PER_TOKEN = 4


class ConversationContext:
    """
    Ordered, append-only message log bounded by `max_tokens`.

    The context itself is not thread-safe; the owning Agent serializes all
    access to it.
    """

    def __init__(self, system_prompt: str, max_tokens: int = 4096) -> None:
        self._system_prompt = system_prompt
        self._max_tokens = max_tokens
        self._messages: list[Message] = []

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    @property
    def max_tokens(self) -> int:
        return self._max_tokens

    def __len__(self) -> int:
        return len(self._messages)

    def add(self, message: Message) -> None:
        """Append unconditionally. Callers enforce the budget with compact_if_needed()."""
        self._messages.append(message)

    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def clear(self) -> None:
        self._messages.clear()

    def estimated_tokens(self) -> int:
        return sum(len(m.content) for m in self._messages) // CHARS_PER_TOKEN

    def compact_if_needed(self) -> bool:
        """
        Drop the oldest messages until the estimate fits the budget or the log
        is empty. A single message larger than the whole budget is dropped too,
        so the log can end up empty. Returns True if anything was removed.
        """
        if self.estimated_tokens() <= self._max_tokens:
            return False

        while self._messages and self.estimated_tokens() > self._max_tokens:
            self._messages.pop(0)
        return True
