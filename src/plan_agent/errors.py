# errors.py
# Failure taxonomy for the agent and workflow loops.
#
# Every fatal condition is a typed exception carrying a readable message.
# Nothing in the core catches these to log and continue; callers decide.


class PlanAgentError(Exception):
    """Root of every error raised by plan_agent."""


# ---------------------------------------------------------------------------
# Agent loop
# ---------------------------------------------------------------------------


class AgentError(PlanAgentError):
    """Raised when an agent run cannot complete."""


class ContextLockPoisonedError(AgentError):
    """A previous holder of the context lock failed mid-mutation. Always fatal."""


class ToolNotFoundError(AgentError):
    """Raised when the model requests a tool absent from the registry."""


class InvalidArgumentsError(AgentError):
    """Raised when tool-call arguments do not decode to a JSON object."""


class IterationLimitExceeded(AgentError):
    """Raised when the model keeps requesting tools past the iteration ceiling."""


class OperationCancelledError(AgentError):
    """Raised when the caller's cancellation signal is observed."""


# ---------------------------------------------------------------------------
# Workflow loop
# ---------------------------------------------------------------------------


class WorkflowError(PlanAgentError):
    """Raised when a plan cannot be loaded or executed."""


class DeadlockError(WorkflowError):
    """No step is ready but the plan is incomplete (cycle or unsatisfiable dependency)."""

    def __init__(self, pending: list[str]) -> None:
        self.pending = pending
        super().__init__(
            "Deadlock or missing dependencies detected; "
            f"pending steps: {', '.join(pending)}"
        )


class StepExecutionError(WorkflowError):
    """A step's action failed. The plan run is aborted."""

    def __init__(self, step_id: str, reason: str) -> None:
        self.step_id = step_id
        super().__init__(f"Step '{step_id}' failed: {reason}")


class PlanValidationError(WorkflowError):
    """Raised when a plan violates its structural invariants."""


class PlanParseError(WorkflowError):
    """Raised when plan text cannot be decoded into a Plan."""


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


class ProviderError(PlanAgentError):
    """Raised when a model backend call fails or cannot be constructed."""


class ConfigError(PlanAgentError):
    """Raised when configuration cannot be read or validated."""


class RepositoryError(PlanAgentError):
    """Raised when a repository cannot be scanned."""


class DocumentationError(PlanAgentError):
    """Raised when a document cannot be generated or written."""
