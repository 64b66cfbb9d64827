# plan.py
# Declarative workflow model: named steps, a closed set of actions,
# and dependency edges between steps.

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_validator

from plan_agent.errors import PlanValidationError


class DocCategory(str, Enum):
    TUTORIAL = "tutorial"
    HOW_TO = "how_to"
    EXPLANATION = "explanation"
    REFERENCE = "reference"

    @property
    def label(self) -> str:
        return self.value.replace("_", "-")

    @property
    def directory(self) -> str:
        """Subdirectory of the documentation root that holds this category."""
        return "tutorials" if self is DocCategory.TUTORIAL else self.value


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


class ScanRepository(BaseModel):
    type: Literal["scan_repository"] = "scan_repository"


class AnalyzeCode(BaseModel):
    type: Literal["analyze_code"] = "analyze_code"


class GenerateDocumentation(BaseModel):
    type: Literal["generate_docs"] = "generate_docs"
    category: DocCategory


class ExecuteCommand(BaseModel):
    type: Literal["execute_command"] = "execute_command"
    command: str


class AgentTask(BaseModel):
    type: Literal["agent_task"] = "agent_task"
    prompt: str


Action = Annotated[
    Union[ScanRepository, AnalyzeCode, GenerateDocumentation, ExecuteCommand, AgentTask],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------


class Deliverable(BaseModel):
    """Informational record of an artifact the plan is expected to produce."""

    name: str
    description: str = ""
    path: str = ""


class WorkflowStep(BaseModel):
    id: str
    description: str = ""
    action: Action
    dependencies: list[str] = Field(default_factory=list)

    @field_validator("action", mode="before")
    @classmethod
    def _flatten_params(cls, value: Any) -> Any:
        # Serialized actions nest their payload: {"type": ..., "params": {...}}.
        if isinstance(value, dict) and isinstance(value.get("params"), dict):
            flat = {k: v for k, v in value.items() if k != "params"}
            flat.update(value["params"])
            return flat
        return value


class Plan(BaseModel):
    """A complete workflow: ordered steps plus informational deliverables."""

    name: str
    description: str = ""
    repository: str | None = None
    steps: list[WorkflowStep] = Field(default_factory=list)
    deliverables: list[Deliverable] = Field(default_factory=list)

    def step_ids(self) -> list[str]:
        return [step.id for step in self.steps]

    def validate_plan(self, check_cycles: bool = False) -> None:
        """
        Check the structural invariants that must hold before execution:
        step ids are unique and every dependency names an existing step.

        With check_cycles=True, also reject plans whose dependencies form a
        cycle. Without it, a cyclic plan only surfaces at run time as a
        DeadlockError.
        """
        seen: set[str] = set()
        for step in self.steps:
            if step.id in seen:
                raise PlanValidationError(f"Duplicate step ID: {step.id}")
            seen.add(step.id)

        for step in self.steps:
            for dep in step.dependencies:
                if dep not in seen:
                    raise PlanValidationError(f"Step {step.id} depends on unknown step {dep}")

        if check_cycles:
            cycle = self.find_cycle()
            if cycle:
                raise PlanValidationError(f"Dependency cycle: {' -> '.join(cycle)}")

    def find_cycle(self) -> list[str] | None:
        """
        Return the step ids of one dependency cycle (first id repeated at the
        end), or None when the dependency graph is acyclic. Dependencies on
        unknown steps are ignored here.
        """
        deps = {step.id: step.dependencies for step in self.steps}
        state: dict[str, int] = {}  # 1 = on the current path, 2 = finished
        path: list[str] = []

        def visit(node: str) -> list[str] | None:
            state[node] = 1
            path.append(node)
            for dep in deps.get(node, []):
                if dep not in deps:
                    continue
                if state.get(dep) == 1:
                    return path[path.index(dep):] + [dep]
                if dep not in state:
                    found = visit(dep)
                    if found:
                        return found
            path.pop()
            state[node] = 2
            return None

        for step_id in deps:
            if step_id not in state:
                found = visit(step_id)
                if found:
                    return found
        return None
