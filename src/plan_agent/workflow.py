# workflow.py
# Round-based dependency scheduler.
#
# Each round recomputes the ready set (incomplete steps whose dependencies
# are all complete) and runs it sequentially in plan order. Readiness is
# recomputed after every round rather than precomputed, so steps unblocked
# by a side-effecting step become visible to the next round.

import threading
from typing import assert_never

from pydantic import BaseModel, Field

from plan_agent import display
from plan_agent.agent import Agent
from plan_agent.errors import DeadlockError, OperationCancelledError, StepExecutionError
from plan_agent.plan import (
    AgentTask,
    AnalyzeCode,
    ExecuteCommand,
    GenerateDocumentation,
    Plan,
    ScanRepository,
    WorkflowStep,
)


class WorkflowReport(BaseModel):
    """Summary of a completed plan run."""

    plan_name: str
    completed: list[str] = Field(default_factory=list, description="Step ids in completion order.")
    results: dict[str, str] = Field(default_factory=dict, description="Agent answers keyed by step id.")
    rounds: int = 0


class WorkflowExecutor:
    def __init__(self, agent: Agent, plan: Plan) -> None:
        self._agent = agent
        self._plan = plan
        self._completed: list[str] = []
        self._results: dict[str, str] = {}

    @property
    def plan(self) -> Plan:
        return self._plan

    @property
    def completed(self) -> list[str]:
        return list(self._completed)

    @property
    def results(self) -> dict[str, str]:
        return dict(self._results)

    def ready_steps(self) -> list[WorkflowStep]:
        done = set(self._completed)
        return [
            step
            for step in self._plan.steps
            if step.id not in done and all(dep in done for dep in step.dependencies)
        ]

    def execute(self, cancel: threading.Event | None = None) -> WorkflowReport:
        """
        Run every step once its dependencies are complete.

        Raises DeadlockError when no step is ready but some remain (a cycle
        or a dependency that can never complete), StepExecutionError on the
        first failing step. Completed steps are never rolled back.
        """
        self._completed = []
        self._results = {}
        rounds = 0

        display.execution_start(len(self._plan.steps))

        while True:
            ready = self.ready_steps()
            if not ready:
                done = set(self._completed)
                pending = [step.id for step in self._plan.steps if step.id not in done]
                if pending:
                    raise DeadlockError(pending)
                break

            rounds += 1
            display.round_start(rounds, [step.id for step in ready])

            for step in ready:
                if cancel is not None and cancel.is_set():
                    raise OperationCancelledError(f"Workflow cancelled before step '{step.id}'.")
                self._execute_step(step, cancel)
                self._completed.append(step.id)
                display.step_done(step.id)

        display.workflow_done(self._plan.name, self._completed, rounds)
        return WorkflowReport(
            plan_name=self._plan.name,
            completed=list(self._completed),
            results=dict(self._results),
            rounds=rounds,
        )

    def _execute_step(self, step: WorkflowStep, cancel: threading.Event | None) -> None:
        display.step_start(step)
        action = step.action

        if isinstance(action, AgentTask):
            try:
                self._results[step.id] = self._agent.run(action.prompt, cancel=cancel)
            except OperationCancelledError:
                raise
            except Exception as exc:
                raise StepExecutionError(step.id, str(exc)) from exc
        elif isinstance(action, (ScanRepository, AnalyzeCode, GenerateDocumentation, ExecuteCommand)):
            # Carried out by external collaborators; a successful no-op here.
            display.step_delegated(step)
        else:
            assert_never(action)
