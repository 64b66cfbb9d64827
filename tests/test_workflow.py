import threading

import pytest

from plan_agent import display
from plan_agent.agent import Agent
from plan_agent.errors import (
    DeadlockError,
    OperationCancelledError,
    ProviderError,
    StepExecutionError,
)
from plan_agent.models import Message
from plan_agent.plan import Plan
from plan_agent.registry import ToolRegistry
from plan_agent.workflow import WorkflowExecutor

from fakes import ScriptedProvider


class RecordingAgent:
    """Stands in for Agent: records prompts and what was complete at each call."""

    def __init__(self, fail_on: str | None = None) -> None:
        self.executor: WorkflowExecutor | None = None
        self.prompts: list[str] = []
        self.completed_at_call: list[list[str]] = []
        self._fail_on = fail_on

    def run(self, prompt: str, cancel: threading.Event | None = None) -> str:
        self.prompts.append(prompt)
        if self.executor is not None:
            self.completed_at_call.append(self.executor.completed)
        if prompt == self._fail_on:
            raise ProviderError("backend down")
        return f"done: {prompt}"


def _task(step_id: str, *deps: str) -> dict:
    return {
        "id": step_id,
        "description": f"step {step_id}",
        "action": {"type": "agent_task", "params": {"prompt": step_id}},
        "dependencies": list(deps),
    }


def _plan(*steps: dict) -> Plan:
    return Plan.model_validate({"name": "test plan", "description": "", "steps": list(steps)})


def _executor(plan: Plan, agent: RecordingAgent) -> WorkflowExecutor:
    executor = WorkflowExecutor(agent, plan)
    agent.executor = executor
    return executor


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------

def test_dependencies_complete_before_dependents_start():
    # Declared in reverse so plan order alone cannot explain the result.
    plan = _plan(_task("C", "A", "B"), _task("B", "A"), _task("A"))
    agent = RecordingAgent()

    report = _executor(plan, agent).execute()

    assert agent.prompts == ["A", "B", "C"]
    assert agent.completed_at_call == [[], ["A"], ["A", "B"]]
    assert report.completed == ["A", "B", "C"]
    assert report.rounds == 3
    assert report.results == {"A": "done: A", "B": "done: B", "C": "done: C"}

def test_ready_steps_run_in_plan_order_within_a_round():
    plan = _plan(_task("B"), _task("A"), _task("C", "A", "B"))
    agent = RecordingAgent()

    report = _executor(plan, agent).execute()

    assert agent.prompts == ["B", "A", "C"]
    assert report.rounds == 2

def test_ready_steps_initial_round():
    plan = _plan(_task("A"), _task("B", "A"), _task("C"))
    executor = WorkflowExecutor(RecordingAgent(), plan)
    assert [s.id for s in executor.ready_steps()] == ["A", "C"]

def test_empty_plan_completes_immediately():
    report = WorkflowExecutor(RecordingAgent(), _plan()).execute()
    assert report.completed == []
    assert report.rounds == 0

def test_delegated_actions_are_noops():
    plan = Plan.model_validate(
        {
            "name": "docs",
            "steps": [
                {"id": "scan", "action": {"type": "scan_repository"}},
                {"id": "analyze", "action": {"type": "analyze_code"}, "dependencies": ["scan"]},
                {
                    "id": "docs",
                    "action": {"type": "generate_docs", "params": {"category": "reference"}},
                    "dependencies": ["analyze"],
                },
                {
                    "id": "lint",
                    "action": {"type": "execute_command", "params": {"command": "make lint"}},
                },
            ],
        }
    )
    agent = RecordingAgent()

    report = _executor(plan, agent).execute()

    assert agent.prompts == []
    assert report.completed == ["scan", "lint", "analyze", "docs"]
    assert report.results == {}

def test_bracketed_step_ids_are_printed_literally():
    plan = _plan(_task("docs[/api]"), _task("[bold]publish", "docs[/api]"))
    agent = RecordingAgent()

    report = _executor(plan, agent).execute()

    assert report.completed == ["docs[/api]", "[bold]publish"]

def test_plan_table_renders_bracketed_ids():
    plan = _plan(_task("docs[/api]"), _task("next", "docs[/api]"))
    with display.console.capture() as captured:
        display.plan_loaded(plan)
    assert "docs[/api]" in captured.get()

# ---------------------------------------------------------------------------
# Deadlock
# ---------------------------------------------------------------------------

def test_two_step_cycle_deadlocks():
    plan = _plan(_task("X", "Y"), _task("Y", "X"))
    agent = RecordingAgent()

    with pytest.raises(DeadlockError) as excinfo:
        _executor(plan, agent).execute()

    assert excinfo.value.pending == ["X", "Y"]
    assert agent.prompts == []

def test_dangling_dependency_deadlocks_after_reachable_steps():
    plan = _plan(_task("A"), _task("B", "ghost"))
    agent = RecordingAgent()
    executor = _executor(plan, agent)

    with pytest.raises(DeadlockError, match="B"):
        executor.execute()

    assert agent.prompts == ["A"]
    assert executor.completed == ["A"]

# ---------------------------------------------------------------------------
# Failure and cancellation
# ---------------------------------------------------------------------------

def test_step_failure_aborts_run_immediately():
    plan = _plan(_task("A"), _task("B"), _task("C"))
    agent = RecordingAgent(fail_on="B")
    executor = _executor(plan, agent)

    with pytest.raises(StepExecutionError) as excinfo:
        executor.execute()

    assert excinfo.value.step_id == "B"
    assert isinstance(excinfo.value.__cause__, ProviderError)
    assert agent.prompts == ["A", "B"]
    assert executor.completed == ["A"]

def test_cancelled_workflow_runs_nothing():
    cancel = threading.Event()
    cancel.set()
    agent = RecordingAgent()

    with pytest.raises(OperationCancelledError):
        _executor(_plan(_task("A")), agent).execute(cancel=cancel)
    assert agent.prompts == []

def test_rerun_starts_from_scratch():
    plan = _plan(_task("A"), _task("B", "A"))
    executor = _executor(plan, RecordingAgent())

    executor.execute()
    report = executor.execute()
    assert report.completed == ["A", "B"]

# ---------------------------------------------------------------------------
# With a real agent
# ---------------------------------------------------------------------------

def test_agent_task_prompt_reaches_provider_verbatim():
    provider = ScriptedProvider(Message.assistant("summary written"))
    agent = Agent(provider, "", ToolRegistry())
    plan = _plan(_task("summarize"))

    report = WorkflowExecutor(agent, plan).execute()

    assert report.results == {"summarize": "summary written"}
    assert provider.calls[0][0][-1] == Message.user("summarize")
