# display.py
# All terminal output for the agent and workflow loops.
#
# This module owns presentation entirely. agent.py and workflow.py never
# format strings; they call named functions here. Swap this file to
# change the entire UI.
#
# Colour language:
#   cyan    — scheduling / routing events
#   blue    — model calls and responses
#   magenta — tool calls and results
#   green   — success / confirmed
#   red     — failures, halts

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from plan_agent.models import ToolResult
from plan_agent.plan import Plan, WorkflowStep

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: str, max_len: int = 120) -> str:
    # Model and tool text may contain square brackets; never let rich read them as markup.
    if len(value) > max_len:
        return escape(value[:max_len]) + "…"
    return escape(value)


def _action_summary(step: WorkflowStep) -> str:
    action = step.action
    detail = getattr(action, "prompt", None) or getattr(action, "command", None)
    if detail is None and hasattr(action, "category"):
        detail = action.category.value
    return f"{action.type} ({_mono(detail, 40)})" if detail else action.type


# ---------------------------------------------------------------------------
# Session entry
# ---------------------------------------------------------------------------


def banner(provider: str, model: str) -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Plan Agent[/bold cyan]\n"
            "[dim]Dependency-ordered workflows with a tool-calling agent[/dim]\n\n"
            f"[dim]Provider :[/dim] [white]{escape(provider)}[/white]\n"
            f"[dim]Model    :[/dim] [white]{escape(model)}[/white]",
            border_style="cyan",
            padding=(1, 4),
        )
    )


def prompt_received(prompt: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[white]{_mono(prompt, 400)}[/white]",
            title=_label("USER PROMPT", "cyan"),
            border_style="cyan",
            padding=(0, 2),
        )
    )


# ---------------------------------------------------------------------------
# Agent loop
# ---------------------------------------------------------------------------


def agent_iteration(iteration: int, limit: int) -> None:
    console.print(f"  [blue]↳ Model call[/blue] [dim]{iteration}/{limit}[/dim]…")


def model_response(content: str, tool_calls: int) -> None:
    if tool_calls:
        console.print(f"  [blue]Model[/blue]    [dim]requested {tool_calls} tool call(s)[/dim]")
    else:
        console.print(f"  [blue]Model[/blue]    [white]{_mono(content, 140)}[/white]")


def tool_call(name: str, arguments: str) -> None:
    console.print(
        f"  [magenta]Tool[/magenta]     [bold white]{escape(name)}[/bold white]"
        f"  [dim]{_mono(arguments, 100)}[/dim]"
    )


def tool_result(result: ToolResult) -> None:
    if result.is_error:
        console.print(f"  [magenta]Result[/magenta]   [red]{_mono(result.text, 140)}[/red]")
    else:
        console.print(f"  [magenta]Result[/magenta]   [white]{_mono(result.text, 140)}[/white]")


def context_compacted(remaining: int) -> None:
    console.print(f"  [dim yellow]Context over budget, evicted oldest messages, {remaining} left.[/dim yellow]")


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------


def plan_loaded(plan: Plan) -> None:
    console.print()
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="cyan",
        show_header=True,
        header_style="bold cyan",
        padding=(0, 1),
    )
    table.add_column("ID", style="bold white", width=14)
    table.add_column("Action", style="dim white", width=36)
    table.add_column("Depends on", width=18)
    table.add_column("Description", style="white")

    for step in plan.steps:
        table.add_row(
            escape(step.id),
            _action_summary(step),
            escape(", ".join(step.dependencies)) or "—",
            escape(step.description),
        )

    console.print(
        Panel(
            table,
            title=_label(f"PLAN: {plan.name}", "cyan"),
            subtitle=f"[dim]{escape(plan.description)}[/dim]" if plan.description else None,
            border_style="cyan",
            padding=(0, 1),
        )
    )


def execution_start(total: int) -> None:
    console.print()
    console.print(Rule(f"[cyan]WORKFLOW: {total} step(s)[/cyan]", style="cyan"))


def round_start(round_no: int, ready: list[str]) -> None:
    console.print()
    console.print(f"[bold cyan]  ROUND {round_no}[/bold cyan]  [dim]ready: {escape(', '.join(ready))}[/dim]")


def step_start(step: WorkflowStep) -> None:
    console.print(f"  [cyan]▶ {escape(step.id)}[/cyan]  [white]{_action_summary(step)}[/white]")


def step_delegated(step: WorkflowStep) -> None:
    console.print(f"  [dim]  {step.action.type} is handled outside the scheduler, nothing to run.[/dim]")


def step_done(step_id: str) -> None:
    console.print(f"  [bold green]✓ {escape(step_id)}[/bold green]")


def workflow_done(plan_name: str, completed: list[str], rounds: int) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold green]{len(completed)} step(s) completed in {rounds} round(s).[/bold green]\n"
            f"[dim]{escape(' → '.join(completed))}[/dim]",
            title=_label(f"DONE: {plan_name}", "green"),
            border_style="green",
            padding=(0, 2),
        )
    )


# ---------------------------------------------------------------------------
# Documentation
# ---------------------------------------------------------------------------


def generation_start(category: str, topic: str) -> None:
    console.print()
    console.print(Rule(f"[cyan]GENERATE: {escape(category)} / {escape(topic)}[/cyan]", style="cyan"))


def repository_scanned(root: str, files: int) -> None:
    console.print(f"  [cyan]Scanned[/cyan]  [white]{escape(root)}[/white]  [dim]{files} file(s)[/dim]")


def document_written(path: str) -> None:
    console.print(f"  [bold green]✓ Wrote {escape(path)}[/bold green]")


# ---------------------------------------------------------------------------
# Final result
# ---------------------------------------------------------------------------


def final_result(result: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[white]{escape(result)}[/white]",
            title=_label("RESULT", "green"),
            border_style="green",
            padding=(1, 2),
        )
    )
    console.print()


def halt(reason: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold white]{escape(reason)}[/bold white]",
            title=_label("HALT", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )
    console.print()
