# run.py
# Entry point. Config and wiring only. No logic lives here.
#
#   plan-agent run plans/release.yaml
#   plan-agent chat -m "Summarize the working tree status."
#   plan-agent generate -c how_to -t "Writing a plan"
#   plan-agent --config ci.yaml run plans/release.yaml

import threading
from collections.abc import Iterator
from contextlib import contextmanager

import typer

from plan_agent import display
from plan_agent.agent import Agent
from plan_agent.config import Config
from plan_agent.docgen import DOCS_SYSTEM_PROMPT, DocGenerator, DocumentWriter, document_filename
from plan_agent.errors import PlanAgentError
from plan_agent.parser import load_plan
from plan_agent.plan import DocCategory
from plan_agent.scanner import RepositoryScanner
from plan_agent.workflow import WorkflowExecutor

EXIT_COMMANDS = {"exit", "quit"}

app = typer.Typer(
    help="Run dependency-ordered plans with a tool-calling agent.",
    add_completion=False,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@contextmanager
def _halt_on_error() -> Iterator[None]:
    try:
        yield
    except PlanAgentError as exc:
        display.halt(str(exc))
        raise typer.Exit(code=1) from exc


@contextmanager
def _deadline(seconds: float) -> Iterator[threading.Event]:
    """Cancellation signal that fires once `seconds` have passed."""
    cancel = threading.Event()
    timer = threading.Timer(seconds, cancel.set)
    timer.daemon = True
    timer.start()
    try:
        yield cancel
    finally:
        timer.cancel()


def _build_agent(config: Config, system_prompt: str | None = None) -> Agent:
    agent = Agent.from_config(config, system_prompt=system_prompt)
    metadata = agent.provider.metadata()
    display.banner(metadata.name, ", ".join(metadata.models))
    return agent


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.callback()
def options(
    ctx: typer.Context,
    config: str = typer.Option("config.yaml", "--config", help="Path to config.yaml."),
):
    ctx.obj = config


@app.command()
def run(
    ctx: typer.Context,
    plan_path: str = typer.Argument(..., metavar="PLAN", help="Plan file (.yaml, .json or .md)."),
):
    """Execute a plan file."""
    with _halt_on_error():
        plan = load_plan(plan_path)
        plan.validate_plan(check_cycles=True)
        display.plan_loaded(plan)

        config = Config.load(ctx.obj)
        agent = _build_agent(config)
        with _deadline(config.agent.timeout_seconds) as cancel:
            WorkflowExecutor(agent, plan).execute(cancel=cancel)


@app.command()
def chat(
    ctx: typer.Context,
    message: str = typer.Option(None, "--message", "-m", help="Send one message and exit."),
):
    """Talk to the agent directly."""
    with _halt_on_error():
        config = Config.load(ctx.obj)
        agent = _build_agent(config)

        if message:
            with _deadline(config.agent.timeout_seconds) as cancel:
                display.final_result(agent.run(message, cancel=cancel))
            return

        while True:
            try:
                line = display.console.input("[bold cyan]you ›[/bold cyan] ").strip()
            except EOFError:
                break
            if not line:
                continue
            if line.lower() in EXIT_COMMANDS:
                break
            with _deadline(config.agent.timeout_seconds) as cancel:
                display.final_result(agent.run(line, cancel=cancel))


@app.command()
def generate(
    ctx: typer.Context,
    category: DocCategory = typer.Option(..., "--category", "-c", help="Diátaxis category."),
    topic: str = typer.Option(..., "--topic", "-t", help="What the document is about."),
    repository: str = typer.Option(".", "--repository", "-r", help="Repository to describe."),
    output: str = typer.Option(None, "--output", "-o", help="Documentation root (default: documentation.output_dir)."),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace an existing document."),
):
    """Generate one documentation page from the repository."""
    with _halt_on_error():
        config = Config.load(ctx.obj)
        display.generation_start(category.label, topic)

        writer = DocumentWriter(output or config.documentation.output_dir, overwrite)
        filename = document_filename(topic)
        writer.ensure_writable(category, filename)

        scanner = RepositoryScanner(repository, config.repository.ignore_patterns)
        files = scanner.scan()
        display.repository_scanned(repository, len(files))

        agent = _build_agent(config, system_prompt=DOCS_SYSTEM_PROMPT)
        with _deadline(config.agent.timeout_seconds) as cancel:
            content = DocGenerator(agent).generate(category, topic, scanner.summary(files), cancel=cancel)

        path = writer.write(category, filename, content)
        display.document_written(str(path))


if __name__ == "__main__":
    app()
