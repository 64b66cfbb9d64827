# parser.py
# Plan ingestion front-ends. JSON, YAML and fenced Markdown all decode to
# the same in-memory Plan; the executor never knows which one was used.

import json
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from plan_agent.errors import PlanParseError
from plan_agent.plan import Plan

# The language tag is the first word of the info string: ```yaml title=plan
_FENCE_OPEN = re.compile(r"^\s*```\s*([\w+-]*)")
_FENCE_CLOSE = re.compile(r"^\s*```\s*$")

_EXTENSIONS = {
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".md": "markdown",
    ".markdown": "markdown",
}


def _build(data: object) -> Plan:
    if not isinstance(data, dict):
        raise PlanParseError(f"Plan must be a mapping, got {type(data).__name__}.")
    try:
        return Plan.model_validate(data)
    except ValidationError as exc:
        raise PlanParseError(f"Plan content is invalid: {exc}") from exc


def parse_json(content: str) -> Plan:
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise PlanParseError(f"Plan JSON is malformed: {exc}") from exc
    return _build(data)


def parse_yaml(content: str) -> Plan:
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise PlanParseError(f"Plan YAML is malformed: {exc}") from exc
    return _build(data)


def extract_fenced_block(content: str) -> tuple[str, str]:
    """
    Return (language, body) of the first fenced code block in `content`.
    Raises PlanParseError when no non-empty block is found.
    """
    lines: list[str] = []
    language = ""
    in_block = False

    for line in content.splitlines():
        if not in_block:
            opened = _FENCE_OPEN.match(line)
            if opened:
                in_block = True
                language = opened.group(1).lower()
            continue
        if _FENCE_CLOSE.match(line):
            break
        lines.append(line)

    body = "\n".join(lines).strip()
    if not body:
        raise PlanParseError("No code block found in markdown.")
    return language, body


def parse_markdown(content: str) -> Plan:
    language, body = extract_fenced_block(content)
    # Untagged and non-JSON blocks are read as YAML.
    if language == "json":
        return parse_json(body)
    return parse_yaml(body)


def parse_plan(content: str, fmt: str) -> Plan:
    """Decode plan text with the front-end named by `fmt`."""
    fmt = fmt.lower().lstrip(".")
    if fmt == "json":
        return parse_json(content)
    if fmt in ("yaml", "yml"):
        return parse_yaml(content)
    if fmt in ("md", "markdown"):
        return parse_markdown(content)
    raise PlanParseError(f"Unsupported format: {fmt}")


def load_plan(path: str | Path) -> Plan:
    """Read a plan file, choosing the front-end from its extension (YAML by default)."""
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PlanParseError(f"Cannot read plan file {path}: {exc}") from exc
    return parse_plan(content, _EXTENSIONS.get(path.suffix.lower(), "yaml"))
