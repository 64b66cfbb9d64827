# tools.py
# Built-in tool implementations.
# The agent never calls these directly — they are reached through the
# registry returned by default_registry().

import os
import subprocess
from typing import Any

from plan_agent.models import ToolDefinition, ToolResult
from plan_agent.registry import ToolRegistry


def _tool_read_file(args: dict[str, Any]) -> ToolResult:
    path = str(args.get("path", "")).strip()
    if not path:
        return ToolResult.failure("Error: no path provided.")
    if not os.path.isfile(path):
        return ToolResult.failure(f"File not found: {path}")
    try:
        with open(path, encoding="utf-8") as fh:
            return ToolResult.success(fh.read())
    except (OSError, UnicodeDecodeError) as e:
        return ToolResult.failure(f"Failed to read file: {e}")


def _tool_write_file(args: dict[str, Any]) -> ToolResult:
    path = str(args.get("path", "")).strip()
    content = args.get("content")
    if not path:
        return ToolResult.failure("Error: no path provided.")
    if not isinstance(content, str):
        return ToolResult.failure("Error: no content provided.")
    try:
        os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(content)
    except OSError as e:
        return ToolResult.failure(f"Failed to write file: {e}")
    return ToolResult.success(f"Wrote {len(content)} bytes to {path}.")


def _tool_git_status(args: dict[str, Any]) -> ToolResult:
    cwd = args.get("path") or None
    try:
        proc = subprocess.run(
            ["git", "status"],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=30,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        return ToolResult.failure(f"git status failed: {e}")
    if proc.returncode != 0:
        return ToolResult.failure(proc.stderr.strip() or f"git exited with {proc.returncode}")
    return ToolResult.success(proc.stdout)


READ_FILE = ToolDefinition(
    name="read_file",
    description="Read contents of a file",
    parameters={
        "type": "object",
        "properties": {"path": {"type": "string", "description": "Path to the file"}},
        "required": ["path"],
    },
)

WRITE_FILE = ToolDefinition(
    name="write_file",
    description="Write content to a file",
    parameters={
        "type": "object",
        "properties": {
            "path": {"type": "string", "description": "Path to the file"},
            "content": {"type": "string", "description": "Content to write"},
        },
        "required": ["path", "content"],
    },
)

GIT_STATUS = ToolDefinition(
    name="git_status",
    description="Get git status of the working tree",
    parameters={
        "type": "object",
        "properties": {"path": {"type": "string", "description": "Repository directory"}},
        "required": [],
    },
)

TOOLS: dict[str, tuple[ToolDefinition, Any]] = {
    "read_file":  (READ_FILE, _tool_read_file),
    "write_file": (WRITE_FILE, _tool_write_file),
    "git_status": (GIT_STATUS, _tool_git_status),
}


def default_registry() -> ToolRegistry:
    registry = ToolRegistry()
    for definition, executor in TOOLS.values():
        registry.register(definition, executor)
    return registry
