import json

import pytest

from plan_agent.errors import PlanParseError, PlanValidationError
from plan_agent.parser import extract_fenced_block, load_plan, parse_plan
from plan_agent.plan import AgentTask, DocCategory, GenerateDocumentation, Plan, ScanRepository

PLAN_DICT = {
    "name": "Release notes",
    "description": "Draft release notes from the working tree.",
    "steps": [
        {"id": "scan", "description": "Scan", "action": {"type": "scan_repository"}},
        {
            "id": "notes",
            "description": "Write notes",
            "action": {"type": "agent_task", "params": {"prompt": "Summarize changes."}},
            "dependencies": ["scan"],
        },
        {
            "id": "docs",
            "description": "How-to",
            "action": {"type": "generate_docs", "params": {"category": "how_to"}},
            "dependencies": ["notes"],
        },
    ],
    "deliverables": [{"name": "notes", "description": "Release notes", "path": "NOTES.md"}],
}

PLAN_YAML = """\
name: Release notes
description: Draft release notes from the working tree.
steps:
  - id: scan
    description: Scan
    action:
      type: scan_repository
  - id: notes
    description: Write notes
    action:
      type: agent_task
      params:
        prompt: Summarize changes.
    dependencies: [scan]
  - id: docs
    description: How-to
    action:
      type: generate_docs
      params:
        category: how_to
    dependencies:
      - notes
deliverables:
  - name: notes
    description: Release notes
    path: NOTES.md
"""


# ---------------------------------------------------------------------------
# Front-ends
# ---------------------------------------------------------------------------

def test_json_and_yaml_decode_to_same_plan():
    from_json = parse_plan(json.dumps(PLAN_DICT), "json")
    from_yaml = parse_plan(PLAN_YAML, "yaml")

    assert from_json.name == from_yaml.name
    assert len(from_json.steps) == len(from_yaml.steps) == 3
    assert from_json == from_yaml

def test_actions_are_typed():
    plan = parse_plan(PLAN_YAML, "yml")

    assert isinstance(plan.steps[0].action, ScanRepository)
    assert isinstance(plan.steps[1].action, AgentTask)
    assert plan.steps[1].action.prompt == "Summarize changes."
    assert isinstance(plan.steps[2].action, GenerateDocumentation)
    assert plan.steps[2].action.category is DocCategory.HOW_TO
    assert plan.deliverables[0].path == "NOTES.md"

def test_flat_action_form_is_accepted():
    plan = Plan.model_validate(
        {"name": "p", "steps": [{"id": "a", "action": {"type": "agent_task", "prompt": "hi"}}]}
    )
    assert plan.steps[0].action == AgentTask(prompt="hi")

def test_markdown_yaml_block():
    text = f"# Plan\n\nSome prose first.\n\n```yaml\n{PLAN_YAML}```\n\nTrailing text.\n"
    assert parse_plan(text, "md") == parse_plan(PLAN_YAML, "yaml")

def test_markdown_json_block():
    text = f"Intro\n```json\n{json.dumps(PLAN_DICT, indent=2)}\n```\n"
    assert parse_plan(text, "markdown").name == "Release notes"

def test_markdown_untagged_block_reads_as_yaml():
    language, body = extract_fenced_block("```\nname: x\n```")
    assert language == ""
    assert parse_plan("```\nname: x\nsteps: []\n```", "md").name == "x"

def test_markdown_fence_with_info_string():
    language, body = extract_fenced_block("```yaml title=plan\nname: x\n```")
    assert language == "yaml"
    assert body == "name: x"

    text = f"```json {{.plan}}\n{json.dumps(PLAN_DICT)}\n```\n"
    assert parse_plan(text, "md").name == "Release notes"

def test_markdown_without_block():
    with pytest.raises(PlanParseError, match="No code block"):
        parse_plan("Just some prose.", "md")

@pytest.mark.parametrize(
    "content,fmt",
    [
        ("{ broken json }", "json"),
        ("name: [unclosed", "yaml"),
        ("- just\n- a list", "yaml"),
        ('{"name": "x", "steps": [{"id": "a", "action": {"type": "teleport"}}]}', "json"),
        ('{"steps": []}', "json"),
    ],
)
def test_invalid_content(content, fmt):
    with pytest.raises(PlanParseError):
        parse_plan(content, fmt)

def test_unsupported_format():
    with pytest.raises(PlanParseError, match="Unsupported format"):
        parse_plan("name: x", "toml")

def test_load_plan_uses_extension(tmp_path):
    json_file = tmp_path / "plan.json"
    json_file.write_text(json.dumps(PLAN_DICT), encoding="utf-8")
    yaml_file = tmp_path / "plan.yml"
    yaml_file.write_text(PLAN_YAML, encoding="utf-8")
    other_file = tmp_path / "plan.txt"
    other_file.write_text(PLAN_YAML, encoding="utf-8")

    assert load_plan(json_file) == load_plan(yaml_file) == load_plan(other_file)

def test_load_plan_missing_file(tmp_path):
    with pytest.raises(PlanParseError, match="Cannot read"):
        load_plan(tmp_path / "absent.yaml")

# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _plan(*steps: tuple[str, list[str]]) -> Plan:
    return Plan.model_validate(
        {
            "name": "v",
            "steps": [
                {"id": sid, "action": {"type": "analyze_code"}, "dependencies": deps}
                for sid, deps in steps
            ],
        }
    )

def test_valid_plan_passes():
    _plan(("a", []), ("b", ["a"]), ("c", ["a", "b"])).validate_plan(check_cycles=True)

def test_duplicate_ids_rejected():
    with pytest.raises(PlanValidationError, match="Duplicate step ID: a"):
        _plan(("a", []), ("a", [])).validate_plan()

def test_unknown_dependency_rejected():
    with pytest.raises(PlanValidationError, match="unknown step ghost"):
        _plan(("a", ["ghost"])).validate_plan()

def test_cycle_only_rejected_when_requested():
    plan = _plan(("x", ["y"]), ("y", ["x"]))

    plan.validate_plan()
    with pytest.raises(PlanValidationError, match="cycle"):
        plan.validate_plan(check_cycles=True)

def test_find_cycle():
    assert _plan(("x", ["y"]), ("y", ["x"])).find_cycle() == ["x", "y", "x"]
    assert _plan(("a", ["a"])).find_cycle() == ["a", "a"]
    assert _plan(("a", []), ("b", ["a"]), ("c", ["b", "ghost"])).find_cycle() is None
