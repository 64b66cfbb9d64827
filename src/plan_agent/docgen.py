# docgen.py
# Diátaxis documentation generation.
#
#   topic + category + repository listing → prompt → agent → Markdown → file
#
# The agent writes the finished Markdown itself; there is no template
# rendering step. Each category gets a section outline in the prompt so
# documents of one kind share a shape.

import re
import threading
from pathlib import Path

from plan_agent.agent import Agent
from plan_agent.errors import DocumentationError
from plan_agent.plan import DocCategory

DOCS_SYSTEM_PROMPT = "You are a documentation expert."

SECTION_OUTLINES = {
    DocCategory.TUTORIAL: ["Introduction", "Prerequisites", "Steps (numbered)", "Conclusion"],
    DocCategory.HOW_TO: ["Problem", "Solution", "Steps", "Discussion"],
    DocCategory.EXPLANATION: ["Overview", "Concepts", "Architecture", "Design decisions"],
    DocCategory.REFERENCE: ["Description", "Usage", "API", "Examples"],
}

_OUTER_FENCE = re.compile(r"^```[\w-]*\s*\n(.*?)\n?```\s*$", re.DOTALL)


def document_filename(topic: str) -> str:
    """'Getting Started!' -> 'getting_started.md'"""
    slug = re.sub(r"[^\w-]+", "_", topic.strip().lower()).strip("_")
    if not slug:
        raise DocumentationError(f"Topic {topic!r} does not yield a file name.")
    return f"{slug}.md"


def clean_response(response: str) -> str:
    """Strip one code fence the model may have wrapped the whole document in."""
    text = response.strip()
    fenced = _OUTER_FENCE.match(text)
    if fenced:
        text = fenced.group(1).strip()
    return text


def build_prompt(category: DocCategory, topic: str, context: str) -> str:
    outline = "\n".join(f"- {section}" for section in SECTION_OUTLINES[category])
    return (
        f'Write a {category.label} document about "{topic}".\n\n'
        f"Repository context:\n{context}\n\n"
        f"Use a level-one heading for the title, then these sections in order:\n{outline}\n\n"
        "Guidelines:\n"
        f"- Clear and concise language at the depth a {category.label} calls for.\n"
        "- Code examples where relevant.\n"
        "- Return only the Markdown document, without a surrounding code fence."
    )


class DocGenerator:
    def __init__(self, agent: Agent) -> None:
        self._agent = agent

    def generate(
        self,
        category: DocCategory,
        topic: str,
        context: str,
        cancel: threading.Event | None = None,
    ) -> str:
        content = clean_response(self._agent.run(build_prompt(category, topic, context), cancel=cancel))
        if not content:
            raise DocumentationError(f"Agent returned an empty {category.label} document for '{topic}'.")
        return content + "\n"


class DocumentWriter:
    """
    Places documents under <output_dir>/<category directory>/.

    Existing files are left alone unless overwrite is set.
    """

    def __init__(self, output_dir: str | Path, overwrite: bool = False) -> None:
        self._output_dir = Path(output_dir)
        self._overwrite = overwrite

    def path_for(self, category: DocCategory, filename: str) -> Path:
        return (self._output_dir / category.directory / filename).with_suffix(".md")

    def ensure_writable(self, category: DocCategory, filename: str) -> Path:
        path = self.path_for(category, filename)
        if path.exists() and not self._overwrite:
            raise DocumentationError(f"File already exists: {path} (pass --overwrite to replace it)")
        return path

    def write(self, category: DocCategory, filename: str, content: str) -> Path:
        path = self.ensure_writable(category, filename)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise DocumentationError(f"Failed to write file {path}: {exc}") from exc
        return path
