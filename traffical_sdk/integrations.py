"""
AI tool integration - installs the Traffical skill into a project

Writes the bundled skill document to .claude/skills/traffical/SKILL.md and
adds a short pointer to any agent instruction files the project already has
(AGENTS.md, CLAUDE.md, .cursorrules). Running it twice changes nothing.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .config import read_template
from .docs import assert_consistent
from .models import ConfigFile

logger = logging.getLogger(__name__)

SKILL_PATH = Path(".claude") / "skills" / "traffical" / "SKILL.md"
INSTRUCTION_FILES = ("AGENTS.md", "CLAUDE.md", ".cursorrules")
POINTER_MARKER = "<!-- traffical-skill -->"


@dataclass
class IntegrationResult:
    skill_path: Path
    skill_written: bool
    updated_files: List[Path] = field(default_factory=list)


def render_skill(config: Optional[ConfigFile] = None) -> str:
    text = read_template("SKILL.md")
    project_id = config.project.id if config is not None else "<your project id>"
    return text.replace("__PROJECT_ID__", project_id)


def _pointer_block(skill_path: Path) -> str:
    return (
        f"\n{POINTER_MARKER}\n"
        f"## Traffical\n\n"
        f"Tunable values in this project are Traffical parameters. Before adding or "
        f"changing configuration, constants or experiments, read `{skill_path.as_posix()}`.\n"
    )


def integrate_ai_tools(root: Path, config: Optional[ConfigFile] = None) -> IntegrationResult:
    """
    Install the skill under `root`

    Raises:
        DocumentationError: the rendered skill fails the consistency checks
    """
    content = render_skill(config)
    assert_consistent(content)

    skill_path = root / SKILL_PATH
    existing = skill_path.read_text(encoding="utf-8") if skill_path.is_file() else None
    written = existing != content
    if written:
        skill_path.parent.mkdir(parents=True, exist_ok=True)
        skill_path.write_text(content, encoding="utf-8")
        logger.info(f"Wrote skill document: {skill_path}")

    result = IntegrationResult(skill_path=skill_path, skill_written=written)
    for name in INSTRUCTION_FILES:
        path = root / name
        if not path.is_file():
            continue
        text = path.read_text(encoding="utf-8")
        if POINTER_MARKER in text:
            continue
        with open(path, "a", encoding="utf-8") as f:
            f.write(_pointer_block(SKILL_PATH))
        result.updated_files.append(path)
        logger.info(f"Added Traffical pointer to {path}")
    return result
