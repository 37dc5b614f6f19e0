"""Installing the skill document into a project"""

from traffical_sdk.integrations import POINTER_MARKER, SKILL_PATH, integrate_ai_tools
from traffical_sdk.models import ConfigFile


def make_config() -> ConfigFile:
    return ConfigFile.model_validate({"project": {"id": "proj_9", "orgId": "org_9"}})


def test_writes_skill_with_project_id(tmp_path):
    result = integrate_ai_tools(tmp_path, make_config())

    assert result.skill_written
    assert result.skill_path == tmp_path / SKILL_PATH
    text = result.skill_path.read_text(encoding="utf-8")
    assert "`proj_9`" in text
    assert "__PROJECT_ID__" not in text
    assert result.updated_files == []


def test_without_config_uses_placeholder(tmp_path):
    result = integrate_ai_tools(tmp_path)
    assert "<your project id>" in result.skill_path.read_text(encoding="utf-8")


def test_adds_pointer_to_existing_instruction_files(tmp_path):
    (tmp_path / "AGENTS.md").write_text("# Agents\n", encoding="utf-8")
    (tmp_path / ".cursorrules").write_text("be nice\n", encoding="utf-8")

    result = integrate_ai_tools(tmp_path, make_config())

    assert sorted(p.name for p in result.updated_files) == [".cursorrules", "AGENTS.md"]
    agents = (tmp_path / "AGENTS.md").read_text(encoding="utf-8")
    assert agents.startswith("# Agents\n")
    assert POINTER_MARKER in agents
    assert ".claude/skills/traffical/SKILL.md" in agents
    assert not (tmp_path / "CLAUDE.md").exists()


def test_second_run_changes_nothing(tmp_path):
    (tmp_path / "CLAUDE.md").write_text("# Claude\n", encoding="utf-8")
    integrate_ai_tools(tmp_path, make_config())
    before = (tmp_path / "CLAUDE.md").read_text(encoding="utf-8")

    result = integrate_ai_tools(tmp_path, make_config())

    assert not result.skill_written
    assert result.updated_files == []
    assert (tmp_path / "CLAUDE.md").read_text(encoding="utf-8") == before
    assert before.count(POINTER_MARKER) == 1
