"""Skill document consistency checks"""

import pytest

from traffical_sdk.config import read_template
from traffical_sdk.docs import (
    assert_consistent,
    check_skill_document,
    documented_commands,
    parse_markdown,
    referenced_commands,
)
from traffical_sdk.exceptions import DocumentationError

CONSISTENT = """
## Parameter Types

| Type | Example |
|------|---------|
| `string` | copy |
| `number` | limits |

## Naming Conventions

| Pattern | Type |
|---------|------|
| `ui.<component>.<property>` | `string` |
| `pricing.<concept>` | `number` |

```bash
$ traffical status
npx traffical push --dry-run
```

## CLI Reference

- `traffical status` - show status
- `traffical push` - push
"""


def test_bundled_skill_is_consistent():
    assert check_skill_document(read_template("SKILL.md")) == []


def test_consistent_document():
    assert check_skill_document(CONSISTENT) == []
    assert_consistent(CONSISTENT)


def test_parse_markdown_tables():
    doc = parse_markdown(CONSISTENT)
    assert [t.heading for t in doc.tables] == ["Parameter Types", "Naming Conventions"]
    assert doc.tables[1].column("Type") == ["`string`", "`number`"]
    assert doc.tables[0].column("Missing") is None


def test_commands_extracted():
    doc = parse_markdown(CONSISTENT)
    assert referenced_commands(doc, "traffical") == {"status", "push"}
    assert documented_commands(doc, "traffical") == {"status", "push"}


def test_naming_type_missing_from_type_table():
    text = CONSISTENT.replace(
        "| `pricing.<concept>` | `number` |",
        "| `pricing.<concept>` | `number` |\n| `feature.<name>.enabled` | `boolean` |",
    )
    problems = check_skill_document(text)
    assert len(problems) == 1
    assert "boolean" in problems[0]


def test_example_command_missing_from_reference():
    text = CONSISTENT.replace("npx traffical push --dry-run", "traffical pull")
    problems = check_skill_document(text)
    assert problems == [
        "command 'traffical pull' is used in an example but missing from the CLI reference"
    ]


def test_python_blocks_are_not_shell_examples():
    text = CONSISTENT + "\n```python\ntraffical deploy\n```\n"
    assert check_skill_document(text) == []


def test_assert_consistent_raises():
    text = CONSISTENT.replace("- `traffical push` - push\n", "")
    with pytest.raises(DocumentationError) as exc_info:
        assert_consistent(text)
    assert exc_info.value.code == "DOCS_INCONSISTENT"
    assert len(exc_info.value.problems) == 1
