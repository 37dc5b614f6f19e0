"""
Consistency checks for agent skill documents

Skill documents are Markdown with tables and shell examples. Two things drift
easily when they are edited by hand, so both are checked mechanically:

- every type used in the naming-conventions table must be listed in the
  parameter type table
- every CLI command used in a shell example must appear in the CLI reference
  list

integrate-ai-tools refuses to install a document that fails these checks.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Set

from .exceptions import DocumentationError

SHELL_LANGUAGES = {"", "bash", "sh", "shell", "console", "zsh"}

_FENCE = re.compile(r"^\s*```\s*([\w+-]*)")
_HEADING = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
_SEPARATOR_CELL = re.compile(r"^:?-{3,}:?$")


@dataclass
class Table:
    heading: str
    columns: List[str]
    rows: List[List[str]] = field(default_factory=list)

    def column(self, name: str) -> Optional[List[str]]:
        lowered = [c.lower() for c in self.columns]
        if name.lower() not in lowered:
            return None
        index = lowered.index(name.lower())
        return [row[index] for row in self.rows if index < len(row)]


@dataclass
class CodeBlock:
    language: str
    lines: List[str]


@dataclass
class ListItem:
    heading: str
    text: str


@dataclass
class MarkdownDocument:
    tables: List[Table] = field(default_factory=list)
    code_blocks: List[CodeBlock] = field(default_factory=list)
    list_items: List[ListItem] = field(default_factory=list)


def _split_row(line: str) -> List[str]:
    cells = line.strip().strip("|").split("|")
    return [cell.strip() for cell in cells]


def _strip_code(cell: str) -> str:
    return cell.strip().strip("`").strip()


def parse_markdown(text: str) -> MarkdownDocument:
    doc = MarkdownDocument()
    heading = ""
    lines = text.splitlines()
    i = 0
    while i < len(lines):
        line = lines[i]

        fence = _FENCE.match(line)
        if fence:
            block = CodeBlock(language=fence.group(1).lower(), lines=[])
            i += 1
            while i < len(lines) and not _FENCE.match(lines[i]):
                block.lines.append(lines[i])
                i += 1
            doc.code_blocks.append(block)
            i += 1
            continue

        match = _HEADING.match(line)
        if match:
            heading = match.group(2)
            i += 1
            continue

        if line.lstrip().startswith("|"):
            table_lines = []
            while i < len(lines) and lines[i].lstrip().startswith("|"):
                table_lines.append(lines[i])
                i += 1
            rows = [_split_row(row) for row in table_lines]
            if len(rows) >= 2 and all(_SEPARATOR_CELL.match(c) for c in rows[1] if c):
                doc.tables.append(Table(heading=heading, columns=rows[0], rows=rows[2:]))
            continue

        stripped = line.lstrip()
        if stripped.startswith(("- ", "* ")):
            doc.list_items.append(ListItem(heading=heading, text=stripped[2:].strip()))
        i += 1
    return doc


def _find_table(doc: MarkdownDocument, heading_word: str) -> Optional[Table]:
    for table in doc.tables:
        if heading_word in table.heading.lower() and table.column("type") is not None:
            return table
    return None


def check_parameter_types(doc: MarkdownDocument) -> List[str]:
    naming = _find_table(doc, "naming")
    if naming is None:
        return []
    enumeration = next(
        (t for t in doc.tables if t is not naming and "type" in t.heading.lower()
         and t.column("type") is not None),
        None,
    )
    if enumeration is None:
        return ["naming conventions table found but no parameter type table"]

    known = {_strip_code(v) for v in enumeration.column("type") or []}
    problems = []
    for value in naming.column("type") or []:
        param_type = _strip_code(value)
        if param_type and param_type not in known:
            problems.append(
                f"type '{param_type}' in naming conventions is not in the parameter type table"
            )
    return problems


def referenced_commands(doc: MarkdownDocument, cli_name: str) -> Set[str]:
    """Commands used in shell examples, e.g. {'push', 'status'}"""
    commands = set()
    for block in doc.code_blocks:
        if block.language not in SHELL_LANGUAGES:
            continue
        for raw in block.lines:
            words = raw.strip().lstrip("$").split()
            if words and words[0] == "npx":
                words = words[1:]
            if len(words) < 2 or words[0] != cli_name:
                continue
            command = next((w for w in words[1:] if not w.startswith("-")), None)
            if command:
                commands.add(command)
    return commands


def documented_commands(doc: MarkdownDocument, cli_name: str) -> Set[str]:
    """Commands listed under a 'CLI ... reference/commands' heading"""
    pattern = re.compile(rf"`{re.escape(cli_name)}\s+([a-z][\w-]*)")
    commands = set()
    for item in doc.list_items:
        heading = item.heading.lower()
        if "cli" not in heading or not ("reference" in heading or "command" in heading):
            continue
        match = pattern.search(item.text)
        if match:
            commands.add(match.group(1))
    return commands


def check_cli_commands(doc: MarkdownDocument, cli_name: str) -> List[str]:
    used = referenced_commands(doc, cli_name)
    if not used:
        return []
    listed = documented_commands(doc, cli_name)
    return [
        f"command '{cli_name} {command}' is used in an example but missing from the CLI reference"
        for command in sorted(used - listed)
    ]


def check_skill_document(text: str, cli_name: str = "traffical") -> List[str]:
    doc = parse_markdown(text)
    return check_parameter_types(doc) + check_cli_commands(doc, cli_name)


def assert_consistent(text: str, cli_name: str = "traffical") -> None:
    problems = check_skill_document(text, cli_name)
    if problems:
        raise DocumentationError(problems)
