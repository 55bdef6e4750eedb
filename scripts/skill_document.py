#!/usr/bin/env python3
"""
Flutter Plugin Lint - Skill Document Parser

Parses the shared Markdown shape used by every skill and command document
into a SkillDocument:

    ---                                  (optional YAML frontmatter)
    # /flutter-pub - one-line description
    ## Usage            /flutter-pub <command> [options] [packages...]
    ## Commands         | Command | Description |
    ## Options          | Option | Description | Default |
    ## Examples         /flutter-pub add dio
    ## Instructions     1. rationale + fenced snippet
    ## Output Summary   report template
    ## Agent Reference  `flutter-dependency-expert`

The parser is lenient: missing sections leave the corresponding fields empty
so validators can report every problem in one pass. Only invalid frontmatter
YAML raises DocumentParseError.

Usage:
    from skill_document import parse_skill_document
    doc = parse_skill_document(path.read_text(), source=str(path))
    print(doc.command_name, doc.subcommands, list(doc.options))
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

import yaml

# =============================================================================
# Patterns
# =============================================================================

FENCE_OPEN_RE = re.compile(r"^(\s*)(`{3,}|~{3,})(.*)$")
HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
TABLE_SEPARATOR_RE = re.compile(r"^\s*\|?\s*:?-+:?\s*(\|\s*:?-+:?\s*)*\|?\s*$")
CELL_SPLIT_RE = re.compile(r"(?<!\\)\|")

# "# /flutter-pub", "# /flutter-pub - Package manager", "# `flutter-pub`: ..."
COMMAND_HEADER_RE = re.compile(r"^`?(?P<slash>/)?(?P<name>[a-z][a-z0-9]*(?:-[a-z0-9]+)+)`?\s*(?:[-:–—]\s*(?P<desc>.+))?$")

STEP_HEADING_RE = re.compile(r"^#{3,6}\s+(?:step\s+)?(?P<num>\d+)\s*[.:)\-]?\s*(?P<title>.*)$", re.IGNORECASE)
STEP_ITEM_RE = re.compile(r"^\s{0,3}(?P<num>\d+)[.)]\s+(?P<title>.*)$")
LIST_ITEM_RE = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+(?P<text>.*)$")
INLINE_CODE_RE = re.compile(r"`([^`]+)`")
BOLD_RE = re.compile(r"\*\*([^*]+)\*\*")
AGENT_LINK_RE = re.compile(r"agents/([a-z][a-z0-9-]*)\.md")
KEBAB_TOKEN_RE = re.compile(r"\b([a-z][a-z0-9]*(?:-[a-z0-9]+)+)\b")
REQUIRED_RE = re.compile(r"\brequired\b", re.IGNORECASE)

# Section title aliases
USAGE_SECTIONS = {"usage", "syntax"}
COMMAND_SECTIONS = {"commands", "subcommands", "sub-commands", "actions"}
OPTION_SECTIONS = {"options", "flags", "arguments", "parameters"}
EXAMPLE_SECTIONS = {"examples", "example", "example usage"}
INSTRUCTION_SECTIONS = {"instructions", "implementation", "implementation steps", "steps"}
OUTPUT_SECTIONS = {"output summary", "output", "summary", "output format"}
AGENT_SECTIONS = {"agent reference", "agent references", "related agent", "related agents"}

# First-column headers that identify the kind of table
COMMAND_HEADERS = {"command", "commands", "subcommand", "subcommands", "sub-command", "action", "verb"}
OPTION_HEADERS = {"option", "options", "flag", "flags", "argument", "arguments", "parameter", "parameters"}

# Default cells that do not count as a documented default
EMPTY_DEFAULTS = {"", "-", "–", "—", "?"}


class DocumentParseError(ValueError):
    """Raised when a document's frontmatter cannot be parsed."""


# =============================================================================
# Data Model
# =============================================================================


@dataclass
class CodeFence:
    """A fenced code block. Lines are 1-based positions in the source file."""

    language: str
    content: str
    start_line: int
    end_line: int
    closed: bool = True


@dataclass
class MarkdownTable:
    header: list[str]
    rows: list[list[str]]
    line: int
    row_lines: list[int] = field(default_factory=list)

    def column(self, *names: str) -> int | None:
        """Index of the first header cell whose lowercase text is one of ``names``."""
        wanted = {n.lower() for n in names}
        for i, cell in enumerate(self.header):
            if strip_inline_code(cell).lower() in wanted:
                return i
        return None

    def cell(self, row: list[str], index: int | None) -> str:
        if index is None or index >= len(row):
            return ""
        return row[index]


@dataclass
class Section:
    """A heading and the lines up to the next heading of the same or higher level."""

    title: str
    level: int
    line: int
    body_lines: list[str] = field(default_factory=list)

    @property
    def body_start_line(self) -> int:
        return self.line + 1

    @property
    def end_line(self) -> int:
        return self.line + len(self.body_lines)

    @property
    def text(self) -> str:
        return "\n".join(self.body_lines).strip()

    def contains(self, line: int) -> bool:
        return self.line < line <= self.end_line


@dataclass
class SkillCommand:
    name: str
    description: str
    line: int


@dataclass
class SkillOption:
    """One row of an options table.

    ``default`` is None when the table has no Default column.
    """

    name: str
    description: str
    default: str | None
    required: bool
    line: int
    syntax: str = ""
    table_line: int = 0

    @property
    def has_default(self) -> bool:
        return self.default is not None and self.default.strip().lower() not in EMPTY_DEFAULTS


@dataclass
class Example:
    text: str
    line: int

    def __str__(self) -> str:
        return self.text


@dataclass
class InstructionStep:
    number: int
    rationale: str
    snippet: str | None
    language: str | None
    line: int


@dataclass
class SkillDocument:
    """Structured view of a skill or command document."""

    source: str = ""
    frontmatter: dict[str, Any] | None = None
    command_name: str | None = None
    header_line: int | None = None
    header_has_slash: bool = False
    description: str = ""
    usage: str | None = None
    usage_line: int | None = None
    commands: list[SkillCommand] = field(default_factory=list)
    option_list: list[SkillOption] = field(default_factory=list)
    examples: list[Example] = field(default_factory=list)
    instruction_steps: list[InstructionStep] = field(default_factory=list)
    output_summary: str | None = None
    agent_reference: str | None = None
    agent_reference_line: int | None = None
    sections: list[Section] = field(default_factory=list)
    tables: list[MarkdownTable] = field(default_factory=list)
    fences: list[CodeFence] = field(default_factory=list)
    line_count: int = 0

    @property
    def subcommands(self) -> list[str]:
        return [c.name for c in self.commands]

    @property
    def options(self) -> dict[str, SkillOption]:
        """Options keyed by name; on duplicates the first row wins."""
        result: dict[str, SkillOption] = {}
        for option in self.option_list:
            result.setdefault(option.name, option)
        return result

    @property
    def example_strings(self) -> list[str]:
        return [e.text for e in self.examples]

    def find_section(self, names: set[str]) -> Section | None:
        """First section whose title matches one of ``names``, preferring level-2 headings."""
        matches = [s for s in self.sections if s.level > 1 and section_matches(s.title, names)]
        top = [s for s in matches if s.level == 2]
        if top:
            return top[0]
        return matches[0] if matches else None

    def enclosing_section(self, line: int, max_level: int = 2) -> Section | None:
        """Deepest section of level <= max_level containing ``line``."""
        found: Section | None = None
        for section in self.sections:
            if section.level <= max_level and section.contains(line):
                if found is None or section.level >= found.level:
                    found = section
        return found

    def fences_in(self, section: Section) -> list[CodeFence]:
        return [f for f in self.fences if section.contains(f.start_line)]


# =============================================================================
# Low-level Markdown helpers
# =============================================================================


def strip_inline_code(text: str) -> str:
    """Strip surrounding whitespace, backticks and bold markers from a cell."""
    text = text.strip()
    bold = re.fullmatch(r"\*\*(.+)\*\*", text)
    if bold:
        text = bold.group(1).strip()
    code = re.fullmatch(r"`+(.+?)`+", text)
    if code:
        text = code.group(1).strip()
    return text


def normalize_title(title: str) -> str:
    title = strip_inline_code(title).lower().strip()
    title = re.sub(r"^\d+[.)]\s*", "", title)
    return title.rstrip(":").strip()


def section_matches(title: str, names: set[str]) -> bool:
    """True if the title equals an alias or has one as a component (``Commands & Options``)."""
    normalized = normalize_title(title)
    if normalized in names:
        return True
    tokens = re.split(r"\s*(?:/|&|,|\band\b)\s*", normalized)
    return any(token in names for token in tokens if token)


def split_frontmatter(content: str) -> tuple[dict[str, Any] | None, str, int]:
    """Split YAML frontmatter from the body.

    Returns:
        Tuple of (frontmatter_dict or None, body, body_start_line) where
        body_start_line is the 1-based line of the first body line.

    Raises:
        DocumentParseError: if frontmatter is opened but never closed, is not
            valid YAML, or is not a mapping.
    """
    lines = content.split("\n")
    if not lines or lines[0].rstrip("\r") != "---":
        return None, content, 1

    for i in range(1, len(lines)):
        if lines[i].rstrip("\r") == "---":
            raw = "\n".join(lines[1:i])
            try:
                data = yaml.safe_load(raw)
            except yaml.YAMLError as e:
                raise DocumentParseError(f"Invalid YAML frontmatter: {e}") from e
            if data is None:
                data = {}
            if not isinstance(data, dict):
                raise DocumentParseError(f"Frontmatter must be a mapping, got {type(data).__name__}")
            return data, "\n".join(lines[i + 1 :]), i + 2

    raise DocumentParseError("Malformed frontmatter (missing closing ---)")


def fence_mask(lines: list[str]) -> list[bool]:
    """Per-line flag: True when the line is a fence delimiter or inside a fence."""
    mask = [False] * len(lines)
    marker: str | None = None
    for i, line in enumerate(lines):
        if marker is None:
            match = FENCE_OPEN_RE.match(line)
            if match and not (match.group(2)[0] == "`" and "`" in match.group(3)):
                marker = match.group(2)
                mask[i] = True
        else:
            mask[i] = True
            stripped = line.strip()
            if stripped.startswith(marker) and set(stripped) == {marker[0]}:
                marker = None
    return mask


def iter_code_fences(lines: list[str], offset: int = 0) -> list[CodeFence]:
    """Collect fenced code blocks.

    Args:
        lines: Lines to scan
        offset: Number of source lines preceding ``lines`` (for line numbers)

    Returns:
        Fences in order; an unterminated fence has closed=False and runs to EOF.
    """
    fences: list[CodeFence] = []
    marker: str | None = None
    language = ""
    start = 0
    body: list[str] = []

    for i, line in enumerate(lines):
        if marker is None:
            match = FENCE_OPEN_RE.match(line)
            if match and not (match.group(2)[0] == "`" and "`" in match.group(3)):
                marker = match.group(2)
                info = match.group(3).strip()
                language = info.split()[0].strip("{}.") if info else ""
                start = i
                body = []
        else:
            stripped = line.strip()
            if stripped.startswith(marker) and set(stripped) == {marker[0]}:
                fences.append(CodeFence(language, "\n".join(body), offset + start + 1, offset + i + 1))
                marker = None
            else:
                body.append(line)

    if marker is not None:
        fences.append(CodeFence(language, "\n".join(body), offset + start + 1, offset + len(lines), closed=False))

    return fences


def parse_sections(lines: list[str], offset: int = 0, mask: list[bool] | None = None) -> list[Section]:
    """ATX headings outside code fences, each with its body lines."""
    mask = mask if mask is not None else fence_mask(lines)
    headings: list[tuple[int, int, str]] = []
    for i, line in enumerate(lines):
        if mask[i]:
            continue
        match = HEADING_RE.match(line)
        if match:
            headings.append((i, len(match.group(1)), match.group(2)))

    sections: list[Section] = []
    for idx, (i, level, title) in enumerate(headings):
        end = len(lines)
        for j, next_level, _ in headings[idx + 1 :]:
            if next_level <= level:
                end = j
                break
        sections.append(Section(title=title, level=level, line=offset + i + 1, body_lines=lines[i + 1 : end]))
    return sections


def split_table_row(line: str) -> list[str]:
    stripped = line.strip()
    if stripped.startswith("|"):
        stripped = stripped[1:]
    if stripped.endswith("|") and not stripped.endswith("\\|"):
        stripped = stripped[:-1]
    return [cell.strip().replace("\\|", "|") for cell in CELL_SPLIT_RE.split(stripped)]


def parse_tables(lines: list[str], offset: int = 0, mask: list[bool] | None = None) -> list[MarkdownTable]:
    """Pipe tables outside code fences. A header row must be followed by a separator row."""
    mask = mask if mask is not None else fence_mask(lines)
    tables: list[MarkdownTable] = []
    i = 0
    while i < len(lines) - 1:
        line = lines[i]
        nxt = lines[i + 1]
        if (
            not mask[i]
            and not mask[i + 1]
            and "|" in line
            and "|" in nxt
            and "-" in nxt
            and TABLE_SEPARATOR_RE.match(nxt)
        ):
            table = MarkdownTable(header=split_table_row(line), rows=[], line=offset + i + 1)
            j = i + 2
            while j < len(lines) and not mask[j] and "|" in lines[j] and lines[j].strip():
                table.rows.append(split_table_row(lines[j]))
                table.row_lines.append(offset + j + 1)
                j += 1
            tables.append(table)
            i = j
        else:
            i += 1
    return tables


# =============================================================================
# Section extractors
# =============================================================================


def _first_paragraph(lines: list[str]) -> str:
    collected: list[str] = []
    for line in lines:
        stripped = line.strip()
        if not stripped:
            if collected:
                break
            continue
        if stripped.startswith(("#", "```", "~~~", "|", "---")):
            break
        collected.append(stripped.lstrip("> ").strip())
    return " ".join(collected)


def _parse_header(doc: SkillDocument) -> None:
    h1 = next((s for s in doc.sections if s.level == 1), None)
    fm = doc.frontmatter or {}

    if h1 is not None:
        doc.header_line = h1.line
        match = COMMAND_HEADER_RE.match(h1.title.strip())
        if match:
            doc.command_name = match.group("name")
            doc.header_has_slash = bool(match.group("slash"))
            if match.group("desc"):
                doc.description = match.group("desc").strip()
        if not doc.description:
            doc.description = _first_paragraph(h1.body_lines)

    if doc.command_name is None and isinstance(fm.get("name"), str):
        doc.command_name = fm["name"].strip().lstrip("/")
    if not doc.description and isinstance(fm.get("description"), str):
        doc.description = fm["description"].strip()


def _parse_usage(doc: SkillDocument) -> None:
    section = doc.find_section(USAGE_SECTIONS)
    if section is None:
        return

    candidates: list[tuple[str, int]] = []
    for i, raw in enumerate(section.body_lines):
        stripped = raw.strip()
        if not stripped or FENCE_OPEN_RE.match(raw) or stripped.startswith("#"):
            continue
        text = strip_inline_code(stripped)
        inline = INLINE_CODE_RE.search(stripped)
        if not text.startswith("/") and inline and inline.group(1).strip().startswith("/"):
            text = inline.group(1).strip()
        candidates.append((text, section.body_start_line + i))

    for text, line in candidates:
        if text.startswith("/"):
            doc.usage, doc.usage_line = text, line
            return
    if candidates:
        doc.usage, doc.usage_line = candidates[0]


def _classify_table(doc: SkillDocument, table: MarkdownTable) -> str | None:
    if not table.header:
        return None
    first = normalize_title(table.header[0])
    if first in COMMAND_HEADERS:
        return "commands"
    if first in OPTION_HEADERS:
        return "options"
    section = doc.enclosing_section(table.line, max_level=3)
    if section is not None:
        if section_matches(section.title, COMMAND_SECTIONS):
            return "commands"
        if section_matches(section.title, OPTION_SECTIONS):
            return "options"
    return None


def _parse_tables(doc: SkillDocument) -> None:
    for table in doc.tables:
        kind = _classify_table(doc, table)
        if kind is None:
            continue
        desc_col = table.column("description", "desc", "purpose", "what it does")
        if desc_col is None and len(table.header) > 1:
            desc_col = 1

        if kind == "commands":
            for row, line in zip(table.rows, table.row_lines):
                raw = strip_inline_code(table.cell(row, 0))
                if not raw:
                    continue
                name = raw.split()[0].strip("`")
                doc.commands.append(SkillCommand(name, strip_inline_code(table.cell(row, desc_col)), line))
        else:
            default_col = table.column("default", "defaults", "default value")
            required_col = table.column("required")
            for row, line in zip(table.rows, table.row_lines):
                syntax = strip_inline_code(table.cell(row, 0))
                if not syntax:
                    continue
                name = re.split(r"[\s=,<\[]", syntax, maxsplit=1)[0].strip("`")
                description = strip_inline_code(table.cell(row, desc_col))
                default = strip_inline_code(table.cell(row, default_col)) if default_col is not None else None
                required = bool(
                    (default is not None and REQUIRED_RE.search(default))
                    or REQUIRED_RE.search(description)
                    or strip_inline_code(table.cell(row, required_col)).lower() in {"yes", "true", "required", "✓"}
                )
                doc.option_list.append(SkillOption(name, description, default, required, line, syntax, table.line))


def _parse_examples(doc: SkillDocument) -> None:
    section = doc.find_section(EXAMPLE_SECTIONS)
    if section is None:
        return

    fences = doc.fences_in(section)
    fence_lines: set[int] = set()
    for fence in fences:
        fence_lines.update(range(fence.start_line, fence.end_line + 1))
        for i, raw in enumerate(fence.content.split("\n")):
            text = raw.strip()
            if not text or text.startswith(("#", "//", ">")) or text.startswith("$ #"):
                continue
            if text.startswith("$ "):
                text = text[2:].strip()
            doc.examples.append(Example(text, fence.start_line + 1 + i))

    for i, raw in enumerate(section.body_lines):
        line_no = section.body_start_line + i
        if line_no in fence_lines:
            continue
        item = LIST_ITEM_RE.match(raw)
        if item:
            text = item.group("text").strip()
            inline = INLINE_CODE_RE.search(text)
            if inline:
                doc.examples.append(Example(inline.group(1).strip(), line_no))
            elif text.startswith("/"):
                doc.examples.append(Example(text, line_no))
        elif raw.strip().startswith("/"):
            doc.examples.append(Example(raw.strip(), line_no))

    doc.examples.sort(key=lambda e: e.line)


def _clean_rationale(text: str) -> str:
    text = BOLD_RE.sub(r"\1", text)
    return re.sub(r"\s+", " ", text).strip()


def _parse_instructions(doc: SkillDocument) -> None:
    section = doc.find_section(INSTRUCTION_SECTIONS)
    if section is None:
        return

    fences = doc.fences_in(section)
    in_fence: set[int] = set()
    for fence in fences:
        in_fence.update(range(fence.start_line, fence.end_line + 1))

    heading_steps: list[tuple[int, int, str]] = []
    item_steps: list[tuple[int, int, str]] = []
    for i, raw in enumerate(section.body_lines):
        line_no = section.body_start_line + i
        if line_no in in_fence:
            continue
        heading = STEP_HEADING_RE.match(raw)
        if heading:
            heading_steps.append((line_no, int(heading.group("num")), heading.group("title")))
            continue
        item = STEP_ITEM_RE.match(raw)
        if item:
            item_steps.append((line_no, int(item.group("num")), item.group("title")))

    steps = heading_steps or item_steps
    for idx, (line_no, number, title) in enumerate(steps):
        end = steps[idx + 1][0] - 1 if idx + 1 < len(steps) else section.end_line
        prose = [title]
        for j in range(line_no + 1, end + 1):
            if j in in_fence:
                continue
            text = section.body_lines[j - section.body_start_line].strip()
            if text and not HEADING_RE.match(text):
                prose.append(text)
        snippet = next((f for f in fences if line_no < f.start_line <= end), None)
        doc.instruction_steps.append(
            InstructionStep(
                number=number,
                rationale=_clean_rationale(" ".join(prose)),
                snippet=snippet.content if snippet else None,
                language=snippet.language if snippet else None,
                line=line_no,
            )
        )


def _parse_output_summary(doc: SkillDocument) -> None:
    section = doc.find_section(OUTPUT_SECTIONS)
    if section is not None:
        doc.output_summary = section.text


def _parse_agent_reference(doc: SkillDocument) -> None:
    section = doc.find_section(AGENT_SECTIONS)
    if section is None:
        return

    for i, raw in enumerate(section.body_lines):
        line_no = section.body_start_line + i
        name: str | None = None
        link = AGENT_LINK_RE.search(raw)
        if link:
            name = link.group(1)
        else:
            for pattern in (INLINE_CODE_RE, BOLD_RE):
                for candidate in pattern.findall(raw):
                    candidate = candidate.strip()
                    if KEBAB_TOKEN_RE.fullmatch(candidate):
                        name = candidate
                        break
                if name:
                    break
            if name is None:
                token = KEBAB_TOKEN_RE.search(raw)
                if token:
                    name = token.group(1)
        if name:
            doc.agent_reference = name
            doc.agent_reference_line = line_no
            return


# =============================================================================
# Entry point
# =============================================================================


def parse_skill_document(content: str, source: str = "") -> SkillDocument:
    """Parse a skill or command document.

    Args:
        content: Full Markdown content, frontmatter included
        source: Path or label stored on the document

    Returns:
        SkillDocument; absent sections leave their fields empty.

    Raises:
        DocumentParseError: for invalid frontmatter
    """
    frontmatter, body, body_start = split_frontmatter(content)
    lines = body.split("\n")
    offset = body_start - 1
    mask = fence_mask(lines)

    doc = SkillDocument(source=source, frontmatter=frontmatter)
    doc.line_count = content.count("\n") + 1
    doc.fences = iter_code_fences(lines, offset)
    doc.sections = parse_sections(lines, offset, mask)
    doc.tables = parse_tables(lines, offset, mask)

    _parse_header(doc)
    _parse_usage(doc)
    _parse_tables(doc)
    _parse_examples(doc)
    _parse_instructions(doc)
    _parse_output_summary(doc)
    _parse_agent_reference(doc)

    return doc
