#!/usr/bin/env python3
"""Tests for skill_document.py - the slash-command document parser."""

from pathlib import Path

import pytest
from conftest import FIXTURE_PLUGIN
from skill_document import (
    DocumentParseError,
    iter_code_fences,
    parse_skill_document,
    parse_tables,
    section_matches,
    split_frontmatter,
    split_table_row,
)

FIXTURE_SKILL = FIXTURE_PLUGIN / "skills" / "flutter-pub" / "SKILL.md"


@pytest.fixture
def fixture_doc():
    return parse_skill_document(FIXTURE_SKILL.read_text(encoding="utf-8"), source=str(FIXTURE_SKILL))


class TestFixtureSkill:
    """The checked-in flutter-pub skill parses into its documented contract."""

    def test_header(self, fixture_doc) -> None:
        assert fixture_doc.command_name == "flutter-pub"
        assert fixture_doc.header_has_slash is True
        assert fixture_doc.description == "Manage Dart and Flutter package dependencies"

    def test_usage_line(self, fixture_doc) -> None:
        assert fixture_doc.usage == "/flutter-pub <command> [options] [packages...]"

    def test_subcommands_in_table_order(self, fixture_doc) -> None:
        assert fixture_doc.subcommands == ["get", "add", "remove", "upgrade", "outdated", "deps", "cache"]

    def test_every_option_has_a_default(self, fixture_doc) -> None:
        options = fixture_doc.options
        assert set(options) == {"--dev", "--offline", "--major-versions", "--dry-run"}
        assert all(option.has_default for option in options.values())
        assert options["--offline"].default == "false"

    def test_examples_start_with_command(self, fixture_doc) -> None:
        assert len(fixture_doc.examples) == 5
        assert all(text.startswith("/flutter-pub") for text in fixture_doc.example_strings)
        assert "/flutter-pub add dio freezed_annotation" in fixture_doc.example_strings

    def test_instruction_steps_carry_snippets(self, fixture_doc) -> None:
        steps = fixture_doc.instruction_steps
        assert [s.number for s in steps] == [1, 2, 3]
        assert all(s.language == "bash" for s in steps)
        assert "pubspec.yaml" in steps[0].rationale
        assert steps[1].snippet is not None and "flutter pub" in steps[1].snippet

    def test_output_summary_and_agent(self, fixture_doc) -> None:
        assert fixture_doc.output_summary
        assert fixture_doc.agent_reference == "flutter-dependency-expert"

    def test_frontmatter_kept(self, fixture_doc) -> None:
        assert fixture_doc.frontmatter is not None
        assert fixture_doc.frontmatter["name"] == "flutter-pub"


class TestFrontmatter:
    """split_frontmatter boundaries and errors."""

    def test_no_frontmatter(self) -> None:
        frontmatter, body, start = split_frontmatter("# /flutter-x\n")
        assert frontmatter is None
        assert body == "# /flutter-x\n"
        assert start == 1

    def test_body_start_line(self) -> None:
        frontmatter, body, start = split_frontmatter("---\nname: a\n---\n# Title\n")
        assert frontmatter == {"name": "a"}
        assert body.startswith("# Title")
        assert start == 4

    def test_empty_frontmatter_is_empty_mapping(self) -> None:
        frontmatter, _, _ = split_frontmatter("---\n---\nbody\n")
        assert frontmatter == {}

    def test_unclosed_frontmatter_raises(self) -> None:
        with pytest.raises(DocumentParseError, match="missing closing"):
            split_frontmatter("---\nname: a\n# Title\n")

    def test_invalid_yaml_raises(self) -> None:
        with pytest.raises(DocumentParseError, match="Invalid YAML"):
            split_frontmatter("---\nname: [unclosed\n---\n")

    def test_non_mapping_raises(self) -> None:
        with pytest.raises(DocumentParseError, match="mapping"):
            split_frontmatter("---\n- a\n- b\n---\n")


class TestMarkdownHelpers:
    """Fences, tables and section title matching."""

    def test_unclosed_fence_runs_to_eof(self) -> None:
        fences = iter_code_fences(["text", "```dart", "void main() {}"])
        assert len(fences) == 1
        assert fences[0].closed is False
        assert fences[0].language == "dart"
        assert fences[0].start_line == 2

    def test_indented_fence_inside_list_item(self) -> None:
        fences = iter_code_fences(["1. Step", "", "   ```bash", "   flutter pub get", "   ```"])
        assert len(fences) == 1
        assert fences[0].closed is True
        assert fences[0].language == "bash"

    def test_escaped_pipe_stays_in_cell(self) -> None:
        assert split_table_row("| `a \\| b` | c |") == ["`a | b`", "c"]

    def test_tables_inside_fences_ignored(self) -> None:
        lines = ["```markdown", "| a | b |", "|---|---|", "```", "| c | d |", "|---|---|", "| 1 | 2 |"]
        tables = parse_tables(lines)
        assert len(tables) == 1
        assert tables[0].header == ["c", "d"]
        assert tables[0].rows == [["1", "2"]]

    def test_section_aliases(self) -> None:
        assert section_matches("Options", {"options"})
        assert section_matches("Commands & Options", {"options"})
        assert section_matches("`Usage`", {"usage"})
        assert section_matches("2. Examples:", {"examples"})
        assert not section_matches("Optional extras", {"options"})


class TestLenientParsing:
    """Missing sections leave fields empty instead of raising."""

    def test_bare_document(self) -> None:
        doc = parse_skill_document("Just some prose.\n")
        assert doc.command_name is None
        assert doc.usage is None
        assert doc.commands == []
        assert doc.instruction_steps == []
        assert doc.output_summary is None
        assert doc.agent_reference is None

    def test_name_falls_back_to_frontmatter(self) -> None:
        doc = parse_skill_document("---\nname: flutter-test\ndescription: Run tests\n---\n## Usage\n")
        assert doc.command_name == "flutter-test"
        assert doc.description == "Run tests"

    def test_dash_default_is_not_a_default(self) -> None:
        content = (
            "# /flutter-x\n\n## Options\n\n"
            "| Option | Description | Default |\n|---|---|---|\n"
            "| `--a` | A flag | - |\n| `--b` | Required target (required) | - |\n"
        )
        doc = parse_skill_document(content)
        assert doc.options["--a"].has_default is False
        assert doc.options["--a"].required is False
        assert doc.options["--b"].required is True

    def test_numbered_list_steps(self) -> None:
        content = "# /flutter-x\n\n## Instructions\n\n1. First thing\n2. Second thing\n"
        doc = parse_skill_document(content)
        assert [s.number for s in doc.instruction_steps] == [1, 2]
        assert doc.instruction_steps[0].snippet is None

    def test_source_recorded(self, tmp_path: Path) -> None:
        doc = parse_skill_document("# /flutter-x\n", source=str(tmp_path / "SKILL.md"))
        assert doc.source.endswith("SKILL.md")
