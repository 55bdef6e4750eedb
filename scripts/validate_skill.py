#!/usr/bin/env python3
"""
Flutter Plugin Lint - Skill Validator

Validates skill directories (skills/flutter-*/SKILL.md) against the shared
slash-command document shape: header, Usage, Commands/Options tables,
Examples, Instructions, Output Summary and Agent Reference.

Usage:
    uv run python scripts/validate_skill.py skills/flutter-pub/
    uv run python scripts/validate_skill.py skills/flutter-pub/ --verbose
    uv run python scripts/validate_skill.py skills/ --json

Exit codes:
    0 - All checks passed
    1 - CRITICAL issues found (skill will not load)
    2 - MAJOR issues found (documented contract is broken)
    3 - MINOR issues found (may affect UX)
    4 - NIT issues found (--strict only)
"""

from __future__ import annotations

import argparse
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from fpl_validation_common import (
    INLINE_CODE_SPAN,
    LINK_PATTERN,
    ValidationReport,
    command_name_pattern,
    get_command_prefix,
    is_external_link,
    print_json_report,
    print_report,
    read_markdown,
    resolve_local_link,
    scan_content_security,
    worst_exit_code,
)
from skill_document import (
    EXAMPLE_SECTIONS,
    INSTRUCTION_SECTIONS,
    USAGE_SECTIONS,
    DocumentParseError,
    SkillDocument,
    SkillOption,
    fence_mask,
    parse_skill_document,
)

# Maximum recommended SKILL.md line count
MAX_SKILL_LINES = 500

# Known frontmatter fields
KNOWN_FRONTMATTER_FIELDS = {
    "name",
    "description",
    "argument-hint",
    "disable-model-invocation",
    "user-invocable",
    "allowed-tools",
    "model",
    "context",
    "agent",
    "hooks",
}

# Usage placeholders that require a commands table
SUBCOMMAND_PLACEHOLDER_RE = re.compile(r"<\s*(?:sub)?command\s*>", re.IGNORECASE)


@dataclass
class SkillValidationReport(ValidationReport):
    """Skill validation report with skill-specific metadata."""

    skill_path: str = ""
    document: SkillDocument | None = field(default=None, repr=False)

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        base = super().to_dict()
        base["skill_path"] = self.skill_path
        if self.document is not None:
            base["command"] = self.document.command_name
            base["subcommands"] = self.document.subcommands
        return base


# =============================================================================
# Frontmatter
# =============================================================================


def validate_frontmatter_fields(
    frontmatter: dict[str, Any], expected_name: str, report: ValidationReport, filename: str
) -> None:
    """Validate known fields, types and the name/directory match."""
    for key in frontmatter:
        if key not in KNOWN_FRONTMATTER_FIELDS:
            report.warning(f"Unknown frontmatter field '{key}' (may be ignored by the host)", filename)

    if "name" in frontmatter:
        name = frontmatter["name"]
        if not isinstance(name, str):
            report.major(f"'name' must be a string, got {type(name).__name__}", filename)
        elif name != expected_name:
            report.major(f"Frontmatter name '{name}' does not match directory name '{expected_name}'", filename)
        else:
            report.passed(f"'name' field matches directory: {name}", filename)

    if "description" in frontmatter and not isinstance(frontmatter["description"], str):
        report.major(f"'description' must be a string, got {type(frontmatter['description']).__name__}", filename)

    for bool_field in ("user-invocable", "disable-model-invocation"):
        if bool_field in frontmatter and not isinstance(frontmatter[bool_field], bool):
            report.critical(
                f"'{bool_field}' must be a boolean (true/false), got {type(frontmatter[bool_field]).__name__}",
                filename,
            )

    if "hooks" in frontmatter and not isinstance(frontmatter["hooks"], dict):
        report.major(f"'hooks' must be an object, got {type(frontmatter['hooks']).__name__}", filename)


# =============================================================================
# Document shape (shared with validate_command)
# =============================================================================


def validate_header(
    doc: SkillDocument, expected_name: str, prefix: str | None, report: ValidationReport, filename: str
) -> None:
    """H1 with a /flutter-{domain} command name matching the file or directory."""
    if doc.header_line is None:
        report.major("Missing H1 header (expected '# /<command> - description')", filename)
    elif not doc.header_has_slash:
        report.minor("H1 header should show the slash command (e.g. '# /flutter-pub')", filename, doc.header_line)

    name = doc.command_name
    if not name:
        report.major("Cannot determine the command name from the H1 header or frontmatter", filename)
    else:
        pattern = command_name_pattern(prefix)
        if not pattern.match(name):
            report.major(
                f"Command name '{name}' must follow {get_command_prefix(prefix)}-{{domain}} (kebab-case)",
                filename,
                doc.header_line,
            )
        elif name != expected_name:
            report.major(f"Command name '{name}' does not match '{expected_name}'", filename, doc.header_line)
        else:
            report.passed(f"Command name valid: /{name}", filename)

    if not doc.description:
        report.minor("Missing one-line description under the header", filename, doc.header_line)


def validate_usage(doc: SkillDocument, report: ValidationReport, filename: str) -> None:
    """Usage section exists and its line starts with the command."""
    if doc.find_section(USAGE_SECTIONS) is None:
        report.major("Missing '## Usage' section", filename)
        return
    if not doc.usage:
        report.major("'## Usage' section is empty", filename)
        return

    if doc.command_name and not _starts_with_command(doc.usage, doc.command_name):
        report.major(f"Usage line must start with '/{doc.command_name}': {doc.usage}", filename, doc.usage_line)
    else:
        report.passed(f"Usage line present: {doc.usage}", filename)


def validate_commands_table(doc: SkillDocument, report: ValidationReport, filename: str) -> None:
    """A <command> placeholder in Usage needs a documented commands table."""
    needs_table = bool(doc.usage and SUBCOMMAND_PLACEHOLDER_RE.search(doc.usage))

    if not doc.commands:
        if needs_table:
            report.major("Usage takes a <command> but no commands table documents the subcommands", filename)
        return

    seen: dict[str, int] = {}
    for command in doc.commands:
        if command.name in seen:
            report.major(
                f"Duplicate subcommand '{command.name}' (first documented on line {seen[command.name]})",
                filename,
                command.line,
            )
            continue
        seen[command.name] = command.line
        if not command.description:
            report.minor(f"Subcommand '{command.name}' has no description", filename, command.line)

    report.passed(f"Commands table documents {len(seen)} subcommand(s)", filename)


def validate_options_table(doc: SkillDocument, report: ValidationReport, filename: str) -> None:
    """Every option documents a default or is marked required."""
    if not doc.option_list:
        return

    # Each options table is judged on its own
    by_table: dict[int, list[SkillOption]] = {}
    for option in doc.option_list:
        by_table.setdefault(option.table_line, []).append(option)

    seen: set[str] = set()
    missing = 0
    for table_line, options in by_table.items():
        if all(option.default is None for option in options):
            undocumented = [o.name for o in options if not o.required]
            if undocumented:
                report.major(
                    f"Options table has no 'Default' column ({', '.join(undocumented)})", filename, table_line
                )
                missing += len(undocumented)

    for option in doc.option_list:
        if option.name in seen:
            report.major(f"Duplicate option '{option.name}'", filename, option.line)
            continue
        seen.add(option.name)

        if not option.name.startswith("-"):
            report.minor(f"Option '{option.name}' should start with '-' or '--'", filename, option.line)

        if option.default is not None and not option.has_default and not option.required:
            report.major(f"Option '{option.name}' has no default and is not marked required", filename, option.line)
            missing += 1

    if not missing:
        report.passed(f"Options table documents {len(seen)} option(s)", filename)


def validate_examples(doc: SkillDocument, report: ValidationReport, filename: str) -> None:
    """Examples exist and every one starts with the command."""
    if doc.find_section(EXAMPLE_SECTIONS) is None:
        report.major("Missing '## Examples' section", filename)
        return
    if not doc.examples:
        report.major("'## Examples' section contains no invocation examples", filename)
        return

    name = doc.command_name
    if not name:
        return

    subcommands = set(doc.subcommands)
    bad = 0
    for example in doc.examples:
        if not _starts_with_command(example.text, name):
            report.major(f"Example does not start with '/{name}': {example.text}", filename, example.line)
            bad += 1
            continue
        if subcommands:
            words = example.text.split()
            verb = words[1] if len(words) > 1 else None
            if verb and not verb.startswith("-") and verb not in subcommands:
                report.minor(f"Example uses undocumented subcommand '{verb}'", filename, example.line)

    if not bad:
        report.passed(f"All {len(doc.examples)} example(s) start with /{name}", filename)


def validate_instructions(doc: SkillDocument, report: ValidationReport, filename: str) -> None:
    """Numbered steps, each with rationale and a snippet."""
    section = doc.find_section(INSTRUCTION_SECTIONS)
    if section is None:
        report.major("Missing '## Instructions' section", filename)
        return
    if not doc.instruction_steps:
        report.major("'## Instructions' section has no numbered steps", filename, section.line)
        return

    for expected, step in enumerate(doc.instruction_steps, start=1):
        if step.number != expected:
            report.minor(f"Step numbered {step.number}, expected {expected}", filename, step.line)
        if not step.rationale:
            report.minor(f"Step {step.number} has no rationale text", filename, step.line)
        if step.snippet is None:
            report.nit(f"Step {step.number} has no code snippet", filename, step.line)

    report.passed(f"Instructions contain {len(doc.instruction_steps)} step(s)", filename)


def validate_output_summary(doc: SkillDocument, report: ValidationReport, filename: str) -> None:
    if doc.output_summary is None:
        report.minor("Missing '## Output Summary' section", filename)
    elif not doc.output_summary:
        report.minor("'## Output Summary' section is empty", filename)
    else:
        report.passed("Output Summary present", filename)


def validate_agent_reference(
    doc: SkillDocument, agents_dir: Path | None, report: ValidationReport, filename: str
) -> None:
    """Agent Reference names an agents/<name>.md file when agents exist."""
    if doc.agent_reference is None:
        report.minor("Missing '## Agent Reference' section naming the responsible agent", filename)
        return

    if agents_dir is None or not agents_dir.is_dir():
        report.info(f"Agent reference '{doc.agent_reference}' not checked (no agents directory)", filename)
        return

    if (agents_dir / f"{doc.agent_reference}.md").is_file():
        report.passed(f"Agent reference resolves: {doc.agent_reference}", filename)
    else:
        report.major(
            f"Agent reference '{doc.agent_reference}' has no agents/{doc.agent_reference}.md",
            filename,
            doc.agent_reference_line,
        )


def validate_fences(doc: SkillDocument, report: ValidationReport, filename: str) -> None:
    """Fenced code blocks are closed and carry a language tag."""
    untagged = 0
    for fence in doc.fences:
        if not fence.closed:
            report.major("Unclosed code fence", filename, fence.start_line)
        if not fence.language:
            report.minor("Code fence has no language tag", filename, fence.start_line)
            untagged += 1
    if doc.fences and not untagged:
        report.passed(f"All {len(doc.fences)} code fence(s) are language-tagged", filename)


def validate_document_shape(
    doc: SkillDocument,
    expected_name: str,
    report: ValidationReport,
    filename: str,
    agents_dir: Path | None = None,
    prefix: str | None = None,
    require_references: bool = True,
) -> None:
    """Run every slash-command document check on a parsed document.

    Args:
        doc: Parsed document
        expected_name: Directory name (skills) or file stem (commands)
        report: Report to append to
        filename: Label used in results
        agents_dir: agents/ directory for resolving the Agent Reference
        prefix: Naming prefix override
        require_references: Whether Output Summary/Agent Reference are expected
    """
    validate_header(doc, expected_name, prefix, report, filename)
    validate_usage(doc, report, filename)
    validate_commands_table(doc, report, filename)
    validate_options_table(doc, report, filename)
    validate_examples(doc, report, filename)
    validate_instructions(doc, report, filename)
    if require_references:
        validate_output_summary(doc, report, filename)
        validate_agent_reference(doc, agents_dir, report, filename)
    elif doc.agent_reference is not None:
        validate_agent_reference(doc, agents_dir, report, filename)
    validate_fences(doc, report, filename)


def _starts_with_command(text: str, name: str) -> bool:
    first = text.strip().split(maxsplit=1)[0] if text.strip() else ""
    return first == f"/{name}"


# =============================================================================
# Skill directory checks
# =============================================================================


def validate_skill_size(doc: SkillDocument, report: ValidationReport) -> None:
    if doc.line_count > MAX_SKILL_LINES:
        report.minor(
            f"SKILL.md has {doc.line_count} lines (recommended: under {MAX_SKILL_LINES}). "
            "Consider moving detailed content to supporting files.",
            "SKILL.md",
        )
    else:
        report.passed(f"SKILL.md line count OK ({doc.line_count} lines)", "SKILL.md")


def validate_supporting_files(skill_path: Path, content: str, report: ValidationReport) -> None:
    """Validate local files linked from SKILL.md, outside code fences and inline code."""
    skill_md = skill_path / "SKILL.md"
    plugin_root = skill_path.parent.parent
    lines = content.splitlines()
    mask = fence_mask(lines)
    for i, line in enumerate(lines):
        if mask[i]:
            continue
        for _, link_target in LINK_PATTERN.findall(INLINE_CODE_SPAN.sub("", line)):
            if is_external_link(link_target):
                continue
            if not resolve_local_link(link_target, skill_md, plugin_root):
                report.major(f"Referenced file not found: {link_target}", "SKILL.md", i + 1)
            else:
                report.passed(f"Referenced file exists: {link_target}", "SKILL.md")


def validate_skill(skill_path: Path, agents_dir: Path | None = None, prefix: str | None = None) -> SkillValidationReport:
    """Validate a complete skill directory.

    Args:
        skill_path: Path to the skill directory
        agents_dir: agents/ directory used to resolve the Agent Reference;
            defaults to ../../agents relative to the skill
        prefix: Naming prefix override (default: FPL_COMMAND_PREFIX or "flutter")

    Returns:
        SkillValidationReport with all results and the parsed document
    """
    report = SkillValidationReport(skill_path=str(skill_path))

    if not skill_path.is_dir():
        report.critical(f"Skill path is not a directory: {skill_path}")
        return report

    skill_md = skill_path / "SKILL.md"
    if not skill_md.is_file():
        report.critical("SKILL.md not found (required)", "SKILL.md")
        return report
    report.passed("SKILL.md exists", "SKILL.md")

    content = read_markdown(skill_md, report, "SKILL.md")
    if content is None:
        return report

    try:
        doc = parse_skill_document(content, source=str(skill_md))
    except DocumentParseError as e:
        report.critical(str(e), "SKILL.md")
        return report
    report.document = doc

    if doc.frontmatter is None:
        report.info("No YAML frontmatter found (optional)", "SKILL.md")
    else:
        report.passed("Valid YAML frontmatter", "SKILL.md")
        validate_frontmatter_fields(doc.frontmatter, skill_path.name, report, "SKILL.md")

    if agents_dir is None:
        agents_dir = skill_path.parent.parent / "agents"

    validate_document_shape(doc, skill_path.name, report, "SKILL.md", agents_dir=agents_dir, prefix=prefix)
    validate_skill_size(doc, report)
    scan_content_security(content, "SKILL.md", report)
    validate_supporting_files(skill_path, content, report)

    return report


def validate_skills_directory(
    skills_dir: Path, agents_dir: Path | None = None, prefix: str | None = None
) -> list[SkillValidationReport]:
    """Validate every skill directory (one containing SKILL.md) under skills_dir."""
    if agents_dir is None:
        agents_dir = skills_dir.parent / "agents"
    return [
        validate_skill(child, agents_dir=agents_dir, prefix=prefix)
        for child in sorted(skills_dir.iterdir())
        if child.is_dir() and (child / "SKILL.md").exists()
    ]


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Validate a Flutter plugin skill directory (or skills/ root)")
    parser.add_argument("skill_path", help="Path to a skill directory or a skills/ directory")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show all results including passed checks")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("--strict", action="store_true", help="Strict mode - NIT issues also block validation")
    parser.add_argument("--agents-dir", help="agents/ directory for resolving Agent Reference")
    parser.add_argument("--prefix", help="Component naming prefix (default: $FPL_COMMAND_PREFIX or 'flutter')")
    args = parser.parse_args()

    skill_path = Path(args.skill_path)
    if not skill_path.exists():
        print(f"Error: {skill_path} does not exist", file=sys.stderr)
        return 1
    if not skill_path.is_dir():
        print(f"Error: {skill_path} is not a directory", file=sys.stderr)
        return 1

    agents_dir = Path(args.agents_dir) if args.agents_dir else None

    if (skill_path / "SKILL.md").exists():
        reports = [validate_skill(skill_path, agents_dir=agents_dir, prefix=args.prefix)]
    else:
        reports = validate_skills_directory(skill_path, agents_dir=agents_dir, prefix=args.prefix)
        if not reports:
            print(f"Error: No SKILL.md found in {skill_path} or its subdirectories", file=sys.stderr)
            return 1

    if args.json:
        print_json_report(reports, key="skills")
    else:
        for report in reports:
            print_report(report, f"Skill Validation: {report.skill_path}", verbose=args.verbose)

    return worst_exit_code(reports, strict=args.strict)


if __name__ == "__main__":
    sys.exit(main())
