#!/usr/bin/env python3
"""
Flutter Plugin Lint - Agent Validator

Validates domain-expert agent files (agents/flutter-*.md): frontmatter
(name, description, tools, model, color, skills) and the persona body.

Usage:
    uv run python scripts/validate_agent.py agents/flutter-dependency-expert.md
    uv run python scripts/validate_agent.py agents/  # validate all agents in dir
    uv run python scripts/validate_agent.py agents/ --json

Exit codes:
    0 - All checks passed
    1 - CRITICAL issues found (agent will not load)
    2 - MAJOR issues found (significant problems)
    3 - MINOR issues found (may affect UX)
    4 - NIT issues found (--strict only)
"""

from __future__ import annotations

import argparse
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fpl_validation_common import (
    MAX_BODY_WORDS,
    MAX_DESCRIPTION_LENGTH,
    MAX_NAME_LENGTH,
    MIN_BODY_CHARS,
    NAME_PATTERN,
    VALID_MODELS,
    VALID_TOOLS,
    ValidationReport,
    command_name_pattern,
    get_command_prefix,
    print_json_report,
    print_report,
    read_markdown,
    scan_content_security,
    worst_exit_code,
)
from skill_document import DocumentParseError, fence_mask, iter_code_fences, split_frontmatter

KNOWN_FRONTMATTER_FIELDS = {
    # Required fields
    "name",
    "description",
    # Optional fields
    "tools",
    "disallowedTools",
    "model",
    "permissionMode",
    "skills",
    "hooks",
    "color",
    "maxTurns",
    "mcpServers",
    "memory",
}

# Named colors the host renders; hex #RRGGBB is also accepted
VALID_COLORS = {"red", "blue", "green", "yellow", "purple", "orange", "pink", "cyan"}
HEX_COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")

# Placeholder text patterns that indicate an unfinished persona
PLACEHOLDER_PATTERNS = [
    re.compile(r"\bTODO\b", re.IGNORECASE),
    re.compile(r"\bPLACEHOLDER\b", re.IGNORECASE),
    re.compile(r"\bFIXME\b", re.IGNORECASE),
    re.compile(r"\bXXX\b"),
    re.compile(r"\[[^\]]*INSERT[^\]]*\]", re.IGNORECASE),
    re.compile(r"\[[^\]]*FILL[^\]]*\]", re.IGNORECASE),
]


@dataclass
class AgentValidationReport(ValidationReport):
    """Validation report for an agent file, extends base ValidationReport with agent_path."""

    agent_path: str = ""

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        base = super().to_dict()
        base["agent_path"] = self.agent_path
        return base


def _tool_list(value: Any) -> list[str] | None:
    if isinstance(value, str):
        return [t.strip() for t in value.split(",") if t.strip()]
    if isinstance(value, list):
        return [str(t).strip() for t in value if str(t).strip()]
    return None


# =============================================================================
# Frontmatter Validation
# =============================================================================


def validate_name_field(
    frontmatter: dict[str, Any], stem: str, prefix: str | None, report: ValidationReport, filename: str
) -> None:
    """Name is required, kebab-case, prefixed and equal to the file stem."""
    if "name" not in frontmatter:
        report.major("Missing 'name' field (required)", filename)
        return

    name = frontmatter["name"]
    if not isinstance(name, str):
        report.critical(f"'name' must be a string, got {type(name).__name__}", filename)
        return

    if len(name) > MAX_NAME_LENGTH:
        report.major(f"Name exceeds {MAX_NAME_LENGTH} chars ({len(name)} chars): {name}", filename)

    if not NAME_PATTERN.match(name):
        report.major(f"Name must be kebab-case (lowercase letters, numbers, hyphens): {name}", filename)
    elif not command_name_pattern(prefix).match(name):
        report.major(f"Agent name '{name}' must start with '{get_command_prefix(prefix)}-'", filename)

    if name != stem:
        report.major(f"Agent name '{name}' does not match file name '{stem}'", filename)
    else:
        report.passed(f"'name' field valid: {name}", filename)


def validate_description_field(frontmatter: dict[str, Any], report: ValidationReport, filename: str) -> None:
    if "description" not in frontmatter:
        report.major("Missing 'description' field (required)", filename)
        return

    desc = frontmatter["description"]
    if not isinstance(desc, str):
        report.critical(f"'description' must be a string, got {type(desc).__name__}", filename)
        return
    if not desc.strip():
        report.major("'description' cannot be empty", filename)
        return

    if len(desc) < 10:
        report.minor(f"Description is very short ({len(desc)} chars)", filename)
    if len(desc) > MAX_DESCRIPTION_LENGTH:
        report.major(f"Description exceeds {MAX_DESCRIPTION_LENGTH} chars ({len(desc)} chars)", filename)
    if "<" in desc or ">" in desc:
        report.major("Description contains angle brackets (< or >) - can break agent prompts", filename)

    report.passed("'description' field valid", filename)


def validate_tools_field(frontmatter: dict[str, Any], report: ValidationReport, filename: str) -> None:
    for field_name in ("tools", "disallowedTools"):
        if field_name not in frontmatter:
            continue
        tools = _tool_list(frontmatter[field_name])
        if tools is None:
            report.major(
                f"'{field_name}' must be string or list, got {type(frontmatter[field_name]).__name__}", filename
            )
            continue
        if not tools:
            report.minor(f"'{field_name}' field is empty", filename)
            continue

        unknown = [t for t in tools if t.split("(")[0].strip() not in VALID_TOOLS and not t.startswith("mcp__")]
        if unknown:
            report.minor(f"Unknown tools in '{field_name}': {', '.join(unknown)}", filename)
        else:
            report.passed(f"'{field_name}' field valid: {len(tools)} tool(s)", filename)


def validate_model_field(frontmatter: dict[str, Any], report: ValidationReport, filename: str) -> None:
    if "model" not in frontmatter:
        report.info("No 'model' field (agent will inherit parent model)", filename)
        return

    model = frontmatter["model"]
    if not isinstance(model, str):
        report.major(f"'model' must be a string, got {type(model).__name__}", filename)
    elif model.lower() not in VALID_MODELS:
        report.major(f"Invalid 'model' value: {model}. Valid values: {sorted(VALID_MODELS)}", filename)
    else:
        report.passed(f"'model' field valid: {model}", filename)


def validate_color_field(frontmatter: dict[str, Any], report: ValidationReport, filename: str) -> None:
    if "color" not in frontmatter:
        return

    color = frontmatter["color"]
    if not isinstance(color, str):
        report.major(f"'color' must be a string, got {type(color).__name__}", filename)
    elif color.lower() not in VALID_COLORS and not HEX_COLOR_PATTERN.match(color):
        report.minor(f"Unknown 'color' value: {color}. Use one of {sorted(VALID_COLORS)} or #RRGGBB", filename)
    else:
        report.passed(f"'color' field valid: {color}", filename)


def validate_skills_field(frontmatter: dict[str, Any], report: ValidationReport, filename: str) -> None:
    """The skills field lists skill names (strings) the agent may use."""
    if "skills" not in frontmatter:
        return

    skills = frontmatter["skills"]
    if isinstance(skills, str):
        skills = [s.strip() for s in skills.split(",")]
    if not isinstance(skills, list):
        report.major(f"'skills' must be a list, got {type(skills).__name__}", filename)
        return
    if not skills:
        report.minor("'skills' list is empty - consider removing if no skills needed", filename)
        return

    invalid = [f"index {i}" for i, s in enumerate(skills) if not isinstance(s, str) or not s.strip()]
    if invalid:
        report.major(f"'skills' contains invalid items: {', '.join(invalid)}", filename)
    else:
        report.passed(f"'skills' field valid: {skills}", filename)


def validate_max_turns_field(frontmatter: dict[str, Any], report: ValidationReport, filename: str) -> None:
    if "maxTurns" not in frontmatter:
        return
    value = frontmatter["maxTurns"]
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        report.major(f"'maxTurns' must be a positive integer, got {value!r}", filename)


# =============================================================================
# Body Validation
# =============================================================================


def validate_body_content(body: str, body_start_line: int, report: ValidationReport, filename: str) -> None:
    """Persona body: length, role definition, placeholders and fences."""
    body_text = body.strip()
    if not body_text:
        report.major("Agent has no content after frontmatter", filename)
        return

    if len(body_text) < MIN_BODY_CHARS:
        report.minor(
            f"Agent body is very short ({len(body_text)} chars, recommended: >{MIN_BODY_CHARS})",
            filename,
        )

    word_count = len(body_text.split())
    if word_count > MAX_BODY_WORDS:
        report.minor(f"Agent body is very long ({word_count} words, recommended: <{MAX_BODY_WORDS})", filename)

    if "you are" not in body_text.lower():
        report.minor("Agent body should include a role definition ('You are...' statement)", filename)
    else:
        report.passed("Role definition present ('You are...')", filename)

    lines = body.split("\n")
    mask = fence_mask(lines)
    for i, line in enumerate(lines):
        if mask[i]:
            continue
        for pattern in PLACEHOLDER_PATTERNS:
            match = pattern.search(line)
            if match:
                report.major(f"Placeholder text in agent body: '{match.group()}'", filename, body_start_line + i)
                break

    for fence in iter_code_fences(lines, offset=body_start_line - 1):
        if not fence.closed:
            report.major("Unclosed code fence", filename, fence.start_line)
        if not fence.language:
            report.minor("Code fence has no language tag", filename, fence.start_line)


# =============================================================================
# Main Validation Function
# =============================================================================


def validate_agent(agent_path: Path, prefix: str | None = None) -> AgentValidationReport:
    """Validate a complete agent file.

    Args:
        agent_path: Path to the agent .md file
        prefix: Naming prefix override

    Returns:
        AgentValidationReport with all results
    """
    report = AgentValidationReport(agent_path=str(agent_path))
    filename = agent_path.name

    if not agent_path.is_file():
        report.critical(f"Agent file not found: {agent_path}")
        return report

    if agent_path.suffix.lower() != ".md":
        report.major(f"Agent file should have .md extension, got: {agent_path.suffix}", filename)

    content = read_markdown(agent_path, report, filename)
    if content is None:
        return report

    try:
        frontmatter, body, body_start = split_frontmatter(content)
    except DocumentParseError as e:
        report.critical(str(e), filename)
        return report

    if frontmatter is None:
        report.critical("No YAML frontmatter found (required for agents)", filename)
    else:
        report.passed("Valid YAML frontmatter", filename)
        for key in frontmatter:
            if key not in KNOWN_FRONTMATTER_FIELDS:
                report.warning(f"Unknown frontmatter field '{key}' (may be ignored by the host)", filename)
        validate_name_field(frontmatter, agent_path.stem, prefix, report, filename)
        validate_description_field(frontmatter, report, filename)
        validate_tools_field(frontmatter, report, filename)
        validate_model_field(frontmatter, report, filename)
        validate_color_field(frontmatter, report, filename)
        validate_skills_field(frontmatter, report, filename)
        validate_max_turns_field(frontmatter, report, filename)

    validate_body_content(body, body_start, report, filename)
    scan_content_security(content, filename, report)

    return report


def validate_agents_directory(agents_dir: Path, prefix: str | None = None) -> list[AgentValidationReport]:
    """Validate all agent files in a directory."""
    if not agents_dir.is_dir():
        report = AgentValidationReport(agent_path=str(agents_dir))
        report.critical(f"Not a directory: {agents_dir}")
        return [report]

    agent_files = sorted(p for p in agents_dir.glob("*.md") if p.name.lower() != "readme.md")
    if not agent_files:
        report = AgentValidationReport(agent_path=str(agents_dir))
        report.info("No agent files (*.md) found in directory")
        return [report]

    return [validate_agent(f, prefix=prefix) for f in agent_files]


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Validate a Flutter plugin agent file or directory")
    parser.add_argument("path", help="Path to agent .md file or agents/ directory")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show all results including passed checks")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("--strict", action="store_true", help="Strict mode - NIT issues also block validation")
    parser.add_argument("--prefix", help="Component naming prefix (default: $FPL_COMMAND_PREFIX or 'flutter')")
    args = parser.parse_args()

    path = Path(args.path).resolve()

    if not path.exists():
        print(f"Error: {path} does not exist", file=sys.stderr)
        return 1
    if path.is_file() and path.suffix != ".md":
        print(f"Error: {path} is not a Markdown (.md) agent file", file=sys.stderr)
        return 1
    if path.is_dir() and not list(path.glob("*.md")):
        print(f"Error: No agent definition files (.md) found in {path}", file=sys.stderr)
        return 1

    if path.is_dir():
        reports = validate_agents_directory(path, prefix=args.prefix)
    else:
        reports = [validate_agent(path, prefix=args.prefix)]

    if args.json:
        print_json_report(reports, key="agents")
    else:
        for report in reports:
            print_report(report, f"Agent Validation: {report.agent_path}", verbose=args.verbose)

    return worst_exit_code(reports, strict=args.strict)


if __name__ == "__main__":
    sys.exit(main())
