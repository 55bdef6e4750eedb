#!/usr/bin/env python3
"""
Flutter Plugin Lint - Command Validator

Validates command markdown files (commands/flutter-*.md): frontmatter for the
slash command menu plus the same document shape as skills.

Usage:
    uv run python scripts/validate_command.py commands/flutter-pub.md
    uv run python scripts/validate_command.py commands/  # validate all commands in dir
    uv run python scripts/validate_command.py commands/flutter-pub.md --json

Exit codes:
    0 - All checks passed
    1 - CRITICAL issues found (command will not work)
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
    MIN_BODY_CHARS,
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
from skill_document import DocumentParseError, parse_skill_document, split_frontmatter
from validate_skill import validate_document_shape

# =============================================================================
# Command-Specific Constants
# =============================================================================

# Maximum description length for commands (shown in the slash command menu)
MAX_COMMAND_DESCRIPTION_LENGTH = 60

KNOWN_FRONTMATTER_FIELDS = {
    "name",
    "description",
    "allowed-tools",
    "model",
    "argument-hint",
}

COMMAND_MODELS = {"haiku", "sonnet", "opus"}

# ToolName or ToolName(pattern*)
TOOL_PATTERN_REGEX = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)(?:\(([^)]*)\))?$")


@dataclass
class CommandValidationReport(ValidationReport):
    """Validation report for a command file."""

    command_path: str = ""

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        base = super().to_dict()
        base["command_path"] = self.command_path
        return base


# =============================================================================
# Frontmatter Validation
# =============================================================================


def validate_name_field(
    frontmatter: dict[str, Any], stem: str, prefix: str | None, report: ValidationReport, filename: str
) -> None:
    """File stem follows {prefix}-{domain}; a frontmatter name must equal it."""
    pattern = command_name_pattern(prefix)
    if not pattern.match(stem):
        report.major(f"Command file name '{stem}' must follow {get_command_prefix(prefix)}-{{domain}}", filename)

    if "name" not in frontmatter:
        report.info(f"No 'name' field (will use filename: {stem})", filename)
        return

    name = frontmatter["name"]
    if not isinstance(name, str):
        report.critical(f"'name' must be a string, got {type(name).__name__}", filename)
        return
    if name.lstrip("/") != stem:
        report.major(f"Frontmatter name '{name}' does not match file name '{stem}'", filename)
    else:
        report.passed(f"'name' field matches file name: {stem}", filename)


def validate_description_field(frontmatter: dict[str, Any], report: ValidationReport, filename: str) -> None:
    """Validate the 'description' frontmatter field (required, max 60 chars)."""
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

    if len(desc) > MAX_COMMAND_DESCRIPTION_LENGTH:
        report.major(
            f"Description exceeds {MAX_COMMAND_DESCRIPTION_LENGTH} chars ({len(desc)} chars). "
            "Command descriptions must be brief for the slash command menu.",
            filename,
        )

    if "<" in desc or ">" in desc:
        report.major("Description contains angle brackets (< or >) - can break prompts", filename)

    report.passed("'description' field valid", filename)


def validate_tool_pattern(tool: str) -> tuple[bool, str]:
    """Validate a single allowed-tools entry.

    Valid formats:
    - "ToolName" (e.g., "Read", "Bash")
    - "ToolName(pattern*)" (e.g., "Bash(flutter pub:*)")
    - "mcp__server__tool" (MCP tools)

    Returns:
        Tuple of (is_valid, error_message)
    """
    if tool.startswith("mcp__"):
        if len(tool.split("__")) >= 3:
            return True, ""
        return False, "MCP tool format should be mcp__<server>__<tool>"

    match = TOOL_PATTERN_REGEX.match(tool)
    if not match:
        return False, "Invalid format. Use 'ToolName' or 'ToolName(pattern*)'"

    base_tool, pattern = match.group(1), match.group(2)
    if base_tool not in VALID_TOOLS:
        return False, f"Unknown tool '{base_tool}'. Known tools: {sorted(VALID_TOOLS)}"
    if pattern is not None and pattern and not pattern.strip():
        return False, "Pattern inside parentheses cannot be empty whitespace"

    return True, ""


def validate_allowed_tools_field(frontmatter: dict[str, Any], report: ValidationReport, filename: str) -> None:
    if "allowed-tools" not in frontmatter:
        report.info("No 'allowed-tools' field (command will inherit default tools)", filename)
        return

    tools = frontmatter["allowed-tools"]
    if isinstance(tools, str):
        tool_list = [t.strip() for t in tools.split(",") if t.strip()]
    elif isinstance(tools, list):
        tool_list = [str(t).strip() for t in tools if str(t).strip()]
    else:
        report.major(f"'allowed-tools' must be string or list, got {type(tools).__name__}", filename)
        return

    if not tool_list:
        report.minor("'allowed-tools' field is empty", filename)
        return

    invalid = False
    for tool in tool_list:
        ok, error = validate_tool_pattern(tool)
        if not ok:
            report.major(f"Invalid tool pattern '{tool}': {error}", filename)
            invalid = True
    if not invalid:
        report.passed(f"'allowed-tools' field valid: {len(tool_list)} tool(s)", filename)


def validate_model_field(frontmatter: dict[str, Any], report: ValidationReport, filename: str) -> None:
    if "model" not in frontmatter:
        return

    model = frontmatter["model"]
    if not isinstance(model, str):
        report.major(f"'model' must be a string, got {type(model).__name__}", filename)
    elif model.lower() not in COMMAND_MODELS:
        report.major(f"Invalid 'model' value: {model}. Valid values: {sorted(COMMAND_MODELS)}", filename)
    else:
        report.passed(f"'model' field valid: {model}", filename)


def validate_argument_hint_field(frontmatter: dict[str, Any], report: ValidationReport, filename: str) -> None:
    if "argument-hint" not in frontmatter:
        return

    hint = frontmatter["argument-hint"]
    if not isinstance(hint, str):
        report.major(f"'argument-hint' must be a string, got {type(hint).__name__}", filename)
    elif not hint.strip():
        report.minor("'argument-hint' is empty (should describe expected arguments)", filename)
    elif len(hint) > 100:
        report.minor(f"'argument-hint' is long ({len(hint)} chars) - may be truncated in UI", filename)
    else:
        report.passed(f"'argument-hint' field valid: {hint}", filename)


# =============================================================================
# Main Validation Function
# =============================================================================


def validate_command(
    command_path: Path, agents_dir: Path | None = None, prefix: str | None = None
) -> CommandValidationReport:
    """Validate a complete command file.

    Args:
        command_path: Path to the command .md file
        agents_dir: agents/ directory for resolving an Agent Reference;
            defaults to ../agents relative to the command
        prefix: Naming prefix override

    Returns:
        CommandValidationReport with all results
    """
    report = CommandValidationReport(command_path=str(command_path))
    filename = command_path.name

    if not command_path.is_file():
        report.critical(f"Command file not found: {command_path}")
        return report

    if command_path.suffix.lower() != ".md":
        report.major(f"Command file should have .md extension, got: {command_path.suffix}", filename)

    content = read_markdown(command_path, report, filename)
    if content is None:
        return report

    try:
        doc = parse_skill_document(content, source=str(command_path))
    except DocumentParseError as e:
        report.critical(str(e), filename)
        return report

    if doc.frontmatter is None:
        report.critical("No YAML frontmatter found (required for commands)", filename)
        frontmatter: dict[str, Any] = {}
    else:
        report.passed("Valid YAML frontmatter", filename)
        frontmatter = doc.frontmatter
        for key in frontmatter:
            if key not in KNOWN_FRONTMATTER_FIELDS:
                report.warning(f"Unknown frontmatter field '{key}' (may be ignored by the host)", filename)
        validate_description_field(frontmatter, report, filename)
        validate_allowed_tools_field(frontmatter, report, filename)
        validate_model_field(frontmatter, report, filename)
        validate_argument_hint_field(frontmatter, report, filename)

    stem = command_path.stem
    validate_name_field(frontmatter, stem, prefix, report, filename)

    _, body, _ = split_frontmatter(content)
    if not body.strip():
        report.major("Command has no content after frontmatter", filename)
        return report
    if len(body.strip()) < MIN_BODY_CHARS:
        report.minor(f"Command body is very short (recommended: >{MIN_BODY_CHARS} chars)", filename)

    if agents_dir is None:
        agents_dir = command_path.parent.parent / "agents"

    validate_document_shape(
        doc, stem, report, filename, agents_dir=agents_dir, prefix=prefix, require_references=False
    )
    scan_content_security(content, filename, report)

    return report


def validate_commands_directory(
    commands_dir: Path, agents_dir: Path | None = None, prefix: str | None = None
) -> list[CommandValidationReport]:
    """Validate all command files in a directory."""
    if not commands_dir.is_dir():
        report = CommandValidationReport(command_path=str(commands_dir))
        report.critical(f"Not a directory: {commands_dir}")
        return [report]

    command_files = sorted(p for p in commands_dir.glob("*.md") if p.name.lower() != "readme.md")
    if not command_files:
        report = CommandValidationReport(command_path=str(commands_dir))
        report.info("No command files (*.md) found in directory")
        return [report]

    return [validate_command(f, agents_dir=agents_dir, prefix=prefix) for f in command_files]


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Validate a Flutter plugin command file or directory")
    parser.add_argument("path", help="Path to command .md file or commands/ directory")
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
        print(f"Error: {path} is not a Markdown (.md) command file", file=sys.stderr)
        return 1
    if path.is_dir() and not list(path.glob("*.md")):
        print(f"Error: No command definition files (.md) found in {path}", file=sys.stderr)
        return 1

    if path.is_dir():
        reports = validate_commands_directory(path, prefix=args.prefix)
    else:
        reports = [validate_command(path, prefix=args.prefix)]

    if args.json:
        print_json_report(reports, key="commands")
    else:
        for report in reports:
            print_report(report, f"Command Validation: {report.command_path}", verbose=args.verbose)

    return worst_exit_code(reports, strict=args.strict)


if __name__ == "__main__":
    sys.exit(main())
