#!/usr/bin/env python3
"""
Flutter Plugin Lint - Cross-Reference Validator

Validates references between plugin components:
1. Skill and command Agent References name agents in agents/
2. Agent frontmatter 'skills' entries name skills in skills/
3. /flutter-xxx slash-command mentions name a known skill or command
4. skills/<name> path mentions resolve
5. Hook scripts referenced through ${CLAUDE_PLUGIN_ROOT} exist
6. Versions agree across plugin.json, marketplace.json, CHANGELOG.md and package.json

Usage:
    uv run python scripts/validate_xref.py /path/to/plugin
    uv run python scripts/validate_xref.py /path/to/plugin --verbose
    uv run python scripts/validate_xref.py /path/to/plugin --json

Exit codes:
    0 - All checks passed (or only INFO/PASSED)
    1 - CRITICAL issues found
    2 - MAJOR issues found
    3 - MINOR issues found
"""

from __future__ import annotations

import argparse
import json
import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from fpl_validation_common import (
    COLORS,
    ValidationReport,
    get_command_prefix,
    iter_plugin_files,
    print_report_summary,
    print_results_by_level,
    relative_to_root,
)
from skill_document import DocumentParseError, parse_skill_document, split_frontmatter

# =============================================================================
# Regex Patterns for Cross-Reference Detection
# =============================================================================

# Glob mentions such as skills/flutter-*/ are not references
SKILL_PATH_PATTERN = re.compile(r"(?<![\w.-])skills/([a-z][a-z0-9]*(?:-[a-z0-9]+)*)(?![\w*-])")

HOOK_SCRIPT_PATTERN = re.compile(r"\$\{CLAUDE_PLUGIN_ROOT\}/([^\"'}\s]+)")

# "## [1.2.0] - 2025-01-01" or "## 1.2.0"
CHANGELOG_VERSION_PATTERN = re.compile(r"^##\s+\[?v?(\d+\.\d+\.\d+[^\]\s]*)\]?", re.MULTILINE)

SCAN_SUFFIXES = {".md", ".json", ".yaml", ".yml", ".sh"}


def slash_command_pattern(prefix: str | None = None) -> re.Pattern[str]:
    resolved = re.escape(get_command_prefix(prefix))
    return re.compile(rf"(?<![\w/.-])/({resolved}-[a-z0-9]+(?:-[a-z0-9]+)*)\b")


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class CrossReferenceValidationReport(ValidationReport):
    """Validation report for cross-references.

    Attributes:
        plugin_path: Path to the plugin being validated
        agent_refs: Source file -> agent names it references
        skill_refs: Source file -> skill names it references
        version_sources: Source name -> version found
        hook_script_refs: Hook script paths referenced
    """

    plugin_path: str = ""
    agent_refs: dict[str, list[str]] = field(default_factory=dict)
    skill_refs: dict[str, list[str]] = field(default_factory=dict)
    version_sources: dict[str, str] = field(default_factory=dict)
    hook_script_refs: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        base = super().to_dict()
        base["plugin_path"] = self.plugin_path
        base["agent_refs"] = self.agent_refs
        base["skill_refs"] = self.skill_refs
        base["version_sources"] = self.version_sources
        base["hook_script_refs"] = self.hook_script_refs
        return base


# =============================================================================
# Helper Functions
# =============================================================================


def get_available_agents(plugin_root: Path) -> set[str]:
    """Agent names (file stems) in agents/."""
    agents_dir = plugin_root / "agents"
    if not agents_dir.is_dir():
        return set()
    return {p.stem for p in agents_dir.glob("*.md") if p.name.lower() != "readme.md"}


def get_available_skills(plugin_root: Path) -> set[str]:
    """Skill names: directories in skills/ that contain SKILL.md."""
    skills_dir = plugin_root / "skills"
    if not skills_dir.is_dir():
        return set()
    return {p.parent.name for p in skills_dir.glob("*/SKILL.md")}


def get_available_commands(plugin_root: Path) -> set[str]:
    commands_dir = plugin_root / "commands"
    if not commands_dir.is_dir():
        return set()
    return {p.stem for p in commands_dir.glob("*.md") if p.name.lower() != "readme.md"}


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


def _read_json(path: Path) -> Any:
    text = _read_text(path)
    if text is None:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


# =============================================================================
# Rule 1: Agent References resolve
# =============================================================================


def validate_agent_references(
    plugin_root: Path, report: CrossReferenceValidationReport, available_agents: set[str]
) -> None:
    documents = sorted((plugin_root / "skills").glob("*/SKILL.md")) + sorted((plugin_root / "commands").glob("*.md"))

    for path in documents:
        content = _read_text(path)
        if content is None:
            continue
        try:
            doc = parse_skill_document(content, source=str(path))
        except DocumentParseError:
            # Reported by the skill/command validators
            continue
        if doc.agent_reference is None:
            continue

        rel = relative_to_root(path, plugin_root)
        report.agent_refs[rel] = [doc.agent_reference]
        if doc.agent_reference in available_agents:
            report.passed(f"Agent reference '{doc.agent_reference}' is valid", rel)
        else:
            report.major(
                f"Agent Reference names non-existent agent '{doc.agent_reference}'", rel, doc.agent_reference_line
            )


# =============================================================================
# Rule 2: Agent skills exist
# =============================================================================


def validate_agent_skills(
    plugin_root: Path, report: CrossReferenceValidationReport, available_skills: set[str]
) -> None:
    agents_dir = plugin_root / "agents"
    if not agents_dir.is_dir():
        return

    for path in sorted(agents_dir.glob("*.md")):
        content = _read_text(path)
        if content is None:
            continue
        try:
            frontmatter, _, _ = split_frontmatter(content)
        except DocumentParseError:
            continue
        if not frontmatter or "skills" not in frontmatter:
            continue

        skills = frontmatter["skills"]
        if isinstance(skills, str):
            skills = [s.strip() for s in skills.split(",") if s.strip()]
        if not isinstance(skills, list):
            continue

        rel = relative_to_root(path, plugin_root)
        names = [s for s in skills if isinstance(s, str)]
        report.skill_refs.setdefault(rel, []).extend(names)
        for skill in names:
            if skill in available_skills:
                report.passed(f"Agent skill '{skill}' exists", rel)
            else:
                report.major(f"Agent lists non-existent skill '{skill}'", rel)


# =============================================================================
# Rules 3 and 4: Slash-command and skills/<name> mentions
# =============================================================================


def validate_mentions(
    plugin_root: Path,
    report: CrossReferenceValidationReport,
    available_skills: set[str],
    available_commands: set[str],
    prefix: str | None = None,
) -> None:
    """Scan plugin text files for /flutter-xxx and skills/<name> mentions."""
    slash_pattern = slash_command_pattern(prefix)
    known_commands = available_skills | available_commands

    for path in iter_plugin_files(plugin_root, SCAN_SUFFIXES):
        content = _read_text(path)
        if content is None:
            continue
        rel = relative_to_root(path, plugin_root)

        for line_no, line in enumerate(content.split("\n"), start=1):
            if path.suffix == ".md":
                for name in slash_pattern.findall(line):
                    if name not in known_commands:
                        report.minor(f"Mentions unknown slash command '/{name}'", rel, line_no)

            for name in SKILL_PATH_PATTERN.findall(line):
                report.skill_refs.setdefault(rel, [])
                if name not in report.skill_refs[rel]:
                    report.skill_refs[rel].append(name)
                if name not in available_skills:
                    report.major(f"Reference to non-existent skill path 'skills/{name}'", rel, line_no)


# =============================================================================
# Rule 5: Hook scripts exist
# =============================================================================


def extract_script_paths_from_hooks(hooks_config: Any) -> list[str]:
    """All ${CLAUDE_PLUGIN_ROOT}/... paths in a hooks configuration, sorted."""
    found: set[str] = set()

    def _walk(value: Any) -> None:
        if isinstance(value, str):
            found.update(HOOK_SCRIPT_PATTERN.findall(value))
        elif isinstance(value, dict):
            for v in value.values():
                _walk(v)
        elif isinstance(value, list):
            for item in value:
                _walk(item)

    _walk(hooks_config)
    return sorted(found)


def validate_hook_script_refs(plugin_root: Path, report: CrossReferenceValidationReport) -> None:
    hooks_file = plugin_root / "hooks" / "hooks.json"
    if not hooks_file.is_file():
        report.info("No hooks configuration found - skipping hook script check")
        return

    hooks_config = _read_json(hooks_file)
    if hooks_config is None:
        report.minor("Could not parse hooks file", "hooks/hooks.json")
        return

    for script_path in extract_script_paths_from_hooks(hooks_config):
        report.hook_script_refs.append(script_path)
        resolved = plugin_root / script_path
        if not resolved.exists():
            report.critical(f"Hook references non-existent script: {script_path}", "hooks/hooks.json")
        elif resolved.suffix in {".sh", ".bash"} and not os.access(resolved, os.X_OK):
            report.minor(f"Hook script is not executable: {script_path}", "hooks/hooks.json")
        else:
            report.passed(f"Hook script exists: {script_path}", "hooks/hooks.json")


# =============================================================================
# Rule 6: Version synchronization
# =============================================================================


def collect_versions(plugin_root: Path) -> dict[str, str]:
    """Version strings declared by each known source."""
    versions: dict[str, str] = {}

    manifest = _read_json(plugin_root / ".claude-plugin" / "plugin.json")
    plugin_name = None
    if isinstance(manifest, dict):
        plugin_name = manifest.get("name")
        if isinstance(manifest.get("version"), str):
            versions["plugin.json"] = manifest["version"]

    marketplace = _read_json(plugin_root / ".claude-plugin" / "marketplace.json")
    if isinstance(marketplace, dict) and isinstance(marketplace.get("plugins"), list):
        for entry in marketplace["plugins"]:
            if isinstance(entry, dict) and entry.get("name") == plugin_name and isinstance(entry.get("version"), str):
                versions["marketplace.json"] = entry["version"]
                break

    changelog = _read_text(plugin_root / "CHANGELOG.md")
    if changelog:
        match = CHANGELOG_VERSION_PATTERN.search(changelog)
        if match:
            versions["CHANGELOG.md"] = match.group(1)

    package = _read_json(plugin_root / "package.json")
    if isinstance(package, dict) and isinstance(package.get("version"), str):
        versions["package.json"] = package["version"]

    return versions


def validate_version_sync(plugin_root: Path, report: CrossReferenceValidationReport) -> None:
    versions = collect_versions(plugin_root)
    report.version_sources = versions

    if len(versions) < 2:
        report.info(f"Only {len(versions)} version source(s) found - sync check skipped")
        return

    unique = set(versions.values())
    if len(unique) == 1:
        report.passed(f"All {len(versions)} version sources agree: {unique.pop()}")
    else:
        version_list = ", ".join(f"{src}={ver}" for src, ver in versions.items())
        report.major(f"Version mismatch detected: {version_list}")


# =============================================================================
# Main Validation Function
# =============================================================================


def validate_cross_references(plugin_path: str | Path, prefix: str | None = None) -> CrossReferenceValidationReport:
    """Validate all cross-references in a plugin.

    Args:
        plugin_path: Path to the plugin directory
        prefix: Naming prefix for slash-command mentions

    Returns:
        CrossReferenceValidationReport with all validation results
    """
    plugin_root = Path(plugin_path).resolve()
    report = CrossReferenceValidationReport(plugin_path=str(plugin_root))

    if not plugin_root.is_dir():
        report.critical(f"Plugin path is not a directory: {plugin_root}")
        return report

    available_agents = get_available_agents(plugin_root)
    available_skills = get_available_skills(plugin_root)
    available_commands = get_available_commands(plugin_root)

    report.info(f"Found {len(available_agents)} agent(s) in agents/")
    report.info(f"Found {len(available_skills)} skill(s) in skills/")
    report.info(f"Found {len(available_commands)} command(s) in commands/")

    validate_agent_references(plugin_root, report, available_agents)
    validate_agent_skills(plugin_root, report, available_skills)
    validate_mentions(plugin_root, report, available_skills, available_commands, prefix)
    validate_hook_script_refs(plugin_root, report)
    validate_version_sync(plugin_root, report)

    return report


def main() -> int:
    """CLI entry point for cross-reference validation."""
    parser = argparse.ArgumentParser(description="Validate cross-references between Flutter plugin components")
    parser.add_argument("plugin_path", help="Path to the plugin directory to validate")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show all results including PASSED and INFO")
    parser.add_argument("--json", action="store_true", help="Output results as JSON")
    parser.add_argument("--strict", action="store_true", help="Strict mode - NIT issues also block validation")
    parser.add_argument("--prefix", help="Component naming prefix (default: $FPL_COMMAND_PREFIX or 'flutter')")
    args = parser.parse_args()

    plugin_path = Path(args.plugin_path).resolve()
    if not plugin_path.is_dir():
        print(f"Error: {plugin_path} is not a directory", file=sys.stderr)
        return 1
    if not (plugin_path / ".claude-plugin").is_dir():
        print(f"Error: No plugin found at {plugin_path}\nExpected a .claude-plugin/ directory.", file=sys.stderr)
        return 1

    report = validate_cross_references(plugin_path, prefix=args.prefix)

    if args.json:
        print(report.to_json())
    else:
        print_report_summary(report, "Cross-Reference Validation Report")
        print_results_by_level(report, verbose=args.verbose)

        if args.verbose:
            print(f"\n{COLORS['BOLD']}Cross-Reference Summary:{COLORS['RESET']}")
            if report.agent_refs:
                print(f"  Agent references found in {len(report.agent_refs)} file(s)")
            if report.skill_refs:
                print(f"  Skill references found in {len(report.skill_refs)} file(s)")
            if report.version_sources:
                print(f"  Version sources: {', '.join(report.version_sources)}")
            if report.hook_script_refs:
                print(f"  Hook scripts referenced: {len(report.hook_script_refs)}")
        print()

    if args.strict:
        return report.exit_code_strict()
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
