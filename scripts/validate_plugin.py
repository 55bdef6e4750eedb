#!/usr/bin/env python3
"""
Flutter Plugin Lint - Plugin Validator

Validation suite for a docs-only Flutter AI plugin. Runs every validator over
the plugin tree and merges their results into one report:

    manifest, component counts, structure, skills, commands, agents, hooks,
    MCP servers, cross-references, documentation, license

Usage:
    uv run python scripts/validate_plugin.py /path/to/plugin
    uv run python scripts/validate_plugin.py /path/to/plugin --verbose
    uv run python scripts/validate_plugin.py /path/to/plugin --json
    uv run python scripts/validate_plugin.py /path/to/plugin --prefix dart

Exit codes:
    0 - All checks passed (or only INFO/PASSED/WARNING/NIT)
    1 - CRITICAL issues found
    2 - MAJOR issues found
    3 - MINOR issues found
    4 - NIT issues found (--strict mode only)
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass, field
from pathlib import Path

from fpl_validation_common import ValidationReport, get_command_prefix, print_json_report, print_report
from skill_document import SkillDocument
from validate_agent import validate_agents_directory
from validate_command import validate_commands_directory
from validate_documentation import validate_documentation
from validate_hook import validate_hooks
from validate_manifest import count_components, validate_component_counts, validate_manifest
from validate_mcp import validate_plugin_mcp
from validate_skill import validate_skills_directory
from validate_xref import validate_cross_references

# Component directories that belong at the plugin root
COMPONENT_DIRS = ("commands", "agents", "skills", "hooks")

KNOWN_DIRS = {
    "commands",
    "agents",
    "skills",
    "hooks",
    "scripts",
    "docs",
    "templates",
    "tests",
    "assets",
    "references",
    "examples",
}

LICENSE_NAMES = ("LICENSE", "LICENSE.md", "LICENSE.txt")


@dataclass
class PluginValidationReport(ValidationReport):
    """Combined report for a whole plugin, keeping the parsed skill documents."""

    plugin_path: str = ""
    prefix: str = ""
    components: dict[str, int] = field(default_factory=dict)
    skills: dict[str, SkillDocument] = field(default_factory=dict, repr=False)

    def to_dict(self) -> dict[str, object]:
        base = super().to_dict()
        base["plugin_path"] = self.plugin_path
        base["prefix"] = self.prefix
        base["components"] = self.components
        base["skills"] = {
            name: {"command": doc.command_name, "subcommands": doc.subcommands, "options": sorted(doc.options)}
            for name, doc in self.skills.items()
        }
        return base


def validate_structure(plugin_root: Path, report: ValidationReport) -> None:
    """Plugin directory layout: .claude-plugin/ holds only the manifests."""
    claude_plugin_dir = plugin_root / ".claude-plugin"
    if not claude_plugin_dir.is_dir():
        report.critical(".claude-plugin directory not found")
        return
    report.passed(".claude-plugin directory exists")

    for component in COMPONENT_DIRS:
        if (claude_plugin_dir / component).exists():
            report.critical(f"{component}/ must be at plugin root, not in .claude-plugin/")

    for component in COMPONENT_DIRS:
        if (plugin_root / component).is_dir():
            report.passed(f"{component}/ directory exists")
        else:
            report.info(f"Optional directory {component}/ not found")

    for item in sorted(plugin_root.iterdir()):
        if not item.is_dir() or item.name.startswith("."):
            continue
        if item.name.lower() not in KNOWN_DIRS:
            report.warning(f"Non-standard directory '{item.name}/' - document its purpose in README")


def validate_license(plugin_root: Path, report: ValidationReport) -> None:
    for license_name in LICENSE_NAMES:
        if (plugin_root / license_name).exists():
            report.passed(f"{license_name} found")
            return
    report.minor("No LICENSE file found")


def validate_components(plugin_root: Path, report: PluginValidationReport, prefix: str) -> None:
    """Skills, commands and agents, merged with plugin-relative paths."""
    agents_dir = plugin_root / "agents"

    skills_dir = plugin_root / "skills"
    if skills_dir.is_dir():
        for skill_report in validate_skills_directory(skills_dir, agents_dir=agents_dir, prefix=prefix):
            name = Path(skill_report.skill_path).name
            report.merge(skill_report, prefix=f"skills/{name}")
            if skill_report.document is not None:
                report.skills[name] = skill_report.document

    commands_dir = plugin_root / "commands"
    if commands_dir.is_dir():
        for command_report in validate_commands_directory(commands_dir, agents_dir=agents_dir, prefix=prefix):
            report.merge(command_report, prefix="commands")

    if agents_dir.is_dir():
        for agent_report in validate_agents_directory(agents_dir, prefix=prefix):
            report.merge(agent_report, prefix="agents")


def validate_plugin(plugin_root: Path, prefix: str | None = None) -> PluginValidationReport:
    """Run every validator over a plugin tree.

    Args:
        plugin_root: Path to the plugin directory
        prefix: Naming prefix override (default: FPL_COMMAND_PREFIX or "flutter")

    Returns:
        PluginValidationReport with the merged results
    """
    prefix = get_command_prefix(prefix)
    report = PluginValidationReport(plugin_path=str(plugin_root), prefix=prefix)

    if not plugin_root.is_dir():
        report.critical(f"Plugin path is not a directory: {plugin_root}")
        return report

    manifest = validate_manifest(plugin_root, report)
    if manifest is not None:
        validate_component_counts(plugin_root, manifest, report)
    report.components = count_components(plugin_root)

    validate_structure(plugin_root, report)
    validate_components(plugin_root, report, prefix)

    hooks_json = plugin_root / "hooks" / "hooks.json"
    if hooks_json.is_file():
        # Script existence is checked by the cross-reference pass
        report.merge(validate_hooks(hooks_json), prefix="hooks/hooks.json")
    else:
        report.info("No hooks/hooks.json found")

    validate_plugin_mcp(plugin_root, report)
    report.merge(validate_cross_references(plugin_root, prefix=prefix))
    report.merge(validate_documentation(plugin_root, skip_component_fences=True))
    validate_license(plugin_root, report)

    return report


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Validate a Flutter AI plugin")
    parser.add_argument("path", nargs="?", help="Plugin root path (default: current directory)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show all results including passed checks")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("--strict", action="store_true", help="Strict mode - NIT issues also block validation")
    parser.add_argument("--prefix", help="Component naming prefix (default: $FPL_COMMAND_PREFIX or 'flutter')")
    args = parser.parse_args()

    plugin_root = Path(args.path) if args.path else Path.cwd()
    if not plugin_root.is_dir():
        print(f"Error: {plugin_root} is not a directory", file=sys.stderr)
        return 1

    report = validate_plugin(plugin_root, prefix=args.prefix)

    if args.json:
        print_json_report([report])
    else:
        print_report(report, f"Plugin Validation: {report.plugin_path}", verbose=args.verbose)
        if report.skills:
            print("Skills:")
            for name, doc in report.skills.items():
                subcommands = ", ".join(doc.subcommands) or "-"
                print(f"  /{doc.command_name or name}: {subcommands}")
            print()

    if args.strict:
        return report.exit_code_strict()
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
