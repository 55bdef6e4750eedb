#!/usr/bin/env python3
"""
Flutter Plugin Lint - Manifest Validator

Validates .claude-plugin/plugin.json and checks that the component counts it
declares match the agent, skill and command files on disk.

Declared counts are read, first match wins, from:
    "counts": {"agents": 5, "skills": 12, "commands": 8}
    "agentCount": 5, "skillCount": 12, "commandCount": 8
    "description": "... 5 specialized agents, 12 skills and 8 commands ..."

Usage:
    from validate_manifest import validate_manifest, validate_component_counts
    manifest = validate_manifest(plugin_root, report)
    if manifest is not None:
        validate_component_counts(plugin_root, manifest, report)
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, cast

from fpl_validation_common import NAME_PATTERN, ValidationReport

PLUGIN_JSON = ".claude-plugin/plugin.json"

SEMVER_PATTERN = re.compile(r"^\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$")

KNOWN_FIELDS = {
    "name",
    "version",
    "description",
    "author",
    "homepage",
    "repository",
    "license",
    "keywords",
    "categories",
    "commands",
    "agents",
    "skills",
    "hooks",
    "mcpServers",
    "outputStyles",
    "counts",
    "agentCount",
    "skillCount",
    "commandCount",
}

PATH_FIELDS = ("commands", "agents", "skills", "hooks", "mcpServers", "outputStyles")
INLINE_OBJECT_FIELDS = {"hooks", "mcpServers"}

COMPONENT_KINDS = ("agents", "skills", "commands")
COUNT_KEYS = {"agents": "agentCount", "skills": "skillCount", "commands": "commandCount"}

# "5 specialized agents", "12 skills", "8 slash commands"
DESCRIPTION_COUNT_RE = re.compile(
    r"\b(\d+)\s+(?:[A-Za-z-]+\s+){0,2}?(agents?|skills?|commands?)\b(?!-)", re.IGNORECASE
)


def load_manifest(plugin_root: Path, report: ValidationReport) -> dict[str, Any] | None:
    manifest_path = plugin_root / PLUGIN_JSON

    if not manifest_path.is_file():
        report.critical("plugin.json not found", PLUGIN_JSON)
        return None

    try:
        manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        report.critical(f"Invalid JSON in plugin.json: {e.msg} at line {e.lineno}", PLUGIN_JSON)
        return None
    except (OSError, UnicodeDecodeError) as e:
        report.critical(f"Cannot read plugin.json: {e}", PLUGIN_JSON)
        return None

    if not isinstance(manifest, dict):
        report.critical("plugin.json root must be a JSON object", PLUGIN_JSON)
        return None

    report.passed("plugin.json is valid JSON", PLUGIN_JSON)
    return cast(dict[str, Any], manifest)


def validate_manifest(plugin_root: Path, report: ValidationReport) -> dict[str, Any] | None:
    """Validate plugin.json manifest.

    Args:
        plugin_root: Path to the plugin directory
        report: ValidationReport to add results to

    Returns:
        The manifest dict if it could be loaded, None otherwise
    """
    manifest = load_manifest(plugin_root, report)
    if manifest is None:
        return None

    name = manifest.get("name")
    if name is None:
        report.critical("Missing required field 'name' in plugin.json", PLUGIN_JSON)
    elif not isinstance(name, str) or not NAME_PATTERN.match(name):
        report.major(f"Plugin name must be kebab-case: {name}", PLUGIN_JSON)
    else:
        report.passed(f"Plugin name valid: {name}", PLUGIN_JSON)

    if "version" not in manifest:
        report.minor("Missing recommended field 'version' in plugin.json", PLUGIN_JSON)
    elif not isinstance(manifest["version"], str) or not SEMVER_PATTERN.match(manifest["version"]):
        report.major(f"Version must be semver format: {manifest['version']}", PLUGIN_JSON)
    else:
        report.passed(f"Version: {manifest['version']}", PLUGIN_JSON)

    if "description" not in manifest:
        report.minor("Missing recommended field 'description' in plugin.json", PLUGIN_JSON)
    elif not isinstance(manifest["description"], str):
        report.major(f"'description' must be a string, got {type(manifest['description']).__name__}", PLUGIN_JSON)

    for key in manifest:
        if key not in KNOWN_FIELDS:
            report.warning(f"Unknown manifest field '{key}'", PLUGIN_JSON)

    if "repository" in manifest and not isinstance(manifest["repository"], str):
        report.major(
            f"Field 'repository' must be a string URL, not {type(manifest['repository']).__name__}", PLUGIN_JSON
        )

    for string_field in ("homepage", "license"):
        if string_field in manifest and not isinstance(manifest[string_field], str):
            report.major(f"'{string_field}' must be a string, got {type(manifest[string_field]).__name__}", PLUGIN_JSON)

    validate_author(manifest, report)
    validate_string_list(manifest, "keywords", report)
    validate_categories(manifest, report)
    validate_component_paths(manifest, report)

    return manifest


def validate_author(manifest: dict[str, Any], report: ValidationReport) -> None:
    if "author" not in manifest:
        return
    author = manifest["author"]
    if isinstance(author, str):
        return
    if not isinstance(author, dict):
        report.major(f"'author' must be a string or object, got {type(author).__name__}", PLUGIN_JSON)
    elif not isinstance(author.get("name"), str):
        report.major("'author' object needs a string 'name' field", PLUGIN_JSON)
    else:
        report.passed(f"Author: {author['name']}", PLUGIN_JSON)


def validate_string_list(manifest: dict[str, Any], key: str, report: ValidationReport) -> list[str]:
    if key not in manifest:
        return []
    value = manifest[key]
    if not isinstance(value, list):
        report.major(f"'{key}' must be an array", PLUGIN_JSON)
        return []
    if not all(isinstance(v, str) for v in value):
        report.major(f"'{key}' must contain only strings", PLUGIN_JSON)
        return []
    return cast(list[str], value)


def validate_categories(manifest: dict[str, Any], report: ValidationReport) -> None:
    """Categories are a list of unique, non-empty strings."""
    if "categories" not in manifest:
        return
    categories = validate_string_list(manifest, "categories", report)
    if not categories:
        return

    if any(not c.strip() for c in categories):
        report.major("'categories' contains an empty string", PLUGIN_JSON)
    duplicates = sorted({c for c in categories if categories.count(c) > 1})
    if duplicates:
        report.major(f"Duplicate categories: {', '.join(duplicates)}", PLUGIN_JSON)
    else:
        report.passed(f"Categories: {', '.join(categories)}", PLUGIN_JSON)


def validate_component_paths(manifest: dict[str, Any], report: ValidationReport) -> None:
    """Component path fields are ./relative (or inline objects where allowed)."""
    for key in PATH_FIELDS:
        if key not in manifest:
            continue
        value = manifest[key]
        if isinstance(value, str):
            paths = [value]
        elif isinstance(value, list):
            paths = [p for p in value if isinstance(p, str)]
        elif isinstance(value, dict) and key in INLINE_OBJECT_FIELDS:
            continue
        else:
            report.major(f"Field '{key}' must be a string path or array", PLUGIN_JSON)
            continue
        for path in paths:
            if not path.startswith("./"):
                report.major(f"Field '{key}' path must start with './': {path}", PLUGIN_JSON)

    hooks_value = manifest.get("hooks")
    if isinstance(hooks_value, str) and hooks_value.replace("\\", "/").removeprefix("./") == "hooks/hooks.json":
        report.major(
            "manifest.hooks points to 'hooks/hooks.json' which the host loads automatically (duplicate load)",
            PLUGIN_JSON,
        )


# =============================================================================
# Count parity
# =============================================================================


def count_components(plugin_root: Path) -> dict[str, int]:
    """Agent, skill and command files present on disk."""
    agents_dir = plugin_root / "agents"
    skills_dir = plugin_root / "skills"
    commands_dir = plugin_root / "commands"
    return {
        "agents": len([p for p in agents_dir.glob("*.md") if p.name.lower() != "readme.md"])
        if agents_dir.is_dir()
        else 0,
        "skills": len(list(skills_dir.glob("*/SKILL.md"))) if skills_dir.is_dir() else 0,
        "commands": len([p for p in commands_dir.glob("*.md") if p.name.lower() != "readme.md"])
        if commands_dir.is_dir()
        else 0,
    }


def declared_counts(manifest: dict[str, Any], report: ValidationReport | None = None) -> dict[str, tuple[int, str]]:
    """Component counts claimed by the manifest, with where each came from."""
    declared: dict[str, tuple[int, str]] = {}

    counts = manifest.get("counts")
    if counts is not None:
        if not isinstance(counts, dict):
            if report is not None:
                report.major(f"'counts' must be an object, got {type(counts).__name__}", PLUGIN_JSON)
        else:
            for kind, value in counts.items():
                if kind not in COMPONENT_KINDS:
                    if report is not None:
                        report.warning(f"Unknown component kind in 'counts': {kind}", PLUGIN_JSON)
                    continue
                if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                    if report is not None:
                        report.major(f"counts.{kind} must be a non-negative integer, got {value!r}", PLUGIN_JSON)
                    continue
                declared[kind] = (value, f"counts.{kind}")

    for kind, key in COUNT_KEYS.items():
        if kind in declared or key not in manifest:
            continue
        value = manifest[key]
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            if report is not None:
                report.major(f"'{key}' must be a non-negative integer, got {value!r}", PLUGIN_JSON)
            continue
        declared[kind] = (value, key)

    description = manifest.get("description")
    if isinstance(description, str):
        for number, noun in DESCRIPTION_COUNT_RE.findall(description):
            kind = noun.lower().rstrip("s") + "s"
            if kind not in declared:
                declared[kind] = (int(number), "description")

    return declared


def validate_component_counts(plugin_root: Path, manifest: dict[str, Any], report: ValidationReport) -> None:
    """Declared agent/skill/command counts equal the files on disk."""
    declared = declared_counts(manifest, report)
    if not declared:
        report.info("plugin.json declares no component counts", PLUGIN_JSON)
        return

    actual = count_components(plugin_root)
    for kind in COMPONENT_KINDS:
        if kind not in declared:
            continue
        value, source = declared[kind]
        if value != actual[kind]:
            report.major(
                f"plugin.json declares {value} {kind} ({source}) but {actual[kind]} found on disk",
                PLUGIN_JSON,
            )
        else:
            report.passed(f"{kind.capitalize()} count matches: {value}", PLUGIN_JSON)
