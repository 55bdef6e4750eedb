#!/usr/bin/env python3
"""
Flutter Plugin Lint - Hook Validator

Validates hooks/hooks.json: event names, matcher blocks, hook definitions and
the plugin scripts they call through ${CLAUDE_PLUGIN_ROOT}.

Usage:
    uv run python scripts/validate_hook.py hooks/hooks.json
    uv run python scripts/validate_hook.py hooks/hooks.json --plugin-root .
    uv run python scripts/validate_hook.py hooks/hooks.json --json

Exit codes:
    0 - All checks passed
    1 - CRITICAL issues found (hooks will not load)
    2 - MAJOR issues found (significant problems)
    3 - MINOR issues found (may affect behavior)
    4 - NIT issues found (--strict only)
"""

from __future__ import annotations

import argparse
import json
import os
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fpl_validation_common import VALID_HOOK_EVENTS, ValidationReport, print_json_report, print_report

# Events whose matcher field is ignored by the host
EVENTS_WITHOUT_MATCHERS = {"UserPromptSubmit", "Stop"}

VALID_HOOK_TYPES = {"command", "prompt", "agent"}

# Events that only run type "command" hooks
COMMAND_ONLY_EVENTS = {"Notification", "PreCompact", "SessionEnd", "SessionStart", "SubagentStart"}

KNOWN_HOOK_FIELDS = {"type", "command", "prompt", "model", "timeout", "async", "statusMessage", "description"}

# Timeouts are seconds; larger values usually mean milliseconds were intended
MAX_REASONABLE_TIMEOUT = 600
MILLISECONDS_THRESHOLD = 1000

PLUGIN_ROOT_VAR_RE = re.compile(r"\$\{?CLAUDE_PLUGIN_ROOT\}?(/[^\s\"']+)")

SHELL_SUFFIXES = {".sh", ".bash"}


@dataclass
class HookValidationReport(ValidationReport):
    """Hook validation report with hook-specific metadata."""

    hook_path: str = ""

    def to_dict(self) -> dict[str, object]:
        base = super().to_dict()
        base["hook_path"] = self.hook_path
        return base


def load_hooks_json(hook_path: Path, report: ValidationReport) -> dict[str, Any] | None:
    """Read hooks.json and check the top-level object."""
    if not hook_path.is_file():
        report.critical(f"Hook file not found: {hook_path}")
        return None

    try:
        data = json.loads(hook_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        report.critical(f"Invalid JSON: {e.msg} at line {e.lineno}")
        return None
    except (OSError, UnicodeDecodeError) as e:
        report.critical(f"Cannot read hooks file: {e}")
        return None
    report.passed("Valid JSON syntax")

    if not isinstance(data, dict):
        report.critical("Root must be a JSON object")
        return None

    if "description" in data and not isinstance(data["description"], str):
        report.major(f"'description' must be a string, got {type(data['description']).__name__}")

    if "hooks" not in data:
        report.critical("Missing required 'hooks' object")
        return None
    if not isinstance(data["hooks"], dict):
        report.critical(f"'hooks' must be an object, got {type(data['hooks']).__name__}")
        return None

    report.passed("Valid top-level structure")
    return data


def validate_matcher(matcher: Any, event_name: str, report: ValidationReport) -> bool:
    """A matcher is an optional regex over tool names."""
    if event_name in EVENTS_WITHOUT_MATCHERS:
        if matcher not in (None, ""):
            report.info(f"Matcher '{matcher}' provided for {event_name} (matchers are ignored for this event)")
        return True

    if matcher in (None, "", "*"):
        return True

    if not isinstance(matcher, str):
        report.major(f"Matcher must be a string, got {type(matcher).__name__}")
        return False

    try:
        re.compile(matcher)
    except re.error as e:
        report.major(f"Invalid regex in matcher '{matcher}': {e}")
        return False

    return True


def validate_timeout(hook: dict[str, Any], hook_type: str, report: ValidationReport) -> None:
    if "timeout" not in hook:
        return

    timeout = hook["timeout"]
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        report.major(f"'timeout' must be a number (seconds), got {type(timeout).__name__}")
    elif timeout <= 0:
        report.major("'timeout' must be positive")
    elif timeout > MILLISECONDS_THRESHOLD:
        report.major(f"{hook_type.capitalize()} hook timeout is {timeout} - values are seconds, not milliseconds")
    elif timeout > MAX_REASONABLE_TIMEOUT:
        report.minor(f"Long timeout ({timeout}s) may cause delays")


def find_plugin_scripts(command: str) -> list[str]:
    """Relative script paths referenced through ${CLAUDE_PLUGIN_ROOT}."""
    return [m.lstrip("/") for m in PLUGIN_ROOT_VAR_RE.findall(command)]


def validate_command_hook(hook: dict[str, Any], plugin_root: Path | None, report: ValidationReport) -> None:
    command = hook.get("command")
    if command is None:
        report.critical("Command hook missing required 'command' field")
        return
    if not isinstance(command, str):
        report.critical(f"'command' must be a string, got {type(command).__name__}")
        return
    if not command.strip():
        report.critical("'command' cannot be empty")
        return

    first_token = command.strip().split()[0].strip("'\"")
    if first_token.startswith("/"):
        report.major(f"Command uses absolute path '{first_token}' - use ${{CLAUDE_PLUGIN_ROOT}} for portability")

    for rel in find_plugin_scripts(command):
        if plugin_root is None:
            report.info(f"Script '{rel}' not checked (no plugin root)")
            continue
        script = plugin_root / rel
        if not script.is_file():
            report.major(f"Hook script not found: {rel}")
        elif script.suffix in SHELL_SUFFIXES and not os.access(script, os.X_OK):
            report.minor(f"Hook script not executable: {rel}")
        else:
            report.passed(f"Hook script exists: {rel}")

    report.passed(f"Command: {command[:60]}")


def validate_single_hook(
    hook: Any, event_name: str, plugin_root: Path | None, report: HookValidationReport
) -> bool:
    """Validate a single hook definition."""
    if not isinstance(hook, dict):
        report.critical(f"Hook must be an object, got {type(hook).__name__}")
        return False

    hook_type = hook.get("type")
    if hook_type is None:
        report.critical("Hook missing required 'type' field")
        return False
    if hook_type not in VALID_HOOK_TYPES:
        report.critical(f"Invalid hook type: '{hook_type}'. Valid types: {sorted(VALID_HOOK_TYPES)}")
        return False

    if hook_type != "command" and event_name in COMMAND_ONLY_EVENTS:
        report.critical(f"Event '{event_name}' only supports type 'command' hooks, not '{hook_type}'")

    if hook.get("async") is True and hook_type != "command":
        report.major(f"'async: true' is only supported on type 'command' hooks, not '{hook_type}'")

    if hook_type == "command":
        validate_command_hook(hook, plugin_root, report)
    else:
        prompt = hook.get("prompt")
        if prompt is None:
            report.critical(f"{hook_type.capitalize()} hook missing required 'prompt' field")
        elif not isinstance(prompt, str) or not prompt.strip():
            report.major(f"{hook_type.capitalize()} hook 'prompt' must be a non-empty string")
        if "model" in hook and (not isinstance(hook["model"], str) or not hook["model"].strip()):
            report.major(f"{hook_type.capitalize()} hook 'model' must be a non-empty string")

    validate_timeout(hook, hook_type, report)

    if "statusMessage" in hook and not isinstance(hook["statusMessage"], str):
        report.major("'statusMessage' must be a string")

    for key in hook:
        if key not in KNOWN_HOOK_FIELDS:
            report.warning(f"Unknown hook field '{key}'")

    return True


def validate_matcher_block(
    matcher_block: Any, event_name: str, plugin_root: Path | None, report: HookValidationReport
) -> bool:
    """Validate a matcher block (matcher plus hooks array)."""
    if not isinstance(matcher_block, dict):
        report.critical(f"Matcher block must be an object, got {type(matcher_block).__name__}")
        return False

    if not validate_matcher(matcher_block.get("matcher"), event_name, report):
        return False

    hooks = matcher_block.get("hooks")
    if hooks is None:
        report.critical("Matcher block missing required 'hooks' array")
        return False
    if not isinstance(hooks, list):
        report.critical(f"'hooks' must be an array, got {type(hooks).__name__}")
        return False
    if not hooks:
        report.minor("'hooks' array is empty")
        return True

    results = [validate_single_hook(hook, event_name, plugin_root, report) for hook in hooks]
    return all(results)


def validate_hooks(hook_path: Path, plugin_root: Path | None = None) -> HookValidationReport:
    """Validate a complete hooks.json file.

    Args:
        hook_path: Path to the hooks.json file
        plugin_root: Plugin root for resolving ${CLAUDE_PLUGIN_ROOT} scripts

    Returns:
        HookValidationReport with all results
    """
    report = HookValidationReport(hook_path=str(hook_path))

    data = load_hooks_json(hook_path, report)
    if data is None:
        return report

    for event_name, event_config in data["hooks"].items():
        if event_name not in VALID_HOOK_EVENTS:
            report.critical(f"Unknown hook event: '{event_name}'. Valid events: {sorted(VALID_HOOK_EVENTS)}")
            continue
        if not isinstance(event_config, list):
            report.critical(f"Event config for '{event_name}' must be an array, got {type(event_config).__name__}")
            continue
        if not event_config:
            report.info(f"No hooks configured for {event_name}")
            continue

        valid = [validate_matcher_block(block, event_name, plugin_root, report) for block in event_config]
        if all(valid):
            report.passed(f"All hooks valid for {event_name}")

    return report


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Validate a Flutter plugin hooks.json file")
    parser.add_argument("hook_path", help="Path to the hooks.json file")
    parser.add_argument("--plugin-root", help="Plugin root directory for resolving script paths")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show all results including passed checks")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("--strict", action="store_true", help="Strict mode - NIT issues also block validation")
    args = parser.parse_args()

    hook_path = Path(args.hook_path)
    if not hook_path.exists():
        print(f"Error: {hook_path} does not exist", file=sys.stderr)
        return 1

    if args.plugin_root:
        plugin_root: Path | None = Path(args.plugin_root)
    elif hook_path.parent.name == "hooks":
        plugin_root = hook_path.parent.parent
    else:
        plugin_root = None

    report = validate_hooks(hook_path, plugin_root)

    if args.json:
        print_json_report([report])
    else:
        print_report(report, f"Hook Validation: {report.hook_path}", verbose=args.verbose)

    if args.strict:
        return report.exit_code_strict()
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
