#!/usr/bin/env python3
"""Tests for validate_hook.py - hooks.json validation."""

import json
import subprocess
import sys
from pathlib import Path

import pytest
from conftest import SCRIPTS_DIR, levels
from validate_hook import find_plugin_scripts, validate_hooks

SCRIPT_PATH = SCRIPTS_DIR / "validate_hook.py"


def write_hooks(path: Path, hooks: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"hooks": hooks}), encoding="utf-8")
    return path


def command_hook(command: str, **extra) -> list[dict]:
    return [{"matcher": "Edit", "hooks": [{"type": "command", "command": command, **extra}]}]


class TestFixtureHooks:
    def test_fixture_hooks_are_clean(self, plugin_dir: Path) -> None:
        report = validate_hooks(plugin_dir / "hooks" / "hooks.json", plugin_dir)
        assert report.get_all_errors() == [], [r.message for r in report.get_all_errors()]
        assert "Hook script exists: hooks/scripts/check-pubspec.sh" in levels(report, "PASSED")

    def test_without_plugin_root_scripts_not_checked(self, plugin_dir: Path) -> None:
        report = validate_hooks(plugin_dir / "hooks" / "hooks.json")
        assert report.exit_code == 0
        assert any("not checked" in m for m in levels(report, "INFO"))


class TestStructure:
    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "hooks.json"
        path.write_text("{not json", encoding="utf-8")
        report = validate_hooks(path)
        assert any("Invalid JSON" in m for m in levels(report, "CRITICAL"))

    def test_missing_hooks_object(self, tmp_path: Path) -> None:
        path = tmp_path / "hooks.json"
        path.write_text("{}", encoding="utf-8")
        report = validate_hooks(path)
        assert "Missing required 'hooks' object" in levels(report, "CRITICAL")

    def test_unknown_event(self, tmp_path: Path) -> None:
        path = write_hooks(tmp_path / "hooks.json", {"BeforeBuild": command_hook("echo hi")})
        report = validate_hooks(path)
        assert any("Unknown hook event: 'BeforeBuild'" in m for m in levels(report, "CRITICAL"))

    def test_invalid_matcher_regex(self, tmp_path: Path) -> None:
        path = write_hooks(
            tmp_path / "hooks.json",
            {"PreToolUse": [{"matcher": "Edit(", "hooks": [{"type": "command", "command": "echo hi"}]}]},
        )
        report = validate_hooks(path)
        assert any("Invalid regex in matcher" in m for m in levels(report, "MAJOR"))

    def test_invalid_hook_type(self, tmp_path: Path) -> None:
        path = write_hooks(
            tmp_path / "hooks.json", {"PreToolUse": [{"matcher": "Edit", "hooks": [{"type": "webhook"}]}]}
        )
        report = validate_hooks(path)
        assert any("Invalid hook type: 'webhook'" in m for m in levels(report, "CRITICAL"))

    def test_prompt_hook_on_command_only_event(self, tmp_path: Path) -> None:
        path = write_hooks(
            tmp_path / "hooks.json",
            {"SessionStart": [{"hooks": [{"type": "prompt", "prompt": "Check the pubspec"}]}]},
        )
        report = validate_hooks(path)
        assert any("only supports type 'command'" in m for m in levels(report, "CRITICAL"))


class TestCommandHooks:
    def test_absolute_path_is_major(self, tmp_path: Path) -> None:
        path = write_hooks(tmp_path / "hooks.json", {"PostToolUse": command_hook("/opt/hooks/check.sh")})
        report = validate_hooks(path)
        assert any("absolute path" in m for m in levels(report, "MAJOR"))

    def test_missing_script(self, plugin_dir: Path) -> None:
        path = write_hooks(
            plugin_dir / "hooks" / "hooks.json",
            {"PostToolUse": command_hook("${CLAUDE_PLUGIN_ROOT}/hooks/scripts/missing.sh")},
        )
        report = validate_hooks(path, plugin_dir)
        assert "Hook script not found: hooks/scripts/missing.sh" in levels(report, "MAJOR")

    def test_non_executable_script(self, plugin_dir: Path) -> None:
        script = plugin_dir / "hooks" / "scripts" / "check-pubspec.sh"
        script.chmod(0o644)
        report = validate_hooks(plugin_dir / "hooks" / "hooks.json", plugin_dir)
        assert "Hook script not executable: hooks/scripts/check-pubspec.sh" in levels(report, "MINOR")

    @pytest.mark.parametrize(
        ("timeout", "level"),
        [(30, None), (900, "MINOR"), (30000, "MAJOR"), (-1, "MAJOR"), ("30", "MAJOR")],
    )
    def test_timeout(self, tmp_path: Path, timeout, level) -> None:
        path = write_hooks(tmp_path / "hooks.json", {"PostToolUse": command_hook("echo hi", timeout=timeout)})
        report = validate_hooks(path)
        if level is None:
            assert report.exit_code == 0
        else:
            assert levels(report, level)

    def test_find_plugin_scripts(self) -> None:
        command = 'bash "${CLAUDE_PLUGIN_ROOT}/hooks/scripts/a.sh" && $CLAUDE_PLUGIN_ROOT/hooks/b.sh'
        assert find_plugin_scripts(command) == ["hooks/scripts/a.sh", "hooks/b.sh"]


class TestCli:
    def test_plugin_root_inferred_from_hooks_dir(self, plugin_dir: Path) -> None:
        path = write_hooks(
            plugin_dir / "hooks" / "hooks.json",
            {"PostToolUse": command_hook("${CLAUDE_PLUGIN_ROOT}/hooks/scripts/missing.sh")},
        )
        result = subprocess.run(
            [sys.executable, str(SCRIPT_PATH), str(path)], capture_output=True, text=True, timeout=30
        )
        assert result.returncode == 2
        assert "missing.sh" in result.stdout
