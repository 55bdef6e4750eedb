#!/usr/bin/env python3
"""Tests for validate_plugin.py - the whole-plugin validation run."""

import json
import subprocess
import sys
from pathlib import Path

from conftest import SCRIPTS_DIR, levels, replace_in
from validate_plugin import validate_plugin

SCRIPT_PATH = SCRIPTS_DIR / "validate_plugin.py"


class TestFixturePlugin:
    def test_fixture_plugin_is_clean(self, plugin_dir: Path) -> None:
        report = validate_plugin(plugin_dir)
        assert report.get_all_errors() == [], [f"{r.file}: {r.message}" for r in report.get_all_errors()]
        assert report.exit_code == 0

    def test_skill_documents_kept(self, plugin_dir: Path) -> None:
        report = validate_plugin(plugin_dir)
        doc = report.skills["flutter-pub"]
        assert doc.command_name == "flutter-pub"
        assert "get" in doc.subcommands
        assert "--dev" in doc.options

    def test_components_counted(self, plugin_dir: Path) -> None:
        report = validate_plugin(plugin_dir)
        assert report.components == {"agents": 1, "skills": 1, "commands": 1}
        assert report.prefix == "flutter"


class TestMergedResults:
    def test_skill_results_carry_plugin_paths(self, plugin_dir: Path) -> None:
        replace_in(plugin_dir / "skills" / "flutter-pub" / "SKILL.md", "## Examples", "## Samples")
        report = validate_plugin(plugin_dir)
        missing = [r for r in report.results if r.message == "Missing '## Examples' section"]
        assert [r.file for r in missing] == ["skills/flutter-pub/SKILL.md"]

    def test_missing_hook_script(self, plugin_dir: Path) -> None:
        (plugin_dir / "hooks" / "scripts" / "check-pubspec.sh").unlink()
        report = validate_plugin(plugin_dir)
        assert report.exit_code == 1
        assert any("non-existent script" in m for m in levels(report, "CRITICAL"))

    def test_count_mismatch(self, plugin_dir: Path) -> None:
        replace_in(plugin_dir / ".claude-plugin" / "plugin.json", '"skills": 1', '"skills": 3')
        report = validate_plugin(plugin_dir)
        assert any("declares 3 skills" in m for m in levels(report, "MAJOR"))


class TestStructure:
    def test_missing_manifest_directory(self, tmp_path: Path) -> None:
        report = validate_plugin(tmp_path)
        assert ".claude-plugin directory not found" in levels(report, "CRITICAL")

    def test_component_inside_manifest_directory(self, plugin_dir: Path) -> None:
        (plugin_dir / ".claude-plugin" / "skills").mkdir()
        report = validate_plugin(plugin_dir)
        assert "skills/ must be at plugin root, not in .claude-plugin/" in levels(report, "CRITICAL")

    def test_non_standard_directory_is_warning(self, plugin_dir: Path) -> None:
        (plugin_dir / "widgets").mkdir()
        report = validate_plugin(plugin_dir)
        assert any("Non-standard directory 'widgets/'" in m for m in levels(report, "WARNING"))
        assert report.exit_code == 0

    def test_missing_license(self, plugin_dir: Path) -> None:
        (plugin_dir / "LICENSE").unlink()
        report = validate_plugin(plugin_dir)
        assert "No LICENSE file found" in levels(report, "MINOR")
        assert report.exit_code == 3

    def test_missing_hooks_is_info(self, plugin_dir: Path) -> None:
        (plugin_dir / "hooks" / "hooks.json").unlink()
        report = validate_plugin(plugin_dir)
        assert "No hooks/hooks.json found" in levels(report, "INFO")


class TestPrefix:
    def test_prefix_argument(self, plugin_dir: Path) -> None:
        report = validate_plugin(plugin_dir, prefix="dart")
        assert report.prefix == "dart"
        assert any("must follow dart-{domain}" in m for m in levels(report, "MAJOR"))

    def test_prefix_from_environment(self, plugin_dir: Path, monkeypatch) -> None:
        monkeypatch.setenv("FPL_COMMAND_PREFIX", "dart")
        assert validate_plugin(plugin_dir).prefix == "dart"


class TestCli:
    def run(self, *args: str) -> subprocess.CompletedProcess[str]:
        return subprocess.run([sys.executable, str(SCRIPT_PATH), *args], capture_output=True, text=True, timeout=30)

    def test_json_output(self, plugin_dir: Path) -> None:
        result = self.run(str(plugin_dir), "--json")
        assert result.returncode == 0, result.stdout
        data = json.loads(result.stdout)
        assert data["skills"]["flutter-pub"]["command"] == "flutter-pub"
        assert data["components"]["skills"] == 1

    def test_text_output_lists_skills(self, plugin_dir: Path) -> None:
        result = self.run(str(plugin_dir))
        assert result.returncode == 0
        assert "/flutter-pub: get" in result.stdout

    def test_not_a_directory(self, tmp_path: Path) -> None:
        result = self.run(str(tmp_path / "missing"))
        assert result.returncode == 1
        assert "is not a directory" in result.stderr
