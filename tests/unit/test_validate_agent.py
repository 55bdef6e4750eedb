#!/usr/bin/env python3
"""Tests for validate_agent.py - agent persona validation."""

import json
import subprocess
import sys
from pathlib import Path

import pytest
from conftest import SCRIPTS_DIR, levels, replace_in
from validate_agent import validate_agent, validate_agents_directory

SCRIPT_PATH = SCRIPTS_DIR / "validate_agent.py"


@pytest.fixture
def agent_file(plugin_dir: Path) -> Path:
    return plugin_dir / "agents" / "flutter-dependency-expert.md"


def write_agent(path: Path, frontmatter: str, body: str) -> Path:
    path.write_text(f"---\n{frontmatter}---\n\n{body}", encoding="utf-8")
    return path


class TestValidAgent:
    def test_fixture_agent_is_clean(self, agent_file: Path) -> None:
        report = validate_agent(agent_file)
        assert report.get_all_errors() == [], [r.message for r in report.get_all_errors()]

    def test_directory_skips_readme(self, plugin_dir: Path) -> None:
        (plugin_dir / "agents" / "README.md").write_text("# Agents\n", encoding="utf-8")
        reports = validate_agents_directory(plugin_dir / "agents")
        assert len(reports) == 1


class TestFrontmatterFields:
    def test_missing_frontmatter(self, tmp_path: Path) -> None:
        path = tmp_path / "flutter-ui-expert.md"
        path.write_text("You are a Flutter UI expert.\n", encoding="utf-8")
        report = validate_agent(path)
        assert "No YAML frontmatter found (required for agents)" in levels(report, "CRITICAL")

    def test_name_must_match_file(self, agent_file: Path) -> None:
        replace_in(agent_file, "name: flutter-dependency-expert", "name: flutter-deps-expert")
        report = validate_agent(agent_file)
        assert any("does not match file name" in m for m in levels(report, "MAJOR"))

    def test_name_must_carry_prefix(self, tmp_path: Path) -> None:
        path = write_agent(
            tmp_path / "ui-expert.md",
            "name: ui-expert\ndescription: Designs Flutter widget trees and layouts.\n",
            "You are a Flutter UI expert who reviews widget trees for layout and rebuild problems.\n",
        )
        report = validate_agent(path)
        assert any("must start with 'flutter-'" in m for m in levels(report, "MAJOR"))

    def test_missing_description(self, agent_file: Path) -> None:
        replace_in(
            agent_file,
            "description: Resolves Dart and Flutter dependency conflicts, version constraints and pub cache problems.\n",
            "",
        )
        report = validate_agent(agent_file)
        assert "Missing 'description' field (required)" in levels(report, "MAJOR")

    def test_inherit_model_accepted(self, agent_file: Path) -> None:
        replace_in(agent_file, "model: sonnet", "model: inherit")
        report = validate_agent(agent_file)
        assert "'model' field valid: inherit" in levels(report, "PASSED")

    def test_unknown_model(self, agent_file: Path) -> None:
        replace_in(agent_file, "model: sonnet", "model: gemini")
        report = validate_agent(agent_file)
        assert any("Invalid 'model' value" in m for m in levels(report, "MAJOR"))

    def test_unknown_tools_are_minor(self, agent_file: Path) -> None:
        replace_in(agent_file, "tools: Read, Grep, Glob, Bash", "tools: Read, FlutterDoctor")
        report = validate_agent(agent_file)
        assert any("Unknown tools in 'tools': FlutterDoctor" in m for m in levels(report, "MINOR"))

    @pytest.mark.parametrize("color", ["green", "#1E88E5"])
    def test_colors_accepted(self, agent_file: Path, color: str) -> None:
        replace_in(agent_file, "color: blue", f"color: '{color}'")
        report = validate_agent(agent_file)
        assert not levels(report, "MINOR")

    def test_unknown_color(self, agent_file: Path) -> None:
        replace_in(agent_file, "color: blue", "color: teal")
        report = validate_agent(agent_file)
        assert any("Unknown 'color' value: teal" in m for m in levels(report, "MINOR"))

    def test_skills_must_be_list(self, agent_file: Path) -> None:
        replace_in(agent_file, "skills:\n  - flutter-pub\n", "skills: 3\n")
        report = validate_agent(agent_file)
        assert any("'skills' must be a list" in m for m in levels(report, "MAJOR"))


class TestBody:
    def test_role_definition_required(self, agent_file: Path) -> None:
        replace_in(agent_file, "You are a Flutter dependency specialist.", "This persona handles dependencies.")
        report = validate_agent(agent_file)
        assert any("role definition" in m for m in levels(report, "MINOR"))

    def test_placeholder_reported_with_line(self, agent_file: Path) -> None:
        replace_in(agent_file, "## Approach", "## Approach\n\nTODO: describe escalation")
        report = validate_agent(agent_file)
        placeholders = [r for r in report.results if r.level == "MAJOR" and "Placeholder" in r.message]
        assert len(placeholders) == 1
        lines = agent_file.read_text(encoding="utf-8").split("\n")
        assert lines[placeholders[0].line - 1].startswith("TODO")

    def test_placeholder_inside_code_sample_ignored(self, agent_file: Path) -> None:
        agent_file.write_text(
            agent_file.read_text(encoding="utf-8")
            + "\n```dart\ntry {\n  await repo.load();\n} catch (e) {\n  // TODO: handle error\n}\n```\n",
            encoding="utf-8",
        )
        report = validate_agent(agent_file)
        assert not any("Placeholder" in m for m in levels(report, "MAJOR"))

    def test_short_body(self, tmp_path: Path) -> None:
        path = write_agent(
            tmp_path / "flutter-ui-expert.md",
            "name: flutter-ui-expert\ndescription: Designs Flutter widget trees and layouts.\n",
            "You are terse.\n",
        )
        report = validate_agent(path)
        assert any("very short" in m for m in levels(report, "MINOR"))

    def test_hardcoded_user_path(self, agent_file: Path) -> None:
        replace_in(agent_file, "## Approach", "Projects live in /Users/alice/dev/app.\n\n## Approach")
        report = validate_agent(agent_file)
        assert any("hardcoded user path" in m for m in levels(report, "MAJOR"))


class TestCli:
    def test_json_lists_agents(self, plugin_dir: Path) -> None:
        (plugin_dir / "agents" / "flutter-ui-expert.md").write_text(
            "---\nname: flutter-ui-expert\ndescription: Designs Flutter widget trees and layouts.\n---\n\n"
            "You are a Flutter UI expert who reviews widget trees for layout, rebuild and accessibility problems,\n"
            "and proposes the smallest widget change that fixes each one.\n",
            encoding="utf-8",
        )
        result = subprocess.run(
            [sys.executable, str(SCRIPT_PATH), str(plugin_dir / "agents"), "--json"],
            capture_output=True,
            text=True,
            timeout=30,
        )
        data = json.loads(result.stdout)
        assert len(data["agents"]) == 2
        assert data["overall_exit_code"] == 0
        assert result.returncode == 0
