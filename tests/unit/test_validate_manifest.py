#!/usr/bin/env python3
"""Tests for validate_manifest.py - plugin.json and component count parity."""

import json
from pathlib import Path

import pytest
from conftest import levels
from fpl_validation_common import ValidationReport
from validate_manifest import count_components, declared_counts, validate_component_counts, validate_manifest


def load(plugin_dir: Path) -> dict:
    return json.loads((plugin_dir / ".claude-plugin" / "plugin.json").read_text(encoding="utf-8"))


def save(plugin_dir: Path, manifest: dict) -> None:
    (plugin_dir / ".claude-plugin" / "plugin.json").write_text(json.dumps(manifest, indent=2), encoding="utf-8")


def check(plugin_dir: Path) -> ValidationReport:
    report = ValidationReport()
    manifest = validate_manifest(plugin_dir, report)
    if manifest is not None:
        validate_component_counts(plugin_dir, manifest, report)
    return report


class TestManifest:
    def test_fixture_manifest_is_clean(self, plugin_dir: Path) -> None:
        report = check(plugin_dir)
        assert report.get_all_errors() == [], [r.message for r in report.get_all_errors()]

    def test_missing_manifest(self, tmp_path: Path) -> None:
        report = check(tmp_path)
        assert "plugin.json not found" in levels(report, "CRITICAL")

    def test_invalid_json(self, plugin_dir: Path) -> None:
        (plugin_dir / ".claude-plugin" / "plugin.json").write_text("{", encoding="utf-8")
        report = check(plugin_dir)
        assert any("Invalid JSON in plugin.json" in m for m in levels(report, "CRITICAL"))

    def test_missing_name(self, plugin_dir: Path) -> None:
        manifest = load(plugin_dir)
        del manifest["name"]
        save(plugin_dir, manifest)
        assert "Missing required field 'name' in plugin.json" in levels(check(plugin_dir), "CRITICAL")

    def test_name_not_kebab_case(self, plugin_dir: Path) -> None:
        manifest = load(plugin_dir)
        manifest["name"] = "Flutter_Plugin"
        save(plugin_dir, manifest)
        assert any("kebab-case" in m for m in levels(check(plugin_dir), "MAJOR"))

    @pytest.mark.parametrize("version", ["1.0", "v1.0.0", "latest"])
    def test_version_must_be_semver(self, plugin_dir: Path, version: str) -> None:
        manifest = load(plugin_dir)
        manifest["version"] = version
        save(plugin_dir, manifest)
        assert any("semver" in m for m in levels(check(plugin_dir), "MAJOR"))

    def test_unknown_field_is_warning(self, plugin_dir: Path) -> None:
        manifest = load(plugin_dir)
        manifest["flavor"] = "beta"
        save(plugin_dir, manifest)
        report = check(plugin_dir)
        assert "Unknown manifest field 'flavor'" in levels(report, "WARNING")
        assert report.exit_code == 0

    def test_duplicate_categories(self, plugin_dir: Path) -> None:
        manifest = load(plugin_dir)
        manifest["categories"] = ["mobile", "development", "mobile"]
        save(plugin_dir, manifest)
        assert "Duplicate categories: mobile" in levels(check(plugin_dir), "MAJOR")

    def test_empty_category(self, plugin_dir: Path) -> None:
        manifest = load(plugin_dir)
        manifest["categories"] = ["mobile", " "]
        save(plugin_dir, manifest)
        assert "'categories' contains an empty string" in levels(check(plugin_dir), "MAJOR")

    def test_component_path_must_be_relative(self, plugin_dir: Path) -> None:
        manifest = load(plugin_dir)
        manifest["agents"] = "agents/"
        save(plugin_dir, manifest)
        assert any("must start with './'" in m for m in levels(check(plugin_dir), "MAJOR"))

    def test_default_hooks_path_duplicates_load(self, plugin_dir: Path) -> None:
        manifest = load(plugin_dir)
        manifest["hooks"] = "./hooks/hooks.json"
        save(plugin_dir, manifest)
        assert any("duplicate load" in m for m in levels(check(plugin_dir), "MAJOR"))


class TestCountParity:
    def test_count_components(self, plugin_dir: Path) -> None:
        (plugin_dir / "agents" / "README.md").write_text("# Agents\n", encoding="utf-8")
        assert count_components(plugin_dir) == {"agents": 1, "skills": 1, "commands": 1}

    def test_mismatch_is_major(self, plugin_dir: Path) -> None:
        manifest = load(plugin_dir)
        manifest["counts"]["skills"] = 12
        save(plugin_dir, manifest)
        report = check(plugin_dir)
        assert "plugin.json declares 12 skills (counts.skills) but 1 found on disk" in levels(report, "MAJOR")

    def test_skill_directory_without_skill_md_not_counted(self, plugin_dir: Path) -> None:
        (plugin_dir / "skills" / "flutter-empty").mkdir()
        assert count_components(plugin_dir)["skills"] == 1

    def test_count_keys(self) -> None:
        declared = declared_counts({"agentCount": 3, "skillCount": 4})
        assert declared == {"agents": (3, "agentCount"), "skills": (4, "skillCount")}

    def test_description_phrases(self) -> None:
        declared = declared_counts({"description": "Ships 5 specialized agents, 12 skills and 8 slash commands"})
        assert declared == {
            "agents": (5, "description"),
            "skills": (12, "description"),
            "commands": (8, "description"),
        }

    def test_hyphenated_words_are_not_component_nouns(self) -> None:
        declared = declared_counts({"description": "Ships 5 command-line skills"})
        assert declared == {"skills": (5, "description")}

    def test_counts_object_wins_over_description(self) -> None:
        declared = declared_counts({"counts": {"agents": 2}, "description": "Ships 5 agents"})
        assert declared["agents"] == (2, "counts.agents")

    def test_invalid_count_value(self) -> None:
        report = ValidationReport()
        declared = declared_counts({"counts": {"agents": -1, "skills": True}}, report)
        assert declared == {}
        assert len(levels(report, "MAJOR")) == 2

    def test_no_declared_counts_is_info(self, plugin_dir: Path) -> None:
        manifest = load(plugin_dir)
        del manifest["counts"]
        save(plugin_dir, manifest)
        report = check(plugin_dir)
        assert "plugin.json declares no component counts" in levels(report, "INFO")
        assert report.exit_code == 0

    def test_description_count_mismatch(self, plugin_dir: Path) -> None:
        manifest = load(plugin_dir)
        del manifest["counts"]
        manifest["description"] = "Flutter tooling with 3 agents"
        save(plugin_dir, manifest)
        report = check(plugin_dir)
        assert any("declares 3 agents (description)" in m for m in levels(report, "MAJOR"))
