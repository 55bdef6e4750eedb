#!/usr/bin/env python3
"""Tests for validate_commit_msg.py - Conventional Commits rules."""

import subprocess
import sys
from pathlib import Path

import pytest
from conftest import SCRIPTS_DIR, levels
from validate_commit_msg import CommitValidationReport, validate_commit_message, validate_header

SCRIPT_PATH = SCRIPTS_DIR / "validate_commit_msg.py"


class TestAccepted:
    @pytest.mark.parametrize(
        "message",
        [
            "feat(skills): add flutter-pub skill",
            "fix(hooks): run pub get only when pubspec changes",
            "docs(agents): describe dependency escalation",
            "chore(release): 1.0.0",
            "feat(plugin)!: rename command prefix",
        ],
    )
    def test_valid_headers(self, message: str) -> None:
        report = validate_commit_message(message)
        assert not report.has_critical, levels(report, "CRITICAL")

    def test_body_and_footer(self) -> None:
        message = (
            "feat(skills): add flutter-pub skill\n"
            "\n"
            "Wraps flutter pub with a report of lock file changes.\n"
            "\n"
            "Refs: #12\n"
            "BREAKING CHANGE: /flutter-deps is removed\n"
        )
        report = validate_commit_message(message)
        assert not report.has_critical, levels(report, "CRITICAL")

    def test_body_line_with_colon(self) -> None:
        message = "feat(skills): add pub skill\n\nAdds the flutter-pub skill.\nNote: requires flutter 3.\n"
        report = validate_commit_message(message)
        assert not report.has_critical, levels(report, "CRITICAL")

    @pytest.mark.parametrize("scope", ["skills,agents", "skills, agents", "skills/agents", "skills\\agents"])
    def test_multiple_scopes(self, scope: str) -> None:
        report = validate_commit_message(f"feat({scope}): add pub skill")
        assert not report.has_critical, levels(report, "CRITICAL")

    def test_comment_lines_ignored(self) -> None:
        message = "fix(mcp): quote server args\n# Please enter the commit message\n# On branch main\n"
        report = validate_commit_message(message)
        assert not report.has_critical

    @pytest.mark.parametrize("message", ["Merge branch 'main' into dev", 'Revert "feat(skills): add x"'])
    def test_generated_messages_pass(self, message: str) -> None:
        report = validate_commit_message(message)
        assert report.results and not report.has_critical

    def test_parsed_fields(self) -> None:
        report = validate_commit_message("feat(plugin)!: rename command prefix")
        data = report.to_dict()
        assert data["type"] == "feat"
        assert data["scope"] == "plugin"
        assert data["subject"] == "rename command prefix"
        assert data["breaking"] is True


class TestRejected:
    def test_empty_message(self) -> None:
        assert "Commit message is empty" in levels(validate_commit_message("# only comments\n"), "CRITICAL")

    def test_unparseable_header(self) -> None:
        report = validate_commit_message("added a skill")
        assert any("Header must look like" in m for m in levels(report, "CRITICAL"))

    def test_unknown_type(self) -> None:
        report = validate_commit_message("feature(skills): add skill")
        assert any("Type must be one of" in m for m in levels(report, "CRITICAL"))

    def test_upper_case_type(self) -> None:
        report = validate_commit_message("Feat(skills): add skill")
        assert "Type must be lower-case: Feat" in levels(report, "CRITICAL")

    def test_empty_type(self) -> None:
        report = validate_commit_message("(skills): add skill")
        assert "Type may not be empty" in levels(report, "CRITICAL")

    def test_unknown_scope(self) -> None:
        report = validate_commit_message("feat(widgets): add skill")
        assert any("Scope must be one of" in m for m in levels(report, "CRITICAL"))

    def test_unknown_scope_segment(self) -> None:
        report = validate_commit_message("feat(skills,widgets): add skill")
        assert any(m.endswith("got: widgets") for m in levels(report, "CRITICAL"))

    def test_issue_footer_needs_blank_line(self) -> None:
        message = "fix(hooks): quote script path\n\nPaths with spaces broke the hook.\nCloses #3\n"
        report = validate_commit_message(message)
        assert any("Footer must be separated" in m for m in levels(report, "CRITICAL"))

    def test_missing_scope_is_warning(self) -> None:
        report = validate_commit_message("docs: fix typo")
        assert not report.has_critical
        assert any("Scope is empty" in m for m in levels(report, "WARNING"))

    def test_empty_subject(self) -> None:
        report = CommitValidationReport()
        validate_header("feat(skills): ", report)
        assert "Subject may not be empty" in levels(report, "CRITICAL")

    def test_subject_case(self) -> None:
        report = validate_commit_message("feat(skills): Add flutter-pub")
        assert any("Subject must be lower-case" in m for m in levels(report, "CRITICAL"))

    def test_subject_full_stop(self) -> None:
        report = validate_commit_message("feat(skills): add flutter-pub.")
        assert "Subject may not end with a full stop" in levels(report, "CRITICAL")

    def test_body_needs_blank_line(self) -> None:
        report = validate_commit_message("feat(skills): add flutter-pub\nWraps flutter pub.\n")
        assert "Body must be separated from the header by a blank line" in levels(report, "CRITICAL")

    def test_footer_needs_blank_line(self) -> None:
        message = "feat(skills): add flutter-pub\n\nWraps flutter pub.\nRefs: #12\n"
        report = validate_commit_message(message)
        assert any("Footer must be separated" in m for m in levels(report, "CRITICAL"))


class TestCli:
    def run(self, *args: str, cwd: Path | None = None) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            [sys.executable, str(SCRIPT_PATH), *args], capture_output=True, text=True, timeout=30, cwd=cwd
        )

    def test_message_flag(self) -> None:
        assert self.run("-m", "feat(skills): add flutter-pub").returncode == 0
        assert self.run("-m", "Added stuff.").returncode == 1

    def test_message_file(self, tmp_path: Path) -> None:
        path = tmp_path / "COMMIT_EDITMSG"
        path.write_text("fix(commands): shorten description\n", encoding="utf-8")
        assert self.run(str(path)).returncode == 0

    def test_default_file_missing(self, tmp_path: Path) -> None:
        result = self.run(cwd=tmp_path)
        assert result.returncode == 1
        assert "COMMIT_EDITMSG does not exist" in result.stderr
