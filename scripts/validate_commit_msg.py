#!/usr/bin/env python3
"""
Flutter Plugin Lint - Commit Message Validator

Enforces the plugin's Conventional Commits rules on a commit message:

    type(scope): subject

    body

    footer

Types:  feat fix docs refactor chore style test ci perf revert
Scopes: agents skills commands hooks mcp plugin deps release

Usage:
    uv run python scripts/validate_commit_msg.py                 # .git/COMMIT_EDITMSG
    uv run python scripts/validate_commit_msg.py path/to/msgfile # commit-msg hook
    uv run python scripts/validate_commit_msg.py -m "feat(skills): add flutter-pub"

Exit codes:
    0 - Message accepted
    1 - Message rejected
"""

from __future__ import annotations

import argparse
import re
import sys
from dataclasses import dataclass
from pathlib import Path

from fpl_validation_common import ValidationReport, print_json_report, print_report

COMMIT_TYPES = ("feat", "fix", "docs", "refactor", "chore", "style", "test", "ci", "perf", "revert")
COMMIT_SCOPES = ("agents", "skills", "commands", "hooks", "mcp", "plugin", "deps", "release")

HEADER_PATTERN = re.compile(r"^(?P<type>[^\s(!:]*)(?:\((?P<scope>[^)]*)\))?(?P<breaking>!)?: (?P<subject>.*)$")

# Footer tokens: "BREAKING CHANGE: ...", "BREAKING-CHANGE: ...", issue references like "Closes #3" or "Refs: #12"
FOOTER_PATTERN = re.compile(r"^(?:BREAKING[ -]CHANGE: |(?i:close[sd]?|fix(?:e[sd])?|resolve[sd]?|refs?):? #\d+)")

# Multiple scopes: "skills,agents", "skills/agents", "skills\agents"
SCOPE_SEPARATOR = re.compile(r"/|\\|, ?")

# Messages generated by git itself
AUTO_MESSAGE_PATTERNS = (re.compile(r"^Merge "), re.compile(r'^Revert "'))

DEFAULT_MESSAGE_FILE = Path(".git/COMMIT_EDITMSG")


@dataclass
class CommitValidationReport(ValidationReport):
    """Commit message validation report."""

    header: str = ""
    commit_type: str = ""
    scope: str = ""
    subject: str = ""
    breaking: bool = False

    def to_dict(self) -> dict[str, object]:
        base = super().to_dict()
        base["header"] = self.header
        base["type"] = self.commit_type
        base["scope"] = self.scope
        base["subject"] = self.subject
        base["breaking"] = self.breaking
        return base


def strip_comments(message: str) -> list[str]:
    """Message lines without git comment lines and trailing blank lines."""
    lines = [line.rstrip() for line in message.splitlines() if not line.startswith("#")]
    while lines and not lines[-1]:
        lines.pop()
    while lines and not lines[0]:
        lines.pop(0)
    return lines


def validate_header(header: str, report: CommitValidationReport) -> None:
    match = HEADER_PATTERN.match(header)
    if not match:
        report.critical(f"Header must look like 'type(scope): subject', got: {header!r}")
        return

    commit_type = match.group("type")
    scope = match.group("scope")
    subject = match.group("subject")
    report.commit_type = commit_type
    report.scope = scope or ""
    report.subject = subject
    report.breaking = bool(match.group("breaking"))

    if not commit_type:
        report.critical("Type may not be empty")
    elif commit_type != commit_type.lower():
        report.critical(f"Type must be lower-case: {commit_type}")
    elif commit_type not in COMMIT_TYPES:
        report.critical(f"Type must be one of [{', '.join(COMMIT_TYPES)}], got: {commit_type}")
    else:
        report.passed(f"Type: {commit_type}")

    if scope is None or not scope.strip():
        report.warning("Scope is empty - consider one of: " + ", ".join(COMMIT_SCOPES))
    else:
        unknown = [s for s in SCOPE_SEPARATOR.split(scope) if s not in COMMIT_SCOPES]
        if unknown:
            report.critical(f"Scope must be one of [{', '.join(COMMIT_SCOPES)}], got: {', '.join(unknown)}")
        else:
            report.passed(f"Scope: {scope}")

    if not subject.strip():
        report.critical("Subject may not be empty")
        return
    if subject != subject.lower():
        report.critical(f"Subject must be lower-case: {subject}")
    if subject.endswith("."):
        report.critical("Subject may not end with a full stop")


def validate_body_and_footer(lines: list[str], report: CommitValidationReport) -> None:
    """Body and footer are each preceded by a blank line."""
    if len(lines) < 2:
        return
    if lines[1]:
        report.critical("Body must be separated from the header by a blank line")
        return

    for i in range(2, len(lines)):
        if FOOTER_PATTERN.match(lines[i]) and i > 2 and lines[i - 1]:
            # Continuation of a previous footer is fine
            if FOOTER_PATTERN.match(lines[i - 1]):
                continue
            report.critical(f"Footer must be separated from the body by a blank line (line {i + 1})")
            return


def validate_commit_message(message: str) -> CommitValidationReport:
    """Validate a commit message.

    Args:
        message: Raw commit message, possibly including git comment lines

    Returns:
        CommitValidationReport with all results
    """
    report = CommitValidationReport()
    lines = strip_comments(message)

    if not lines:
        report.critical("Commit message is empty")
        return report

    header = lines[0]
    report.header = header

    if any(p.match(header) for p in AUTO_MESSAGE_PATTERNS):
        report.info(f"Generated message accepted: {header}")
        return report

    validate_header(header, report)
    validate_body_and_footer(lines, report)
    return report


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Validate a commit message against the plugin's commit rules")
    parser.add_argument("file", nargs="?", help=f"Commit message file (default: {DEFAULT_MESSAGE_FILE})")
    parser.add_argument("-m", "--message", help="Validate this message instead of a file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show all results including passed checks")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    args = parser.parse_args()

    if args.message is not None:
        message = args.message
    else:
        path = Path(args.file) if args.file else DEFAULT_MESSAGE_FILE
        if not path.is_file():
            print(f"Error: {path} does not exist", file=sys.stderr)
            return 1
        try:
            message = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            print(f"Error: cannot read {path}: {e}", file=sys.stderr)
            return 1

    report = validate_commit_message(message)

    if args.json:
        print_json_report([report])
    else:
        print_report(report, "Commit Message Validation", verbose=args.verbose)

    return 1 if report.has_critical else 0


if __name__ == "__main__":
    sys.exit(main())
