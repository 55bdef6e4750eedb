#!/usr/bin/env python3
"""
Flutter Plugin Lint - Documentation Validator

Validates every Markdown file of a plugin (gitignore-aware) plus the README
and CHANGELOG conventions:

1. README.md exists at plugin root
2. README contains installation instructions
3. README contains a usage section
4. CHANGELOG.md recommended
5. Code blocks are closed
6. Code blocks have language tags
7. Heading hierarchy has no skips
8. Table rows and separator match the header column count
9. Relative links resolve
10. Image references resolve

Usage:
    uv run python scripts/validate_documentation.py path/to/plugin/
    uv run python scripts/validate_documentation.py path/to/plugin/ --verbose
    uv run python scripts/validate_documentation.py path/to/plugin/ --json

Exit codes:
    0 - All checks passed
    1 - CRITICAL issues found
    2 - MAJOR issues found
    3 - MINOR issues found
"""

from __future__ import annotations

import argparse
import re
import sys
from dataclasses import dataclass
from pathlib import Path

from fpl_validation_common import (
    IMAGE_PATTERN,
    INLINE_CODE_SPAN,
    LINK_PATTERN,
    ValidationReport,
    is_external_link,
    iter_plugin_files,
    print_json_report,
    print_report,
    relative_to_root,
    resolve_local_link,
)
from skill_document import HEADING_RE, fence_mask, iter_code_fences, parse_tables, split_table_row

INSTALLATION_HEADINGS = re.compile(r"^#+\s*(installation|install|getting\s+started|setup|quick\s*start)", re.I | re.M)
USAGE_HEADINGS = re.compile(r"^#+\s*(usage|examples?|how\s+to\s+use|commands)", re.I | re.M)

CHANGELOG_NAMES = ("CHANGELOG.md", "changelog.md", "CHANGES.md", "HISTORY.md")

# Component documents whose fences are already checked by their own validators
COMPONENT_DIRS = ("skills", "commands", "agents")


@dataclass
class DocumentationValidationReport(ValidationReport):
    """Validation report for documentation files."""

    plugin_path: str = ""
    files_checked: int = 0

    def to_dict(self) -> dict[str, object]:
        base = super().to_dict()
        base["plugin_path"] = self.plugin_path
        base["files_checked"] = self.files_checked
        return base


# =============================================================================
# Per-file checks
# =============================================================================


def validate_fences(lines: list[str], rel: str, report: ValidationReport) -> None:
    for fence in iter_code_fences(lines):
        if not fence.closed:
            report.major("Unclosed code block", rel, fence.start_line)
        if not fence.language:
            report.minor("Code block missing language tag", rel, fence.start_line)


def validate_heading_hierarchy(lines: list[str], mask: list[bool], rel: str, report: ValidationReport) -> None:
    """Heading levels never jump more than one deeper (h1 -> h3 is a skip)."""
    current_level = 0
    for i, line in enumerate(lines):
        if mask[i]:
            continue
        match = HEADING_RE.match(line)
        if not match:
            continue
        level = len(match.group(1))
        if current_level > 0 and level > current_level + 1:
            report.minor(f"Heading hierarchy skip: level {current_level} to level {level}", rel, i + 1)
        current_level = level


def validate_table_structure(lines: list[str], mask: list[bool], rel: str, report: ValidationReport) -> None:
    for table in parse_tables(lines, mask=mask):
        header_cols = len(table.header)
        separator_cols = len(split_table_row(lines[table.line]))
        if separator_cols != header_cols:
            report.minor(
                f"Table separator row has {separator_cols} columns, header has {header_cols}", rel, table.line + 1
            )
        for row, line_no in zip(table.rows, table.row_lines):
            if len(row) != header_cols:
                report.minor(f"Table row has {len(row)} columns, header has {header_cols}", rel, line_no)


def validate_links(
    lines: list[str], mask: list[bool], md_file: Path, plugin_root: Path, rel: str, report: ValidationReport
) -> None:
    """Relative links (MAJOR) and images (MINOR) resolve from the file or the plugin root."""
    for i, line in enumerate(lines):
        if mask[i]:
            continue
        text = INLINE_CODE_SPAN.sub("", line)

        for alt_text, img_path in IMAGE_PATTERN.findall(text):
            if is_external_link(img_path):
                continue
            if not resolve_local_link(img_path, md_file, plugin_root):
                report.minor(f"Missing image: ![{alt_text}]({img_path})", rel, i + 1)

        for link_text, link_target in LINK_PATTERN.findall(text):
            if is_external_link(link_target):
                continue
            if not resolve_local_link(link_target, md_file, plugin_root):
                report.major(f"Broken internal link: [{link_text}]({link_target})", rel, i + 1)


def validate_markdown_file(
    path: Path,
    rel: str,
    report: ValidationReport,
    plugin_root: Path | None = None,
    check_fences: bool = True,
) -> None:
    """Run the structural Markdown checks on one file.

    Args:
        path: Markdown file
        rel: Label used in results (path relative to the plugin root)
        report: Report to add results to
        plugin_root: Root used as a fallback when resolving links
        check_fences: Whether to report fence problems for this file
    """
    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        report.major("File is not valid UTF-8", rel)
        return
    except OSError as e:
        report.critical(f"Cannot read file: {e}", rel)
        return

    lines = content.split("\n")
    mask = fence_mask(lines)

    if check_fences:
        validate_fences(lines, rel, report)
    validate_heading_hierarchy(lines, mask, rel, report)
    validate_table_structure(lines, mask, rel, report)
    validate_links(lines, mask, path, plugin_root or path.parent, rel, report)


# =============================================================================
# README / CHANGELOG
# =============================================================================


def _find_readme(plugin_path: Path) -> Path | None:
    for name in ("README.md", "readme.md", "Readme.md"):
        readme = plugin_path / name
        if readme.is_file():
            return readme
    return None


def validate_readme(plugin_path: Path, report: ValidationReport) -> None:
    readme = _find_readme(plugin_path)
    if readme is None:
        report.major("README.md not found at plugin root", "README.md")
        return
    report.passed("README.md exists at plugin root", "README.md")

    try:
        content = readme.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        # Reported by the per-file pass
        return

    if INSTALLATION_HEADINGS.search(content):
        report.passed("README contains installation instructions", "README.md")
    else:
        report.minor("README missing installation section (## Installation, ## Getting Started, ## Setup)", "README.md")

    if USAGE_HEADINGS.search(content):
        report.passed("README contains usage section", "README.md")
    else:
        report.minor("README missing usage section (## Usage, ## Examples, ## Commands)", "README.md")


def validate_changelog_exists(plugin_path: Path, report: ValidationReport) -> None:
    for variant in CHANGELOG_NAMES:
        if (plugin_path / variant).is_file():
            report.passed(f"Changelog found ({variant})", variant)
            return
    report.minor("CHANGELOG.md is recommended for tracking version history", "CHANGELOG.md")


# =============================================================================
# Main Validation Function
# =============================================================================


def validate_documentation(plugin_path: Path, skip_component_fences: bool = False) -> DocumentationValidationReport:
    """Validate all documentation in a plugin directory.

    Args:
        plugin_path: Path to the plugin directory
        skip_component_fences: Leave fence checks of skills/, commands/ and
            agents/ documents to their own validators

    Returns:
        DocumentationValidationReport with all results
    """
    report = DocumentationValidationReport(plugin_path=str(plugin_path))

    if not plugin_path.is_dir():
        report.critical(f"Plugin path is not a directory: {plugin_path}")
        return report

    validate_readme(plugin_path, report)
    validate_changelog_exists(plugin_path, report)

    for md_file in iter_plugin_files(plugin_path, {".md"}):
        rel = relative_to_root(md_file, plugin_path)
        is_component = rel.split("/", 1)[0] in COMPONENT_DIRS
        validate_markdown_file(
            md_file, rel, report, plugin_root=plugin_path, check_fences=not (skip_component_fences and is_component)
        )
        report.files_checked += 1

    report.info(f"Checked {report.files_checked} Markdown file(s)")
    return report


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Validate Flutter plugin documentation")
    parser.add_argument("plugin_path", help="Path to the plugin directory")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show all results including passed checks")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("--strict", action="store_true", help="Strict mode - NIT issues also block validation")
    args = parser.parse_args()

    plugin_path = Path(args.plugin_path)
    if not plugin_path.is_dir():
        print(f"Error: {plugin_path} is not a directory", file=sys.stderr)
        return 1

    report = validate_documentation(plugin_path)

    if args.json:
        print_json_report([report])
    else:
        print_report(report, f"Documentation Validation: {report.plugin_path}", verbose=args.verbose)

    if args.strict:
        return report.exit_code_strict()
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
