#!/usr/bin/env python3
"""
Flutter Plugin Lint - Common Module

Shared validation infrastructure for all Flutter plugin validators.
This module contains:
- Type definitions (Level, ValidationResult, ValidationReport)
- Naming rules for flutter-{domain} components
- Security patterns shared by the document validators
- Utility functions (scoring, formatting, exit codes, gitignore-aware scanning)

All individual validators import from this module to keep results consistent.
"""

from __future__ import annotations

import fnmatch
import json
import os
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

# =============================================================================
# Type Definitions
# =============================================================================

# Hierarchy: CRITICAL > MAJOR > MINOR > NIT > WARNING > INFO > PASSED
# - CRITICAL/MAJOR/MINOR: always block validation (non-zero exit code)
# - NIT: blocks only in --strict mode
# - WARNING: never blocks, always reported
# - INFO/PASSED: shown in verbose mode
Level = Literal["CRITICAL", "MAJOR", "MINOR", "NIT", "WARNING", "INFO", "PASSED"]

LEVELS: tuple[Level, ...] = ("CRITICAL", "MAJOR", "MINOR", "NIT", "WARNING", "INFO", "PASSED")

# =============================================================================
# Exit Codes
# =============================================================================

EXIT_OK = 0  # All checks passed (or only WARNING/INFO/PASSED)
EXIT_CRITICAL = 1  # CRITICAL issues found
EXIT_MAJOR = 2  # MAJOR issues found
EXIT_MINOR = 3  # MINOR issues found
EXIT_NIT = 4  # NIT issues found (only in --strict mode)

# =============================================================================
# Naming
# =============================================================================

# Generic kebab-case names (plugin name, MCP-free identifiers)
NAME_PATTERN = re.compile(r"^[a-z][a-z0-9]*(-[a-z0-9]+)*$")

DEFAULT_COMMAND_PREFIX = "flutter"

MAX_NAME_LENGTH = 64
MAX_DESCRIPTION_LENGTH = 1024
MIN_BODY_CHARS = 100
MAX_BODY_WORDS = 2000


def get_command_prefix(explicit: str | None = None) -> str:
    """Resolve the component naming prefix.

    Order: explicit value (from --prefix), FPL_COMMAND_PREFIX, then "flutter".
    """
    if explicit:
        return explicit.strip().rstrip("-")
    from_env = os.environ.get("FPL_COMMAND_PREFIX", "").strip().rstrip("-")
    return from_env or DEFAULT_COMMAND_PREFIX


def command_name_pattern(prefix: str | None = None) -> re.Pattern[str]:
    """Pattern for component names of the form ``{prefix}-{domain}``."""
    resolved = re.escape(get_command_prefix(prefix))
    return re.compile(rf"^{resolved}-[a-z0-9]+(-[a-z0-9]+)*$")


# =============================================================================
# Host Runtime Constants
# =============================================================================

# Tool names the host accepts in allowed-tools / tools lists
VALID_TOOLS = {
    "Read",
    "Write",
    "Edit",
    "MultiEdit",
    "Bash",
    "Grep",
    "Glob",
    "LS",
    "WebFetch",
    "WebSearch",
    "Task",
    "NotebookEdit",
    "Skill",
    "TodoWrite",
    "AskUserQuestion",
}

VALID_MODELS = {"haiku", "sonnet", "opus", "inherit"}

VALID_HOOK_EVENTS = {
    "PreToolUse",
    "PostToolUse",
    "PostToolUseFailure",
    "PermissionRequest",
    "UserPromptSubmit",
    "Notification",
    "Stop",
    "SubagentStop",
    "SubagentStart",
    "SessionStart",
    "SessionEnd",
    "PreCompact",
    "Setup",
}

# Directories never scanned
SKIP_DIRS = {
    ".git",
    ".dart_tool",
    ".idea",
    ".vscode",
    ".ruff_cache",
    ".mypy_cache",
    ".pytest_cache",
    ".tox",
    ".venv",
    "__pycache__",
    "node_modules",
    "build",
    "dist",
}

# Hidden directories that belong to the plugin and must be scanned
PLUGIN_HIDDEN_DIRS = {".claude-plugin", ".gemini", ".github"}

# =============================================================================
# Security Patterns
# =============================================================================

# Generic API key pattern excludes env var placeholders like ${VAR} or $VAR
SECRET_PATTERNS = [
    (re.compile(r"AKIA[0-9A-Z]{16}"), "AWS Access Key"),
    (re.compile(r"-----BEGIN (RSA |DSA |EC |OPENSSH )?PRIVATE KEY-----"), "Private Key"),
    (re.compile(r"ghp_[a-zA-Z0-9]{36}"), "GitHub Personal Access Token"),
    (re.compile(r"github_pat_[a-zA-Z0-9_]{22,}"), "GitHub Fine-Grained Personal Access Token"),
    (re.compile(r"AIza[0-9A-Za-z\-_]{35}"), "Google API Key"),
    (re.compile(r"sk_live_[a-zA-Z0-9]{24,}"), "Stripe Secret Key"),
    (re.compile(r"sbp_[a-f0-9]{40}"), "Supabase Access Token"),
    (re.compile(r"xox[baprs]-[0-9a-zA-Z-]+"), "Slack Token"),
    (re.compile(r"eyJ[a-zA-Z0-9_-]{10,}\.eyJ[a-zA-Z0-9_-]{10,}\.[a-zA-Z0-9_-]{10,}"), "JWT Token"),
    (re.compile(r"api[_-]?key['\"]?\s*[:=]\s*['\"](?!\$[\{A-Z_])[^'\"]{20,}['\"]", re.I), "Generic API Key"),
]

# Hardcoded user paths (should be relative or use ${CLAUDE_PLUGIN_ROOT})
USER_PATH_PATTERNS = [
    re.compile(r"/Users/(?!username/|user/|you/|me/)[^/\s]+/"),
    re.compile(r"C:\\Users\\[^\\\s]+\\"),
    re.compile(r"/home/(?!username/|user/|runner/)[^/\s]+/"),
]


def scan_content_security(content: str, filename: str, report: ValidationReport) -> None:
    """Record secrets (CRITICAL) and hardcoded user paths (MAJOR) found in content."""
    for pattern, description in SECRET_PATTERNS:
        if pattern.search(content):
            report.critical(f"SECURITY: Contains {description}", filename)

    for pattern in USER_PATH_PATTERNS:
        match = pattern.search(content)
        if match:
            report.major(
                f"Contains hardcoded user path: {match.group()}. Use a relative path or ${{CLAUDE_PLUGIN_ROOT}}",
                filename,
            )


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class ValidationResult:
    """Single validation check result.

    Attributes:
        level: Severity level
        message: Human-readable description of the result
        file: Optional file path related to the result
        line: Optional line number in the file
    """

    level: Level
    message: str
    file: str | None = None
    line: int | None = None

    def to_dict(self) -> dict[str, str | int | None]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, str | int | None] = {"level": self.level, "message": self.message}
        if self.file is not None:
            result["file"] = self.file
        if self.line is not None:
            result["line"] = self.line
        return result


@dataclass
class ValidationReport:
    """Complete validation report with results collection and scoring.

    This is the base class every validator uses (or extends). Results are
    accumulated, never raised, so a single run reports every problem.
    """

    results: list[ValidationResult] = field(default_factory=list)

    def add(self, level: Level, message: str, file: str | None = None, line: int | None = None) -> None:
        """Add a validation result."""
        self.results.append(ValidationResult(level, message, file, line))

    def passed(self, message: str, file: str | None = None) -> None:
        """Add a passed check."""
        self.add("PASSED", message, file)

    def info(self, message: str, file: str | None = None) -> None:
        """Add an info message."""
        self.add("INFO", message, file)

    def warning(self, message: str, file: str | None = None, line: int | None = None) -> None:
        """Add a warning - always reported, never blocks validation (even in --strict)."""
        self.add("WARNING", message, file, line)

    def nit(self, message: str, file: str | None = None, line: int | None = None) -> None:
        """Add a nit - blocks validation only in --strict mode."""
        self.add("NIT", message, file, line)

    def minor(self, message: str, file: str | None = None, line: int | None = None) -> None:
        """Add a minor issue."""
        self.add("MINOR", message, file, line)

    def major(self, message: str, file: str | None = None, line: int | None = None) -> None:
        """Add a major issue."""
        self.add("MAJOR", message, file, line)

    def critical(self, message: str, file: str | None = None, line: int | None = None) -> None:
        """Add a critical issue."""
        self.add("CRITICAL", message, file, line)

    @property
    def has_critical(self) -> bool:
        return any(r.level == "CRITICAL" for r in self.results)

    @property
    def has_major(self) -> bool:
        return any(r.level == "MAJOR" for r in self.results)

    @property
    def has_minor(self) -> bool:
        return any(r.level == "MINOR" for r in self.results)

    @property
    def has_nit(self) -> bool:
        return any(r.level == "NIT" for r in self.results)

    @property
    def exit_code(self) -> int:
        """Exit code for the highest severity issue.

        NIT and WARNING never affect the exit code here; NIT blocking is
        handled by exit_code_strict() for --strict runs.
        """
        if self.has_critical:
            return EXIT_CRITICAL
        if self.has_major:
            return EXIT_MAJOR
        if self.has_minor:
            return EXIT_MINOR
        return EXIT_OK

    def exit_code_strict(self) -> int:
        """Exit code for --strict mode (NIT issues also block)."""
        code = self.exit_code
        if code != EXIT_OK:
            return code
        if self.has_nit:
            return EXIT_NIT
        return EXIT_OK

    @property
    def score(self) -> int:
        """Health score (0-100).

        Deducts 25 per CRITICAL, 10 per MAJOR, 3 per MINOR and 1 per NIT.
        """
        score = 100
        for r in self.results:
            if r.level == "CRITICAL":
                score -= 25
            elif r.level == "MAJOR":
                score -= 10
            elif r.level == "MINOR":
                score -= 3
            elif r.level == "NIT":
                score -= 1
        return max(0, score)

    def count_by_level(self) -> dict[str, int]:
        """Get count of results by level."""
        counts = {level: 0 for level in LEVELS}
        for r in self.results:
            counts[r.level] += 1
        return counts

    def get_all_errors(self) -> list[ValidationResult]:
        """All blocking results (CRITICAL, MAJOR, MINOR)."""
        return [r for r in self.results if r.level in ("CRITICAL", "MAJOR", "MINOR")]

    def merge(self, other: ValidationReport, prefix: str | None = None) -> None:
        """Merge results from another report, optionally prefixing file paths.

        Results without a file are attributed to ``prefix`` itself.
        """
        for r in other.results:
            file = r.file
            if prefix:
                file = f"{prefix}/{file}" if file else prefix
            self.add(r.level, r.message, file, r.line)

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        return {
            "score": self.score,
            "grade": calculate_letter_grade(self.score),
            "exit_code": self.exit_code,
            "counts": self.count_by_level(),
            "results": [r.to_dict() for r in self.results],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


# =============================================================================
# Utility Functions
# =============================================================================


def calculate_letter_grade(score: int) -> str:
    """Convert numeric score (0-100) to letter grade.

    A+ 97-100, A 93-96, A- 90-92, B+ 87-89, B 83-86, B- 80-82,
    C+ 77-79, C 73-76, C- 70-72, D 60-69, F below 60.
    """
    if score >= 97:
        return "A+"
    elif score >= 93:
        return "A"
    elif score >= 90:
        return "A-"
    elif score >= 87:
        return "B+"
    elif score >= 83:
        return "B"
    elif score >= 80:
        return "B-"
    elif score >= 77:
        return "C+"
    elif score >= 73:
        return "C"
    elif score >= 70:
        return "C-"
    elif score >= 60:
        return "D"
    else:
        return "F"


def relative_to_root(path: Path, root: Path) -> str:
    """POSIX path of ``path`` relative to ``root`` (falls back to the name)."""
    try:
        return path.resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        return path.name


# =============================================================================
# Local Markdown Links
# =============================================================================

LINK_PATTERN = re.compile(r"(?<!!)\[([^\]]*)\]\(([^)\s]+)(?:\s+\"[^\"]*\")?\)")
IMAGE_PATTERN = re.compile(r"!\[([^\]]*)\]\(([^)\s]+)(?:\s+\"[^\"]*\")?\)")
INLINE_CODE_SPAN = re.compile(r"`[^`]*`")

EXTERNAL_PREFIXES = ("http://", "https://", "mailto:", "data:", "tel:")


def is_external_link(target: str) -> bool:
    return target.startswith(EXTERNAL_PREFIXES) or target.startswith("#")


def resolve_local_link(target: str, md_file: Path, plugin_root: Path) -> bool:
    """A relative link resolves from the linking file's directory or from the plugin root."""
    path_part = target.split("#", 1)[0].split("?", 1)[0]
    if not path_part:
        return True
    return (md_file.parent / path_part).exists() or (plugin_root / path_part.lstrip("/")).exists()


# =============================================================================
# Color Formatting (for terminal output)
# =============================================================================

COLORS = {
    "CRITICAL": "\033[91m",  # Red
    "MAJOR": "\033[93m",  # Yellow
    "MINOR": "\033[94m",  # Blue
    "NIT": "\033[96m",  # Cyan
    "WARNING": "\033[95m",  # Magenta
    "INFO": "\033[90m",  # Gray
    "PASSED": "\033[92m",  # Green
    "RESET": "\033[0m",
    "BOLD": "\033[1m",
}


def colorize(text: str, level: str) -> str:
    """Apply color to text based on level."""
    return f"{COLORS.get(level, '')}{text}{COLORS['RESET']}"


def format_result(result: ValidationResult, show_file: bool = True) -> str:
    """Format a single validation result for terminal output."""
    line = f"{colorize(f'[{result.level}]', result.level)} {result.message}"
    if show_file and result.file:
        location = result.file
        if result.line:
            location += f":{result.line}"
        line += f" ({location})"
    return line


def print_report_summary(report: ValidationReport, title: str = "Validation Report") -> None:
    """Print a formatted summary of a validation report."""
    counts = report.count_by_level()
    score = report.score
    grade = calculate_letter_grade(score)

    print(f"\n{'=' * 60}")
    print(f"{COLORS['BOLD']}{title}{COLORS['RESET']}")
    print(f"{'=' * 60}")

    print()
    for level in LEVELS:
        print(colorize(f"{level + ':':<9} {counts[level]}", level))

    grade_color = COLORS["PASSED"] if score >= 80 else COLORS["MAJOR"] if score >= 60 else COLORS["CRITICAL"]
    print(
        f"\n{COLORS['BOLD']}Health Score:{COLORS['RESET']} {grade_color}{score}/100 (Grade: {grade}){COLORS['RESET']}"
    )

    exit_code = report.exit_code
    if exit_code == EXIT_OK:
        print(f"\n{COLORS['PASSED']}✓ All checks passed{COLORS['RESET']}")
    elif exit_code == EXIT_CRITICAL:
        print(f"\n{COLORS['CRITICAL']}✗ Critical issues found - must fix before publishing{COLORS['RESET']}")
    elif exit_code == EXIT_MAJOR:
        print(f"\n{COLORS['MAJOR']}! Major issues found - should fix{COLORS['RESET']}")
    else:
        print(f"\n{COLORS['MINOR']}~ Minor issues found - recommended to fix{COLORS['RESET']}")


def print_results_by_level(report: ValidationReport, verbose: bool = False) -> None:
    """Print validation results grouped by severity level."""
    by_level: dict[str, list[ValidationResult]] = {level: [] for level in LEVELS}
    for result in report.results:
        by_level[result.level].append(result)

    for level in ("CRITICAL", "MAJOR", "MINOR"):
        results = by_level[level]
        if results:
            print(f"\n{COLORS[level]}--- {level} ISSUES ({len(results)}) ---{COLORS['RESET']}")
            for result in results:
                print(f"  {format_result(result)}")

    if by_level["NIT"]:
        print(f"\n{COLORS['NIT']}--- NIT ISSUES ({len(by_level['NIT'])}) [blocks in --strict] ---{COLORS['RESET']}")
        for result in by_level["NIT"]:
            print(f"  {format_result(result)}")

    if by_level["WARNING"]:
        print(f"\n{COLORS['WARNING']}--- WARNINGS ({len(by_level['WARNING'])}) [non-blocking] ---{COLORS['RESET']}")
        for result in by_level["WARNING"]:
            print(f"  {format_result(result)}")

    if verbose:
        for level in ("INFO", "PASSED"):
            results = by_level[level]
            if results:
                print(f"\n{COLORS[level]}--- {level} ({len(results)}) ---{COLORS['RESET']}")
                for result in results:
                    print(f"  {format_result(result)}")


def print_report(report: ValidationReport, title: str, verbose: bool = False) -> None:
    """Summary followed by grouped details, the standard human output."""
    print_report_summary(report, title)
    print_results_by_level(report, verbose=verbose)
    print()


def print_json_report(reports: list[ValidationReport], key: str = "reports") -> None:
    """Print one report as JSON, or several under ``key`` with the overall exit code."""
    if len(reports) == 1:
        print(reports[0].to_json())
        return
    combined = {
        key: [r.to_dict() for r in reports],
        "overall_exit_code": max((r.exit_code for r in reports), default=EXIT_OK),
    }
    print(json.dumps(combined, indent=2))


def worst_exit_code(reports: list[ValidationReport], strict: bool = False) -> int:
    """Worst exit code across reports, honouring --strict."""
    if not reports:
        return EXIT_OK
    if strict:
        return max(r.exit_code_strict() for r in reports)
    return max(r.exit_code for r in reports)


# =============================================================================
# File Encoding Utilities
# =============================================================================


def check_utf8_encoding(content: bytes, report: ValidationReport, filename: str) -> bool:
    """Check file is UTF-8 encoded without BOM.

    Returns:
        True if encoding is valid, False otherwise
    """
    if content.startswith(b"\xef\xbb\xbf"):
        report.major("File has UTF-8 BOM (should be UTF-8 without BOM)", filename)
        return False

    try:
        content.decode("utf-8")
        return True
    except UnicodeDecodeError as e:
        report.major(f"File is not valid UTF-8: {e}", filename)
        return False


def read_markdown(path: Path, report: ValidationReport, filename: str) -> str | None:
    """Read a Markdown file as UTF-8, recording encoding and I/O failures.

    Returns:
        The decoded content, or None when the file cannot be used.
    """
    try:
        content_bytes = path.read_bytes()
    except OSError as e:
        report.critical(f"Cannot read file: {e}", filename)
        return None

    if not check_utf8_encoding(content_bytes, report, filename):
        return None

    report.passed("File is valid UTF-8", filename)
    return content_bytes.decode("utf-8")


# =============================================================================
# Gitignore Support
# =============================================================================


def parse_gitignore(gitignore_path: Path) -> list[str]:
    """Parse a .gitignore file and return its patterns (comments and blanks stripped)."""
    patterns: list[str] = []
    try:
        with open(gitignore_path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                patterns.append(line)
    except (OSError, UnicodeDecodeError):
        pass
    return patterns


def is_path_gitignored(rel_path: str, patterns: list[str]) -> bool:
    """Check if a relative POSIX path matches any gitignore pattern.

    Negation patterns (``!pattern``) are not supported and are skipped.
    """
    rel_path = rel_path.replace("\\", "/").rstrip("/")
    path_parts = rel_path.split("/")

    for pattern in patterns:
        if pattern.startswith("!"):
            continue

        pattern = pattern.rstrip("/")
        is_anchored = pattern.startswith("/")
        if is_anchored:
            pattern = pattern[1:]

        if "**" in pattern:
            pattern = pattern.replace("**/", "*/").replace("/**", "/*")

        if fnmatch.fnmatch(rel_path, pattern):
            return True
        if not is_anchored and any(fnmatch.fnmatch(part, pattern) for part in path_parts):
            return True

    return False


def iter_plugin_files(root: Path, suffixes: set[str] | None = None) -> Iterator[Path]:
    """Yield plugin files under ``root`` in sorted order.

    Skips SKIP_DIRS, hidden directories other than PLUGIN_HIDDEN_DIRS, and
    anything matched by the root .gitignore.
    """
    root = root.resolve()
    gitignore = root / ".gitignore"
    patterns = parse_gitignore(gitignore) if gitignore.is_file() else []

    def _walk(directory: Path) -> Iterator[Path]:
        try:
            entries = sorted(directory.iterdir())
        except PermissionError:
            return
        for entry in entries:
            rel = entry.relative_to(root).as_posix()
            if patterns and is_path_gitignored(rel, patterns):
                continue
            if entry.is_dir():
                if entry.name in SKIP_DIRS:
                    continue
                if entry.name.startswith(".") and entry.name not in PLUGIN_HIDDEN_DIRS:
                    continue
                yield from _walk(entry)
            elif entry.is_file():
                if suffixes is None or entry.suffix.lower() in suffixes:
                    yield entry

    yield from _walk(root)
