"""Shared fixtures for the validator tests."""

import shutil
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
SCRIPTS_DIR = PROJECT_ROOT / "scripts"
FIXTURE_PLUGIN = PROJECT_ROOT / "tests" / "fixtures" / "flutter-plugin"

if str(SCRIPTS_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPTS_DIR))


@pytest.fixture
def plugin_dir(tmp_path: Path) -> Path:
    """A writable copy of the fixture plugin."""
    target = tmp_path / "flutter-plugin"
    shutil.copytree(FIXTURE_PLUGIN, target)
    return target


@pytest.fixture
def skill_dir(plugin_dir: Path) -> Path:
    return plugin_dir / "skills" / "flutter-pub"


@pytest.fixture(autouse=True)
def _default_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    """Tests assume the default 'flutter' prefix regardless of the caller's environment."""
    monkeypatch.delenv("FPL_COMMAND_PREFIX", raising=False)


def levels(report, level: str) -> list[str]:
    """Messages recorded at ``level``."""
    return [r.message for r in report.results if r.level == level]


def replace_in(path: Path, old: str, new: str) -> None:
    content = path.read_text(encoding="utf-8")
    assert old in content, f"{old!r} not found in {path}"
    path.write_text(content.replace(old, new), encoding="utf-8")
