from __future__ import annotations

from pathlib import Path

import pytest

from skills_editor.bundles import create_bundle


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep every test away from the real home directory and temp dir."""
    monkeypatch.setenv("SKILLS_LIBRARY_DIR", str(tmp_path / "env-library"))
    monkeypatch.setenv("SKILLS_EDITOR_TEMP_DIR", str(tmp_path / "env-temp"))
    monkeypatch.setenv("LOG_FILE", str(tmp_path / "logs" / "skills_editor.log"))
    monkeypatch.setenv("OPS_LOG_FILE", str(tmp_path / "logs" / "operations.log"))


@pytest.fixture
def library(tmp_path: Path) -> Path:
    root = tmp_path / "library"
    root.mkdir()
    return root


@pytest.fixture
def manifest(library: Path) -> Path:
    """SKILL.md path of a freshly created 'demo' skill."""
    return create_bundle(library, "demo", "Demo skill")
