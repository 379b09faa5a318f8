"""
skills_editor.config

Paths, constants and environment resolution.

Environment (optional):
- SKILLS_LIBRARY_DIR: override the library root (default: ~/.skills-editor/skills)
- SKILLS_EDITOR_TEMP_DIR: override where exported archives are written (default: system temp dir)
- LOG_FILE: override the rotating log file (default: ~/.skills-editor/logs/skills_editor.log)
- OPS_LOG_FILE: override the operations audit log (default: ~/.skills-editor/logs/skills_editor_operations.log)
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


# --- Paths & constants ---
SERVER_NAME = "SkillsEditor"
APP_HOME = Path.home() / ".skills-editor"
DEFAULT_LIBRARY_DIR = APP_HOME / "skills"
DEFAULT_LOG_DIR = APP_HOME / "logs"
DEFAULT_LOG_FILE = DEFAULT_LOG_DIR / "skills_editor.log"
DEFAULT_OPS_LOG_FILE = DEFAULT_LOG_DIR / "skills_editor_operations.log"

MANIFEST_NAME = "SKILL.md"
RESERVED_BUNDLE_NAME = "skill"
MAX_NAME_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 500
DEFAULT_DESCRIPTION = "A custom Claude skill"

LISTING_DESCRIPTION_LIMIT = 200
NO_DESCRIPTION = "No description"

MAX_EDITABLE_SIZE = 10 * 1024 * 1024  # 10 MiB
DEPENDENCY_DIR_NAME = "node_modules"

ARCHIVE_PREFIX = "skill-"
ARCHIVE_SUFFIX = ".zip"
ARCHIVE_MAX_AGE_SECONDS = 60 * 60
IMPORT_FALLBACK_PREFIX = "imported-skill-"


def _env_path(var: str, default: Path) -> Path:
    value = os.environ.get(var)
    return Path(value).expanduser().resolve() if value else default


def resolve_library_dir(create: bool = True) -> Path:
    """
    function_purpose: Resolve the library root from environment or default location.

    The directory is created lazily on first use unless ``create`` is False.
    """
    library_dir = _env_path("SKILLS_LIBRARY_DIR", DEFAULT_LIBRARY_DIR)
    if create:
        library_dir.mkdir(parents=True, exist_ok=True)
    return library_dir


def resolve_temp_dir() -> Path:
    """
    function_purpose: Resolve the directory where in-flight archives are written.
    """
    temp_dir = _env_path("SKILLS_EDITOR_TEMP_DIR", Path(tempfile.gettempdir()))
    temp_dir.mkdir(parents=True, exist_ok=True)
    return temp_dir


def resolve_log_file() -> Path:
    return _env_path("LOG_FILE", DEFAULT_LOG_FILE)


def resolve_ops_log_file() -> Path:
    return _env_path("OPS_LOG_FILE", DEFAULT_OPS_LOG_FILE)
