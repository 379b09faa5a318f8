"""
skills_editor.sandbox

The single choke point every read or mutation passes its target through.

Canonicalisation happens at the string level (``os.path.abspath`` collapses
``.`` segments and duplicate separators); ``..`` segments are refused outright
instead of being collapsed, so a request can never walk up and back down.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

from skills_editor.config import MANIFEST_NAME
from skills_editor.errors import InvalidPath, PathEscape

_SEGMENT_SPLIT = re.compile(r"[/\\]+")


def _has_parent_segment(raw: str) -> bool:
    return any(segment == ".." for segment in _SEGMENT_SPLIT.split(raw))


def is_within(path: str | os.PathLike[str], base: str | os.PathLike[str]) -> bool:
    """True when ``path`` equals ``base`` or lives underneath it (both absolute)."""
    path_str = os.fspath(path)
    base_str = os.fspath(base).rstrip(os.sep) or os.sep
    if path_str == base_str:
        return True
    prefix = base_str if base_str.endswith(os.sep) else base_str + os.sep
    return path_str.startswith(prefix)


def resolve_within(
    requested: str | os.PathLike[str], base_dir: str | os.PathLike[str]
) -> Path | None:
    """
    Resolve ``requested`` against ``base_dir``; None when the result escapes it.

    Raises InvalidPath for empty input or embedded NUL bytes.
    """
    raw = os.fspath(requested)
    if not raw or "\x00" in raw:
        raise InvalidPath("Invalid path")
    if _has_parent_segment(raw):
        return None

    base = os.path.abspath(os.fspath(base_dir))
    resolved = os.path.abspath(os.path.join(base, raw))
    if not is_within(resolved, base):
        return None
    return Path(resolved)


def validate_path(
    requested: str | os.PathLike[str], base_dir: str | os.PathLike[str]
) -> Path:
    """
    function_purpose: Resolve ``requested`` against ``base_dir`` and reject sandbox escapes.

    - Relative inputs are joined to ``base_dir``; absolute inputs are used as-is.
    - Any ``..`` segment fails with PathEscape.
    - The result must equal ``base_dir`` or have ``base_dir + os.sep`` as a prefix.

    Returns the absolute path.
    """
    resolved = resolve_within(requested, base_dir)
    if resolved is None:
        raise PathEscape(f"{os.fspath(requested)!r} escapes {os.fspath(base_dir)!r}")
    return resolved


def resolve_bundle_dir(bundle_path: str | os.PathLike[str], library_dir: Path) -> Path:
    """
    function_purpose: Map a bundle path (manifest path or bundle directory) to the bundle directory.

    The bundle directory must be a direct child of the library root.
    """
    validated = validate_path(bundle_path, library_dir)
    library = Path(os.path.abspath(library_dir))

    if validated.name != MANIFEST_NAME and validated.parent == library:
        bundle_dir = validated
    else:
        bundle_dir = validated.parent

    if bundle_dir.parent != library:
        raise InvalidPath("Path does not point into a skill")
    return bundle_dir


def to_relative_posix(path: Path, root: Path) -> str:
    """Relative, forward-slash form of ``path`` under ``root``."""
    return path.relative_to(root).as_posix()
