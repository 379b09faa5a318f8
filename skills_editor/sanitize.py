"""
skills_editor.sanitize

Strip disallowed characters from user-supplied names before they are joined
into a path. Sanitize first, validate (skills_editor.sandbox) second.
"""

from __future__ import annotations

import os
import re

from skills_editor.config import MAX_NAME_LENGTH, RESERVED_BUNDLE_NAME
from skills_editor.errors import InvalidName, InvalidPath

_NAME_DISALLOWED = re.compile(r"[^A-Za-z0-9._\-]")
_BUNDLE_DISALLOWED = re.compile(r"[^a-z0-9\-]")
_SEGMENT_SPLIT = re.compile(r"[/\\]+")


def sanitize_name(raw: str) -> str:
    """
    function_purpose: Keep only letters, digits, dots, underscores and hyphens in a file or folder name.

    Raises InvalidName when nothing is left or the result exceeds 255 characters.
    """
    cleaned = _NAME_DISALLOWED.sub("", raw or "")
    if not cleaned:
        raise InvalidName("Invalid filename - must contain at least one valid character")
    if len(cleaned) > MAX_NAME_LENGTH:
        raise InvalidName(f"Filename is too long (max {MAX_NAME_LENGTH} characters)")
    return cleaned


def sanitize_relative_path(raw: str) -> str:
    """
    function_purpose: Sanitize every segment of a relative path and rejoin with the host separator.

    Both ``/`` and ``\\`` split segments. Segments that sanitize to ``.`` or
    ``..`` are rejected; InvalidPath is raised when no segment remains.
    """
    segments = [s for s in _SEGMENT_SPLIT.split(raw or "") if s]
    if not segments:
        raise InvalidPath("Invalid path")

    cleaned: list[str] = []
    for segment in segments:
        name = sanitize_name(segment)
        if name in (".", ".."):
            raise InvalidPath("Invalid path segment")
        cleaned.append(name)
    return os.sep.join(cleaned)


def sanitize_bundle_name(raw: str) -> str:
    """
    function_purpose: Normalise a bundle name to lowercase letters, digits and hyphens.

    Raises InvalidName for empty results, names over 255 characters and the
    reserved name ``skill``.
    """
    cleaned = _BUNDLE_DISALLOWED.sub("", (raw or "").lower())
    if not cleaned:
        raise InvalidName(
            "Skill name must contain at least one valid character "
            "(lowercase letters, numbers, or hyphens)"
        )
    if len(cleaned) > MAX_NAME_LENGTH:
        raise InvalidName(f"Skill name is too long (max {MAX_NAME_LENGTH} characters)")
    if cleaned == RESERVED_BUNDLE_NAME:
        raise InvalidName("Invalid skill name")
    return cleaned


def is_canonical_bundle_name(name: str) -> bool:
    """True when ``name`` is already in its sanitized bundle form."""
    try:
        return sanitize_bundle_name(name) == name
    except InvalidName:
        return False
