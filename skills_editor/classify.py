"""Filename-based classification: editable or not, and a coarse content type."""

from __future__ import annotations

from enum import Enum
from pathlib import PurePath

EDITABLE_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".md",
        ".txt",
        ".js",
        ".py",
        ".json",
        ".html",
        ".css",
        ".yaml",
        ".yml",
        ".sh",
        ".bash",
        ".lua",
        ".rb",
        ".go",
        ".rs",
        ".ts",
        ".tsx",
        ".jsx",
    }
)

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg"})
DOCUMENT_EXTENSIONS = frozenset({".pdf", ".doc", ".docx", ".xls", ".xlsx"})
VIDEO_EXTENSIONS = frozenset({".mp4", ".webm", ".mov", ".avi"})
AUDIO_EXTENSIONS = frozenset({".mp3", ".wav", ".flac"})


class ContentType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    DOCUMENT = "document"
    VIDEO = "video"
    AUDIO = "audio"
    BINARY = "binary"


def _extension(name: str) -> str:
    return PurePath(name).suffix.lower()


def is_editable(name: str) -> bool:
    return _extension(name) in EDITABLE_EXTENSIONS


def classify(name: str) -> ContentType:
    """Map a filename to its content type; ``text`` only for editable extensions."""
    ext = _extension(name)
    if ext in IMAGE_EXTENSIONS:
        return ContentType.IMAGE
    if ext in DOCUMENT_EXTENSIONS:
        return ContentType.DOCUMENT
    if ext in VIDEO_EXTENSIONS:
        return ContentType.VIDEO
    if ext in AUDIO_EXTENSIONS:
        return ContentType.AUDIO
    if ext in EDITABLE_EXTENSIONS:
        return ContentType.TEXT
    return ContentType.BINARY
