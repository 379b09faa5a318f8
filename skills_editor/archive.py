"""
skills_editor.archive

Export a bundle as a ZIP in the temp directory and track the produced files so
they can be removed after use, on start-up (when stale) and at shutdown.
"""

from __future__ import annotations

import os
import re
import threading
import time
import zipfile
from pathlib import Path
from typing import Iterator

from skills_editor.config import (
    ARCHIVE_MAX_AGE_SECONDS,
    ARCHIVE_PREFIX,
    ARCHIVE_SUFFIX,
    resolve_temp_dir,
)
from skills_editor.errors import ArchiveFailed, NotFound
from skills_editor.logs import get_logger
from skills_editor.sandbox import resolve_bundle_dir

logger = get_logger("archive")

_ARCHIVE_NAME_DISALLOWED = re.compile(r"[^a-zA-Z0-9\-_.]")


class TempFileRegistry:
    """
    Thread-safe set of temp files this process created, with their registration time.

    Lifecycle: ``register`` on creation, ``release`` once consumed,
    ``sweep_expired`` opportunistically and ``sweep_all`` at shutdown.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[Path, float] = {}

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, os.PathLike)):
            return False
        with self._lock:
            return Path(path) in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def paths(self) -> list[Path]:
        with self._lock:
            return sorted(self._entries)

    def register(self, path: str | os.PathLike[str], now: float | None = None) -> Path:
        p = Path(path)
        with self._lock:
            self._entries[p] = time.time() if now is None else now
        return p

    def release(self, path: str | os.PathLike[str], delete: bool = True) -> bool:
        """Stop tracking ``path`` (deleting it by default). False if it was not tracked."""
        p = Path(path)
        with self._lock:
            tracked = self._entries.pop(p, None) is not None
        if tracked and delete:
            _remove_quietly(p)
        return tracked

    def sweep_expired(
        self, now: float | None = None, max_age: float = ARCHIVE_MAX_AGE_SECONDS
    ) -> list[Path]:
        cutoff = (time.time() if now is None else now) - max_age
        with self._lock:
            expired = [p for p, created in self._entries.items() if created < cutoff]
            for p in expired:
                del self._entries[p]
        for p in expired:
            _remove_quietly(p)
        return expired

    def sweep_all(self) -> list[Path]:
        with self._lock:
            swept = list(self._entries)
            self._entries.clear()
        for p in swept:
            _remove_quietly(p)
        return swept


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.error("Failed to cleanup temp file %s: %s", str(path), exc)


# Process-wide registry used by the server.
TEMP_FILES = TempFileRegistry()


def archive_file_name(bundle_name: str, millis: int | None = None) -> str:
    safe_name = _ARCHIVE_NAME_DISALLOWED.sub("", bundle_name)
    stamp = int(time.time() * 1000) if millis is None else millis
    return f"{ARCHIVE_PREFIX}{safe_name}-{stamp}{ARCHIVE_SUFFIX}"


def _raise(err: OSError) -> None:
    raise err


def iter_archive_entries(bundle_dir: Path) -> Iterator[tuple[Path, str]]:
    """(file, archive name) pairs, rooted at the bundle directory. Symlinks are skipped."""
    for root, dirs, files in os.walk(bundle_dir, onerror=_raise):
        dirs.sort()
        for name in sorted(files):
            file_path = Path(root) / name
            if file_path.is_symlink():
                continue
            yield file_path, file_path.relative_to(bundle_dir).as_posix()


def export_bundle(
    library_dir: Path,
    bundle_path: str | os.PathLike[str],
    bundle_name: str,
    temp_dir: Path | None = None,
    registry: TempFileRegistry | None = None,
) -> Path:
    """
    function_purpose: Package a bundle directory into a deflate-9 ZIP for installation.

    - Entries mirror the bundle's internal layout at the archive root.
    - The archive is registered before it is written so a crash mid-write
      still leaves it eligible for cleanup.
    - On failure the partial file is removed and untracked (ArchiveFailed).
    - Tracked archives older than one hour are swept first.

    Returns the archive path.
    """
    registry = TEMP_FILES if registry is None else registry
    bundle_dir = resolve_bundle_dir(bundle_path, library_dir)
    if not bundle_dir.is_dir():
        raise NotFound("Skill directory does not exist")

    # Archives from earlier exports that were never released
    registry.sweep_expired()

    out_dir = resolve_temp_dir() if temp_dir is None else temp_dir
    millis = int(time.time() * 1000)
    archive_path = out_dir / archive_file_name(bundle_name, millis)
    while archive_path.exists() or archive_path in registry:
        millis += 1
        archive_path = out_dir / archive_file_name(bundle_name, millis)

    registry.register(archive_path)
    created = False
    try:
        with zipfile.ZipFile(
            archive_path, "x", compression=zipfile.ZIP_DEFLATED, compresslevel=9
        ) as zf:
            created = True
            for file_path, arcname in iter_archive_entries(bundle_dir):
                zf.write(file_path, arcname)
    except (OSError, zipfile.LargeZipFile) as exc:
        registry.release(archive_path, delete=created)
        logger.error("Error creating ZIP for %s: %s", bundle_dir.name, exc)
        raise ArchiveFailed(reason=exc) from exc

    logger.info("Exported skill %s to %s", bundle_dir.name, str(archive_path))
    return archive_path


def cleanup_old_temp_files(
    temp_dir: Path | None = None,
    max_age: float = ARCHIVE_MAX_AGE_SECONDS,
    now: float | None = None,
) -> list[Path]:
    """
    function_purpose: Remove exported archives left in the temp directory by earlier runs.

    Only ``skill-*.zip`` files older than ``max_age`` seconds are touched;
    per-file errors are ignored.
    """
    directory = resolve_temp_dir() if temp_dir is None else temp_dir
    cutoff = (time.time() if now is None else now) - max_age
    removed: list[Path] = []

    try:
        candidates = [
            entry
            for entry in directory.iterdir()
            if entry.name.startswith(ARCHIVE_PREFIX) and entry.name.endswith(ARCHIVE_SUFFIX)
        ]
    except OSError as exc:
        logger.error("Failed to cleanup old temp files: %s", exc)
        return removed

    for entry in candidates:
        try:
            if entry.is_file() and entry.stat().st_mtime < cutoff:
                entry.unlink()
                removed.append(entry)
        except OSError:
            # Ignore errors for individual files
            continue
    return removed
