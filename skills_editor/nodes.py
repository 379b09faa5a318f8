"""
skills_editor.nodes

File and folder operations inside a single bundle.

Every operation takes a bundle path (manifest path or bundle directory), derives
the bundle directory as its local root, and passes each target through
sanitize-then-validate before touching disk. The manifest at any depth is never
deleted, renamed, moved or overwritten from here.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field

from skills_editor.classify import ContentType, classify, is_editable
from skills_editor.config import MANIFEST_NAME, MAX_EDITABLE_SIZE
from skills_editor.errors import (
    AlreadyExists,
    CreateFailed,
    DeleteFailed,
    InvalidName,
    InvalidPath,
    LoadFailed,
    MoveFailed,
    NotFound,
    ProtectedFile,
    SkillsEditorError,
    UploadFailed,
)
from skills_editor.logs import get_logger, log_operation
from skills_editor.sandbox import is_within, resolve_bundle_dir, to_relative_posix, validate_path
from skills_editor.sanitize import sanitize_name, sanitize_relative_path
from skills_editor.tree import FileNode, FolderNode, build_tree

logger = get_logger("nodes")

TOO_BIG_MESSAGE = "File is too large to edit (max 10MB)"


@dataclass(frozen=True)
class UploadedFile:
    """One entry of a batch upload; ``name`` may contain folder segments."""

    name: str
    data: bytes


class UploadResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uploaded_files: list[str] = Field(default_factory=list, alias="uploadedFiles")
    count: int = 0


class FileMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    path: str
    type: ContentType
    size: int
    editable: bool
    too_big: bool | None = Field(default=None, alias="tooBig")
    error: str | None = None


class LoadedFile(BaseModel):
    content: str
    metadata: FileMetadata


def _exists(path: Path) -> bool:
    return path.exists() or path.is_symlink()


def _split_leaf(raw: str) -> tuple[str, str]:
    # Directory portion keeps its trailing separator; backslashes become '/'.
    stripped = raw.rstrip("/\\")
    idx = max(stripped.rfind("/"), stripped.rfind("\\"))
    return stripped[: idx + 1].replace("\\", "/"), stripped[idx + 1 :]


def _clean_leaf(raw: str) -> str:
    name = sanitize_name(raw)
    if name in (".", ".."):
        raise InvalidName("Invalid name")
    return name


def _target_with_clean_leaf(raw: str, bundle_dir: Path) -> Path:
    dir_part, leaf = _split_leaf(raw)
    target = validate_path(dir_part + _clean_leaf(leaf), bundle_dir)
    if target == bundle_dir:
        raise InvalidPath("Invalid path")
    return target


def _existing_node(raw: str, bundle_dir: Path, action: str) -> Path:
    target = validate_path(raw, bundle_dir)
    if target.name == MANIFEST_NAME:
        raise ProtectedFile(f"Cannot {action} SKILL.md")
    if target == bundle_dir:
        raise InvalidPath("Invalid path")
    return target


def list_files(
    library_dir: Path, bundle_path: str | os.PathLike[str]
) -> list[FolderNode | FileNode]:
    """Tree of everything visible inside the bundle."""
    bundle_dir = resolve_bundle_dir(bundle_path, library_dir)
    if not bundle_dir.is_dir():
        raise NotFound("Skill directory does not exist")
    return build_tree(bundle_dir)


def create_file(
    library_dir: Path,
    bundle_path: str | os.PathLike[str],
    file_path: str,
    content: str = "",
) -> str:
    """
    function_purpose: Create a new file inside a bundle.

    Only the file name is sanitized; the directory portion is kept as given and
    checked by the sandbox. Parent folders are created as needed. Existing files
    are never overwritten (AlreadyExists).

    Returns the stored path relative to the bundle, '/'-separated.
    """
    bundle_dir = resolve_bundle_dir(bundle_path, library_dir)
    target = _target_with_clean_leaf(file_path, bundle_dir)
    if _exists(target):
        raise AlreadyExists("A file or folder with that name already exists")

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "x", encoding="utf-8") as f:
            _ = f.write(content)
    except FileExistsError as exc:
        raise AlreadyExists("A file or folder with that name already exists") from exc
    except OSError as exc:
        raise CreateFailed("Failed to create file", reason=exc) from exc
    return to_relative_posix(target, bundle_dir)


def create_folder(
    library_dir: Path, bundle_path: str | os.PathLike[str], folder_path: str
) -> str:
    """Create a folder (and its parents) inside a bundle. Idempotent for existing folders."""
    bundle_dir = resolve_bundle_dir(bundle_path, library_dir)
    target = _target_with_clean_leaf(folder_path, bundle_dir)
    try:
        target.mkdir(parents=True, exist_ok=True)
    except FileExistsError as exc:
        raise AlreadyExists("A file with that name already exists") from exc
    except OSError as exc:
        raise CreateFailed("Failed to create folder", reason=exc) from exc
    return to_relative_posix(target, bundle_dir)


def delete_node(
    library_dir: Path, bundle_path: str | os.PathLike[str], target_path: str
) -> None:
    """
    function_purpose: Delete a file or folder (recursively) inside a bundle.

    SKILL.md is protected; a missing target raises NotFound.
    """
    bundle_dir = resolve_bundle_dir(bundle_path, library_dir)
    target = validate_path(target_path, bundle_dir)
    if target.name == MANIFEST_NAME:
        raise ProtectedFile("Cannot delete SKILL.md - it is required")
    if target == bundle_dir:
        raise InvalidPath("Invalid path")
    if not _exists(target):
        raise NotFound("File or folder does not exist")

    try:
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        else:
            target.unlink()
    except OSError as exc:
        raise DeleteFailed("Failed to delete file or folder", reason=exc) from exc

    log_operation(
        "node_delete",
        {"skill": bundle_dir.name, "path": to_relative_posix(target, bundle_dir)},
    )


def rename_node(
    library_dir: Path,
    bundle_path: str | os.PathLike[str],
    old_path: str,
    new_name: str,
) -> str:
    """
    function_purpose: Rename a file or folder in place (same parent folder).

    Fails with ProtectedFile for SKILL.md, NotFound when the source is missing
    and AlreadyExists when the new name is taken. Returns the new relative path.
    """
    bundle_dir = resolve_bundle_dir(bundle_path, library_dir)
    old = _existing_node(old_path, bundle_dir, "rename")

    name = _clean_leaf(new_name)
    if name == MANIFEST_NAME:
        raise ProtectedFile("Cannot rename a file to SKILL.md")
    new = validate_path(old.parent / name, bundle_dir)

    if not _exists(old):
        raise NotFound("File or folder does not exist")
    if _exists(new):
        raise AlreadyExists("A file or folder with that name already exists")

    try:
        os.rename(old, new)
    except OSError as exc:
        raise MoveFailed("Failed to rename file or folder", reason=exc) from exc

    rel_new = to_relative_posix(new, bundle_dir)
    log_operation(
        "node_rename",
        {"skill": bundle_dir.name, "from": to_relative_posix(old, bundle_dir), "to": rel_new},
    )
    return rel_new


def move_node(
    library_dir: Path,
    bundle_path: str | os.PathLike[str],
    old_path: str,
    new_path: str,
) -> str:
    """
    function_purpose: Move a file or folder to another location inside the same bundle.

    Unlike rename the parent folder may change; missing target folders are
    created. A folder cannot be moved into itself.
    """
    bundle_dir = resolve_bundle_dir(bundle_path, library_dir)
    old = _existing_node(old_path, bundle_dir, "move")

    new = validate_path(sanitize_relative_path(new_path), bundle_dir)
    if new.name == MANIFEST_NAME:
        raise ProtectedFile("Cannot move a file to SKILL.md")

    if not _exists(old):
        raise NotFound("Source file does not exist")
    if _exists(new):
        raise AlreadyExists("A file with that name already exists in the target folder")
    if is_within(new, old):
        raise InvalidPath("Cannot move a folder into itself")

    try:
        new.parent.mkdir(parents=True, exist_ok=True)
        os.rename(old, new)
    except OSError as exc:
        raise MoveFailed("Failed to move file", reason=exc) from exc

    rel_new = to_relative_posix(new, bundle_dir)
    log_operation(
        "node_move",
        {"skill": bundle_dir.name, "from": to_relative_posix(old, bundle_dir), "to": rel_new},
    )
    return rel_new


def upload_files(
    library_dir: Path,
    bundle_path: str | os.PathLike[str],
    files: Iterable[UploadedFile],
    target_folder: str = "",
) -> UploadResult:
    """
    function_purpose: Write a batch of files into a bundle, preserving their relative folders.

    Best-effort: a file whose name sanitizes to nothing, escapes the bundle,
    targets SKILL.md or fails to write is logged and left out of the result.
    """
    bundle_dir = resolve_bundle_dir(bundle_path, library_dir)
    target_dir = validate_path(target_folder, bundle_dir) if target_folder else bundle_dir
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise UploadFailed("Failed to upload files", reason=exc) from exc

    uploaded: list[str] = []
    for item in files:
        try:
            rel = sanitize_relative_path(item.name)
            destination = validate_path(target_dir / rel, bundle_dir)
            if destination.name == MANIFEST_NAME:
                raise ProtectedFile("Cannot overwrite SKILL.md")
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_bytes(item.data)
        except (SkillsEditorError, OSError) as exc:
            logger.error("Error uploading file %s: %s", item.name, exc)
            continue
        uploaded.append(rel.replace(os.sep, "/"))

    return UploadResult(uploaded_files=uploaded, count=len(uploaded))


def load_file(library_dir: Path, file_path: str) -> LoadedFile:
    """
    function_purpose: Load a file from the library for editing.

    Editable files up to 10 MiB come back with their text; larger files are
    flagged ``tooBig`` and other files return metadata only.
    """
    target = validate_path(file_path, library_dir)
    if not target.is_file():
        raise NotFound("File does not exist")

    try:
        size = target.stat().st_size
        editable = is_editable(target.name)
        metadata = FileMetadata(
            name=target.name,
            path=file_path,
            type=classify(target.name),
            size=size,
            editable=editable,
        )
        if size > MAX_EDITABLE_SIZE:
            metadata.editable = False
            metadata.too_big = True
            metadata.error = TOO_BIG_MESSAGE
            return LoadedFile(content="", metadata=metadata)
        if not editable:
            return LoadedFile(content="", metadata=metadata)
        content = target.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise LoadFailed("Failed to load file", reason=exc) from exc
    return LoadedFile(content=content, metadata=metadata)
