"""
skills_editor.handlers

Boundary contract consumed by the tool surface (and any other front end).

Each handler validates its request, runs the core operation and returns an
outcome dict: ``{"success": True, ...}`` or ``{"success": False, "error": msg,
"code": code}``. Handlers never raise. Sandbox violations are reported with a
generic message; I/O failures are logged with their reason and reported as
"Failed to ...".
"""

from __future__ import annotations

import base64
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from skills_editor import archive, bundles, nodes
from skills_editor.config import resolve_library_dir
from skills_editor.errors import (
    InvalidRequest,
    NotFound,
    OperationFailed,
    PathEscape,
    SkillsEditorError,
)
from skills_editor.logs import get_logger, log_operation
from skills_editor.schemas import (
    CreateFileRequest,
    CreateFolderRequest,
    CreateSkillRequest,
    CreateZipRequest,
    DeleteNodeRequest,
    LoadFileRequest,
    LoadSkillRequest,
    MoveNodeRequest,
    ReleaseZipRequest,
    RenameNodeRequest,
    SaveSkillRequest,
    SkillPathRequest,
    UploadEntry,
    UploadFilesRequest,
)
from skills_editor.tree import tree_to_dicts

logger = get_logger("handlers")

Outcome = dict[str, Any]


def _ok(**payload: Any) -> Outcome:
    return {"success": True, **payload}


def _fail(exc: SkillsEditorError) -> Outcome:
    return {"success": False, "error": exc.user_message, "code": exc.code}


def _run(operation: str, func: Callable[[], Outcome]) -> Outcome:
    try:
        return func()
    except ValidationError as exc:
        logger.warning("Invalid request to %s: %s", operation, exc)
        return _fail(InvalidRequest(f"Invalid request to {operation}"))
    except PathEscape as exc:
        logger.warning("Blocked %s: %s", operation, exc)
        return _fail(exc)
    except OperationFailed as exc:
        logger.error("Error trying to %s: %s", operation, exc)
        return _fail(exc)
    except SkillsEditorError as exc:
        logger.info("Rejected %s: %s", operation, exc)
        return _fail(exc)
    except Exception:
        logger.exception("Unexpected error trying to %s", operation)
        return _fail(OperationFailed(f"Failed to {operation}"))


def _library(library_dir: Path | None) -> Path:
    return resolve_library_dir() if library_dir is None else library_dir


# --- Bundles ---
def handle_create_bundle(
    name: str,
    description: str = "",
    content: str | None = None,
    library_dir: Path | None = None,
) -> Outcome:
    def _op() -> Outcome:
        req = CreateSkillRequest(name=name, description=description, content=content)
        manifest = bundles.create_bundle(
            _library(library_dir), req.name, req.description, req.content
        )
        return _ok(path=str(manifest), name=manifest.parent.name)

    return _run("create skill", _op)


def handle_load_bundle(path: str, library_dir: Path | None = None) -> Outcome:
    def _op() -> Outcome:
        req = LoadSkillRequest(path=path)
        loaded = bundles.load_bundle(_library(library_dir), req.path)
        payload = loaded.model_dump(by_alias=True, exclude_none=True)
        return _ok(**payload)

    return _run("load skill", _op)


def handle_save_bundle(path: str, content: str, library_dir: Path | None = None) -> Outcome:
    def _op() -> Outcome:
        req = SaveSkillRequest(path=path, content=content)
        bundles.save_bundle(_library(library_dir), req.path, req.content)
        return _ok()

    return _run("save skill", _op)


def handle_delete_bundle(path: str, library_dir: Path | None = None) -> Outcome:
    def _op() -> Outcome:
        req = SkillPathRequest(path=path)
        bundles.delete_bundle(_library(library_dir), req.path)
        return _ok()

    return _run("delete skill", _op)


def handle_list_bundles(library_dir: Path | None = None) -> list[dict[str, Any]]:
    """Bundle summaries; an empty list when the library cannot be listed."""
    try:
        summaries = bundles.list_bundles(_library(library_dir))
    except (SkillsEditorError, OSError) as exc:
        logger.error("Error listing skills: %s", exc)
        return []
    return [s.model_dump() for s in summaries]


# --- Files & folders ---
def handle_list_files(path: str, library_dir: Path | None = None) -> Outcome:
    def _op() -> Outcome:
        req = SkillPathRequest(path=path)
        tree = nodes.list_files(_library(library_dir), req.path)
        return _ok(files=tree_to_dicts(tree))

    return _run("list skill files", _op)


def handle_create_file(
    path: str, file_path: str, content: str = "", library_dir: Path | None = None
) -> Outcome:
    def _op() -> Outcome:
        req = CreateFileRequest(path=path, file_path=file_path, content=content)
        stored = nodes.create_file(_library(library_dir), req.path, req.file_path, req.content)
        return _ok(path=stored)

    return _run("create file", _op)


def handle_create_folder(
    path: str, folder_path: str, library_dir: Path | None = None
) -> Outcome:
    def _op() -> Outcome:
        req = CreateFolderRequest(path=path, folder_path=folder_path)
        stored = nodes.create_folder(_library(library_dir), req.path, req.folder_path)
        return _ok(path=stored)

    return _run("create folder", _op)


def handle_delete_node(path: str, target_path: str, library_dir: Path | None = None) -> Outcome:
    def _op() -> Outcome:
        req = DeleteNodeRequest(path=path, target_path=target_path)
        nodes.delete_node(_library(library_dir), req.path, req.target_path)
        return _ok()

    return _run("delete file or folder", _op)


def handle_rename_node(
    path: str, old_path: str, new_name: str, library_dir: Path | None = None
) -> Outcome:
    def _op() -> Outcome:
        req = RenameNodeRequest(path=path, old_path=old_path, new_name=new_name)
        new_path = nodes.rename_node(_library(library_dir), req.path, req.old_path, req.new_name)
        return _ok(path=new_path)

    return _run("rename file or folder", _op)


def handle_move_node(
    path: str, old_path: str, new_path: str, library_dir: Path | None = None
) -> Outcome:
    def _op() -> Outcome:
        req = MoveNodeRequest(path=path, old_path=old_path, new_path=new_path)
        moved = nodes.move_node(_library(library_dir), req.path, req.old_path, req.new_path)
        return _ok(path=moved)

    return _run("move file", _op)


def handle_load_file(file_path: str, library_dir: Path | None = None) -> Outcome:
    def _op() -> Outcome:
        req = LoadFileRequest(file_path=file_path)
        loaded = nodes.load_file(_library(library_dir), req.file_path)
        return _ok(
            content=loaded.content,
            metadata=loaded.metadata.model_dump(mode="json", by_alias=True, exclude_none=True),
        )

    return _run("load file", _op)


def _decode_upload(raw: dict[str, Any]) -> nodes.UploadedFile | None:
    try:
        entry = UploadEntry.model_validate(raw)
        if entry.encoding == "base64":
            data = base64.b64decode(entry.data, validate=True)
        else:
            data = entry.data.encode("utf-8")
    except ValueError as exc:
        logger.error("Skipping upload entry %r: %s", raw.get("name"), exc)
        return None
    return nodes.UploadedFile(name=entry.name, data=data)


def handle_upload_files(
    path: str,
    files: list[dict[str, Any]],
    target_folder: str = "",
    library_dir: Path | None = None,
) -> Outcome:
    def _op() -> Outcome:
        req = UploadFilesRequest(path=path, files=files, target_folder=target_folder)
        decoded = [f for f in (_decode_upload(raw) for raw in req.files) if f is not None]
        result = nodes.upload_files(_library(library_dir), req.path, decoded, req.target_folder)
        return _ok(**result.model_dump(by_alias=True))

    return _run("upload files", _op)


# --- Archives ---
def handle_export_archive(
    path: str,
    skill_name: str,
    library_dir: Path | None = None,
    temp_dir: Path | None = None,
    registry: archive.TempFileRegistry | None = None,
) -> Outcome:
    def _op() -> Outcome:
        req = CreateZipRequest(path=path, skill_name=skill_name)
        zip_path = archive.export_bundle(
            _library(library_dir), req.path, req.skill_name, temp_dir=temp_dir, registry=registry
        )
        return _ok(zipPath=str(zip_path))

    return _run("create ZIP", _op)


def handle_release_archive(
    zip_path: str, registry: archive.TempFileRegistry | None = None
) -> Outcome:
    """Consumption event for an exported archive: delete it and stop tracking it."""

    def _op() -> Outcome:
        req = ReleaseZipRequest(zip_path=zip_path)
        tracked = archive.TEMP_FILES if registry is None else registry
        if not tracked.release(req.zip_path):
            raise NotFound("ZIP file not found")
        log_operation("archive_release", {"path": req.zip_path})
        return _ok()

    return _run("release ZIP", _op)
