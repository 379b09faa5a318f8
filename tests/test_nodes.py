from __future__ import annotations

from pathlib import Path

import pytest

from skills_editor.config import MAX_EDITABLE_SIZE
from skills_editor.errors import (
    AlreadyExists,
    InvalidName,
    InvalidPath,
    NotFound,
    PathEscape,
    ProtectedFile,
)
from skills_editor.nodes import (
    TOO_BIG_MESSAGE,
    UploadedFile,
    create_file,
    create_folder,
    delete_node,
    list_files,
    load_file,
    move_node,
    rename_node,
    upload_files,
)
from skills_editor.tree import FolderNode


@pytest.fixture
def bundle_dir(manifest: Path) -> Path:
    return manifest.parent


# --- Create ---
def test_create_file_in_new_subfolder(library: Path, manifest: Path, bundle_dir: Path) -> None:
    stored = create_file(library, str(manifest), "notes/todo.txt", "buy milk")

    assert stored == "notes/todo.txt"
    assert (bundle_dir / "notes" / "todo.txt").read_text(encoding="utf-8") == "buy milk"


def test_create_file_sanitizes_only_the_leaf(
    library: Path, manifest: Path, bundle_dir: Path
) -> None:
    stored = create_file(library, str(manifest), "docs/my notes!.md")

    assert stored == "docs/mynotes.md"
    assert (bundle_dir / "docs" / "mynotes.md").is_file()


def test_create_file_never_overwrites(library: Path, manifest: Path, bundle_dir: Path) -> None:
    create_file(library, str(manifest), "a.txt", "original")

    with pytest.raises(AlreadyExists):
        create_file(library, str(manifest), "a.txt", "replacement")
    with pytest.raises(AlreadyExists):
        create_file(library, str(manifest), "SKILL.md", "replacement")
    assert (bundle_dir / "a.txt").read_text(encoding="utf-8") == "original"


@pytest.mark.parametrize("file_path", ["../escape.txt", "../../outside.txt", "a/../../b.txt"])
def test_create_file_cannot_escape_bundle(library: Path, manifest: Path, file_path: str) -> None:
    with pytest.raises(PathEscape):
        create_file(library, str(manifest), file_path)


def test_create_file_rejects_empty_leaf(library: Path, manifest: Path) -> None:
    with pytest.raises(InvalidName):
        create_file(library, str(manifest), "docs/@@@")


def test_create_folder_is_idempotent(library: Path, manifest: Path, bundle_dir: Path) -> None:
    assert create_folder(library, str(manifest), "assets/icons") == "assets/icons"
    assert create_folder(library, str(manifest), "assets/icons") == "assets/icons"
    assert (bundle_dir / "assets" / "icons").is_dir()


# --- List ---
def test_list_files_shows_bundle_contents(library: Path, manifest: Path) -> None:
    create_file(library, str(manifest), "notes/todo.txt")
    create_folder(library, str(manifest), "empty")

    tree = list_files(library, str(manifest))

    assert [n.name for n in tree] == ["empty", "notes", "SKILL.md"]
    assert isinstance(tree[0], FolderNode)
    assert tree[0].children == []


def test_list_files_missing_bundle(library: Path) -> None:
    with pytest.raises(NotFound):
        list_files(library, "ghost/SKILL.md")


# --- Delete ---
def test_manifest_cannot_be_deleted(library: Path, manifest: Path) -> None:
    with pytest.raises(ProtectedFile) as excinfo:
        delete_node(library, str(manifest), "SKILL.md")

    assert excinfo.value.user_message == "Cannot delete SKILL.md - it is required"
    assert manifest.exists()


def test_nested_manifest_is_protected_too(library: Path, manifest: Path) -> None:
    create_file(library, str(manifest), "vendor/SKILL.md")
    with pytest.raises(ProtectedFile):
        delete_node(library, str(manifest), "vendor/SKILL.md")


def test_delete_folder_recursively(library: Path, manifest: Path, bundle_dir: Path) -> None:
    create_file(library, str(manifest), "notes/deep/todo.txt")

    delete_node(library, str(manifest), "notes")

    assert not (bundle_dir / "notes").exists()
    assert manifest.exists()


def test_delete_missing_node(library: Path, manifest: Path) -> None:
    with pytest.raises(NotFound):
        delete_node(library, str(manifest), "ghost.txt")


def test_delete_bundle_root_is_refused(library: Path, manifest: Path, bundle_dir: Path) -> None:
    with pytest.raises(InvalidPath):
        delete_node(library, str(manifest), ".")
    assert bundle_dir.is_dir()


def test_delete_cannot_reach_sibling_bundle(library: Path, manifest: Path) -> None:
    other = library / "other"
    other.mkdir()
    (other / "data.txt").write_text("x", encoding="utf-8")

    with pytest.raises(PathEscape):
        delete_node(library, str(manifest), "../other/data.txt")
    assert (other / "data.txt").exists()


# --- Rename ---
def test_rename_in_place(library: Path, manifest: Path, bundle_dir: Path) -> None:
    create_file(library, str(manifest), "docs/a.txt", "A")

    assert rename_node(library, str(manifest), "docs/a.txt", "b.txt") == "docs/b.txt"
    assert (bundle_dir / "docs" / "b.txt").read_text(encoding="utf-8") == "A"
    assert not (bundle_dir / "docs" / "a.txt").exists()


def test_rename_collision_leaves_both_files(
    library: Path, manifest: Path, bundle_dir: Path
) -> None:
    create_file(library, str(manifest), "a.txt", "A")
    create_file(library, str(manifest), "b.txt", "B")

    with pytest.raises(AlreadyExists):
        rename_node(library, str(manifest), "a.txt", "b.txt")
    assert (bundle_dir / "a.txt").read_text(encoding="utf-8") == "A"
    assert (bundle_dir / "b.txt").read_text(encoding="utf-8") == "B"


def test_rename_manifest_is_refused(library: Path, manifest: Path) -> None:
    with pytest.raises(ProtectedFile):
        rename_node(library, str(manifest), "SKILL.md", "README.md")
    assert manifest.exists()


def test_rename_onto_manifest_name_is_refused(library: Path, manifest: Path) -> None:
    create_file(library, str(manifest), "docs/readme.md")
    with pytest.raises(ProtectedFile):
        rename_node(library, str(manifest), "docs/readme.md", "SKILL.md")


def test_rename_missing_source(library: Path, manifest: Path) -> None:
    with pytest.raises(NotFound):
        rename_node(library, str(manifest), "ghost.txt", "still-ghost.txt")


def test_rename_sanitizes_new_name(library: Path, manifest: Path) -> None:
    create_file(library, str(manifest), "a.txt")
    assert rename_node(library, str(manifest), "a.txt", "my notes?.txt") == "mynotes.txt"


# --- Move ---
def test_move_file_into_new_folder(library: Path, manifest: Path, bundle_dir: Path) -> None:
    create_file(library, str(manifest), "a.txt", "A")

    assert move_node(library, str(manifest), "a.txt", "archive/2024/a.txt") == "archive/2024/a.txt"
    assert (bundle_dir / "archive" / "2024" / "a.txt").read_text(encoding="utf-8") == "A"
    assert not (bundle_dir / "a.txt").exists()


def test_move_folder_into_itself_is_refused(
    library: Path, manifest: Path, bundle_dir: Path
) -> None:
    create_file(library, str(manifest), "docs/a.txt")

    with pytest.raises(InvalidPath):
        move_node(library, str(manifest), "docs", "docs/nested/docs")
    assert (bundle_dir / "docs" / "a.txt").exists()


def test_move_onto_existing_target(library: Path, manifest: Path) -> None:
    create_file(library, str(manifest), "a.txt")
    create_file(library, str(manifest), "docs/a.txt")

    with pytest.raises(AlreadyExists):
        move_node(library, str(manifest), "a.txt", "docs/a.txt")


def test_move_manifest_is_refused(library: Path, manifest: Path) -> None:
    with pytest.raises(ProtectedFile):
        move_node(library, str(manifest), "SKILL.md", "docs/SKILL.md")


def test_move_missing_source(library: Path, manifest: Path) -> None:
    with pytest.raises(NotFound):
        move_node(library, str(manifest), "ghost.txt", "docs/ghost.txt")


def test_move_target_cannot_leave_bundle(library: Path, manifest: Path) -> None:
    create_file(library, str(manifest), "a.txt")
    with pytest.raises(InvalidPath):
        move_node(library, str(manifest), "a.txt", "../other/a.txt")


# --- Upload ---
def test_upload_skips_invalid_entries(library: Path, manifest: Path, bundle_dir: Path) -> None:
    files = [
        UploadedFile("logo.png", b"\x89PNG"),
        UploadedFile("@@@", b"nope"),
        UploadedFile("docs/guide.md", b"# Guide"),
    ]

    result = upload_files(library, str(manifest), files)

    assert result.count == 2
    assert result.uploaded_files == ["logo.png", "docs/guide.md"]
    assert (bundle_dir / "logo.png").read_bytes() == b"\x89PNG"
    assert (bundle_dir / "docs" / "guide.md").read_text(encoding="utf-8") == "# Guide"


def test_upload_into_target_folder(library: Path, manifest: Path, bundle_dir: Path) -> None:
    result = upload_files(library, str(manifest), [UploadedFile("a.txt", b"A")], "assets")

    assert result.uploaded_files == ["a.txt"]
    assert (bundle_dir / "assets" / "a.txt").read_bytes() == b"A"


def test_upload_never_replaces_manifest(library: Path, manifest: Path) -> None:
    before = manifest.read_text(encoding="utf-8")

    result = upload_files(library, str(manifest), [UploadedFile("SKILL.md", b"replaced")])

    assert result.count == 0
    assert manifest.read_text(encoding="utf-8") == before


def test_upload_dot_segments_are_skipped(library: Path, manifest: Path, tmp_path: Path) -> None:
    result = upload_files(library, str(manifest), [UploadedFile("../../escape.txt", b"x")])

    assert result.count == 0
    assert not (tmp_path / "escape.txt").exists()


def test_upload_target_folder_cannot_escape(library: Path, manifest: Path) -> None:
    with pytest.raises(PathEscape):
        upload_files(library, str(manifest), [UploadedFile("a.txt", b"A")], "../other")


# --- Load file ---
def test_load_editable_file(library: Path, manifest: Path) -> None:
    create_file(library, str(manifest), "notes/todo.txt", "line one\n")

    loaded = load_file(library, "demo/notes/todo.txt")

    assert loaded.content == "line one\n"
    assert loaded.metadata.name == "todo.txt"
    assert loaded.metadata.editable is True
    assert loaded.metadata.too_big is None


def test_load_non_editable_file_returns_metadata_only(
    library: Path, manifest: Path, bundle_dir: Path
) -> None:
    (bundle_dir / "logo.png").write_bytes(b"\x89PNG\r\n")

    loaded = load_file(library, "demo/logo.png")

    assert loaded.content == ""
    assert loaded.metadata.type.value == "image"
    assert loaded.metadata.size == 6
    assert loaded.metadata.editable is False


def test_load_oversized_file_is_flagged(library: Path, manifest: Path, bundle_dir: Path) -> None:
    big = bundle_dir / "huge.txt"
    with open(big, "wb") as f:
        f.truncate(MAX_EDITABLE_SIZE + 1)

    loaded = load_file(library, str(big))

    assert loaded.content == ""
    assert loaded.metadata.too_big is True
    assert loaded.metadata.editable is False
    assert loaded.metadata.error == TOO_BIG_MESSAGE
    dumped = loaded.metadata.model_dump(by_alias=True, exclude_none=True)
    assert dumped["tooBig"] is True


def test_load_file_outside_library(library: Path, tmp_path: Path) -> None:
    secret = tmp_path / "secret.txt"
    secret.write_text("x", encoding="utf-8")

    with pytest.raises(PathEscape):
        load_file(library, str(secret))


def test_load_missing_file(library: Path, manifest: Path) -> None:
    with pytest.raises(NotFound):
        load_file(library, "demo/ghost.txt")
