"""
skills_editor.tree

Recursive, ordered listing of a bundle directory.

The walk is written against a small directory-listing interface so the
filtering and ordering rules can be exercised with an in-memory fake.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Annotated, Literal, Protocol, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

from skills_editor.classify import ContentType, classify, is_editable
from skills_editor.config import DEPENDENCY_DIR_NAME
from skills_editor.errors import ListingFailed
from skills_editor.logs import get_logger

logger = get_logger("tree")


class FileNode(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    path: str
    type: Literal["file"] = "file"
    content_type: ContentType = Field(alias="contentType")
    size: int
    editable: bool


class FolderNode(BaseModel):
    name: str
    path: str
    type: Literal["folder"] = "folder"
    children: list[TreeNode] = Field(default_factory=list)


TreeNode = Annotated[Union[FolderNode, FileNode], Field(discriminator="type")]
FolderNode.model_rebuild()


@dataclass(frozen=True)
class DirEntry:
    name: str
    is_dir: bool


class DirectoryLister(Protocol):
    def list_entries(self, path: str) -> Sequence[DirEntry]: ...

    def file_size(self, path: str) -> int: ...


class OSDirectoryLister:
    """DirectoryLister backed by the real filesystem. Symlinks are never followed into."""

    def list_entries(self, path: str) -> Sequence[DirEntry]:
        with os.scandir(path) as it:
            return [
                DirEntry(name=entry.name, is_dir=entry.is_dir(follow_symlinks=False))
                for entry in it
            ]

    def file_size(self, path: str) -> int:
        return os.stat(path).st_size


def is_hidden(name: str) -> bool:
    return name.startswith(".") or name == DEPENDENCY_DIR_NAME


def _sort_key(node: FolderNode | FileNode) -> tuple[int, str, str]:
    # Folders first; then case-insensitive order with lowercase ahead of uppercase on ties.
    return (0 if node.type == "folder" else 1, node.name.casefold(), node.name.swapcase())


def _walk(
    dir_path: str, relative_prefix: str, lister: DirectoryLister
) -> list[FolderNode | FileNode]:
    nodes: list[FolderNode | FileNode] = []
    for entry in lister.list_entries(dir_path):
        if is_hidden(entry.name):
            continue

        full_path = os.path.join(dir_path, entry.name)
        rel_path = f"{relative_prefix}/{entry.name}" if relative_prefix else entry.name

        if entry.is_dir:
            nodes.append(
                FolderNode(
                    name=entry.name,
                    path=rel_path,
                    children=_walk(full_path, rel_path, lister),
                )
            )
        else:
            nodes.append(
                FileNode(
                    name=entry.name,
                    path=rel_path,
                    content_type=classify(entry.name),
                    size=lister.file_size(full_path),
                    editable=is_editable(entry.name),
                )
            )

    nodes.sort(key=_sort_key)
    return nodes


def build_tree(
    dir_path: str | os.PathLike[str],
    relative_prefix: str = "",
    lister: DirectoryLister | None = None,
) -> list[FolderNode | FileNode]:
    """
    function_purpose: Walk ``dir_path`` into an ordered tree of folder and file nodes.

    - Hidden entries and the dependency-cache directory are skipped.
    - Empty folders keep an empty ``children`` list.
    - Node paths are relative to ``dir_path`` (prefixed by ``relative_prefix``) and '/'-separated.

    All-or-nothing: any I/O error during the walk raises ListingFailed.
    """
    try:
        return _walk(os.fspath(dir_path), relative_prefix.strip("/"), lister or OSDirectoryLister())
    except OSError as exc:
        logger.error("Failed listing %s: %s", os.fspath(dir_path), exc)
        raise ListingFailed(reason=exc) from exc


def tree_to_dicts(nodes: Sequence[FolderNode | FileNode]) -> list[dict]:
    """JSON-ready form of a tree (``contentType`` key for files)."""
    return [node.model_dump(mode="json", by_alias=True) for node in nodes]
