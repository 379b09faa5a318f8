"""Input validation schemas for the boundary operations."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from skills_editor.config import MAX_DESCRIPTION_LENGTH, MAX_NAME_LENGTH


class CreateSkillRequest(BaseModel):
    name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)
    description: str = Field(default="", max_length=MAX_DESCRIPTION_LENGTH)
    content: str | None = None


class LoadSkillRequest(BaseModel):
    path: str = Field(min_length=1)


class SaveSkillRequest(BaseModel):
    path: str = Field(min_length=1)
    content: str


class SkillPathRequest(BaseModel):
    path: str = Field(min_length=1)


class CreateZipRequest(BaseModel):
    path: str = Field(min_length=1)
    skill_name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)


class ReleaseZipRequest(BaseModel):
    zip_path: str = Field(min_length=1)


class CreateFileRequest(BaseModel):
    path: str = Field(min_length=1)
    file_path: str = Field(min_length=1)
    content: str = ""


class CreateFolderRequest(BaseModel):
    path: str = Field(min_length=1)
    folder_path: str = Field(min_length=1)


class DeleteNodeRequest(BaseModel):
    path: str = Field(min_length=1)
    target_path: str = Field(min_length=1)


class RenameNodeRequest(BaseModel):
    path: str = Field(min_length=1)
    old_path: str = Field(min_length=1)
    new_name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)


class MoveNodeRequest(BaseModel):
    path: str = Field(min_length=1)
    old_path: str = Field(min_length=1)
    new_path: str = Field(min_length=1)


class LoadFileRequest(BaseModel):
    file_path: str = Field(min_length=1)


class UploadEntry(BaseModel):
    name: str = Field(min_length=1)
    data: str = ""
    encoding: Literal["base64", "text"] = "base64"


class UploadFilesRequest(BaseModel):
    path: str = Field(min_length=1)
    # Entries are validated one by one (UploadEntry) so a bad entry only skips itself.
    files: list[dict[str, Any]]
    target_folder: str = ""
