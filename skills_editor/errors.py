"""
skills_editor.errors

Exception taxonomy shared by every filesystem operation.

Each error carries a stable ``code`` (used by clients to branch on the failure
kind) and a ``user_message`` that is safe to display. The underlying reason of
I/O failures is logged by the boundary layer and never shown to users.
"""

from __future__ import annotations


class SkillsEditorError(Exception):
    """Base class for all skills_editor failures."""

    code: str = "Error"
    default_message: str = "Operation failed"

    def __init__(self, message: str | None = None) -> None:
        self.user_message = message or self.default_message
        super().__init__(self.user_message)


class PathEscape(SkillsEditorError):
    """A resolved path falls outside its trusted base directory."""

    code = "PathEscape"
    default_message = "Invalid path - access denied"

    def __init__(self, message: str | None = None) -> None:
        # The detailed reason goes to the logs only; users always see the generic text.
        super().__init__(self.default_message)
        self.detail = message or ""

    def __str__(self) -> str:
        if self.detail:
            return f"{self.user_message} ({self.detail})"
        return self.user_message


class InvalidName(SkillsEditorError):
    code = "InvalidName"
    default_message = "Invalid name"


class InvalidPath(SkillsEditorError):
    code = "InvalidPath"
    default_message = "Invalid path"


class InvalidRequest(SkillsEditorError):
    code = "InvalidRequest"
    default_message = "Invalid request"


class NotFound(SkillsEditorError):
    code = "NotFound"
    default_message = "File or folder does not exist"


class AlreadyExists(SkillsEditorError):
    code = "AlreadyExists"
    default_message = "A file or folder with that name already exists"


class ProtectedFile(SkillsEditorError):
    code = "ProtectedFile"
    default_message = "SKILL.md is required and cannot be changed this way"


class OperationFailed(SkillsEditorError):
    """I/O-layer failure; ``reason`` holds the underlying error for logging."""

    code = "OperationFailed"

    def __init__(self, message: str | None = None, reason: BaseException | None = None) -> None:
        super().__init__(message)
        self.reason = reason

    def __str__(self) -> str:
        if self.reason is not None:
            return f"{self.user_message}: {self.reason}"
        return self.user_message


class CreateFailed(OperationFailed):
    code = "CreateFailed"
    default_message = "Failed to create"


class SaveFailed(OperationFailed):
    code = "SaveFailed"
    default_message = "Failed to save"


class LoadFailed(OperationFailed):
    code = "LoadFailed"
    default_message = "Failed to load"


class DeleteFailed(OperationFailed):
    code = "DeleteFailed"
    default_message = "Failed to delete"


class MoveFailed(OperationFailed):
    code = "MoveFailed"
    default_message = "Failed to move"


class ListingFailed(OperationFailed):
    code = "ListingFailed"
    default_message = "Failed to list files"


class UploadFailed(OperationFailed):
    code = "UploadFailed"
    default_message = "Failed to upload files"


class ArchiveFailed(OperationFailed):
    code = "ArchiveFailed"
    default_message = "Failed to create ZIP"


__all__: list[str] = [
    "SkillsEditorError",
    "PathEscape",
    "InvalidName",
    "InvalidPath",
    "InvalidRequest",
    "NotFound",
    "AlreadyExists",
    "ProtectedFile",
    "OperationFailed",
    "CreateFailed",
    "SaveFailed",
    "LoadFailed",
    "DeleteFailed",
    "MoveFailed",
    "ListingFailed",
    "UploadFailed",
    "ArchiveFailed",
]
