"""
skills_editor.bundles

Whole-bundle operations: create, load (with import of external manifests),
save, delete and list.

A bundle is a directory directly under the library root whose name is the
bundle identifier and which holds a SKILL.md manifest.
"""

from __future__ import annotations

import os
import re
import shutil
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import yaml
from pydantic import BaseModel, ConfigDict, Field

from skills_editor.config import (
    DEFAULT_DESCRIPTION,
    IMPORT_FALLBACK_PREFIX,
    LISTING_DESCRIPTION_LIMIT,
    MANIFEST_NAME,
    NO_DESCRIPTION,
)
from skills_editor.errors import (
    AlreadyExists,
    CreateFailed,
    DeleteFailed,
    InvalidName,
    InvalidPath,
    ListingFailed,
    LoadFailed,
    NotFound,
    SaveFailed,
    SkillsEditorError,
)
from skills_editor.logs import get_logger, log_operation
from skills_editor.sandbox import is_within, resolve_bundle_dir, validate_path
from skills_editor.sanitize import is_canonical_bundle_name, sanitize_bundle_name

logger = get_logger("bundles")

_DESCRIPTION_LINE = re.compile(r"^description:\s*(.+?)\s*$")
_BLOCK_SCALAR_INDICATORS = {">", "|", ">-", "|-", ">+", "|+"}


class BundleSummary(BaseModel):
    name: str
    path: str
    description: str


class LoadedBundle(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: str
    path: str
    imported: bool = False
    skill_name: str | None = Field(default=None, alias="skillName")


@dataclass(frozen=True)
class ManagedBundle:
    """Load request for a manifest that already lives inside the library."""

    path: Path


@dataclass(frozen=True)
class ExternalImportCandidate:
    """Load request for a manifest outside the library; adopting it means importing it."""

    path: Path


LoadRequest = Union[ManagedBundle, ExternalImportCandidate]


# --- Manifest helpers ---
def render_manifest_template(name: str, description: str = "") -> str:
    """
    function_purpose: Render the starter SKILL.md for a new bundle.

    A YAML front matter header with ``name`` and ``description`` (falling back
    to the default description when empty).
    """
    front_matter = yaml.safe_dump(
        {"name": name, "description": description.strip() or DEFAULT_DESCRIPTION},
        sort_keys=False,
        allow_unicode=True,
        width=float("inf"),
    )
    return f"---\n{front_matter}---\n"


def _front_matter_lines(text: str) -> list[str]:
    lines = text.splitlines(keepends=False)
    if not lines or lines[0].strip() != "---":
        return []

    fm_lines: list[str] = []
    for line in lines[1:]:
        if line.strip() == "---":
            return fm_lines
        fm_lines.append(line)
    # Unterminated header
    return []


def _scalar_value(raw: str, fm_lines: list[str]) -> str:
    if raw in _BLOCK_SCALAR_INDICATORS:
        try:
            fm = yaml.safe_load("\n".join(fm_lines)) or {}
        except yaml.YAMLError:
            return raw
        value = fm.get("description") if isinstance(fm, dict) else None
        return value if isinstance(value, str) else raw

    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in "\"'":
        try:
            value = yaml.safe_load(raw)
        except yaml.YAMLError:
            return raw
        return value if isinstance(value, str) else raw
    return raw


def extract_description(text: str) -> str:
    """First ``description:`` key of the leading front matter, trimmed and capped at 200 chars."""
    fm_lines = _front_matter_lines(text)
    for line in fm_lines:
        match = _DESCRIPTION_LINE.match(line)
        if match:
            description = _scalar_value(match.group(1), fm_lines).strip()
            return description[:LISTING_DESCRIPTION_LIMIT] or NO_DESCRIPTION
    return NO_DESCRIPTION


def write_text_atomic(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` through a sibling temp file and ``os.replace``."""
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            _ = f.write(content)
        if path.is_file():
            shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def _read_manifest(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise LoadFailed("Failed to load skill", reason=exc) from exc


# --- Operations ---
def create_bundle(
    library_dir: Path,
    name: str,
    description: str = "",
    content: str | None = None,
) -> Path:
    """
    function_purpose: Create a new bundle directory with its SKILL.md.

    - The name is sanitized into bundle form.
    - An existing bundle directory is never reused (AlreadyExists).
    - Without ``content`` the manifest is rendered from the starter template.

    Returns the manifest path.
    """
    bundle_name = sanitize_bundle_name(name)
    bundle_dir = validate_path(bundle_name, library_dir)
    if bundle_dir.exists():
        raise AlreadyExists("A skill with that name already exists")

    manifest_text = (
        render_manifest_template(bundle_name, description) if content is None else content
    )
    manifest = bundle_dir / MANIFEST_NAME
    try:
        bundle_dir.mkdir(parents=False, exist_ok=False)
        with open(manifest, "x", encoding="utf-8") as f:
            _ = f.write(manifest_text)
    except FileExistsError as exc:
        raise AlreadyExists("A skill with that name already exists") from exc
    except OSError as exc:
        raise CreateFailed("Failed to create skill", reason=exc) from exc

    logger.info("Created skill %s", bundle_name)
    return manifest


def classify_load_request(path: str | os.PathLike[str], library_dir: Path) -> LoadRequest:
    """
    Decide whether ``path`` names a managed manifest or an external one to import.

    The decision is made on the normalised path: anything that lands inside the
    library is managed and still goes through ``validate_path`` (so ``..``
    segments raise PathEscape instead of triggering an import).
    """
    raw = os.fspath(path)
    if not raw or "\x00" in raw:
        raise InvalidPath("Invalid path")

    library = os.path.abspath(library_dir)
    normalized = os.path.abspath(os.path.join(library, raw))
    if is_within(normalized, library):
        return ManagedBundle(validate_path(raw, library_dir))
    return ExternalImportCandidate(Path(normalized))


def load_bundle(library_dir: Path, path: str | os.PathLike[str]) -> LoadedBundle:
    """
    function_purpose: Load a manifest, importing it into the library when it lives elsewhere.

    Managed paths are read in place. External paths must point at a file named
    SKILL.md (any casing); it is copied into a fresh bundle whose name is derived
    from its parent directory, deduplicated with -1, -2, ... suffixes.
    """
    request = classify_load_request(path, library_dir)
    if isinstance(request, ExternalImportCandidate):
        return import_manifest(library_dir, request.path)

    if not request.path.is_file():
        raise NotFound("Skill file does not exist")
    content = _read_manifest(request.path)
    return LoadedBundle(content=content, path=str(request.path))


def _import_base_name(external: Path) -> str:
    try:
        return sanitize_bundle_name(external.parent.name)
    except InvalidName:
        return sanitize_bundle_name(f"{IMPORT_FALLBACK_PREFIX}{int(time.time() * 1000)}")


def import_manifest(library_dir: Path, external: Path) -> LoadedBundle:
    """
    function_purpose: Adopt an external SKILL.md into the library under a collision-free name.
    """
    if not external.is_file():
        raise NotFound("Skill file does not exist")
    if external.name.lower() != MANIFEST_NAME.lower():
        raise InvalidPath("Only SKILL.md files can be imported")

    content = _read_manifest(external)

    base_name = _import_base_name(external)
    candidate = base_name
    target_dir = validate_path(candidate, library_dir)
    suffix = 1
    while (target_dir / MANIFEST_NAME).exists():
        candidate = f"{base_name}-{suffix}"
        target_dir = validate_path(candidate, library_dir)
        suffix += 1

    target = target_dir / MANIFEST_NAME
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        with open(target, "x", encoding="utf-8") as f:
            _ = f.write(content)
    except OSError as exc:
        raise CreateFailed("Failed to import skill", reason=exc) from exc

    logger.info("Imported %s as skill %s", str(external), candidate)
    return LoadedBundle(content=content, path=str(target), imported=True, skill_name=candidate)


def save_bundle(library_dir: Path, path: str | os.PathLike[str], content: str) -> Path:
    """Overwrite a file inside the library. Last write wins; no partial writes."""
    target = validate_path(path, library_dir)
    if target == Path(os.path.abspath(library_dir)) or target.is_dir():
        raise InvalidPath("Cannot save over a folder")
    try:
        write_text_atomic(target, content)
    except OSError as exc:
        raise SaveFailed("Failed to save skill", reason=exc) from exc
    return target


def delete_bundle(library_dir: Path, path: str | os.PathLike[str]) -> Path:
    """
    function_purpose: Recursively remove a bundle directory.

    ``path`` is the manifest path or the bundle directory. Missing bundles raise NotFound.
    """
    bundle_dir = resolve_bundle_dir(path, library_dir)
    if not bundle_dir.is_dir():
        raise NotFound("Skill directory does not exist")

    try:
        shutil.rmtree(bundle_dir)
    except OSError as exc:
        raise DeleteFailed("Failed to delete skill", reason=exc) from exc

    log_operation("skill_delete", {"skill": bundle_dir.name, "path": str(bundle_dir)})
    return bundle_dir


def list_bundles(library_dir: Path) -> list[BundleSummary]:
    """
    function_purpose: Enumerate bundles directly under the library root.

    Subdirectories with a non-canonical name or an unreadable manifest are
    skipped individually; one broken bundle never hides the others.
    """
    try:
        with os.scandir(library_dir) as it:
            names = sorted(entry.name for entry in it if entry.is_dir(follow_symlinks=False))
    except OSError as exc:
        raise ListingFailed("Failed to list skills", reason=exc) from exc

    summaries: list[BundleSummary] = []
    for name in names:
        if not is_canonical_bundle_name(name):
            logger.debug("Skipping non-skill directory %s", name)
            continue
        try:
            manifest = validate_path(os.path.join(name, MANIFEST_NAME), library_dir)
            text = _read_manifest(manifest)
        except SkillsEditorError as exc:
            logger.warning("Error loading skill %s: %s", name, exc)
            continue
        summaries.append(
            BundleSummary(name=name, path=str(manifest), description=extract_description(text))
        )
    return summaries
