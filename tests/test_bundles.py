from __future__ import annotations

import json
import os
from pathlib import Path

import pytest
import yaml

from skills_editor.bundles import (
    ExternalImportCandidate,
    ManagedBundle,
    classify_load_request,
    create_bundle,
    delete_bundle,
    extract_description,
    list_bundles,
    load_bundle,
    render_manifest_template,
    save_bundle,
)
from skills_editor.errors import AlreadyExists, InvalidName, InvalidPath, NotFound, PathEscape


def _write_external(root: Path, folder: str, text: str = "---\nname: x\n---\n") -> Path:
    manifest = root / folder / "SKILL.md"
    manifest.parent.mkdir(parents=True, exist_ok=True)
    manifest.write_text(text, encoding="utf-8")
    return manifest


# --- Manifest helpers ---
def test_template_front_matter_parses_as_yaml() -> None:
    text = render_manifest_template("pdf-tools", "Work with: PDFs")

    assert text.startswith("---\n")
    fm = yaml.safe_load(text.split("---\n")[1])
    assert fm == {"name": "pdf-tools", "description": "Work with: PDFs"}


def test_template_falls_back_to_default_description() -> None:
    fm = yaml.safe_load(render_manifest_template("demo").split("---\n")[1])
    assert fm["description"] == "A custom Claude skill"


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("---\nname: a\ndescription: Parses PDFs\n---\nbody", "Parses PDFs"),
        ("---\ndescription: \"Quoted: value\"\n---\n", "Quoted: value"),
        ("---\ndescription: first\ndescription: second\n---\n", "first"),
        ("---\ndescription: >\n  Folded\n  text\n---\n", "Folded text"),
        ("---\nname: a\n---\ndescription: in the body\n", "No description"),
        ("no front matter\ndescription: nope\n", "No description"),
        ("---\ndescription: never closed\n", "No description"),
        ("", "No description"),
    ],
)
def test_extract_description(text: str, expected: str) -> None:
    assert extract_description(text) == expected


def test_extract_description_is_truncated() -> None:
    text = f"---\ndescription: {'d' * 300}\n---\n"
    assert extract_description(text) == "d" * 200


# --- Create / list / delete ---
def test_create_list_delete_round_trip(library: Path) -> None:
    manifest = create_bundle(library, "My Skill", "Does things")

    assert manifest == library / "myskill" / "SKILL.md"
    summaries = list_bundles(library)
    assert [(s.name, s.description) for s in summaries] == [("myskill", "Does things")]
    assert summaries[0].path == str(manifest)

    delete_bundle(library, str(manifest))

    assert list_bundles(library) == []
    assert not (library / "myskill").exists()


def test_create_with_explicit_content(library: Path) -> None:
    manifest = create_bundle(library, "raw", content="# Raw\n")
    assert manifest.read_text(encoding="utf-8") == "# Raw\n"


def test_create_existing_bundle_fails(library: Path, manifest: Path) -> None:
    manifest.write_text("keep me", encoding="utf-8")

    with pytest.raises(AlreadyExists):
        create_bundle(library, "demo")
    assert manifest.read_text(encoding="utf-8") == "keep me"


@pytest.mark.parametrize("name", ["skill", "!!!", ""])
def test_create_rejects_invalid_names(library: Path, name: str) -> None:
    with pytest.raises(InvalidName):
        create_bundle(library, name)


def test_list_skips_non_bundles(library: Path, manifest: Path) -> None:
    (library / "no-manifest").mkdir()
    (library / "Not_Canonical").mkdir()
    (library / "Not_Canonical" / "SKILL.md").write_text("x", encoding="utf-8")
    (library / "stray.txt").write_text("x", encoding="utf-8")
    create_bundle(library, "another")

    assert [s.name for s in list_bundles(library)] == ["another", "demo"]


def test_delete_accepts_bundle_directory(library: Path, manifest: Path) -> None:
    delete_bundle(library, str(manifest.parent))
    assert not manifest.parent.exists()


def test_delete_writes_operation_log(library: Path, manifest: Path) -> None:
    delete_bundle(library, str(manifest))

    lines = Path(os.environ["OPS_LOG_FILE"]).read_text(encoding="utf-8").splitlines()
    record = json.loads(lines[-1])
    assert record["op"] == "skill_delete"
    assert record["skill"] == "demo"


def test_delete_missing_bundle(library: Path) -> None:
    with pytest.raises(NotFound):
        delete_bundle(library, "ghost/SKILL.md")


def test_delete_outside_library(library: Path, tmp_path: Path) -> None:
    outside = _write_external(tmp_path, "victim")
    with pytest.raises(PathEscape):
        delete_bundle(library, str(outside))
    assert outside.exists()


# --- Load / import ---
def test_classify_load_request(library: Path, tmp_path: Path) -> None:
    assert isinstance(classify_load_request("demo/SKILL.md", library), ManagedBundle)
    assert isinstance(
        classify_load_request(str(tmp_path / "ext" / "SKILL.md"), library), ExternalImportCandidate
    )
    assert isinstance(classify_load_request("../ext/SKILL.md", library), ExternalImportCandidate)


def test_load_managed_bundle(library: Path, manifest: Path) -> None:
    loaded = load_bundle(library, str(manifest))

    assert loaded.path == str(manifest)
    assert loaded.imported is False
    assert "name: demo" in loaded.content


def test_load_missing_managed_bundle(library: Path) -> None:
    with pytest.raises(NotFound):
        load_bundle(library, "ghost/SKILL.md")


def test_load_inside_library_through_parent_segment_never_imports(
    library: Path, manifest: Path
) -> None:
    detour = os.path.join(str(manifest.parent), "..", "demo", "SKILL.md")

    with pytest.raises(PathEscape):
        classify_load_request(detour, library)
    with pytest.raises(PathEscape):
        load_bundle(library, detour)
    assert [s.name for s in list_bundles(library)] == ["demo"]


def test_import_deduplicates_names(library: Path, tmp_path: Path) -> None:
    first = _write_external(tmp_path / "ext1", "widget", "one")
    second = _write_external(tmp_path / "ext2", "widget", "two")

    a = load_bundle(library, str(first))
    b = load_bundle(library, str(second))

    assert (a.skill_name, b.skill_name) == ("widget", "widget-1")
    assert a.imported and b.imported
    assert (library / "widget" / "SKILL.md").read_text(encoding="utf-8") == "one"
    assert (library / "widget-1" / "SKILL.md").read_text(encoding="utf-8") == "two"
    assert first.exists() and second.exists()


def test_import_accepts_any_manifest_casing(library: Path, tmp_path: Path) -> None:
    external = tmp_path / "ext" / "Lower Case" / "skill.md"
    external.parent.mkdir(parents=True)
    external.write_text("hello", encoding="utf-8")

    loaded = load_bundle(library, str(external))

    assert loaded.skill_name == "lowercase"
    assert loaded.path == str(library / "lowercase" / "SKILL.md")
    assert loaded.model_dump(by_alias=True)["skillName"] == "lowercase"


def test_import_uses_fallback_name_for_invalid_parent(library: Path, tmp_path: Path) -> None:
    external = _write_external(tmp_path / "ext", "skill")

    loaded = load_bundle(library, str(external))

    assert loaded.skill_name is not None
    assert loaded.skill_name.startswith("imported-skill-")


def test_import_rejects_other_files(library: Path, tmp_path: Path) -> None:
    other = tmp_path / "ext" / "README.md"
    other.parent.mkdir(parents=True)
    other.write_text("x", encoding="utf-8")

    with pytest.raises(InvalidPath):
        load_bundle(library, str(other))
    assert list(library.iterdir()) == []


def test_import_missing_file(library: Path, tmp_path: Path) -> None:
    with pytest.raises(NotFound):
        load_bundle(library, str(tmp_path / "nowhere" / "SKILL.md"))


# --- Save ---
def test_save_overwrites_whole_file(library: Path, manifest: Path) -> None:
    save_bundle(library, str(manifest), "first")
    save_bundle(library, "demo/SKILL.md", "second")

    assert manifest.read_text(encoding="utf-8") == "second"
    assert [p.name for p in manifest.parent.iterdir()] == ["SKILL.md"]


def test_save_outside_library(library: Path, tmp_path: Path) -> None:
    outside = _write_external(tmp_path, "elsewhere", "original")

    with pytest.raises(PathEscape):
        save_bundle(library, str(outside), "pwned")
    with pytest.raises(PathEscape):
        save_bundle(library, "../elsewhere/SKILL.md", "pwned")
    assert outside.read_text(encoding="utf-8") == "original"


@pytest.mark.parametrize("target", [".", "demo", "demo/"])
def test_save_over_folder_is_refused(
    library: Path, manifest: Path, tmp_path: Path, target: str
) -> None:
    before = sorted(p.name for p in tmp_path.iterdir())

    with pytest.raises(InvalidPath):
        save_bundle(library, target, "x")
    assert manifest.parent.is_dir()
    assert sorted(p.name for p in tmp_path.iterdir()) == before
    assert sorted(p.name for p in library.iterdir()) == ["demo"]
