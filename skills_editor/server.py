"""
skills_editor.server

FastMCP stdio server exposing a local library of skill bundles (directories
rooted at a SKILL.md manifest) as MCP tools for creating, editing, organising
and exporting skills.

Server-level documentation:
- Purpose: Let an editor front end (or any MCP-aware client) manage the skills library on disk.
- Why use it:
  * Create, import, load, save and delete skills
  * Browse a skill as a folders-first tree
  * Create, rename, move, delete and upload files and folders inside a skill
  * Export a skill as a ZIP ready to install
- Transport: STDIO by default (ideal for clients that spawn the server process)
- Safety: Every path is sanitized and checked against the library root; SKILL.md is protected
- Logging: Console + rotating file logs, JSON-lines audit log for destructive operations
- Startup: Stale exported archives are removed; tracked archives are swept at exit

Environment (optional):
- SKILLS_LIBRARY_DIR: override the library root (default: ~/.skills-editor/skills)
- SKILLS_EDITOR_TEMP_DIR: override where exported archives are written (default: system temp dir)
- LOG_FILE: override log file path (default: ~/.skills-editor/logs/skills_editor.log)
- OPS_LOG_FILE: override operations log path (default: ~/.skills-editor/logs/skills_editor_operations.log)

Usage:
- As a script:
  python -m skills_editor.server        # starts stdio server
  python -m skills_editor.server --help # CLI for inspection without starting server

- As a module within MCP client config (stdio):
  command: python
  args: ["-m", "skills_editor.server"]

Package: skills_editor
Entry point: python -m skills_editor.server
"""

from __future__ import annotations

import atexit
from typing import Any

from fastmcp import FastMCP

from skills_editor import handlers, version
from skills_editor.archive import TEMP_FILES, cleanup_old_temp_files
from skills_editor.config import SERVER_NAME, resolve_library_dir, resolve_temp_dir
from skills_editor.logs import configure_logging


def _server_description() -> str:
    """
    function_purpose: Provide a server-level description that clients can display.
    """
    return (
        "SkillsEditor MCP Server: manages a local library of Claude skills (one directory per skill, "
        "each rooted at SKILL.md). Use it to create, import, edit, organise and export skills. "
        "Every path is confined to the library root."
    )


mcp = FastMCP(
    SERVER_NAME,
    instructions=(
        "SkillsEditor MCP Server\n"
        "\n"
        "Purpose:\n"
        "- Manage a local library of Claude skills: <library>/<skill-name>/SKILL.md plus any supporting files.\n"
        "\n"
        "Outcomes:\n"
        "- Every tool returns {success: true, ...} or {success: false, error, code}. Tools never raise for\n"
        "  expected failures (invalid names, missing files, protected SKILL.md, access denied).\n"
        "\n"
        "Paths:\n"
        "- 'path' arguments name a skill by its SKILL.md path (as returned by skill_list_all) or its directory.\n"
        "- File and folder paths are relative to the skill directory and use '/' separators.\n"
        "- Paths containing '..' or resolving outside the library are rejected.\n"
        "\n"
        "Environment configuration:\n"
        "- SKILLS_LIBRARY_DIR     : library root (default: ~/.skills-editor/skills)\n"
        "- SKILLS_EDITOR_TEMP_DIR : where exported ZIPs are written (default: system temp dir)\n"
        "- LOG_FILE               : rotating log file path\n"
        "\n"
        "Exposed tools:\n"
        "- skill_server_info(): server name, description, library_dir, temp_dir, transport\n"
        "- skill_list_all(markdown_output?): skills with name, path, description\n"
        "- skill_create(name, description?, content?): create a skill (SKILL.md rendered from a template when content is omitted)\n"
        "- skill_load(path): load a SKILL.md; external SKILL.md files are imported into the library\n"
        "- skill_save(path, content): overwrite a file inside the library\n"
        "- skill_delete(path): delete a whole skill\n"
        "- skill_list_files(path, markdown_output?): folders-first tree of a skill\n"
        "- skill_create_file(path, file_path, content?) / skill_create_folder(path, folder_path)\n"
        "- skill_delete_node(path, target_path) / skill_rename_node(path, old_path, new_name)\n"
        "- skill_move_node(path, old_path, new_path)\n"
        "- skill_load_file(file_path): text content for editable files up to 10 MiB, metadata otherwise\n"
        "- skill_upload_files(path, files, target_folder?): best-effort batch upload (base64 or text entries)\n"
        "- skill_export_archive(path, skill_name): build an installable ZIP\n"
        "- skill_release_archive(zip_path): delete an exported ZIP once it has been used\n"
        "\n"
        "Notes:\n"
        "- SKILL.md can only be removed by deleting the whole skill; it cannot be renamed, moved or overwritten by uploads.\n"
        "- Skill names are lowercase letters, digits and hyphens; 'skill' is reserved.\n"
    ),
)


@mcp.tool
def skill_server_info() -> dict[str, Any]:
    """
    function_purpose: Return server-level documentation including purpose and configuration.

    Returns:
    - name: str          Server name
    - version: str       Package version
    - description: str   High-level description of server purpose and capabilities
    - library_dir: str   Absolute path to the skills library in use
    - temp_dir: str      Where exported archives are written
    - transport: str     Transport used by the server (e.g., "stdio")
    """
    return {
        "name": SERVER_NAME,
        "version": version(),
        "description": _server_description(),
        "library_dir": str(resolve_library_dir()),
        "temp_dir": str(resolve_temp_dir()),
        "transport": "stdio",
    }


@mcp.tool
def skill_list_all(markdown_output: bool = False) -> list[dict[str, Any]] | str:
    """
    function_purpose: List skills in the library with their description.

    Description:
    - Enumerates skill directories directly under the library root.
    - Skills with an unreadable SKILL.md are left out; the rest are still listed.

    Args:
    - markdown_output: bool   If True, return formatted markdown string instead of JSON list (default: False)

    Returns:
    - If markdown_output=False: list of {name, path, description}; empty list on failure
    - If markdown_output=True: formatted markdown string with the skill catalog
    """
    skills = handlers.handle_list_bundles()
    if not markdown_output:
        return skills

    if not skills:
        return "# Skills\n\nNo skills found.\n"

    lines = ["# Skills\n\n"]
    for skill in skills:
        lines.append(f"## {skill['name']}\n")
        lines.append(f"{skill['description']}\n\n")
        lines.append(f"**Path:** `{skill['path']}`  \n\n")
    return "".join(lines)


@mcp.tool
def skill_create(
    name: str, description: str = "", content: str | None = None
) -> dict[str, Any]:
    """
    function_purpose: Create a new skill directory containing SKILL.md.

    Constraints:
    - The name is normalised to lowercase letters, digits and hyphens; 'skill' is reserved.
    - Fails if a skill with that name already exists.
    - Without content, SKILL.md gets YAML front matter with name and description.

    Returns:
    - {success, path (SKILL.md path), name} or {success: false, error, code}
    """
    return handlers.handle_create_bundle(name, description, content)


@mcp.tool
def skill_load(path: str) -> dict[str, Any]:
    """
    function_purpose: Load a skill's SKILL.md, importing it first when it lives outside the library.

    Description:
    - Paths inside the library are read in place.
    - Any other path must be a file named SKILL.md; it is copied into a new skill named after its
      parent folder (with -1, -2, ... appended on collisions).

    Returns:
    - {success, content, path, imported, skillName?}
    """
    return handlers.handle_load_bundle(path)


@mcp.tool
def skill_save(path: str, content: str) -> dict[str, Any]:
    """
    function_purpose: Overwrite a file inside the library (SKILL.md or any other file).
    """
    return handlers.handle_save_bundle(path, content)


@mcp.tool
def skill_delete(path: str) -> dict[str, Any]:
    """
    function_purpose: Delete a whole skill directory, SKILL.md included.
    """
    return handlers.handle_delete_bundle(path)


def _render_tree_markdown(nodes: list[dict[str, Any]], depth: int = 0) -> list[str]:
    lines: list[str] = []
    indent = "  " * depth
    for node in nodes:
        if node["type"] == "folder":
            lines.append(f"{indent}- **{node['name']}/**\n")
            lines.extend(_render_tree_markdown(node.get("children", []), depth + 1))
        else:
            size = node.get("size")
            size_str = f"{size:,} bytes" if size is not None else "N/A"
            lines.append(f"{indent}- `{node['name']}` ({node['contentType']}, {size_str})\n")
    return lines


@mcp.tool
def skill_list_files(path: str, markdown_output: bool = False) -> dict[str, Any] | str:
    """
    function_purpose: Return the folders-first tree of files inside a skill.

    Description:
    - Hidden entries and node_modules are skipped; empty folders are kept.
    - File nodes carry contentType, size and editable.

    Args:
    - path: str               SKILL.md path or skill directory
    - markdown_output: bool   If True, return a markdown outline instead of JSON (default: False)
    """
    result = handlers.handle_list_files(path)
    if not markdown_output or not result.get("success"):
        return result

    files = result["files"]
    if not files:
        return f"# Files in '{path}'\n\nNo files found.\n"
    return "".join([f"# Files in '{path}'\n\n", *_render_tree_markdown(files)])


@mcp.tool
def skill_create_file(path: str, file_path: str, content: str = "") -> dict[str, Any]:
    """
    function_purpose: Create a new file inside a skill (parent folders are created as needed).

    Returns:
    - {success, path} with the stored relative path; existing files are never overwritten.
    """
    return handlers.handle_create_file(path, file_path, content)


@mcp.tool
def skill_create_folder(path: str, folder_path: str) -> dict[str, Any]:
    """
    function_purpose: Create a folder (recursively) inside a skill.
    """
    return handlers.handle_create_folder(path, folder_path)


@mcp.tool
def skill_delete_node(path: str, target_path: str) -> dict[str, Any]:
    """
    function_purpose: Delete a file or folder inside a skill. SKILL.md cannot be deleted this way.
    """
    return handlers.handle_delete_node(path, target_path)


@mcp.tool
def skill_rename_node(path: str, old_path: str, new_name: str) -> dict[str, Any]:
    """
    function_purpose: Rename a file or folder without changing its folder.

    Fails when the target is SKILL.md, the source is missing, or the new name is taken.
    """
    return handlers.handle_rename_node(path, old_path, new_name)


@mcp.tool
def skill_move_node(path: str, old_path: str, new_path: str) -> dict[str, Any]:
    """
    function_purpose: Move a file or folder to another folder inside the same skill.
    """
    return handlers.handle_move_node(path, old_path, new_path)


@mcp.tool
def skill_load_file(file_path: str) -> dict[str, Any]:
    """
    function_purpose: Load a file inside the library for editing.

    Returns:
    - {success, content, metadata{name, path, type, size, editable, tooBig?, error?}}
    - content is empty for non-editable files and for files over 10 MiB (tooBig: true)
    """
    return handlers.handle_load_file(file_path)


@mcp.tool
def skill_upload_files(
    path: str, files: list[dict[str, Any]], target_folder: str = ""
) -> dict[str, Any]:
    """
    function_purpose: Upload several files into a skill, preserving relative folder structure.

    Args:
    - path: str                SKILL.md path or skill directory
    - files: list[dict]        Each: {name: str, data: str, encoding?: "base64" (default) | "text"}
    - target_folder: str       Folder inside the skill to upload into (created if missing)

    Returns:
    - {success, uploadedFiles, count}; entries that cannot be written are skipped
    """
    return handlers.handle_upload_files(path, files, target_folder)


@mcp.tool
def skill_export_archive(path: str, skill_name: str) -> dict[str, Any]:
    """
    function_purpose: Package a skill into a ZIP (files at the archive root) for installation.

    Returns:
    - {success, zipPath}; call skill_release_archive(zipPath) once the ZIP has been used.
    """
    return handlers.handle_export_archive(path, skill_name)


@mcp.tool
def skill_release_archive(zip_path: str) -> dict[str, Any]:
    """
    function_purpose: Delete an exported ZIP after use and stop tracking it.
    """
    return handlers.handle_release_archive(zip_path)


# --- Entry points ---
def startup() -> None:
    """
    function_purpose: Housekeeping that must run before any skill operation.

    - Removes exported archives older than one hour
    - Registers the exit-time sweep of archives created by this process
    """
    logger = configure_logging()
    removed = cleanup_old_temp_files()
    if removed:
        logger.info("Removed %d stale archive(s)", len(removed))
    atexit.register(TEMP_FILES.sweep_all)


def run() -> None:
    """
    function_purpose: Entry point to start the MCP stdio server.

    - Configures logging and runs start-up cleanup
    - Runs FastMCP stdio server
    """
    logger = configure_logging()
    library_dir = resolve_library_dir()
    logger.info("Server starting with library_dir=%s", str(library_dir))
    startup()
    mcp.run()  # stdio transport by default


def cli_main() -> None:
    """
    function_purpose: CLI for inspecting the library without starting the MCP server.

    Usage:
      python -m skills_editor.server --list
      python -m skills_editor.server --tree <SKILL_PATH>
      python -m skills_editor.server --export <SKILL_PATH> <NAME>
    """
    import argparse
    import json

    logger = configure_logging()

    parser = argparse.ArgumentParser(
        prog="skills_editor.server",
        description="Inspect the skills library or start the stdio MCP server.",
    )
    parser.add_argument(
        "--list", action="store_true", help="List all skills in the library and exit"
    )
    parser.add_argument(
        "--tree", metavar="SKILL_PATH", help="Show the file tree of a skill"
    )
    parser.add_argument(
        "--export",
        nargs=2,
        metavar=("SKILL_PATH", "NAME"),
        help="Export a skill as a ZIP and print its path (the ZIP is kept)",
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Start MCP stdio server (default when no flags used)",
    )

    args = parser.parse_args()

    if args.list:
        logger.info("Listing skills...")
        print(json.dumps(handlers.handle_list_bundles(), indent=2, ensure_ascii=False))
        return

    if args.tree:
        logger.info("File tree for skill: %s", args.tree)
        print(json.dumps(handlers.handle_list_files(args.tree), indent=2, ensure_ascii=False))
        return

    if args.export:
        skill_path, name = args.export
        logger.info("Exporting skill: %s", skill_path)
        result = handlers.handle_export_archive(skill_path, name)
        print(json.dumps(result, indent=2, ensure_ascii=False))
        return

    # Default: start server
    run()


if __name__ == "__main__":
    cli_main()
