"""
skills_editor: sandboxed filesystem layer and FastMCP stdio server for a local library of
Claude skills (one directory per skill, rooted at a SKILL.md manifest).

This package provides the server entrypoint plus the operations it exposes: creating,
importing, editing, organising and exporting skills without ever leaving the library root.
"""

__version__: str = "0.1.0"


def version() -> str:
    return __version__


__all__: list[str] = ["__version__", "version"]
