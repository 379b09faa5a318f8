"""
``python -m skills_editor``: same command line as ``python -m skills_editor.server``.

With no flags the stdio MCP server starts; ``--list``, ``--tree`` and ``--export``
inspect the library and exit. Also installed as the ``skills-editor`` script.
"""

from __future__ import annotations

import sys

from skills_editor.server import cli_main


def main() -> int:
    cli_main()
    return 0


if __name__ == "__main__":
    sys.exit(main())
