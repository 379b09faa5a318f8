"""
skills_editor.logs

Application logging (console + rotating file) and the JSON-lines audit log of
destructive operations.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any

from skills_editor.config import SERVER_NAME, resolve_log_file, resolve_ops_log_file


def get_logger(component: str | None = None) -> logging.Logger:
    """Return the application logger, or one of its children for ``component``."""
    logger = logging.getLogger(SERVER_NAME)
    return logger.getChild(component) if component else logger


def configure_logging() -> logging.Logger:
    """
    function_purpose: Configure application-wide logging to both console and rotating file.

    - Creates the log directory if needed.
    - Console output goes to stderr; stdout is reserved for the stdio transport.
    - Safe to call more than once; handlers are only attached the first time.
    """
    logger = get_logger()
    logger.setLevel(logging.INFO)
    if logger.handlers:
        return logger

    log_file = resolve_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s [%(threadName)s]: %(message)s"
    )

    # Console handler
    sh = logging.StreamHandler()
    sh.setLevel(logging.INFO)
    sh.setFormatter(formatter)
    logger.addHandler(sh)

    # Rotating file handler (5 files, 5MB each)
    fh = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=5)
    fh.setLevel(logging.INFO)
    fh.setFormatter(formatter)
    logger.addHandler(fh)

    logger.info("Logging initialized. File: %s", str(log_file))
    return logger


def log_operation(op: str, payload: dict[str, Any]) -> None:
    """
    function_purpose: Append a single JSON line describing a destructive operation.

    Used for bundle/node deletes, renames, moves and archive releases so that
    actions are auditable.
    """
    ts = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
    record = {"ts": ts, "op": op}
    record.update(payload)

    ops_log_file = resolve_ops_log_file()
    try:
        ops_log_file.parent.mkdir(parents=True, exist_ok=True)
        with open(ops_log_file, "a", encoding="utf-8") as f:
            _ = f.write(json.dumps(record, ensure_ascii=False) + "\n")
    except OSError:
        # Logging must not break the main operation.
        get_logger().warning("Failed to write operation log entry", exc_info=True)
