"""
File persistence with atomic replace.

Every state file (monitor config, village histories, kill snapshots) is
read-modify-written by more than one loop or command. Writers go through
atomic_write_text / atomic_write_json so readers only ever see a complete
document.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from .logging import get_logger

logger = get_logger(__name__)


def atomic_write_text(path: Path, text: str) -> None:
    """
    Write text to a sibling temp file, then rename it over the target.

    Args:
        path: Destination file
        text: Full file contents
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f"{path.name}.{os.getpid()}.tmp")
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def atomic_write_json(path: Path, data: Any) -> None:
    """Serialize data as indented JSON and write it atomically."""
    atomic_write_text(path, json.dumps(data, indent=2, ensure_ascii=False))


def read_json(path: Path, default: Any = None) -> Any:
    """
    Read a JSON document, returning default if missing or corrupt.

    A corrupt file is logged; it is left on disk for inspection and
    replaced on the next write.
    """
    if not path.exists():
        return default
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not read %s: %s", path, e)
        return default
