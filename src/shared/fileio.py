"""Small file helpers used by every JSON-backed store."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def atomic_write_bytes(path: Path, payload: bytes) -> None:
    """Write ``payload`` to ``path`` via a temp file and ``os.replace``.

    Readers never observe a half-written file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(payload)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def atomic_write_text(path: Path, text: str) -> None:
    atomic_write_bytes(path, text.encode("utf-8"))


def read_json(path: Path) -> Any | None:
    """Return parsed JSON from ``path``, or None when the file does not exist.

    Raises ``json.JSONDecodeError`` on corrupt content so callers can decide
    whether to start fresh or stop.
    """
    if not path.exists():
        return None
    return json.loads(path.read_text(encoding="utf-8"))
