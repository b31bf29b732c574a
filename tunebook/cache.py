"""Atomic file writes and tolerant JSON reads."""

import json
import os
import tempfile
from pathlib import Path


def write_bytes(path, data):
    """Atomically write bytes to path (temp file in the same dir, then rename)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise
    return path


def write_json(path, data, indent=None):
    """Atomically write data as JSON."""
    text = json.dumps(data, indent=indent, ensure_ascii=False)
    return write_bytes(path, text.encode("utf-8"))


def read_json(path):
    """Read JSON from path. Returns the parsed value, or None if missing/corrupt."""
    path = Path(path)
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError, UnicodeDecodeError):
        return None
