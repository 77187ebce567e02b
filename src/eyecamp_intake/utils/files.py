"""File helpers shared by the local JSON stores."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def write_text_atomic(path: Path, text: str) -> None:
    """Write text to a file so readers never observe a partial write.

    The content goes to a temporary file in the destination directory which
    then replaces the target in one rename.

    Args:
        path: Destination file
        text: Content to write (UTF-8)

    Raises:
        OSError: If the directory cannot be created or the write fails
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def write_json_atomic(path: Path, data: Any) -> None:
    """Serialize data as indented JSON and write it atomically."""
    write_text_atomic(path, json.dumps(data, indent=2, ensure_ascii=False))


def read_json(path: Path, default: Any = None) -> Any:
    """Read a JSON document, returning default when the file does not exist.

    Raises:
        json.JSONDecodeError: If the file is not valid JSON
        OSError: If the file exists but cannot be read
    """
    if not path.exists():
        return default
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)
