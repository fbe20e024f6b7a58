"""Atomic file writes for note content and sidecars.

A reader never observes a half-written note or sidecar: data goes to a temp
file in the target directory, which is then renamed over the target.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def _replace_atomically(target_path: Path, text: str) -> None:
    target_path.parent.mkdir(parents=True, exist_ok=True)

    # Same directory as the target so the rename stays on one filesystem
    fd, temp_name = tempfile.mkstemp(
        dir=target_path.parent, prefix=".tmp_", suffix=target_path.suffix
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
        os.chmod(temp_name, 0o644)
        os.replace(temp_name, target_path)
    except BaseException:
        try:
            os.unlink(temp_name)
        except OSError:
            pass
        raise


def atomic_write_json(data: Any, target_path: str | Path) -> None:
    """Write ``data`` as indented JSON with a trailing newline.

    Raises:
        OSError: If the write or rename fails
        TypeError: If ``data`` is not JSON-serializable
    """
    text = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    _replace_atomically(Path(target_path), text)


def atomic_write_text(content: str, target_path: str | Path) -> None:
    """Write ``content`` verbatim.

    Raises:
        OSError: If the write or rename fails
    """
    _replace_atomically(Path(target_path), content)
