"""Notes directory layout: locating, naming, and pruning note files.

Note ids are POSIX-style paths of ``.md`` files relative to the notes
root. Every user-supplied path is validated so it cannot escape the root.
"""

from pathlib import Path, PurePosixPath
from typing import NamedTuple

NOTE_SUFFIX = ".md"


class NoteFileRecord(NamedTuple):
    """A note file found under the notes root."""

    full_path: Path
    relative_path: str


def get_sidecar_path(note_path: Path) -> Path:
    """Map ``notes/a/b.md`` to ``notes/a/b.json``."""
    if note_path.suffix.lower() == NOTE_SUFFIX:
        return note_path.with_suffix(".json")
    return note_path.with_name(f"{note_path.name}.json")


def format_relative_path(path: Path | str) -> str:
    """Render a relative path with POSIX separators."""
    return str(path).replace("\\", "/")


def normalize_directory_input(value: str) -> str | None:
    """
    Normalize a user-supplied directory path relative to the notes root.

    Backslashes become slashes, empty segments are dropped and surrounding
    whitespace is trimmed from each segment.

    Returns:
        Normalized path ("" for the root), or None if any segment is
        ``.`` or ``..``
    """
    segments = [segment.strip() for segment in value.strip().replace("\\", "/").split("/")]
    segments = [segment for segment in segments if segment]
    if any(segment in (".", "..") for segment in segments):
        return None
    return "/".join(segments)


def resolve_notes_path(notes_dir: Path, relative_path: str = "") -> Path | None:
    """Resolve ``relative_path`` under ``notes_dir``; None if it would escape."""
    normalized = normalize_directory_input(relative_path)
    if normalized is None:
        return None

    root = notes_dir.resolve()
    resolved = (root / normalized).resolve()
    try:
        resolved.relative_to(root)
    except ValueError:
        return None
    return resolved


def iter_note_files(notes_dir: Path) -> list[NoteFileRecord]:
    """All ``.md`` files under ``notes_dir``, recursively, in path order."""
    if not notes_dir.is_dir():
        return []

    return [
        NoteFileRecord(path, format_relative_path(path.relative_to(notes_dir).as_posix()))
        for path in sorted(notes_dir.rglob(f"*{NOTE_SUFFIX}"))
        if path.is_file() and not path.name.startswith(".")
    ]


def list_directories(notes_dir: Path) -> list[str]:
    """All directories under ``notes_dir`` as sorted relative paths."""
    if not notes_dir.is_dir():
        return []
    return sorted(
        path.relative_to(notes_dir).as_posix() for path in notes_dir.rglob("*") if path.is_dir()
    )


def generate_unique_file_path(target_dir: Path, base_name: str) -> Path:
    """
    First free ``<base_name>.md``, ``<base_name>-2.md``, ... in ``target_dir``.

    A name is taken if either the note or its sidecar already exists.
    """
    base_name = base_name.strip() or "note"
    candidate = target_dir / f"{base_name}{NOTE_SUFFIX}"
    suffix = 2
    while candidate.exists() or get_sidecar_path(candidate).exists():
        candidate = target_dir / f"{base_name}-{suffix}{NOTE_SUFFIX}"
        suffix += 1
    return candidate


def cleanup_empty_parent_directories(start_dir: Path, stop_dir: Path) -> None:
    """Remove empty directories from ``start_dir`` upward, stopping at ``stop_dir``."""
    current = start_dir.resolve()
    stop = stop_dir.resolve()

    while current != stop and stop in current.parents:
        try:
            if any(current.iterdir()):
                return
            current.rmdir()
        except OSError:
            return
        current = current.parent


def find_note_path(notes_dir: Path, note_id: str) -> NoteFileRecord | None:
    """Locate the note file for ``note_id`` (a relative ``.md`` path)."""
    normalized_id = note_id.strip()
    if PurePosixPath(normalized_id.replace("\\", "/")).suffix.lower() != NOTE_SUFFIX:
        return None

    full_path = resolve_notes_path(notes_dir, normalized_id)
    if full_path is None or not full_path.is_file():
        return None

    relative = full_path.relative_to(notes_dir.resolve())
    return NoteFileRecord(full_path, format_relative_path(relative.as_posix()))
