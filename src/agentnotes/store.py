"""Persistence boundary around the anchoring engine.

The store owns the notes directory. Every content write runs the comment
remapper before anything is persisted, and every new comment is checked
against the note's current comment revision (optimistic concurrency): a
caller that anchored its comment against an older revision gets
``RevisionMismatch`` and must re-fetch the note and retry.

Writers of the same note are serialized with a per-note file lock, so a
read-remap-write cycle never interleaves with another one.
"""

import contextlib
import shutil
from collections.abc import Generator
from datetime import datetime, timezone
from pathlib import Path
from typing import NamedTuple

from agentnotes.anchors import build_anchor_from_range
from agentnotes.locking import file_lock, get_lock_path
from agentnotes.models import (
    DEFAULT_END_AFFINITY,
    DEFAULT_START_AFFINITY,
    CommentAnchor,
    CommentStatus,
    Note,
    NoteComment,
)
from agentnotes.paths import (
    NoteFileRecord,
    cleanup_empty_parent_directories,
    find_note_path,
    format_relative_path,
    generate_unique_file_path,
    get_sidecar_path,
    iter_note_files,
    list_directories,
    normalize_directory_input,
    resolve_notes_path,
)
from agentnotes.storage import (
    normalize_content,
    normalize_tags,
    parse_note_file,
    write_note_content,
    write_sidecar,
)
from agentnotes.transform import remap_comments_for_edit
from agentnotes.utils.logging import get_logger
from agentnotes.utils.slug import slugify


class RevisionMismatch(Exception):  # noqa: N818
    """Raised when a new comment was anchored against an outdated revision."""

    def __init__(self, expected: int, received: int) -> None:
        super().__init__(
            f"Anchor revision mismatch. Expected rev {expected}, received rev {received}"
        )
        self.expected = expected
        self.received = received


class NoteNotFound(LookupError):  # noqa: N818
    """Raised when a note id does not name a note under the notes root."""

    pass


class CommentNotFound(LookupError):  # noqa: N818
    """Raised when a comment id does not exist on the note."""

    pass


class NotesList(NamedTuple):
    notes: list[Note]
    directories: list[str]


def _sort_key(note: Note) -> tuple[str, str, str]:
    return (note.relative_path, note.title, note.id)


def _remove_lock_file(note_path: Path) -> None:
    # Called with the lock held; waiters on the old file retry on a fresh one.
    # Windows refuses to unlink an open file, leaving it for the next writer.
    with contextlib.suppress(OSError):
        get_lock_path(note_path).unlink(missing_ok=True)


class NoteStore:
    """Notes directory with sidecar-backed comments.

    Attributes:
        notes_dir: Root directory holding ``.md`` notes and ``.json`` sidecars
        lock_timeout: Seconds to wait for a note's write lock
    """

    def __init__(self, notes_directory: str | Path, *, lock_timeout: float = 5.0) -> None:
        self.notes_dir = Path(notes_directory).expanduser().resolve()
        self.lock_timeout = lock_timeout

    def _require_root(self) -> None:
        if not self.notes_dir.is_dir():
            raise FileNotFoundError(f"Notes directory not found: {self.notes_dir}")

    def _find(self, note_id: str) -> NoteFileRecord:
        self._require_root()
        record = find_note_path(self.notes_dir, note_id)
        if record is None:
            raise NoteNotFound(f"Note not found: {note_id}")
        return record

    @contextlib.contextmanager
    def _locked(self, note_path: Path) -> Generator[None, None, None]:
        with file_lock(get_lock_path(note_path), timeout=self.lock_timeout):
            yield

    def _relative(self, path: Path) -> str:
        return format_relative_path(path.relative_to(self.notes_dir).as_posix())

    def _resolve_directory(self, directory: str) -> Path:
        normalized = normalize_directory_input(directory)
        target = resolve_notes_path(self.notes_dir, normalized) if normalized is not None else None
        if target is None:
            raise ValueError(f"Directory path escapes notes root: {directory!r}")
        return target

    # -- Reading -------------------------------------------------------------

    def list_notes(self) -> NotesList:
        """All notes (sorted by path, title, id) and all directories.

        Notes that cannot be read are skipped with a warning.
        """
        if not self.notes_dir.is_dir():
            return NotesList([], [])

        notes = []
        for record in iter_note_files(self.notes_dir):
            try:
                notes.append(parse_note_file(record.full_path, record.relative_path))
            except (OSError, UnicodeDecodeError) as e:
                get_logger().warning(f"Skipping unreadable note {record.relative_path}: {e}")

        notes.sort(key=_sort_key)
        return NotesList(notes, list_directories(self.notes_dir))

    def get_note(self, note_id: str) -> Note:
        """
        Load one note by id.

        Raises:
            NoteNotFound: If ``note_id`` is not a ``.md`` file under the root
            FileNotFoundError: If the notes directory does not exist
        """
        record = self._find(note_id)
        return parse_note_file(record.full_path, record.relative_path)

    # -- Notes ---------------------------------------------------------------

    def create_note(self, title: str, directory: str = "") -> Note:
        """
        Create ``<directory>/YYYY-MM-DD-<slug>.md`` with a heading and empty sidecar.

        Raises:
            ValueError: If the title is empty or the directory is invalid
        """
        self._require_root()
        title = title.strip()
        if not title:
            raise ValueError("Title cannot be empty")

        target_dir = self._resolve_directory(directory)
        target_dir.mkdir(parents=True, exist_ok=True)

        date_prefix = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        note_path = generate_unique_file_path(target_dir, f"{date_prefix}-{slugify(title) or 'note'}")
        with self._locked(note_path):
            write_note_content(note_path, normalize_content(f"# {title}\n\n"))
            write_sidecar(note_path, [], [], 0)

        get_logger().debug("Created note", note=self._relative(note_path))
        return parse_note_file(note_path, self._relative(note_path))

    def update_note(self, note_id: str, content: str) -> Note:
        """
        Replace a note's content, carrying its comments across the edit.

        The comment revision advances only if the content actually changed.
        """
        record = self._find(note_id)
        with self._locked(record.full_path):
            current = parse_note_file(record.full_path, record.relative_path)
            updated_content = normalize_content(content)

            comments, next_rev = current.comments, current.comment_rev
            if updated_content != current.content:
                comments, next_rev = remap_comments_for_edit(
                    current.comments, current.content, updated_content, current.comment_rev
                )
                get_logger().debug(
                    "Remapped comments",
                    note=record.relative_path,
                    rev=next_rev,
                    statuses=[c.status.value for c in comments if c.status],
                )

            write_note_content(record.full_path, updated_content)
            write_sidecar(record.full_path, current.tags, comments, next_rev)

        return parse_note_file(record.full_path, record.relative_path)

    def update_note_metadata(self, note_id: str, tags: list[str]) -> Note:
        """Replace a note's tags."""
        record = self._find(note_id)
        with self._locked(record.full_path):
            current = parse_note_file(record.full_path, record.relative_path)
            write_sidecar(record.full_path, normalize_tags(tags), current.comments, current.comment_rev)
        return parse_note_file(record.full_path, record.relative_path)

    def delete_note(self, note_id: str) -> None:
        """Delete a note and its sidecar, pruning emptied directories."""
        record = self._find(note_id)
        with self._locked(record.full_path):
            record.full_path.unlink()
            get_sidecar_path(record.full_path).unlink(missing_ok=True)
            _remove_lock_file(record.full_path)

        cleanup_empty_parent_directories(record.full_path.parent, self.notes_dir)

    def move_note(self, note_id: str, directory: str) -> Note:
        """
        Move a note and its sidecar into ``directory``.

        The file name is kept unless it is taken at the destination, in which
        case a numeric suffix is added.
        """
        record = self._find(note_id)
        target_dir = self._resolve_directory(directory)
        target_dir.mkdir(parents=True, exist_ok=True)

        source = record.full_path
        destination = target_dir / source.name
        if destination != source and (
            destination.exists() or get_sidecar_path(destination).exists()
        ):
            destination = generate_unique_file_path(target_dir, source.stem)

        if destination == source:
            return parse_note_file(source, record.relative_path)

        with self._locked(source):
            source.replace(destination)
            source_sidecar = get_sidecar_path(source)
            if source_sidecar.exists():
                source_sidecar.replace(get_sidecar_path(destination))
            _remove_lock_file(source)

        cleanup_empty_parent_directories(source.parent, self.notes_dir)
        return parse_note_file(destination, self._relative(destination))

    # -- Comments ------------------------------------------------------------

    def add_comment(self, note_id: str, content: str, author: str, anchor: CommentAnchor) -> Note:
        """
        Attach a new comment to a note.

        The anchor's range is re-read from the note's current content, so the
        stored quote always matches. Affinities supplied by the caller are
        kept.

        Args:
            note_id: Note to comment on
            content: Comment body
            author: Author name ("" for anonymous)
            anchor: Requested anchor; ``rev`` must equal the note's ``comment_rev``

        Returns:
            The updated note

        Raises:
            RevisionMismatch: If ``anchor.rev`` differs from the note's revision
            InvalidRange: If the range is empty or out of bounds
        """
        record = self._find(note_id)
        with self._locked(record.full_path):
            current = parse_note_file(record.full_path, record.relative_path)
            if anchor.rev != current.comment_rev:
                raise RevisionMismatch(expected=current.comment_rev, received=anchor.rev)

            target_rev = current.comment_rev if current.comment_rev > 0 else 1
            built = build_anchor_from_range(current.content, anchor.from_, anchor.to, target_rev)
            built = built.model_copy(
                update={
                    "start_affinity": anchor.start_affinity or DEFAULT_START_AFFINITY,
                    "end_affinity": anchor.end_affinity or DEFAULT_END_AFFINITY,
                }
            )

            comment = NoteComment(
                author=author, content=content, status=CommentStatus.ATTACHED, anchor=built
            )
            write_sidecar(record.full_path, current.tags, [*current.comments, comment], target_rev)

        get_logger().debug("Added comment", note=record.relative_path, comment=comment.id)
        return parse_note_file(record.full_path, record.relative_path)

    def delete_comment(self, note_id: str, comment_id: str) -> Note:
        """
        Remove a comment from a note.

        Raises:
            ValueError: If ``comment_id`` is empty
            CommentNotFound: If no comment has that id
        """
        if not comment_id:
            raise ValueError("Comment ID is required")

        record = self._find(note_id)
        with self._locked(record.full_path):
            current = parse_note_file(record.full_path, record.relative_path)
            remaining = [c for c in current.comments if c.id != comment_id]
            if len(remaining) == len(current.comments):
                raise CommentNotFound(f"Comment not found: {comment_id}")
            write_sidecar(record.full_path, current.tags, remaining, current.comment_rev)

        return parse_note_file(record.full_path, record.relative_path)

    # -- Directories ---------------------------------------------------------

    def create_directory(self, path: str) -> str:
        """Create a directory under the root; returns its normalized path."""
        self._require_root()
        normalized = normalize_directory_input(path)
        if not normalized:
            raise ValueError(f"Invalid directory path: {path!r}")
        self._resolve_directory(normalized).mkdir(parents=True, exist_ok=True)
        return normalized

    def delete_directory(self, path: str) -> str:
        """
        Delete a directory and everything in it; returns its normalized path.

        Raises:
            ValueError: If the path is invalid, the root itself, or not a directory
            FileNotFoundError: If the directory does not exist
        """
        self._require_root()
        normalized = normalize_directory_input(path)
        if not normalized:
            raise ValueError(f"Invalid directory path: {path!r}")

        target = self._resolve_directory(normalized)
        if target == self.notes_dir:
            raise ValueError("Cannot delete the notes root")
        if not target.exists():
            raise FileNotFoundError(f"Directory not found: {normalized}")
        if not target.is_dir():
            raise ValueError(f"Target path is not a directory: {normalized}")

        shutil.rmtree(target)
        cleanup_empty_parent_directories(target.parent, self.notes_dir)
        return normalized
