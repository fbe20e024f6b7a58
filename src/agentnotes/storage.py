"""Reading and writing note files and their ``.json`` metadata sidecars.

A note ``notes/idea.md`` holds plain text only. Its tags, comments and
comment revision live in ``notes/idea.json``::

    {
      "tags": ["draft"],
      "comment_rev": 3,
      "comments": [
        {"id": "...", "author": "", "created": "...", "content": "...",
         "status": "attached",
         "anchor": {"from": 6, "to": 11, "rev": 3, "start_affinity": "after",
                    "end_affinity": "before", "quote": "world", "quote_hash": "..."}}
      ]
    }

Reading is lenient: sidecars written by other front ends or
older versions may use camelCase keys, legacy ``start``/``end`` offsets or
an ``exact`` text snippet instead of offsets. Whatever cannot be read is
defaulted so a note always loads.
"""

import json
import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from agentnotes.anchors import find_unique_match
from agentnotes.frontmatter import has_legacy_fields, parse_frontmatter
from agentnotes.models import (
    CommentAnchor,
    CommentStatus,
    Note,
    NoteComment,
    NoteSidecar,
    utc_now_iso,
)
from agentnotes.paths import format_relative_path, get_sidecar_path
from agentnotes.transform import normalize_comment
from agentnotes.utils.atomic_write import atomic_write_json, atomic_write_text
from agentnotes.utils.logging import get_logger


def normalize_content(content: str) -> str:
    """Use LF line endings and drop trailing newlines."""
    return content.replace("\r\n", "\n").rstrip("\n")


def normalize_tags(tags: list[str]) -> list[str]:
    """Trim tags, drop empty ones, and de-duplicate case-insensitively.

    The first spelling of a tag wins.
    """
    seen: set[str] = set()
    normalized: list[str] = []
    for raw_tag in tags:
        tag = raw_tag.strip()
        key = tag.lower()
        if not tag or key in seen:
            continue
        seen.add(key)
        normalized.append(tag)
    return normalized


def _non_negative_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return int(value)


def _string(value: Any, fallback: str = "") -> str:
    return value if isinstance(value, str) else fallback


def _iso_date(value: Any, fallback: str) -> str:
    if not isinstance(value, str):
        return fallback
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return fallback
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_anchor(source: Any, content: str, fallback_rev: int) -> CommentAnchor:
    """
    Read an anchor record, resolving its range against ``content``.

    Range sources, first usable wins: ``from``/``to``, legacy
    ``start``/``end``, then the unique occurrence of legacy ``exact`` text.
    Anything else yields an empty ``[0, 0)`` range.
    """
    if not isinstance(source, dict):
        return CommentAnchor(rev=fallback_rev)

    from_value = _non_negative_int(source.get("from"))
    to_value = _non_negative_int(source.get("to"))
    legacy_start = _non_negative_int(source.get("start"))
    legacy_end = _non_negative_int(source.get("end"))
    exact = _string(source.get("exact"))

    from_, to = 0, 0
    if from_value is not None and to_value is not None and to_value >= from_value:
        from_, to = from_value, to_value
    elif legacy_start is not None and legacy_end is not None and legacy_end >= legacy_start:
        from_, to = legacy_start, legacy_end
    else:
        match = find_unique_match(content, exact)
        if match is not None:
            from_, to = match

    rev = _non_negative_int(source.get("rev"))
    quote = _string(source.get("quote"), exact)
    quote_hash = _string(source.get("quote_hash")) or _string(source.get("quoteHash"))

    return CommentAnchor(
        from_=min(from_, len(content)),
        to=min(to, len(content)),
        rev=rev if rev is not None else fallback_rev,
        start_affinity=source.get("start_affinity") or source.get("startAffinity"),
        end_affinity=source.get("end_affinity") or source.get("endAffinity"),
        quote=quote or None,
        quote_hash=quote_hash or None,
    )


def parse_comments(source: Any, content: str, comment_rev: int) -> list[NoteComment]:
    """Read the ``comments`` array of a sidecar; non-list input yields []."""
    if not isinstance(source, list):
        return []

    fallback_created = utc_now_iso()
    comments = []
    for entry in source:
        if not isinstance(entry, dict):
            comments.append(
                NoteComment(
                    id="",
                    created=fallback_created,
                    status=CommentStatus.DETACHED,
                    anchor=CommentAnchor(rev=comment_rev),
                )
            )
            continue

        comments.append(
            NoteComment(
                id=_string(entry.get("id")),
                author=_string(entry.get("author")),
                created=_iso_date(entry.get("created"), fallback_created),
                content=_string(entry.get("content")),
                status=entry.get("status"),
                anchor=parse_anchor(entry.get("anchor"), content, comment_rev),
            )
        )
    return comments


def read_sidecar_data(note_path: Path) -> dict[str, Any]:
    """
    Load the raw sidecar mapping for ``note_path``.

    Returns:
        The parsed JSON object, or {} if the sidecar is missing, unreadable,
        or not a JSON object (a warning is logged for the latter two)
    """
    sidecar_path = get_sidecar_path(note_path)
    if not sidecar_path.exists():
        return {}

    try:
        with open(sidecar_path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        get_logger().warning(f"Could not read sidecar {sidecar_path}: {e}")
        return {}

    if not isinstance(data, dict):
        get_logger().warning(f"Ignoring sidecar {sidecar_path}: not a JSON object")
        return {}
    return data


def write_sidecar(
    note_path: Path, tags: list[str], comments: list[NoteComment], comment_rev: int
) -> None:
    """Write the sidecar for ``note_path`` atomically."""
    sidecar = NoteSidecar(
        tags=normalize_tags(tags), comment_rev=max(0, comment_rev), comments=comments
    )
    atomic_write_json(sidecar.to_record(), get_sidecar_path(note_path))


def write_note_content(note_path: Path, content: str) -> None:
    atomic_write_text(content, note_path)


def extract_note_title(content: str, note_path: Path) -> str:
    """Title from a leading ``# Heading`` line, else the file stem."""
    first_line = content.split("\n", 1)[0]
    if first_line.startswith("#") and first_line[1:2].isspace():
        title = first_line[1:].strip()
        if title:
            return title
    return note_path.stem


def read_note_content(note_path: Path) -> tuple[str, dict[str, Any] | None]:
    """
    Read a note's text, separating legacy metadata frontmatter.

    Returns:
        Tuple of (normalized content, legacy metadata or None)
    """
    raw = note_path.read_text(encoding="utf-8").replace("\r\n", "\n")
    if raw.startswith("---\n"):
        frontmatter, body = parse_frontmatter(raw)
        if has_legacy_fields(frontmatter):
            return normalize_content(body), frontmatter
    return normalize_content(raw), None


def parse_note_file(note_path: Path, relative_path: str = "") -> Note:
    """
    Load a note and its metadata.

    Metadata comes from the sidecar, falling back to legacy frontmatter.
    A missing sidecar is created, and a note with legacy frontmatter is
    migrated: its sidecar is written and the frontmatter stripped.

    Args:
        note_path: Path to the ``.md`` file
        relative_path: Path relative to the notes root (the note id)

    Returns:
        Note with normalized comments and resolved comment revision

    Raises:
        OSError: If the note file cannot be read
        UnicodeDecodeError: If the note is not UTF-8 text
    """
    content, legacy = read_note_content(note_path)
    legacy = legacy or {}
    sidecar = read_sidecar_data(note_path)

    relative_path = format_relative_path(relative_path or note_path.name)
    directory = format_relative_path(Path(relative_path).parent.as_posix())

    raw_tags = sidecar.get("tags", legacy.get("tags"))
    tags = normalize_tags(
        [tag for tag in raw_tags if isinstance(tag, str)] if isinstance(raw_tags, list) else []
    )

    declared_rev = _non_negative_int(sidecar.get("comment_rev", legacy.get("comment_rev"))) or 0
    comments = parse_comments(sidecar.get("comments", legacy.get("comments")), content, declared_rev)
    comment_rev = max(1, declared_rev) if comments else declared_rev
    comments = [normalize_comment(comment, content, comment_rev) for comment in comments]

    if not get_sidecar_path(note_path).exists() or legacy:
        try:
            write_sidecar(note_path, tags, comments, comment_rev)
        except OSError as e:
            get_logger().warning(f"Could not write sidecar for {note_path}: {e}")

    if legacy:
        try:
            write_note_content(note_path, content)
            get_logger().debug("Migrated legacy frontmatter", note=relative_path)
        except OSError as e:
            get_logger().warning(f"Could not rewrite legacy note {note_path}: {e}")

    return Note(
        id=relative_path,
        title=extract_note_title(content, note_path),
        tags=tags,
        comment_rev=comment_rev,
        comments=comments,
        content=content,
        filename=note_path.name,
        relative_path=relative_path,
        directory="" if directory == "." else directory,
    )
