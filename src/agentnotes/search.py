"""Filtering, sorting, and tag statistics over loaded notes."""

from collections import Counter
from typing import Literal, NamedTuple

from agentnotes.models import Note

SortField = Literal["created", "updated", "title"]


class TagCount(NamedTuple):
    tag: str
    count: int


def _matches_query(note: Note, query: str) -> bool:
    return (
        query in note.title.lower()
        or query in note.content.lower()
        or any(query in tag.lower() for tag in note.tags)
    )


def search(
    notes: list[Note],
    query: str | None = None,
    tags: list[str] | None = None,
    limit: int | None = None,
    sort_by: SortField = "created",
    reverse: bool = False,
) -> list[Note]:
    """
    Filter and sort notes.

    Args:
        notes: Notes to search (not modified)
        query: Case-insensitive substring matched against title, content, tags
        tags: Tags that must all be present (case-insensitive)
        limit: Keep at most this many results (ignored unless positive)
        sort_by: "title", or "created"/"updated" (both order by file path,
            whose names start with the creation date)
        reverse: Reverse the sort order

    Returns:
        New list of matching notes
    """
    result = list(notes)

    if query:
        lowered = query.lower()
        result = [note for note in result if _matches_query(note, lowered)]

    if tags:
        wanted = [tag.lower() for tag in tags]
        result = [
            note
            for note in result
            if all(tag in {t.lower() for t in note.tags} for tag in wanted)
        ]

    if sort_by == "title":
        result.sort(key=lambda note: note.title.lower(), reverse=reverse)
    else:
        result.sort(key=lambda note: note.relative_path, reverse=reverse)

    if limit and limit > 0:
        result = result[:limit]
    return result


def get_all_tags(notes: list[Note]) -> dict[str, int]:
    """Number of notes per lowercased tag."""
    return dict(Counter(tag.lower() for note in notes for tag in note.tags))


def get_sorted_tags(notes: list[Note]) -> list[TagCount]:
    """Tag counts, most used first, ties broken alphabetically."""
    counts = get_all_tags(notes)
    return sorted(
        (TagCount(tag, count) for tag, count in counts.items()),
        key=lambda tc: (-tc.count, tc.tag),
    )
