"""Resolve comments into merged, displayable highlight ranges."""

from typing import NamedTuple

from agentnotes.models import CommentStatus, NoteComment
from agentnotes.transform import normalize_comment


class CharRange(NamedTuple):
    """Half-open character range ``[from_, to)``."""

    from_: int
    to: int


def resolve_comment_range(content: str, comment: NoteComment) -> CharRange | None:
    """Live range of ``comment`` within ``content``, or None if it has none.

    Detached comments and degenerate or out-of-bounds ranges resolve to None.
    """
    normalized = normalize_comment(comment, content, comment.anchor.rev)
    if normalized.status == CommentStatus.DETACHED:
        return None

    from_ = normalized.anchor.from_
    to = normalized.anchor.to
    if from_ < 0 or to <= from_ or to > len(content):
        return None
    return CharRange(from_, to)


def merge_ranges(ranges: list[CharRange]) -> list[CharRange]:
    """Merge ranges sorted by start; touching ranges are merged too."""
    merged: list[CharRange] = []
    for current in ranges:
        if merged and current.from_ <= merged[-1].to:
            last = merged[-1]
            merged[-1] = CharRange(last.from_, max(last.to, current.to))
        else:
            merged.append(current)
    return merged


def get_all_highlight_ranges(content: str, comments: list[NoteComment]) -> list[CharRange]:
    """Resolve every comment and merge the results into disjoint ranges.

    Returns:
        Ranges sorted by start, never overlapping or touching
    """
    ranges = [
        resolved
        for resolved in (resolve_comment_range(content, comment) for comment in comments or [])
        if resolved is not None
    ]
    ranges.sort(key=lambda r: r.from_)
    return merge_ranges(ranges)
