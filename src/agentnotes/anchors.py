"""Binding new comments to ranges of note content.

Anchors can be built two ways:
1. From an explicit ``[from_, to)`` character range (editor selections)
2. From a literal text snippet that must occur exactly once (agents, CLI)

Every anchor captures the quoted text and its FNV-1a hash so that later
remaps can tell whether the text under a surviving range actually changed.
"""

import math

from agentnotes.models import (
    DEFAULT_END_AFFINITY,
    DEFAULT_START_AFFINITY,
    CommentAnchor,
)

FNV_OFFSET_BASIS = 0xCBF29CE484222325
FNV_PRIME = 0x100000001B3
_UINT64_MASK = 0xFFFFFFFFFFFFFFFF


class AnchorError(ValueError):
    """Base class for failures while building an anchor."""

    pass


class InvalidRange(AnchorError):  # noqa: N818
    """Raised when an explicit range is empty, reversed, or out of bounds."""

    pass


class AnchorTextNotFound(AnchorError):  # noqa: N818
    """Raised when the anchor text does not occur in the content."""

    pass


class AnchorTextAmbiguous(AnchorError):  # noqa: N818
    """Raised when the anchor text occurs more than once in the content."""

    pass


def hash_quote(text: str) -> str:
    """Compute the 64-bit FNV-1a hash of ``text``.

    Each character's code point is folded in as one unit.

    Returns:
        16 lowercase hex digits, zero-padded (e.g. ``"cbf29ce484222325"``
        for the empty string)
    """
    value = FNV_OFFSET_BASIS
    for char in text:
        value ^= ord(char)
        value = (value * FNV_PRIME) & _UINT64_MASK
    return f"{value:016x}"


def build_anchor_from_range(content: str, from_: int, to: int, rev: int) -> CommentAnchor:
    """Build an anchor for ``content[from_:to]``.

    Args:
        content: Note content the range refers to
        from_: Start offset (inclusive)
        to: End offset (exclusive), must be greater than ``from_``
        rev: Content revision the caller observed; negative values become 0

    Returns:
        CommentAnchor with default affinities, quote, and quote hash

    Raises:
        InvalidRange: If ``from_ < 0``, ``to <= from_`` or ``to > len(content)``
    """
    start = math.floor(from_)
    end = math.floor(to)
    if start < 0 or end <= start or end > len(content):
        raise InvalidRange(
            f"Invalid comment anchor range [{from_}, {to}) for content of length {len(content)}"
        )

    quote = content[start:end]
    return CommentAnchor(
        from_=start,
        to=end,
        rev=max(0, math.floor(rev)),
        start_affinity=DEFAULT_START_AFFINITY,
        end_affinity=DEFAULT_END_AFFINITY,
        quote=quote,
        quote_hash=hash_quote(quote),
    )


def _find_occurrences(content: str, text: str, limit: int) -> list[int]:
    # Non-overlapping: the search resumes at the end of each match.
    starts: list[int] = []
    position = content.find(text)
    while position >= 0 and len(starts) < limit:
        starts.append(position)
        position = content.find(text, position + len(text))
    return starts


def find_unique_match(content: str, text: str) -> tuple[int, int] | None:
    """Return ``(from_, to)`` of the only occurrence of ``text``, else None."""
    if not text:
        return None
    starts = _find_occurrences(content, text, limit=2)
    if len(starts) != 1:
        return None
    return starts[0], starts[0] + len(text)


def build_anchor_from_unique_text(content: str, exact_text: str, rev: int) -> CommentAnchor:
    """Build an anchor for the single occurrence of ``exact_text`` in ``content``.

    The text is matched literally, surrounding whitespace included.

    Raises:
        AnchorError: If ``exact_text`` is empty or whitespace only
        AnchorTextNotFound: If ``exact_text`` does not occur
        AnchorTextAmbiguous: If ``exact_text`` occurs more than once
    """
    if not exact_text or not exact_text.strip():
        raise AnchorError("Anchor text cannot be empty")

    starts = _find_occurrences(content, exact_text, limit=2)
    if not starts:
        raise AnchorTextNotFound(f"Anchor text not found in note content: {exact_text!r}")
    if len(starts) > 1:
        raise AnchorTextAmbiguous(
            f"Anchor text is ambiguous: {exact_text!r} occurs more than once; "
            "provide an explicit range instead"
        )

    return build_anchor_from_range(content, starts[0], starts[0] + len(exact_text), rev)
