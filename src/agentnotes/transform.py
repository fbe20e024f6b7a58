"""Keeping comment anchors meaningful as note content is edited.

A content change is reduced to a single contiguous replacement bounded by
the longest unchanged prefix and suffix of the old and new text. Every
anchor offset is mapped across that replacement, then each comment is
reclassified:

- detached: the range collapsed to zero width
- stale: the edit touched the range, or the quote hash no longer matches
- attached: otherwise

An edit that touches two distant regions at once is treated as one large
replacement spanning both, so comments between them become stale or
detached even if their own text is untouched. Callers depend on this; do not
replace it with a general diff.
"""

from typing import NamedTuple

from agentnotes.anchors import hash_quote
from agentnotes.geometry import clamp, common_prefix_len, common_suffix_len, ranges_overlap
from agentnotes.models import (
    DEFAULT_END_AFFINITY,
    DEFAULT_START_AFFINITY,
    CommentAffinity,
    CommentStatus,
    NoteComment,
)


class TextEditOp(NamedTuple):
    """Replace ``delete_len`` characters at ``at`` (old text) with ``insert_len`` new ones."""

    at: int
    delete_len: int
    insert_len: int


def derive_text_edit_ops(before: str, after: str) -> list[TextEditOp]:
    """Reduce a content transition to zero or one edit operation.

    Args:
        before: Content prior to the edit
        after: Content after the edit

    Returns:
        Empty list if the texts are equal, otherwise a one-element list
        holding the single replacement that turns ``before`` into ``after``

    Examples:
        >>> derive_text_edit_ops("hello", "well hello")
        [TextEditOp(at=0, delete_len=0, insert_len=5)]
        >>> derive_text_edit_ops("hello world", "hello ")
        [TextEditOp(at=6, delete_len=5, insert_len=0)]
    """
    if before == after:
        return []

    prefix = common_prefix_len(before, after)
    suffix = common_suffix_len(before[prefix:], after[prefix:])

    delete_len = len(before) - prefix - suffix
    insert_len = len(after) - prefix - suffix
    if delete_len == 0 and insert_len == 0:
        return []

    return [TextEditOp(at=prefix, delete_len=delete_len, insert_len=insert_len)]


def transform_offset(offset: int, affinity: CommentAffinity, op: TextEditOp) -> int:
    """Map one offset from the old text into the new text.

    Offsets before the edit are unchanged and offsets past it shift by the
    length delta. On the boundaries affinity breaks the tie: ``after``
    moves past inserted text, ``before`` stays in front of it. Offsets
    inside the deleted span collapse to the edit point.
    """
    if offset < op.at:
        return offset

    op_end = op.at + op.delete_len
    if offset > op_end:
        return offset + op.insert_len - op.delete_len

    if offset == op.at:
        if op.delete_len == 0:
            return offset + op.insert_len if affinity == CommentAffinity.AFTER else offset
        return op.at

    if offset == op_end:
        return op.at + op.insert_len if affinity == CommentAffinity.AFTER else op.at

    return op.at


def classify_status(from_: int, to: int, touched: bool, quote_hash: str | None, content: str) -> CommentStatus:
    """Derive a comment's status from its resolved range.

    Args:
        from_: Resolved start offset, already clamped to ``content``
        to: Resolved end offset, already clamped to ``content``
        touched: Whether an edit overlapped or landed inside the range
        quote_hash: Hash of the originally quoted text, if known
        content: Content the range is resolved against

    Returns:
        DETACHED for an empty range, STALE when touched or when the text
        under the range no longer hashes to ``quote_hash``, else ATTACHED
    """
    if to <= from_:
        return CommentStatus.DETACHED
    if touched:
        return CommentStatus.STALE
    # Same-length replacements outside the detected edit window can leave
    # offsets intact while the text under them differs.
    if quote_hash and hash_quote(content[from_:to]) != quote_hash:
        return CommentStatus.STALE
    return CommentStatus.ATTACHED


def normalize_comment(comment: NoteComment, content: str, fallback_rev: int) -> NoteComment:
    """Return a copy of ``comment`` with every anchor default filled in.

    This is the single place where partial anchors are completed:

    - offsets are clamped into ``[0, len(content)]``
    - missing affinities get the defaults (start=after, end=before)
    - missing quote and quote hash are captured from the current content
    - a zero revision is backfilled from ``fallback_rev``
    - status is derived from the range only when no valid status is set

    Args:
        comment: Comment to normalize (not modified)
        content: Content the anchor is resolved against
        fallback_rev: Revision to use when the anchor has none

    Returns:
        New NoteComment with a fully populated anchor
    """
    anchor = comment.anchor
    from_ = clamp(anchor.from_, 0, len(content))
    to = clamp(anchor.to, 0, len(content))
    has_range = to > from_

    quote = anchor.quote
    if quote is None:
        quote = content[from_:to] if has_range else ""
    quote_hash = anchor.quote_hash
    if quote_hash is None and quote:
        quote_hash = hash_quote(quote)

    status = comment.status
    if status is None:
        status = CommentStatus.ATTACHED if has_range else CommentStatus.DETACHED

    normalized_anchor = anchor.model_copy(
        update={
            "from_": from_,
            "to": to,
            "rev": anchor.rev if anchor.rev > 0 else max(0, fallback_rev),
            "start_affinity": anchor.start_affinity or DEFAULT_START_AFFINITY,
            "end_affinity": anchor.end_affinity or DEFAULT_END_AFFINITY,
            "quote": quote,
            "quote_hash": quote_hash,
        }
    )
    return comment.model_copy(update={"status": status, "anchor": normalized_anchor})


def _remap_comment(
    comment: NoteComment, ops: list[TextEditOp], before: str, after: str, next_rev: int
) -> NoteComment:
    # Offsets are still in old-content coordinates until transformed.
    normalized = normalize_comment(comment, before, next_rev)
    anchor = normalized.anchor
    from_ = anchor.from_
    to = anchor.to
    touched = False

    for op in ops:
        if op.delete_len > 0 and ranges_overlap(from_, to, op.at, op.at + op.delete_len):
            touched = True
        # An insertion strictly inside the range always taints it.
        if op.delete_len == 0 and from_ < op.at < to:
            touched = True

        from_ = transform_offset(from_, anchor.start_affinity, op)
        to = transform_offset(to, anchor.end_affinity, op)

    from_ = clamp(from_, 0, len(after))
    to = clamp(to, 0, len(after))

    status = classify_status(from_, to, touched, anchor.quote_hash, after)
    remapped_anchor = anchor.model_copy(update={"from_": from_, "to": to, "rev": next_rev})
    return normalized.model_copy(update={"status": status, "anchor": remapped_anchor})


def remap_comments_for_edit(
    comments: list[NoteComment], before: str, after: str, current_rev: int
) -> tuple[list[NoteComment], int]:
    """Carry comments across a content edit and compute the next revision.

    The revision advances only when the content actually changed. When it
    did not, comments are normalized against ``after`` but keep their
    statuses and revisions.

    Args:
        comments: Comments anchored against ``before`` (not modified)
        before: Content prior to the edit
        after: Content after the edit
        current_rev: The note's revision for ``before``

    Returns:
        Tuple of (remapped comments, next revision)

    Example:
        >>> remapped, rev = remap_comments_for_edit(comments, old, new, note.comment_rev)
    """
    if not comments:
        return list(comments), max(0, current_rev)

    ops = derive_text_edit_ops(before, after)
    if not ops:
        return [normalize_comment(c, after, current_rev) for c in comments], max(0, current_rev)

    next_rev = max(1, current_rev + 1)
    return [_remap_comment(c, ops, before, after, next_rev) for c in comments], next_rev
