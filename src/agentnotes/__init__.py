"""Plain-text notes with comments anchored to character ranges.

This package contains:
- The anchoring engine: building anchors, remapping them across content
  edits, and resolving highlight ranges (anchors, transform, resolution)
- NoteStore, which persists notes as markdown files with JSON sidecars
"""

from .anchors import (
    AnchorError,
    AnchorTextAmbiguous,
    AnchorTextNotFound,
    InvalidRange,
    build_anchor_from_range,
    build_anchor_from_unique_text,
    hash_quote,
)
from .models import CommentAffinity, CommentAnchor, CommentStatus, Note, NoteComment
from .resolution import CharRange, get_all_highlight_ranges, resolve_comment_range
from .store import CommentNotFound, NoteNotFound, NoteStore, RevisionMismatch
from .transform import (
    TextEditOp,
    derive_text_edit_ops,
    normalize_comment,
    remap_comments_for_edit,
    transform_offset,
)

__all__ = [
    "AnchorError",
    "AnchorTextAmbiguous",
    "AnchorTextNotFound",
    "CharRange",
    "CommentAffinity",
    "CommentAnchor",
    "CommentNotFound",
    "CommentStatus",
    "InvalidRange",
    "Note",
    "NoteComment",
    "NoteNotFound",
    "NoteStore",
    "RevisionMismatch",
    "TextEditOp",
    "build_anchor_from_range",
    "build_anchor_from_unique_text",
    "derive_text_edit_ops",
    "get_all_highlight_ranges",
    "hash_quote",
    "normalize_comment",
    "remap_comments_for_edit",
    "resolve_comment_range",
    "transform_offset",
]
