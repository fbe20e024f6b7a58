"""Data models for notes, comments, and comment anchors.

Models are lenient on input: sidecars written by older or foreign front ends
may carry negative offsets, unknown affinities or statuses, or missing
fields. Those values are coerced to "unset" here and resolved later by
``agentnotes.transform.normalize_comment`` rather than rejected, so one
malformed comment never prevents a note from loading.
"""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator
from ulid import new as new_ulid


def utc_now_iso() -> str:
    """Current UTC time as ISO 8601 with a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class CommentAffinity(str, Enum):
    """Which side of an edit an anchor boundary sticks to."""

    BEFORE = "before"
    AFTER = "after"


class CommentStatus(str, Enum):
    """Fidelity of a comment's anchor to the current content."""

    ATTACHED = "attached"  # Range intact, quote verified
    STALE = "stale"  # Range intact but text under it changed
    DETACHED = "detached"  # Range collapsed to zero width


# A comment does not absorb text inserted exactly at either boundary.
DEFAULT_START_AFFINITY = CommentAffinity.AFTER
DEFAULT_END_AFFINITY = CommentAffinity.BEFORE


class CommentAnchor(BaseModel, populate_by_name=True):
    """Position of a comment within a specific content revision.

    Offsets are character indexes into the note content, half-open
    ``[from_, to)``. ``from_ == to`` is a degenerate (lost) anchor.
    """

    from_: int = Field(default=0, alias="from")
    to: int = 0
    rev: int = Field(default=0, description="Content revision this anchor was validated against")
    start_affinity: CommentAffinity | None = None
    end_affinity: CommentAffinity | None = None
    quote: str | None = Field(default=None, description="Text covered by the anchor")
    quote_hash: str | None = Field(default=None, description="FNV-1a hash of quote")

    @field_validator("from_", "to", "rev", mode="before")
    @classmethod
    def coerce_non_negative_int(cls, v: Any) -> int:
        """Floor numeric input and map anything unusable to 0."""
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return 0
        if isinstance(v, float) and not math.isfinite(v):
            return 0
        return max(0, math.floor(v))

    @field_validator("start_affinity", "end_affinity", mode="before")
    @classmethod
    def drop_unknown_affinity(cls, v: Any) -> Any:
        if isinstance(v, CommentAffinity):
            return v
        if v in ("before", "after"):
            return v
        return None

    @field_validator("quote", "quote_hash", mode="before")
    @classmethod
    def drop_non_string(cls, v: Any) -> Any:
        return v if isinstance(v, str) else None


class NoteComment(BaseModel):
    """A comment attached to a range of note content.

    ``status`` is derived: it is recomputed whenever the comment is
    normalized or remapped. A value supplied by a client is only a hint.
    """

    id: str = Field(default_factory=lambda: str(new_ulid()))
    author: str = ""
    created: str = Field(default_factory=utc_now_iso)
    content: str = ""
    status: CommentStatus | None = None
    anchor: CommentAnchor = Field(default_factory=CommentAnchor)

    @field_validator("status", mode="before")
    @classmethod
    def drop_unknown_status(cls, v: Any) -> Any:
        if isinstance(v, CommentStatus):
            return v
        if v in ("attached", "stale", "detached"):
            return v
        return None


class Note(BaseModel):
    """A markdown note together with its sidecar metadata."""

    id: str = Field(..., description="Relative path of the note file (POSIX separators)")
    title: str
    tags: list[str] = Field(default_factory=list)
    comment_rev: int = Field(default=0, ge=0)
    comments: list[NoteComment] = Field(default_factory=list)
    content: str = ""
    filename: str
    relative_path: str
    directory: str = ""


class NoteSidecar(BaseModel):
    """Root structure of a note's ``.json`` sidecar file."""

    tags: list[str] = Field(default_factory=list)
    comment_rev: int = Field(default=0, ge=0)
    comments: list[NoteComment] = Field(default_factory=list)

    def to_record(self) -> dict[str, Any]:
        """Serialize for disk.

        ``comment_rev`` is omitted while zero, and empty quotes are left out
        so sidecars for fresh notes stay minimal.
        """
        record: dict[str, Any] = {
            "tags": list(self.tags),
            "comments": [_comment_record(comment) for comment in self.comments],
        }
        if self.comment_rev > 0:
            record["comment_rev"] = self.comment_rev
        return record


def _comment_record(comment: NoteComment) -> dict[str, Any]:
    anchor = comment.anchor
    anchor_record: dict[str, Any] = {
        "from": anchor.from_,
        "to": anchor.to,
        "rev": anchor.rev,
        "start_affinity": (anchor.start_affinity or DEFAULT_START_AFFINITY).value,
        "end_affinity": (anchor.end_affinity or DEFAULT_END_AFFINITY).value,
    }
    if anchor.quote:
        anchor_record["quote"] = anchor.quote
    if anchor.quote_hash:
        anchor_record["quote_hash"] = anchor.quote_hash

    status = comment.status or (
        CommentStatus.ATTACHED if anchor.to > anchor.from_ else CommentStatus.DETACHED
    )
    return {
        "id": comment.id,
        "author": comment.author,
        "created": comment.created,
        "content": comment.content,
        "status": status.value,
        "anchor": anchor_record,
    }
