"""Tests for the lenient pydantic models and sidecar serialization."""

import math

from agentnotes.models import (
    CommentAffinity,
    CommentAnchor,
    CommentStatus,
    NoteComment,
    NoteSidecar,
)


class TestCommentAnchor:
    """Tests for CommentAnchor input coercion."""

    def test_accepts_from_alias_and_field_name(self):
        assert CommentAnchor.model_validate({"from": 3, "to": 5}).from_ == 3
        assert CommentAnchor(from_=3, to=5).from_ == 3

    def test_coerces_bad_numbers(self):
        anchor = CommentAnchor.model_validate(
            {"from": -3, "to": 4.7, "rev": "x", "start_affinity": "sideways"}
        )

        assert anchor.from_ == 0
        assert anchor.to == 4
        assert anchor.rev == 0
        assert anchor.start_affinity is None

    def test_rejects_bool_and_non_finite(self):
        anchor = CommentAnchor.model_validate({"from": True, "to": math.inf, "rev": math.nan})
        assert (anchor.from_, anchor.to, anchor.rev) == (0, 0, 0)

    def test_affinity_values(self):
        anchor = CommentAnchor.model_validate({"start_affinity": "before", "end_affinity": "after"})
        assert anchor.start_affinity == CommentAffinity.BEFORE
        assert anchor.end_affinity == CommentAffinity.AFTER

    def test_non_string_quote_dropped(self):
        anchor = CommentAnchor.model_validate({"quote": 12, "quote_hash": ["x"]})
        assert anchor.quote is None
        assert anchor.quote_hash is None


class TestNoteComment:
    def test_defaults(self):
        comment = NoteComment()

        assert len(comment.id) == 26
        assert comment.created.endswith("Z")
        assert comment.status is None
        assert comment.anchor == CommentAnchor()

    def test_unknown_status_dropped(self):
        assert NoteComment(status="bogus").status is None
        assert NoteComment(status="stale").status == CommentStatus.STALE


class TestNoteSidecar:
    """Tests for NoteSidecar.to_record()."""

    def test_fresh_sidecar_is_minimal(self):
        assert NoteSidecar().to_record() == {"tags": [], "comments": []}

    def test_comment_record_layout(self):
        comment = NoteComment(
            id="c1",
            author="ana",
            created="2024-05-01T10:00:00Z",
            content="check this",
            status=CommentStatus.STALE,
            anchor=CommentAnchor(from_=6, to=11, rev=2, quote="world", quote_hash="abc"),
        )

        record = NoteSidecar(tags=["x"], comment_rev=2, comments=[comment]).to_record()

        assert record == {
            "tags": ["x"],
            "comment_rev": 2,
            "comments": [
                {
                    "id": "c1",
                    "author": "ana",
                    "created": "2024-05-01T10:00:00Z",
                    "content": "check this",
                    "status": "stale",
                    "anchor": {
                        "from": 6,
                        "to": 11,
                        "rev": 2,
                        "start_affinity": "after",
                        "end_affinity": "before",
                        "quote": "world",
                        "quote_hash": "abc",
                    },
                }
            ],
        }

    def test_missing_status_derived_and_empty_quote_omitted(self):
        comment = NoteComment(id="c1", anchor=CommentAnchor(from_=4, to=4))

        record = NoteSidecar(comments=[comment]).to_record()["comments"][0]

        assert record["status"] == "detached"
        assert "quote" not in record["anchor"]
        assert "quote_hash" not in record["anchor"]
