"""Tests for note file and sidecar I/O."""

import json
from pathlib import Path

import pytest

from agentnotes.anchors import hash_quote
from agentnotes.models import CommentAffinity, CommentStatus, NoteComment
from agentnotes.storage import (
    extract_note_title,
    normalize_content,
    normalize_tags,
    parse_anchor,
    parse_comments,
    parse_note_file,
    read_sidecar_data,
    write_sidecar,
)


def write_note(directory: Path, name: str, content: str, sidecar=None) -> Path:
    note_path = directory / name
    note_path.write_text(content, encoding="utf-8")
    if sidecar is not None:
        note_path.with_suffix(".json").write_text(json.dumps(sidecar), encoding="utf-8")
    return note_path


def read_json(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))


class TestNormalization:
    def test_normalize_content(self):
        assert normalize_content("a\r\nb\n\n") == "a\nb"
        assert normalize_content("  keep leading") == "  keep leading"

    def test_normalize_tags(self):
        assert normalize_tags([" design ", "Design", "", "  ", "todo"]) == ["design", "todo"]


class TestParseAnchor:
    """Tests for parse_anchor() and its fallbacks."""

    content = "the quick brown fox"

    def test_range_keys(self):
        anchor = parse_anchor({"from": 4, "to": 9, "rev": 2}, self.content, 5)
        assert (anchor.from_, anchor.to, anchor.rev) == (4, 9, 2)

    def test_legacy_start_end(self):
        anchor = parse_anchor({"start": 10, "end": 15}, self.content, 1)
        assert (anchor.from_, anchor.to) == (10, 15)

    def test_legacy_exact_text(self):
        anchor = parse_anchor({"exact": "brown"}, self.content, 1)

        assert (anchor.from_, anchor.to) == (10, 15)
        assert anchor.quote == "brown"

    def test_ambiguous_exact_text_gives_empty_range(self):
        anchor = parse_anchor({"exact": "o"}, self.content, 1)
        assert (anchor.from_, anchor.to) == (0, 0)

    def test_reversed_range_falls_through(self):
        anchor = parse_anchor({"from": 9, "to": 4, "start": 0, "end": 3}, self.content, 1)
        assert (anchor.from_, anchor.to) == (0, 3)

    def test_camel_case_keys(self):
        anchor = parse_anchor(
            {"from": 4, "to": 9, "startAffinity": "before", "quoteHash": "abc"}, self.content, 1
        )

        assert anchor.start_affinity == CommentAffinity.BEFORE
        assert anchor.quote_hash == "abc"

    def test_missing_rev_uses_fallback(self):
        assert parse_anchor({"from": 0, "to": 3}, self.content, 7).rev == 7

    def test_offsets_clamped_to_content(self):
        anchor = parse_anchor({"from": 15, "to": 500}, self.content, 1)
        assert (anchor.from_, anchor.to) == (15, 19)

    def test_non_mapping(self):
        anchor = parse_anchor("nonsense", self.content, 4)
        assert (anchor.from_, anchor.to, anchor.rev) == (0, 0, 4)


class TestParseComments:
    def test_non_list(self):
        assert parse_comments({"id": "x"}, "content", 1) == []

    def test_non_mapping_entry_becomes_detached(self):
        comments = parse_comments(["junk"], "content", 2)

        assert len(comments) == 1
        assert comments[0].status == CommentStatus.DETACHED
        assert comments[0].anchor.rev == 2

    def test_fields_read_leniently(self):
        comments = parse_comments(
            [
                {
                    "id": "c1",
                    "author": 42,
                    "created": "2024-05-01T12:00:00+02:00",
                    "content": "nice",
                    "status": "weird",
                    "anchor": {"from": 0, "to": 4},
                }
            ],
            "content",
            1,
        )

        comment = comments[0]
        assert comment.id == "c1"
        assert comment.author == ""
        assert comment.created == "2024-05-01T10:00:00Z"
        assert comment.status is None

    def test_invalid_created_replaced(self):
        comment = parse_comments([{"created": "yesterday"}], "content", 1)[0]
        assert comment.created.endswith("Z")
        assert comment.created != "yesterday"


class TestSidecarIO:
    def test_round_trip(self, tmp_path):
        note_path = write_note(tmp_path, "note.md", "hello")
        comment = NoteComment(id="c1", status=CommentStatus.ATTACHED)

        write_sidecar(note_path, ["a", "A", "b"], [comment], 3)

        data = read_sidecar_data(note_path)
        assert data["tags"] == ["a", "b"]
        assert data["comment_rev"] == 3
        assert data["comments"][0]["id"] == "c1"

    def test_missing_sidecar(self, tmp_path):
        assert read_sidecar_data(tmp_path / "note.md") == {}

    def test_corrupt_sidecar_warns(self, tmp_path, capsys):
        note_path = write_note(tmp_path, "note.md", "hello")
        note_path.with_suffix(".json").write_text("{not json")

        assert read_sidecar_data(note_path) == {}
        assert "Warning: Could not read sidecar" in capsys.readouterr().err

    def test_non_object_sidecar_warns(self, tmp_path, capsys):
        note_path = write_note(tmp_path, "note.md", "hello", sidecar=[1, 2])

        assert read_sidecar_data(note_path) == {}
        assert "not a JSON object" in capsys.readouterr().err


class TestExtractNoteTitle:
    @pytest.mark.parametrize(
        ("content", "expected"),
        [
            ("# My Note\n\nbody", "My Note"),
            ("#  Spaced  \nbody", "Spaced"),
            ("#hashtag", "fallback"),
            ("## Sub heading", "fallback"),
            ("plain text", "fallback"),
            ("# ", "fallback"),
        ],
    )
    def test_title(self, content, expected):
        assert extract_note_title(content, Path("fallback.md")) == expected


class TestParseNoteFile:
    """Tests for parse_note_file()."""

    def test_creates_missing_sidecar(self, tmp_path):
        note_path = write_note(tmp_path, "idea.md", "# Idea\r\n\r\ntext\n")

        note = parse_note_file(note_path, "idea.md")

        assert note.id == "idea.md"
        assert note.title == "Idea"
        assert note.content == "# Idea\n\ntext"
        assert note.directory == ""
        assert read_json(tmp_path / "idea.json") == {"tags": [], "comments": []}

    def test_comments_normalized_and_revision_backfilled(self, tmp_path):
        """Notes with comments always have a revision of at least 1."""
        note_path = write_note(
            tmp_path,
            "idea.md",
            "hello world",
            sidecar={"tags": ["x"], "comments": [{"id": "c1", "anchor": {"from": 6, "to": 11}}]},
        )

        note = parse_note_file(note_path, "idea.md")

        assert note.comment_rev == 1
        comment = note.comments[0]
        assert comment.status == CommentStatus.ATTACHED
        assert comment.anchor.rev == 1
        assert comment.anchor.quote == "world"
        assert comment.anchor.quote_hash == hash_quote("world")

    def test_existing_sidecar_not_rewritten(self, tmp_path):
        sidecar = {"tags": ["x"], "comments": [{"id": "c1", "anchor": {"from": 6, "to": 11}}]}
        note_path = write_note(tmp_path, "idea.md", "hello world", sidecar=sidecar)

        parse_note_file(note_path, "idea.md")

        assert read_json(tmp_path / "idea.json") == sidecar

    def test_directory_from_relative_path(self, tmp_path):
        (tmp_path / "work").mkdir()
        note_path = write_note(tmp_path / "work", "plan.md", "text")

        note = parse_note_file(note_path, "work/plan.md")

        assert note.directory == "work"
        assert note.filename == "plan.md"

    def test_migrates_legacy_frontmatter(self, tmp_path):
        note_path = write_note(
            tmp_path,
            "old.md",
            "---\ntags: [legacy]\ncomment_rev: 2\n---\n# Old\n\nbody\n",
        )

        note = parse_note_file(note_path, "old.md")

        assert note.tags == ["legacy"]
        assert note.comment_rev == 2
        assert note.content == "# Old\n\nbody"
        assert note_path.read_text(encoding="utf-8") == "# Old\n\nbody"
        assert read_json(tmp_path / "old.json") == {"tags": ["legacy"], "comment_rev": 2, "comments": []}

    def test_sidecar_wins_over_frontmatter(self, tmp_path):
        note_path = write_note(
            tmp_path, "old.md", "---\ntags: [legacy]\n---\nbody", sidecar={"tags": ["new"]}
        )

        assert parse_note_file(note_path, "old.md").tags == ["new"]

    def test_non_metadata_frontmatter_is_content(self, tmp_path):
        content = "---\nlayout: post\n---\nbody"
        note_path = write_note(tmp_path, "post.md", content)

        note = parse_note_file(note_path, "post.md")

        assert note.content == content
        assert note_path.read_text(encoding="utf-8") == content
