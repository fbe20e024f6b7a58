"""Tests for legacy YAML frontmatter detection."""

from agentnotes.frontmatter import has_legacy_fields, parse_frontmatter


class TestParseFrontmatter:
    """Tests for parse_frontmatter function."""

    def test_parse_valid_frontmatter(self):
        content = """---
tags: [design, draft]
comment_rev: 2
---
# Plan

Body text."""

        frontmatter, body = parse_frontmatter(content)

        assert frontmatter == {"tags": ["design", "draft"], "comment_rev": 2}
        assert body == "# Plan\n\nBody text."

    def test_no_frontmatter(self):
        content = "# Plan\n\n---\nnot frontmatter"
        assert parse_frontmatter(content) == (None, content)

    def test_unterminated_block(self):
        content = "---\ntags: [a]\n# Plan"
        assert parse_frontmatter(content) == (None, content)

    def test_block_at_end_of_file(self):
        frontmatter, body = parse_frontmatter("---\ntags: [a]\n---")
        assert frontmatter == {"tags": ["a"]}
        assert body == ""

    def test_invalid_yaml(self):
        content = "---\ntags: [unclosed\n---\nbody"
        assert parse_frontmatter(content) == (None, content)

    def test_non_mapping_yaml(self):
        """A YAML list or scalar is not metadata."""
        content = "---\n- a\n- b\n---\nbody"
        assert parse_frontmatter(content) == (None, content)


class TestHasLegacyFields:
    def test_detects_metadata_keys(self):
        assert has_legacy_fields({"tags": []})
        assert has_legacy_fields({"comments": [], "layout": "post"})

    def test_ignores_other_frontmatter(self):
        assert not has_legacy_fields({"layout": "post"})
        assert not has_legacy_fields({})
        assert not has_legacy_fields(None)
