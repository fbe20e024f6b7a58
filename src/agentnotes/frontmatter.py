"""Legacy YAML frontmatter in note files.

Older notes kept their metadata (tags, comments, comment revision) in a
``---`` delimited YAML block at the top of the markdown file. Metadata now
lives in the ``.json`` sidecar; this module recognizes the old layout so
the store can migrate such notes on first read.
"""

import re
from typing import Any

import yaml

# Keys that identify a frontmatter block as note metadata rather than content
LEGACY_FRONTMATTER_FIELDS = frozenset(
    {"id", "title", "tags", "created", "updated", "source", "comment_rev", "comments"}
)

_FRONTMATTER_PATTERN = re.compile(r"^---[ \t]*\n([\s\S]*?)\n---[ \t]*(?:\n|$)([\s\S]*)$")


def parse_frontmatter(content: str) -> tuple[dict[str, Any] | None, str]:
    """Split YAML frontmatter from markdown content.

    Args:
        content: Full markdown file content (LF line endings)

    Returns:
        Tuple of (frontmatter_dict, body_content). frontmatter_dict is None
        when there is no block or it is not a YAML mapping, in which case
        body_content is the whole input.

    Examples:
        >>> meta, body = parse_frontmatter("---\\ntags: [a]\\n---\\n# Title")
        >>> meta
        {'tags': ['a']}
        >>> body
        '# Title'
    """
    match = _FRONTMATTER_PATTERN.match(content)
    if not match:
        return None, content

    try:
        frontmatter = yaml.safe_load(match.group(1))
    except yaml.YAMLError:
        return None, content

    if not isinstance(frontmatter, dict):
        return None, content
    return frontmatter, match.group(2)


def has_legacy_fields(frontmatter: dict[str, Any] | None) -> bool:
    """True if ``frontmatter`` carries any note metadata key."""
    if not frontmatter:
        return False
    return any(key in frontmatter for key in LEGACY_FRONTMATTER_FIELDS)
