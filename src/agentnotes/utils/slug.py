"""Filename slugs for new notes."""

import re


def slugify(text: str) -> str:
    """Convert a note title to a filename slug.

    Only ASCII letters and digits survive; spaces, hyphens and underscores
    become single hyphens and every other character is dropped.

    Examples:
        >>> slugify("Meeting Notes")
        'meeting-notes'
        >>> slugify("v2.0 Release!")
        'v20-release'
        >>> slugify("  __Draft__  ")
        'draft'
    """
    text = text.strip().lower()
    text = re.sub(r"[^a-z0-9 _-]", "", text)
    text = re.sub(r"[ _-]+", "-", text)
    return text.strip("-")
