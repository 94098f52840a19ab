"""Text sanitization utilities to prevent XSS attacks."""

import html
import re


def sanitize_text(value: str | None) -> str | None:
    """Sanitize user-supplied text to prevent stored XSS.

    HTML-escapes dangerous characters (&, <, >, ", ') so that
    user input is safe to render in a browser without being
    interpreted as HTML/JavaScript.

    Use on free-text fields (notes, descriptions, bios) that the
    console renders back.
    """
    if value is None:
        return None
    return html.escape(value, quote=True)


def normalize_tags(tags: list[str] | None) -> list[str]:
    """Trim tags, drop empty ones and de-duplicate while keeping order."""
    seen: list[str] = []
    for tag in tags or []:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Lower-case the name and collapse runs of non-alphanumerics into '-'."""
    return _NON_ALNUM.sub("-", name.lower()).strip("-")
