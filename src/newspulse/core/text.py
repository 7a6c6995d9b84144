"""Free-text sanitizing for feed fields."""

from __future__ import annotations

import re

DEFAULT_AGGREGATOR_OUTLET = "Google News"
SUMMARY_CHARS = 200

_TAG_RE = re.compile(r"<[^>]*>")
_AGGREGATOR_TITLE_RE = re.compile(r"^(.*)\s+-\s+([^-]+)$")

# Decoded in order after tags are removed.
_ENTITIES = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&#39;", "'"),
    ("&quot;", '"'),
)


def strip_html(text: str) -> str:
    """Remove markup and decode the common HTML entities."""

    cleaned = _TAG_RE.sub("", text)
    for entity, replacement in _ENTITIES:
        cleaned = cleaned.replace(entity, replacement)
    return cleaned.strip()


def truncate(text: str, max_length: int) -> str:
    """Clip text to max_length characters, ending with "..." when cut."""

    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def sanitize_summary(raw: object, max_length: int = SUMMARY_CHARS) -> str:
    if raw is None:
        return ""
    return truncate(strip_html(str(raw)), max_length)


def split_aggregator_title(title: str) -> tuple[str, str]:
    """Split "Headline - Outlet" into (headline, outlet).

    Titles without a trailing " - Outlet" keep their text and get the
    default aggregator label as outlet.
    """

    match = _AGGREGATOR_TITLE_RE.match(title)
    if match:
        return match.group(1).strip(), match.group(2).strip()
    return title, DEFAULT_AGGREGATOR_OUTLET
