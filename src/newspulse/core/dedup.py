"""Deduplication helpers (core domain)."""

from __future__ import annotations

import hashlib
import re
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

TRACKING_QUERY_PARAMS = frozenset(
    {
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_content",
        "utm_term",
    }
)


def _collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def normalize_title(title: str) -> str:
    """Normalize a headline for equality checks (case and spacing insensitive)."""

    return _collapse_whitespace(title).lower()


def normalize_url(url: str) -> str:
    """Strip tracking query parameters and the fragment from a URL.

    Scheme and host are lowercased; remaining query parameters keep their
    original order. Anything that is not an absolute URL is returned as-is.
    """

    raw = url.strip()
    try:
        parsed = urlparse(raw)
    except ValueError:
        return raw
    if not parsed.scheme or not parsed.netloc:
        return raw

    kept = [
        (key, value)
        for key, value in parse_qsl(parsed.query, keep_blank_values=True)
        if key.lower() not in TRACKING_QUERY_PARAMS
    ]
    return urlunparse(
        (
            parsed.scheme.lower(),
            parsed.netloc.lower(),
            parsed.path or "/",
            parsed.params,
            urlencode(kept, doseq=True),
            "",
        )
    )


def compute_content_hash(url: str, title: str) -> str:
    """Return the dedup key for a (url, title) pair."""

    payload = f"{normalize_url(url)}|{normalize_title(title)}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
