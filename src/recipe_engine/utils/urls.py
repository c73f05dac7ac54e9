"""URL normalization helpers."""

from __future__ import annotations

from urllib.parse import urljoin, urlsplit, urlunsplit

_SKIPPED_SCHEMES = ("mailto:", "javascript:", "tel:", "data:")


def normalize_url(url: str) -> str:
    """Canonical form used for duplicate detection: lowercase, no query, no fragment."""

    cleaned = url.strip().lower()
    if not cleaned:
        return ""
    parts = urlsplit(cleaned)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def resolve_link(base_url: str, href: str | None) -> str | None:
    """Resolve ``href`` against ``base_url``; returns None for non-HTTP links."""

    if href is None:
        return None
    href = href.strip()
    if not href or href.startswith("#") or href.lower().startswith(_SKIPPED_SCHEMES):
        return None
    absolute = urljoin(base_url, href)
    parts = urlsplit(absolute)
    if parts.scheme not in {"http", "https"} or not parts.netloc:
        return None
    return urlunsplit((parts.scheme, parts.netloc, parts.path or "/", parts.query, ""))


def site_root(url: str) -> str:
    """Return ``scheme://host`` of ``url``."""

    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.hostname or parts.netloc}"
