"""Utility helpers."""

from .log import configure_logging
from .urls import normalize_url, resolve_link, site_root

__all__ = ["configure_logging", "normalize_url", "resolve_link", "site_root"]
