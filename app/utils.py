"""Utility helpers for the Marvel addon service."""

from __future__ import annotations

import re
import unicodedata
from typing import Any


YEAR_RE = re.compile(r"^(\d{4})(?:-\d{2}-\d{2})?$")
SEASON_SUFFIX_RE = re.compile(r"\s+Season\s+\d+\s*$", re.IGNORECASE)


def slugify(value: str) -> str:
    """Return a URL-friendly slug."""

    value = unicodedata.normalize("NFKD", value)
    value = value.encode("ascii", "ignore").decode("ascii")
    value = re.sub(r"[^a-zA-Z0-9]+", "-", value)
    value = value.strip("-")
    value = re.sub(r"-+", "-", value)
    return value.lower() or "title"


def extract_year(value: Any) -> int | None:
    """Return the year of a ``YYYY`` or ``YYYY-MM-DD`` string.

    Anything else, including ``"TBA"``, blanks and non-string values, is
    reported as unknown.
    """

    if not isinstance(value, str):
        return None
    match = YEAR_RE.match(value.strip())
    if not match:
        return None
    return int(match.group(1))


def strip_season_suffix(title: str) -> str:
    """Drop a trailing ``Season N`` marker from a series title."""

    return SEASON_SUFFIX_RE.sub("", title).strip()


def mask_key(key: str | None) -> str:
    """Return a log-safe representation of an API key."""

    if not key:
        return "<none>"
    return f"{key[:4]}..."


def year_from_date(value: Any) -> str | None:
    """Return the leading year component of an upstream date string."""

    if not isinstance(value, str) or len(value) < 4:
        return None
    head = value.split("-", 1)[0]
    if len(head) == 4 and head.isdigit():
        return head
    return None
