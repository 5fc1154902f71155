"""Normalization helpers shared by matching, filtering and analytics."""

import re
from typing import Iterable, Optional

_SOURCE_DISALLOWED = re.compile(r"[^a-z0-9_-]")
MAX_SOURCE_LENGTH = 64


def normalize(value: str) -> str:
    return value.strip().lower()


def to_normalized_set(values: Optional[Iterable[str]]) -> set[str]:
    """Lowercase/trim every value and drop the empty ones."""
    return {normalize(v) for v in (values or []) if isinstance(v, str) and normalize(v)}


def sanitize_source(source: Optional[str]) -> str:
    """Reduce an acquisition source to ``[a-z0-9_-]{1,64}`` or ``"unknown"``.

    Non-string input (numbers, lists from a JSON body) counts as missing.
    """
    value = normalize(source) if isinstance(source, str) else ""
    if not value:
        return "unknown"
    return _SOURCE_DISALLOWED.sub("", value)[:MAX_SOURCE_LENGTH] or "unknown"


def normalize_opportunity_type(raw: Optional[str]) -> Optional[str]:
    """Map the loose type spellings used in URLs onto enum values."""
    if not raw:
        return None
    value = raw.strip().lower()
    if value in ("job", "jobs"):
        return "JOB"
    if value in ("internship", "internships"):
        return "INTERNSHIP"
    if value in ("walk-in", "walkin", "walkins", "walk-ins"):
        return "WALKIN"
    return raw.strip().upper()
