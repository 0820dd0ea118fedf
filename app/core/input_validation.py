# app/core/input_validation.py
"""
Input validation and sanitization
Slugs, guest-supplied text and query parameters
"""

import re
from typing import Optional

import bleach

from app.core.constants import SortMode, MAX_COMMENT_LENGTH

SLUG_PATTERN = re.compile(r"[a-z0-9-]+")
MIN_SLUG_LENGTH = 3


def slug_problem(slug: str) -> Optional[str]:
    """Return why a slug is unusable ('invalid_format' / 'too_short'), or None"""
    if not slug or not SLUG_PATTERN.fullmatch(slug):
        return "invalid_format"
    if len(slug) < MIN_SLUG_LENGTH:
        return "too_short"
    return None


def is_valid_slug(slug: str) -> bool:
    return slug_problem(slug) is None


def sanitize_text(text: Optional[str], max_length: int = MAX_COMMENT_LENGTH) -> str:
    """Strip HTML and null bytes, trim and truncate"""
    if not text or not isinstance(text, str):
        return ""
    clean = bleach.clean(text, tags=[], strip=True)
    clean = clean.replace("\x00", "").strip()
    return clean[:max_length]


def normalize_sort(sort: Optional[str]) -> SortMode:
    try:
        return SortMode(sort)
    except ValueError:
        return SortMode.LATEST
