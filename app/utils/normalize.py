"""
Field normalization helpers

Request bodies are trimmed and, where the value acts as a lookup key,
lowercased before they reach the store.
"""

from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional


def utc_now() -> datetime:
    """Get current UTC datetime (timezone-aware)"""
    return datetime.now(timezone.utc)


def clean_str(value: Any) -> Optional[str]:
    """Trim a string value; blank strings become None, non-strings pass through."""
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    value = value.strip()
    return value or None


def normalize_key(value: Any) -> Optional[str]:
    """Trim and lowercase a value used for equality lookups (emails, names, roles)."""
    value = clean_str(value)
    if isinstance(value, str):
        return value.lower()
    return value


def split_csv(value: Optional[str]) -> List[str]:
    """'politics, sports,' -> ['politics', 'sports']"""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def dedupe(values: Iterable[str]) -> List[str]:
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen
