"""Shared utility functions used across the curator."""

from __future__ import annotations


def truncate(text: str, limit: int) -> str:
    """Cut *text* to *limit* characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return f"{text[:limit]}..."


def year_of(date_value: str | None) -> str | None:
    """Return the year part of a "YYYY" or "YYYY-MM" date string."""
    if not date_value:
        return None
    return date_value.split("-")[0]


def format_date_range(start: str, end: str | None = None) -> str:
    """Format a period as "2020–2023", or "2022–Present" when *end* is missing."""
    return f"{year_of(start)}–{year_of(end) or 'Present'}"
