"""Small text helpers shared across the package."""

from __future__ import annotations


def split_string(text: str, delimiter: str) -> list[str]:
    """Split *text* on *delimiter*, dropping empty fields."""
    return [token for token in text.split(delimiter) if token]