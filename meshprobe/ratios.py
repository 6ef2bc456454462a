"""Small helpers for checking traffic ratios and generating names."""

from __future__ import annotations

__all__ = ["is_within_percentage", "generate_strings"]


def is_within_percentage(count: int, total: int, rate: float, tolerance: float) -> bool:
    """Tell whether ``count`` out of ``total`` lies within ``rate`` plus or minus ``tolerance``.

    Both bounds are truncated towards zero before comparing.
    """
    minimum = int((rate - tolerance) * total)
    maximum = int((rate + tolerance) * total)
    return minimum <= count <= maximum


def generate_strings(prefix: str, count: int) -> list[str]:
    """Return ``count`` strings made of ``prefix`` followed by 0, 1, 2, ..."""
    if count < 0:
        raise ValueError(f"count must not be negative: {count}")
    return [f"{prefix}{number}" for number in range(count)]