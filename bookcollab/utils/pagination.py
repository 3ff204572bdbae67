"""Page-size handling shared by the listing endpoints."""

from typing import Any


def clamp_page_size(value: Any, default: int, maximum: int) -> int:
    """
    Coerce a requested page size into ``1..maximum``.

    Missing, zero or non-numeric values fall back to ``default``.
    """
    try:
        size = int(value) if value is not None else 0
    except (TypeError, ValueError):
        size = 0
    if size == 0:
        size = default
    return max(1, min(maximum, size))
