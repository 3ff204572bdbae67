"""Utility helpers."""

from .pagination import clamp_page_size
from .timeutils import Clock, get_clock, minutes_ceil, to_millis, utcnow

__all__ = ["Clock", "clamp_page_size", "get_clock", "minutes_ceil", "to_millis", "utcnow"]
