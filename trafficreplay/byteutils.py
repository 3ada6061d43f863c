"""Range-based helpers for editing byte strings."""

from __future__ import annotations


def _check_range(data: bytes, start: int, end: int) -> None:
    if not 0 <= start <= end <= len(data):
        raise IndexError(f"range [{start}:{end}] out of bounds for length {len(data)}")


def cut(data: bytes, start: int, end: int) -> bytes:
    """Return ``data`` with the bytes in ``[start, end)`` removed."""
    _check_range(data, start, end)
    return bytes(data[:start]) + bytes(data[end:])


def insert(data: bytes, index: int, chunk: bytes) -> bytes:
    """Return ``data`` with ``chunk`` inserted at ``index``."""
    _check_range(data, index, index)
    return bytes(data[:index]) + bytes(chunk) + bytes(data[index:])


def replace(data: bytes, start: int, end: int, new: bytes) -> bytes:
    """Return ``data`` with the range ``[start, end)`` replaced by ``new``."""
    _check_range(data, start, end)
    return bytes(data[:start]) + bytes(new) + bytes(data[end:])