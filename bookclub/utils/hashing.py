"""Deterministic string hashing for stable bucket selection."""
from __future__ import annotations

_MASK_32 = 0xFFFFFFFF
_SIGN_BIT = 0x80000000


def string_hash(value: str) -> int:
    """Return the signed 32-bit ``h * 31 + code`` reduction of ``value``.

    Iterates UTF-16 code units (matching ``String.charCodeAt`` and Java's
    ``String.hashCode``), so astral characters contribute their surrogate
    pair rather than a single code point.
    """
    h = 0
    data = (value or "").encode("utf-16-le", "surrogatepass")
    for idx in range(0, len(data), 2):
        code_unit = data[idx] | (data[idx + 1] << 8)
        h = (h * 31 + code_unit) & _MASK_32
    if h & _SIGN_BIT:
        h -= 1 << 32
    return h


def stable_bucket(value: str, buckets: int) -> int:
    """Map ``value`` to ``[0, buckets)`` via ``abs(string_hash(value)) % buckets``."""
    if buckets <= 0:
        raise ValueError("buckets_positive")
    return abs(string_hash(value)) % buckets


__all__ = ["string_hash", "stable_bucket"]
