"""Object key allocation."""

from __future__ import annotations

from uuid import UUID, uuid4


def new_key() -> str:
    """Return a fresh random object key (UUID4, 122 random bits)."""
    return str(uuid4())


def is_key(value: str) -> bool:
    """Whether ``value`` has the shape of a key produced by :func:`new_key`."""
    try:
        parsed = UUID(value)
    except (TypeError, ValueError, AttributeError):
        return False
    return parsed.version == 4 and str(parsed) == value


__all__ = ["new_key", "is_key"]
