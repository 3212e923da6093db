"""Permission checks for API token scopes. Pure functions, no I/O."""

from __future__ import annotations

from collections.abc import Iterable


def has_permission(granted: Iterable[str], required: str) -> bool:
    """True if the required permission was granted."""
    return required in set(granted)


def has_any(granted: Iterable[str], required: Iterable[str]) -> bool:
    """True if at least one required permission was granted."""
    return not set(granted).isdisjoint(required)


def has_all(granted: Iterable[str], required: Iterable[str]) -> bool:
    """True if every required permission was granted. Vacuously true for none."""
    return set(required) <= set(granted)
