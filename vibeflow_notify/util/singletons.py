"""Reset hooks for module-level singletons (used for test isolation)."""

from __future__ import annotations

from collections.abc import Callable

_resetters: list[Callable[[], None]] = []


def register_singleton(reset: Callable[[], None]) -> None:
    """Register *reset* to be called by :func:`reset_all_singletons`."""
    _resetters.append(reset)


def reset_all_singletons() -> None:
    for reset in list(_resetters):
        reset()
