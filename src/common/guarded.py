"""
Thread Safety Utilities

Provides a mutex-protected cell for lazily created shared state.
"""

from __future__ import annotations

import threading
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar('T')


class GuardedCell(Generic[T]):
    """
    Lazily populated value behind a single lock.

    Unlike a double-checked singleton, every access takes the lock, so a
    caller can make check -> create -> use one critical section.

    Example:
        cell = GuardedCell()

        with cell:
            value = cell.get_or_create(expensive_parse)
            output = render(value)

        cell.clear()
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._value: Optional[T] = None

    def __enter__(self):
        self._lock.acquire()
        return self

    def __exit__(self, *args):
        self._lock.release()

    @property
    def is_set(self) -> bool:
        return self._value is not None

    def peek(self) -> Optional[T]:
        """Return the current value; caller must hold the lock."""
        return self._value

    def get_or_create(self, factory: Callable[[], Optional[T]]) -> Optional[T]:
        """
        Return the value, calling factory if it is unset.

        Caller must hold the lock. A factory returning None (or raising)
        leaves the cell unset so the next call tries again.
        """
        if self._value is None:
            self._value = factory()
        return self._value

    def clear(self) -> Optional[T]:
        """Drop the value under the lock and return what was held."""
        with self._lock:
            value, self._value = self._value, None
        return value
