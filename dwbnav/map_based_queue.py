"""A priority queue that groups items into bins of equal priority."""

from __future__ import annotations

from bisect import bisect_left
from typing import Generic, TypeVar

T = TypeVar("T")


class MapBasedQueue(Generic[T]):
    """Priority queue keyed by float priority, lowest priority first.

    Items sharing a priority live in one bin and come out last-in first-out.
    Iteration does not re-sort after every pop, so it is cheap when many
    items share few priorities. With ``reset_bins=False`` empty bins are kept
    across resets, which saves recreating them when the same priorities recur.
    """

    def __init__(self, reset_bins: bool = True) -> None:
        self._reset_bins = reset_bins
        self._bins: dict[float, list[T]] = {}
        self._keys: list[float] = []
        self._count = 0
        self._pos: int | None = None
        self.reset()

    def reset(self) -> None:
        """Clear the queue."""
        if self._reset_bins or self._count > 0:
            self._bins.clear()
            self._keys.clear()
            self._count = 0
        self._pos = None

    def enqueue(self, priority: float, item: T) -> None:
        """Add ``item`` with the given priority."""
        bin_ = self._bins.get(priority)
        if bin_ is None:
            bin_ = []
            self._bins[priority] = bin_
            idx = bisect_left(self._keys, priority)
            self._keys.insert(idx, priority)
            if self._pos is not None and idx <= self._pos:
                self._pos += 1
        bin_.append(item)
        self._count += 1
        if self._pos is None or priority < self._keys[self._pos]:
            self._pos = bisect_left(self._keys, priority)

    def is_empty(self) -> bool:
        """True when no items are queued."""
        return self._count == 0

    def __len__(self) -> int:
        return self._count

    def front(self) -> T:
        """Return the item with the lowest priority without removing it."""
        if self._pos is None:
            raise IndexError("front() called on empty MapBasedQueue")
        bin_ = self._bins[self._keys[self._pos]]
        if not bin_:
            raise IndexError("front() called on empty MapBasedQueue")
        return bin_[-1]

    def pop(self) -> None:
        """Remove the item at the front of the queue."""
        if self._pos is None:
            return
        bin_ = self._bins[self._keys[self._pos]]
        if bin_:
            bin_.pop()
            self._count -= 1
        pos = self._pos
        while pos < len(self._keys) and not self._bins[self._keys[pos]]:
            pos += 1
        self._pos = pos if pos < len(self._keys) else None