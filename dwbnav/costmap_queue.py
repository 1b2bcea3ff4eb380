"""Breadth-first expansion over a grid, ordered by distance to source cells."""

from __future__ import annotations

import math
import sys
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Protocol

from dwbnav.map_based_queue import MapBasedQueue


class GridLike(Protocol):
    size_x: int
    size_y: int

    def index(self, x: int, y: int) -> int: ...


@dataclass(frozen=True)
class GridSize:
    """Dimensions of a row-major grid of cells."""

    size_x: int
    size_y: int

    def index(self, x: int, y: int) -> int:
        """Linear index of cell (x, y)."""
        return y * self.size_x + x


@dataclass
class CellData:
    """A cell reached during expansion and the source cell nearest to it."""

    distance: float = sys.float_info.max
    index: int = 0
    x: int = 0
    y: int = 0
    src_x: int = 0
    src_y: int = 0


class CostmapQueue(MapBasedQueue[CellData]):
    """Yields every grid cell in order of its distance to the nearest enqueued cell.

    Enqueue a set of source cells, then drain the queue with
    :meth:`get_next_cell` or by iterating. Distances are Euclidean unless
    ``manhattan`` is set. Subclasses may restrict expansion by overriding
    :meth:`valid_cell_to_queue`.
    """

    def __init__(self, costmap: GridLike, manhattan: bool = False) -> None:
        self._costmap = costmap
        self._manhattan = manhattan
        self._max_distance = -1
        self._cached_max_distance = -1
        self._cached_distances: list[list[float]] = []
        self._seen: list[bool] = []
        super().__init__()

    def reset(self) -> None:
        """Clear the queue and forget which cells have been seen."""
        self._seen = [False] * (self._costmap.size_x * self._costmap.size_y)
        self._compute_cache()
        super().reset()

    def enqueue_cell(self, x: int, y: int) -> None:
        """Add cell (x, y) as a source cell."""
        self._enqueue_cell(self._costmap.index(x, y), x, y, x, y)

    def get_next_cell(self) -> CellData:
        """Pop the nearest cell and enqueue its four neighbours."""
        cell = self.front()
        self.pop()

        index, mx, my = cell.index, cell.x, cell.y
        sx, sy = cell.src_x, cell.src_y
        size_x = self._costmap.size_x
        if mx > 0:
            self._enqueue_cell(index - 1, mx - 1, my, sx, sy)
        if my > 0:
            self._enqueue_cell(index - size_x, mx, my - 1, sx, sy)
        if mx < size_x - 1:
            self._enqueue_cell(index + 1, mx + 1, my, sx, sy)
        if my < self._costmap.size_y - 1:
            self._enqueue_cell(index + size_x, mx, my + 1, sx, sy)
        return cell

    def valid_cell_to_queue(self, cell: CellData) -> bool:
        """Whether ``cell`` may be queued; always true here."""
        return True

    def __iter__(self) -> Iterator[CellData]:
        while not self.is_empty():
            yield self.get_next_cell()

    def _enqueue_cell(self, index: int, cur_x: int, cur_y: int, src_x: int, src_y: int) -> None:
        if self._seen[index]:
            return
        distance = self._cached_distances[abs(cur_x - src_x)][abs(cur_y - src_y)]
        data = CellData(distance, index, cur_x, cur_y, src_x, src_y)
        if self.valid_cell_to_queue(data):
            self._seen[index] = True
            self.enqueue(distance, data)

    def _compute_cache(self) -> None:
        if self._max_distance == -1:
            self._max_distance = max(self._costmap.size_x, self._costmap.size_y)
        if self._max_distance == self._cached_max_distance:
            return
        # One cell beyond the limit so neighbours of the last valid cells can be looked up.
        n = self._max_distance + 2
        if self._manhattan:
            self._cached_distances = [[float(i + j) for j in range(n)] for i in range(n)]
        else:
            self._cached_distances = [[math.hypot(i, j) for j in range(n)] for i in range(n)]
        self._cached_max_distance = self._max_distance


class LimitedCostmapQueue(CostmapQueue):
    """A CostmapQueue that stops expanding past a distance limit in cells."""

    def __init__(self, costmap: GridLike, cell_distance_limit: int) -> None:
        super().__init__(costmap)
        self._max_distance = cell_distance_limit
        self.reset()

    def valid_cell_to_queue(self, cell: CellData) -> bool:
        """Queue only cells within the distance limit."""
        return cell.distance <= self._max_distance