from __future__ import annotations

import math
from typing import Callable, List

from pygame.math import Vector2


class ConcentrationGrid:
    """Sampled concentration lattice with bilinear lookup.

    Lattice node ``(i, j)`` holds the exact concentration at world point
    ``origin + (i * cell_size, j * cell_size)``. Lookups outside the sampled
    area return 0.
    """

    def __init__(self, width: float, height: float, cell_size: float, origin: tuple[float, float] = (0.0, 0.0)) -> None:
        self._cell_size = cell_size
        self._origin_x, self._origin_y = origin
        self._cells_x = max(1, int(math.ceil(width / cell_size))) + 1
        self._cells_y = max(1, int(math.ceil(height / cell_size))) + 1
        self._values: List[List[float]] = [[0.0] * self._cells_y for _ in range(self._cells_x)]

    @property
    def cell_size(self) -> float:
        return self._cell_size

    @property
    def shape(self) -> tuple[int, int]:
        return (self._cells_x, self._cells_y)

    def fill(self, sample: Callable[[Vector2], float]) -> None:
        size = self._cell_size
        for ix in range(self._cells_x):
            column = self._values[ix]
            for iy in range(self._cells_y):
                column[iy] = sample(Vector2(self._origin_x + ix * size, self._origin_y + iy * size))

    def concentration_at(self, point: Vector2) -> float:
        gx = (point.x - self._origin_x) / self._cell_size
        gy = (point.y - self._origin_y) / self._cell_size
        x0 = int(math.floor(gx))
        y0 = int(math.floor(gy))
        x1 = x0 + 1
        y1 = y0 + 1
        if x0 < 0 or y0 < 0 or x1 >= self._cells_x or y1 >= self._cells_y:
            return 0.0
        fx = gx - x0
        fy = gy - y0
        c00 = self._values[x0][y0]
        c10 = self._values[x1][y0]
        c01 = self._values[x0][y1]
        c11 = self._values[x1][y1]
        cx0 = c00 * (1.0 - fx) + c10 * fx
        cx1 = c01 * (1.0 - fx) + c11 * fx
        return cx0 * (1.0 - fy) + cx1 * fy
