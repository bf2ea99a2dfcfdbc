from __future__ import annotations

from dataclasses import dataclass

from pygame.math import Vector2


@dataclass(frozen=True, slots=True)
class Rect:
    """Axis-aligned bounds, half-open on both axes: ``[min, max)``."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def from_size(cls, width: float, height: float, x: float = 0.0, y: float = 0.0) -> "Rect":
        return cls(x, y, x + width, y + height)

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> Vector2:
        return Vector2((self.min_x + self.max_x) * 0.5, (self.min_y + self.max_y) * 0.5)

    def contains_x(self, x: float) -> bool:
        return self.min_x <= x < self.max_x

    def contains_y(self, y: float) -> bool:
        return self.min_y <= y < self.max_y

    def contains(self, point: Vector2) -> bool:
        return self.contains_x(point.x) and self.contains_y(point.y)

    def clamp(self, point: Vector2, epsilon: float = 0.001) -> Vector2:
        x = max(self.min_x, min(self.max_x - epsilon, point.x))
        y = max(self.min_y, min(self.max_y - epsilon, point.y))
        return Vector2(x, y)
