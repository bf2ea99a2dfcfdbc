from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field

from pygame.math import Vector2

MAX_TRAIL_LENGTH = 30

DEFAULT_SENSOR_ANGLES: tuple[float, float, float] = (0.0, -math.pi / 4, math.pi / 4)


def _new_trail() -> deque[Vector2]:
    return deque(maxlen=MAX_TRAIL_LENGTH)


@dataclass(slots=True)
class Organism:
    id: int
    position: Vector2
    heading: float
    chem_preference: float
    speed: float
    energy: float
    energy_capacity: float
    previous_heading: float | None = None
    energy_efficiency: float = 1.0
    movement_cost: float = 0.02
    metabolic_rate: float = 0.1
    sensing_cost: float = 0.01
    optimal_gain: float = 0.5
    sensor_angles: tuple[float, float, float] = DEFAULT_SENSOR_ANGLES
    trail: deque[Vector2] = field(default_factory=_new_trail)
    time_since_reproduction: float = 0.0
    depleted_seconds: float = 0.0
    marked_for_removal: bool = False
    generation: int = 1
    parent_id: int = -1

    def __post_init__(self) -> None:
        if self.previous_heading is None:
            self.previous_heading = self.heading
        self.energy_capacity = max(0.0, self.energy_capacity)
        self.energy = max(0.0, min(self.energy_capacity, self.energy))

    @property
    def energy_ratio(self) -> float:
        if self.energy_capacity <= 0.0:
            return 0.0
        return self.energy / self.energy_capacity

    @property
    def is_depleted(self) -> bool:
        return self.energy <= 0.0
