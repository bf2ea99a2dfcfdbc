from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from pygame.math import Vector2

from ..utils.math2d import _polar

if TYPE_CHECKING:
    from ..core.field import ChemicalField
    from ..core.organism import Organism


@dataclass(frozen=True, slots=True)
class SensorReadings:
    front: float
    left: float
    right: float


def sensor_positions(organism: Organism, sensor_distance: float) -> tuple[Vector2, Vector2, Vector2]:
    position = organism.position
    heading = organism.heading
    front, left, right = (
        position + _polar(heading + angle, sensor_distance) for angle in organism.sensor_angles
    )
    return front, left, right


def read_sensors(organism: Organism, field: ChemicalField, sensor_distance: float) -> SensorReadings:
    front, left, right = sensor_positions(organism, sensor_distance)
    return SensorReadings(
        front=field.concentration_at(front),
        left=field.concentration_at(left),
        right=field.concentration_at(right),
    )
