from __future__ import annotations

import math
from typing import TYPE_CHECKING

from pygame.math import Vector2

from ..utils.math2d import TWO_PI, _normalize_angle, _unwrap_near

if TYPE_CHECKING:
    from ..core.geometry import Rect
    from ..core.organism import Organism

DEFAULT_THROTTLE_FRACTION = 0.1
DEFAULT_BOUNDARY_EPSILON = 0.001
SPEED_COST_SLOPE = 0.05


def turn(organism: Organism, angle: float) -> None:
    organism.heading = _normalize_angle(organism.heading + angle)


def movement_cost(organism: Organism, distance: float) -> float:
    return (
        distance
        * organism.movement_cost
        * organism.energy_efficiency
        * (1.0 + max(0.0, organism.speed) * SPEED_COST_SLOPE)
    )


def reflect_heading(heading: float, hit_x: bool, hit_y: bool) -> float:
    # A corner hit resolves as a vertical-wall bounce computed from the incoming heading.
    reflected = heading
    if hit_x:
        reflected = _normalize_angle(math.pi - heading)
    if hit_y:
        reflected = _normalize_angle(TWO_PI - heading)
    return reflected


def move(
    organism: Organism,
    bounds: Rect,
    delta_time: float,
    *,
    throttle_fraction: float = DEFAULT_THROTTLE_FRACTION,
    boundary_epsilon: float = DEFAULT_BOUNDARY_EPSILON,
) -> None:
    heading = organism.heading
    organism.previous_heading = heading

    distance = organism.speed * delta_time
    if not distance > 0.0 or not math.isfinite(distance):
        distance = 0.0

    cos_h = math.cos(heading)
    sin_h = math.sin(heading)
    origin = organism.position
    dx = cos_h * distance
    dy = sin_h * distance
    distance_moved = math.hypot(dx, dy)

    capacity = max(0.0, organism.energy_capacity)
    energy = min(capacity, organism.energy) - movement_cost(organism, distance_moved)
    if energy <= 0.0:
        energy = 0.0
        dx = dy = 0.0
    else:
        reserve = throttle_fraction * capacity
        if energy < reserve:
            scaled = distance * (energy / reserve)
            dx = cos_h * scaled
            dy = sin_h * scaled
    organism.energy = min(capacity, energy)

    candidate_x = origin.x + dx
    candidate_y = origin.y + dy
    hit_x = not bounds.contains_x(candidate_x)
    hit_y = not bounds.contains_y(candidate_y)
    if hit_x or hit_y:
        organism.heading = reflect_heading(heading, hit_x, hit_y)
        new_position = bounds.clamp(Vector2(candidate_x, candidate_y), boundary_epsilon)
    else:
        new_position = Vector2(candidate_x, candidate_y)
    organism.position = new_position

    organism.trail.append(new_position.copy())
    organism.previous_heading = _unwrap_near(organism.heading, organism.previous_heading)
    if delta_time > 0.0:
        organism.time_since_reproduction += delta_time
