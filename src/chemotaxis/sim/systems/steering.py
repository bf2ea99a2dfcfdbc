from __future__ import annotations

from enum import Enum

from .sensing import SensorReadings


class Direction(str, Enum):
    CONTINUE = "Continue"
    LEFT = "Left"
    RIGHT = "Right"


def decide_direction(readings: SensorReadings, preference: float) -> Direction:
    """Pick the probe whose reading is closest to ``preference``.

    Candidates are compared in the fixed order front, left, right and a later
    candidate only wins when strictly closer, so ties resolve to the earlier
    one.
    """
    best = Direction.CONTINUE
    best_diff = abs(readings.front - preference)
    left_diff = abs(readings.left - preference)
    if left_diff < best_diff:
        best = Direction.LEFT
        best_diff = left_diff
    right_diff = abs(readings.right - preference)
    if right_diff < best_diff:
        best = Direction.RIGHT
    return best


def turn_angle(direction: Direction, turn_speed: float, delta_time: float) -> float:
    if direction is Direction.LEFT:
        return -turn_speed * delta_time
    if direction is Direction.RIGHT:
        return turn_speed * delta_time
    return 0.0
