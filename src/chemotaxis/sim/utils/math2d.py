from __future__ import annotations

import math

from pygame.math import Vector2

TWO_PI = 2.0 * math.pi


def _normalize_angle(angle: float) -> float:
    wrapped = math.fmod(angle, TWO_PI)
    if wrapped < 0.0:
        wrapped += TWO_PI
    # fmod of a tiny negative angle can round up to exactly 2*pi
    if wrapped >= TWO_PI:
        wrapped = 0.0
    return wrapped


def _unwrap_near(reference: float, angle: float) -> float:
    """Shift ``angle`` by whole turns so ``reference - angle`` lies in (-pi, pi]."""
    if not math.isfinite(reference) or not math.isfinite(angle):
        return angle
    delta = reference - angle
    turns = math.floor((delta + math.pi) / TWO_PI)
    shifted = angle + turns * TWO_PI
    delta = reference - shifted
    if delta <= -math.pi:
        shifted -= TWO_PI
    elif delta > math.pi:
        shifted += TWO_PI
    return shifted


def _polar(angle: float, length: float) -> Vector2:
    return Vector2(math.cos(angle) * length, math.sin(angle) * length)


def _clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))
