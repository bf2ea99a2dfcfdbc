from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    time: float
    population: int
    births: int
    deaths: int
    evictions: int
    average_energy: float
    average_energy_ratio: float
    average_preference: float
    depleted: int
    active_sources: int
    field_energy: float
    energy_gained: float
    energy_spent: float
    tick_duration_ms: float = 0.0
