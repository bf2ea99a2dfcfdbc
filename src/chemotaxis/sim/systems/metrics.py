from __future__ import annotations

from dataclasses import dataclass

from ..types.metrics import TickMetrics


@dataclass(slots=True)
class StepCounters:
    births: int = 0
    deaths: int = 0
    evictions: int = 0
    energy_gained: float = 0.0
    energy_spent: float = 0.0


def create_metrics(
    tick: int,
    time: float,
    counters: StepCounters,
    duration_ms: float,
    stats: tuple[int, float, float, float, int],
    active_sources: int,
    field_energy: float,
) -> TickMetrics:
    population, avg_energy, avg_ratio, avg_preference, depleted = stats
    return TickMetrics(
        tick=tick,
        time=time,
        population=population,
        births=counters.births,
        deaths=counters.deaths,
        evictions=counters.evictions,
        average_energy=avg_energy,
        average_energy_ratio=avg_ratio,
        average_preference=avg_preference,
        depleted=depleted,
        active_sources=active_sources,
        field_energy=field_energy,
        energy_gained=counters.energy_gained,
        energy_spent=counters.energy_spent,
        tick_duration_ms=duration_ms,
    )
