from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..utils.math2d import _clamp_value
from .kinematics import DEFAULT_BOUNDARY_EPSILON, DEFAULT_THROTTLE_FRACTION

if TYPE_CHECKING:
    from ..core.config import EnergyConfig
    from ..core.field import ChemicalField
    from ..core.organism import Organism

_PREFERENCE_FLOOR = 1e-9


@dataclass(frozen=True, slots=True)
class EnergyParams:
    """Per-tick energy policy shared by every organism in a run.

    ``optimal_gain_rate`` of ``None`` means each organism's own
    ``optimal_gain`` trait is used as its maximum gain per second.
    """

    optimal_gain_rate: float | None = None
    match_threshold: float = 0.7
    throttle_fraction: float = DEFAULT_THROTTLE_FRACTION
    boundary_epsilon: float = DEFAULT_BOUNDARY_EPSILON
    apply_metabolism: bool = False

    @classmethod
    def from_config(cls, config: EnergyConfig, per_organism_gain: bool = True) -> "EnergyParams":
        return cls(
            optimal_gain_rate=None if per_organism_gain else config.optimal_energy_gain_rate,
            match_threshold=config.match_threshold,
            throttle_fraction=config.low_energy_throttle,
            boundary_epsilon=config.boundary_epsilon,
            apply_metabolism=config.apply_metabolism,
        )


def match_similarity(reading: float, preference: float) -> float:
    if not math.isfinite(reading):
        return 0.0
    scale = max(abs(preference), _PREFERENCE_FLOOR)
    return 1.0 - min(abs(reading - preference) / scale, 1.0)


def gain_factor(similarity: float, threshold: float) -> float:
    if similarity <= threshold:
        return 0.0
    span = 1.0 - threshold
    if span <= 0.0:
        return 1.0
    return _clamp_value((similarity - threshold) / span, 0.0, 1.0)


def apply_metabolism(organism: Organism, delta_time: float) -> float:
    if delta_time <= 0.0:
        return 0.0
    drain = (organism.metabolic_rate * organism.energy_efficiency + organism.sensing_cost) * delta_time
    drain = max(0.0, drain)
    spent = min(organism.energy, drain)
    organism.energy = max(0.0, organism.energy - drain)
    return spent


def exchange_energy(
    organism: Organism,
    field: ChemicalField,
    reading: float,
    delta_time: float,
    params: EnergyParams | None = None,
) -> float:
    """Credit energy for a near-optimal ``reading`` and deplete the field by the same amount."""
    params = params if params is not None else EnergyParams()
    if delta_time <= 0.0:
        return 0.0
    rate = organism.optimal_gain if params.optimal_gain_rate is None else params.optimal_gain_rate
    factor = gain_factor(match_similarity(reading, organism.chem_preference), params.match_threshold)
    gain = max(0.0, rate) * factor * delta_time
    headroom = max(0.0, organism.energy_capacity - organism.energy)
    gain = min(gain, headroom)
    if gain <= 0.0:
        return 0.0
    organism.energy = min(organism.energy_capacity, organism.energy + gain)
    field.deplete_sources_at(organism.position, gain)
    return gain
