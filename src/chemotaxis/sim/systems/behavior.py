from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .energy import EnergyParams, apply_metabolism, exchange_energy
from .kinematics import move, turn
from .sensing import SensorReadings, read_sensors
from .steering import Direction, decide_direction, turn_angle

if TYPE_CHECKING:
    from ..core.field import ChemicalField
    from ..core.geometry import Rect
    from ..core.organism import Organism

_DEFAULT_PARAMS = EnergyParams()


@dataclass(frozen=True, slots=True)
class TickOutcome:
    readings: SensorReadings
    direction: Direction
    energy_gained: float = 0.0
    energy_spent: float = 0.0


def update(
    organism: Organism,
    field: ChemicalField,
    bounds: Rect,
    sensor_distance: float,
    turn_speed: float,
    delta_time: float,
    energy: EnergyParams | None = None,
) -> TickOutcome:
    """Run one sense, decide, turn, move tick for ``organism``.

    The metabolic drain (when enabled) runs before sensing; the environmental
    exchange runs after the move and is keyed on this tick's front reading,
    so energy gained here can only move the organism on the next tick.
    """
    params = energy if energy is not None else _DEFAULT_PARAMS
    spent = 0.0
    if params.apply_metabolism:
        spent += apply_metabolism(organism, delta_time)

    readings = read_sensors(organism, field, sensor_distance)
    direction = decide_direction(readings, organism.chem_preference)
    angle = turn_angle(direction, turn_speed, delta_time)
    if angle:
        turn(organism, angle)

    before = organism.energy
    move(
        organism,
        bounds,
        delta_time,
        throttle_fraction=params.throttle_fraction,
        boundary_epsilon=params.boundary_epsilon,
    )
    spent += max(0.0, before - organism.energy)

    gained = exchange_energy(organism, field, readings.front, delta_time, params)
    return TickOutcome(readings=readings, direction=direction, energy_gained=gained, energy_spent=spent)
