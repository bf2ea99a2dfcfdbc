from __future__ import annotations

from typing import TYPE_CHECKING

from pygame.math import Vector2

from ..core.organism import Organism
from ..utils.math2d import _polar

if TYPE_CHECKING:
    from ..core.config import ReproductionConfig
    from ..core.rng import DeterministicRng

MIN_SPEED = 0.1
MIN_TRAIT = 0.001
CAPACITY_BASE = 100.0
CAPACITY_PER_SPEED = 10.0


def energy_capacity_for(speed: float, base: float = CAPACITY_BASE) -> float:
    return max(0.0, base + max(0.0, speed) * CAPACITY_PER_SPEED)


def can_reproduce(organism: Organism, config: ReproductionConfig) -> bool:
    if organism.marked_for_removal or organism.energy_capacity <= 0.0:
        return False
    return (
        organism.energy >= organism.energy_capacity * config.reproduction_threshold
        and organism.time_since_reproduction >= config.cooldown_seconds
    )


def _mutate(value: float, rng: DeterministicRng, config: ReproductionConfig, floor: float = MIN_TRAIT) -> float:
    if rng.next_float() >= config.mutation_rate:
        return value
    return max(floor, value + rng.next_gauss() * value * config.mutation_magnitude)


def reproduce(
    parent: Organism,
    rng: DeterministicRng,
    config: ReproductionConfig,
    next_id: int,
    capacity_base: float = CAPACITY_BASE,
) -> Organism:
    offspring_energy = parent.energy * config.energy_transfer_ratio
    parent.energy -= offspring_energy
    parent.time_since_reproduction = 0.0

    distance = config.offspring_distance * (1.0 + rng.next_float())
    position = parent.position + _polar(rng.next_angle(), distance)

    preference = parent.chem_preference
    if rng.next_float() < config.mutation_rate:
        preference += rng.next_gauss() * abs(preference) * config.mutation_magnitude * 0.5
    speed = _mutate(parent.speed, rng, config, floor=MIN_SPEED)
    sensor_angles = tuple(
        angle + rng.next_gauss() * config.mutation_magnitude * 0.5
        if rng.next_float() < config.mutation_rate
        else angle
        for angle in parent.sensor_angles
    )
    capacity = energy_capacity_for(speed, capacity_base)
    heading = rng.next_angle()
    return Organism(
        id=next_id,
        position=Vector2(position),
        heading=heading,
        chem_preference=preference,
        speed=speed,
        energy=min(offspring_energy, capacity),
        energy_capacity=capacity,
        energy_efficiency=_mutate(parent.energy_efficiency, rng, config),
        movement_cost=_mutate(parent.movement_cost, rng, config),
        metabolic_rate=_mutate(parent.metabolic_rate, rng, config),
        sensing_cost=_mutate(parent.sensing_cost, rng, config),
        optimal_gain=_mutate(parent.optimal_gain, rng, config),
        sensor_angles=(sensor_angles[0], sensor_angles[1], sensor_angles[2]),
        generation=parent.generation + 1,
        parent_id=parent.id,
    )


def eviction_order(organisms: list[Organism]) -> list[Organism]:
    return sorted(organisms, key=lambda o: (o.generation, o.energy_ratio, o.id))
