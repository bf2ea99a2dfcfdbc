from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from time import perf_counter
from typing import Any, Dict, List

from pygame.math import Vector2

from .config import SimulationConfig
from .field import ChemicalSource, SourceField
from .geometry import Rect
from .organism import Organism
from .rng import DeterministicRng
from ..systems import behavior, metrics as metrics_system, reproduction
from ..systems.energy import EnergyParams
from ..systems.sensing import sensor_positions
from ..systems.stats import ChemicalStats, OrganismStats, chemical_stats, organism_stats
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotWorld

logger = logging.getLogger("chemotaxis.world")

_SOURCE_MARGIN = 0.1
_GRID_JITTER = 0.25


class World:
    def __init__(self, config: SimulationConfig):
        self._config = config.sanitized()
        self._bounds = Rect.from_size(self._config.world.width, self._config.world.height)
        self._rng = DeterministicRng(self._config.seed)
        self._energy_params = EnergyParams.from_config(self._config.energy)
        self._organisms: List[Organism] = []
        self._field = SourceField(self._bounds, config=self._config.chemical)
        self._next_id = 0
        self._time = 0.0
        self._metrics: TickMetrics | None = None
        self._bootstrap()

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def organisms(self) -> List[Organism]:
        return self._organisms

    @property
    def field(self) -> SourceField:
        return self._field

    @property
    def bounds(self) -> Rect:
        return self._bounds

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    @property
    def time(self) -> float:
        return self._time

    def reset(self) -> None:
        self._rng.reset()
        self._organisms = []
        self._field = SourceField(self._bounds, config=self._config.chemical)
        self._next_id = 0
        self._time = 0.0
        self._metrics = None
        self._bootstrap()

    def step(self, tick: int) -> TickMetrics:
        start = perf_counter()
        config = self._config
        dt = config.delta_time
        counters = metrics_system.StepCounters()

        self._field.prepare()
        for outcome in self._update_organisms(dt):
            counters.energy_gained += outcome.energy_gained
            counters.energy_spent += outcome.energy_spent
        self._field.commit()

        counters.deaths = self._remove_depleted(dt)
        counters.births, counters.evictions = self._reproduce()

        if self._field.regenerate(dt, self._rng) is not None:
            logger.debug("Tick %d: regenerated a chemical source", tick)
        self._time += dt

        elapsed_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(
            tick,
            self._time,
            counters,
            elapsed_ms,
            self._population_stats(),
            len(self._field.active_sources),
            self._field.total_energy,
        )
        self._metrics = metrics
        return metrics

    def snapshot(self, tick: int) -> Snapshot:
        metrics = self._metrics if self._metrics is not None else self._metrics_from_state(tick)
        sensor_distance = self._config.organism.sensor_distance
        metadata = SnapshotMetadata(
            time=self._time,
            sim_dt=self._config.delta_time,
            tick_rate=0.0 if self._config.time_step <= 0 else 1.0 / self._config.time_step,
            seed=self._config.seed,
            config_version=self._config.version,
            sensor_distance=sensor_distance,
        )
        return Snapshot(
            tick=tick,
            metrics=metrics,
            organisms=[self._organism_snapshot(organism, sensor_distance) for organism in self._organisms],
            sources=[self._source_snapshot(source) for source in self._field.sources if source.active],
            world=SnapshotWorld(width=self._bounds.width, height=self._bounds.height),
            metadata=metadata,
        )

    def organism_stats(self) -> OrganismStats:
        return organism_stats(self._organisms, self._field)

    def chemical_stats(self) -> ChemicalStats:
        return chemical_stats(self._field, self._bounds, len(self._field.active_sources))

    def _update_organisms(self, dt: float) -> List[behavior.TickOutcome]:
        organism_config = self._config.organism
        params = self._energy_params

        def tick_one(organism: Organism) -> behavior.TickOutcome:
            return behavior.update(
                organism,
                self._field,
                self._bounds,
                organism_config.sensor_distance,
                organism_config.turn_speed,
                dt,
                params,
            )

        workers = self._config.workers
        if workers > 1 and len(self._organisms) > 1:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                return list(executor.map(tick_one, self._organisms))
        return [tick_one(organism) for organism in self._organisms]

    def _remove_depleted(self, dt: float) -> int:
        delay = self._config.energy.removal_delay_seconds
        survivors = []
        removed = 0
        for organism in self._organisms:
            if organism.is_depleted:
                organism.depleted_seconds += dt
                if organism.depleted_seconds >= delay:
                    organism.marked_for_removal = True
            else:
                organism.depleted_seconds = 0.0
            if organism.marked_for_removal:
                removed += 1
                logger.debug("Organism %d removed after %.2fs without energy", organism.id, organism.depleted_seconds)
            else:
                survivors.append(organism)
        self._organisms = survivors
        return removed

    def _reproduce(self) -> tuple[int, int]:
        config = self._config.reproduction
        offspring = []
        for parent in self._organisms:
            if not reproduction.can_reproduce(parent, config):
                continue
            child = reproduction.reproduce(
                parent, self._rng, config, self._next_id, capacity_base=self._config.energy.maximum_energy
            )
            self._next_id += 1
            child.position = self._bounds.clamp(child.position, self._config.energy.boundary_epsilon)
            child.trail.append(child.position.copy())
            offspring.append(child)
        self._organisms.extend(offspring)

        evicted = 0
        cap = config.max_population
        if cap > 0 and len(self._organisms) > cap:
            excess = len(self._organisms) - cap
            doomed = {organism.id for organism in reproduction.eviction_order(self._organisms)[:excess]}
            self._organisms = [organism for organism in self._organisms if organism.id not in doomed]
            evicted = len(doomed)
            logger.debug("Evicted %d organisms above population cap %d", evicted, cap)
        return len(offspring), evicted

    def _bootstrap(self) -> None:
        self._bootstrap_sources()
        self._bootstrap_organisms()
        logger.debug(
            "Bootstrapped %d organisms and %d sources (seed=%d)",
            len(self._organisms),
            len(self._field.sources),
            self._rng.seed,
        )

    def _bootstrap_sources(self) -> None:
        cfg = self._config.chemical
        bounds = self._bounds
        margin_x = bounds.width * _SOURCE_MARGIN
        margin_y = bounds.height * _SOURCE_MARGIN
        for _ in range(cfg.count):
            position = Vector2(
                self._rng.next_range(bounds.min_x + margin_x, bounds.max_x - margin_x),
                self._rng.next_range(bounds.min_y + margin_y, bounds.max_y - margin_y),
            )
            strength = self._rng.next_range(cfg.min_strength, cfg.max_strength)
            decay = self._rng.next_range(cfg.min_decay_factor, cfg.max_decay_factor)
            self._field.add_source(self._field.make_source(position, strength, decay))

    def _bootstrap_organisms(self) -> None:
        organism_config = self._config.organism
        energy_config = self._config.energy
        count = organism_config.count
        if count <= 0:
            return
        bounds = self._bounds
        columns = max(1, math.ceil(math.sqrt(count * bounds.width / bounds.height)))
        rows = max(1, math.ceil(count / columns))
        cell_w = bounds.width / columns
        cell_h = bounds.height / rows
        low, high = energy_config.energy_efficiency_range
        epsilon = energy_config.boundary_epsilon
        for index in range(count):
            column = index % columns
            row = index // columns
            position = Vector2(
                bounds.min_x + (column + 0.5 + self._rng.next_range(-_GRID_JITTER, _GRID_JITTER)) * cell_w,
                bounds.min_y + (row + 0.5 + self._rng.next_range(-_GRID_JITTER, _GRID_JITTER)) * cell_h,
            )
            capacity = reproduction.energy_capacity_for(organism_config.speed, energy_config.maximum_energy)
            organism = Organism(
                id=self._next_id,
                position=bounds.clamp(position, epsilon),
                heading=self._rng.next_angle(),
                chem_preference=self._rng.next_gauss(
                    organism_config.preference_distribution_mean,
                    organism_config.preference_distribution_std_dev,
                ),
                speed=organism_config.speed,
                energy=energy_config.initial_energy_fraction * capacity,
                energy_capacity=capacity,
                energy_efficiency=self._rng.next_range(low, high),
                movement_cost=energy_config.movement_cost_factor,
                metabolic_rate=energy_config.base_metabolic_rate,
                sensing_cost=energy_config.sensing_cost_base,
                optimal_gain=energy_config.optimal_energy_gain_rate,
            )
            organism.trail.append(organism.position.copy())
            self._organisms.append(organism)
            self._next_id += 1

    def _population_stats(self) -> tuple[int, float, float, float, int]:
        population = len(self._organisms)
        if population == 0:
            return (0, 0.0, 0.0, 0.0, 0)
        energy_sum = 0.0
        ratio_sum = 0.0
        preference_sum = 0.0
        depleted = 0
        for organism in self._organisms:
            energy_sum += organism.energy
            ratio_sum += organism.energy_ratio
            preference_sum += organism.chem_preference
            if organism.is_depleted:
                depleted += 1
        return (
            population,
            energy_sum / population,
            ratio_sum / population,
            preference_sum / population,
            depleted,
        )

    def _metrics_from_state(self, tick: int) -> TickMetrics:
        return metrics_system.create_metrics(
            tick,
            self._time,
            metrics_system.StepCounters(),
            0.0,
            self._population_stats(),
            len(self._field.active_sources),
            self._field.total_energy,
        )

    @staticmethod
    def _organism_snapshot(organism: Organism, sensor_distance: float) -> Dict[str, Any]:
        return {
            "id": organism.id,
            "x": organism.position.x,
            "y": organism.position.y,
            "heading": organism.heading,
            "preference": organism.chem_preference,
            "speed": organism.speed,
            "energy": organism.energy,
            "energy_capacity": organism.energy_capacity,
            "energy_ratio": organism.energy_ratio,
            "generation": organism.generation,
            "parent_id": organism.parent_id,
            "depleted": organism.is_depleted,
            "trail": [[point.x, point.y] for point in organism.trail],
            "sensors": [[point.x, point.y] for point in sensor_positions(organism, sensor_distance)],
        }

    @staticmethod
    def _source_snapshot(source: ChemicalSource) -> Dict[str, Any]:
        return {
            "x": source.position.x,
            "y": source.position.y,
            "strength": source.strength,
            "decay_factor": source.decay_factor,
            "energy": source.energy,
            "max_energy": source.max_energy,
        }
