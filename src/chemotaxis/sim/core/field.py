from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import List, Protocol, Sequence

from pygame.math import Vector2

from .concentration_grid import ConcentrationGrid
from .config import ChemicalConfig
from .geometry import Rect
from .rng import DeterministicRng

logger = logging.getLogger("chemotaxis.field")

_GRADIENT_DELTA = 0.5


class ChemicalField(Protocol):
    def concentration_at(self, point: Vector2) -> float:
        ...

    def deplete_sources_at(self, point: Vector2, amount: float) -> None:
        ...


@dataclass(slots=True)
class ChemicalSource:
    position: Vector2
    strength: float
    decay_factor: float
    energy: float = 0.0
    max_energy: float = 0.0
    active: bool = True

    def concentration_at(self, point: Vector2) -> float:
        if not self.active:
            return 0.0
        dx = self.position.x - point.x
        dy = self.position.y - point.y
        dist_sq = dx * dx + dy * dy
        if dist_sq < 1e-18:
            return self.strength
        return self.strength / (1.0 + dist_sq * self.decay_factor)


class SourceField:
    """Chemical field built from point sources.

    Reads are served from the state committed at the last ``commit()``;
    ``deplete_sources_at`` only queues a request so that concurrently ticking
    organisms never mutate source energy mid-step.
    """

    def __init__(
        self,
        bounds: Rect,
        sources: Sequence[ChemicalSource] = (),
        config: ChemicalConfig | None = None,
        target_energy: float | None = None,
    ) -> None:
        self._bounds = bounds
        self._config = config if config is not None else ChemicalConfig()
        self._sources: List[ChemicalSource] = list(sources)
        self._pending: List[tuple[Vector2, float]] = []
        self._pending_lock = threading.Lock()
        self._grid: ConcentrationGrid | None = None
        if target_energy is None:
            if self._config.target_system_energy > 0:
                target_energy = self._config.target_system_energy
            else:
                target_energy = sum(source.max_energy for source in self._sources)
        self._target_energy = target_energy

    @property
    def bounds(self) -> Rect:
        return self._bounds

    @property
    def sources(self) -> List[ChemicalSource]:
        return self._sources

    @property
    def active_sources(self) -> List[ChemicalSource]:
        return [source for source in self._sources if source.active]

    @property
    def total_energy(self) -> float:
        return sum(source.energy for source in self._sources if source.active)

    @property
    def target_energy(self) -> float:
        return self._target_energy

    @property
    def pending_depletions(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def make_source(self, position: Vector2, strength: float, decay_factor: float) -> ChemicalSource:
        max_energy = strength * self._config.source_energy_factor
        return ChemicalSource(
            position=Vector2(position),
            strength=strength,
            decay_factor=decay_factor,
            energy=max_energy,
            max_energy=max_energy,
        )

    def add_source(self, source: ChemicalSource) -> bool:
        if not self._bounds.contains(source.position):
            return False
        self._sources.append(source)
        self._grid = None
        return True

    def exact_concentration_at(self, point: Vector2) -> float:
        total = 0.0
        for source in self._sources:
            if source.active:
                total += source.concentration_at(point)
        return total

    def concentration_at(self, point: Vector2) -> float:
        if self._config.grid_resolution <= 0.0:
            return self.exact_concentration_at(point)
        grid = self._grid
        if grid is None:
            grid = self._build_grid()
        return grid.concentration_at(point)

    def prepare(self) -> None:
        if self._config.grid_resolution > 0.0 and self._grid is None:
            self._build_grid()

    def gradient_at(self, point: Vector2) -> Vector2:
        delta = _GRADIENT_DELTA
        right = self.concentration_at(Vector2(point.x + delta, point.y))
        left = self.concentration_at(Vector2(point.x - delta, point.y))
        up = self.concentration_at(Vector2(point.x, point.y + delta))
        down = self.concentration_at(Vector2(point.x, point.y - delta))
        gradient = Vector2((right - left) / (2 * delta), (up - down) / (2 * delta))
        if gradient.length_squared() > 1e-18:
            gradient.normalize_ip()
        return gradient

    def deplete_sources_at(self, point: Vector2, amount: float) -> None:
        if amount <= 0.0 or not math.isfinite(amount):
            return
        with self._pending_lock:
            self._pending.append((Vector2(point), amount))

    def commit(self) -> float:
        with self._pending_lock:
            pending = self._pending
            self._pending = []
        # Worker threads enqueue in arbitrary order.
        pending.sort(key=lambda item: (item[0].x, item[0].y, item[1]))
        depleted = 0.0
        for point, amount in pending:
            depleted += self._apply_depletion(point, amount)
        if pending:
            logger.debug("Applied %d depletions, removed %.4f energy", len(pending), depleted)
        return depleted

    def regenerate(self, delta_time: float, rng: DeterministicRng) -> ChemicalSource | None:
        pruned = [source for source in self._sources if source.active]
        if len(pruned) != len(self._sources):
            self._sources = pruned
            self._grid = None
        target = self._target_energy
        if target <= 0.0 or delta_time <= 0.0:
            return None
        total = self.total_energy
        if total >= target * 0.95:
            return None
        if rng.next_float() >= delta_time * self._config.regeneration_probability:
            return None
        deficit = target - total
        if deficit < target * 0.01:
            return None
        cfg = self._config
        strength = rng.next_range(cfg.min_strength, cfg.max_strength)
        strength = min(cfg.max_strength, strength * (1.0 + deficit / target))
        decay = rng.next_range(cfg.min_decay_factor, cfg.max_decay_factor)
        margin_x = self._bounds.width * 0.1
        margin_y = self._bounds.height * 0.1
        position = Vector2(
            rng.next_range(self._bounds.min_x + margin_x, self._bounds.max_x - margin_x),
            rng.next_range(self._bounds.min_y + margin_y, self._bounds.max_y - margin_y),
        )
        source = self.make_source(position, strength, decay)
        if not self.add_source(source):
            return None
        logger.debug(
            "Regenerated source at (%.1f, %.1f) strength=%.1f deficit=%.1f",
            position.x,
            position.y,
            strength,
            deficit,
        )
        return source

    def _apply_depletion(self, point: Vector2, amount: float) -> float:
        contributions = [
            (source, source.concentration_at(point)) for source in self._sources if source.active
        ]
        total = sum(value for _, value in contributions)
        if total <= 0.0:
            return 0.0
        scaled = amount * self._config.depletion_multiplier
        removed = 0.0
        for source, value in contributions:
            if value <= 0.0:
                continue
            share = min(source.energy, scaled * value / total)
            source.energy -= share
            removed += share
            if source.energy <= 0.0:
                source.energy = 0.0
                source.active = False
                self._grid = None
                logger.debug("Source at (%.1f, %.1f) exhausted", source.position.x, source.position.y)
        return removed

    def _build_grid(self) -> ConcentrationGrid:
        bounds = self._bounds
        grid = ConcentrationGrid(
            bounds.width,
            bounds.height,
            self._config.grid_resolution,
            origin=(bounds.min_x, bounds.min_y),
        )
        grid.fill(self.exact_concentration_at)
        self._grid = grid
        return grid
