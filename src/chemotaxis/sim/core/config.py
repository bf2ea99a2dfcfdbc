from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path

import yaml

VERSION = "0.1.0"


class ConfigError(ValueError):
    pass


@dataclass
class WorldConfig:
    width: float = 1000.0
    height: float = 1000.0


@dataclass
class OrganismConfig:
    count: int = 100
    speed: float = 2.0
    sensor_distance: float = 10.0
    turn_speed: float = math.pi / 10
    preference_distribution_mean: float = 50.0
    preference_distribution_std_dev: float = 10.0


@dataclass
class EnergyConfig:
    initial_energy_fraction: float = 0.8
    maximum_energy: float = 100.0
    base_metabolic_rate: float = 0.1
    movement_cost_factor: float = 0.02
    sensing_cost_base: float = 0.01
    optimal_energy_gain_rate: float = 0.5
    match_threshold: float = 0.7
    energy_efficiency_range: tuple[float, float] = (0.8, 1.2)
    low_energy_throttle: float = 0.1
    boundary_epsilon: float = 0.001
    apply_metabolism: bool = True
    removal_delay_seconds: float = 2.0


@dataclass
class ReproductionConfig:
    reproduction_threshold: float = 0.75
    cooldown_seconds: float = 5.0
    energy_transfer_ratio: float = 0.3
    offspring_distance: float = 10.0
    mutation_rate: float = 0.2
    mutation_magnitude: float = 0.1
    max_population: int = 500


@dataclass
class ChemicalConfig:
    count: int = 5
    min_strength: float = 100.0
    max_strength: float = 500.0
    min_decay_factor: float = 0.001
    max_decay_factor: float = 0.01
    source_energy_factor: float = 10.0
    depletion_multiplier: float = 50.0
    regeneration_probability: float = 0.2
    target_system_energy: float = 10000.0
    grid_resolution: float = 5.0


@dataclass
class SimulationConfig:
    version: str = VERSION
    time_step: float = 1.0 / 60.0
    simulation_speed: float = 10.0
    seed: int = 42
    workers: int = 1
    world: WorldConfig = field(default_factory=WorldConfig)
    organism: OrganismConfig = field(default_factory=OrganismConfig)
    energy: EnergyConfig = field(default_factory=EnergyConfig)
    reproduction: ReproductionConfig = field(default_factory=ReproductionConfig)
    chemical: ChemicalConfig = field(default_factory=ChemicalConfig)

    @property
    def delta_time(self) -> float:
        return self.time_step * self.simulation_speed

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        try:
            data = yaml.safe_load(Path(path).read_text())
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Cannot read config {path}: {exc}") from exc
        return load_config(data or {})

    def sanitized(self) -> "SimulationConfig":
        world = WorldConfig(
            width=_positive(self.world.width, WorldConfig.width),
            height=_positive(self.world.height, WorldConfig.height),
        )
        organism = replace(
            self.organism,
            count=max(0, int(self.organism.count)),
            speed=max(0.0, self.organism.speed),
            sensor_distance=max(0.0, self.organism.sensor_distance),
            turn_speed=max(0.0, self.organism.turn_speed),
            preference_distribution_std_dev=max(0.0, self.organism.preference_distribution_std_dev),
        )
        low, high = self.energy.energy_efficiency_range
        if high < low:
            low, high = high, low
        energy = replace(
            self.energy,
            initial_energy_fraction=_clamp01(self.energy.initial_energy_fraction),
            maximum_energy=max(0.0, self.energy.maximum_energy),
            base_metabolic_rate=max(0.0, self.energy.base_metabolic_rate),
            movement_cost_factor=max(0.0, self.energy.movement_cost_factor),
            sensing_cost_base=max(0.0, self.energy.sensing_cost_base),
            optimal_energy_gain_rate=max(0.0, self.energy.optimal_energy_gain_rate),
            match_threshold=min(0.999, max(0.0, self.energy.match_threshold)),
            energy_efficiency_range=(max(0.001, low), max(0.001, high)),
            low_energy_throttle=_clamp01(self.energy.low_energy_throttle),
            boundary_epsilon=max(1e-9, self.energy.boundary_epsilon),
            removal_delay_seconds=max(0.0, self.energy.removal_delay_seconds),
        )
        reproduction = replace(
            self.reproduction,
            reproduction_threshold=_clamp01(self.reproduction.reproduction_threshold),
            cooldown_seconds=max(0.0, self.reproduction.cooldown_seconds),
            energy_transfer_ratio=_clamp01(self.reproduction.energy_transfer_ratio),
            offspring_distance=max(0.0, self.reproduction.offspring_distance),
            mutation_rate=_clamp01(self.reproduction.mutation_rate),
            mutation_magnitude=max(0.0, self.reproduction.mutation_magnitude),
            max_population=max(0, int(self.reproduction.max_population)),
        )
        min_strength, max_strength = sorted((self.chemical.min_strength, self.chemical.max_strength))
        min_decay, max_decay = sorted((self.chemical.min_decay_factor, self.chemical.max_decay_factor))
        chemical = replace(
            self.chemical,
            count=max(0, int(self.chemical.count)),
            min_strength=max(0.0, min_strength),
            max_strength=max(0.0, max_strength),
            min_decay_factor=max(0.0, min_decay),
            max_decay_factor=max(0.0, max_decay),
            source_energy_factor=max(0.0, self.chemical.source_energy_factor),
            depletion_multiplier=max(0.0, self.chemical.depletion_multiplier),
            regeneration_probability=max(0.0, self.chemical.regeneration_probability),
            target_system_energy=max(0.0, self.chemical.target_system_energy),
            grid_resolution=max(0.0, self.chemical.grid_resolution),
        )
        return replace(
            self,
            time_step=max(0.0, self.time_step),
            simulation_speed=max(0.0, self.simulation_speed),
            workers=max(1, int(self.workers)),
            world=world,
            organism=organism,
            energy=energy,
            reproduction=reproduction,
            chemical=chemical,
        )


def _positive(value: float, default: float) -> float:
    return value if value > 0 else default


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


_SCALAR_TYPES = {"float": float, "int": int, "str": str}


def _coerce(cls, values: dict, name: str) -> dict:
    declared = {f.name: f.type for f in fields(cls)}
    coerced = {}
    for key, value in values.items():
        kind = declared[key]
        try:
            if kind == "bool":
                if not isinstance(value, bool):
                    raise TypeError(f"expected a boolean, got {type(value).__name__}")
            elif kind in _SCALAR_TYPES:
                value = _SCALAR_TYPES[kind](value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid value for '{name}.{key}': {value!r}") from exc
        coerced[key] = value
    return coerced


def _section(cls, raw: dict | None, name: str):
    raw = raw or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Section '{name}' must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigError(f"Unknown keys in '{name}': {', '.join(unknown)}")
    return cls(**_coerce(cls, raw, name))


def load_config(raw: dict) -> SimulationConfig:
    def _pair(value: tuple[float, float] | list[float] | None) -> tuple[float, float]:
        if not isinstance(value, (tuple, list)) or len(value) != 2:
            raise ConfigError(f"'energy.energy_efficiency_range' must be a pair, got {value!r}")
        try:
            return (float(value[0]), float(value[1]))
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid 'energy.energy_efficiency_range': {value!r}") from exc

    if not isinstance(raw, dict):
        raise ConfigError("Configuration root must be a mapping")
    energy_raw = raw.get("energy") or {}
    if not isinstance(energy_raw, dict):
        raise ConfigError("Section 'energy' must be a mapping")
    energy_raw = dict(energy_raw)
    if "energy_efficiency_range" in energy_raw:
        energy_raw["energy_efficiency_range"] = _pair(energy_raw["energy_efficiency_range"])
    sections = {"world", "organism", "energy", "reproduction", "chemical"}
    sim_values = {k: v for k, v in raw.items() if k not in sections}
    unknown = sorted(set(sim_values) - {f.name for f in fields(SimulationConfig)})
    if unknown:
        raise ConfigError(f"Unknown top-level keys: {', '.join(unknown)}")
    return SimulationConfig(
        world=_section(WorldConfig, raw.get("world"), "world"),
        organism=_section(OrganismConfig, raw.get("organism"), "organism"),
        energy=_section(EnergyConfig, energy_raw, "energy"),
        reproduction=_section(ReproductionConfig, raw.get("reproduction"), "reproduction"),
        chemical=_section(ChemicalConfig, raw.get("chemical"), "chemical"),
        **_coerce(SimulationConfig, sim_values, "simulation"),
    )


def save_config(config: SimulationConfig, path: Path) -> None:
    data = asdict(config)
    data["energy"]["energy_efficiency_range"] = list(config.energy.energy_efficiency_range)
    Path(path).write_text(yaml.safe_dump(data, sort_keys=False))
