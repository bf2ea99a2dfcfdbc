from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from ..sim.core.config import SimulationConfig
from ..sim.core.world import World

logger = logging.getLogger("chemotaxis.headless")

_BASIC_HEADER = [
    "tick",
    "time",
    "population",
    "births",
    "deaths",
    "evictions",
    "avg_energy",
    "avg_energy_ratio",
    "avg_preference",
    "depleted",
    "active_sources",
    "field_energy",
    "tick_ms",
]

_DETAILED_HEADER = _BASIC_HEADER + [
    "energy_gained",
    "energy_spent",
    "preference_std_dev",
    "avg_concentration",
    "exposure_ratio",
    "max_generation",
]


def _format_basic_row(metrics: object, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        f"{metrics.time:.4f}",
        metrics.population,
        metrics.births,
        metrics.deaths,
        metrics.evictions,
        f"{metrics.average_energy:.4f}",
        f"{metrics.average_energy_ratio:.4f}",
        f"{metrics.average_preference:.4f}",
        metrics.depleted,
        metrics.active_sources,
        f"{metrics.field_energy:.4f}",
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(world: World, metrics: object, tick_ms: float) -> list[object]:
    stats = world.organism_stats()
    max_generation = max((organism.generation for organism in world.organisms), default=0)
    return _format_basic_row(metrics, tick_ms) + [
        f"{metrics.energy_gained:.4f}",
        f"{metrics.energy_spent:.4f}",
        f"{stats.preference_std_dev:.4f}",
        f"{stats.average_concentration:.4f}",
        f"{stats.preference_exposure_ratio:.4f}",
        max_generation,
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p99": _percentile(sorted_values, 0.99),
    }


def _load_config(config_path: Optional[Path], seed: Optional[int], workers: Optional[int]) -> SimulationConfig:
    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config.seed = seed
    if workers is not None:
        config.workers = workers
    return config


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "basic",
    summary_path: Optional[Path] = None,
    config_path: Optional[Path] = None,
    workers: Optional[int] = None,
) -> World:
    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    config = _load_config(config_path, seed, workers)
    world = World(config)
    logger.info(
        "Starting headless run: steps=%d seed=%d organisms=%d sources=%d workers=%d",
        steps,
        world.config.seed,
        len(world.organisms),
        len(world.field.sources),
        world.config.workers,
    )

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    tick_ms_series: list[float] = []
    population_series: list[float] = []
    energy_series: list[float] = []
    births = 0
    deaths = 0
    evictions = 0
    peak_population = (len(world.organisms), -1)

    try:
        for tick in range(steps):
            metrics = world.step(tick)
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            births += metrics.births
            deaths += metrics.deaths
            evictions += metrics.evictions
            if summary_path:
                tick_ms_series.append(tick_ms)
                population_series.append(float(metrics.population))
                energy_series.append(metrics.average_energy)
                if metrics.population > peak_population[0]:
                    peak_population = (metrics.population, tick)
            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(world, metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    logger.info(
        "Finished headless run: population=%d births=%d deaths=%d evictions=%d",
        len(world.organisms),
        births,
        deaths,
        evictions,
    )

    if summary_path:
        summary = {
            "steps": steps,
            "seed": world.config.seed,
            "workers": world.config.workers,
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "totals": {"births": births, "deaths": deaths, "evictions": evictions},
            "tick_ms": _summary_stats(tick_ms_series),
            "population": _summary_stats(population_series),
            "average_energy": _summary_stats(energy_series),
            "peaks": {"population": {"value": peak_population[0], "tick": peak_population[1]}},
            "organisms": asdict(world.organism_stats()),
            "chemicals": asdict(world.chemical_stats()),
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return world


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless chemotaxis simulation")
    parser.add_argument("--steps", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML or JSON configuration file")
    parser.add_argument("--workers", type=int, default=None, help="Threads used to update organisms")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="basic",
        help="CSV format to write when --log is provided (detailed adds population statistics).",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        config_path=args.config,
        workers=args.workers,
    )


if __name__ == "__main__":
    main()
