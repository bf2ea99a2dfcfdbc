from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, Sequence

from pygame.math import Vector2

if TYPE_CHECKING:
    from ..core.field import ChemicalField
    from ..core.geometry import Rect
    from ..core.organism import Organism

HISTOGRAM_BUCKET_SIZE = 5.0
SAMPLES_PER_AXIS = 20


@dataclass(slots=True)
class OrganismStats:
    count: int = 0
    average_preference: float = 0.0
    preference_std_dev: float = 0.0
    min_preference: float = 0.0
    max_preference: float = 0.0
    average_concentration: float = 0.0
    preference_exposure_ratio: float = 0.0
    average_energy: float = 0.0
    energy_ratio: float = 0.0
    preference_histogram: Dict[str, int] = field(default_factory=dict)


@dataclass(slots=True)
class ChemicalStats:
    source_count: int = 0
    average_concentration: float = 0.0
    min_concentration: float = 0.0
    max_concentration: float = 0.0
    concentration_histogram: Dict[str, int] = field(default_factory=dict)


def _bucket(value: float) -> str:
    if not math.isfinite(value):
        return "nan"
    return f"{math.floor(value / HISTOGRAM_BUCKET_SIZE) * HISTOGRAM_BUCKET_SIZE:.0f}"


def organism_stats(organisms: Sequence[Organism], field: ChemicalField) -> OrganismStats:
    if not organisms:
        return OrganismStats()

    count = len(organisms)
    stats = OrganismStats(count=count, min_preference=math.inf, max_preference=-math.inf)
    preference_sum = 0.0
    concentration_sum = 0.0
    exposure_sum = 0.0
    energy_sum = 0.0
    ratio_sum = 0.0
    for organism in organisms:
        preference = organism.chem_preference
        preference_sum += preference
        stats.min_preference = min(stats.min_preference, preference)
        stats.max_preference = max(stats.max_preference, preference)
        bucket = _bucket(preference)
        stats.preference_histogram[bucket] = stats.preference_histogram.get(bucket, 0) + 1

        concentration = field.concentration_at(organism.position)
        concentration_sum += concentration
        if concentration > 0.0:
            ratio = preference / concentration
            if ratio > 1.0:
                ratio = 1.0 / ratio
            exposure_sum += ratio

        energy_sum += organism.energy
        ratio_sum += organism.energy_ratio

    stats.average_preference = preference_sum / count
    stats.average_concentration = concentration_sum / count
    stats.preference_exposure_ratio = exposure_sum / count
    stats.average_energy = energy_sum / count
    stats.energy_ratio = ratio_sum / count
    variance = sum((o.chem_preference - stats.average_preference) ** 2 for o in organisms) / count
    stats.preference_std_dev = math.sqrt(variance)
    return stats


def sample_points(bounds: Rect, samples: int = SAMPLES_PER_AXIS) -> Iterable[Vector2]:
    samples = max(2, samples)
    # Keep the last sample inside the half-open bounds.
    width = bounds.width - 1e-6
    height = bounds.height - 1e-6
    for ix in range(samples):
        for iy in range(samples):
            yield Vector2(
                bounds.min_x + width * ix / (samples - 1),
                bounds.min_y + height * iy / (samples - 1),
            )


def chemical_stats(field: ChemicalField, bounds: Rect, source_count: int = 0) -> ChemicalStats:
    stats = ChemicalStats(source_count=source_count, min_concentration=math.inf, max_concentration=-math.inf)
    total = 0.0
    samples = 0
    for point in sample_points(bounds):
        concentration = field.concentration_at(point)
        total += concentration
        samples += 1
        stats.min_concentration = min(stats.min_concentration, concentration)
        stats.max_concentration = max(stats.max_concentration, concentration)
        bucket = _bucket(concentration)
        stats.concentration_histogram[bucket] = stats.concentration_histogram.get(bucket, 0) + 1
    stats.average_concentration = total / samples if samples else 0.0
    return stats
