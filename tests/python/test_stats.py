from pygame.math import Vector2
from pytest import approx

from chemotaxis.sim.core.config import ChemicalConfig
from chemotaxis.sim.core.field import SourceField
from chemotaxis.sim.core.geometry import Rect
from chemotaxis.sim.core.organism import Organism
from chemotaxis.sim.systems.stats import (
    SAMPLES_PER_AXIS,
    chemical_stats,
    organism_stats,
    sample_points,
)


class ConstantField:
    def __init__(self, value):
        self.value = value

    def concentration_at(self, point):
        return self.value

    def deplete_sources_at(self, point, amount):
        pass


def make_organism(organism_id, preference, energy=50.0):
    return Organism(
        id=organism_id,
        position=Vector2(1.0, 1.0),
        heading=0.0,
        chem_preference=preference,
        speed=1.0,
        energy=energy,
        energy_capacity=100.0,
    )


def test_organism_stats_summarize_population():
    organisms = [make_organism(1, 10.0, 20.0), make_organism(2, 20.0, 60.0), make_organism(3, 12.0, 100.0)]

    stats = organism_stats(organisms, ConstantField(20.0))

    assert stats.count == 3
    assert stats.average_preference == approx(14.0)
    assert stats.min_preference == 10.0
    assert stats.max_preference == 20.0
    assert stats.preference_std_dev == approx((((16.0 + 36.0 + 4.0) / 3.0)) ** 0.5)
    assert stats.preference_histogram == {"10": 2, "20": 1}
    assert stats.average_concentration == 20.0
    assert stats.preference_exposure_ratio == approx((0.5 + 1.0 + 0.6) / 3.0)
    assert stats.average_energy == approx(60.0)
    assert stats.energy_ratio == approx(0.6)


def test_organism_stats_empty_population():
    stats = organism_stats([], ConstantField(1.0))
    assert stats.count == 0
    assert stats.preference_histogram == {}


def test_sample_points_stay_inside_bounds():
    bounds = Rect(0.0, 0.0, 100.0, 50.0)
    points = list(sample_points(bounds))

    assert len(points) == SAMPLES_PER_AXIS * SAMPLES_PER_AXIS
    assert all(bounds.contains(point) for point in points)


def test_chemical_stats_over_source_field():
    bounds = Rect(0.0, 0.0, 100.0, 100.0)
    field = SourceField(bounds, config=ChemicalConfig(grid_resolution=0.0, target_system_energy=0.0))
    field.add_source(field.make_source(Vector2(50.0, 50.0), 100.0, 0.01))

    stats = chemical_stats(field, bounds, source_count=1)

    assert stats.source_count == 1
    assert 0.0 < stats.min_concentration < stats.average_concentration < stats.max_concentration <= 100.0
    assert sum(stats.concentration_histogram.values()) == SAMPLES_PER_AXIS * SAMPLES_PER_AXIS
