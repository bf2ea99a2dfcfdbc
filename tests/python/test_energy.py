from pygame.math import Vector2
from pytest import approx

from chemotaxis.sim.core.config import EnergyConfig
from chemotaxis.sim.core.organism import Organism
from chemotaxis.sim.systems.energy import (
    EnergyParams,
    apply_metabolism,
    exchange_energy,
    gain_factor,
    match_similarity,
)


class RecordingField:
    def __init__(self):
        self.depletions = []

    def concentration_at(self, point):
        return 0.0

    def deplete_sources_at(self, point, amount):
        self.depletions.append((Vector2(point), amount))


def make_organism(**overrides):
    values = dict(
        id=3,
        position=Vector2(10.0, 20.0),
        heading=0.0,
        chem_preference=40.0,
        speed=1.0,
        energy=50.0,
        energy_capacity=100.0,
    )
    values.update(overrides)
    return Organism(**values)


def test_similarity_is_relative_to_preference():
    assert match_similarity(40.0, 40.0) == approx(1.0)
    assert match_similarity(36.0, 40.0) == approx(0.9)
    assert match_similarity(44.0, 40.0) == approx(0.9)
    assert match_similarity(200.0, 40.0) == 0.0
    assert match_similarity(float("nan"), 40.0) == 0.0


def test_gain_factor_threshold_and_scaling():
    assert gain_factor(0.7, 0.7) == 0.0
    assert gain_factor(0.85, 0.7) == approx(0.5)
    assert gain_factor(1.0, 0.7) == approx(1.0)
    assert gain_factor(0.5, 0.0) == approx(0.5)


def test_exchange_uses_trait_rate_by_default():
    field = RecordingField()
    organism = make_organism(optimal_gain=2.0)

    gained = exchange_energy(organism, field, 40.0, 0.5)

    assert gained == approx(1.0)
    assert organism.energy == approx(51.0)
    assert field.depletions == [(Vector2(10.0, 20.0), approx(1.0))]


def test_exchange_uses_configured_rate_when_given():
    field = RecordingField()
    organism = make_organism(optimal_gain=2.0)
    params = EnergyParams(optimal_gain_rate=4.0)

    gained = exchange_energy(organism, field, 38.0, 1.0, params)

    expected = 4.0 * (0.95 - 0.7) / 0.3
    assert gained == approx(expected)
    assert organism.energy == approx(50.0 + expected)


def test_exchange_is_capped_by_headroom():
    field = RecordingField()
    organism = make_organism(energy=99.5, optimal_gain=10.0)

    gained = exchange_energy(organism, field, 40.0, 1.0)

    assert gained == approx(0.5)
    assert organism.energy == approx(100.0)
    assert field.depletions[0][1] == approx(0.5)


def test_exchange_never_rounds_past_capacity():
    field = RecordingField()
    organism = make_organism(
        chem_preference=40.0,
        energy=43.05527585805472,
        energy_capacity=107.95570296059311,
        optimal_gain=100.0,
    )

    exchange_energy(organism, field, 40.0, 1.0)

    assert organism.energy <= organism.energy_capacity
    assert organism.energy == approx(107.95570296059311)


def test_exchange_without_gain_leaves_field_alone():
    field = RecordingField()
    organism = make_organism()

    assert exchange_energy(organism, field, 10.0, 1.0) == 0.0
    assert exchange_energy(organism, field, 40.0, 0.0) == 0.0
    assert field.depletions == []
    assert organism.energy == 50.0


def test_metabolism_drains_and_clamps():
    organism = make_organism(metabolic_rate=1.0, energy_efficiency=2.0, sensing_cost=0.5)

    assert apply_metabolism(organism, 4.0) == approx(10.0)
    assert organism.energy == approx(40.0)

    organism.energy = 3.0
    assert apply_metabolism(organism, 4.0) == approx(3.0)
    assert organism.energy == 0.0
    assert apply_metabolism(organism, 0.0) == 0.0


def test_params_from_config():
    config = EnergyConfig(match_threshold=0.6, low_energy_throttle=0.2, apply_metabolism=False)

    params = EnergyParams.from_config(config)
    assert params.optimal_gain_rate is None
    assert params.match_threshold == 0.6
    assert params.throttle_fraction == 0.2
    assert params.apply_metabolism is False

    fixed = EnergyParams.from_config(config, per_organism_gain=False)
    assert fixed.optimal_gain_rate == config.optimal_energy_gain_rate
