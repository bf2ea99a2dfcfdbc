import math

import pytest
from pygame.math import Vector2
from pytest import approx

from chemotaxis.sim.core.geometry import Rect
from chemotaxis.sim.core.organism import Organism
from chemotaxis.sim.systems.behavior import update
from chemotaxis.sim.systems.energy import EnergyParams
from chemotaxis.sim.systems.steering import Direction


class RecordingField:
    def __init__(self, sample):
        self._sample = sample
        self.depletions = []

    def concentration_at(self, point):
        return self._sample(point)

    def deplete_sources_at(self, point, amount):
        self.depletions.append((Vector2(point), amount))


def make_organism(**overrides):
    values = dict(
        id=1,
        position=Vector2(50.0, 50.0),
        heading=0.0,
        chem_preference=10.0,
        speed=1.0,
        energy=100.0,
        energy_capacity=100.0,
    )
    values.update(overrides)
    return Organism(**values)


def test_gradient_turns_organism_before_moving():
    field = RecordingField(lambda p: p.x)
    organism = make_organism(heading=math.pi, chem_preference=90.0)

    outcome = update(organism, field, Rect(0.0, 0.0, 100.0, 100.0), 5.0, 0.1, 1.0)

    assert outcome.direction is Direction.LEFT
    assert organism.heading == approx(math.pi - 0.1)
    assert organism.position != Vector2(50.0, 50.0)
    assert organism.position.x == approx(50.0 + math.cos(math.pi - 0.1))


def test_high_preference_aligns_with_gradient():
    field = RecordingField(lambda p: p.x)
    bounds = Rect(0.0, 0.0, 1000.0, 1000.0)
    organism = make_organism(position=Vector2(500.0, 500.0), heading=math.pi / 2, chem_preference=1000.0)

    alignment = [math.cos(organism.heading)]
    for _ in range(40):
        update(organism, field, bounds, 5.0, 0.1, 1.0)
        alignment.append(math.cos(organism.heading))

    assert all(later >= earlier - 1e-12 for earlier, later in zip(alignment, alignment[1:]))
    assert alignment[-1] > 0.9
    assert organism.position.x > 500.0


def test_matching_concentration_gains_energy_and_depletes_at_new_position():
    field = RecordingField(lambda p: 50.0)
    organism = make_organism(chem_preference=50.0, energy=50.0)

    outcome = update(organism, field, Rect(0.0, 0.0, 100.0, 100.0), 5.0, 0.1, 1.0)

    assert organism.energy > 50.0
    assert outcome.energy_gained > 0.0
    assert len(field.depletions) == 1
    point, amount = field.depletions[0]
    assert point == organism.position
    assert amount == approx(outcome.energy_gained)


def test_mismatched_concentration_gains_nothing():
    field = RecordingField(lambda p: 5.0)
    organism = make_organism(chem_preference=50.0, energy=50.0)

    outcome = update(organism, field, Rect(0.0, 0.0, 100.0, 100.0), 5.0, 0.1, 1.0)

    assert outcome.energy_gained == 0.0
    assert organism.energy < 50.0
    assert field.depletions == []


def test_metabolism_runs_when_enabled():
    field = RecordingField(lambda p: 0.0)
    organism = make_organism(speed=0.0, metabolic_rate=0.5, sensing_cost=0.1)

    outcome = update(
        organism,
        field,
        Rect(0.0, 0.0, 100.0, 100.0),
        5.0,
        0.1,
        2.0,
        EnergyParams(apply_metabolism=True),
    )

    assert outcome.energy_spent == approx((0.5 + 0.1) * 2.0)
    assert organism.energy == approx(100.0 - 1.2)


@pytest.mark.parametrize("delta_time", [0.0, 0.1, 1.0, 25.0])
def test_energy_stays_within_capacity(delta_time):
    field = RecordingField(lambda p: p.x + p.y)
    bounds = Rect(0.0, 0.0, 100.0, 100.0)
    organism = make_organism(chem_preference=100.0, speed=3.0, energy=90.0, optimal_gain=40.0)
    params = EnergyParams(apply_metabolism=True)

    for _ in range(200):
        update(organism, field, bounds, 5.0, 0.3, delta_time, params)
        assert 0.0 <= organism.energy <= organism.energy_capacity
        assert bounds.contains(organism.position)
        assert abs(organism.heading - organism.previous_heading) <= math.pi + 1e-12
