import math

import pytest
from pygame.math import Vector2
from pytest import approx

from chemotaxis.sim.core.geometry import Rect
from chemotaxis.sim.core.organism import MAX_TRAIL_LENGTH, Organism
from chemotaxis.sim.systems.kinematics import movement_cost, move, reflect_heading, turn

BOUNDS = Rect(0.0, 0.0, 100.0, 100.0)


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


def test_straight_move_advances_by_speed():
    organism = make_organism()
    move(organism, BOUNDS, 1.0)

    assert organism.position.x == approx(51.0)
    assert organism.position.y == approx(50.0)
    assert organism.energy < 100.0
    assert organism.trail[-1] == organism.position


def test_movement_cost_scales_with_speed_and_efficiency():
    organism = make_organism(speed=4.0, energy_efficiency=1.5, movement_cost=0.02)
    assert movement_cost(organism, 2.0) == approx(2.0 * 0.02 * 1.5 * (1.0 + 4.0 * 0.05))


@pytest.mark.parametrize("speed", [1.0, 10.0])
def test_right_wall_reflects_and_clamps(speed):
    organism = make_organism(position=Vector2(99.5, 50.0), speed=speed)
    move(organism, BOUNDS, 1.0)

    assert BOUNDS.contains(organism.position)
    assert organism.position.x == approx(100.0 - 0.001)
    assert organism.heading == approx(math.pi)


def test_top_wall_reflects_vertical_component():
    organism = make_organism(position=Vector2(50.0, 99.5), heading=math.pi / 2)
    move(organism, BOUNDS, 1.0)

    assert BOUNDS.contains(organism.position)
    assert organism.heading == approx(3 * math.pi / 2)


def test_corner_hit_uses_vertical_bounce_from_incoming_heading():
    organism = make_organism(position=Vector2(99.5, 99.5), heading=math.pi / 4)
    move(organism, BOUNDS, 1.0)

    assert BOUNDS.contains(organism.position)
    assert organism.heading == approx(7 * math.pi / 4)
    assert reflect_heading(math.pi / 4, True, True) == approx(7 * math.pi / 4)


def test_organism_stays_inside_bounds_over_many_steps():
    organism = make_organism(speed=7.0, energy=1e6, energy_capacity=1e6, heading=0.3)
    for step in range(2000):
        if step % 17 == 0:
            turn(organism, 0.9)
        move(organism, BOUNDS, 1.0)
        assert BOUNDS.contains(organism.position)
        assert 0.0 <= organism.energy <= organism.energy_capacity
        assert abs(organism.heading - organism.previous_heading) <= math.pi + 1e-12


def test_zero_energy_does_not_move():
    organism = make_organism(energy=0.0)
    move(organism, BOUNDS, 1.0)

    assert organism.position == Vector2(50.0, 50.0)
    assert organism.energy == 0.0
    assert len(organism.trail) == 1


def test_movement_that_exhausts_energy_is_cancelled():
    organism = make_organism(energy=0.01, movement_cost=1.0)
    move(organism, BOUNDS, 1.0)

    assert organism.position == Vector2(50.0, 50.0)
    assert organism.energy == 0.0


def test_low_energy_throttles_distance():
    organism = make_organism(energy=5.0)
    cost = movement_cost(organism, 1.0)
    move(organism, BOUNDS, 1.0)

    remaining = 5.0 - cost
    assert organism.energy == approx(remaining)
    assert organism.position.x == approx(50.0 + remaining / 10.0)


def test_throttle_fraction_is_configurable():
    organism = make_organism(energy=5.0)
    move(organism, BOUNDS, 1.0, throttle_fraction=0.0)
    assert organism.position.x == approx(51.0)


def test_energy_above_capacity_is_clamped():
    organism = make_organism(speed=0.0)
    organism.energy = 250.0
    move(organism, BOUNDS, 1.0)
    assert organism.energy == approx(100.0)


@pytest.mark.parametrize("delta_time", [0.0, -1.0, float("nan")])
def test_degenerate_time_step_is_a_no_op(delta_time):
    organism = make_organism()
    move(organism, BOUNDS, delta_time)

    assert organism.position == Vector2(50.0, 50.0)
    assert organism.energy == approx(100.0)
    assert organism.time_since_reproduction == 0.0


def test_zero_speed_stays_put_but_records_trail():
    organism = make_organism(speed=0.0)
    move(organism, BOUNDS, 1.0)
    move(organism, BOUNDS, 1.0)

    assert organism.position == Vector2(50.0, 50.0)
    assert len(organism.trail) == 2
    assert organism.time_since_reproduction == approx(2.0)


def test_trail_is_bounded():
    organism = make_organism(speed=0.1)
    for _ in range(MAX_TRAIL_LENGTH + 10):
        move(organism, BOUNDS, 1.0)
    assert len(organism.trail) == MAX_TRAIL_LENGTH


def test_turn_normalizes_heading():
    organism = make_organism(heading=0.05)
    turn(organism, -0.1)
    assert organism.heading == approx(2 * math.pi - 0.05)
    turn(organism, 0.2)
    assert organism.heading == approx(0.15)


def test_previous_heading_is_unwrapped_after_reflection():
    organism = make_organism(position=Vector2(99.5, 50.0), heading=0.1)
    move(organism, BOUNDS, 1.0)

    assert organism.heading == approx(math.pi - 0.1)
    assert abs(organism.heading - organism.previous_heading) <= math.pi
    assert math.cos(organism.previous_heading) == approx(math.cos(0.1))
