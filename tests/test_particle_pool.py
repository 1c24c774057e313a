# tests/test_particle_pool.py

import logging

import numpy as np
import pytest

from force_models import BallisticForce, ForceModel, ForceResult
from particle import Category, Fate
from particle_pool import InvariantViolation, ParticlePool, Resolution, SpawnRequest

PARAMS = {}


class WallResolver:
    """Absorbs anything past x = 100; optionally spawns a child for every absorption."""
    def __init__(self, spawn_children=False):
        self.spawn_children = spawn_children

    def resolve(self, batch, params, now):
        fates = np.where(batch.positions[:, 0] > 100.0, Fate.ABSORBED, Fate.ALIVE).astype(np.int64)
        spawns = []
        if self.spawn_children:
            spawns = [SpawnRequest(position=(0.0, 0.0), velocity=(0.0, 0.0), scalar=1.0,
                                   category=Category.SCATTERED_PHOTON)
                      for _ in np.flatnonzero(fates != Fate.ALIVE)]
        return Resolution(fates=fates, spawns=spawns)


class PoisonResolver:
    """Keeps everything alive but corrupts the positions."""
    def resolve(self, batch, params, now):
        positions = batch.positions.copy()
        positions[:, 0] = np.nan
        return Resolution(fates=np.full(len(batch), Fate.ALIVE, dtype=np.int64), positions=positions)


class NaNForce(ForceModel):
    def evaluate(self, batch, params, dt):
        velocities = batch.velocities.copy()
        velocities[0, 0] = np.inf
        return ForceResult(velocities, batch.scalars.copy())


def test_spawn_assigns_increasing_ids():
    pool = ParticlePool(BallisticForce(), WallResolver())
    ids = [pool.spawn((i, 0.0), (1.0, 0.0), 0.0) for i in range(3)]
    assert ids == [0, 1, 2]
    assert len(pool) == 3
    assert pool.active_snapshot().ids.tolist() == [0, 1, 2]


@pytest.mark.parametrize("position, velocity", [
    ((np.nan, 0.0), (1.0, 0.0)),
    ((0.0, 0.0), (np.inf, 0.0)),
])
def test_spawn_refuses_non_finite_initial_conditions(position, velocity):
    pool = ParticlePool(BallisticForce(), WallResolver())
    assert pool.spawn(position, velocity, 0.0) is None
    assert len(pool) == 0


def test_spawn_refuses_beyond_capacity():
    pool = ParticlePool(BallisticForce(), WallResolver(), capacity=2)
    assert pool.spawn((0, 0), (0, 0), 0.0) is not None
    assert pool.spawn((0, 0), (0, 0), 0.0) is not None
    assert pool.spawn((0, 0), (0, 0), 0.0) is None
    assert len(pool) == 2


def test_tick_integrates_and_removes_in_one_swap(rng):
    pool = ParticlePool(BallisticForce(), WallResolver())
    pool.spawn((0.0, 0.0), (10.0, 0.0), 0.0)
    pool.spawn((95.0, 0.0), (100.0, 0.0), 0.0)
    pool.spawn((50.0, 0.0), (0.0, 20.0), 0.0)

    pool.tick(PARAMS, 0.1, 100.0, rng)
    batch = pool.active_snapshot()
    assert batch.ids.tolist() == [0, 2]
    assert batch.positions.tolist() == [[1.0, 0.0], [50.0, 2.0]]


def test_interaction_spawns_appear_after_the_tick(rng):
    pool = ParticlePool(BallisticForce(), WallResolver(spawn_children=True))
    pool.spawn((99.0, 0.0), (100.0, 0.0), 0.0)
    pool.tick(PARAMS, 0.1, 100.0, rng)

    batch = pool.active_snapshot()
    assert len(batch) == 1
    assert batch.categories[0] == Category.SCATTERED_PHOTON
    assert batch.created[0] == 100.0


def test_non_finite_force_output_drops_only_that_particle(rng, caplog):
    pool = ParticlePool(NaNForce(), WallResolver(), strict=True)
    pool.spawn((0.0, 0.0), (1.0, 0.0), 0.0)
    pool.spawn((10.0, 0.0), (1.0, 0.0), 0.0)

    with caplog.at_level(logging.WARNING, logger="lab_sim"):
        pool.tick(PARAMS, 0.1, 0.0, rng)
    assert pool.active_snapshot().ids.tolist() == [1]
    assert "force evaluation was not finite" in caplog.text


def test_invariant_violation_raises_in_strict_mode(rng):
    pool = ParticlePool(BallisticForce(), PoisonResolver(), strict=True)
    pool.spawn((0.0, 0.0), (1.0, 0.0), 0.0)
    with pytest.raises(InvariantViolation):
        pool.tick(PARAMS, 0.1, 0.0, rng)


def test_invariant_violation_removes_particle_otherwise(rng, caplog):
    pool = ParticlePool(BallisticForce(), PoisonResolver(), strict=False)
    pool.spawn((0.0, 0.0), (1.0, 0.0), 0.0)
    with caplog.at_level(logging.WARNING, logger="lab_sim"):
        pool.tick(PARAMS, 0.1, 0.0, rng)
    assert len(pool) == 0
    assert "non-finite state" in caplog.text


def test_active_snapshot_is_read_only():
    pool = ParticlePool(BallisticForce(), WallResolver())
    pool.spawn((0.0, 0.0), (1.0, 0.0), 0.0)
    batch = pool.active_snapshot()
    with pytest.raises(ValueError):
        batch.positions[0, 0] = 5.0


def test_find_and_clear(rng):
    pool = ParticlePool(BallisticForce(), WallResolver())
    particle_id = pool.spawn((1.0, 2.0), (3.0, 4.0), 7.0, size=1.5)
    view = pool.find(particle_id)
    assert (view.x, view.y, view.vx, view.vy, view.scalar, view.size) == (1.0, 2.0, 3.0, 4.0, 7.0, 1.5)
    assert pool.find(999) is None

    pool.clear()
    assert len(pool) == 0
    assert pool.tick(PARAMS, 0.1, 0.0, rng) == []


@pytest.mark.parametrize("count", [1, 3, 9, 12])
def test_with_columns_keeps_every_other_column(make_batch, count):
    batch = make_batch([[float(i), 0.0] for i in range(count)], scalars=np.arange(count, dtype=float))
    moved = batch.with_columns(positions=batch.positions + 1.0)
    assert len(moved) == count
    assert moved.positions[:, 0].tolist() == [i + 1.0 for i in range(count)]
    assert moved.scalars is batch.scalars


@pytest.mark.parametrize("count", [2, 5, 20])
def test_tick_works_for_any_population(rng, count):
    pool = ParticlePool(BallisticForce(), WallResolver())
    for i in range(count):
        pool.spawn((float(i), 0.0), (1.0, 0.0), 0.0)
    pool.tick(PARAMS, 0.1, 100.0, rng)
    assert len(pool) == count
