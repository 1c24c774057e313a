# tests/test_millikan.py

import numpy as np
import pytest

import constants
from experiments.millikan import MillikanExperiment
from particle import Category


@pytest.fixture
def experiment(rng):
    return MillikanExperiment(rng)


@pytest.fixture
def pool(experiment):
    return experiment.build_pool(100, strict=True)


def _spawn(pool, x, y, charge=1.0, radius=0.8e-6):
    return pool.spawn((x, y), (0.0, 0.0), charge, size=radius, category=Category.OIL_DROP)


@pytest.mark.parametrize("charge", [1.0, -1.0])
def test_balance_voltage_holds_a_drop(experiment, make_batch, charge):
    radius = 0.9e-6
    voltage = experiment.balance_voltage(radius, charge)
    assert abs(voltage) <= 2000.0
    batch = make_batch([[0.004, 0.002]], scalars=[charge], sizes=[radius])
    result = experiment.force_model().evaluate(batch, {"voltage": voltage}, 0.016)
    assert result.velocities[0, 1] == pytest.approx(0.0, abs=1e-12)


def test_positive_voltage_lifts_negative_drops(experiment, make_batch):
    batch = make_batch([[0.004, 0.002]] * 2, scalars=[-1.0, 1.0], sizes=[0.6e-6, 0.6e-6])
    result = experiment.force_model().evaluate(batch, {"voltage": 2000.0}, 0.016)
    assert result.velocities[0, 1] < 0.0
    assert result.velocities[1, 1] > 0.0


def test_drop_on_plate_is_absorbed_with_charge_event(experiment, pool, rng):
    _spawn(pool, 0.004, constants.PLATE_DISTANCE - 1e-9, charge=1.0)
    _spawn(pool, 0.004, 2e-9, charge=-1.0)
    events = pool.tick({"voltage": 2000.0}, 0.1, 100.0, rng)

    contacts = [e for e in events if e.kind == "plate_contact"]
    assert sorted(e.magnitude for e in contacts) == [-1.0, 1.0]
    assert len(pool) == 0


def test_drop_leaving_sideways_escapes_silently(experiment, pool, rng):
    _spawn(pool, -1e-3, 0.002)
    _spawn(pool, 0.004, 0.002)
    events = pool.tick({"voltage": 0.0}, 0.016, 16.0, rng)
    assert events == []
    assert len(pool) == 1


def test_spray_releases_five_drops_100ms_apart(make_engine):
    engine = make_engine("millikan")
    engine.tick(0.0)
    engine.fire_once()
    counts = []
    for t in (10.0, 110.0, 210.0, 310.0, 410.0, 600.0):
        engine.tick(t)
        counts.append(engine.particle_count())
    assert counts == [1, 2, 3, 4, 5, 5]


def test_spawned_drops_respect_the_chamber(make_engine):
    engine = make_engine("millikan")
    engine.tick(0.0)
    for _ in range(4):
        engine.fire_once()
    for t in (100.0, 200.0, 300.0, 400.0):
        engine.tick(t)
    batch = engine.pool.active_snapshot()
    width = constants.WIDTH / constants.MILLIKAN_SCALE
    height = constants.HEIGHT / constants.MILLIKAN_SCALE
    # Drops have drifted for at most 0.4 s at well under 1 mm/s.
    slack = 1e-4
    assert len(batch) == 20
    assert ((batch.positions[:, 0] >= 0.1 * width - slack) & (batch.positions[:, 0] <= 0.9 * width + slack)).all()
    assert ((batch.positions[:, 1] >= 0.0) & (batch.positions[:, 1] <= 0.2 * height + slack)).all()
    assert ((batch.sizes >= 0.5e-6) & (batch.sizes <= 1.1e-6)).all()
    assert set(np.abs(batch.scalars)) == {1.0}


def test_select_nearest_drop(experiment, pool):
    near = _spawn(pool, 0.004, 0.002)
    _spawn(pool, 0.0041, 0.002)
    assert experiment.select_nearest(pool, 401.0, 200.0) == near
    assert experiment.select_nearest(pool, 700.0, 450.0) is None


def test_selected_drop_is_deselected_when_culled(experiment, pool, rng):
    doomed = _spawn(pool, 0.004, constants.PLATE_DISTANCE - 1e-9)
    assert experiment.select_nearest(pool, 400.0, 500.0) == doomed
    pool.tick({"voltage": 0.0}, 0.1, 100.0, rng)
    assert experiment.selected_id is None


def test_selection_exposes_drop_properties(make_engine):
    engine = make_engine("millikan")
    engine.tick(0.0)
    engine.fire_once()
    engine.tick(20.0)
    drop = engine.pool.find(int(engine.pool.active_snapshot().ids[0]))
    assert engine.select_drop(drop.x * constants.MILLIKAN_SCALE, drop.y * constants.MILLIKAN_SCALE) == drop.id

    derived = engine.tick(40.0).derived
    assert derived["selected"] == 1.0
    assert derived["selected_radius_um"] == pytest.approx(drop.size * 1e6)
    assert derived["selected_charge"] == drop.scalar
    assert derived["balance_voltage"] == pytest.approx(engine.experiment.balance_voltage(drop.size, drop.scalar))


def test_stopwatch_runs_on_simulation_time(make_engine):
    engine = make_engine("millikan")
    engine.tick(0.0)
    engine.toggle_stopwatch()
    engine.tick(50.0)
    engine.tick(100.0)
    engine.toggle_stopwatch()
    derived = engine.tick(150.0).derived
    assert derived["stopwatch_ms"] == pytest.approx(100.0)
    assert derived["stopwatch_running"] == 0.0
    engine.reset_stopwatch()
    assert engine.tick(200.0).derived["stopwatch_ms"] == 0.0


def test_charge_rate_measures_plate_contacts(make_engine, run_ticks):
    engine = make_engine("millikan", voltage=2000)
    engine.tick(0.0)
    for _ in range(6):
        engine.fire_once()
    # Large steps: drops drift at ~0.1 mm/s, so let minutes pass.
    events = run_ticks(engine, 2000, step_ms=100.0)
    contacts = [e for e in events if e.kind == "plate_contact"]
    assert contacts
    assert all(abs(e.magnitude) == 1.0 for e in contacts)
