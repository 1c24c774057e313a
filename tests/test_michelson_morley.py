# tests/test_michelson_morley.py

import numpy as np
import pytest

import constants
from experiments.michelson_morley import TRACER_COUNT, fringe_pattern, fringe_shift, ring_spacing


@pytest.mark.parametrize("speed, angle, expected", [
    (0.1, 0.0, 0.1),
    (0.1, 90.0, -0.1),
    (0.1, 45.0, 0.0),
    (0.5, 180.0, 2.5),
    (0.0, 0.0, 0.0),
])
def test_fringe_shift_under_ether(speed, angle, expected):
    assert fringe_shift(speed, angle, relativity=False) == pytest.approx(expected, abs=1e-12)


def test_relativity_shows_no_shift():
    assert fringe_shift(0.5, 0.0, relativity=True) == 0.0


def test_ring_spacing_follows_wavelength():
    assert ring_spacing(400.0) == 15.0
    assert ring_spacing(700.0) == 25.0


def test_fringe_pattern_shape_and_range():
    params = {"ether_speed": 0.2, "angle": 30.0, "wavelength": 550.0, "relativity": 0.0}
    pattern = fringe_pattern(params, 120, 80)
    assert pattern.shape == (80, 120)
    assert pattern.min() >= 0.0
    assert pattern.max() <= 1.0 + 1e-12


def test_pattern_centre_is_bright_without_shift():
    params = {"ether_speed": 0.3, "angle": 0.0, "wavelength": 650.0, "relativity": 1.0}
    pattern = fringe_pattern(params, 100, 100)
    assert pattern[50, 50] == pytest.approx(1.0)


def test_tracers_wrap_inside_the_scene(make_engine, run_ticks):
    engine = make_engine("michelson_morley", ether_speed=0.5)
    run_ticks(engine, 200)
    particles = engine.snapshot.particles
    assert len(particles) == TRACER_COUNT
    assert all(0.0 <= p.x < constants.WIDTH for p in particles)


def test_tracers_hidden_under_relativity(make_engine, run_ticks):
    engine = make_engine("michelson_morley", relativity=1)
    run_ticks(engine, 10)
    assert engine.snapshot.particles == ()
    assert engine.snapshot.derived["ether_model"] == 0.0


def test_measured_fringe_shift_settles(make_engine, run_ticks):
    engine = make_engine("michelson_morley", ether_speed=0.1, angle=0)
    run_ticks(engine, 300)
    assert engine.measurement == pytest.approx(0.1, abs=1e-3)
    assert engine.snapshot.series["fringe_history"]


def test_reset_reseeds_tracers(make_engine, run_ticks):
    engine = make_engine("michelson_morley")
    run_ticks(engine, 5)
    engine.reset()
    run_ticks(engine, 1)
    assert engine.particle_count() == TRACER_COUNT
    assert np.isfinite(engine.pool.active_snapshot().positions).all()
