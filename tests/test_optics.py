# tests/test_optics.py

import math

import numpy as np
import pytest

from experiments.diffraction import intensity_profile
from experiments.malus import malus_intensities
from experiments.snell import optimal_crossing, sines, travel_time


# --- Malus ---
def test_unpolarized_source_halves_through_polarizer():
    i1, i2 = malus_intensities(30.0, 30.0, polarized_source=False)
    assert i1 == 50.0
    assert i2 == pytest.approx(50.0)


def test_crossed_polarizers_block_everything():
    _, i2 = malus_intensities(0.0, 90.0, polarized_source=False)
    assert i2 == pytest.approx(0.0, abs=1e-12)


def test_polarized_source_applies_cos_squared_twice():
    i1, i2 = malus_intensities(60.0, 105.0, polarized_source=True)
    assert i1 == pytest.approx(25.0)
    assert i2 == pytest.approx(12.5)


def test_malus_snapshot(make_engine):
    engine = make_engine("malus", theta1=0, theta2=60, polarized_source=1)
    snapshot = engine.tick(0.0)
    assert snapshot.derived["intensity_after_analyzer"] == pytest.approx(25.0)
    assert snapshot.derived["relative_angle"] == 60.0
    curve = snapshot.series["analyzer_curve"]
    assert curve[0] == (0.0, pytest.approx(100.0))
    assert curve[-1][0] == 180.0


# --- Diffraction ---
def test_central_maximum_is_unity():
    for slits in (1, 2):
        assert intensity_profile([0.0], 500.0, 0.1, 0.25, 1.0, slits)[0] == pytest.approx(1.0)


def test_double_slit_dark_fringe():
    # cos^2 vanishes where d sin(theta) = lambda / 2.
    sin_theta = 500e-9 / (2.0 * 0.25e-3)
    x = math.tan(math.asin(sin_theta))
    assert intensity_profile([x], 500.0, 0.1, 0.25, 1.0, 2)[0] == pytest.approx(0.0, abs=1e-9)
    # The single-slit envelope alone stays bright there: sinc^2(pi a sin(theta) / lambda).
    beta = math.pi * 0.1e-3 * sin_theta / 500e-9
    envelope = (math.sin(beta) / beta) ** 2
    assert intensity_profile([x], 500.0, 0.1, 0.25, 1.0, 1)[0] == pytest.approx(envelope)


def test_single_slit_first_minimum():
    x = math.tan(math.asin(500e-9 / 0.1e-3))
    assert intensity_profile([x], 500.0, 0.1, 0.25, 1.0, 1)[0] == pytest.approx(0.0, abs=1e-9)


def test_profile_is_symmetric():
    xs = np.linspace(-0.05, 0.05, 101)
    values = intensity_profile(xs, 650.0, 0.05, 0.3, 2.0, 2)
    assert values == pytest.approx(values[::-1])


def test_diffraction_derived_values(make_engine):
    snapshot = make_engine("diffraction").tick(0.0)
    assert snapshot.derived["fringe_spacing_mm"] == pytest.approx(2.0)
    assert snapshot.derived["central_max_width_mm"] == pytest.approx(10.0)
    assert snapshot.derived["double_slit"] == 0.0
    assert len(snapshot.series["profile"]) == 400


# --- Snell ---
def test_equal_speeds_cross_on_the_straight_line():
    assert optimal_crossing(1.0, 1.0) == pytest.approx(0.5, abs=1e-9)


@pytest.mark.parametrize("v1, v2", [(2.0, 1.0), (1.0, 3.0), (0.5, 5.0)])
def test_optimum_obeys_snells_law(v1, v2):
    best = optimal_crossing(v1, v2)
    sin1, sin2 = sines(best)
    assert sin1 / sin2 == pytest.approx(v1 / v2, rel=1e-6)
    assert travel_time(best, v1, v2) <= travel_time(best + 0.01, v1, v2)
    assert travel_time(best, v1, v2) <= travel_time(best - 0.01, v1, v2)


def test_fire_snaps_to_the_least_time_crossing(make_engine):
    engine = make_engine("snell", v1=2, v2=1, crossing=0.2)
    assert engine.tick(0.0).derived["optimal"] == 0.0
    engine.fire_once()
    derived = engine.tick(16.0).derived
    assert derived["crossing"] == pytest.approx(derived["optimal_crossing"])
    assert derived["optimal"] == 1.0
    assert derived["sin_ratio"] == pytest.approx(derived["velocity_ratio"], rel=1e-6)
