# experiments/michelson_morley.py

"""
Michelson-Morley interferometer. Under the ether hypothesis, rotating the
apparatus in the ether wind should shift the interference fringes by
10 v^2 cos(2 theta); under relativity nothing moves. Background tracers
visualize the (hypothetical) wind.
"""

import logging
import math

import numba
import numpy as np

import constants
from events import Event
from experiments.base import Experiment
from force_models import DriftForce
from measurement import CurveHistory
from parameters import ParameterSpec
from particle import Category, Fate
from particle_pool import Resolution

logger = logging.getLogger("lab_sim")

TRACER_COUNT = 100


@numba.jit(nopython=True)
def _fringe_pattern_jit(width, height, spacing, phase_shift):
    """
    Concentric ring intensities in 0..1 for a width x height image:
    I = cos^2(pi * (r^2 / (spacing * R) - phase_shift)), R = min(w, h) / 2.
    """
    pattern = np.empty((height, width))
    cx = width / 2.0
    cy = height / 2.0
    max_r = min(width, height) / 2.0
    for y in range(height):
        dy = y - cy
        for x in range(width):
            dx = x - cx
            phase = (dx * dx + dy * dy) / (spacing * max_r) - phase_shift
            c = math.cos(phase * math.pi)
            pattern[y, x] = c * c
    return pattern


def fringe_shift(ether_speed: float, angle_deg: float, relativity: bool) -> float:
    if relativity:
        return 0.0
    return 10.0 * ether_speed ** 2 * math.cos(2.0 * math.radians(angle_deg))


def ring_spacing(wavelength_nm: float) -> float:
    """Ring spacing in pixels, 15 at 400 nm to 25 at 700 nm."""
    return 15.0 + 10.0 * (wavelength_nm - 400.0) / 300.0


def fringe_pattern(params, width: int, height: int) -> np.ndarray:
    shift = fringe_shift(params["ether_speed"], params["angle"], params["relativity"] >= 0.5)
    return _fringe_pattern_jit(int(width), int(height), ring_spacing(params["wavelength"]), shift * math.pi)


class MichelsonMorleyExperiment(Experiment):
    name = "michelson_morley"
    title = "Michelson-Morley Experiment"
    parameter_specs = {
        "ether_speed": ParameterSpec(0.1, 0.0, 0.5, "c"),
        "angle": ParameterSpec(0.0, 0.0, 360.0, "deg"),
        "wavelength": ParameterSpec(650.0, 400.0, 700.0, "nm"),
        "relativity": ParameterSpec(0.0, 0.0, 1.0, "", integer=True),
    }
    measured_kinds = ("fringe",)
    window_ms = 500.0
    unit_scale = 1.0
    smoothing = 0.9
    aggregation_mode = "mean"

    def __init__(self, rng):
        super().__init__(rng)
        self.history = CurveHistory(min_step=0.1, max_points=600)
        self._seeded = False

    def force_model(self):
        return DriftForce(width=constants.WIDTH)

    def particles_visible(self, params) -> bool:
        return params["relativity"] < 0.5 and params["ether_speed"] > 0

    def prepare(self, pool, params, now):
        if self._seeded:
            return
        for _ in range(TRACER_COUNT):
            x = self.rng.random() * constants.WIDTH
            y = self.rng.random() * constants.HEIGHT
            size = self.rng.random() * 2.0 + 1.0
            speed = self.rng.random() * 0.5 + 0.5
            pool.spawn((x, y), (0.0, 0.0), speed, size=size, intensity=0.4,
                       category=Category.ETHER, created=now)
        self._seeded = True

    def resolve(self, batch, params, now):
        # Tracers never leave; they re-enter on the left.
        positions = batch.positions.copy()
        positions[:, 0] = np.mod(positions[:, 0], constants.WIDTH)
        return Resolution(fates=np.full(len(batch), Fate.ALIVE, dtype=np.int64), positions=positions)

    def emit(self, pool, params, now):
        shift = fringe_shift(params["ether_speed"], params["angle"], params["relativity"] >= 0.5)
        self.history.add(now / 1000.0, shift)
        return [Event(timestamp=now, kind="fringe", magnitude=shift)]

    def derived(self, params, pool, now):
        relativity = params["relativity"] >= 0.5
        shift = fringe_shift(params["ether_speed"], params["angle"], relativity)
        return {
            "fringe_shift": shift,
            "phase_shift": shift * math.pi,
            "ring_spacing": ring_spacing(params["wavelength"]),
            "ether_model": 0.0 if relativity else 1.0,
        }

    def series(self, params):
        return {"fringe_history": self.history.as_tuple()}

    def reset(self):
        self.history.clear()
        self._seeded = False
