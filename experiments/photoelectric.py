# experiments/photoelectric.py

"""
Photoelectric effect: light of a chosen wavelength falls on a curved metal
cathode; photons above the work function eject electrons, which cross the
tube and are collected by the anode, where an ammeter counts them.
"""

import logging
import math

import numpy as np

import constants
from events import Event, spawn_count
from experiments.base import Experiment
from force_models import FieldEnergyForce
from parameters import ParameterSpec
from particle import Category, Fate
from particle_pool import Resolution

logger = logging.getLogger("lab_sim")

# Work functions in eV.
METALS = {
    "sodium": 2.36,
    "calcium": 2.90,
    "zinc": 4.30,
    "copper": 4.70,
    "platinum": 6.35,
    "unknown": 3.50,
}

SPAWN_RATE_PER_INTENSITY = 0.03  # Electrons per tick per % intensity
EMISSION_SPREAD = 1.0            # Radians, full width around the surface normal
SPEED_SCALE = 2.0                # Pixels per frame per sqrt(eV)


def photon_energy(wavelength_nm: float) -> float:
    """Photon energy in eV, E = hc / lambda."""
    if wavelength_nm <= 0:
        return 0.0
    return constants.HC_EV_NM / wavelength_nm


def max_kinetic_energy(wavelength_nm: float, work_function: float) -> float:
    return max(0.0, photon_energy(wavelength_nm) - work_function)


def threshold_frequency_thz(work_function: float) -> float:
    return work_function * constants.ELEMENTARY_CHARGE / constants.PLANCK / 1e12


class PhotoelectricExperiment(Experiment):
    name = "photoelectric"
    title = "Photoelectric Effect"
    parameter_specs = {
        "wavelength": ParameterSpec(510.0, 200.0, 800.0, "nm"),
        "intensity": ParameterSpec(5.0, 0.0, 100.0, "%"),
        "voltage": ParameterSpec(0.0, -5.0, 5.0, "V"),
        "work_function": ParameterSpec(METALS["sodium"], 1.0, 7.0, "eV"),
    }
    measured_kinds = ("detected",)
    window_ms = 500.0
    unit_scale = 0.2  # uA per electron per second of window
    smoothing = 0.9

    def __init__(self, rng):
        super().__init__(rng)
        cx, _ = constants.PHOTO_CATHODE_CENTER
        anode_x, anode_y, anode_w, anode_h = constants.PHOTO_ANODE
        self.anode_left = anode_x
        self.anode_right = anode_x + anode_w
        self.anode_y = anode_y
        self.anode_half_height = anode_h / 2.0
        self.gap = (cx + constants.PHOTO_CATHODE_RADIUS) - self.anode_right
        self._last_work_function = None

    def force_model(self):
        return FieldEnergyForce(gap=self.gap, speed_scale=SPEED_SCALE)

    @staticmethod
    def metal_work_function(metal: str) -> float:
        return METALS[metal]

    def emit_electron(self, pool, params, x: float, y: float, normal_angle: float, now: float):
        """
        Ejects one electron from (x, y). Photons at or below the work function
        eject nothing; the call is then a no-op returning None.
        """
        energy = photon_energy(params["wavelength"])
        work_function = params["work_function"]
        if energy <= work_function:
            return None

        kinetic = (energy - work_function) * (0.9 + self.rng.random() * 0.1)
        speed = math.sqrt(kinetic) * SPEED_SCALE * constants.REFERENCE_FPS
        angle = normal_angle + (self.rng.random() - 0.5) * EMISSION_SPREAD
        velocity = (math.cos(angle) * speed, math.sin(angle) * speed)
        return pool.spawn((x, y), velocity, kinetic, size=2.0, intensity=1.0,
                          category=Category.PHOTOELECTRON, created=now)

    def emit_from_cathode(self, pool, params, now: float):
        """Picks a random point on the cathode dish and emits toward its focus."""
        theta = (self.rng.random() - 0.5) * 2.0 * constants.PHOTO_CATHODE_SPREAD
        cx, cy = constants.PHOTO_CATHODE_CENTER
        r = constants.PHOTO_CATHODE_RADIUS
        x = cx + r * math.cos(theta)
        y = cy + r * math.sin(theta)
        return self.emit_electron(pool, params, x - 2.0, y, theta + math.pi, now)

    def prepare(self, pool, params, now):
        work_function = params["work_function"]
        if self._last_work_function is not None and work_function != self._last_work_function:
            logger.info(f"Cathode changed (work function {work_function:.2f} eV); clearing electrons.")
            pool.clear()
        self._last_work_function = work_function

    def emit(self, pool, params, now):
        intensity = params["intensity"]
        if intensity > 0:
            for _ in range(spawn_count(intensity * SPAWN_RATE_PER_INTENSITY, self.rng)):
                self.emit_from_cathode(pool, params, now)
        return []

    def resolve(self, batch, params, now):
        n = len(batch)
        fates = np.full(n, Fate.ALIVE, dtype=np.int64)
        x = batch.positions[:, 0]
        y = batch.positions[:, 1]
        cx, cy = constants.PHOTO_CATHODE_CENTER

        out_of_tube = (y < constants.PHOTO_TUBE_TOP) | (y > constants.PHOTO_TUBE_BOTTOM) | (x < 0) | (x > constants.WIDTH)
        fates[out_of_tube] = Fate.ESCAPED

        behind_anode = x < self.anode_left
        into_cathode = (np.hypot(x - cx, y - cy) > constants.PHOTO_CATHODE_RADIUS) & (x > cx)
        stopped = batch.scalars <= 0
        fates[behind_anode | into_cathode | stopped] = Fate.ABSORBED

        # Anything that crossed the anode face within its height was collected.
        collected = (x <= self.anode_right) & (np.abs(y - self.anode_y) < self.anode_half_height) & ~stopped
        fates[collected] = Fate.DETECTED

        events = [
            Event(timestamp=now, kind="detected", magnitude=float(batch.scalars[i]),
                  position=(float(x[i]), float(y[i])), particle_id=int(batch.ids[i]))
            for i in np.flatnonzero(collected)
        ]
        return Resolution(fates=fates, events=events)

    def derived(self, params, pool, now):
        wavelength = params["wavelength"]
        work_function = params["work_function"]
        kemax = max_kinetic_energy(wavelength, work_function)
        return {
            "photon_energy_ev": photon_energy(wavelength),
            "max_kinetic_energy_ev": kemax,
            "stopping_voltage": kemax,
            "threshold_frequency_thz": threshold_frequency_thz(work_function),
            "threshold_wavelength_nm": constants.HC_EV_NM / work_function,
        }

    def reset(self):
        self._last_work_function = None
