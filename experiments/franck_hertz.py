# experiments/franck_hertz.py

"""
Franck-Hertz tube: electrons accelerated through mercury vapour lose exactly
4.9 eV per inelastic collision, so the anode current dips periodically as the
accelerating voltage rises.

The current curve is a stylized closed form (a V^1.5 diode current modulated
by Gaussian dips near n * 4.9 V + contact potential), kept for its qualitative
shape rather than derived from first principles. The particle view shows the
same threshold gating with individual electrons.
"""

import logging
import math
from collections import deque

import numba
import numpy as np

import constants
from events import Event, InelasticCollisionModel, spawn_count
from experiments.base import Experiment
from force_models import TubeEnergyForce
from measurement import CurveHistory
from parameters import ParameterSpec
from particle import Category, Fate
from particle_pool import Resolution
from snapshot import Flash

logger = logging.getLogger("lab_sim")

COLLISION_PROBABILITY = 0.2   # Per eligible electron per tick at full dip strength
FLASH_LIFETIME_MS = 1000.0 / 3.0
SCAN_STEP = 0.1               # Volts per tick
SCAN_LIMIT = 80.0             # Volts


@numba.jit(nopython=True)
def _franck_hertz_current_jit(voltage, dip_strength, transmission, excitation, contact):
    """Anode current for one accelerating voltage (arbitrary units)."""
    if voltage < 0.0:
        return 0.0
    base = voltage ** 1.5 * 0.2 * transmission

    modulation = 0.0
    for k in range(1, 15):
        drop = k * excitation + contact
        if voltage < drop - 3.0:
            break
        diff = voltage - drop
        modulation += math.exp(-(diff * diff) / 1.5)

    factor = 1.0 - 0.8 * dip_strength * modulation
    if factor < 0.1:
        factor = 0.1
    return base * factor


def temperature_factor(temperature: float):
    """
    Returns (dip_strength, transmission), both in 0..1.

    Cold (< 140 C): too little vapour, no dips, full current.
    Optimal (140-200 C): Gaussian dip strength peaking at 180 C, 80 % transmission.
    Hot (> 200 C): dips persist at half strength, transmission collapses.
    """
    if temperature < 140:
        return 0.0, 1.0
    if temperature <= 200:
        distance = temperature - 180.0
        return math.exp(-(distance * distance) / (20.0 * 20.0)), 0.8
    return 0.5, math.exp(-(temperature - 200.0) / 20.0) * 0.5


def anode_current(voltage: float, temperature: float) -> float:
    dip_strength, transmission = temperature_factor(temperature)
    return float(_franck_hertz_current_jit(float(voltage), dip_strength, transmission,
                                           constants.EXCITATION_ENERGY, constants.CONTACT_POTENTIAL))


class FranckHertzExperiment(Experiment):
    name = "franck_hertz"
    title = "Franck-Hertz Experiment"
    parameter_specs = {
        "accelerating_voltage": ParameterSpec(0.0, 0.0, SCAN_LIMIT, "V"),
        "retarding_voltage": ParameterSpec(1.5, 0.0, 5.0, "V"),
        "temperature": ParameterSpec(180.0, 100.0, 250.0, "C"),
    }
    measured_kinds = ("detected",)
    window_ms = 500.0
    unit_scale = 1.0
    smoothing = 0.9

    def __init__(self, rng):
        super().__init__(rng)
        self.history = CurveHistory(min_step=0.2)
        self.auto_scanning = False
        self._scan_restart = False
        self._scan_written = None
        self._collisions = deque(maxlen=500)

    def force_model(self):
        return TubeEnergyForce()

    def event_model(self):
        return InelasticCollisionModel(
            threshold=constants.EXCITATION_ENERGY,
            base_probability=COLLISION_PROBABILITY,
            density=lambda params: temperature_factor(params["temperature"])[0],
            region_limit_x=constants.FH_GRID_X,
        )

    # --- Auto-scan ---
    def start_auto_scan(self):
        logger.info("Franck-Hertz auto-scan started.")
        self.auto_scanning = True
        self._scan_restart = True

    def stop_auto_scan(self):
        if self.auto_scanning:
            logger.info("Franck-Hertz auto-scan stopped.")
        self.auto_scanning = False
        self._scan_restart = False
        self._scan_written = None

    def drive(self, store, now):
        if not self.auto_scanning:
            return
        if self._scan_restart:
            self.history.clear()
            self._scan_written = store.set("accelerating_voltage", 0.0)
            self._scan_restart = False
            return
        current = store.get("accelerating_voltage")
        if self._scan_written is not None and current != self._scan_written:
            # Someone moved the voltage by hand.
            self.stop_auto_scan()
            return
        self._scan_written = store.set("accelerating_voltage", current + SCAN_STEP)
        if self._scan_written >= SCAN_LIMIT:
            self.stop_auto_scan()

    # --- Particles ---
    def emit(self, pool, params, now):
        voltage = params["accelerating_voltage"]
        self.history.add(voltage, anode_current(voltage, params["temperature"]))

        rate = max(0.0, (params["temperature"] - 100.0) / 500.0)
        for _ in range(spawn_count(rate, self.rng)):
            y = 50.0 + self.rng.random() * (constants.HEIGHT - 100.0)
            speed = (0.5 + self.rng.random() * 0.5) * constants.REFERENCE_FPS
            pool.spawn((constants.FH_CATHODE_X, y), (speed, 0.0), 0.0, size=2.0,
                       category=Category.TUBE_ELECTRON, created=now)
        return []

    def resolve(self, batch, params, now):
        fates = np.full(len(batch), Fate.ALIVE, dtype=np.int64)
        x = batch.positions[:, 0]

        in_retarding = x >= constants.FH_GRID_X
        stopped = in_retarding & (batch.scalars <= 0)
        arrived = (x >= constants.FH_ANODE_X) & ~stopped
        fates[stopped] = Fate.ABSORBED
        fates[arrived] = Fate.DETECTED

        categories = np.where(batch.collisions > 0, Category.EXCITED_ELECTRON, Category.TUBE_ELECTRON)
        events = [
            Event(timestamp=now, kind="detected", magnitude=float(batch.scalars[i]),
                  position=(float(x[i]), float(batch.positions[i, 1])), particle_id=int(batch.ids[i]))
            for i in np.flatnonzero(arrived)
        ]
        return Resolution(fates=fates, events=events, categories=categories.astype(np.int64))

    def observe(self, events, now):
        for event in events:
            if event.kind == "collision":
                self._collisions.append(event)
        while self._collisions and now - self._collisions[0].timestamp >= FLASH_LIFETIME_MS:
            self._collisions.popleft()

    def flashes(self, now):
        return tuple(
            Flash(x=e.position[0], y=e.position[1],
                  opacity=max(0.0, 1.0 - (now - e.timestamp) / FLASH_LIFETIME_MS))
            for e in self._collisions
        )

    # --- Snapshot ---
    def derived(self, params, pool, now):
        voltage = params["accelerating_voltage"]
        dip_strength, transmission = temperature_factor(params["temperature"])
        total = voltage + constants.CONTACT_POTENTIAL
        order = math.floor(total / constants.EXCITATION_ENERGY)
        return {
            "current": anode_current(voltage, params["temperature"]),
            "dip_strength": dip_strength,
            "transmission": transmission,
            "collision_order": float(order),
            "residual_energy": total - order * constants.EXCITATION_ENERGY,
            "excitation_energy": constants.EXCITATION_ENERGY,
            "auto_scanning": 1.0 if self.auto_scanning else 0.0,
        }

    def series(self, params):
        return {"iv_curve": self.history.as_tuple()}

    def reset(self):
        self.stop_auto_scan()
        self.history.clear()
        self._collisions.clear()
