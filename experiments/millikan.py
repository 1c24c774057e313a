# experiments/millikan.py

"""
Millikan oil drop: charged drops fall between two horizontal plates; the
plate voltage can slow, hold or lift them. Balancing a drop measures its
charge.

Positions are in metres (y down, 0 at the upper plate); the renderer scales
them by MILLIKAN_SCALE pixels per metre.
"""

import logging
import math

import numpy as np

import constants
from events import Event
from experiments.base import Experiment
from force_models import StokesDragForce
from measurement import Stopwatch
from parameters import ParameterSpec
from particle import Category, Fate
from particle_pool import Resolution

logger = logging.getLogger("lab_sim")

SPRAY_SIZE = 5
SPRAY_INTERVAL_MS = 100.0
CULL_MARGIN_PX = 50.0
HIT_RADIUS_PX = 20.0


class MillikanExperiment(Experiment):
    name = "millikan"
    title = "Millikan Oil Drop"
    parameter_specs = {
        "voltage": ParameterSpec(0.0, -2000.0, 2000.0, "V"),
    }
    measured_kinds = ("plate_contact",)
    window_ms = 1000.0
    unit_scale = 1.0  # e/s
    smoothing = 0.9
    aggregation_mode = "sum"
    scene_scale = constants.MILLIKAN_SCALE

    def __init__(self, rng):
        super().__init__(rng)
        self.chamber_width = constants.WIDTH / constants.MILLIKAN_SCALE
        self.chamber_height = constants.HEIGHT / constants.MILLIKAN_SCALE
        self.margin = CULL_MARGIN_PX / constants.MILLIKAN_SCALE
        self.force = StokesDragForce()
        self.stopwatch = Stopwatch()
        self.selected_id = None
        self._spray_due = []

    def force_model(self):
        return self.force

    # --- Drops ---
    def spawn_drop(self, pool, now: float):
        radius = (0.5 + self.rng.random() * 0.6) * 1e-6
        x = (self.rng.random() * 0.8 + 0.1) * self.chamber_width
        y = self.rng.random() * 0.2 * self.chamber_height
        charge = -1.0 if self.rng.random() < 0.5 else 1.0
        opacity = 0.7 + self.rng.random() * 0.3
        vx = (self.rng.random() - 0.5) * 1e-5
        return pool.spawn((x, y), (vx, 0.0), charge, size=radius, intensity=opacity,
                          category=Category.OIL_DROP, created=now)

    def fire(self, pool, params, now):
        """Sprays a burst of drops, one every SPRAY_INTERVAL_MS."""
        self._spray_due.extend(now + i * SPRAY_INTERVAL_MS for i in range(SPRAY_SIZE))
        logger.debug(f"Spray queued: {SPRAY_SIZE} drops.")

    def emit(self, pool, params, now):
        due = [t for t in self._spray_due if t <= now]
        if due:
            self._spray_due = [t for t in self._spray_due if t > now]
            for _ in due:
                self.spawn_drop(pool, now)
        return []

    def resolve(self, batch, params, now):
        fates = np.full(len(batch), Fate.ALIVE, dtype=np.int64)
        x = batch.positions[:, 0]
        y = batch.positions[:, 1]

        sideways = (x < -self.margin) | (x > self.chamber_width + self.margin)
        on_plate = ((y <= 0.0) | (y >= constants.PLATE_DISTANCE)) & ~sideways
        fates[sideways] = Fate.ESCAPED
        fates[on_plate] = Fate.ABSORBED

        events = [
            Event(timestamp=now, kind="plate_contact", magnitude=float(batch.scalars[i]),
                  position=(float(x[i]), float(y[i])), particle_id=int(batch.ids[i]))
            for i in np.flatnonzero(on_plate)
        ]

        if self.selected_id is not None:
            rows = np.flatnonzero(batch.ids == self.selected_id)
            if rows.size == 0 or fates[rows[0]] != Fate.ALIVE:
                logger.debug(f"Selected drop {self.selected_id} left the chamber.")
                self.selected_id = None
        return Resolution(fates=fates, events=events)

    # --- Selection ---
    def select_nearest(self, pool, x_px: float, y_px: float, radius_px: float = HIT_RADIUS_PX):
        """
        Selects the drop closest to a pixel position, if one lies within the
        hit radius. Returns the selected id (None clears the selection).
        """
        batch = pool.active_snapshot()
        self.selected_id = None
        if len(batch):
            pixels = batch.positions * self.scene_scale
            distances = np.hypot(pixels[:, 0] - x_px, pixels[:, 1] - y_px)
            nearest = int(np.argmin(distances))
            if distances[nearest] < radius_px:
                self.selected_id = int(batch.ids[nearest])
        return self.selected_id

    def balance_voltage(self, radius: float, charge: float) -> float:
        """Voltage that holds a drop at rest: V = (Fg - Fb) * d / q."""
        volume = (4.0 / 3.0) * math.pi * radius ** 3
        net_weight = volume * (constants.RHO_OIL - constants.RHO_AIR) * constants.GRAVITY
        q = charge * constants.ELEMENTARY_CHARGE
        if q == 0:
            return 0.0
        # The field pushes positive charges down, so holding needs the opposite sign.
        return -net_weight * self.force.plate_distance / q

    # --- Stopwatch ---
    def toggle_stopwatch(self, now: float):
        self.stopwatch.toggle(now)

    def reset_stopwatch(self):
        self.stopwatch.reset()

    # --- Snapshot ---
    def derived(self, params, pool, now):
        elapsed = self.stopwatch.elapsed(now)
        values = {
            "stopwatch_ms": elapsed,
            "stopwatch_running": 1.0 if self.stopwatch.running else 0.0,
            "selected": 0.0,
        }
        if self.selected_id is not None and pool is not None:
            drop = pool.find(self.selected_id)
            if drop is not None:
                values.update({
                    "selected": 1.0,
                    "selected_id": float(drop.id),
                    "selected_radius_um": drop.size * 1e6,
                    "selected_velocity": drop.vy,
                    "selected_charge": drop.scalar,
                    "balance_voltage": self.balance_voltage(drop.size, drop.scalar),
                })
        return values

    def reset(self):
        self.selected_id = None
        self._spray_due = []
        self.stopwatch.reset()
