# experiments/base.py

import logging

import numpy as np

from particle import Fate
from particle_pool import ParticlePool, Resolution

logger = logging.getLogger("lab_sim")


class Experiment:
    """
    Base class for one demonstration hosted by the engine.

    An experiment declares its fixed parameter set and how its observable is
    aggregated, and supplies the models its particle pool runs on. The engine
    calls the hooks below in a fixed order every tick:

        drive(store, now)              parameter drivers (auto-scan), before the snapshot
        prepare(pool, params, now)     reacts to polled parameter changes
        pool.tick(...)                 force model, event model, resolve()
        emit(pool, params, now)        continuous sources; may return sampled events
        observe(events, now)           private bookkeeping (flashes, curves)
        derived / series / flashes     snapshot contents

    Data Contract:
    - Inputs: rng (np.random.Generator) - the engine's single seeded generator.
      All random draws of the experiment come from it.
    - Invariants: parameter_specs keys never change at run time.
    """
    name = "experiment"
    title = "Experiment"
    parameter_specs = {}

    # Aggregation of the observable
    measured_kinds = ("detected",)
    window_ms = 500.0
    unit_scale = 1.0
    smoothing = 0.9
    aggregation_mode = "rate"

    # Pixels per scene unit, applied when particles are projected for drawing
    scene_scale = 1.0

    def __init__(self, rng: np.random.Generator):
        self.rng = rng

    # --- Particle models (None = analytic experiment without particles) ---
    def force_model(self):
        return None

    def event_model(self):
        return None

    def build_pool(self, capacity: int, strict: bool = False):
        force_model = self.force_model()
        if force_model is None:
            return None
        return ParticlePool(force_model, self, event_model=self.event_model(),
                            capacity=capacity, strict=strict)

    def resolve(self, batch, params, now) -> Resolution:
        return Resolution(fates=np.full(len(batch), Fate.ALIVE, dtype=np.int64))

    # --- Tick hooks ---
    def drive(self, store, now: float):
        pass

    def prepare(self, pool, params, now: float):
        pass

    def emit(self, pool, params, now: float) -> list:
        return []

    def fire(self, pool, params, now: float):
        pass

    def observe(self, events: list, now: float):
        pass

    # --- Snapshot contents ---
    def derived(self, params, pool, now: float) -> dict:
        return {}

    def particles_visible(self, params) -> bool:
        return True

    def series(self, params) -> dict:
        return {}

    def flashes(self, now: float) -> tuple:
        return ()

    def reset(self):
        pass
