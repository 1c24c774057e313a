# engine.py

import logging

import numpy as np

import experiments
from measurement import MeasurementAggregator
from parameters import ParameterStore
from simulation_clock import SimulationClock

logger = logging.getLogger("lab_sim")

DEFAULT_ENGINE_CONFIG = {
    "max_dt": 0.1,
    "strict_invariants": False,
    "pool_capacity": 2000,
}


class SimulationEngine:
    """
    The control boundary of one running experiment. Owns the parameter store,
    the particle pool, the measurement aggregator and the clock; UI code holds
    a reference to the engine and calls its methods, nothing is global.

    Data Contract:
    - Inputs:
        - experiment_name (str): a key of experiments.EXPERIMENTS (KeyError otherwise).
        - rng (np.random.Generator, optional): the single injected random source.
          Defaults to np.random.default_rng(config['master_seed']).
        - config (dict, optional): the parsed config.json. Its 'engine' section
          sets max_dt, strict_invariants and pool_capacity; its 'experiments'
          section overrides parameter defaults.
        - jitter_rng (np.random.Generator, optional): source of Brownian jitter.
          Defaults to a child of rng, so the event stream does not depend on it.
    - Outputs: a RenderSnapshot from every tick().
    - Side Effects: parameter writes are stored immediately but only observed
      by the next tick.
    """
    def __init__(self, experiment_name: str, rng: np.random.Generator = None, config: dict = None,
                 jitter_rng: np.random.Generator = None):
        config = config or {}
        engine_config = {**DEFAULT_ENGINE_CONFIG, **config.get("engine", {})}

        if rng is None:
            rng = np.random.default_rng(config.get("master_seed"))
        if jitter_rng is None:
            jitter_rng = rng.spawn(1)[0]
        self.rng = rng
        self.jitter_rng = jitter_rng

        self.experiment = experiments.create(experiment_name, rng)
        overrides = config.get("experiments", {}).get(experiment_name, {})
        self.store = ParameterStore(self.experiment.parameter_specs, overrides)
        self.pool = self.experiment.build_pool(engine_config["pool_capacity"],
                                               strict=engine_config["strict_invariants"])
        self.aggregator = MeasurementAggregator(
            window_ms=self.experiment.window_ms,
            unit_scale=self.experiment.unit_scale,
            alpha=self.experiment.smoothing,
            mode=self.experiment.aggregation_mode,
        )
        self.clock = SimulationClock(self.experiment, self.store, self.pool, self.aggregator,
                                     rng, jitter_rng, max_dt=engine_config["max_dt"])

        logger.info(f"Engine ready: '{self.experiment.title}' with parameters {self.store.defaults()}, "
                    f"engine settings {engine_config}.")

    # --- Control boundary ---
    def set_parameter(self, name: str, value):
        """Writes a parameter (clamped). Writes to unknown names are logged and ignored."""
        return self.store.set(name, value)

    def get_parameter(self, name: str) -> float:
        return self.store.get(name)

    def fire_once(self):
        """One-shot source: a Compton photon, a Millikan spray, a snap to the optimum."""
        self.experiment.fire(self.pool, self.store.snapshot(), self.clock.time_ms)

    def reset(self):
        """Clears particles and measurement history and restores default parameters."""
        if self.pool is not None:
            self.pool.clear()
        self.aggregator.reset()
        self.store.reset()
        self.experiment.reset()
        logger.info(f"Experiment '{self.experiment.name}' reset.")

    def tick(self, timestamp_ms: float):
        return self.clock.tick(timestamp_ms)

    # --- Read side ---
    @property
    def snapshot(self):
        """The RenderSnapshot of the last tick (None before the first one)."""
        return self.clock.last_snapshot

    @property
    def last_events(self) -> list:
        return self.clock.last_events

    @property
    def measurement(self) -> float:
        return self.aggregator.value

    def particle_count(self) -> int:
        return 0 if self.pool is None else len(self.pool)

    # --- Experiment-specific controls ---
    def select_metal(self, metal: str) -> float:
        """Photoelectric: switches the cathode material. Unknown metals raise KeyError."""
        work_function = self.experiment.metal_work_function(metal)
        logger.info(f"Cathode metal set to {metal} ({work_function:.2f} eV).")
        return self.set_parameter("work_function", work_function)

    def start_auto_scan(self):
        """Franck-Hertz: sweeps the accelerating voltage from 0 to its maximum."""
        self.experiment.start_auto_scan()

    def stop_auto_scan(self):
        self.experiment.stop_auto_scan()

    def select_drop(self, x_px: float, y_px: float, radius_px: float = 20.0):
        """Millikan: selects the drop nearest to a pixel position."""
        return self.experiment.select_nearest(self.pool, x_px, y_px, radius_px)

    def toggle_stopwatch(self):
        self.experiment.toggle_stopwatch(self.clock.time_ms)

    def reset_stopwatch(self):
        self.experiment.reset_stopwatch()
