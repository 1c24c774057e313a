# simulation_clock.py

import logging
import math
from types import MappingProxyType

from snapshot import RenderSnapshot, project_particles

logger = logging.getLogger("lab_sim")


class SimulationClock:
    """
    Runs one tick of an experiment in a fixed order.

    Sequence of tick(timestamp_ms):
    1. Parameter drivers run (auto-scan, snap-to-optimum), then ONE read-only
       parameter snapshot is taken; nothing later in the tick reads the store.
    2. The experiment reacts to polled changes (prepare).
    3. The particle pool advances (forces, stochastic events, fates).
    4. Continuous sources emit new particles and sampled events.
    5. Events of the measured kinds go to the aggregator, which then ticks.
    6. The RenderSnapshot is built from the post-tick state.

    Data Contract:
    - Inputs: the experiment, its ParameterStore, its ParticlePool (None for
      analytic experiments), a MeasurementAggregator, the engine generator
      and an optional separate jitter generator, max_dt in seconds.
    - Outputs: a RenderSnapshot per tick; the tick's events in last_events.
    - Invariants: dt is in [0, max_dt]. Simulation time never goes backwards.
    """
    def __init__(self, experiment, store, pool, aggregator, rng, jitter_rng=None, max_dt: float = 0.1):
        self.experiment = experiment
        self.store = store
        self.pool = pool
        self.aggregator = aggregator
        self.rng = rng
        self.jitter_rng = jitter_rng
        self.max_dt = max_dt

        self.tick_count = 0
        self.time_ms = 0.0
        self._last_timestamp = None
        self.last_events = []
        self.last_snapshot = None

    def _advance(self, timestamp_ms: float) -> float:
        """Returns dt in seconds for this tick and moves the clock forward."""
        if not math.isfinite(timestamp_ms):
            logger.warning(f"Non-finite timestamp {timestamp_ms!r}; tick runs with dt = 0.")
            return 0.0
        if self._last_timestamp is None:
            self._last_timestamp = timestamp_ms
            self.time_ms = max(self.time_ms, timestamp_ms)
            return 0.0

        dt = (timestamp_ms - self._last_timestamp) / 1000.0
        self._last_timestamp = timestamp_ms
        if dt <= 0:
            return 0.0
        # Long stalls (window dragged, debugger) are capped at max_dt.
        dt = min(dt, self.max_dt)
        self.time_ms += dt * 1000.0
        return dt

    def tick(self, timestamp_ms: float) -> RenderSnapshot:
        dt = self._advance(timestamp_ms)
        now = self.time_ms

        self.experiment.drive(self.store, now)
        params = self.store.snapshot()
        self.experiment.prepare(self.pool, params, now)

        events = []
        if self.pool is not None:
            events.extend(self.pool.tick(params, dt, now, self.rng, self.jitter_rng))
        events.extend(self.experiment.emit(self.pool, params, now))

        measured = self.experiment.measured_kinds
        for event in events:
            if event.kind in measured:
                self.aggregator.record(event)
        measurement = self.aggregator.tick(now)
        self.experiment.observe(events, now)

        self.tick_count += 1
        self.last_events = events
        self.last_snapshot = self._build_snapshot(params, measurement, now)
        return self.last_snapshot

    def _build_snapshot(self, params, measurement: float, now: float) -> RenderSnapshot:
        particles = ()
        if self.pool is not None and self.experiment.particles_visible(params):
            particles = project_particles(self.pool.active_snapshot(), self.experiment.scene_scale)

        derived = dict(params)
        derived.update(self.experiment.derived(params, self.pool, now))
        return RenderSnapshot(
            experiment=self.experiment.name,
            tick=self.tick_count,
            time_ms=now,
            particles=particles,
            measurement=measurement,
            derived=MappingProxyType(derived),
            series=MappingProxyType(dict(self.experiment.series(params))),
            flashes=tuple(self.experiment.flashes(now)),
        )
