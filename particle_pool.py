# particle_pool.py

import logging
import math
from dataclasses import dataclass, field
from typing import NamedTuple, Optional

import numpy as np

from particle import Category, Fate, ParticleBatch, ParticleView

logger = logging.getLogger("lab_sim")


class InvariantViolation(RuntimeError):
    """An active particle ended a tick with a non-finite position despite the guards."""


class SpawnRequest(NamedTuple):
    position: tuple
    velocity: tuple
    scalar: float
    size: float = 0.0
    intensity: float = 1.0
    category: int = Category.TUBE_ELECTRON


@dataclass
class Resolution:
    """
    What an experiment decides about the integrated particles of one tick.

    - fates (n,) int: Fate per row; every non-ALIVE row is removed.
    - events (list): Events produced by surfaces and detectors.
    - spawns (list): SpawnRequests created by interactions (e.g. scattering).
    - positions / categories / collisions: optional replacement columns
      (wrapping tracers, recoloring after an interaction).
    """
    fates: np.ndarray
    events: list = field(default_factory=list)
    spawns: list = field(default_factory=list)
    positions: Optional[np.ndarray] = None
    categories: Optional[np.ndarray] = None
    collisions: Optional[np.ndarray] = None


class ParticlePool:
    """
    Owns every live particle of one experiment as a structure of arrays.

    Data Contract:
    - Inputs:
        - force_model (ForceModel): velocity and scalar update per tick.
        - resolver: object with resolve(batch, params, now) -> Resolution,
          deciding surfaces, detectors and bounds.
        - event_model (StochasticEventModel, optional): discrete interactions.
        - capacity (int): hard bound on the particle count.
        - strict (bool): raise InvariantViolation instead of dropping the
          offending particle.
    - Outputs: Events from tick(); read-only batches from active_snapshot().
    - Side Effects: Manages the lifecycle of all particle data.
    - Invariants: All internal arrays share one length. After tick() every
      particle has finite position and velocity. Work per tick is O(n).
    """
    def __init__(self, force_model, resolver, event_model=None, capacity: int = 2000, strict: bool = False):
        self.force_model = force_model
        self.resolver = resolver
        self.event_model = event_model
        self.capacity = capacity
        self.strict = strict
        self._batch = ParticleBatch.empty()
        self._pending = []
        self._next_id = 0

    def __len__(self):
        return len(self._batch) + len(self._pending)

    def spawn(self, position, velocity, scalar: float, size: float = 0.0, intensity: float = 1.0,
              category: int = Category.TUBE_ELECTRON, created: float = 0.0):
        """
        Queues a new particle; it joins the arrays before the next read.

        Returns the particle id, or None when the request is refused: non-finite
        initial conditions or a full pool. A refused spawn is not an error.
        """
        values = (*position, *velocity, scalar, size, intensity, created)
        if len(values) != 8 or not all(math.isfinite(v) for v in values):
            logger.debug(f"Spawn refused, invalid initial conditions: {values}")
            return None
        if len(self) >= self.capacity:
            logger.debug(f"Spawn refused, pool at capacity ({self.capacity}).")
            return None

        particle_id = self._next_id
        self._next_id += 1
        self._pending.append((particle_id, position, velocity, scalar, size, intensity, int(category), created))
        return particle_id

    def spawn_request(self, request: SpawnRequest, created: float):
        return self.spawn(request.position, request.velocity, request.scalar, request.size,
                          request.intensity, request.category, created)

    def _flush(self):
        """Appends queued spawns to the arrays in a single concatenation."""
        if not self._pending:
            return
        ids, positions, velocities, scalars, sizes, intensities, categories, created = zip(*self._pending)
        incoming = ParticleBatch(
            ids=np.array(ids, dtype=np.int64),
            positions=np.array(positions, dtype=float).reshape(-1, 2),
            velocities=np.array(velocities, dtype=float).reshape(-1, 2),
            scalars=np.array(scalars, dtype=float),
            sizes=np.array(sizes, dtype=float),
            intensities=np.array(intensities, dtype=float),
            categories=np.array(categories, dtype=np.int64),
            collisions=np.zeros(len(ids), dtype=np.int64),
            created=np.array(created, dtype=float),
        )
        self._batch = ParticleBatch(*(
            np.concatenate((current, new)) for current, new in zip(self._batch, incoming)
        ))
        self._pending = []

    def tick(self, params, dt: float, now: float, rng: np.random.Generator, jitter_rng=None) -> list:
        """
        Advances every particle by one tick and removes the finished ones.

        Sequence:
        1. Force model: velocity and scalar from the current state (+ jitter).
        2. Degenerate rows (non-finite force output) are dropped.
        3. Integration: position += velocity * dt.
        4. Stochastic events on the integrated state.
        5. The resolver assigns fates (surfaces, detectors, bounds).
        6. Invariant check, then the surviving rows replace the arrays in one
           generation swap. Interaction spawns are queued for the next read.
        """
        self._flush()
        batch = self._batch
        if len(batch) == 0:
            return []

        result = self.force_model.evaluate(batch, params, dt)
        velocities = result.velocities
        if jitter_rng is not None:
            velocities = velocities + self.force_model.jitter(batch, params, jitter_rng)
        scalars = result.scalars

        computable = np.isfinite(velocities).all(axis=1) & np.isfinite(scalars)
        if not computable.all():
            logger.warning(f"{int((~computable).sum())} particle(s) dropped: force evaluation was not finite.")
            batch = batch.select(computable)
            velocities = velocities[computable]
            scalars = scalars[computable]

        moved = batch.with_columns(
            positions=batch.positions + velocities * dt,
            velocities=velocities,
            scalars=scalars,
        )

        events = []
        if self.event_model is not None and len(moved):
            trigger = self.event_model.maybe_trigger(moved, params, rng, now)
            if trigger.events:
                collisions = moved.collisions.copy()
                collisions[trigger.mask] += 1
                moved = moved.with_columns(velocities=trigger.velocities, scalars=trigger.scalars,
                                       collisions=collisions)
                events.extend(trigger.events)

        resolution = self.resolver.resolve(moved, params, now)
        if resolution.positions is not None:
            moved = moved.with_columns(positions=resolution.positions)
        if resolution.categories is not None:
            moved = moved.with_columns(categories=resolution.categories)
        if resolution.collisions is not None:
            moved = moved.with_columns(collisions=resolution.collisions)
        events.extend(resolution.events)

        fates = np.asarray(resolution.fates).copy()
        alive = fates == Fate.ALIVE
        broken = alive & ~(np.isfinite(moved.positions).all(axis=1) & np.isfinite(moved.velocities).all(axis=1))
        if broken.any():
            message = f"{int(broken.sum())} active particle(s) with non-finite state after integration."
            if self.strict:
                raise InvariantViolation(message)
            logger.warning(message + " Removing them.")
            fates[broken] = Fate.DEGENERATE
            alive = fates == Fate.ALIVE

        self._batch = moved.select(alive)

        for request in resolution.spawns:
            self.spawn_request(request, created=now)
        return events

    def active_snapshot(self) -> ParticleBatch:
        """Returns a read-only copy of all particles, in spawn order."""
        self._flush()
        return self._batch.frozen()

    def find(self, particle_id: int):
        self._flush()
        rows = np.flatnonzero(self._batch.ids == particle_id)
        if rows.size == 0:
            return None
        return ParticleView.from_batch(self._batch, int(rows[0]))

    def clear(self):
        self._batch = ParticleBatch.empty()
        self._pending = []
