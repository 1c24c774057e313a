# events.py

import logging
import math
from dataclasses import dataclass
from typing import NamedTuple, Optional

import numpy as np

logger = logging.getLogger("lab_sim")


@dataclass(frozen=True)
class Event:
    """
    A timestamped discrete occurrence: a collision, an absorption, a detection.

    - timestamp (float): Simulation time in ms.
    - kind (str): e.g. "collision", "detected", "plate_contact", "scatter".
    - magnitude (float, optional): Energy lost, charge collected, photon energy...
    - position (tuple, optional): Where it happened, for flash effects.
    - particle_id (int, optional): The particle involved.
    """
    timestamp: float
    kind: str
    magnitude: Optional[float] = None
    position: Optional[tuple] = None
    particle_id: Optional[int] = None


class Trigger(NamedTuple):
    """Outcome of one stochastic pass: which rows fired, and their new state."""
    mask: np.ndarray
    velocities: np.ndarray
    scalars: np.ndarray
    events: list


def spawn_count(rate: float, rng: np.random.Generator) -> int:
    """
    Converts a continuous per-tick spawn rate into an integer count: the whole
    part is spawned unconditionally, and one extra particle is spawned with
    probability equal to the fractional remainder. The average count therefore
    equals the rate, and varies continuously with it.
    """
    if not rate > 0 or math.isinf(rate):
        return 0
    count = int(math.floor(rate))
    if rng.random() < rate - count:
        count += 1
    return count


class StochasticEventModel:
    """
    Decides, per particle per tick, whether a discrete event happens.

    Subclasses define which particles are eligible and the probability; this
    base class draws exactly one uniform sample per eligible particle and
    compares it against the probability, so the expected event rate stays
    linear in the probability term.

    Data Contract:
    - maybe_trigger(batch, params, rng, now) -> Trigger
        - Inputs: ParticleBatch (post-integration state), parameter mapping,
          the engine generator, the tick timestamp in ms.
        - Outputs: a boolean mask over the batch, the velocities and scalars
          with the consequences applied to triggered rows, and one Event per
          triggered particle.
        - Side Effects: consumes len(eligible) draws from rng.
    """
    kind = "collision"

    def eligible(self, batch, params) -> np.ndarray:
        return np.zeros(len(batch), dtype=bool)

    def probability(self, params) -> float:
        return 0.0

    def apply(self, batch, mask, params):
        """Returns (velocities, scalars, magnitudes) after the event on triggered rows."""
        return batch.velocities.copy(), batch.scalars.copy(), np.zeros(int(mask.sum()))

    def maybe_trigger(self, batch, params, rng: np.random.Generator, now: float) -> Trigger:
        mask = np.zeros(len(batch), dtype=bool)
        eligible = self.eligible(batch, params)
        probability = self.probability(params)
        eligible_indices = np.flatnonzero(eligible)

        if eligible_indices.size and probability > 0 and math.isfinite(probability):
            draws = rng.random(eligible_indices.size)
            mask[eligible_indices[draws < probability]] = True

        if not mask.any():
            return Trigger(mask, batch.velocities, batch.scalars, [])

        velocities, scalars, magnitudes = self.apply(batch, mask, params)
        events = []
        for row, magnitude in zip(np.flatnonzero(mask), magnitudes):
            events.append(Event(
                timestamp=now,
                kind=self.kind,
                magnitude=float(magnitude),
                position=(float(batch.positions[row, 0]), float(batch.positions[row, 1])),
                particle_id=int(batch.ids[row]),
            ))
        return Trigger(mask, velocities, scalars, events)


class InelasticCollisionModel(StochasticEventModel):
    """
    Electron-atom collisions in a vapour: an electron whose energy has reached
    the excitation threshold (and which is still inside the collision region)
    collides with probability base_probability * density_factor, losing exactly
    the excitation energy. Its speed is not touched here; the tube force model
    derives speed from energy, so the electron slows on its next tick.

    - density (callable): params -> factor in 0..1 (vapour density).
    - region_limit_x (float): only particles with x below this are eligible.
    - min_density (float): below this factor the vapour is treated as absent.
    """
    kind = "collision"

    def __init__(self, threshold: float, base_probability: float, density,
                 region_limit_x: float = math.inf, min_density: float = 0.01):
        self.threshold = threshold
        self.base_probability = base_probability
        self.density = density
        self.region_limit_x = region_limit_x
        self.min_density = min_density

    def eligible(self, batch, params):
        if self.density(params) <= self.min_density:
            return np.zeros(len(batch), dtype=bool)
        return (batch.scalars >= self.threshold) & (batch.positions[:, 0] < self.region_limit_x)

    def probability(self, params):
        return self.base_probability * self.density(params)

    def apply(self, batch, mask, params):
        velocities = batch.velocities.copy()
        scalars = batch.scalars.copy()
        scalars[mask] -= self.threshold
        return velocities, scalars, np.full(int(mask.sum()), self.threshold)
