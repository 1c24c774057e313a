# particle.py

from enum import IntEnum
from typing import NamedTuple
from dataclasses import dataclass

import numpy as np


class Category(IntEnum):
    """Visual category of a particle, consumed by the renderer."""
    OIL_DROP = 0
    PHOTOELECTRON = 1
    TUBE_ELECTRON = 2
    EXCITED_ELECTRON = 3
    INCIDENT_PHOTON = 4
    SCATTERED_PHOTON = 5
    RECOIL_ELECTRON = 6
    ETHER = 7


class Fate(IntEnum):
    """
    Outcome of a tick for one particle. Anything other than ALIVE removes the
    particle from the pool at the end of the tick.
    """
    ALIVE = 0
    ABSORBED = 1    # Hit an interaction surface (anode, plate, cathode) without being counted
    DETECTED = 2    # Hit a detector; recorded as an event
    ESCAPED = 3     # Left the scene bounds
    DEGENERATE = 4  # Force evaluation produced a non-finite value


class ParticleBatch(NamedTuple):
    """
    Structure-of-arrays view of the particles in a pool.

    All arrays share the same length n:
    - ids (n,) int64: stable identity, unique per pool.
    - positions (n, 2) float: scene units (metres or pixels, per experiment).
    - velocities (n, 2) float: scene units per second.
    - scalars (n,) float: the physical property (charge in e, kinetic energy in eV...).
    - sizes (n,) float: physical or visual size (drop radius in metres, packet length...).
    - intensities (n,) float: opacity hint in 0..1.
    - categories (n,) int: Category values.
    - collisions (n,) int: number of discrete interactions so far.
    - created (n,) float: creation timestamp in ms.
    """
    ids: np.ndarray
    positions: np.ndarray
    velocities: np.ndarray
    scalars: np.ndarray
    sizes: np.ndarray
    intensities: np.ndarray
    categories: np.ndarray
    collisions: np.ndarray
    created: np.ndarray

    def __len__(self):
        return self.ids.shape[0]

    @classmethod
    def empty(cls):
        return cls(
            ids=np.zeros(0, dtype=np.int64),
            positions=np.zeros((0, 2), dtype=float),
            velocities=np.zeros((0, 2), dtype=float),
            scalars=np.zeros(0, dtype=float),
            sizes=np.zeros(0, dtype=float),
            intensities=np.zeros(0, dtype=float),
            categories=np.zeros(0, dtype=np.int64),
            collisions=np.zeros(0, dtype=np.int64),
            created=np.zeros(0, dtype=float),
        )

    def with_columns(self, **columns) -> "ParticleBatch":
        """
        Returns a new batch with the named columns replaced. len() counts
        particles, so NamedTuple._replace (which checks len against the field
        count) cannot be used here.
        """
        return ParticleBatch(**{**self._asdict(), **columns})

    def select(self, mask: np.ndarray) -> "ParticleBatch":
        """Returns a new batch holding only the rows where mask is True."""
        return ParticleBatch(*(column[mask] for column in self))

    def frozen(self) -> "ParticleBatch":
        """Returns a copy whose arrays are flagged read-only."""
        columns = []
        for column in self:
            copy = column.copy()
            copy.flags.writeable = False
            columns.append(copy)
        return ParticleBatch(*columns)


@dataclass(frozen=True)
class ParticleView:
    """Read-only projection of a single particle, detached from the pool arrays."""
    id: int
    x: float
    y: float
    vx: float
    vy: float
    scalar: float
    size: float
    intensity: float
    category: Category
    collisions: int
    created: float

    @classmethod
    def from_batch(cls, batch: ParticleBatch, index: int) -> "ParticleView":
        return cls(
            id=int(batch.ids[index]),
            x=float(batch.positions[index, 0]),
            y=float(batch.positions[index, 1]),
            vx=float(batch.velocities[index, 0]),
            vy=float(batch.velocities[index, 1]),
            scalar=float(batch.scalars[index]),
            size=float(batch.sizes[index]),
            intensity=float(batch.intensities[index]),
            category=Category(int(batch.categories[index])),
            collisions=int(batch.collisions[index]),
            created=float(batch.created[index]),
        )
