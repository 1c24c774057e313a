# snapshot.py

"""
The render boundary. The engine never draws: at the end of each tick it emits
a RenderSnapshot, an immutable value that an external DrawAdapter turns into
pixels.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Protocol

from particle import Category


@dataclass(frozen=True)
class ParticleProjection:
    id: int
    x: float
    y: float
    category: Category
    intensity: float


@dataclass(frozen=True)
class Flash:
    """A short-lived glow at the site of an event (e.g. an inelastic collision)."""
    x: float
    y: float
    opacity: float


@dataclass(frozen=True)
class RenderSnapshot:
    """
    Post-tick state of one experiment.

    - experiment (str): registry name.
    - tick (int), time_ms (float): which tick produced it.
    - particles (tuple): ParticleProjection per live particle, in spawn order.
    - measurement (float): the smoothed observable.
    - derived (Mapping[str, float]): display scalars (threshold energy, shift, phase...).
    - series (Mapping[str, tuple]): curves as tuples of (x, y) points.
    - flashes (tuple): Flash effects.
    """
    experiment: str
    tick: int
    time_ms: float
    particles: tuple
    measurement: float
    derived: Mapping = field(default_factory=lambda: MappingProxyType({}))
    series: Mapping = field(default_factory=lambda: MappingProxyType({}))
    flashes: tuple = ()


def project_particles(batch, scale: float = 1.0) -> tuple:
    """
    Builds the ordered particle projections from a pool batch. Positions are
    multiplied by scale (scene units to pixels).
    """
    return tuple(
        ParticleProjection(
            id=int(batch.ids[i]),
            x=float(batch.positions[i, 0] * scale),
            y=float(batch.positions[i, 1] * scale),
            category=Category(int(batch.categories[i])),
            intensity=float(batch.intensities[i]),
        )
        for i in range(len(batch))
    )


class DrawAdapter(Protocol):
    """Anything that can present a snapshot (a pygame window, a recorder in tests)."""

    def draw(self, snapshot: RenderSnapshot) -> None:
        ...
