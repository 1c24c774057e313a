# tests/conftest.py

import numpy as np
import pytest

from engine import SimulationEngine
from particle import Category, ParticleBatch

FRAME_MS = 1000.0 / 60.0


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def make_batch():
    """Builds a ParticleBatch from plain lists; unspecified columns get neutral values."""
    def _make(positions, velocities=None, scalars=None, sizes=None, categories=None):
        positions = np.asarray(positions, dtype=float).reshape(-1, 2)
        n = positions.shape[0]
        return ParticleBatch(
            ids=np.arange(n, dtype=np.int64),
            positions=positions,
            velocities=np.zeros((n, 2)) if velocities is None else np.asarray(velocities, dtype=float).reshape(-1, 2),
            scalars=np.zeros(n) if scalars is None else np.asarray(scalars, dtype=float),
            sizes=np.zeros(n) if sizes is None else np.asarray(sizes, dtype=float),
            intensities=np.ones(n),
            categories=np.full(n, int(Category.TUBE_ELECTRON) if categories is None else int(categories), dtype=np.int64),
            collisions=np.zeros(n, dtype=np.int64),
            created=np.zeros(n),
        )
    return _make


@pytest.fixture
def make_engine():
    """Engine factory with a fixed seed, strict invariants and optional parameter overrides."""
    def _make(name, seed=42, strict=True, **overrides):
        config = {
            "master_seed": seed,
            "engine": {"strict_invariants": strict},
            "experiments": {name: overrides},
        }
        return SimulationEngine(name, config=config)
    return _make


@pytest.fixture
def run_ticks():
    """Ticks an engine n times at 60 fps and returns every event produced."""
    def _run(engine, n, start_ms=None, step_ms=FRAME_MS):
        if start_ms is None:
            start_ms = engine.clock.time_ms if engine.clock.tick_count else 0.0
        events = []
        for i in range(1, n + 1):
            engine.tick(start_ms + i * step_ms)
            events.extend(engine.last_events)
        return events
    return _run
