# force_models.py

"""
Force models: pure functions from particle state + parameters to velocity.

Every model follows the terminal-velocity strategy: the velocity a particle
moves with during a tick is solved directly from the current state (driving
force over drag coefficient, or speed from kinetic energy) instead of being
integrated from an acceleration. Microscopic force-to-mass ratios would make
F = ma integration blow up under variable frame times.

Data Contract (all models):
- evaluate(batch, params, dt) -> ForceResult
    - Inputs: a ParticleBatch (not modified), a parameter mapping, dt in seconds.
    - Outputs: new (n, 2) velocities and new (n,) scalars as fresh arrays.
    - Deterministic: no random draws.
- jitter(batch, params, rng) -> (n, 2) velocity offsets
    - The only place randomness may enter, drawn from the supplied generator.
"""

import logging
from typing import NamedTuple

import numpy as np

import constants

logger = logging.getLogger("lab_sim")


class ForceResult(NamedTuple):
    velocities: np.ndarray
    scalars: np.ndarray


def safe_divide(numerator, denominator):
    """
    Element-wise division that yields 0 wherever the denominator is exactly 0,
    instead of propagating Infinity or NaN.
    """
    numerator, denominator = np.broadcast_arrays(
        np.asarray(numerator, dtype=float), np.asarray(denominator, dtype=float)
    )
    out = np.zeros(numerator.shape, dtype=float)
    np.divide(numerator, denominator, out=out, where=denominator != 0)
    return out


def unit_vectors(vectors: np.ndarray, fallback=(-1.0, 0.0)) -> np.ndarray:
    """Normalizes rows of an (n, 2) array; zero rows become the fallback direction."""
    norms = np.linalg.norm(vectors, axis=1)
    units = np.empty_like(vectors, dtype=float)
    moving = norms > 0
    units[moving] = vectors[moving] / norms[moving, np.newaxis]
    units[~moving] = fallback
    return units


class ForceModel:
    """Base model: particles keep their velocity and scalar (free flight)."""

    def evaluate(self, batch, params, dt: float) -> ForceResult:
        return ForceResult(batch.velocities.copy(), batch.scalars.copy())

    def jitter(self, batch, params, rng: np.random.Generator) -> np.ndarray:
        return np.zeros((len(batch), 2), dtype=float)


class BallisticForce(ForceModel):
    """Photons and recoil electrons in the Compton scene: no forces act."""


class StokesDragForce(ForceModel):
    """
    Oil drop between two plates, in SI units with y pointing down.

    Driving force (down positive): gravity - buoyancy + q * V / d.
    Drag coefficient: 6 * pi * eta * r (Stokes).
    Terminal velocity: driving / drag, recomputed every tick.

    Particle columns used: scalars = charge in elementary charges,
    sizes = radius in metres.
    """
    def __init__(self, plate_distance: float = constants.PLATE_DISTANCE,
                 viscosity: float = constants.AIR_VISCOSITY):
        self.plate_distance = plate_distance
        self.viscosity = viscosity

    def driving_force(self, radii: np.ndarray, charges: np.ndarray, voltage: float) -> np.ndarray:
        volume = (4.0 / 3.0) * np.pi * radii ** 3
        weight = volume * constants.RHO_OIL * constants.GRAVITY
        buoyancy = volume * constants.RHO_AIR * constants.GRAVITY
        field = safe_divide(voltage, self.plate_distance)
        electric = charges * constants.ELEMENTARY_CHARGE * field
        return weight - buoyancy + electric

    def drag_coefficient(self, radii: np.ndarray) -> np.ndarray:
        return 6.0 * np.pi * self.viscosity * radii

    def evaluate(self, batch, params, dt):
        radii = batch.sizes
        driving_y = self.driving_force(radii, batch.scalars, params["voltage"])
        velocities = np.zeros((len(batch), 2), dtype=float)
        # No horizontal driving force.
        velocities[:, 1] = safe_divide(driving_y, self.drag_coefficient(radii))
        return ForceResult(velocities, batch.scalars.copy())

    def jitter(self, batch, params, rng):
        # Heuristic Brownian kick: smaller drops jitter more.
        magnitude = safe_divide(1e-6, batch.sizes) * 2e-6
        return (rng.random((len(batch), 2)) - 0.5) * magnitude[:, np.newaxis]


class FieldEnergyForce(ForceModel):
    """
    Photoelectrons crossing the gap between cathode and anode.

    The scalar column holds kinetic energy in eV. The field points along x, so
    each tick it pushes the heading toward -x (anode side) by
    voltage * drive_per_volt pixels per frame squared: a positive voltage
    bends stray electrons onto the anode, a negative one turns them back.
    The particle then moves at the speed its energy implies
    (sqrt(KE) * speed_scale pixels per frame) along that heading, and the
    field does work V * (distance toward the anode) / gap on it.
    """
    def __init__(self, gap: float, speed_scale: float = 2.0, drive_per_volt: float = 0.05):
        self.gap = gap
        self.speed_scale = speed_scale
        self.drive_per_volt = drive_per_volt

    def speed(self, energies: np.ndarray) -> np.ndarray:
        """Speed in pixels per second for the given kinetic energies."""
        return np.sqrt(np.clip(energies, 0.0, None)) * self.speed_scale * constants.REFERENCE_FPS

    def evaluate(self, batch, params, dt):
        voltage = params["voltage"]
        # px/frame^2 -> px/s^2
        drive = voltage * self.drive_per_volt * constants.REFERENCE_FPS ** 2
        pushed = batch.velocities.copy()
        pushed[:, 0] -= drive * dt
        headings = unit_vectors(pushed)
        velocities = headings * self.speed(batch.scalars)[:, np.newaxis]
        toward_anode = -velocities[:, 0] * dt
        energies = batch.scalars + safe_divide(voltage * toward_anode, self.gap)
        return ForceResult(velocities, energies)


class TubeEnergyForce(ForceModel):
    """
    Electrons in a Franck-Hertz tube, moving along +x.

    Before the grid the accelerating field adds (V_acc / gap) per pixel
    travelled; between grid and anode the retarding field removes
    (V_ret / gap) per pixel. Speed is 1 + 0.5 * sqrt(E) pixels per frame.
    """
    def __init__(self, cathode_x: float = constants.FH_CATHODE_X,
                 grid_x: float = constants.FH_GRID_X,
                 anode_x: float = constants.FH_ANODE_X):
        self.cathode_x = cathode_x
        self.grid_x = grid_x
        self.anode_x = anode_x

    @staticmethod
    def speed(energies: np.ndarray) -> np.ndarray:
        return (1.0 + np.sqrt(np.clip(energies, 0.0, None)) * 0.5) * constants.REFERENCE_FPS

    def evaluate(self, batch, params, dt):
        energies = batch.scalars
        speeds = self.speed(energies)
        travelled = speeds * dt

        before_grid = batch.positions[:, 0] < self.grid_x
        gain = safe_divide(params["accelerating_voltage"], self.grid_x - self.cathode_x) * travelled
        loss = safe_divide(params["retarding_voltage"], self.anode_x - self.grid_x) * travelled

        new_energies = np.where(before_grid, energies + gain, energies - loss)
        velocities = np.zeros((len(batch), 2), dtype=float)
        velocities[:, 0] = speeds
        return ForceResult(velocities, new_energies)


class DriftForce(ForceModel):
    """
    Ether-wind tracers flowing left to right. The scalar column holds each
    tracer's relative speed factor; the drift vanishes when the ether speed is
    zero or the relativity model is selected.
    """
    def __init__(self, width: float = constants.WIDTH):
        self.width = width

    def evaluate(self, batch, params, dt):
        velocities = np.zeros((len(batch), 2), dtype=float)
        if params["relativity"] < 0.5:
            # Fraction of the width per frame, converted to pixels per second.
            per_frame = params["ether_speed"] * 1000.0 * batch.scalars * 0.002
            velocities[:, 0] = per_frame * self.width * constants.REFERENCE_FPS
        return ForceResult(velocities, batch.scalars.copy())
