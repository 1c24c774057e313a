# experiments/compton.py

"""
Compton scattering: an X-ray photon hits a free electron and leaves with a
longer wavelength; the electron recoils. One photon is fired at a time.

Particle columns: scalars = wavelength in pm, sizes = wave packet half-length
in pixels, collisions = 1 once an incident photon has scattered.
"""

import logging
import math

import numpy as np

import constants
from events import Event
from experiments.base import Experiment
from force_models import BallisticForce
from parameters import ParameterSpec
from particle import Category, Fate
from particle_pool import Resolution, SpawnRequest

logger = logging.getLogger("lab_sim")

INCIDENT_SPEED = 4.0   # Pixels per frame
SCATTERED_SPEED = 3.0
RECOIL_SPEED = 3.0
GUN_LENGTH = 40.0
PHOTON_MARGIN = 100.0


def compton_shift(theta_deg: float) -> float:
    """Wavelength shift in pm: 2.43 * (1 - cos(theta))."""
    return constants.COMPTON_WAVELENGTH_PM * (1.0 - math.cos(math.radians(theta_deg)))


def photon_energy_kev(wavelength_pm: float) -> float:
    if wavelength_pm <= 0:
        return 0.0
    return constants.HC_KEV_PM / wavelength_pm


def recoil_angle(wavelength_pm: float, theta_deg: float) -> float:
    """
    Recoil electron angle phi (radians, measured from the incident direction)
    from cot(phi) = (1 + E / mc^2) * tan(theta / 2). A head-on or grazing
    photon leaves the electron moving straight along the axis.
    """
    if theta_deg <= 0 or theta_deg >= 180:
        return 0.0
    alpha = photon_energy_kev(wavelength_pm) / constants.ELECTRON_REST_ENERGY_KEV
    cot_phi = (1.0 + alpha) * math.tan(math.radians(theta_deg) / 2.0)
    return math.atan(1.0 / cot_phi)


def packet_half_length(wavelength_pm: float) -> float:
    """Half the drawn length of an 8-cycle wave packet."""
    return max(5.0, wavelength_pm * 0.2) * 8.0 / 2.0


class ComptonExperiment(Experiment):
    name = "compton"
    title = "Compton Scattering"
    parameter_specs = {
        "wavelength": ParameterSpec(71.0, 10.0, 250.0, "pm"),
        "angle": ParameterSpec(45.0, 0.0, 180.0, "deg"),
    }
    measured_kinds = ("detected",)
    window_ms = 1000.0
    unit_scale = 1.0
    smoothing = 0.9

    def __init__(self, rng):
        super().__init__(rng)
        self.target_present = True

    def force_model(self):
        return BallisticForce()

    def fire(self, pool, params, now):
        """Launches one incident photon from the source and restores the target."""
        wavelength = params["wavelength"]
        cx, cy = constants.COMPTON_CENTER
        pool.spawn((constants.COMPTON_SOURCE_X + GUN_LENGTH, cy),
                   (INCIDENT_SPEED * constants.REFERENCE_FPS, 0.0),
                   wavelength, size=packet_half_length(wavelength),
                   category=Category.INCIDENT_PHOTON, created=now)
        self.target_present = True
        logger.debug(f"Photon fired at {wavelength:.1f} pm.")

    def _scatter(self, params):
        theta = math.radians(params["angle"])
        wavelength = params["wavelength"] + compton_shift(params["angle"])
        half = packet_half_length(wavelength)
        cx, cy = constants.COMPTON_CENTER
        direction = (math.cos(theta), math.sin(theta))
        fps = constants.REFERENCE_FPS

        # The scattered packet emerges where the incident one disappears.
        photon = SpawnRequest(
            position=(cx - direction[0] * half, cy - direction[1] * half),
            velocity=(direction[0] * SCATTERED_SPEED * fps, direction[1] * SCATTERED_SPEED * fps),
            scalar=wavelength, size=half, category=Category.SCATTERED_PHOTON,
        )
        phi = recoil_angle(params["wavelength"], params["angle"])
        electron = SpawnRequest(
            position=(cx, cy),
            velocity=(math.cos(phi) * RECOIL_SPEED * fps, -math.sin(phi) * RECOIL_SPEED * fps),
            scalar=0.0, size=3.0, category=Category.RECOIL_ELECTRON,
        )
        return [photon, electron]

    def resolve(self, batch, params, now):
        fates = np.full(len(batch), Fate.ALIVE, dtype=np.int64)
        collisions = batch.collisions.copy()
        events = []
        spawns = []
        cx, cy = constants.COMPTON_CENTER
        screen_w, screen_h = constants.COMPTON_SCREEN
        x = batch.positions[:, 0]
        y = batch.positions[:, 1]

        incident = batch.categories == Category.INCIDENT_PHOTON
        arriving = incident & (collisions == 0) & (x + batch.sizes >= cx)
        for i in np.flatnonzero(arriving):
            collisions[i] = 1
            events.append(Event(timestamp=now, kind="scatter",
                                magnitude=photon_energy_kev(float(batch.scalars[i])),
                                position=(cx, cy), particle_id=int(batch.ids[i])))
            spawns.extend(self._scatter(params))
            self.target_present = False

        swallowed = incident & (collisions > 0) & (x - batch.sizes > cx)
        fates[swallowed] = Fate.ABSORBED

        scattered = batch.categories == Category.SCATTERED_PHOTON
        at_detector = scattered & (np.hypot(x - cx, y - cy) >= constants.COMPTON_DETECTOR_RADIUS)
        fates[at_detector] = Fate.DETECTED
        for i in np.flatnonzero(at_detector):
            events.append(Event(timestamp=now, kind="detected",
                                magnitude=photon_energy_kev(float(batch.scalars[i])),
                                position=(float(x[i]), float(y[i])), particle_id=int(batch.ids[i])))

        photons = incident | scattered
        photon_out = photons & ((x < -PHOTON_MARGIN) | (x > screen_w + PHOTON_MARGIN)
                                | (y < -PHOTON_MARGIN) | (y > screen_h + PHOTON_MARGIN))
        electron_out = ~photons & ((x < 0) | (x > screen_w) | (y < 0) | (y > screen_h))
        fates[(photon_out | electron_out) & (fates == Fate.ALIVE)] = Fate.ESCAPED

        return Resolution(fates=fates, events=events, spawns=spawns, collisions=collisions)

    def emit(self, pool, params, now):
        if not self.target_present and len(pool) == 0:
            self.target_present = True
        return []

    def derived(self, params, pool, now):
        wavelength = params["wavelength"]
        shift = compton_shift(params["angle"])
        scattered = wavelength + shift
        energy = photon_energy_kev(wavelength)
        scattered_energy = photon_energy_kev(scattered)
        return {
            "shift_pm": shift,
            "scattered_wavelength_pm": scattered,
            "incident_energy_kev": energy,
            "scattered_energy_kev": scattered_energy,
            "electron_energy_kev": energy - scattered_energy,
            "recoil_angle_deg": math.degrees(recoil_angle(wavelength, params["angle"])),
            "target_present": 1.0 if self.target_present else 0.0,
        }

    def reset(self):
        self.target_present = True
