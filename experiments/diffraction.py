# experiments/diffraction.py

"""
Fraunhofer diffraction from one or two slits:

    I(x) = sinc^2(beta) * [cos^2(alpha) for two slits]
    theta = atan(x / L), beta = k a sin(theta) / 2, alpha = k d sin(theta) / 2

with k = 2 pi / lambda, slit width a, slit separation d and screen distance L.
"""

import math

import numba
import numpy as np

from experiments.base import Experiment
from parameters import ParameterSpec

SCREEN_WIDTH_M = 0.2
PROFILE_SAMPLES = 400


@numba.jit(nopython=True)
def _diffraction_profile_jit(xs, wavelength, slit_width, slit_separation, screen_distance, double_slit):
    intensities = np.empty(xs.shape[0])
    k = 2.0 * math.pi / wavelength
    for i in range(xs.shape[0]):
        theta = math.atan(xs[i] / screen_distance)
        sin_theta = math.sin(theta)
        beta = k * slit_width * sin_theta / 2.0
        if abs(beta) < 1e-6:
            value = 1.0
        else:
            s = math.sin(beta) / beta
            value = s * s
        if double_slit:
            c = math.cos(k * slit_separation * sin_theta / 2.0)
            value *= c * c
        intensities[i] = value
    return intensities


def intensity_profile(xs, wavelength_nm: float, slit_width_mm: float, slit_separation_mm: float,
                      screen_distance_m: float, slit_count: int) -> np.ndarray:
    """Relative intensity (0..1) at screen positions xs (metres from centre)."""
    return _diffraction_profile_jit(
        np.asarray(xs, dtype=float),
        wavelength_nm * 1e-9,
        slit_width_mm * 1e-3,
        slit_separation_mm * 1e-3,
        float(screen_distance_m),
        slit_count >= 2,
    )


class DiffractionExperiment(Experiment):
    name = "diffraction"
    title = "Single and Double Slit Diffraction"
    parameter_specs = {
        "wavelength": ParameterSpec(500.0, 380.0, 780.0, "nm"),
        "slit_width": ParameterSpec(0.1, 0.01, 0.5, "mm"),
        "slit_separation": ParameterSpec(0.25, 0.05, 2.0, "mm"),
        "screen_distance": ParameterSpec(1.0, 0.5, 3.0, "m"),
        "slit_count": ParameterSpec(1.0, 1.0, 2.0, "", integer=True),
    }
    measured_kinds = ()

    def profile(self, params, samples: int = PROFILE_SAMPLES):
        xs = np.linspace(-SCREEN_WIDTH_M / 2.0, SCREEN_WIDTH_M / 2.0, samples)
        intensities = intensity_profile(xs, params["wavelength"], params["slit_width"],
                                        params["slit_separation"], params["screen_distance"],
                                        int(params["slit_count"]))
        return xs, intensities

    def derived(self, params, pool, now):
        wavelength = params["wavelength"] * 1e-9
        distance = params["screen_distance"]
        return {
            "fringe_spacing_mm": wavelength * distance / (params["slit_separation"] * 1e-3) * 1e3,
            "central_max_width_mm": 2.0 * wavelength * distance / (params["slit_width"] * 1e-3) * 1e3,
            "double_slit": 1.0 if params["slit_count"] >= 2 else 0.0,
        }

    def series(self, params):
        xs, intensities = self.profile(params)
        return {"profile": tuple(zip(xs.tolist(), intensities.tolist()))}
