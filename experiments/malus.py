# experiments/malus.py

import math

from experiments.base import Experiment
from parameters import ParameterSpec

SOURCE_INTENSITY = 100.0


def malus_intensities(theta1_deg: float, theta2_deg: float, polarized_source: bool,
                      source_intensity: float = SOURCE_INTENSITY):
    """
    Intensities after the polarizer and after the analyzer, (I1, I2).

    A polarized source (axis at 0 deg) passes I0 cos^2(theta1) through the
    polarizer; an unpolarized one passes I0 / 2 whatever the angle. The
    analyzer then applies Malus's law to the angle between the two axes.
    """
    if polarized_source:
        i1 = source_intensity * math.cos(math.radians(theta1_deg)) ** 2
    else:
        i1 = source_intensity / 2.0
    i2 = i1 * math.cos(math.radians(theta2_deg - theta1_deg)) ** 2
    return i1, i2


class MalusExperiment(Experiment):
    name = "malus"
    title = "Malus's Law"
    parameter_specs = {
        "theta1": ParameterSpec(0.0, 0.0, 180.0, "deg"),
        "theta2": ParameterSpec(90.0, 0.0, 180.0, "deg"),
        "polarized_source": ParameterSpec(0.0, 0.0, 1.0, "", integer=True),
    }
    measured_kinds = ()

    def derived(self, params, pool, now):
        i1, i2 = malus_intensities(params["theta1"], params["theta2"], params["polarized_source"] >= 0.5)
        return {
            "source_intensity": SOURCE_INTENSITY,
            "intensity_after_polarizer": i1,
            "intensity_after_analyzer": i2,
            "relative_angle": params["theta2"] - params["theta1"],
        }

    def series(self, params):
        # I2 against the analyzer angle, for the current polarizer setting.
        polarized = params["polarized_source"] >= 0.5
        curve = tuple(
            (float(angle), malus_intensities(params["theta1"], angle, polarized)[1])
            for angle in range(0, 181, 2)
        )
        return {"analyzer_curve": curve}
