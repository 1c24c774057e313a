# experiments/snell.py

"""
Fermat's principle as a lifeguard problem: run across sand (v1), swim
through water (v2). The quickest crossing point on the shoreline satisfies
sin(theta1) / v1 = sin(theta2) / v2.

Geometry is in relative units (0..1 of the scene), scaled to metres by
SNELL_DISTANCE_SCALE.
"""

import logging
import math

import constants
from experiments.base import Experiment
from parameters import ParameterSpec

logger = logging.getLogger("lab_sim")

BISECTION_STEPS = 40
OPTIMAL_TOLERANCE = 0.05  # Seconds


def leg_lengths(crossing: float):
    """Relative lengths of the sand and water legs through the crossing point."""
    sx, sy = constants.SNELL_START
    ex, ey = constants.SNELL_END
    boundary = constants.SNELL_BOUNDARY_Y
    d1 = math.hypot(crossing - sx, boundary - sy)
    d2 = math.hypot(ex - crossing, ey - boundary)
    return d1, d2


def travel_time(crossing: float, v1: float, v2: float) -> float:
    d1, d2 = leg_lengths(crossing)
    scale = constants.SNELL_DISTANCE_SCALE
    return d1 * scale / v1 + d2 * scale / v2


def sines(crossing: float):
    sx, _ = constants.SNELL_START
    ex, _ = constants.SNELL_END
    d1, d2 = leg_lengths(crossing)
    return (crossing - sx) / d1, (ex - crossing) / d2


def optimal_crossing(v1: float, v2: float) -> float:
    """Bisection on sin(theta1)/v1 - sin(theta2)/v2, which grows with the crossing."""
    low = min(constants.SNELL_START[0], constants.SNELL_END[0])
    high = max(constants.SNELL_START[0], constants.SNELL_END[0])
    for _ in range(BISECTION_STEPS):
        mid = (low + high) / 2.0
        sin1, sin2 = sines(mid)
        if sin1 / v1 - sin2 / v2 > 0:
            high = mid
        else:
            low = mid
    return (low + high) / 2.0


class SnellExperiment(Experiment):
    name = "snell"
    title = "Least-Time Path (Snell's Law)"
    parameter_specs = {
        "v1": ParameterSpec(2.0, 0.5, 5.0, "m/s"),
        "v2": ParameterSpec(1.0, 0.5, 5.0, "m/s"),
        "crossing": ParameterSpec(0.5, 0.05, 0.95, ""),
    }
    measured_kinds = ()

    def __init__(self, rng):
        super().__init__(rng)
        self._snap_pending = False

    def fire(self, pool, params, now):
        """Moves the crossing point to the least-time position on the next tick."""
        self._snap_pending = True

    def drive(self, store, now):
        if self._snap_pending:
            best = optimal_crossing(store.get("v1"), store.get("v2"))
            store.set("crossing", best)
            logger.debug(f"Crossing moved to optimum {best:.4f}.")
            self._snap_pending = False

    def derived(self, params, pool, now):
        v1, v2, crossing = params["v1"], params["v2"], params["crossing"]
        d1, d2 = leg_lengths(crossing)
        time = travel_time(crossing, v1, v2)
        best = optimal_crossing(v1, v2)
        min_time = travel_time(best, v1, v2)
        sin1, sin2 = sines(crossing)
        return {
            "sand_distance_m": d1 * constants.SNELL_DISTANCE_SCALE,
            "water_distance_m": d2 * constants.SNELL_DISTANCE_SCALE,
            "travel_time_s": time,
            "min_time_s": min_time,
            "optimal_crossing": best,
            "optimal": 1.0 if time - min_time < OPTIMAL_TOLERANCE else 0.0,
            "sin_ratio": sin1 / sin2 if sin2 != 0 else 0.0,
            "velocity_ratio": v1 / v2,
        }

    def series(self, params):
        # Travel time across the shoreline, for the timing bar and plot.
        v1, v2 = params["v1"], params["v2"]
        curve = tuple(
            (crossing, travel_time(crossing, v1, v2))
            for crossing in (0.05 + 0.01 * i for i in range(91))
        )
        return {"travel_time": curve}

    def reset(self):
        self._snap_pending = False
