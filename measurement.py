# measurement.py

import logging
from collections import deque

logger = logging.getLogger("lab_sim")


class MeasurementAggregator:
    """
    Turns discrete events into a smoothed observable (ammeter current,
    collected charge rate, fringe shift).

    Two smoothing stages:
    1. A trailing window: instantaneous = count * unit_scale / window (per second).
       In "sum" mode magnitudes are summed instead of counted (charge collected
       per second). In "mean" mode the instantaneous value is the mean event
       magnitude.
    2. An exponential moving average:
       smoothed = smoothed * alpha + instantaneous * (1 - alpha).

    Data Contract:
    - Inputs: window_ms (> 0), unit_scale, alpha in [0, 1), mode "rate", "sum" or "mean".
    - Outputs: tick(now) returns the smoothed value.
    - Invariants: after tick(now) the history only holds events with
      timestamp > now - window_ms. The history is bounded by max_events.
    """
    def __init__(self, window_ms: float = 500.0, unit_scale: float = 1.0, alpha: float = 0.9,
                 mode: str = "rate", max_events: int = 10000):
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")
        if mode not in ("rate", "sum", "mean"):
            raise ValueError(f"Unknown aggregation mode '{mode}'")
        self.window_ms = window_ms
        self.unit_scale = unit_scale
        self.alpha = alpha
        self.mode = mode
        self.history = deque(maxlen=max_events)
        self.instantaneous = 0.0
        self.value = 0.0

    def record(self, event):
        self.history.append(event)

    def prune(self, now: float):
        cutoff = now - self.window_ms
        if self.history and min(e.timestamp for e in self.history) <= cutoff:
            self.history = deque((e for e in self.history if e.timestamp > cutoff),
                                 maxlen=self.history.maxlen)

    def tick(self, now: float) -> float:
        self.prune(now)
        if self.mode == "mean":
            magnitudes = [e.magnitude for e in self.history if e.magnitude is not None]
            self.instantaneous = (sum(magnitudes) / len(magnitudes)) * self.unit_scale if magnitudes else 0.0
        elif self.mode == "sum":
            total = sum(abs(e.magnitude) for e in self.history if e.magnitude is not None)
            self.instantaneous = total * self.unit_scale * 1000.0 / self.window_ms
        else:
            self.instantaneous = len(self.history) * self.unit_scale * 1000.0 / self.window_ms
        self.value = self.value * self.alpha + self.instantaneous * (1.0 - self.alpha)
        return self.value

    def reset(self):
        self.history.clear()
        self.instantaneous = 0.0
        self.value = 0.0


class CurveHistory:
    """
    A bounded trace of (x, y) samples, e.g. the Franck-Hertz I-V curve. A new
    point is only kept once x has moved more than min_step from the last one.
    """
    def __init__(self, min_step: float = 0.2, max_points: int = 2000):
        self.min_step = min_step
        self.points = deque(maxlen=max_points)

    def add(self, x: float, y: float) -> bool:
        if self.points and abs(x - self.points[-1][0]) <= self.min_step:
            return False
        self.points.append((float(x), float(y)))
        return True

    def clear(self):
        self.points.clear()

    def as_tuple(self):
        return tuple(self.points)


class Stopwatch:
    """Start/stop timer driven by simulation timestamps (ms)."""
    def __init__(self):
        self.running = False
        self.started_at = 0.0
        self.accumulated = 0.0

    def toggle(self, now: float):
        if self.running:
            self.accumulated += now - self.started_at
            self.running = False
        else:
            self.started_at = now
            self.running = True

    def elapsed(self, now: float) -> float:
        if self.running:
            return self.accumulated + (now - self.started_at)
        return self.accumulated

    def reset(self):
        self.running = False
        self.started_at = 0.0
        self.accumulated = 0.0

    @staticmethod
    def format(ms: float) -> str:
        minutes = int(ms // 60000)
        seconds = int((ms % 60000) // 1000)
        centiseconds = int((ms % 1000) // 10)
        return f"{minutes:02d}:{seconds:02d}.{centiseconds:02d}"
