# parameters.py

import logging
import math
from dataclasses import dataclass
from types import MappingProxyType

logger = logging.getLogger("lab_sim")


@dataclass(frozen=True)
class ParameterSpec:
    """
    Declares one experiment parameter: its default and its clamp bounds.

    Integer parameters (toggles, mode selectors) are rounded after clamping.
    """
    default: float
    minimum: float
    maximum: float
    unit: str = ""
    integer: bool = False

    def clamp(self, value: float) -> float:
        value = min(max(value, self.minimum), self.maximum)
        if self.integer:
            value = float(round(value))
        return value


class ParameterStore:
    """
    Holds the current parameter values of one experiment.

    Data Contract:
    - Inputs:
        - specs (dict): Parameter name -> ParameterSpec. The key set is fixed for
          the lifetime of the store.
        - overrides (dict, optional): Replacement defaults, e.g. from config.json.
          They are clamped like any other write.
    - Outputs: Clamped values from set(), current values from get() and snapshot().
    - Side Effects: None beyond internal state. Consumers poll the store; nobody
      is notified of writes.
    - Invariants: Every stored value lies within its spec's bounds.
    """
    def __init__(self, specs: dict, overrides: dict = None):
        self.specs = dict(specs)
        self._defaults = {}
        for name, spec in self.specs.items():
            self._defaults[name] = spec.clamp(float(spec.default))
        for name, value in (overrides or {}).items():
            if name not in self.specs:
                logger.warning(f"Ignoring override for unknown parameter '{name}'.")
                continue
            coerced = self._coerce(value)
            if coerced is not None:
                self._defaults[name] = self.specs[name].clamp(coerced)
        self._values = dict(self._defaults)

    @staticmethod
    def _coerce(raw):
        try:
            value = float(raw)
        except (TypeError, ValueError):
            return None
        if math.isnan(value):
            return None
        return value

    def set(self, key: str, raw_value):
        """
        Writes a parameter, clamping out-of-range input to the declared bounds.

        Malformed input (non-numeric or NaN) leaves the stored value unchanged.
        Unknown keys are logged and ignored; the call then returns None.
        """
        spec = self.specs.get(key)
        if spec is None:
            logger.warning(f"Write to unknown parameter '{key}' ignored.")
            return None
        value = self._coerce(raw_value)
        if value is None:
            logger.debug(f"Malformed value {raw_value!r} for '{key}' ignored.")
            return self._values[key]
        clamped = spec.clamp(value)
        self._values[key] = clamped
        return clamped

    def get(self, key: str) -> float:
        return self._values[key]

    def defaults(self) -> dict:
        return dict(self._defaults)

    def reset(self):
        """Restores every parameter to its (possibly overridden) default."""
        self._values = dict(self._defaults)

    def snapshot(self):
        """
        Returns a read-only copy of all values. A tick reads parameters only
        through one snapshot, so later writes cannot tear it.
        """
        return MappingProxyType(dict(self._values))

    def __contains__(self, key):
        return key in self.specs
