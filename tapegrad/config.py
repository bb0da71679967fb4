"""
Engine and gradient-check configuration.

Shared defaults for the differentiation driver and the finite-difference
checker. Both are plain dataclasses; pass an instance to override a default.
"""

import math
from dataclasses import dataclass, replace

from .errors import GradCheckConfigError


@dataclass(frozen=True)
class GradCheckConfig:
    """
    Settings for the centered finite-difference gradient check.

    Attributes:
        epsilon: Perturbation applied to one scalar element at a time
        tolerance: Max acceptable error per element
        absolute_floor: Below this magnitude (of both the analytic and the
            numeric value) the error is measured absolutely instead of
            relatively, since relative error is unstable near zero
        max_failures: Number of failing elements kept in the report
    """
    epsilon: float = 1e-6
    tolerance: float = 1e-5
    absolute_floor: float = 1e-2
    max_failures: int = 10

    def validate(self) -> "GradCheckConfig":
        """Raise GradCheckConfigError on a nonsensical setting, else return self."""
        for name in ("epsilon", "tolerance", "absolute_floor"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                raise GradCheckConfigError(f"{name} must be a finite number, got {value!r}")
        if self.epsilon <= 0.0:
            raise GradCheckConfigError(f"epsilon must be > 0, got {self.epsilon}")
        if self.tolerance < 0.0 or self.absolute_floor < 0.0:
            raise GradCheckConfigError("tolerance and absolute_floor must be non-negative")
        if self.max_failures < 0:
            raise GradCheckConfigError(f"max_failures must be >= 0, got {self.max_failures}")
        return self

    def with_overrides(self, **changes) -> "GradCheckConfig":
        """Copy with some fields replaced (validated)."""
        return replace(self, **changes).validate()


@dataclass(frozen=True)
class EngineConfig:
    """
    Settings for a differentiation call site.

    Attributes:
        recycle: Reuse tape slots across repeated calls through the same
            call site (slots are still reallocated when the graph shape changes)
        max_idle_tapes: Number of idle tapes a call site keeps for reuse;
            concurrent callers beyond this get fresh tapes that are dropped
    """
    recycle: bool = True
    max_idle_tapes: int = 4


DEFAULT_GRADCHECK = GradCheckConfig()
DEFAULT_ENGINE = EngineConfig()
