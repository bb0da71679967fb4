# tapegrad/gradcheck.py
"""
Finite-difference gradient check.

Compares the gradient computed by the tape against centered differences

    (f(x + eps) - f(x - eps)) / (2 * eps)

one scalar element at a time. Two forward evaluations per checked element:
meant for tests, not for production code paths.

Usage:
    report = check(loss, params, x, leaves=["W"])
    assert report, report.summary()
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, Tuple

import numpy as np

from .config import DEFAULT_GRADCHECK, GradCheckConfig
from .core.seeds import _scalar_output, differentiate
from .core.values import Path, get_path, is_tensor, leaf_paths, map_structure

logger = logging.getLogger(__name__)


@dataclass
class GradientCheckFailure:
    """One element whose analytic and numeric gradients disagree."""
    path: Path
    index: Tuple[int, ...]
    analytic: float
    numeric: float
    error: float


@dataclass
class GradCheckReport:
    """
    Outcome of a gradient check. Truthy iff every checked element passed.

    `failures` holds at most `GradCheckConfig.max_failures` entries, the
    first ones encountered; `passed` accounts for all of them.
    """
    passed: bool
    max_error: float
    checked: int
    failures: List[GradientCheckFailure] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.passed

    def summary(self) -> str:
        status = "passed" if self.passed else "FAILED"
        lines = [f"gradient check {status}: {self.checked} element(s), max error {self.max_error:.3e}"]
        for f in self.failures:
            lines.append(
                f"  {f.path}{list(f.index)}: analytic={f.analytic:.8g} numeric={f.numeric:.8g} error={f.error:.3e}"
            )
        return "\n".join(lines)


def _checkable(leaf: Any) -> bool:
    return is_tensor(leaf) and np.issubdtype(leaf.dtype, np.inexact)


def _float64_copy(leaf: Any) -> Any:
    return np.array(leaf, dtype=np.float64) if _checkable(leaf) else leaf


def _matches(item: Any, path: Path, leaf: Any) -> bool:
    if isinstance(item, np.ndarray):
        return item is leaf
    if isinstance(item, tuple):
        return item == path
    return len(path) > 0 and path[0] == item


def _select(x: Any, leaves: Optional[Iterable[Any]]) -> List[Path]:
    """Paths of the tensor leaves of `x` to check."""
    candidates = [(path, leaf) for path, leaf in leaf_paths(x) if _checkable(leaf)]
    if leaves is None:
        selected = [path for path, _ in candidates]
    else:
        items = list(leaves)
        selected = [path for path, leaf in candidates
                    if any(_matches(item, path, leaf) for item in items)]
    if not selected:
        raise ValueError("gradient check: no floating-point tensor leaf selected")
    return selected


def element_error(analytic: float, numeric: float, absolute_floor: float) -> float:
    """Relative error, or absolute error when both values are below `absolute_floor`."""
    diff = abs(analytic - numeric)
    scale = max(abs(analytic), abs(numeric))
    return diff / scale if scale > absolute_floor else diff


def check(fun: Callable, x: Any, *args: Any, leaves: Optional[Iterable[Any]] = None,
          config: Optional[GradCheckConfig] = None, has_aux: bool = False,
          **kwargs: Any) -> GradCheckReport:
    """
    Check the tape gradient of `fun(x, *args, **kwargs)` w.r.t. `x`.

    Args:
        fun: scalar-output function, as for `differentiate`
        x: differentiable argument (tensor or nested dict/list/tuple)
        leaves: None for every floating-point tensor leaf of `x`, or an
            iterable of leaf paths (tuples), top-level keys/indices, or the
            leaf arrays themselves (matched by identity)
        config: tolerances; DEFAULT_GRADCHECK when omitted
        has_aux: `fun` returns (output, aux); aux is ignored

    The check runs on float64 copies of the leaves; `x` is never modified.
    """
    config = (config or DEFAULT_GRADCHECK).validate()
    paths = _select(x, leaves)
    work = map_structure(_float64_copy, x)

    result = differentiate(fun, work, *args, has_aux=has_aux, **kwargs)
    grads = result[0]

    def evaluate() -> float:
        out = fun(work, *args, **kwargs)
        if has_aux:
            out = out[0]
        return float(_scalar_output(out))

    eps = config.epsilon
    checked = 0
    max_error = 0.0
    passed = True
    failures: List[GradientCheckFailure] = []

    for path in paths:
        arr = get_path(work, path)
        analytic_arr = np.asarray(get_path(grads, path))
        for idx in np.ndindex(arr.shape):
            original = arr[idx]
            arr[idx] = original + eps
            f_plus = evaluate()
            arr[idx] = original - eps
            f_minus = evaluate()
            arr[idx] = original

            numeric = (f_plus - f_minus) / (2.0 * eps)
            analytic = float(analytic_arr[idx])
            error = element_error(analytic, numeric, config.absolute_floor)
            checked += 1
            max_error = max(max_error, error)
            if error > config.tolerance:
                passed = False
                if len(failures) < config.max_failures:
                    failures.append(GradientCheckFailure(path, idx, analytic, numeric, error))

    report = GradCheckReport(passed, max_error, checked, failures)
    if not passed:
        logger.warning("%s", report.summary())
    return report


def gradcheck(fun: Callable, x: Any, *args: Any, **kwargs: Any) -> bool:
    """Boolean form of `check` (same arguments)."""
    return check(fun, x, *args, **kwargs).passed
