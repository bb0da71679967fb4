# tapegrad/core/seeds.py

#-----------------------------------------------------------------------------
# We "plant" a seed (dy/dy = 1) at the scalar output and let gradients grow
# backwards through the tape, then read them off the root nodes.
#-----------------------------------------------------------------------------
from __future__ import annotations
import functools
import logging
import numbers
from typing import Any, Callable, Optional, Tuple

import numpy as np

from .node import Node
from .tape import Tape, TapePool
from .tracer import get_value, unwrap
from .engine import backward_pass
from .values import is_tensor, map_structure, ones_like, zeros_like
from ..config import DEFAULT_ENGINE, EngineConfig
from ..errors import NonScalarOutputError, TapeMismatchError

logger = logging.getLogger(__name__)


def value(x: Any) -> Any:
    """Return the raw value(s) of a Node or a structure holding Nodes."""
    return unwrap(x)


def make_roots(x: Any, tape: Tape) -> Any:
    """Copy of `x` with every tensor leaf replaced by a root Node on `tape`."""
    return map_structure(lambda leaf: tape.root(leaf) if is_tensor(leaf) else leaf, x)


def collect_grads(roots: Any) -> Any:
    """
    Gradient structure mirroring `roots`: each root's accumulated gradient,
    zeros for roots the sweep never reached, None for non-tensor leaves.
    """
    return map_structure(_leaf_grad, roots)


def _leaf_grad(leaf: Any) -> Any:
    if not isinstance(leaf, Node):
        return None
    if leaf.grad is None:
        return zeros_like(leaf.value)
    dtype = leaf.value.dtype if np.issubdtype(leaf.value.dtype, np.inexact) else None
    # Fresh array per leaf: backward rules may hand the same object to several operands.
    # Shapes were checked when the contributions were accumulated.
    return np.array(leaf.grad, dtype=dtype)


def _scalar_output(raw: Any) -> Any:
    """Validate the function's raw result and return it as a scalar."""
    if isinstance(raw, np.ndarray):
        if not np.issubdtype(raw.dtype, np.number):
            raise TypeError(f"differentiated function must return a number, got an array of {raw.dtype}")
        if raw.size != 1:
            raise NonScalarOutputError(raw.shape)
        return raw.item()
    if isinstance(raw, numbers.Number) and not isinstance(raw, bool):
        return raw
    raise TypeError(f"differentiated function must return a number, got {type(raw).__name__}")


def _split_aux(result: Any) -> Tuple[Any, Any]:
    if not isinstance(result, (tuple, list)) or len(result) != 2:
        raise TypeError("with has_aux=True the function must return an (output, aux) pair")
    return result[0], result[1]


def _run(fun: Callable, tape: Tape, args: tuple, kwargs: dict, argnum: int, has_aux: bool):
    """One forward recording, backward sweep and extraction on `tape`."""
    roots = make_roots(args[argnum], tape)
    call_args = args[:argnum] + (roots,) + args[argnum + 1:]

    result = fun(*call_args, **kwargs)
    aux = None
    if has_aux:
        result, aux = _split_aux(result)
    tape.finish()

    output = _scalar_output(get_value(result))
    if isinstance(result, Node):
        if not tape.owns(result):
            raise TapeMismatchError("function returned a node that was not recorded by this call")
        visited = backward_pass(tape, result, seed=ones_like(result.value))
        logger.debug("backward sweep: %d/%d nodes visited (%r)", visited, len(tape), tape)
    else:
        # Output never touched the differentiable argument: every gradient is zero
        logger.debug("output of %s does not depend on argument %d; returning zero gradients",
                     getattr(fun, "__name__", fun), argnum)

    grads = collect_grads(roots)
    if has_aux:
        return grads, output, unwrap(aux)
    return grads, output


def _check_argnum(args: tuple, argnum: int):
    if not 0 <= argnum < len(args):
        raise TypeError(f"differentiable argument {argnum} missing: called with {len(args)} positional argument(s)")


def differentiate(fun: Callable, x: Any, *args: Any, has_aux: bool = False, **kwargs: Any):
    """
    Gradient of a scalar-output function y = fun(x, *args, **kwargs) w.r.t. `x`.

    `x` may be a tensor or any nesting of dict / list / tuple holding
    tensors; the returned gradient has the same structure. `args` and
    `kwargs` are passed through as constants. Uses a fresh, isolated tape.

    Returns
    -------
    (grads, output), or (grads, output, aux) when `has_aux` is True and
    `fun` returns an (output, aux) pair.
    """
    return _run(fun, Tape(), (x,) + args, kwargs, 0, has_aux)


class GradFunction:
    """
    Differentiated version of a function: a call site that keeps its tapes.

    Calling it returns `(grads, output)` for the positional argument at
    `argnum`. Repeated calls reuse tape slots from earlier calls when the
    recorded graph keeps its shape; a failed call clears the kept tapes.
    """

    def __init__(self, fun: Callable, argnum: int = 0, has_aux: bool = False,
                 config: Optional[EngineConfig] = None):
        config = config or DEFAULT_ENGINE
        self.fun = fun
        self.argnum = argnum
        self.has_aux = has_aux
        self.pool = TapePool(recycle=config.recycle, max_idle=config.max_idle_tapes)
        functools.update_wrapper(self, fun)

    def __call__(self, *args: Any, **kwargs: Any):
        _check_argnum(args, self.argnum)
        with self.pool.checkout() as tape:
            return _run(self.fun, tape, args, kwargs, self.argnum, self.has_aux)

    def __repr__(self):
        return f"GradFunction({getattr(self.fun, '__name__', self.fun)!r}, argnum={self.argnum})"


def grad(fun: Callable, argnum: int = 0, has_aux: bool = False,
         config: Optional[EngineConfig] = None) -> GradFunction:
    """
    Build the gradient function of `fun` w.r.t. positional argument `argnum`.

    Example
    -------
    df = grad(lambda p: ops.sum(p["W"] * p["x"]))
    grads, loss = df({"W": W, "x": x})
    """
    return GradFunction(fun, argnum=argnum, has_aux=has_aux, config=config)
