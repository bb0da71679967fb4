# tapegrad/ops/reductions.py
import builtins

import numpy as np
from ..core.primitive import primitives


def _restore(g, x, axis, keepdims):
    """Broadcast a reduced gradient back to the shape of the reduced input."""
    g = np.asarray(g)
    if axis is not None and not keepdims:
        g = np.expand_dims(g, axis)
    return np.array(np.broadcast_to(g, np.shape(x)))


def _sum_grad(g, args, out):
    x, axis, keepdims = args
    return _restore(g, x, axis, keepdims), None, None


def _mean_grad(g, args, out):
    x, axis, keepdims = args
    count = np.size(x) / builtins.max(np.size(out), 1)
    return _restore(g, x, axis, keepdims) / count, None, None


def _extremum_grad(g, args, out):
    """
    Gradient of max/min: flows to the elements equal to the result.
    Ties share it evenly.
    """
    x, axis, keepdims = args
    x = np.asarray(x)
    o = out if (axis is None or keepdims) else np.expand_dims(out, axis)
    mask = (x == o)
    counts = np.sum(mask, axis=axis, keepdims=True)
    return _restore(g, x, axis, keepdims) * mask / counts, None, None


_sum = primitives.register("sum", lambda x, axis, keepdims: np.sum(x, axis=axis, keepdims=keepdims), _sum_grad)
_mean = primitives.register("mean", lambda x, axis, keepdims: np.mean(x, axis=axis, keepdims=keepdims), _mean_grad)
_max = primitives.register("max", lambda x, axis, keepdims: np.max(x, axis=axis, keepdims=keepdims), _extremum_grad)
_min = primitives.register("min", lambda x, axis, keepdims: np.min(x, axis=axis, keepdims=keepdims), _extremum_grad)


def sum(x, axis=None, keepdims=False):
    return _sum(x, axis, keepdims)


def mean(x, axis=None, keepdims=False):
    return _mean(x, axis, keepdims)


def max(x, axis=None, keepdims=False):
    return _max(x, axis, keepdims)


def min(x, axis=None, keepdims=False):
    return _min(x, axis, keepdims)
