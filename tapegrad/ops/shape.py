# tapegrad/ops/shape.py
"""
Indexing, selection and layout primitives.

Gradients of the selecting ops scatter the upstream gradient into a zero
array shaped like the input; repeated indices accumulate (np.add.at).
"""
import numpy as np
from ..core.node import Node
from ..core.primitive import primitives
from ..core.tracer import get_value
from .arithmetic import unbroadcast


def _zeros_for(x):
    x = np.asarray(x)
    dtype = x.dtype if np.issubdtype(x.dtype, np.inexact) else float
    return np.zeros(x.shape, dtype=dtype)


def _axis_index(ndim, axis, index):
    key = [slice(None)] * ndim
    key[axis] = index
    return tuple(key)


# ---------------- reshaping ----------------

_reshape = primitives.register(
    "reshape", lambda x, shape: np.reshape(x, shape),
    lambda g, args, out: (np.reshape(g, np.shape(args[0])), None))


def reshape(x, shape):
    return _reshape(x, tuple(shape) if isinstance(shape, (list, tuple)) else (shape,))


def view(x, *shape):
    """torch-style view: view(x, 5, 5) or view(x, (5, 5))."""
    if len(shape) == 1 and isinstance(shape[0], (list, tuple)):
        shape = shape[0]
    return reshape(x, shape)


def view_as(x, other):
    return reshape(x, np.shape(get_value(other)))


def _transpose_grad(g, args, out):
    x, axes = args
    if axes is None:
        return np.transpose(g), None
    ndim = np.ndim(x)
    return np.transpose(g, np.argsort([a % ndim for a in axes])), None


_transpose = primitives.register("transpose", lambda x, axes: np.transpose(x, axes), _transpose_grad)


def transpose(x, axes=None):
    return _transpose(x, tuple(axes) if axes is not None else None)


def t(x):
    """Transpose of a 2-D tensor."""
    if np.ndim(get_value(x)) != 2:
        raise ValueError(f"t() expects a 2-D tensor, got {np.ndim(get_value(x))} dims")
    return transpose(x)


def _expand_grad(g, args, out):
    x, shape = args
    return unbroadcast(g, x), None


_expand = primitives.register("expand", lambda x, shape: np.array(np.broadcast_to(x, shape)), _expand_grad)


def expand(x, *shape):
    """Broadcast `x` to `shape`: expand(x, 32, 100) or expand(x, (32, 100))."""
    if len(shape) == 1 and isinstance(shape[0], (list, tuple)):
        shape = shape[0]
    return _expand(x, tuple(shape))


def expand_as(x, other):
    return _expand(x, np.shape(get_value(other)))


# ---------------- selection ----------------

def _select_grad(g, args, out):
    x, axis, index = args
    gx = _zeros_for(x)
    gx[_axis_index(gx.ndim, axis, index)] = g
    return gx, None, None


select = primitives.register("select", lambda x, axis, index: np.take(x, index, axis=axis), _select_grad)
select.__doc__ = "select(x, axis, index): slice at `index` along `axis`, dropping that axis."


def _narrow_grad(g, args, out):
    x, axis, start, length = args
    gx = _zeros_for(x)
    gx[_axis_index(gx.ndim, axis, slice(start, start + length))] = g
    return gx, None, None, None


narrow = primitives.register(
    "narrow",
    lambda x, axis, start, length: x[_axis_index(np.ndim(x), axis, slice(start, start + length))].copy(),
    _narrow_grad)
narrow.__doc__ = "narrow(x, axis, start, length): `length` consecutive entries along `axis`."


def _index_grad(g, args, out):
    x, axis, indices = args
    gx = _zeros_for(x)
    indices = np.asarray(indices)
    axis = axis % gx.ndim
    # the output holds all index dimensions in place of `axis`
    index_axes = list(range(axis, axis + indices.ndim))
    g = np.moveaxis(np.asarray(g), index_axes, list(range(indices.ndim)))
    np.add.at(np.moveaxis(gx, axis, 0), indices, g)
    return gx, None, None


index = primitives.register("index", lambda x, axis, indices: np.take(x, indices, axis=axis), _index_grad)
index.__doc__ = "index(x, axis, indices): gather entries along `axis`; indices may repeat."


def _getitem_grad(g, args, out):
    x, key = args
    gx = _zeros_for(x)
    np.add.at(gx, key, g)
    return gx, None


getitem = primitives.register("getitem", lambda x, key: np.array(x[key]), _getitem_grad)


# ---------------- joining / copying ----------------

def _cat_grad(g, args, out):
    xs, axis = args
    sizes = [np.shape(x)[axis] for x in xs]
    parts = np.split(g, np.cumsum(sizes)[:-1], axis=axis)
    return list(parts), None


_cat = primitives.register("cat", lambda xs, axis: np.concatenate(xs, axis=axis), _cat_grad)


def cat(tensors, axis=0):
    """Concatenate a list of tensors along `axis`."""
    return _cat(list(tensors), axis)


clone = primitives.register("clone", lambda x: np.array(x, copy=True), lambda g, args, out: (g,))


Node.__getitem__ = lambda self, key: getitem(self, key)
Node.T           = property(lambda self: transpose(self))
Node.reshape     = lambda self, *shape: view(self, *shape)
