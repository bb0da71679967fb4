# tapegrad/ops/arithmetic.py
import numpy as np
from ..core.node import Node
from ..core.primitive import primitives


def unbroadcast(g, target):
    """
    Sum `g` over the axes numpy broadcast when combining `target` with
    another operand, so the result has `target`'s shape.
    """
    shape = np.shape(target)
    g = np.asarray(g)
    while g.ndim > len(shape):
        g = np.sum(g, axis=0)
    for axis, size in enumerate(shape):
        if size == 1 and g.shape[axis] != 1:
            g = np.sum(g, axis=axis, keepdims=True)
    return g


def _binary(name, f, dfda, dfdb):
    """
    Generic elementwise binary primitive:
      - value:     f(a, b)
      - backward:  (unbroadcast(g * ∂f/∂a), unbroadcast(g * ∂f/∂b))
    """
    def backward(g, args, out):
        a, b = args
        return unbroadcast(dfda(g, a, b, out), a), unbroadcast(dfdb(g, a, b, out), b)
    return primitives.register(name, f, backward)


add = _binary("add", np.add,      lambda g,a,b,out: g,      lambda g,a,b,out: g)
sub = _binary("sub", np.subtract, lambda g,a,b,out: g,      lambda g,a,b,out: -g)
mul = _binary("mul", np.multiply, lambda g,a,b,out: g * b,  lambda g,a,b,out: g * a)
div = _binary("div", np.true_divide,
              lambda g,a,b,out: g / b,
              lambda g,a,b,out: -g * a / np.square(b))


def _safe_log(a):
    # log is only needed where a > 0; elsewhere the exponent partial is taken as 0
    a = np.asarray(a, dtype=float)
    return np.where(a > 0, np.log(np.where(a > 0, a, 1.0)), 0.0)


power = _binary("power", np.power,
                lambda g,a,b,out: g * b * np.power(a, b - 1.0),
                lambda g,a,b,out: g * out * _safe_log(a))

neg = primitives.register("neg", np.negative, lambda g, args, out: (-g,))


# ---------------- products ----------------

def _matmul_grads(g, a, b):
    """
    Gradients of np.matmul(a, b) for 1-D and stacked 2-D operands.
    1-D operands are promoted to matrices the way matmul does, then squeezed back.
    """
    a = np.asarray(a)
    b = np.asarray(b)
    g = np.asarray(g)
    A = a[np.newaxis, :] if a.ndim == 1 else a
    B = b[:, np.newaxis] if b.ndim == 1 else b
    if a.ndim == 1 and b.ndim == 1:
        g = np.reshape(g, (1, 1))
    elif a.ndim == 1:
        g = np.expand_dims(g, -2)
    elif b.ndim == 1:
        g = np.expand_dims(g, -1)
    ga = np.matmul(g, np.swapaxes(B, -1, -2))
    gb = np.matmul(np.swapaxes(A, -1, -2), g)
    return unbroadcast(ga, A).reshape(a.shape), unbroadcast(gb, B).reshape(b.shape)


matmul = primitives.register("matmul", np.matmul,
                             lambda g, args, out: _matmul_grads(g, *args))


def _dot_grad(g, args, out):
    a, b = args
    if np.ndim(a) == 0 or np.ndim(b) == 0:
        # dot with a scalar is plain multiplication
        return unbroadcast(g * b, a), unbroadcast(g * a, b)
    if np.ndim(a) > 2 or np.ndim(b) > 2:
        return _tensordot_grads(g, a, b)
    return _matmul_grads(g, a, b)


def _tensordot_grads(g, a, b):
    """
    Gradients of np.dot(a, b) for N-D operands: the last axis of `a` is
    contracted with the second-to-last axis of `b` (its only axis if 1-D).
    """
    a = np.asarray(a)
    b = np.asarray(b)
    g = np.asarray(g)
    na, nb = a.ndim, b.ndim
    lead = list(range(na - 1))
    if nb == 1:
        return g[..., np.newaxis] * b, np.tensordot(a, g, axes=(lead, lead))
    ga = np.tensordot(g, b, axes=(list(range(na - 1, na + nb - 2)), list(range(nb - 2)) + [nb - 1]))
    gb = np.moveaxis(np.tensordot(a, g, axes=(lead, lead)), 0, nb - 2)
    return ga, gb


dot = primitives.register("dot", np.dot, _dot_grad)


def _outer_grad(g, args, out):
    a, b = args
    a_flat = np.ravel(a)
    b_flat = np.ravel(b)
    return (np.dot(g, b_flat).reshape(np.shape(a)),
            np.dot(a_flat, g).reshape(np.shape(b)))


outer = primitives.register("outer", np.outer, _outer_grad)


# Bind Python operators to Node
Node.__add__      = lambda self, other: add(self, other)
Node.__radd__     = lambda self, other: add(other, self)
Node.__sub__      = lambda self, other: sub(self, other)
Node.__rsub__     = lambda self, other: sub(other, self)
Node.__mul__      = lambda self, other: mul(self, other)
Node.__rmul__     = lambda self, other: mul(other, self)
Node.__truediv__  = lambda self, other: div(self, other)
Node.__rtruediv__ = lambda self, other: div(other, self)
Node.__pow__      = lambda self, other: power(self, other)
Node.__rpow__     = lambda self, other: power(other, self)
Node.__matmul__   = lambda self, other: matmul(self, other)
Node.__rmatmul__  = lambda self, other: matmul(other, self)
Node.__neg__      = lambda self: neg(self)
Node.dot          = lambda self, other: dot(self, other)
