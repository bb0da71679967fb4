# tapegrad/ops/linalg.py
import numpy as np
from scipy import linalg as sla
from ..core.primitive import primitives


def _inverse_grad(g, args, out):
    # d(A^-1) = -A^-1 dA A^-1
    out_t = np.transpose(out)
    return (-out_t @ g @ out_t,)


inverse = primitives.register("inverse", sla.inv, _inverse_grad)
inverse.__doc__ = "Matrix inverse of a square 2-D tensor."


def _solve_grad(g, args, out):
    a, b = args
    gb = sla.solve(np.transpose(a), g)
    if np.ndim(out) == 1:
        ga = -np.outer(gb, out)
    else:
        ga = -gb @ np.transpose(out)
    return ga, gb


solve = primitives.register("solve", sla.solve, _solve_grad)
solve.__doc__ = "Solution x of a @ x = b for square `a`."
