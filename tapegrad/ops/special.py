# tapegrad/ops/special.py
import numpy as np
from scipy import special as sp
from ..core.primitive import primitives

SQRT_TWO_PI = np.sqrt(2.0 * np.pi)
TWO_OVER_SQRT_PI = 2.0 / np.sqrt(np.pi)


def norm_pdf(x):
    return np.exp(-0.5 * x * x) / SQRT_TWO_PI


def _erf_grad(g, args, out):
    (x,) = args
    # d/dx erf(x) = (2/√π) * e^(-x²)
    return (g * TWO_OVER_SQRT_PI * np.exp(-np.square(x)),)


def _norm_cdf_grad(g, args, out):
    (x,) = args
    # dN/dx = phi(x)
    return (g * norm_pdf(x),)


erf = primitives.register("erf", sp.erf, _erf_grad)
norm_cdf = primitives.register("norm_cdf", sp.ndtr, _norm_cdf_grad)
