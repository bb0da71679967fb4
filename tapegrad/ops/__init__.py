# tapegrad/ops/__init__.py
# numpy/scipy primitive library. Importing it registers every primitive in
# tapegrad.core.primitives and binds the Python operators on Node.

from .arithmetic import add, sub, mul, div, neg, power, dot, matmul, outer, unbroadcast
from .transcendental import exp, log, sqrt, tanh, sigmoid, abs
from .special import erf, norm_cdf
from .reductions import sum, mean, max, min
from .shape import (
    reshape, view, view_as, transpose, t, expand, expand_as,
    select, narrow, index, getitem, cat, clone,
)
from .linalg import inverse, solve

__all__ = [
    # arithmetic
    'add', 'sub', 'mul', 'div', 'neg', 'power', 'dot', 'matmul', 'outer', 'unbroadcast',
    # transcendental
    'exp', 'log', 'sqrt', 'tanh', 'sigmoid', 'abs',
    # special
    'erf', 'norm_cdf',
    # reductions
    'sum', 'mean', 'max', 'min',
    # shape
    'reshape', 'view', 'view_as', 'transpose', 't', 'expand', 'expand_as',
    'select', 'narrow', 'index', 'getitem', 'cat', 'clone',
    # linalg
    'inverse', 'solve',
]
