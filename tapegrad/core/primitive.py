# tapegrad/core/primitive.py
"""
Primitive registration.

External operation libraries register a primitive as a pair
{raw operation, backward function}:

    square = primitives.register("square", lambda x: x * x)

    @square.defgrad
    def _square_grad(g, args, out):
        (x,) = args
        return (2.0 * g * x,)

or, with the decorator form:

    @primitive(name="square")
    def square(x):
        return x * x

The backward function receives the upstream gradient, the ordered raw
argument values and the raw output, and returns one gradient contribution
per argument. `None` means "no gradient for this argument". For an
argument that is a container (e.g. the list passed to `cat`), the
contribution is a container of the same shape.
"""
from __future__ import annotations
from typing import Callable, Dict, Iterator, List, Optional

from .tracer import apply
from ..errors import DuplicatePrimitiveError

BackwardFn = Callable[..., Optional[tuple]]


class Primitive:
    """
    A raw numeric operation plus its backward function.

    Calling a Primitive goes through the interception layer: with only raw
    arguments it is exactly the raw operation; with traced arguments the
    call is recorded on their tape. Arguments are positional only.
    """

    def __init__(self, name: str, fun: Callable, backward: Optional[BackwardFn] = None):
        self.name = name
        self.fun = fun
        self.backward = backward
        self.__doc__ = getattr(fun, "__doc__", None)

    def __call__(self, *args):
        return apply(self, *args)

    def defgrad(self, backward: BackwardFn) -> BackwardFn:
        """Set the backward function; usable as a decorator."""
        self.backward = backward
        return backward

    def __repr__(self):
        return f"Primitive({self.name!r})"


class Registry:
    """Name -> Primitive mapping."""

    def __init__(self):
        self._primitives: Dict[str, Primitive] = {}

    def register(self, name: str, fun: Callable, backward: Optional[BackwardFn] = None,
                 *, replace: bool = False) -> Primitive:
        return self.add(Primitive(name, fun, backward), replace=replace)

    def add(self, prim: Primitive, *, replace: bool = False) -> Primitive:
        if prim.name in self._primitives and not replace:
            raise DuplicatePrimitiveError(prim.name)
        self._primitives[prim.name] = prim
        return prim

    def __getitem__(self, name: str) -> Primitive:
        return self._primitives[name]

    def __contains__(self, name: str) -> bool:
        return name in self._primitives

    def __iter__(self) -> Iterator[Primitive]:
        return iter(self._primitives.values())

    def __len__(self) -> int:
        return len(self._primitives)

    def names(self) -> List[str]:
        return sorted(self._primitives)


# Default registry used by tapegrad.ops
primitives = Registry()


def primitive(fun: Optional[Callable] = None, *, name: Optional[str] = None,
              backward: Optional[BackwardFn] = None, registry: Optional[Registry] = None,
              replace: bool = False):
    """
    Decorator registering a raw function as a Primitive.

        @primitive
        def f(x): ...

        @primitive(name="my_op", registry=my_registry)
        def f(x): ...
    """
    target = registry if registry is not None else primitives

    def wrap(f: Callable) -> Primitive:
        return target.register(name or f.__name__, f, backward, replace=replace)

    if fun is not None:
        return wrap(fun)
    return wrap
