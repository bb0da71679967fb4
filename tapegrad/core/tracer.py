# tapegrad/core/tracer.py
"""
Interception layer.

Every primitive call goes through `apply`. Arguments are either raw values
or traced Nodes; containers (dict / list / tuple) are searched recursively,
because a single logical argument such as the list passed to `cat` may hold
Nodes at any position.

    - no Node anywhere in the arguments: the raw operation runs and its raw
      result is returned, nothing is recorded
    - otherwise the raw operation runs on unwrapped values and one Node is
      recorded on the tape that owns the traced operands

The tape handle travels with the operands (`node.tape`); there is no global
or thread-local "active tape".
"""
from __future__ import annotations
from typing import Any, Iterator, List

from .node import Node
from ..errors import TapeMismatchError


def is_node(x: Any) -> bool:
    return isinstance(x, Node)


def get_value(x: Any) -> Any:
    """Raw value of a Node; anything else is returned as is."""
    return x.value if isinstance(x, Node) else x


def _unwrap(arg: Any, found: List[Node]) -> Any:
    if isinstance(arg, Node):
        found.append(arg)
        return arg.value
    if isinstance(arg, dict):
        return {k: _unwrap(v, found) for k, v in arg.items()}
    if isinstance(arg, list):
        return [_unwrap(v, found) for v in arg]
    if isinstance(arg, tuple):
        items = [_unwrap(v, found) for v in arg]
        return type(arg)(*items) if hasattr(arg, "_fields") else tuple(items)
    return arg


def unwrap(x: Any) -> Any:
    """Replace every Node inside `x` (at any depth) by its raw value."""
    return _unwrap(x, [])


def iter_nodes(x: Any) -> Iterator[Node]:
    """Yield the Nodes held by `x`, depth-first in argument order."""
    if isinstance(x, Node):
        yield x
    elif isinstance(x, dict):
        for v in x.values():
            yield from iter_nodes(v)
    elif isinstance(x, (list, tuple)):
        for v in x:
            yield from iter_nodes(v)


def contains_node(x: Any) -> bool:
    return next(iter_nodes(x), None) is not None


def _owning_tape(found: List[Node]):
    tape = found[0].tape
    for node in found:
        if not tape.owns(node):
            if node.tape is not tape:
                raise TapeMismatchError(
                    "operands were traced on different tapes; nested differentiation is not supported"
                )
            raise TapeMismatchError(
                f"{node!r} is not part of the recording in progress (kept from an earlier call?)"
            )
    return tape


def apply(primitive, *args: Any) -> Any:
    """
    Call `primitive` on `args`, recording a Node if any argument is traced.

    Errors raised by the raw operation propagate unchanged.
    """
    found: List[Node] = []
    arg_values = tuple(_unwrap(a, found) for a in args)
    if not found:
        return primitive.fun(*arg_values)
    tape = _owning_tape(found)
    result = primitive.fun(*arg_values)
    return tape.record(result, primitive, args, arg_values)
