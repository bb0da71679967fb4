# tapegrad/core/node.py
from __future__ import annotations
import numpy as np
from typing import Any, Optional, Tuple

from ..errors import RecycleShapeMismatch


class Node:
    """
    One slot on a tape: a computed value plus what is needed to route
    gradient contributions back to the operands that produced it.

    Attributes
    ----------
    value : Any
        Raw computed value (usually an np.ndarray or a numpy scalar).
    primitive : Primitive | None
        Operation that produced `value`; None for a root (user-supplied leaf).
    backward : callable | None
        `backward(g, arg_values, value)` of `primitive`, captured at record time.
    args : tuple
        Original call arguments: Nodes, containers holding Nodes, or raw
        constants. Non-owning; every Node referenced here has a smaller `index`.
    arg_values : tuple
        The same arguments with every Node unwrapped to its raw value.
    grad : Any
        Accumulated gradient. None until the first contribution arrives;
        afterwards only ever replaced by `grad + contribution`.
    index : int
        Position on the tape. Strictly increasing in creation order.
    tape : Tape
        Owning tape. Traced operands carry it into the interception layer,
        so no global "current tape" is needed.
    """

    __slots__ = ("value", "primitive", "backward", "args", "arg_values", "grad", "index", "tape")

    # Make numpy defer binary operators (ndarray + Node) to Node's reflected methods
    __array_priority__ = 1000
    __array_ufunc__ = None

    def __init__(self, value: Any, primitive, args: Tuple, arg_values: Tuple, index: int, tape):
        self.value = value
        self.primitive = primitive
        self.backward = primitive.backward if primitive is not None else None
        self.args = args
        self.arg_values = arg_values
        self.grad = None
        self.index = index
        self.tape = tape

    def recycle(self, value: Any, primitive, args: Tuple, arg_values: Tuple) -> "Node":
        """
        Reset this slot in place for a new recording.

        Only valid if the previous occupant had the same primitive and arity;
        otherwise RecycleShapeMismatch is raised and the slot must be replaced.
        """
        if primitive is not self.primitive or len(args) != len(self.args):
            raise RecycleShapeMismatch(
                self.index,
                _describe(self.primitive, len(self.args)),
                _describe(primitive, len(args)),
            )
        self.value = value
        self.backward = primitive.backward if primitive is not None else None
        self.args = args
        self.arg_values = arg_values
        self.grad = None
        return self

    @property
    def is_root(self) -> bool:
        return self.primitive is None

    @property
    def op_name(self) -> Optional[str]:
        return self.primitive.name if self.primitive is not None else None

    # --- shape introspection on the wrapped value ---
    @property
    def shape(self) -> Tuple[int, ...]:
        return np.shape(self.value)

    @property
    def ndim(self) -> int:
        return np.ndim(self.value)

    @property
    def size(self) -> int:
        return np.size(self.value)

    @property
    def dtype(self):
        return np.asarray(self.value).dtype

    def __len__(self) -> int:
        return len(self.value)

    def __repr__(self):
        op = self.op_name or "root"
        return f"Node({self.value!r}, op={op}, index={self.index})"


def _describe(primitive, arity: int) -> str:
    name = primitive.name if primitive is not None else "root"
    return f"{name}/{arity}"
