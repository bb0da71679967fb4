# tapegrad/core/__init__.py

"""
Core of the tracing engine.

Exports:
    Node           : one recorded value on a tape (traced value wrapper)
    Tape, TapePool : node arena for one call / idle tapes of one call site
    apply          : interception layer every primitive call goes through
    Primitive      : raw operation + backward function
    primitives     : default primitive registry
    backward_pass  : one reverse sweep over a tape
    differentiate  : gradient of a scalar function w.r.t. its first argument
    grad           : differentiated call site with tape recycling
    value          : raw value(s) of a node or structure of nodes
"""

from .node import Node
from .tape import Tape, TapePool
from .tracer import apply, is_node, get_value, unwrap, contains_node
from .primitive import Primitive, Registry, primitive, primitives
from .engine import backward_pass
from .seeds import GradFunction, differentiate, grad, value

__all__ = [
    "Node",
    "Tape",
    "TapePool",
    "apply",
    "is_node",
    "get_value",
    "unwrap",
    "contains_node",
    "Primitive",
    "Registry",
    "primitive",
    "primitives",
    "backward_pass",
    "GradFunction",
    "differentiate",
    "grad",
    "value",
]
