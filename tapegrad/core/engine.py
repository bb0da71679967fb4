# tapegrad/core/engine.py
from __future__ import annotations
import logging
from typing import Any

import numpy as np

from .node import Node
from .tape import Tape
from ..errors import BackwardArityError, GradientShapeError, TapeMismatchError

logger = logging.getLogger(__name__)


def backward_pass(tape: Tape, output: Node, seed: Any = 1.0) -> int:
    """
    Run one reverse sweep over `tape`, starting from `output`.

    Args:
        tape: the recording that produced `output`
        output: node whose gradient is seeded
        seed: initial gradient of `output` (1.0 for a scalar output)

    Returns:
        Number of nodes whose backward function was invoked.

    Notes:
        - Nodes are visited once, from the highest index down. Every node
          references only earlier nodes, so by the time a node is reached all
          of its consumers have already pushed their contributions into it.
        - For each argument: arg.grad += contribution (never overwritten).
        - Total work is linear in tape length; fan-out only adds one
          accumulation per edge.
    """
    if not tape.owns(output):
        raise TapeMismatchError(f"{output!r} was not recorded on this tape")

    output.grad = seed

    # Backward sweep
    visited = 0
    for node in tape.reversed_nodes():
        if node.grad is None or node.backward is None:
            continue  # nothing to propagate (unreached node or root)
        visited += 1
        contributions = node.backward(node.grad, node.arg_values, node.value)
        if contributions is None:
            continue
        if len(contributions) != len(node.args):
            raise BackwardArityError(node.op_name, len(node.args), len(contributions))
        for arg, contribution in zip(node.args, contributions):
            _accumulate(arg, contribution, node.op_name)
    return visited


def _match_shape(contribution: Any, ref: Node, name: str) -> Any:
    """Check a contribution against the shape of the node it is added into."""
    shape = np.shape(ref.value)
    got = np.shape(contribution)
    if got == shape:
        return contribution
    if np.size(contribution) == 1:
        return np.broadcast_to(np.reshape(contribution, ()), shape)
    raise GradientShapeError(name, shape, got)


def _accumulate(ref: Any, contribution: Any, name: str):
    """Add `contribution` into the Node(s) held by `ref`; raw constants are skipped."""
    if contribution is None:
        return
    if isinstance(ref, Node):
        contribution = _match_shape(contribution, ref, name)
        # Accumulate: ref.grad = ref.grad + contribution
        ref.grad = contribution if ref.grad is None else ref.grad + contribution
    elif isinstance(ref, dict):
        for key, sub in ref.items():
            _accumulate(sub, contribution.get(key), name)
    elif isinstance(ref, (list, tuple)):
        for sub, part in zip(ref, contribution):
            _accumulate(sub, part, name)
