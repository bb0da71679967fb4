# tapegrad/core/tape.py
from __future__ import annotations
import logging
import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional, Tuple

from .node import Node
from ..errors import RecycleShapeMismatch

logger = logging.getLogger(__name__)


class Tape:
    """
    Index-addressed arena of Nodes for one differentiation call.

    Nodes are appended in execution order, so a node only ever references
    nodes with a smaller index and a single descending pass over the tape is
    a valid reverse-topological order.

    A tape can be reused by a later call: `reset()` rewinds the write
    position but keeps the allocated slots, and `record()` resets a slot in
    place when its previous occupant has the same shape (primitive and arity).
    A slot with a different shape is replaced by a fresh Node.
    """

    def __init__(self):
        self.nodes: List[Node] = []
        self.next_index = 0
        self.recycled = 0       # slots reset in place during the current recording
        self.reallocations = 0  # slots replaced because the recorded shape changed

    def __len__(self) -> int:
        return self.next_index

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes[:self.next_index])

    def reset(self):
        """Rewind for a new recording; allocated slots stay available for reuse."""
        self.next_index = 0
        self.recycled = 0
        self.reallocations = 0

    def clear(self):
        """Drop every slot."""
        self.nodes.clear()
        self.reset()

    def record(self, value, primitive, args: Tuple, arg_values: Tuple) -> Node:
        """Store one computed value at the next index and return its Node."""
        index = self.next_index
        if index < len(self.nodes):
            try:
                node = self.nodes[index].recycle(value, primitive, args, arg_values)
                self.recycled += 1
            except RecycleShapeMismatch as exc:
                logger.debug("%s; reallocating", exc)
                node = Node(value, primitive, args, arg_values, index, self)
                self.nodes[index] = node
                self.reallocations += 1
        else:
            node = Node(value, primitive, args, arg_values, index, self)
            self.nodes.append(node)
        self.next_index = index + 1
        return node

    def root(self, value) -> Node:
        """Record a user-supplied leaf (no producing primitive)."""
        return self.record(value, None, (), ())

    def finish(self):
        """End the recording: discard slots left over from a longer previous graph."""
        if len(self.nodes) > self.next_index:
            logger.debug("tape shrank from %d to %d nodes", len(self.nodes), self.next_index)
            del self.nodes[self.next_index:]

    def owns(self, node: Node) -> bool:
        """
        True if `node` is a live slot of the recording in progress.

        A node kept from an earlier call is rejected until the current call
        writes its slot again. A slot recycled in place is the same object,
        so from then on the kept reference is the current node and reads the
        new value.
        """
        return (
            node.tape is self
            and node.index < self.next_index
            and self.nodes[node.index] is node
        )

    def reversed_nodes(self) -> Iterator[Node]:
        """Live nodes from the highest index down to 0."""
        for i in range(self.next_index - 1, -1, -1):
            yield self.nodes[i]

    def fingerprint(self) -> Tuple[Tuple[Optional[str], int], ...]:
        """Shape of the current recording: (primitive name or None, arity) per node."""
        return tuple((node.op_name, len(node.args)) for node in self)

    def __repr__(self):
        return f"Tape(nodes={self.next_index}, recycled={self.recycled}, reallocations={self.reallocations})"


class TapePool:
    """
    Idle tapes kept by one call site for slot recycling.

    A tape is checked out by exactly one in-flight call. Callers that find
    no idle tape get a fresh one, so concurrent or re-entrant calls through
    the same call site never share a tape.
    """

    def __init__(self, recycle: bool = True, max_idle: int = 4):
        self.recycle = recycle
        self.max_idle = max_idle
        self._idle: List[Tape] = []
        self._lock = threading.Lock()

    def acquire(self) -> Tape:
        if self.recycle:
            with self._lock:
                if self._idle:
                    tape = self._idle.pop()
                    tape.reset()
                    return tape
        return Tape()

    def release(self, tape: Tape):
        if not self.recycle:
            return
        with self._lock:
            if len(self._idle) < self.max_idle:
                self._idle.append(tape)

    def invalidate(self):
        """Forget every idle tape (used after a failed forward pass)."""
        with self._lock:
            self._idle.clear()

    @property
    def idle(self) -> int:
        return len(self._idle)

    @contextmanager
    def checkout(self):
        """
        Lend a tape for the duration of one call:

            with pool.checkout() as tape:
                ... record, sweep, extract ...

        On an exception the tape is discarded and the pool invalidated, since
        a partial recording is not a valid graph to recycle against.
        """
        tape = self.acquire()
        try:
            yield tape
        except BaseException:
            logger.debug("forward/backward failed; discarding tape and %d idle tape(s)", self.idle)
            self.invalidate()
            raise
        self.release(tape)
