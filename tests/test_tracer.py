"""Unit tests for the interception layer."""

import numpy as np
import pytest

from tapegrad import Tape, TapeMismatchError, apply, is_node, ops, unwrap
from tapegrad.core.tracer import contains_node, get_value, iter_nodes


class TestApply:
    """Recording versus pass-through."""

    def test_constants_bypass_tracing(self):
        out = ops.add(np.ones(3), np.ones(3))
        assert isinstance(out, np.ndarray)
        assert not is_node(out)
        assert np.array_equal(out, [2.0, 2.0, 2.0])

    def test_traced_operand_records(self):
        tape = Tape()
        x = tape.root(np.array([1.0, 2.0]))
        y = ops.mul(x, 3.0)
        assert is_node(y)
        assert y.tape is tape
        assert y.index == 1
        assert np.array_equal(y.value, [3.0, 6.0])
        assert y.arg_values[1] == 3.0

    def test_nodes_inside_containers(self):
        tape = Tape()
        a = tape.root(np.array([1.0]))
        b = tape.root(np.array([2.0, 3.0]))
        out = ops.cat([a, np.array([9.0]), b])
        assert is_node(out)
        assert np.array_equal(out.value, [1.0, 9.0, 2.0, 3.0])
        assert isinstance(out.arg_values[0], list)
        assert not any(is_node(v) for v in out.arg_values[0])

    def test_operand_errors_propagate(self):
        tape = Tape()
        x = tape.root(np.ones(3))
        with pytest.raises(ValueError):
            ops.add(x, np.ones(4))
        assert len(tape) == 1

    def test_mixed_tapes_rejected(self):
        a = Tape().root(np.ones(2))
        b = Tape().root(np.ones(2))
        with pytest.raises(TapeMismatchError):
            ops.add(a, b)

    def test_stale_node_rejected(self):
        tape = Tape()
        x = tape.root(np.ones(2))
        y = ops.exp(x)
        tape.reset()
        tape.root(np.ones(2))
        with pytest.raises(TapeMismatchError):
            ops.exp(y)

    def test_apply_directly(self):
        tape = Tape()
        x = tape.root(np.array(2.0))
        out = apply(ops.neg, x)
        assert out.value == -2.0
        assert out.op_name == "neg"


class TestHelpers:
    """Unwrapping and node discovery."""

    def test_get_value(self):
        tape = Tape()
        x = tape.root(np.array(1.5))
        assert get_value(x) == 1.5
        assert get_value(4) == 4

    def test_unwrap_nested(self):
        tape = Tape()
        x = tape.root(np.array([1.0]))
        tree = {"a": [x, 2], "b": (x,)}
        out = unwrap(tree)
        assert out["a"][1] == 2
        assert out["a"][0] is x.value
        assert isinstance(out["b"], tuple)

    def test_iter_and_contains(self):
        tape = Tape()
        x = tape.root(np.array([1.0]))
        y = tape.root(np.array([2.0]))
        assert list(iter_nodes({"p": [x, 1, (y,)]})) == [x, y]
        assert contains_node([1, [x]])
        assert not contains_node([1, [2.0]])


class TestOperators:
    """Python operators on nodes, including ndarray on the left."""

    def test_reflected_with_ndarray(self):
        tape = Tape()
        x = tape.root(np.array([1.0, 2.0]))
        out = np.array([10.0, 20.0]) - x
        assert is_node(out)
        assert out.op_name == "sub"
        assert np.array_equal(out.value, [9.0, 18.0])

    def test_matmul_operator(self):
        tape = Tape()
        w = tape.root(np.eye(2))
        out = np.array([[1.0, 2.0]]) @ w
        assert is_node(out)
        assert np.array_equal(out.value, [[1.0, 2.0]])

    def test_scalar_operators(self):
        tape = Tape()
        x = tape.root(np.array(3.0))
        out = (2.0 * x + 1.0) / x - x ** 2
        assert out.value == pytest.approx(7.0 / 3.0 - 9.0)
