"""Tests for the differentiation driver and call-site recycling."""

from collections import namedtuple

import numpy as np
import pytest

from tapegrad import (
    EngineConfig,
    GradFunction,
    NonScalarOutputError,
    TapeMismatchError,
    differentiate,
    grad,
    is_node,
    ops,
    value,
)

Params = namedtuple("Params", ["W", "b"])


class TestScenarios:
    """End-to-end gradients with known values."""

    def test_dot_sum(self):
        params = {
            "W": np.full((32, 100), 0.5, dtype=np.float32),
            "x": np.full(100, 0.5, dtype=np.float32),
        }
        grads, out = differentiate(lambda p: ops.sum(ops.dot(p["W"], p["x"])), params)
        assert out == pytest.approx(800.0)
        assert grads["x"].shape == (100,)
        assert grads["W"].shape == (32, 100)
        assert np.allclose(grads["x"], 16.0)
        assert np.allclose(grads["W"], 0.5)

    def test_unary_minus(self):
        x = np.ones((10, 5))
        grads, out = differentiate(lambda x: ops.sum(-x), x)
        assert out == pytest.approx(-50.0)
        assert np.array_equal(grads, -np.ones((10, 5)))

    def test_structured_input(self):
        params = {"a": np.ones((3, 4)), "b": np.ones(5)}
        grads, out = differentiate(lambda p: ops.sum(p["a"]) + ops.sum(p["b"]), params)
        assert out == pytest.approx(17.0)
        assert set(grads) == {"a", "b"}
        assert np.array_equal(grads["a"], np.ones((3, 4)))
        assert np.array_equal(grads["b"], np.ones(5))

    def test_unread_leaf_gets_zeros(self):
        params = {"a": np.ones((3, 4)), "b": np.ones(5)}
        grads, out = differentiate(lambda p: ops.sum(p["a"]), params)
        assert out == pytest.approx(12.0)
        assert np.array_equal(grads["b"], np.zeros(5))

    def test_nested_structure_mirrored(self):
        params = {"layers": [Params(np.ones((2, 2)), np.zeros(2))], "scale": (np.array(2.0),)}

        def f(p):
            layer = p["layers"][0]
            return ops.sum((layer.W @ np.ones(2) + layer.b) * p["scale"][0])

        grads, out = differentiate(f, params)
        assert out == pytest.approx(8.0)
        assert isinstance(grads["layers"], list)
        assert isinstance(grads["layers"][0], Params)
        assert isinstance(grads["scale"], tuple)
        assert np.allclose(grads["layers"][0].W, 2.0)
        assert np.allclose(grads["layers"][0].b, 2.0)
        assert grads["scale"][0] == pytest.approx(4.0)

    def test_dot_nonlinear(self):
        W = np.full((4, 4), 0.5)
        x = np.full(4, 0.5)

        def f(p):
            return ops.sum(ops.tanh(ops.dot(p["W"], p["x"])))

        grads, out = differentiate(f, {"W": W, "x": x})
        h = np.tanh(W @ x)
        assert out == pytest.approx(np.sum(h))
        assert np.allclose(grads["x"], W.T @ (1.0 - h ** 2))
        assert np.allclose(grads["W"], np.outer(1.0 - h ** 2, x))


class TestOutputs:
    """Output validation and special cases."""

    def test_disconnected_output(self):
        x = {"a": np.ones(3)}
        grads, out = differentiate(lambda p: 3.0, x)
        assert out == 3.0
        assert np.array_equal(grads["a"], np.zeros(3))

    def test_constant_array_output(self):
        grads, out = differentiate(lambda p: np.array([2.5]), np.ones((2, 2)))
        assert out == 2.5
        assert np.array_equal(grads, np.zeros((2, 2)))

    def test_size_one_output(self):
        grads, out = differentiate(lambda x: ops.sum(x, keepdims=True), np.arange(3.0))
        assert out == pytest.approx(3.0)
        assert np.array_equal(grads, np.ones(3))

    def test_non_scalar_output(self):
        with pytest.raises(NonScalarOutputError) as exc:
            differentiate(lambda x: x * 2.0, np.ones(3))
        assert exc.value.shape == (3,)
        assert isinstance(exc.value, ValueError)

    def test_non_numeric_output(self):
        with pytest.raises(TypeError):
            differentiate(lambda x: "loss", np.ones(3))

    def test_non_tensor_leaves(self):
        params = {"w": np.array([1.0, 2.0]), "name": "layer", "k": 3}
        grads, out = differentiate(lambda p: ops.sum(p["w"] * p["k"]), params)
        assert out == pytest.approx(9.0)
        assert np.allclose(grads["w"], 3.0)
        assert grads["name"] is None
        assert grads["k"] is None

    def test_float32_gradients_keep_dtype(self):
        x = np.ones(4, dtype=np.float32)
        grads, _ = differentiate(lambda x: ops.sum(x * 2.0), x)
        assert grads.dtype == np.float32

    def test_int_leaf_gets_float_gradient(self):
        grads, _ = differentiate(lambda x: ops.sum(x * 1.5), np.arange(3))
        assert np.allclose(grads, 1.5)
        assert np.issubdtype(grads.dtype, np.floating)

    def test_has_aux(self):
        def f(x):
            h = ops.tanh(x)
            return ops.sum(h), {"h": h, "tag": "ok"}

        grads, out, aux = differentiate(f, np.zeros(2), has_aux=True)
        assert out == 0.0
        assert np.allclose(grads, 1.0)
        assert not is_node(aux["h"])
        assert np.array_equal(aux["h"], np.zeros(2))
        assert aux["tag"] == "ok"

    def test_extra_args_are_constants(self):
        def f(w, x, scale=1.0):
            return ops.sum(w * x) * scale

        grads, out = differentiate(f, np.array([1.0, 2.0]), np.array([3.0, 4.0]), scale=2.0)
        assert out == pytest.approx(22.0)
        assert np.allclose(grads, [6.0, 8.0])

    def test_input_is_traced(self):
        seen = {}

        def f(p):
            seen["W"] = is_node(p["W"])
            seen["n"] = is_node(p["n"])
            return ops.sum(p["W"])

        differentiate(f, {"W": np.ones(2), "n": 5})
        assert seen == {"W": True, "n": False}

    def test_value_unwraps(self):
        def f(x):
            raw = value(x)
            assert isinstance(raw, np.ndarray)
            return ops.sum(x)

        differentiate(f, np.ones(2))


class TestGradFunction:
    """Call sites keep and recycle their tapes."""

    def test_wraps_function(self):
        def loss(p):
            """Sum of squares."""
            return ops.sum(p * p)

        df = grad(loss)
        assert isinstance(df, GradFunction)
        assert df.__name__ == "loss"
        assert df.__doc__ == "Sum of squares."

    def test_repeated_calls_recycle(self):
        def f(p):
            return ops.sum(ops.tanh(p["W"] @ p["x"]))

        df = grad(f)
        rng = np.random.default_rng(0)
        fingerprints = []
        for _ in range(5):
            p = {"W": rng.standard_normal((3, 4)), "x": rng.standard_normal(4)}
            grads, out = df(p)
            expected, expected_out = differentiate(f, p)
            assert out == pytest.approx(expected_out)
            assert np.allclose(grads["W"], expected["W"])
            assert np.allclose(grads["x"], expected["x"])
            tape = df.pool._idle[-1]
            fingerprints.append(tape.fingerprint())
            assert tape.reallocations == 0
        assert len(set(fingerprints)) == 1
        assert df.pool.idle == 1

    def test_earlier_gradients_not_overwritten(self):
        df = grad(lambda x: ops.sum(x * x))
        g1, _ = df(np.array([1.0, 2.0]))
        kept = g1.copy()
        df(np.array([5.0, 6.0]))
        assert np.array_equal(g1, kept)

    def test_shape_change_between_calls(self):
        def f(x):
            if value(x)[0] > 0:
                return ops.sum(ops.exp(x))
            return ops.sum(ops.tanh(x) * 2.0)

        df = grad(f)
        pos = np.array([1.0, 0.5])
        neg = np.array([-1.0, 0.5])
        g_pos, _ = df(pos)
        g_neg, _ = df(neg)
        g_pos_again, _ = df(pos)
        assert np.allclose(g_pos, np.exp(pos))
        assert np.allclose(g_neg, 2.0 * (1.0 - np.tanh(neg) ** 2))
        assert np.allclose(g_pos_again, g_pos)

    def test_argnum(self):
        def f(x, w):
            return ops.sum(w * x)

        df = grad(f, argnum=1)
        grads, out = df(np.array([2.0, 3.0]), np.array([1.0, 1.0]))
        assert out == pytest.approx(5.0)
        assert np.allclose(grads, [2.0, 3.0])

    def test_missing_argnum(self):
        df = grad(lambda x, w: ops.sum(w), argnum=1)
        with pytest.raises(TypeError):
            df(np.ones(2))

    def test_forward_failure_invalidates_pool(self):
        def f(x, fail=False):
            y = ops.exp(x)
            if fail:
                raise RuntimeError("boom")
            return ops.sum(y)

        df = grad(f)
        df(np.ones(2))
        assert df.pool.idle == 1
        with pytest.raises(RuntimeError, match="boom"):
            df(np.ones(2), fail=True)
        assert df.pool.idle == 0

        grads, out = df(np.zeros(2))
        assert out == pytest.approx(2.0)
        assert np.allclose(grads, 1.0)

    def test_recycle_disabled(self):
        df = grad(lambda x: ops.sum(x * 3.0), config=EngineConfig(recycle=False))
        grads, _ = df(np.ones(2))
        assert df.pool.idle == 0
        assert np.allclose(grads, 3.0)

    def test_reentrant_call(self):
        inner = grad(lambda x: ops.sum(x * x))

        def outer(x):
            g, _ = inner(value(x))
            return ops.sum(x * g)

        df = grad(outer)
        grads, out = df(np.array([1.0, 2.0]))
        assert out == pytest.approx(10.0)
        assert np.allclose(grads, [2.0, 4.0])

    @pytest.mark.parametrize("recycle", [True, False])
    def test_node_kept_from_earlier_call(self, recycle):
        kept = {}

        def f(x, reuse=False):
            if reuse:
                return ops.sum(kept["h"] * x)
            kept["h"] = ops.tanh(x)
            return ops.sum(kept["h"])

        df = grad(f, config=EngineConfig(recycle=recycle))
        df(np.ones(2))
        with pytest.raises(TapeMismatchError):
            df(np.ones(2), reuse=True)

    def test_rewritten_slot_holds_current_value(self):
        kept = []

        def f(x):
            h = ops.tanh(x)
            kept.append(h)
            return ops.sum(h)

        df = grad(f)
        df(np.zeros(2))
        df(np.ones(2))
        assert kept[0] is kept[1]
        assert np.allclose(value(kept[0]), np.tanh(1.0))
