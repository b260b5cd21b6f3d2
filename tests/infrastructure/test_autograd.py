import unittest

import numpy as np

from src.tensorlite.domain._errors import InvalidOperationError, InvalidShapeError
from src.tensorlite.infrastructure._autograd import backward
from src.tensorlite.infrastructure._config import no_grad, reset_config
from src.tensorlite.infrastructure.tensor._tensor import Tensor


def _t(arr, requires_grad: bool = False) -> Tensor:
    arr = np.asarray(arr, dtype=np.float64)
    return Tensor(arr, arr.shape, requires_grad=requires_grad)


def _finite_diff_grad(fn, x_np: np.ndarray, eps: float = 1e-6) -> np.ndarray:
    """Central-difference gradient of `sum(fn(x))` with respect to `x`."""
    grad = np.zeros_like(x_np)
    for idx in np.ndindex(x_np.shape):
        x_pos = x_np.copy()
        x_neg = x_np.copy()
        x_pos[idx] += eps
        x_neg[idx] -= eps
        f_pos = fn(_t(x_pos)).to_numpy().sum()
        f_neg = fn(_t(x_neg)).to_numpy().sum()
        grad[idx] = (f_pos - f_neg) / (2.0 * eps)
    return grad


def _autograd_grad(fn, x_np: np.ndarray) -> np.ndarray:
    x = _t(x_np, requires_grad=True)
    out = fn(x)
    out.backward(Tensor(np.ones(out.shape), out.shape))
    return x.grad.to_numpy()


class TestBackwardChains(unittest.TestCase):
    def setUp(self) -> None:
        rng = np.random.default_rng(0)
        self.x_np = rng.uniform(0.5, 2.0, size=(2, 3))
        self.w_np = rng.standard_normal((3, 2))
        self.b_np = rng.standard_normal((1, 2))

    def _check(self, fn) -> None:
        got = _autograd_grad(fn, self.x_np)
        ref = _finite_diff_grad(fn, self.x_np)
        np.testing.assert_allclose(got, ref, rtol=1e-5, atol=1e-6)

    def test_elementwise_chain(self) -> None:
        self._check(lambda x: (x * x + x / 2.0 - 1.0).exp())

    def test_unary_chain(self) -> None:
        self._check(lambda x: x.sqrt().log().square() + x.abs() ** 1.5)

    def test_affine_chain(self) -> None:
        w = _t(self.w_np)
        b = _t(self.b_np)
        self._check(lambda x: (x @ w + b).square())

    def test_selection_chain(self) -> None:
        self._check(lambda x: x.topk(2)[0] * 3.0)
        self._check(lambda x: x.max(axis=1, keepdim=True)[0] - x)

    def test_reused_input_accumulates_paths(self) -> None:
        # f = x * x + x, df/dx = 2x + 1
        x = _t([1.0, 2.0, 3.0], requires_grad=True)
        y = x * x + x
        y.backward(Tensor.ones((3,), dtype=np.float64))
        np.testing.assert_allclose(x.grad.data, [3.0, 5.0, 7.0])

    def test_deep_chain_beyond_recursion_limit(self) -> None:
        x = _t([1.0], requires_grad=True)
        y = x
        for _ in range(5000):
            y = y + 1
        y.backward()
        np.testing.assert_allclose(y.data, [5001.0])
        np.testing.assert_allclose(x.grad.data, [1.0])

    def test_diamond_graph(self) -> None:
        x = _t([2.0], requires_grad=True)
        a = x.square()
        b = x.exp()
        (a * b).backward()
        ref = 2 * 2.0 * np.exp(2.0) + 4.0 * np.exp(2.0)
        np.testing.assert_allclose(x.grad.data, [ref])

    def test_broadcast_operand_gradient(self) -> None:
        x = _t(np.ones((2, 3)), requires_grad=True)
        b = _t([[1.0, 2.0, 3.0]], requires_grad=True)
        (x * b).backward(Tensor.ones((2, 3), dtype=np.float64))
        self.assertEqual(b.grad.shape, (1, 3))
        np.testing.assert_allclose(b.grad.data, [2.0, 2.0, 2.0])
        np.testing.assert_allclose(x.grad.to_numpy(), np.tile([1.0, 2.0, 3.0], (2, 1)))


class TestBackwardSemantics(unittest.TestCase):
    def tearDown(self) -> None:
        reset_config()

    def test_gradients_accumulate_across_calls(self) -> None:
        x = _t([1.0, 2.0], requires_grad=True)
        g = Tensor.ones((2,), dtype=np.float64)
        (x * 2.0).backward(g)
        (x * 2.0).backward(g)
        np.testing.assert_allclose(x.grad.data, [4.0, 4.0])
        x.zero_grad()
        (x * 2.0).backward(g)
        np.testing.assert_allclose(x.grad.data, [2.0, 2.0])

    def test_only_leaves_receive_grad(self) -> None:
        x = _t([1.0], requires_grad=True)
        h = x * 3.0
        (h * 2.0).backward()
        self.assertIsNone(h.grad)
        np.testing.assert_allclose(x.grad.data, [6.0])

    def test_non_tracking_inputs_get_no_grad(self) -> None:
        x = _t([1.0], requires_grad=True)
        c = _t([5.0])
        (x * c).backward()
        self.assertIsNone(c.grad)

    def test_implicit_seed_requires_single_element(self) -> None:
        x = _t([1.0, 2.0], requires_grad=True)
        with self.assertRaises(InvalidOperationError):
            (x * 2.0).backward()

    def test_seed_shape_must_match(self) -> None:
        x = _t([1.0, 2.0], requires_grad=True)
        with self.assertRaises(InvalidShapeError):
            backward(x * 2.0, Tensor.ones((3,)))

    def test_backward_without_graph_raises(self) -> None:
        with self.assertRaises(InvalidOperationError) as ctx:
            _t([1.0]).backward()
        self.assertEqual(ctx.exception.op, "backward")

    def test_leaf_backward_seeds_itself(self) -> None:
        x = _t([1.0], requires_grad=True)
        x.backward(_t([4.0]))
        np.testing.assert_allclose(x.grad.data, [4.0])

    def test_no_grad_context_skips_recording(self) -> None:
        x = _t([1.0], requires_grad=True)
        with no_grad():
            y = x * 2.0
        self.assertIsNone(y.grad_fn)
        self.assertFalse(y.requires_grad)
        self.assertIsNotNone((x * 2.0).grad_fn)

    def test_no_grad_decorator(self) -> None:
        @no_grad()
        def step(t: Tensor) -> Tensor:
            return t.exp()

        x = _t([0.0], requires_grad=True)
        self.assertIsNone(step(x).grad_fn)
        self.assertIsNotNone(x.exp().grad_fn)

    def test_backward_pass_does_not_build_graph(self) -> None:
        x = _t([1.0, 2.0], requires_grad=True)
        (x.square()).backward(Tensor.ones((2,), dtype=np.float64))
        self.assertIsNone(x.grad.grad_fn)
        self.assertFalse(x.grad.requires_grad)


if __name__ == "__main__":
    unittest.main()
