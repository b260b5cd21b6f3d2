import unittest

import numpy as np

from src.tensorlite.domain._errors import InvalidOperationError
from src.tensorlite.domain._function import OperationState
from src.tensorlite.infrastructure.functions._unary import (
    Abs,
    Exp,
    Log,
    Neg,
    Pow,
    Sqrt,
    Square,
)
from src.tensorlite.infrastructure.tensor._tensor import Tensor


def _t(arr) -> Tensor:
    arr = np.asarray(arr, dtype=np.float64)
    return Tensor(arr, arr.shape)


class TestUnaryForward(unittest.TestCase):
    def test_examples(self) -> None:
        np.testing.assert_allclose(Sqrt(_t([4.0, 9.0])).forward().data, [2.0, 3.0])
        np.testing.assert_allclose(Abs(_t([-1.0, 2.0])).forward().data, [1.0, 2.0])
        np.testing.assert_allclose(Square(_t([3.0, -2.0])).forward().data, [9.0, 4.0])
        np.testing.assert_allclose(Pow(_t([2.0, 3.0]), exponent=2).forward().data, [4.0, 9.0])

    def test_matches_numpy(self) -> None:
        x_np = np.array([[0.5, 1.0, 2.0], [3.0, 4.0, 5.0]])
        x = _t(x_np)
        cases = [
            (Exp, np.exp(x_np)),
            (Neg, -x_np),
            (Sqrt, np.sqrt(x_np)),
            (Abs, np.abs(x_np)),
            (Square, x_np * x_np),
            (Log, np.log(x_np)),
        ]
        for op_cls, ref in cases:
            out = op_cls(x).forward()
            self.assertEqual(out.shape, x.shape)
            np.testing.assert_allclose(out.to_numpy(), ref, rtol=1e-12)

    def test_ieee_edge_values(self) -> None:
        with np.errstate(divide="ignore", invalid="ignore"):
            self.assertTrue(np.isnan(Sqrt(_t([-1.0])).forward().item()))
            self.assertEqual(Log(_t([0.0])).forward().item(), -np.inf)
            self.assertTrue(np.isnan(Log(_t([-1.0])).forward().item()))

    def test_unary_rejects_second_operand(self) -> None:
        with self.assertRaises(InvalidOperationError):
            Exp(_t([1.0]), _t([1.0]))

    def test_rank_zero_input(self) -> None:
        out = Square(Tensor.scalar(3.0)).forward()
        self.assertEqual(out.shape, ())
        self.assertEqual(out.item(), 9.0)


class TestPowExponent(unittest.TestCase):
    def test_set_power_before_forward(self) -> None:
        op = Pow(_t([2.0, 3.0]))
        self.assertIsNone(op.power)
        op.set_power(3)
        self.assertEqual(op.power, 3.0)
        np.testing.assert_allclose(op.forward().data, [8.0, 27.0])

    def test_set_power_overrides_constructor_exponent(self) -> None:
        op = Pow(_t([4.0]), exponent=2)
        op.set_power(0.5)
        self.assertAlmostEqual(op.forward().item(), 2.0)

    def test_forward_without_exponent_raises(self) -> None:
        op = Pow(_t([2.0]))
        with self.assertRaises(InvalidOperationError) as ctx:
            op.forward()
        self.assertEqual(ctx.exception.op, "pow")
        self.assertIn("exponent", ctx.exception.reason)
        self.assertIs(op.state, OperationState.CONFIGURED)

    def test_set_power_after_forward_raises(self) -> None:
        op = Pow(_t([2.0]), exponent=2)
        op.forward()
        with self.assertRaises(InvalidOperationError) as ctx:
            op.set_power(3)
        self.assertIn("consumed", str(ctx.exception))
        self.assertEqual(op.power, 2.0)

    def test_invalid_exponent_type(self) -> None:
        with self.assertRaises(InvalidOperationError):
            Pow(_t([2.0]), exponent="2")
        with self.assertRaises(InvalidOperationError):
            Pow(_t([2.0])).set_power(True)

    def test_integer_input_promotes_to_float(self) -> None:
        x = Tensor(np.array([2, 3], dtype=np.int64), (2,))
        out = Pow(x, exponent=2).forward()
        self.assertTrue(np.issubdtype(out.dtype, np.floating))
        np.testing.assert_allclose(out.data, [4.0, 9.0])


class TestUnaryBackward(unittest.TestCase):
    def _grad(self, op) -> np.ndarray:
        out = op.forward()
        (g,) = op.backward(Tensor(np.ones(out.shape), out.shape))
        return g.to_numpy()

    def test_local_derivatives(self) -> None:
        x_np = np.array([0.5, 1.5, -2.0, 3.0])
        pos_np = np.abs(x_np)
        np.testing.assert_allclose(self._grad(Exp(_t(x_np))), np.exp(x_np))
        np.testing.assert_allclose(self._grad(Neg(_t(x_np))), -np.ones(4))
        np.testing.assert_allclose(self._grad(Sqrt(_t(pos_np))), 0.5 / np.sqrt(pos_np))
        np.testing.assert_allclose(self._grad(Abs(_t(x_np))), np.sign(x_np))
        np.testing.assert_allclose(self._grad(Square(_t(x_np))), 2 * x_np)
        np.testing.assert_allclose(self._grad(Log(_t(pos_np))), 1.0 / pos_np)
        np.testing.assert_allclose(
            self._grad(Pow(_t(pos_np), exponent=3)), 3 * pos_np**2
        )

    def test_abs_gradient_is_zero_at_zero(self) -> None:
        np.testing.assert_allclose(self._grad(Abs(_t([0.0]))), [0.0])

    def test_backward_scales_by_upstream_gradient(self) -> None:
        op = Square(_t([1.0, 2.0]))
        op.forward()
        (g,) = op.backward(_t([3.0, -1.0]))
        np.testing.assert_allclose(g.data, [6.0, -4.0])


if __name__ == "__main__":
    unittest.main()
