import itertools
import unittest

import numpy as np

from src.tensorlite.domain._errors import InvalidAxisError, InvalidOperationError
from src.tensorlite.domain._shape import (
    broadcast_indices,
    broadcast_shape,
    broadcast_source_indices,
    can_broadcast,
    flat_index,
    normalize_axis,
    normalize_shape,
    reduced_axes,
    row_major_strides,
    shape_size,
    unravel_index,
)


SHAPES = [
    (), (0,), (1,), (3,), (0, 1), (0, 3), (1, 1), (2, 1), (1, 3), (2, 3),
    (2, 1, 4), (1, 3, 1), (2, 3, 4),
]


class TestShapeBasics(unittest.TestCase):
    def test_shape_size(self) -> None:
        self.assertEqual(shape_size(()), 1)
        self.assertEqual(shape_size((2, 3, 4)), 24)
        self.assertEqual(shape_size((2, 0, 4)), 0)

    def test_normalize_shape_accepts_int_and_numpy_ints(self) -> None:
        self.assertEqual(normalize_shape(3), (3,))
        self.assertEqual(normalize_shape([np.int64(2), 3]), (2, 3))
        self.assertIsInstance(normalize_shape([np.int64(2)])[0], int)

    def test_normalize_shape_rejects_negative_and_non_integer(self) -> None:
        with self.assertRaises(InvalidOperationError) as ctx:
            normalize_shape((2, -1))
        self.assertEqual(ctx.exception.op, "shape")
        with self.assertRaises(InvalidOperationError):
            normalize_shape((2.0, 3))
        with self.assertRaises(InvalidOperationError):
            normalize_shape((True, 3))

    def test_row_major_strides(self) -> None:
        self.assertEqual(row_major_strides((2, 3, 4)), (12, 4, 1))
        self.assertEqual(row_major_strides(()), ())

    def test_flat_index_matches_numpy(self) -> None:
        shape = (2, 3, 4)
        for idx in itertools.product(range(2), range(3), range(4)):
            self.assertEqual(flat_index(shape, idx), np.ravel_multi_index(idx, shape))

    def test_flat_index_rejects_arity_mismatch(self) -> None:
        self.assertIsNone(flat_index((2, 3), (1,)))
        self.assertIsNone(flat_index((2, 3), (1, 1, 0)))
        self.assertEqual(flat_index((), ()), 0)

    def test_flat_index_rejects_out_of_range_components(self) -> None:
        # (0, 3) would alias (1, 0) without a per-axis bounds check
        self.assertIsNone(flat_index((2, 3), (0, 3)))
        self.assertIsNone(flat_index((2, 3), (2, 0)))
        self.assertIsNone(flat_index((2, 3), (-1, 0)))

    def test_unravel_index_inverts_flat_index(self) -> None:
        shape = (3, 1, 5)
        for offset in range(shape_size(shape)):
            self.assertEqual(flat_index(shape, unravel_index(shape, offset)), offset)

    def test_normalize_axis(self) -> None:
        self.assertEqual(normalize_axis(-1, 3, (2, 3, 4)), 2)
        self.assertEqual(normalize_axis(0, 3, (2, 3, 4)), 0)
        with self.assertRaises(InvalidAxisError) as ctx:
            normalize_axis(3, 3, (2, 3, 4))
        self.assertEqual(ctx.exception.axis, 3)
        self.assertEqual(ctx.exception.shape, (2, 3, 4))
        with self.assertRaises(InvalidAxisError):
            normalize_axis(-4, 3, (2, 3, 4))
        with self.assertRaises(InvalidAxisError):
            normalize_axis(0, 0, ())


class TestBroadcastRules(unittest.TestCase):
    def test_can_broadcast_is_symmetric(self) -> None:
        for a, b in itertools.product(SHAPES, repeat=2):
            self.assertEqual(can_broadcast(a, b), can_broadcast(b, a), (a, b))

    def test_broadcast_shape_is_symmetric(self) -> None:
        for a, b in itertools.product(SHAPES, repeat=2):
            if can_broadcast(a, b):
                self.assertEqual(broadcast_shape(a, b), broadcast_shape(b, a))

    def test_can_broadcast_requires_equal_rank(self) -> None:
        self.assertFalse(can_broadcast((3,), (1, 3)))
        self.assertFalse(can_broadcast((2, 3), (3, 2)))
        self.assertTrue(can_broadcast((2, 1), (1, 3)))

    def test_broadcast_shape_matches_numpy_for_equal_rank(self) -> None:
        for a, b in itertools.product(SHAPES, repeat=2):
            if can_broadcast(a, b):
                self.assertEqual(broadcast_shape(a, b), np.broadcast_shapes(a, b))

    def test_broadcast_shape_rank_mismatch_raises(self) -> None:
        with self.assertRaises(InvalidOperationError) as ctx:
            broadcast_shape((2, 3), (3,))
        self.assertEqual(ctx.exception.op, "broadcast")

    def test_broadcast_source_indices_example(self) -> None:
        # [2,2] + [1,2]: row index collapses to 0 on the right operand
        out = (2, 2)
        pairs = [broadcast_source_indices((2, 2), (1, 2), i, out) for i in range(4)]
        self.assertEqual(pairs, [(0, 0), (1, 1), (2, 0), (3, 1)])

    def test_broadcast_source_indices_out_of_range_raises(self) -> None:
        with self.assertRaises(InvalidOperationError):
            broadcast_source_indices((2, 2), (1, 2), 4, (2, 2))

    def test_broadcast_indices_agrees_with_numpy(self) -> None:
        rng = np.random.default_rng(0)
        for a, b in itertools.product(SHAPES, repeat=2):
            if not can_broadcast(a, b):
                continue
            x = rng.standard_normal(a)
            y = rng.standard_normal(b)
            out_shape, ai, bi = broadcast_indices(a, b)
            got = x.reshape(-1)[ai] + y.reshape(-1)[bi]
            np.testing.assert_allclose(got.reshape(out_shape), x + y)

    def test_broadcast_indices_agrees_with_scalar_form(self) -> None:
        a, b = (2, 1, 4), (1, 3, 1)
        out_shape, ai, bi = broadcast_indices(a, b)
        for i in range(shape_size(out_shape)):
            self.assertEqual(
                broadcast_source_indices(a, b, i, out_shape), (ai[i], bi[i])
            )

    def test_zero_size_axis_wins_over_size_one(self) -> None:
        self.assertEqual(broadcast_shape((0,), (1,)), (0,))
        self.assertEqual(broadcast_shape((1,), (0,)), (0,))
        self.assertEqual(broadcast_shape((0, 1), (1, 3)), (0, 3))
        self.assertFalse(can_broadcast((0,), (2,)))

    def test_broadcast_indices_empty_output(self) -> None:
        out_shape, ai, bi = broadcast_indices((0, 3), (1, 3))
        self.assertEqual(out_shape, (0, 3))
        self.assertEqual(ai.size, 0)
        self.assertEqual(bi.size, 0)

    def test_broadcast_indices_incompatible_raises(self) -> None:
        with self.assertRaises(InvalidOperationError):
            broadcast_indices((2, 3), (3, 2))

    def test_reduced_axes(self) -> None:
        self.assertEqual(reduced_axes((2, 3), (1, 3)), (0,))
        self.assertEqual(reduced_axes((2, 3), (2, 3)), ())
        self.assertEqual(reduced_axes((2, 3, 4), (1, 3, 1)), (0, 2))
        with self.assertRaises(InvalidOperationError):
            reduced_axes((2, 3), (2, 2))
        with self.assertRaises(InvalidOperationError):
            reduced_axes((2, 3), (3,))


if __name__ == "__main__":
    unittest.main()
