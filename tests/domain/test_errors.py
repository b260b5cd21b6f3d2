import unittest

from src.tensorlite.domain._errors import (
    EmptyTensorError,
    InvalidAxisError,
    InvalidDataLengthError,
    InvalidOperationError,
    InvalidShapeError,
    MatrixMultiplicationError,
    TensorError,
)


class TestTensorErrors(unittest.TestCase):
    def test_all_kinds_share_base(self) -> None:
        errors = [
            InvalidShapeError((1, 2), (1, 3)),
            InvalidDataLengthError(4, 3),
            InvalidOperationError("pow", "exponent has not been set"),
            InvalidAxisError(2, (2, 3)),
            MatrixMultiplicationError((1, 2), (3, 1)),
            EmptyTensorError(),
        ]
        for err in errors:
            self.assertIsInstance(err, TensorError)
            self.assertIsInstance(err, Exception)
            self.assertTrue(str(err))

    def test_invalid_shape_payload(self) -> None:
        err = InvalidShapeError(expected=[1, 2], got=(1, 3))
        self.assertEqual(err.expected, (1, 2))
        self.assertEqual(err.got, (1, 3))
        self.assertIn("(1, 2)", str(err))
        self.assertIn("(1, 3)", str(err))

    def test_rank_one_shapes_format_as_tuples(self) -> None:
        self.assertIn("(3,)", str(InvalidShapeError((3,), (4,))))

    def test_invalid_data_length_payload(self) -> None:
        err = InvalidDataLengthError(expected=6, got=5)
        self.assertEqual((err.expected, err.got), (6, 5))
        self.assertIn("expected 6", str(err))

    def test_invalid_operation_payload(self) -> None:
        err = InvalidOperationError("matmul", "expects 2-D operands")
        self.assertEqual(err.op, "matmul")
        self.assertEqual(err.reason, "expects 2-D operands")
        self.assertEqual(str(err), "Invalid operation 'matmul': expects 2-D operands")

    def test_invalid_axis_payload(self) -> None:
        err = InvalidAxisError(axis=-3, shape=[2, 3])
        self.assertEqual(err.axis, -3)
        self.assertEqual(err.shape, (2, 3))

    def test_matmul_error_payload(self) -> None:
        err = MatrixMultiplicationError([1, 2], [3, 1])
        self.assertEqual(err.left_shape, (1, 2))
        self.assertEqual(err.right_shape, (3, 1))
        self.assertIn("(1, 2) @ (3, 1)", str(err))


if __name__ == "__main__":
    unittest.main()
