"""
Matrix multiplication.

Both operands must be 2-D, with `A.shape[1] == B.shape[0]`; the result has
shape `(A.shape[0], B.shape[1])`.

Backward:
    dA = g @ B^T
    dB = A^T @ g
"""

from __future__ import annotations

from typing import Tuple

from ...domain._errors import InvalidOperationError, MatrixMultiplicationError
from ..tensor._tensor import Tensor
from ._base import Operation
from ._broadcast import wrap_buffer


def _transpose2d(t: Tensor) -> Tensor:
    arr = t.to_numpy().T
    return Tensor(arr.reshape(-1), arr.shape, dtype=arr.dtype)


class Matmul(Operation):
    """
    2-D matrix product.

    Raises
    ------
    InvalidOperationError
        If either operand is not 2-D.
    MatrixMultiplicationError
        If the inner dimensions disagree.
    """

    op_name = "matmul"
    arity = 2

    def _configure(self) -> None:
        a, b = self._inputs
        if a.ndim != 2 or b.ndim != 2:
            raise InvalidOperationError(
                self.op_name,
                f"expects 2-D operands, got shapes {a.shape} and {b.shape}",
            )
        if a.shape[-1] != b.shape[-2]:
            raise MatrixMultiplicationError(a.shape, b.shape)

    def _product(self, a: Tensor, b: Tensor) -> Tensor:
        data, shape = self._backend.matmul(a.data, a.shape, b.data, b.shape)
        return wrap_buffer(data, shape)

    def _compute(self) -> Tensor:
        a, b = self._inputs
        return self._product(a, b)

    def _gradients(self, grad_out: Tensor) -> Tuple[Tensor, Tensor]:
        a, b = self._inputs
        return (
            self._product(grad_out, _transpose2d(b)),
            self._product(_transpose2d(a), grad_out),
        )
