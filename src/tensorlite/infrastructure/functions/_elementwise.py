"""
Elementwise binary operators: Add, Sub, Mul, Div.

Operands must have identical shapes, or equal ranks with every axis pair
either equal or containing a 1 (broadcasting). With `strict=True` only
identical shapes are accepted.

Backward
--------
Every gradient is first computed at the broadcast output shape and then
summed over the axes along which the corresponding operand was stretched,
so each returned gradient has its operand's shape.
"""

from __future__ import annotations

from typing import Tuple

from ...domain._backend import BinaryKind, UnaryKind
from ...domain._errors import InvalidShapeError
from ...domain._shape import can_broadcast
from ..tensor._tensor import Tensor
from ._base import Operation


class _ElementwiseBinary(Operation):
    arity = 2
    kind: BinaryKind

    def _configure(self, *, strict: bool = False) -> None:
        a, b = self._inputs
        if strict:
            a.check_shape_matches(b)
        elif not can_broadcast(a.shape, b.shape):
            raise InvalidShapeError(expected=a.shape, got=b.shape)
        self._strict = bool(strict)

    def _compute(self) -> Tensor:
        a, b = self._inputs
        return self._binary(self.kind, a, b)

    def _reduce_pair(self, ga: Tensor, gb: Tensor) -> Tuple[Tensor, Tensor]:
        a, b = self._inputs
        return self._sum_to_shape(ga, a.shape), self._sum_to_shape(gb, b.shape)


class Add(_ElementwiseBinary):
    """`a + b`; d/da = g, d/db = g."""

    op_name = "add"
    kind = BinaryKind.ADD

    def _gradients(self, grad_out: Tensor) -> Tuple[Tensor, Tensor]:
        return self._reduce_pair(grad_out, grad_out)


class Sub(_ElementwiseBinary):
    """`a - b`; d/da = g, d/db = -g."""

    op_name = "sub"
    kind = BinaryKind.SUB

    def _gradients(self, grad_out: Tensor) -> Tuple[Tensor, Tensor]:
        return self._reduce_pair(grad_out, self._unary(UnaryKind.NEG, grad_out))


class Mul(_ElementwiseBinary):
    """`a * b`; d/da = g * b, d/db = g * a."""

    op_name = "mul"
    kind = BinaryKind.MUL

    def _gradients(self, grad_out: Tensor) -> Tuple[Tensor, Tensor]:
        a, b = self._inputs
        return self._reduce_pair(
            self._binary(BinaryKind.MUL, grad_out, b),
            self._binary(BinaryKind.MUL, grad_out, a),
        )


class Div(_ElementwiseBinary):
    """
    `a / b`; d/da = g / b, d/db = -g * a / b^2.

    Division by zero follows IEEE-754 (`inf`/`nan`) in both passes.
    """

    op_name = "div"
    kind = BinaryKind.DIV

    def _gradients(self, grad_out: Tensor) -> Tuple[Tensor, Tensor]:
        a, b = self._inputs
        ga = self._binary(BinaryKind.DIV, grad_out, b)
        gb = self._binary(
            BinaryKind.DIV,
            self._binary(BinaryKind.MUL, grad_out, a),
            self._binary(BinaryKind.MUL, b, b),
        )
        return self._reduce_pair(ga, self._unary(UnaryKind.NEG, gb))
