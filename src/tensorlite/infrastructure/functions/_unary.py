"""
Elementwise unary operators: Exp, Neg, Sqrt, Abs, Square, Log, Pow.

All of them preserve the input shape. `Pow` additionally carries a scalar
exponent, supplied at construction or through `set_power()` before
`forward()` runs.
"""

from __future__ import annotations

from numbers import Real
from typing import Optional, Tuple

from ...domain._backend import BinaryKind, UnaryKind
from ...domain._errors import InvalidOperationError
from ...domain.utils._control_path import create_path_builder
from ...domain._function import OperationState
from ..tensor._tensor import Tensor
from ._base import Operation


class _ElementwiseUnary(Operation):
    arity = 1
    kind: UnaryKind

    def _configure(self) -> None:
        pass

    def _compute(self) -> Tensor:
        (x,) = self._inputs
        return self._unary(self.kind, x)


class Exp(_ElementwiseUnary):
    """`exp(x)`; d/dx = g * exp(x), reusing the saved output."""

    op_name = "exp"
    kind = UnaryKind.EXP

    def _compute(self) -> Tensor:
        out = super()._compute()
        self._ctx.save_for_backward(out)
        return out

    def _gradients(self, grad_out: Tensor) -> Tuple[Tensor]:
        (out,) = self._ctx.saved_tensors
        return (self._binary(BinaryKind.MUL, grad_out, out),)


class Neg(_ElementwiseUnary):
    """`-x`; d/dx = -g."""

    op_name = "neg"
    kind = UnaryKind.NEG

    def _gradients(self, grad_out: Tensor) -> Tuple[Tensor]:
        return (self._unary(UnaryKind.NEG, grad_out),)


class Sqrt(_ElementwiseUnary):
    """`sqrt(x)`; d/dx = g * 0.5 / sqrt(x)."""

    op_name = "sqrt"
    kind = UnaryKind.SQRT

    def _compute(self) -> Tensor:
        out = super()._compute()
        self._ctx.save_for_backward(out)
        return out

    def _gradients(self, grad_out: Tensor) -> Tuple[Tensor]:
        (out,) = self._ctx.saved_tensors
        half = self._binary(BinaryKind.MUL, grad_out, self._const(0.5, grad_out))
        return (self._binary(BinaryKind.DIV, half, out),)


class Abs(_ElementwiseUnary):
    """`|x|`; d/dx = g * sign(x) (0 at x == 0)."""

    op_name = "abs"
    kind = UnaryKind.ABS

    def _gradients(self, grad_out: Tensor) -> Tuple[Tensor]:
        (x,) = self._inputs
        return (
            self._binary(BinaryKind.MUL, grad_out, self._unary(UnaryKind.SIGN, x)),
        )


class Square(_ElementwiseUnary):
    """`x * x`; d/dx = 2 * g * x."""

    op_name = "square"
    kind = UnaryKind.SQUARE

    def _gradients(self, grad_out: Tensor) -> Tuple[Tensor]:
        (x,) = self._inputs
        twice = self._binary(BinaryKind.MUL, grad_out, self._const(2, grad_out))
        return (self._binary(BinaryKind.MUL, twice, x),)


class Log(_ElementwiseUnary):
    """Natural logarithm; d/dx = g / x."""

    op_name = "log"
    kind = UnaryKind.LOG

    def _gradients(self, grad_out: Tensor) -> Tuple[Tensor]:
        (x,) = self._inputs
        return (self._binary(BinaryKind.DIV, grad_out, x),)


class Pow(_ElementwiseUnary):
    """
    `x ** p` for a scalar exponent `p`; d/dx = g * p * x ** (p - 1).

    Parameters
    ----------
    exponent : float, optional
        The power. May instead be provided later with `set_power()`, as long
        as the operation has not been consumed.

    Raises
    ------
    InvalidOperationError
        From `forward()` when no exponent has been set, or from
        `set_power()` once the operation has been consumed.
    """

    op_name = "pow"
    kind = UnaryKind.POW

    def _configure(self, *, exponent: Optional[Real] = None) -> None:
        self._power: Optional[float] = None
        if exponent is not None:
            self._power = _validate_exponent(exponent)

    @property
    def power(self) -> Optional[float]:
        return self._power

    def set_power(self, exponent: Real) -> None:
        """Set the exponent used by `forward()`."""
        ...

    def _compute(self) -> Tensor:
        if self._power is None:
            raise InvalidOperationError(self.op_name, "exponent has not been set")
        (x,) = self._inputs
        self._ctx.saved_meta["power"] = self._power
        return self._unary(UnaryKind.POW, x, self._power)

    def _gradients(self, grad_out: Tensor) -> Tuple[Tensor]:
        (x,) = self._inputs
        p = self._ctx.saved_meta["power"]
        local = self._unary(UnaryKind.POW, x, p - 1)
        scaled = self._binary(BinaryKind.MUL, grad_out, self._const(p, local))
        return (self._binary(BinaryKind.MUL, scaled, local),)


def _validate_exponent(exponent: Real) -> float:
    if isinstance(exponent, bool) or not isinstance(exponent, Real):
        raise InvalidOperationError(
            "pow", f"exponent must be a real scalar, got {type(exponent).__name__}"
        )
    return float(exponent)


_pow_path = create_path_builder()


def _power_after_forward(op: Pow, state: OperationState) -> Exception:
    return InvalidOperationError(op.op_name, "operation already consumed")


@_pow_path(
    Pow,
    Pow.set_power,
    OperationState.CONFIGURED,
    trap_exception=_power_after_forward,
)
def _set_power_configured(self: Pow, exponent: Real) -> None:
    self._power = _validate_exponent(exponent)
