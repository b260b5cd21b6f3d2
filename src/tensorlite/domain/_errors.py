"""
Tensor-level exceptions for tensorlite.

This module defines the closed set of failure kinds raised by tensor
construction, shape arithmetic, and operations. Every error derives from
`TensorError` and carries the structured context needed to describe the
failure (expected vs. received shapes or lengths, operator name, offending
axis) as plain attributes, so callers never have to re-derive it from the
call site.

Only `InvalidOperationError.reason` is free-form text; every other payload is
structured.
"""

from __future__ import annotations

from typing import Optional, Sequence


def _fmt_shape(shape: Optional[Sequence[int]]) -> str:
    if shape is None:
        return "None"
    return "(" + ", ".join(str(int(d)) for d in shape) + ("," if len(shape) == 1 else "") + ")"


class TensorError(Exception):
    """
    Base class of all tensorlite errors.

    Catching `TensorError` catches every failure kind raised by the engine.
    """


class InvalidShapeError(TensorError):
    """
    Raised when a strict shape-match check fails, or when two operands cannot
    be combined because their shapes are neither equal nor broadcastable.

    Attributes
    ----------
    expected : tuple[int, ...]
        The shape the operation required (usually the left operand's shape).
    got : tuple[int, ...]
        The shape that was actually supplied.
    """

    def __init__(self, expected: Sequence[int], got: Sequence[int]) -> None:
        """
        Initialize the InvalidShapeError.

        Parameters
        ----------
        expected : Sequence[int]
            Required shape.
        got : Sequence[int]
            Received shape.
        """
        self.expected = tuple(int(d) for d in expected)
        self.got = tuple(int(d) for d in got)
        super().__init__(
            f"Invalid shape: expected {_fmt_shape(self.expected)}, "
            f"got {_fmt_shape(self.got)}."
        )


class InvalidDataLengthError(TensorError):
    """
    Raised when a flat data buffer does not hold exactly `prod(shape)` elements.

    Attributes
    ----------
    expected : int
        Number of elements implied by the declared shape.
    got : int
        Number of elements actually supplied.
    """

    def __init__(self, expected: int, got: int) -> None:
        self.expected = int(expected)
        self.got = int(got)
        super().__init__(
            f"Invalid data length: expected {self.expected} elements, got {self.got}."
        )


class InvalidOperationError(TensorError):
    """
    Raised when an operator receives operands or parameters it cannot process
    for a reason not covered by a more specific error kind.

    Attributes
    ----------
    op : str
        Operator name (e.g. "pow", "matmul", "backward").
    reason : str
        Human-readable explanation.
    """

    def __init__(self, op: str, reason: str) -> None:
        self.op = op
        self.reason = reason
        super().__init__(f"Invalid operation '{op}': {reason}")


class InvalidAxisError(TensorError):
    """
    Raised when a reduction axis, or a top-k `k` value, is out of range for
    the shape it is applied to.

    Attributes
    ----------
    axis : Optional[int]
        The offending axis (or the axis `k` was applied along).
    shape : tuple[int, ...]
        Shape of the tensor the axis refers to.
    """

    def __init__(self, axis: Optional[int], shape: Sequence[int]) -> None:
        self.axis = axis
        self.shape = tuple(int(d) for d in shape)
        super().__init__(
            f"Invalid axis {axis} for tensor of shape {_fmt_shape(self.shape)}."
        )


class MatrixMultiplicationError(TensorError):
    """
    Raised when the inner dimensions of a matrix product disagree.

    Attributes
    ----------
    left_shape : tuple[int, ...]
        Shape of the left operand.
    right_shape : tuple[int, ...]
        Shape of the right operand.
    """

    def __init__(self, left_shape: Sequence[int], right_shape: Sequence[int]) -> None:
        self.left_shape = tuple(int(d) for d in left_shape)
        self.right_shape = tuple(int(d) for d in right_shape)
        super().__init__(
            "Matrix multiplication shape mismatch: "
            f"{_fmt_shape(self.left_shape)} @ {_fmt_shape(self.right_shape)}."
        )


class EmptyTensorError(TensorError):
    """Raised when a tensor is built from zero rows."""

    def __init__(self) -> None:
        super().__init__("Cannot construct a tensor from zero rows.")
