"""
Concrete Tensor implementation.

This module provides the runtime `Tensor`, which satisfies the domain-level
`ITensor` protocol. A tensor owns a flat, row-major, read-only NumPy buffer
and an immutable shape. Arithmetic never mutates a tensor: every operator
builds an operation instance, runs its forward pass, and returns the new
tensor it produced.

Autograd
--------
Outputs of operations that consumed at least one tensor with
`requires_grad=True` (while gradient tracking is enabled) record the
producing operation in `grad_fn`. `backward()` walks these links in reverse
topological order and accumulates gradients into the `.grad` slot of leaf
tensors.

Design notes
------------
- Operation classes import this module, so operator methods import the
  dispatch layer lazily.
- Python scalars are lifted to size-1 tensors of the same rank and combined
  through the broadcasting path, in both operand orders.
- `==` and `<` implement an exact, total order over `(data, shape)` for
  deterministic sorting. They are not elementwise comparisons.
"""

from __future__ import annotations

from functools import total_ordering
from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np

from ...domain._errors import (
    EmptyTensorError,
    InvalidDataLengthError,
    InvalidOperationError,
    InvalidShapeError,
)
from ...domain._shape import flat_index, normalize_shape, shape_size
from ...domain._tensor import ITensor
from .._config import get_config

Number = Union[int, float]


def _resolve_dtype(data: Any, dtype: Any) -> np.dtype:
    if dtype is not None:
        return np.dtype(dtype)
    if isinstance(data, np.ndarray):
        return data.dtype
    return get_config().np_dtype


@total_ordering
class Tensor(ITensor):
    """
    Flat-buffer-backed N-dimensional array with optional gradient tracking.

    Parameters
    ----------
    data : array-like
        Elements in row-major order. Multi-dimensional arrays are flattened.
    shape : Sequence[int]
        Tensor shape. `len(data)` must equal `prod(shape)`.
    requires_grad : bool, optional
        Whether operations consuming this tensor record autograd history.
    dtype : dtype-like, optional
        Element dtype. Defaults to the dtype of an ndarray `data`, otherwise
        to the configured default (float32).

    Raises
    ------
    InvalidDataLengthError
        If the number of elements does not match the shape.
    InvalidOperationError
        If the shape contains negative or non-integer dimensions.
    """

    __hash__ = None  # mutable grad slots; equality is by value

    def __init__(
        self,
        data: Any,
        shape: Sequence[int],
        *,
        requires_grad: bool = False,
        dtype: Any = None,
    ) -> None:
        self._shape = normalize_shape(shape)
        buf = np.array(data, dtype=_resolve_dtype(data, dtype)).reshape(-1)
        expected = shape_size(self._shape)
        if buf.size != expected:
            raise InvalidDataLengthError(expected=expected, got=buf.size)
        buf.flags.writeable = False
        self._data = buf

        self._requires_grad: bool = bool(requires_grad)
        self._grad: Optional["Tensor"] = None
        self._grad_fn: Optional[Any] = None

    # ----------------------------
    # Construction
    # ----------------------------
    @classmethod
    def from_rows(
        cls, rows: Sequence[Sequence[Number]], *, requires_grad: bool = False, dtype=None
    ) -> "Tensor":
        """
        Build a rank-2 tensor from equal-length rows.

        Parameters
        ----------
        rows : Sequence[Sequence[Number]]
            Row sequences, flattened in order.

        Returns
        -------
        Tensor
            Tensor of shape `(len(rows), len(rows[0]))`.

        Raises
        ------
        EmptyTensorError
            If `rows` is empty.
        InvalidDataLengthError
            If the rows are ragged. `expected` is the element count implied
            by the first row's length.
        """
        if len(rows) == 0:
            raise EmptyTensorError()
        row_len = len(rows[0])
        lengths = [len(r) for r in rows]
        if any(n != row_len for n in lengths):
            raise InvalidDataLengthError(
                expected=row_len * len(rows), got=sum(lengths)
            )
        flat = [v for r in rows for v in r]
        return cls(
            flat, (len(rows), row_len), requires_grad=requires_grad, dtype=dtype
        )

    @classmethod
    def from_flat(
        cls,
        data: Sequence[Number],
        shape: Sequence[int],
        *,
        requires_grad: bool = False,
        dtype=None,
    ) -> "Tensor":
        """
        Build a tensor of arbitrary rank from pre-flattened data.

        Raises
        ------
        InvalidDataLengthError
            If `len(data) != prod(shape)`.
        """
        return cls(data, shape, requires_grad=requires_grad, dtype=dtype)

    @classmethod
    def full(
        cls,
        shape: Sequence[int],
        value: Number,
        *,
        requires_grad: bool = False,
        dtype=None,
    ) -> "Tensor":
        """Tensor of the given shape filled with `value`."""
        shape = normalize_shape(shape)
        dt = get_config().np_dtype if dtype is None else np.dtype(dtype)
        return cls(
            np.full(shape_size(shape), value, dtype=dt),
            shape,
            requires_grad=requires_grad,
        )

    @classmethod
    def zeros(cls, shape: Sequence[int], *, requires_grad: bool = False, dtype=None) -> "Tensor":
        return cls.full(shape, 0, requires_grad=requires_grad, dtype=dtype)

    @classmethod
    def ones(cls, shape: Sequence[int], *, requires_grad: bool = False, dtype=None) -> "Tensor":
        return cls.full(shape, 1, requires_grad=requires_grad, dtype=dtype)

    @classmethod
    def scalar(cls, value: Number, *, requires_grad: bool = False, dtype=None) -> "Tensor":
        """Rank-0 tensor holding `value`."""
        return cls.full((), value, requires_grad=requires_grad, dtype=dtype)

    # ----------------------------
    # Introspection
    # ----------------------------
    @property
    def shape(self) -> tuple[int, ...]:
        return self._shape

    @property
    def data(self) -> np.ndarray:
        """Read-only flat buffer (row-major)."""
        return self._data

    @property
    def dtype(self) -> np.dtype:
        return self._data.dtype

    @property
    def ndim(self) -> int:
        return len(self._shape)

    @property
    def size(self) -> int:
        return int(self._data.size)

    @property
    def requires_grad(self) -> bool:
        return self._requires_grad

    @requires_grad.setter
    def requires_grad(self, value: bool) -> None:
        self._requires_grad = bool(value)

    @property
    def grad(self) -> Optional["Tensor"]:
        """
        Return the accumulated gradient, or None before any backward pass.
        """
        return self._grad

    @property
    def grad_fn(self) -> Optional[Any]:
        """The operation that produced this tensor, or None for leaves."""
        return self._grad_fn

    @property
    def is_leaf(self) -> bool:
        return self._grad_fn is None

    def index(self, indices: Sequence[int]) -> Optional[int]:
        """
        Convert a multi-index to a row-major flat offset.

        Returns None when the arity differs from the rank or any component is
        out of range for its axis.
        """
        return flat_index(self._shape, indices)

    def get(self, indices: Sequence[int]) -> Optional[Number]:
        """
        Return the element at `indices` as a Python scalar, or None when the
        multi-index is invalid for this shape.
        """
        offset = self.index(indices)
        if offset is None:
            return None
        return self._data[offset].item()

    def check_shape_matches(self, other: "Tensor") -> None:
        """
        Raise `InvalidShapeError(expected=self.shape, got=other.shape)` unless
        both shapes are identical.
        """
        if self._shape != other.shape:
            raise InvalidShapeError(expected=self._shape, got=other.shape)

    def to_numpy(self) -> np.ndarray:
        """Writable copy of the data, reshaped to `shape`."""
        return self._data.reshape(self._shape).copy()

    def tolist(self) -> Any:
        """Nested Python lists (a bare scalar for rank 0)."""
        return self._data.reshape(self._shape).tolist()

    def item(self) -> Number:
        """
        Return the single element of a size-1 tensor.

        Raises
        ------
        InvalidOperationError
            If the tensor does not hold exactly one element.
        """
        if self._data.size != 1:
            raise InvalidOperationError(
                "item", f"only size-1 tensors convert to a scalar, got shape {self._shape}"
            )
        return self._data[0].item()

    def __repr__(self) -> str:
        extra = ""
        if self._grad_fn is not None:
            extra = f", grad_fn={type(self._grad_fn).__name__}"
        elif self._requires_grad:
            extra = ", requires_grad=True"
        return (
            f"Tensor(shape={self._shape}, dtype={self._data.dtype}, "
            f"data={self._data.tolist()}{extra})"
        )

    # ----------------------------
    # Equality and ordering
    # ----------------------------
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Tensor):
            return NotImplemented
        return self._shape == other._shape and bool(
            np.array_equal(self._data, other._data)
        )

    def __lt__(self, other: "Tensor") -> bool:
        if not isinstance(other, Tensor):
            return NotImplemented
        return (self._data.tolist(), self._shape) < (other._data.tolist(), other._shape)

    # ----------------------------
    # Autograd hooks
    # ----------------------------
    def _set_grad_fn(self, op: Optional[Any]) -> None:
        """
        Attach (or with None, detach) the producing operation.

        Internal hook for operations; attaching also marks the tensor as
        requiring gradients.
        """
        self._grad_fn = op
        if op is not None:
            self._requires_grad = True

    def _accumulate_grad(self, g: "Tensor") -> None:
        """Add `g` into `.grad` without recording history."""
        if g.shape != self._shape:
            raise InvalidShapeError(expected=self._shape, got=g.shape)
        if self._grad is None:
            self._grad = g.detach()
            return
        self._grad = Tensor(self._grad.data + g.data, self._shape)

    def zero_grad(self) -> None:
        """Clear the stored gradient."""
        self._grad = None

    def detach(self) -> "Tensor":
        """
        Return a tensor with the same data that has no autograd history and
        does not require gradients.
        """
        return Tensor(self._data, self._shape)

    def backward(self, grad_out: Optional["Tensor"] = None) -> None:
        """
        Backpropagate from this tensor through the recorded graph.

        Parameters
        ----------
        grad_out : Optional[Tensor], optional
            Gradient w.r.t. this tensor. May be omitted for size-1 tensors,
            in which case a gradient of ones is used.

        Notes
        -----
        Gradients accumulate into `.grad` of leaf tensors with
        `requires_grad=True`; call `zero_grad()` to reset them.
        """
        from .._autograd import backward

        backward(self, grad_out)

    # ----------------------------
    # Internal helpers
    # ----------------------------
    def _as_tensor_like(self, x: Union["Tensor", Number]) -> "Tensor":
        """
        Convert an operand into a Tensor that broadcasts against `self`.

        A Python (or NumPy) scalar becomes a size-1 tensor of the same rank
        as `self`, so the broadcasting path maps every element of `self`
        through the scalar expression.

        Raises
        ------
        TypeError
            If `x` is neither a Tensor nor a supported scalar type.
        """
        if isinstance(x, Tensor):
            return x
        if isinstance(x, (int, float, np.number)):
            return Tensor.full(
                (1,) * self.ndim, x, dtype=np.result_type(self.dtype, x)
            )
        raise TypeError(f"Unsupported operand type: {type(x)!r}")

    def _apply(self, kind: str, other: Optional["Tensor"] = None, **params):
        from ..functions._dispatch import apply

        return apply(kind, self, other, **params)

    # ----------------------------
    # Elementwise binary
    # ----------------------------
    def add(self, other: Union["Tensor", Number], *, strict: bool = False) -> "Tensor":
        """
        Elementwise sum.

        With `strict=True` the shapes must be identical; otherwise equal-rank
        broadcastable shapes are accepted.
        """
        return self._apply("add", self._as_tensor_like(other), strict=strict)

    def sub(self, other: Union["Tensor", Number], *, strict: bool = False) -> "Tensor":
        return self._apply("sub", self._as_tensor_like(other), strict=strict)

    def mul(self, other: Union["Tensor", Number], *, strict: bool = False) -> "Tensor":
        return self._apply("mul", self._as_tensor_like(other), strict=strict)

    def div(self, other: Union["Tensor", Number], *, strict: bool = False) -> "Tensor":
        return self._apply("div", self._as_tensor_like(other), strict=strict)

    def __add__(self, other: Union["Tensor", Number]) -> "Tensor":
        return self.add(other)

    def __radd__(self, other: Number) -> "Tensor":
        return self._as_tensor_like(other).add(self)

    def __sub__(self, other: Union["Tensor", Number]) -> "Tensor":
        return self.sub(other)

    def __rsub__(self, other: Number) -> "Tensor":
        return self._as_tensor_like(other).sub(self)

    def __mul__(self, other: Union["Tensor", Number]) -> "Tensor":
        return self.mul(other)

    def __rmul__(self, other: Number) -> "Tensor":
        return self._as_tensor_like(other).mul(self)

    def __truediv__(self, other: Union["Tensor", Number]) -> "Tensor":
        return self.div(other)

    def __rtruediv__(self, other: Number) -> "Tensor":
        return self._as_tensor_like(other).div(self)

    # ----------------------------
    # Unary
    # ----------------------------
    def exp(self) -> "Tensor":
        return self._apply("exp")

    def log(self) -> "Tensor":
        return self._apply("log")

    def sqrt(self) -> "Tensor":
        return self._apply("sqrt")

    def abs(self) -> "Tensor":
        return self._apply("abs")

    def square(self) -> "Tensor":
        return self._apply("square")

    def neg(self) -> "Tensor":
        return self._apply("neg")

    def pow(self, exponent: Number) -> "Tensor":
        """Raise every element to the scalar power `exponent`."""
        return self._apply("pow", exponent=exponent)

    def __neg__(self) -> "Tensor":
        return self.neg()

    def __abs__(self) -> "Tensor":
        return self.abs()

    def __pow__(self, exponent: Number) -> "Tensor":
        if isinstance(exponent, Tensor):
            raise TypeError("Tensor exponents are not supported; use a scalar power")
        return self.pow(exponent)

    # ----------------------------
    # Linear algebra and selection
    # ----------------------------
    def matmul(self, other: "Tensor") -> "Tensor":
        """2-D matrix product."""
        return self._apply("matmul", other)

    def __matmul__(self, other: "Tensor") -> "Tensor":
        return self.matmul(other)

    def topk(self, k: int, sorted: bool = True) -> Tuple["Tensor", "Tensor"]:
        """
        Largest `k` entries along the trailing axis.

        Returns
        -------
        tuple[Tensor, Tensor]
            `(values, indices)`, both of shape `shape[:-1] + (k,)`. Indices
            are int64 positions along the trailing axis.
        """
        return self._apply("topk", k=k, sorted=sorted)

    def max(
        self, axis: Optional[int] = None, keepdim: bool = False
    ) -> Tuple["Tensor", "Tensor"]:
        """
        Maximum along `axis`, or over all elements when `axis` is None.

        Returns
        -------
        tuple[Tensor, Tensor]
            `(values, positions)`; positions are int64 indices along `axis`
            (flat offsets when `axis` is None).
        """
        return self._apply("matmax", axis=axis, keepdim=keepdim)
