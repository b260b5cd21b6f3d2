"""
Compute-backend contract.

Operations in the infrastructure layer orchestrate shapes, broadcasting, and
parameter validation, then hand the per-element arithmetic to a backend. This
module defines what a backend must provide, as a runtime-checkable Protocol,
so concrete backends (vectorized NumPy, plain Python loops, or anything else)
are interchangeable without sharing a base class.

Contract
--------
- Inputs are flat, row-major NumPy arrays plus the shapes they describe.
- Every method returns *new* arrays; inputs are never written to.
- Backends are stateless (or internally synchronized) and may be shared by
  any number of operations.
- Results follow IEEE-754 semantics of the element dtype (e.g. `1/0 -> inf`,
  `log(-1) -> nan`) rather than raising.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Protocol, Sequence, Tuple, runtime_checkable

import numpy as np


class BinaryKind(str, Enum):
    """Elementwise binary kernels a backend must implement."""

    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    DIV = "div"


class UnaryKind(str, Enum):
    """
    Elementwise unary kernels a backend must implement.

    `POW` takes an extra scalar exponent. `SIGN` is used by the backward pass
    of `abs`.
    """

    EXP = "exp"
    NEG = "neg"
    SQRT = "sqrt"
    ABS = "abs"
    SQUARE = "square"
    LOG = "log"
    POW = "pow"
    SIGN = "sign"


_FLOATING_KINDS = frozenset(
    {BinaryKind.DIV, UnaryKind.EXP, UnaryKind.SQRT, UnaryKind.LOG, UnaryKind.POW}
)


def result_dtype(kind: "BinaryKind | UnaryKind", *dtypes: np.dtype) -> np.dtype:
    """
    Output dtype of an elementwise kernel.

    The operand dtypes are promoted with NumPy's rules. Kernels that are only
    defined over the reals (division, exp, sqrt, log, pow) additionally
    promote integer and boolean inputs to a floating dtype. Every backend
    must produce exactly this dtype so results are backend-independent.
    """
    dt = np.result_type(*dtypes)
    if kind in _FLOATING_KINDS and not np.issubdtype(dt, np.inexact):
        dt = np.result_type(dt, np.float32)
    return dt


@runtime_checkable
class IBackend(Protocol):
    """
    Duck-typed numeric backend.

    Any object exposing these members can serve as the compute backend of an
    operation.
    """

    name: str

    def binary(
        self,
        kind: BinaryKind,
        lhs: np.ndarray,
        rhs: np.ndarray,
        lhs_index: Optional[np.ndarray] = None,
        rhs_index: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """
        Elementwise binary kernel.

        Without index maps, `lhs` and `rhs` have equal length and output
        element `i` is `kind(lhs[i], rhs[i])`. With index maps (produced by the
        broadcasting engine), output element `i` is
        `kind(lhs[lhs_index[i]], rhs[rhs_index[i]])`.
        """
        ...

    def unary(
        self, kind: UnaryKind, x: np.ndarray, exponent: Optional[float] = None
    ) -> np.ndarray:
        """Elementwise unary kernel; `exponent` is required for `POW`."""
        ...

    def matmul(
        self,
        lhs: np.ndarray,
        lhs_shape: Sequence[int],
        rhs: np.ndarray,
        rhs_shape: Sequence[int],
    ) -> Tuple[np.ndarray, Tuple[int, ...]]:
        """2-D matrix product; returns flat data and the `(m, n)` result shape."""
        ...

    def topk(
        self, x: np.ndarray, shape: Sequence[int], k: int, sorted: bool
    ) -> Tuple[np.ndarray, np.ndarray, Tuple[int, ...]]:
        """
        Largest `k` entries along the trailing axis.

        Returns values, int64 positions along the trailing axis, and the
        result shape `shape[:-1] + (k,)`. With `sorted=True` values are in
        descending order (ties keep the lower position first); otherwise they
        keep their original positional order.
        """
        ...

    def max(
        self,
        x: np.ndarray,
        shape: Sequence[int],
        axis: Optional[int],
        keepdim: bool,
    ) -> Tuple[np.ndarray, np.ndarray, Tuple[int, ...]]:
        """
        Maximum along `axis` (a normalized, non-negative axis) or over the
        flattened tensor when `axis` is None.

        Returns values, int64 arg-max positions (along `axis`, or flat offsets
        when `axis` is None; the first maximum wins ties), and the result shape.
        """
        ...

    def sum(
        self,
        x: np.ndarray,
        shape: Sequence[int],
        axes: Sequence[int],
        keepdim: bool,
    ) -> Tuple[np.ndarray, Tuple[int, ...]]:
        """Sum over the given normalized axes; returns data and result shape."""
        ...
