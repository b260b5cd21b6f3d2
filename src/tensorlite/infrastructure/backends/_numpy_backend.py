"""
Vectorized NumPy backend.

Every kernel reshapes the flat input buffers into their logical shapes, runs
the corresponding NumPy routine, and returns a new flat buffer. This is the
default backend of the engine.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

import numpy as np

from ...domain._backend import BinaryKind, UnaryKind, result_dtype
from ._registry import BackendRegistry

_BINARY_UFUNCS = {
    BinaryKind.ADD: np.add,
    BinaryKind.SUB: np.subtract,
    BinaryKind.MUL: np.multiply,
    BinaryKind.DIV: np.divide,
}

_UNARY_UFUNCS = {
    UnaryKind.EXP: np.exp,
    UnaryKind.NEG: np.negative,
    UnaryKind.SQRT: np.sqrt,
    UnaryKind.ABS: np.abs,
    UnaryKind.SQUARE: np.square,
    UnaryKind.LOG: np.log,
    UnaryKind.SIGN: np.sign,
}


@BackendRegistry.register_backend("numpy")
class NumpyBackend:
    """
    NumPy implementation of `IBackend`.

    Notes
    -----
    - Floating-point hazards (division by zero, log of non-positive values)
      produce IEEE results and NumPy's own `RuntimeWarning`s.
    - Ties in `topk` and `max` resolve to the lowest position.
    """

    name = "numpy"

    def binary(
        self,
        kind: BinaryKind,
        lhs: np.ndarray,
        rhs: np.ndarray,
        lhs_index: Optional[np.ndarray] = None,
        rhs_index: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        dt = result_dtype(kind, lhs.dtype, rhs.dtype)
        if lhs_index is not None:
            lhs = lhs[lhs_index]
        if rhs_index is not None:
            rhs = rhs[rhs_index]
        if lhs.shape != rhs.shape:
            raise ValueError(
                f"binary kernel operands differ in length: {lhs.size} vs {rhs.size}"
            )
        return _BINARY_UFUNCS[BinaryKind(kind)](
            lhs.astype(dt, copy=False), rhs.astype(dt, copy=False)
        )

    def unary(
        self, kind: UnaryKind, x: np.ndarray, exponent: Optional[float] = None
    ) -> np.ndarray:
        kind = UnaryKind(kind)
        dt = result_dtype(kind, x.dtype)
        x = x.astype(dt, copy=False)
        if kind is UnaryKind.POW:
            if exponent is None:
                raise ValueError("pow kernel requires an exponent")
            return np.power(x, dt.type(exponent))
        return _UNARY_UFUNCS[kind](x)

    def matmul(
        self,
        lhs: np.ndarray,
        lhs_shape: Sequence[int],
        rhs: np.ndarray,
        rhs_shape: Sequence[int],
    ) -> Tuple[np.ndarray, Tuple[int, ...]]:
        out = np.matmul(lhs.reshape(lhs_shape), rhs.reshape(rhs_shape))
        return out.reshape(-1), tuple(out.shape)

    def topk(
        self, x: np.ndarray, shape: Sequence[int], k: int, sorted: bool
    ) -> Tuple[np.ndarray, np.ndarray, Tuple[int, ...]]:
        arr = x.reshape(shape)
        if np.issubdtype(arr.dtype, np.inexact):
            # negation is exact; NaN sorts after every number
            order = np.argsort(-arr, axis=-1, kind="stable")
        else:
            # integers never pass through float64; reversing a stable
            # ascending sort of the reversed row keeps ties lowest-position-first
            n = arr.shape[-1]
            rev = np.argsort(arr[..., ::-1], axis=-1, kind="stable")[..., ::-1]
            order = (n - 1) - rev
        idx = order[..., :k]
        if not sorted:
            idx = np.sort(idx, axis=-1)
        values = np.take_along_axis(arr, idx, axis=-1)
        out_shape = tuple(shape[:-1]) + (int(k),)
        return values.reshape(-1), idx.astype(np.int64).reshape(-1), out_shape

    def max(
        self,
        x: np.ndarray,
        shape: Sequence[int],
        axis: Optional[int],
        keepdim: bool,
    ) -> Tuple[np.ndarray, np.ndarray, Tuple[int, ...]]:
        if axis is None:
            pos = int(np.argmax(x))
            out_shape = (1,) * len(shape) if keepdim else ()
            return (
                x[pos : pos + 1].copy(),
                np.array([pos], dtype=np.int64),
                out_shape,
            )

        arr = x.reshape(shape)
        pos = np.expand_dims(np.argmax(arr, axis=axis), axis)
        values = np.take_along_axis(arr, pos, axis=axis)
        if keepdim:
            out_shape = tuple(values.shape)
        else:
            out_shape = tuple(d for i, d in enumerate(shape) if i != axis)
        return values.reshape(-1), pos.astype(np.int64).reshape(-1), out_shape

    def sum(
        self,
        x: np.ndarray,
        shape: Sequence[int],
        axes: Sequence[int],
        keepdim: bool,
    ) -> Tuple[np.ndarray, Tuple[int, ...]]:
        out = np.sum(
            x.reshape(shape), axis=tuple(axes), keepdims=keepdim, dtype=x.dtype
        )
        out = np.asarray(out)
        return out.reshape(-1), tuple(out.shape)
