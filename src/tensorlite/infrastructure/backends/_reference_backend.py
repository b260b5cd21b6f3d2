"""
Pure-Python reference backend.

This backend evaluates every kernel with explicit per-element loops over
Python scalars and the `math` module. It is deliberately naive: it exists as
a readable correctness reference that the vectorized backend is tested
against, and as a demonstration that operations are indifferent to how their
backend computes.

IEEE-754 behaviour
------------------
Python's scalar arithmetic raises where IEEE arithmetic returns a special
value (`1 / 0`, `math.log(0)`, `math.exp(1000)`). The helpers below restore
the IEEE results (`inf`, `-inf`, `nan`) and, like NumPy, report division by
zero and invalid values with a single `RuntimeWarning` per kernel call.
"""

from __future__ import annotations

import builtins
import math
import warnings
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ...domain._backend import BinaryKind, UnaryKind, result_dtype
from ...domain._shape import shape_size
from ._registry import BackendRegistry

_INF = float("inf")
_NAN = float("nan")


class _HazardLog:
    """Collects floating-point hazards seen during one kernel call."""

    def __init__(self) -> None:
        self.divide = False
        self.invalid = False
        self.overflow = False

    def flush(self, kernel: str) -> None:
        hazards = [
            name
            for name, seen in (
                ("divide by zero", self.divide),
                ("invalid value", self.invalid),
                ("overflow", self.overflow),
            )
            if seen
        ]
        if hazards:
            warnings.warn(
                f"{' and '.join(hazards)} encountered in {kernel}",
                RuntimeWarning,
                stacklevel=3,
            )


def _div(a: float, b: float, log: _HazardLog) -> float:
    if b != 0:
        return a / b
    if a != a or a == 0:
        log.invalid = True
        return _NAN
    log.divide = True
    return math.copysign(_INF, a) * math.copysign(1.0, b)


def _exp(a: float, log: _HazardLog) -> float:
    try:
        return math.exp(a)
    except OverflowError:
        log.overflow = True
        return _INF


def _sqrt(a: float, log: _HazardLog) -> float:
    if a < 0:
        log.invalid = True
        return _NAN
    return math.sqrt(a)


def _log(a: float, log: _HazardLog) -> float:
    if a == 0:
        log.divide = True
        return -_INF
    if a < 0:
        log.invalid = True
        return _NAN
    if a != a:
        return _NAN
    return math.log(a)


def _pow(a: float, p: float, log: _HazardLog) -> float:
    try:
        return math.pow(a, p)
    except ZeroDivisionError:
        log.divide = True
        return _INF
    except ValueError:
        if a == 0:
            log.divide = True
            return _INF
        log.invalid = True
        return _NAN
    except OverflowError:
        log.overflow = True
        odd = float(p).is_integer() and int(p) % 2 == 1
        return -_INF if (a < 0 and odd) else _INF


def _sign(a: float) -> float:
    if a != a:
        return a
    return (a > 0) - (a < 0)


_BINARY: Dict[BinaryKind, Callable[[float, float, _HazardLog], float]] = {
    BinaryKind.ADD: lambda a, b, log: a + b,
    BinaryKind.SUB: lambda a, b, log: a - b,
    BinaryKind.MUL: lambda a, b, log: a * b,
    BinaryKind.DIV: _div,
}

_UNARY: Dict[UnaryKind, Callable[[float, _HazardLog], float]] = {
    UnaryKind.EXP: _exp,
    UnaryKind.NEG: lambda a, log: -a,
    UnaryKind.SQRT: _sqrt,
    UnaryKind.ABS: lambda a, log: abs(a),
    UnaryKind.SQUARE: lambda a, log: a * a,
    UnaryKind.LOG: _log,
    UnaryKind.SIGN: lambda a, log: _sign(a),
}


def _precedes(v, best) -> bool:
    """Arg-max comparison that, like NumPy, lets the first NaN win."""
    return best == best and (v > best or v != v)


def _descending_key(item: Tuple[int, float]):
    pos, v = item
    return (v != v, -v if v == v else 0.0, pos)


@BackendRegistry.register_backend("python")
class ReferenceBackend:
    """
    Loop-based implementation of `IBackend`.

    Results match `NumpyBackend` exactly for `+ - * /`, `sqrt`, `abs`,
    `square`, and the selection kernels, and to within floating tolerance for
    the transcendental kernels and `sum`.
    """

    name = "python"

    def binary(
        self,
        kind: BinaryKind,
        lhs: np.ndarray,
        rhs: np.ndarray,
        lhs_index: Optional[np.ndarray] = None,
        rhs_index: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        kind = BinaryKind(kind)
        dt = result_dtype(kind, lhs.dtype, rhs.dtype)
        a = lhs.astype(dt, copy=False).tolist()
        b = rhs.astype(dt, copy=False).tolist()
        n = len(lhs_index) if lhs_index is not None else len(a)
        if lhs_index is None and rhs_index is None and len(a) != len(b):
            raise ValueError(
                f"binary kernel operands differ in length: {len(a)} vs {len(b)}"
            )
        li = lhs_index.tolist() if lhs_index is not None else range(n)
        ri = rhs_index.tolist() if rhs_index is not None else range(n)

        fn = _BINARY[kind]
        log = _HazardLog()
        out = [fn(a[i], b[j], log) for i, j in zip(li, ri)]
        log.flush(kind.value)
        return np.array(out, dtype=dt)

    def unary(
        self, kind: UnaryKind, x: np.ndarray, exponent: Optional[float] = None
    ) -> np.ndarray:
        kind = UnaryKind(kind)
        dt = result_dtype(kind, x.dtype)
        values = x.astype(dt, copy=False).tolist()
        log = _HazardLog()
        if kind is UnaryKind.POW:
            if exponent is None:
                raise ValueError("pow kernel requires an exponent")
            p = float(exponent)
            out = [_pow(v, p, log) for v in values]
        else:
            fn = _UNARY[kind]
            out = [fn(v, log) for v in values]
        log.flush(kind.value)
        return np.array(out, dtype=dt)

    def matmul(
        self,
        lhs: np.ndarray,
        lhs_shape: Sequence[int],
        rhs: np.ndarray,
        rhs_shape: Sequence[int],
    ) -> Tuple[np.ndarray, Tuple[int, ...]]:
        m, inner = lhs_shape
        _, n = rhs_shape
        dt = np.result_type(lhs.dtype, rhs.dtype)
        a = lhs.tolist()
        b = rhs.tolist()
        out: List[float] = []
        for i in range(m):
            for j in range(n):
                acc = 0
                for p in range(inner):
                    acc += a[i * inner + p] * b[p * n + j]
                out.append(acc)
        return np.array(out, dtype=dt), (int(m), int(n))

    def topk(
        self, x: np.ndarray, shape: Sequence[int], k: int, sorted: bool
    ) -> Tuple[np.ndarray, np.ndarray, Tuple[int, ...]]:
        n = shape[-1]
        values = x.tolist()
        out_vals: list = []
        out_idx: List[int] = []
        for row in range(shape_size(shape[:-1])):
            items = list(enumerate(values[row * n : (row + 1) * n]))
            chosen = builtins.sorted(items, key=_descending_key)[:k]
            if not sorted:
                chosen.sort(key=lambda item: item[0])
            out_idx.extend(pos for pos, _ in chosen)
            out_vals.extend(v for _, v in chosen)
        out_shape = tuple(shape[:-1]) + (int(k),)
        return (
            np.array(out_vals, dtype=x.dtype),
            np.array(out_idx, dtype=np.int64),
            out_shape,
        )

    def max(
        self,
        x: np.ndarray,
        shape: Sequence[int],
        axis: Optional[int],
        keepdim: bool,
    ) -> Tuple[np.ndarray, np.ndarray, Tuple[int, ...]]:
        values = x.tolist()
        if axis is None:
            best_pos = 0
            for pos in range(1, len(values)):
                if _precedes(values[pos], values[best_pos]):
                    best_pos = pos
            out_shape = (1,) * len(shape) if keepdim else ()
            return (
                np.array([values[best_pos]], dtype=x.dtype),
                np.array([best_pos], dtype=np.int64),
                out_shape,
            )

        outer = shape_size(shape[:axis])
        n = shape[axis]
        inner = shape_size(shape[axis + 1 :])
        out_vals = []
        out_pos = []
        for o in range(outer):
            for i in range(inner):
                base = o * n * inner + i
                best_j = 0
                for j in range(1, n):
                    if _precedes(values[base + j * inner], values[base + best_j * inner]):
                        best_j = j
                out_vals.append(values[base + best_j * inner])
                out_pos.append(best_j)
        if keepdim:
            out_shape = tuple(1 if d == axis else s for d, s in enumerate(shape))
        else:
            out_shape = tuple(s for d, s in enumerate(shape) if d != axis)
        return (
            np.array(out_vals, dtype=x.dtype),
            np.array(out_pos, dtype=np.int64),
            out_shape,
        )

    def sum(
        self,
        x: np.ndarray,
        shape: Sequence[int],
        axes: Sequence[int],
        keepdim: bool,
    ) -> Tuple[np.ndarray, Tuple[int, ...]]:
        values = x.tolist()
        cur_shape = list(shape)
        for axis in axes:
            outer = shape_size(cur_shape[:axis])
            n = cur_shape[axis]
            inner = shape_size(cur_shape[axis + 1 :])
            reduced = []
            for o in range(outer):
                for i in range(inner):
                    acc = 0
                    for j in range(n):
                        acc += values[o * n * inner + j * inner + i]
                    reduced.append(acc)
            values = reduced
            cur_shape[axis] = 1
        if keepdim:
            out_shape = tuple(cur_shape)
        else:
            out_shape = tuple(s for d, s in enumerate(cur_shape) if d not in set(axes))
        return np.array(values, dtype=x.dtype), out_shape
