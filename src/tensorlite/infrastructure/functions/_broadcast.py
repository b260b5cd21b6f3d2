"""
Tensor-level broadcasting.

Two entry points share the index mapping of `domain._shape`:

- `binary_kernel` hands a whole elementwise kernel to a backend, together
  with per-element source offsets when the operand shapes differ;
- `broadcast_op` applies an arbitrary Python callable element by element,
  resolving each output position with `broadcast_source_indices`.

Neither materializes an expanded copy of an operand.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Tuple

import numpy as np

from ...domain._backend import BinaryKind, IBackend
from ...domain._errors import InvalidShapeError
from ...domain._shape import (
    broadcast_indices,
    broadcast_shape,
    broadcast_source_indices,
    can_broadcast,
    shape_size,
)
from ..tensor._tensor import Tensor


def wrap_buffer(data: np.ndarray, shape: Tuple[int, ...]) -> Tensor:
    """Tensor over a backend result, keeping the backend's dtype."""
    return Tensor(data, shape, dtype=data.dtype)


def binary_kernel(
    backend: IBackend, kind: BinaryKind, a: Tensor, b: Tensor
) -> Tensor:
    """
    Run an elementwise binary kernel, broadcasting when the shapes differ.

    Callers validate compatibility first; incompatible shapes surface as
    `InvalidOperationError` from the index computation.
    """
    if a.shape == b.shape:
        return wrap_buffer(backend.binary(kind, a.data, b.data), a.shape)
    out_shape, a_index, b_index = broadcast_indices(a.shape, b.shape)
    return wrap_buffer(
        backend.binary(kind, a.data, b.data, a_index, b_index), out_shape
    )


def broadcast_op(
    a: Tensor,
    b: Tensor,
    fn: Callable[[Any, Any], Any],
    *,
    dtype: Optional[Any] = None,
) -> Tensor:
    """
    Combine two tensors elementwise with `fn`, broadcasting size-1 axes.

    For every linear index of the output, the coordinate on each axis maps
    to 0 in an operand whose size there is 1, and to the output coordinate
    otherwise; `fn` receives the two resolved elements. Results are
    collected in output order.

    Parameters
    ----------
    a, b : Tensor
        Operands of equal rank.
    fn : Callable[[Any, Any], Any]
        Scalar function applied to each resolved element pair.
    dtype : dtype-like, optional
        Output dtype. Defaults to the promotion of the operand dtypes.

    Returns
    -------
    Tensor
        Tensor of shape `broadcast_shape(a.shape, b.shape)`.

    Raises
    ------
    InvalidShapeError
        If the shapes are not broadcast-compatible
        (`expected=a.shape`, `got=b.shape`).
    """
    if not can_broadcast(a.shape, b.shape):
        raise InvalidShapeError(expected=a.shape, got=b.shape)
    out_shape = broadcast_shape(a.shape, b.shape)
    a_vals = a.data.tolist()
    b_vals = b.data.tolist()

    out = []
    for idx in range(shape_size(out_shape)):
        i, j = broadcast_source_indices(a.shape, b.shape, idx, out_shape)
        out.append(fn(a_vals[i], b_vals[j]))

    dt = np.result_type(a.dtype, b.dtype) if dtype is None else np.dtype(dtype)
    return Tensor(np.array(out, dtype=dt), out_shape)
