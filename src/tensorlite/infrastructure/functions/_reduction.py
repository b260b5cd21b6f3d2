"""
Selection operators: Topk and Matmax.

Both return a `(values, indices)` pair. Only `values` carries autograd
history; the int64 index tensor never requires gradients. The backward pass
routes the upstream gradient back to the selected source positions and
leaves every other position at zero.
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from ...domain._errors import InvalidAxisError, InvalidOperationError
from ...domain._shape import normalize_axis
from ..tensor._tensor import Tensor
from ._base import Operation
from ._broadcast import wrap_buffer


def _is_int(v) -> bool:
    return isinstance(v, (int, np.integer)) and not isinstance(v, bool)


class Topk(Operation):
    """
    Largest `k` entries along the trailing axis.

    Parameters
    ----------
    k : int
        Number of entries to keep; `0 <= k <= shape[-1]`.
    sorted : bool, optional
        If True (default) the values come out in descending order (ties keep
        the lower position first). Otherwise the selected entries keep their
        original positional order.

    Raises
    ------
    InvalidAxisError
        If the input is rank 0 or `k` is out of range for the trailing axis.
    InvalidOperationError
        If `k` is missing or not an integer.
    """

    op_name = "topk"
    arity = 1

    def _configure(self, *, k: Optional[int] = None, sorted: bool = True) -> None:
        (x,) = self._inputs
        if k is None:
            raise InvalidOperationError(self.op_name, "k is required")
        if x.ndim == 0:
            raise InvalidAxisError(-1, x.shape)
        if not _is_int(k):
            raise InvalidOperationError(
                self.op_name, f"k must be an integer, got {type(k).__name__}"
            )
        if k < 0 or k > x.shape[-1]:
            raise InvalidAxisError(x.ndim - 1, x.shape)
        self.k = int(k)
        self.sorted = bool(sorted)

    def _compute(self) -> Tuple[Tensor, Tensor]:
        (x,) = self._inputs
        values, indices, out_shape = self._backend.topk(
            x.data, x.shape, self.k, self.sorted
        )
        idx = Tensor(indices, out_shape, dtype=np.int64)
        self._ctx.save_for_backward(idx)
        return wrap_buffer(values, out_shape), idx

    def _gradients(self, grad_out: Tensor) -> Tuple[Tensor]:
        (x,) = self._inputs
        (idx,) = self._ctx.saved_tensors
        grad = np.zeros(x.shape, dtype=grad_out.dtype)
        if grad_out.size:
            np.put_along_axis(grad, idx.to_numpy(), grad_out.to_numpy(), axis=-1)
        return (Tensor(grad, x.shape),)


class Matmax(Operation):
    """
    Maximum along an axis, or over the flattened tensor.

    Parameters
    ----------
    axis : int, optional
        Axis to reduce, in `[-ndim, ndim)`. None reduces all elements and
        reports flat offsets as positions.
    keepdim : bool, optional
        Keep the reduced axis (or every axis, when `axis` is None) with
        size 1.

    Raises
    ------
    InvalidAxisError
        If `axis` is out of range.
    InvalidOperationError
        If the reduction would run over zero elements.
    """

    op_name = "matmax"
    arity = 1

    def _configure(self, *, axis: Optional[int] = None, keepdim: bool = False) -> None:
        (x,) = self._inputs
        if axis is None:
            if x.size == 0:
                raise InvalidOperationError(
                    self.op_name, "cannot reduce an empty tensor"
                )
        else:
            axis = normalize_axis(axis, x.ndim, x.shape)
            if x.shape[axis] == 0:
                raise InvalidOperationError(
                    self.op_name, f"cannot reduce over empty axis {axis} of {x.shape}"
                )
        self.axis = axis
        self.keepdim = bool(keepdim)

    def _compute(self) -> Tuple[Tensor, Tensor]:
        (x,) = self._inputs
        values, positions, out_shape = self._backend.max(
            x.data, x.shape, self.axis, self.keepdim
        )
        pos = Tensor(positions, out_shape, dtype=np.int64)
        self._ctx.save_for_backward(pos)
        return wrap_buffer(values, out_shape), pos

    def _gradients(self, grad_out: Tensor) -> Tuple[Tensor]:
        (x,) = self._inputs
        (pos,) = self._ctx.saved_tensors
        grad = np.zeros(x.shape, dtype=grad_out.dtype)
        if self.axis is None:
            grad.reshape(-1)[pos.data[0]] = grad_out.data[0]
        elif grad_out.size:
            keep_shape = tuple(
                1 if d == self.axis else s for d, s in enumerate(x.shape)
            )
            np.put_along_axis(
                grad,
                pos.data.reshape(keep_shape),
                grad_out.data.reshape(keep_shape),
                axis=self.axis,
            )
        return (Tensor(grad, x.shape),)
