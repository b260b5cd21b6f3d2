"""
Shape, indexing, and broadcasting arithmetic.

This module holds the pure arithmetic over shape vectors that the rest of the
engine builds on:

- validating and normalizing shapes,
- row-major strides and multi-index -> flat-offset conversion,
- broadcast compatibility and broadcast result shapes,
- mapping a linear *output* index back to a flat offset in each operand
  under broadcasting.

Design notes
------------
- Nothing here allocates tensors or holds state. Inputs are shape tuples and
  indices; outputs are ints, tuples, or NumPy index arrays.
- Broadcasting follows the array-programming convention with one restriction:
  both operands must have the same rank (no implicit left padding). On every
  axis the sizes must match or one of them must be 1; a size-1 axis stretches
  to the other operand's size.
- `broadcast_source_indices` is the scalar form of the index mapping and
  `broadcast_indices` the same algorithm evaluated for every output position
  at once. Both decompose the output index with the *output* strides and
  accumulate each operand offset with that operand's *own* strides.
"""

from __future__ import annotations

import operator
from functools import reduce
from typing import Optional, Sequence, Tuple

import numpy as np

from ._errors import InvalidAxisError, InvalidOperationError

Shape = Tuple[int, ...]


def normalize_shape(shape: Sequence[int]) -> Shape:
    """
    Validate a shape-like sequence and return it as a tuple of ints.

    Parameters
    ----------
    shape : Sequence[int]
        Candidate shape. A bare int is accepted as a rank-1 shape.

    Returns
    -------
    tuple[int, ...]
        Normalized shape.

    Raises
    ------
    InvalidOperationError
        If any dimension is negative or not an integer.
    """
    if isinstance(shape, (int, np.integer)):
        shape = (shape,)
    dims = []
    for d in shape:
        if isinstance(d, bool) or not isinstance(d, (int, np.integer)):
            raise InvalidOperationError(
                "shape", f"dimensions must be integers, got {d!r} in {tuple(shape)!r}"
            )
        if d < 0:
            raise InvalidOperationError(
                "shape", f"dimensions must be non-negative, got {tuple(shape)!r}"
            )
        dims.append(int(d))
    return tuple(dims)


def shape_size(shape: Sequence[int]) -> int:
    """
    Number of elements described by `shape`.

    The empty shape describes a scalar (size 1); any zero dimension yields 0.
    """
    return reduce(operator.mul, shape, 1)


def row_major_strides(shape: Sequence[int]) -> Shape:
    """
    Element strides of a contiguous row-major layout.

    `strides[i] == prod(shape[i+1:])`, so the last axis always has stride 1.
    """
    strides = [1] * len(shape)
    acc = 1
    for i in range(len(shape) - 1, -1, -1):
        strides[i] = acc
        acc *= shape[i]
    return tuple(strides)


def flat_index(shape: Sequence[int], indices: Sequence[int]) -> Optional[int]:
    """
    Convert a multi-index to a row-major flat offset.

    Computes `sum(indices[i] * prod(shape[i+1:]))`.

    Parameters
    ----------
    shape : Sequence[int]
        Tensor shape.
    indices : Sequence[int]
        One index per axis.

    Returns
    -------
    Optional[int]
        The flat offset, or None when the number of indices differs from the
        rank or when any component lies outside `[0, shape[i])`.

    Notes
    -----
    Every component is bounds-checked against its own axis. Without that check
    an out-of-range component would silently land on another cell.
    """
    if len(indices) != len(shape):
        return None
    offset = 0
    for i, dim in zip(indices, shape):
        if isinstance(i, bool) or not isinstance(i, (int, np.integer)):
            return None
        if i < 0 or i >= dim:
            return None
        offset = offset * dim + int(i)
    return offset


def unravel_index(shape: Sequence[int], offset: int) -> Shape:
    """Inverse of `flat_index` for an in-range offset."""
    coords = []
    for stride in row_major_strides(shape):
        coords.append(offset // stride)
        offset %= stride
    return tuple(coords)


def normalize_axis(axis: int, ndim: int, shape: Sequence[int]) -> int:
    """
    Map a possibly negative axis into `[0, ndim)`.

    Raises
    ------
    InvalidAxisError
        If `axis` is outside `[-ndim, ndim)`.
    """
    if isinstance(axis, bool) or not isinstance(axis, (int, np.integer)):
        raise InvalidAxisError(axis, shape)
    if axis < -ndim or axis >= ndim:
        raise InvalidAxisError(axis, shape)
    return int(axis) % ndim


# ---------------------------------------------------------------------------
# Broadcasting
# ---------------------------------------------------------------------------
def can_broadcast(a: Sequence[int], b: Sequence[int]) -> bool:
    """
    Return True iff `a` and `b` have equal rank and every axis pair is either
    equal or contains a 1.

    The relation is symmetric.
    """
    if len(a) != len(b):
        return False
    return all(x == y or x == 1 or y == 1 for x, y in zip(a, b))


def broadcast_shape(a: Sequence[int], b: Sequence[int]) -> Shape:
    """
    Result shape of broadcasting two equal-rank shapes.

    On each axis a size of 1 takes the other operand's size, so a 0 paired
    with a 1 gives 0, as in NumPy.

    Callers are expected to have checked `can_broadcast` first; only the rank
    is verified here.

    Raises
    ------
    InvalidOperationError
        If the ranks differ.
    """
    if len(a) != len(b):
        raise InvalidOperationError(
            "broadcast",
            f"rank mismatch ({len(a)} vs {len(b)}); implicit rank padding is not supported",
        )
    return tuple(int(y) if x == 1 else int(x) for x, y in zip(a, b))


def broadcast_source_indices(
    a: Sequence[int], b: Sequence[int], idx: int, out_shape: Sequence[int]
) -> Tuple[int, int]:
    """
    Map one linear output index to the flat offsets it reads in `a` and `b`.

    The output index is decomposed into per-axis coordinates with the output
    strides. On each axis an operand's coordinate is 0 when its size there is
    1, otherwise it equals the output coordinate; the operand offset is then
    accumulated with the operand's own strides.

    Parameters
    ----------
    a, b : Sequence[int]
        Operand shapes (equal rank, broadcast-compatible).
    idx : int
        Linear index into the output, in `[0, prod(out_shape))`.
    out_shape : Sequence[int]
        The broadcast result shape.

    Returns
    -------
    tuple[int, int]
        Flat offsets into `a` and `b`.

    Raises
    ------
    InvalidOperationError
        If the ranks disagree or `idx` is out of range. Reaching this after a
        successful `can_broadcast` check indicates a programming error.
    """
    if not (len(a) == len(b) == len(out_shape)):
        raise InvalidOperationError("broadcast", "operand ranks do not match output rank")
    if idx < 0 or idx >= shape_size(out_shape):
        raise InvalidOperationError(
            "broadcast", f"output index {idx} out of range for shape {tuple(out_shape)}"
        )

    remaining = idx
    a_idx = 0
    b_idx = 0
    for stride, a_dim, b_dim in zip(row_major_strides(out_shape), a, b):
        pos = remaining // stride
        remaining %= stride
        a_idx = a_idx * a_dim + (0 if a_dim == 1 else pos)
        b_idx = b_idx * b_dim + (0 if b_dim == 1 else pos)
    return a_idx, b_idx


def broadcast_indices(
    a: Sequence[int], b: Sequence[int]
) -> Tuple[Shape, np.ndarray, np.ndarray]:
    """
    Compute the source offsets of every output element of a broadcast.

    This evaluates `broadcast_source_indices` for all output indices at once,
    axis by axis, using NumPy integer arithmetic.

    Parameters
    ----------
    a, b : Sequence[int]
        Operand shapes. Must satisfy `can_broadcast(a, b)`.

    Returns
    -------
    out_shape : tuple[int, ...]
        The broadcast result shape.
    a_index : np.ndarray
        int64 array of length `prod(out_shape)`; `a_index[i]` is the flat
        offset into `a` read by output element `i`.
    b_index : np.ndarray
        Same for `b`.

    Raises
    ------
    InvalidOperationError
        If the shapes are not broadcast-compatible.
    """
    if not can_broadcast(a, b):
        raise InvalidOperationError(
            "broadcast", f"shapes {tuple(a)} and {tuple(b)} are not broadcastable"
        )
    out_shape = broadcast_shape(a, b)

    remaining = np.arange(shape_size(out_shape), dtype=np.int64)
    a_index = np.zeros_like(remaining)
    b_index = np.zeros_like(remaining)
    if remaining.size == 0:
        return out_shape, a_index, b_index
    for stride, a_dim, b_dim in zip(row_major_strides(out_shape), a, b):
        pos = remaining // stride
        remaining = remaining % stride
        a_index = a_index * a_dim + (0 if a_dim == 1 else pos)
        b_index = b_index * b_dim + (0 if b_dim == 1 else pos)
    return out_shape, a_index, b_index


def reduced_axes(src_shape: Sequence[int], target_shape: Sequence[int]) -> Shape:
    """
    Axes that must be summed to bring a broadcast result back to `target_shape`.

    An axis is reduced when the target has size 1 there and the source does
    not. Used by the backward pass of broadcasting operations.

    Raises
    ------
    InvalidOperationError
        If the ranks differ or `target_shape` could not have been broadcast to
        `src_shape`.
    """
    if len(src_shape) != len(target_shape):
        raise InvalidOperationError(
            "sum_to_shape",
            f"rank mismatch between {tuple(src_shape)} and {tuple(target_shape)}",
        )
    axes = []
    for i, (sd, td) in enumerate(zip(src_shape, target_shape)):
        if td not in (1, sd):
            raise InvalidOperationError(
                "sum_to_shape",
                f"cannot reduce {tuple(src_shape)} to {tuple(target_shape)} at axis {i}",
            )
        if td == 1 and sd != 1:
            axes.append(i)
    return tuple(axes)
