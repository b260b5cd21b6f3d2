"""
Tensor interface definitions.

This module defines the domain-level interface for tensor-like objects using
structural typing. The interface captures what operations, backends, and the
autograd pass rely on: an immutable shape, a flat row-major data buffer, and
the optional gradient-tracking slots.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence, Union, runtime_checkable

import numpy as np

Number = Union[int, float]


@runtime_checkable
class ITensor(Protocol):
    """
    Tensor interface.

    An `ITensor` is a flat-buffer-backed N-dimensional array whose shape is
    fixed at construction. Only the gradient-tracking slots (`grad`,
    `grad_fn`, `requires_grad`) may change after construction.
    """

    @property
    def shape(self) -> tuple[int, ...]:
        """
        Return the shape of the tensor.

        Returns
        -------
        tuple[int, ...]
            The tensor's shape. The empty tuple denotes a scalar.
        """
        ...

    @property
    def data(self) -> np.ndarray:
        """
        Return the flat, row-major element buffer.

        Returns
        -------
        np.ndarray
            Read-only 1-D array with `prod(shape)` elements.
        """
        ...

    @property
    def dtype(self) -> np.dtype:
        """Element dtype of the data buffer."""
        ...

    @property
    def requires_grad(self) -> bool:
        """
        Indicate whether this tensor participates in gradient tracking.

        Returns
        -------
        bool
            True if operations consuming this tensor should record history.
        """
        ...

    @requires_grad.setter
    def requires_grad(self, value: bool) -> None: ...

    @property
    def grad(self) -> Optional["ITensor"]:
        """
        Return the accumulated gradient (if any).

        Returns
        -------
        Optional[ITensor]
            Gradient populated by a backward pass, or None.
        """
        ...

    @property
    def grad_fn(self) -> Optional[Any]:
        """
        Return the operation that produced this tensor, or None for leaves.
        """
        ...

    def get(self, indices: Sequence[int]) -> Optional[Number]:
        """
        Return the element at a multi-index.

        Returns None when the index arity differs from the rank or when any
        component is out of range.
        """
        ...

    def index(self, indices: Sequence[int]) -> Optional[int]:
        """
        Convert a multi-index to a row-major flat offset (None if invalid).
        """
        ...

    def check_shape_matches(self, other: "ITensor") -> None:
        """
        Verify that `other` has exactly this tensor's shape.

        Raises
        ------
        InvalidShapeError
            If the shapes differ.
        """
        ...
