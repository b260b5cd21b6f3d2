"""
Operation interface definitions.

This module defines the abstract base class for operations in the computation
graph. A concrete operation binds its input tensors and a compute backend at
construction time, produces a new tensor from `forward()`, and maps an
upstream gradient to per-input gradients in `backward()`.

The design borrows from function-level autograd systems (e.g. PyTorch's
`autograd.Function`), but an operation here is a short-lived *instance*: it
is configured, consumed by exactly one `forward()` call, and afterwards only
serves as the `grad_fn` node of the tensor it produced.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional, Tuple, Union

from ._backend import IBackend
from ._tensor import ITensor


class OperationState(Enum):
    """
    Lifecycle of an operation instance.

    CONFIGURED
        Constructed and validated; `forward()` has not run.
    CONSUMED
        `forward()` has run; only `backward()` remains available.
    """

    CONFIGURED = "configured"
    CONSUMED = "consumed"


class Function(ABC):
    """
    Abstract base class for differentiable operations.

    Notes
    -----
    - Inputs are borrowed, never copied or mutated.
    - `forward()` returns a new, independently owned tensor (or a
      `(values, indices)` pair for selection operators).
    - `backward(grad_out)` returns one entry per input, in input order.
      Entries may be None for inputs that cannot receive a gradient.
    """

    @property
    @abstractmethod
    def backend(self) -> IBackend:
        """The compute backend this operation delegates arithmetic to."""
        ...

    @property
    @abstractmethod
    def inputs(self) -> Tuple[ITensor, ...]:
        """The borrowed input tensors, in operand order."""
        ...

    @abstractmethod
    def forward(self) -> Union[ITensor, Tuple[ITensor, ITensor]]:
        """
        Perform the forward computation.

        Returns
        -------
        ITensor or tuple[ITensor, ITensor]
            The output tensor, or `(values, indices)` for Topk/Matmax.
        """
        ...

    @abstractmethod
    def backward(self, grad_out: ITensor) -> Tuple[Optional[ITensor], ...]:
        """
        Compute gradients with respect to the inputs.

        Parameters
        ----------
        grad_out : ITensor
            Gradient of the loss with respect to this operation's (primary)
            output. Must have the output's shape.

        Returns
        -------
        tuple[Optional[ITensor], ...]
            Gradients with respect to each input. When the forward pass
            broadcast an operand, its gradient is summed over the broadcast
            axes so that it has the operand's shape.
        """
        ...
