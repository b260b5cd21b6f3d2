"""
Operation base class.

`Operation` implements the lifecycle shared by every operator:

- construction validates operands and parameters, binds a backend, and
  creates the backward `Context`;
- `forward()` runs once, records the autograd edge when gradient tracking
  is enabled, and moves the instance to CONSUMED;
- `backward(grad_out)` is available only once consumed.

The state machine is expressed with state-keyed control paths rather than
branches inside `forward`/`backward`. Concrete operators only implement
three hooks: `_configure`, `_compute`, and `_gradients`.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import ClassVar, Optional, Tuple, Union

from ...domain._backend import BinaryKind, IBackend, UnaryKind
from ...domain._errors import InvalidOperationError, InvalidShapeError
from ...domain._function import Function, OperationState
from ...domain._shape import reduced_axes
from ...domain.utils._control_path import create_path_builder
from .._config import default_backend, is_grad_enabled, no_grad
from ..tensor._tensor import Tensor
from ..tensor._tensor_context import Context
from ._broadcast import binary_kernel, wrap_buffer

ForwardResult = Union[Tensor, Tuple[Tensor, Tensor]]


class Operation(Function):
    """
    Base class of all operators.

    Parameters
    ----------
    first : Tensor
        Primary operand.
    second : Tensor, optional
        Second operand; required by binary operators, rejected by unary ones.
    backend : IBackend, optional
        Compute backend. Defaults to the configured backend.
    **params
        Operator-specific parameters, forwarded to `_configure`.

    Raises
    ------
    InvalidOperationError
        If an operand is missing, superfluous, or not a Tensor.
    """

    op_name: ClassVar[str] = "operation"
    arity: ClassVar[int] = 1

    def __init__(
        self,
        first: Tensor,
        second: Optional[Tensor] = None,
        *,
        backend: Optional[IBackend] = None,
        **params,
    ) -> None:
        if not isinstance(first, Tensor):
            raise InvalidOperationError(
                self.op_name, f"operand must be a Tensor, got {type(first).__name__}"
            )
        if self.arity == 2:
            if second is None:
                raise InvalidOperationError(self.op_name, "missing second operand")
            if not isinstance(second, Tensor):
                raise InvalidOperationError(
                    self.op_name,
                    f"second operand must be a Tensor, got {type(second).__name__}",
                )
            inputs: Tuple[Tensor, ...] = (first, second)
        else:
            if second is not None:
                raise InvalidOperationError(
                    self.op_name, "unary operator takes a single operand"
                )
            inputs = (first,)

        backend = default_backend() if backend is None else backend
        if not isinstance(backend, IBackend):
            raise TypeError(f"backend does not implement IBackend: {backend!r}")

        self._inputs = inputs
        self._backend = backend
        self._op_state = OperationState.CONFIGURED
        self._ctx = Context(parents=inputs, backward_fn=self.backward)
        self._configure(**params)

    def __repr__(self) -> str:
        shapes = ", ".join(str(t.shape) for t in self._inputs)
        return f"{type(self).__name__}({shapes}, state={self._op_state.value})"

    @property
    def _state(self) -> OperationState:
        return self._op_state

    @property
    def state(self) -> OperationState:
        return self._op_state

    @property
    def backend(self) -> IBackend:
        return self._backend

    @property
    def inputs(self) -> Tuple[Tensor, ...]:
        return self._inputs

    @property
    def ctx(self) -> Context:
        """Backward record consumed by the autograd pass."""
        return self._ctx

    def forward(self) -> ForwardResult:
        """
        Compute the operation's output.

        Returns
        -------
        Tensor or tuple[Tensor, Tensor]
            A new tensor, or `(values, indices)` for selection operators.

        Raises
        ------
        InvalidOperationError
            If the operation has already been consumed.
        """
        ...

    def backward(self, grad_out: Tensor) -> Tuple[Optional[Tensor], ...]:
        """
        Map the gradient of the (primary) output to per-input gradients.

        Raises
        ------
        InvalidOperationError
            If `forward()` has not run yet.
        InvalidShapeError
            If `grad_out` does not have the output's shape.
        """
        ...

    # ----------------------------
    # Operator hooks
    # ----------------------------
    @abstractmethod
    def _configure(self, **params) -> None:
        """Validate operand shapes and bind operator parameters."""
        ...

    @abstractmethod
    def _compute(self) -> ForwardResult:
        """Produce the forward result through the backend."""
        ...

    @abstractmethod
    def _gradients(self, grad_out: Tensor) -> Tuple[Optional[Tensor], ...]:
        """Per-input gradients; runs with gradient tracking disabled."""
        ...

    # ----------------------------
    # Helpers for operator implementations
    # ----------------------------
    def _binary(self, kind: BinaryKind, a: Tensor, b: Tensor) -> Tensor:
        return binary_kernel(self._backend, kind, a, b)

    def _unary(
        self, kind: UnaryKind, x: Tensor, exponent: Optional[float] = None
    ) -> Tensor:
        return wrap_buffer(self._backend.unary(kind, x.data, exponent), x.shape)

    @staticmethod
    def _const(value: float, like: Tensor) -> Tensor:
        """Size-1 tensor of `like`'s rank and dtype, for broadcasting."""
        return Tensor.full((1,) * like.ndim, value, dtype=like.dtype)

    def _sum_to_shape(self, g: Tensor, shape: Tuple[int, ...]) -> Tensor:
        """Sum `g` over the axes along which `shape` was broadcast."""
        axes = reduced_axes(g.shape, shape)
        if not axes:
            return g
        data, out_shape = self._backend.sum(g.data, g.shape, axes, True)
        return wrap_buffer(data, out_shape)


_control_path = create_path_builder()


def _backward_before_forward(op: Operation, state: OperationState) -> Exception:
    return InvalidOperationError(op.op_name, "backward called before forward")


@_control_path(Operation, Operation.forward, OperationState.CONFIGURED)
def _forward_configured(self: Operation) -> ForwardResult:
    out = self._compute()
    self._op_state = OperationState.CONSUMED

    primary = out[0] if isinstance(out, tuple) else out
    self._ctx.saved_meta["output_shape"] = primary.shape
    if is_grad_enabled() and any(t.requires_grad for t in self._inputs):
        primary._set_grad_fn(self)
    return out


@_control_path(Operation, Operation.forward, OperationState.CONSUMED)
def _forward_consumed(self: Operation) -> ForwardResult:
    raise InvalidOperationError(self.op_name, "operation already consumed")


@_control_path(
    Operation,
    Operation.backward,
    OperationState.CONSUMED,
    trap_exception=_backward_before_forward,
)
def _backward_consumed(self: Operation, grad_out: Tensor) -> Tuple[Optional[Tensor], ...]:
    if not isinstance(grad_out, Tensor):
        raise TypeError(f"grad_out must be a Tensor, got {type(grad_out)!r}")
    expected = self._ctx.saved_meta["output_shape"]
    if grad_out.shape != expected:
        raise InvalidShapeError(expected=expected, got=grad_out.shape)
    with no_grad():
        grads = tuple(self._gradients(grad_out))
    if len(grads) != len(self._inputs):
        raise InvalidOperationError(
            self.op_name,
            f"produced {len(grads)} gradients for {len(self._inputs)} inputs",
        )
    return grads
