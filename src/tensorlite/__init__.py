"""
tensorlite: a minimal tensor engine.

Public API
----------
- `Tensor`: flat-buffer N-dimensional array with broadcasting arithmetic,
  matrix product, top-k and max selection, and reverse-mode autograd.
- `apply` / `OpKind`: symbolic invocation of the closed operator set.
- `broadcast_op`: elementwise combination with an arbitrary Python callable.
- `BackendRegistry`: pluggable numeric backends ("numpy", "python").
- `EngineConfig`, `get_config`, `set_config`, `no_grad`: configuration.
- `TensorError` and its subclasses: structured failures.
"""

from .domain._errors import (
    EmptyTensorError,
    InvalidAxisError,
    InvalidDataLengthError,
    InvalidOperationError,
    InvalidShapeError,
    MatrixMultiplicationError,
    TensorError,
)
from .domain._shape import broadcast_shape, can_broadcast
from .infrastructure._autograd import backward
from .infrastructure._config import (
    EngineConfig,
    get_config,
    is_grad_enabled,
    no_grad,
    reset_config,
    set_config,
)
from .infrastructure.backends import BackendRegistry
from .infrastructure.functions import OpKind, apply, broadcast_op
from .infrastructure.tensor import Tensor

__version__ = "0.1.0"

__all__ = [
    "Tensor",
    "OpKind",
    "apply",
    "backward",
    "broadcast_op",
    "can_broadcast",
    "broadcast_shape",
    "BackendRegistry",
    "EngineConfig",
    "get_config",
    "set_config",
    "reset_config",
    "is_grad_enabled",
    "no_grad",
    "TensorError",
    "InvalidShapeError",
    "InvalidDataLengthError",
    "InvalidOperationError",
    "InvalidAxisError",
    "MatrixMultiplicationError",
    "EmptyTensorError",
]
