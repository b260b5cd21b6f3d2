from ._tensor import Tensor
from ._tensor_context import Context

__all__ = [Tensor.__name__, Context.__name__]
