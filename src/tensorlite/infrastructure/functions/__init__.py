"""
Operators of the computation graph.

Every operator is an `Operation` subclass that borrows its inputs, runs
its arithmetic on a pluggable backend, and supports a single forward pass
followed by any number of backward calls.
"""

from ._base import Operation
from ._broadcast import broadcast_op
from ._dispatch import OPERATIONS, OpKind, apply
from ._elementwise import Add, Div, Mul, Sub
from ._matmul import Matmul
from ._reduction import Matmax, Topk
from ._unary import Abs, Exp, Log, Neg, Pow, Sqrt, Square

__all__ = [
    "Operation",
    "OpKind",
    "OPERATIONS",
    "apply",
    "broadcast_op",
    "Add",
    "Sub",
    "Mul",
    "Div",
    "Matmul",
    "Exp",
    "Neg",
    "Sqrt",
    "Abs",
    "Square",
    "Log",
    "Pow",
    "Topk",
    "Matmax",
]
