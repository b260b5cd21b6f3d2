"""
Symbolic operator invocation.

The operator set is closed: `OpKind` enumerates every operator and
`OPERATIONS` maps each member to its implementation. `apply` is equivalent
to constructing the operation and calling `forward()` on it.

Usage
-----
    out = apply(OpKind.ADD, a, b)
    values, idx = apply("topk", x, k=2, sorted=True)
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Type, Union

from ...domain._backend import IBackend
from ...domain._errors import InvalidOperationError
from ..tensor._tensor import Tensor
from ._base import ForwardResult, Operation
from ._elementwise import Add, Div, Mul, Sub
from ._matmul import Matmul
from ._reduction import Matmax, Topk
from ._unary import Abs, Exp, Log, Neg, Pow, Sqrt, Square


class OpKind(str, Enum):
    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    DIV = "div"
    MATMUL = "matmul"
    EXP = "exp"
    NEG = "neg"
    SQRT = "sqrt"
    ABS = "abs"
    SQUARE = "square"
    LOG = "log"
    POW = "pow"
    TOPK = "topk"
    MATMAX = "matmax"


OPERATIONS: Mapping[OpKind, Type[Operation]] = MappingProxyType(
    {
        OpKind.ADD: Add,
        OpKind.SUB: Sub,
        OpKind.MUL: Mul,
        OpKind.DIV: Div,
        OpKind.MATMUL: Matmul,
        OpKind.EXP: Exp,
        OpKind.NEG: Neg,
        OpKind.SQRT: Sqrt,
        OpKind.ABS: Abs,
        OpKind.SQUARE: Square,
        OpKind.LOG: Log,
        OpKind.POW: Pow,
        OpKind.TOPK: Topk,
        OpKind.MATMAX: Matmax,
    }
)


def apply(
    kind: Union[OpKind, str],
    first: Tensor,
    second: Optional[Tensor] = None,
    *,
    backend: Optional[IBackend] = None,
    **params,
) -> ForwardResult:
    """
    Construct the operator named by `kind` and run its forward pass.

    Parameters
    ----------
    kind : OpKind or str
        Operator tag (enum member or its string value).
    first : Tensor
        Primary operand.
    second : Tensor, optional
        Second operand of binary operators.
    backend : IBackend, optional
        Backend override; defaults to the configured backend.
    **params
        Operator parameters (`strict`, `exponent`, `k`/`sorted`,
        `axis`/`keepdim`).

    Raises
    ------
    InvalidOperationError
        If `kind` does not name an operator.
    """
    try:
        kind = OpKind(kind)
    except ValueError as e:
        available = ", ".join(k.value for k in OpKind)
        raise InvalidOperationError(
            str(kind), f"unknown operator. Available: {available}"
        ) from e
    return OPERATIONS[kind](first, second, backend=backend, **params).forward()
