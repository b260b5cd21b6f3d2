"""
Reverse-mode autograd pass.

`backward(tensor, grad_out)` walks the DAG formed by `grad_fn` links from
`tensor` back to its leaves:

1. Build a topological order of every tensor reachable through
   `grad_fn.ctx.parents` (depth-first, deduplicated by identity).
2. Visit it in reverse, handing each node's accumulated gradient to its
   operation's `backward_fn` and summing the returned gradients per parent.
3. Add the final gradients into `.grad` of leaf tensors that require them.

The pass runs with gradient tracking disabled, so nothing it computes is
recorded into a new graph.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Tuple

from ..domain._errors import InvalidOperationError
from ._config import no_grad
from .tensor._tensor import Tensor

logger = logging.getLogger(__name__)


def _topological_order(root: Tensor) -> List[Tensor]:
    """
    Post-order DFS over `grad_fn` edges, parents before children.

    Uses an explicit stack so graph depth is not bounded by the interpreter's
    recursion limit.
    """
    topo: List[Tensor] = []
    visited: set[int] = {id(root)}
    stack: List[Tuple[Tensor, Iterator[Tensor]]] = [(root, _parents(root))]

    while stack:
        t, pending = stack[-1]
        for p in pending:
            if id(p) not in visited:
                visited.add(id(p))
                stack.append((p, _parents(p)))
                break
        else:
            stack.pop()
            topo.append(t)

    return topo


def _parents(t: Tensor) -> Iterator[Tensor]:
    op = t.grad_fn
    return iter(op.ctx.parents if op is not None else ())


def backward(tensor: Tensor, grad_out: Optional[Tensor] = None) -> None:
    """
    Backpropagate from `tensor` and accumulate gradients into leaves.

    Parameters
    ----------
    tensor : Tensor
        Output to differentiate.
    grad_out : Optional[Tensor], optional
        Gradient w.r.t. `tensor`. If omitted, `tensor` must hold exactly one
        element and a gradient of ones is used.

    Raises
    ------
    InvalidOperationError
        If `tensor` does not require gradients, if `grad_out` is omitted for
        a tensor with more than one element, or if an operation returns a
        gradient of the wrong arity or shape.
    InvalidShapeError
        If `grad_out` does not match `tensor.shape`.
    """
    if not tensor.requires_grad:
        raise InvalidOperationError(
            "backward", "tensor does not require grad and has no grad_fn"
        )
    if grad_out is None:
        if tensor.size != 1:
            raise InvalidOperationError(
                "backward",
                f"grad_out must be provided for non-scalar tensors, got shape {tensor.shape}",
            )
        grad_out = Tensor.ones(tensor.shape, dtype=tensor.dtype)
    else:
        if not isinstance(grad_out, Tensor):
            raise TypeError(f"grad_out must be a Tensor, got {type(grad_out)!r}")
        tensor.check_shape_matches(grad_out)

    topo = _topological_order(tensor)
    logger.debug("backward: %d tensors reachable from %r", len(topo), tensor.shape)

    with no_grad():
        grads: Dict[int, Tensor] = {id(tensor): grad_out.detach()}

        for t in reversed(topo):
            op = t.grad_fn
            if op is None:
                continue
            grad_t = grads.get(id(t))
            if grad_t is None:
                continue

            ctx = op.ctx
            parent_grads = ctx.backward_fn(grad_t)
            if len(parent_grads) != len(ctx.parents):
                raise InvalidOperationError(
                    "backward",
                    f"{type(op).__name__} returned {len(parent_grads)} gradients "
                    f"for {len(ctx.parents)} inputs",
                )

            for parent, g in zip(ctx.parents, parent_grads):
                if g is None or not parent.requires_grad:
                    continue
                if g.shape != parent.shape:
                    raise InvalidOperationError(
                        "backward",
                        f"{type(op).__name__} gradient shape {g.shape} "
                        f"does not match input shape {parent.shape}",
                    )
                pid = id(parent)
                if pid in grads:
                    grads[pid] = Tensor(grads[pid].data + g.data, parent.shape)
                else:
                    grads[pid] = g

        for t in topo:
            if t.is_leaf and t.requires_grad and id(t) in grads:
                t._accumulate_grad(grads[id(t)])
