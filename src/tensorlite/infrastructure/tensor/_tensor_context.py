from typing import Any, Callable, Sequence, Optional
from dataclasses import dataclass, field

from ...domain._tensor import ITensor


@dataclass
class Context:
    """
    Backward record owned by an operation.

    Every operation creates one `Context` at construction. The autograd pass
    reaches it through the `grad_fn` of an output tensor and uses it to walk
    from that output to the operation's inputs.

    Attributes
    ----------
    parents : Sequence[ITensor]
        The operation's input tensors, in operand order. Gradients are
        produced for these during the backward pass.
    backward_fn : Callable[[ITensor], Sequence[Optional[ITensor]]]
        Maps the gradient w.r.t. the operation's output to one gradient (or
        None) per entry of `parents`.
    saved_tensors : list[ITensor]
        Tensors kept from the forward pass for use in backward (e.g. the
        output of `exp`, the index tensor of `topk`).
    saved_meta : dict[str, Any]
        Non-tensor values needed by backward (output shape, reduction axis).
    """

    parents: Sequence["ITensor"]
    backward_fn: Callable[["ITensor"], Sequence[Optional["ITensor"]]]
    saved_tensors: list["ITensor"] = field(default_factory=list)
    saved_meta: dict[str, Any] = field(default_factory=dict)

    def save_for_backward(self, *tensors: "ITensor") -> None:
        """
        Save tensors for use during the backward computation.

        Parameters
        ----------
        *tensors : ITensor
            Any number of tensors to append to `saved_tensors`.
        """
        self.saved_tensors.extend(tensors)
