"""
State-keyed method dispatch ("control paths") via decorators.

An object whose behaviour depends on a lifecycle state can expose a single
public method (e.g. `forward`) and register one implementation per state
instead of branching on the state inside the method body.

Core idea
---------
- A *base* method on a class provides the canonical name, signature, and
  docstring.
- Implementations are registered per `(owner, method, state)` key, where
  `owner` is the name of the class the path was registered on.
- At call time the installed wrapper reads the instance's `_state` and calls
  the implementation registered for it as a bound method, i.e. with `self`
  as the first argument.

Subclasses inherit the wrapper, and the lookup uses the owner recorded at
registration, so a base class can own the state machine while its
subclasses only supply the per-operator hooks the paths call into.
"""

from functools import wraps
from typing import Any, Callable, Dict, Hashable, NamedTuple, Optional, Tuple, Type

from typing_extensions import ParamSpec, TypeVar

P = ParamSpec("P")
R = TypeVar("R")

TrapFactory = Callable[[Any, Hashable], BaseException]
"""Builds the exception raised when no path matches `(instance, state)`."""

PathBuilder = Callable[
    [Type, Callable[P, R], Hashable, Optional[TrapFactory]],
    Callable[[Callable[P, R]], Callable[P, R]],
]

_STATE_ATTR = "_state"


class PathKey(NamedTuple):
    owner: str
    method: str
    state: Hashable


def create_path_builder() -> PathBuilder:
    """
    Create a "path builder" used to register stateful control paths.

    Usage:

        path = create_path_builder()

        class Machine:
            def run(self) -> int: ...

        @path(Machine, Machine.run, state="idle")
        def _run_idle(self) -> int:
            ...

        @path(Machine, Machine.run, state="busy",
              trap_exception=lambda obj, state: RuntimeError(state))
        def _run_busy(self) -> int:
            ...

    `Machine().run()` then dispatches on `self._state`.

    Returns
    -------
    Callable
        `(cls, method, state, trap_exception=None) -> decorator`, where
        `decorator(sub_method)` registers `sub_method` for that path and
        installs the dispatching wrapper on `cls`.

    Notes
    -----
    Each builder owns its own registry; paths registered through different
    builders never see each other.
    """
    paths: Dict[PathKey, Callable] = {}
    traps: Dict[Tuple[str, str], TrapFactory] = {}

    def register(
        cls: Type,
        method: Callable[P, R],
        state: Hashable,
        trap_exception: Optional[TrapFactory] = None,
    ) -> Callable[[Callable[P, R]], Callable[P, R]]:
        """
        Return a decorator that registers the implementation of `method`
        for `state` on `cls`.

        `trap_exception(instance, current_state)` builds the exception
        raised when no path matches; the most recently supplied factory for a
        method wins. Without one the wrapper raises `NotImplementedError`.

        Raises
        ------
        TypeError
            If `state` is not hashable.
        """
        try:
            hash(state)
        except TypeError:
            raise TypeError(
                f"The argument for 'state' must be hashable. Got {state!r}"
            ) from None

        owner, name = cls.__name__, method.__name__
        if trap_exception is not None:
            traps[(owner, name)] = trap_exception

        def decorator(sub_method: Callable[P, R]) -> Callable[P, R]:
            paths[PathKey(owner, name, state)] = sub_method

            @wraps(method)
            def dispatch(self: Any, *args: P.args, **kwargs: P.kwargs) -> Any:
                if not hasattr(self, _STATE_ATTR):
                    raise NotImplementedError(
                        f"{type(self)} is missing attribute {_STATE_ATTR!r} (@property)"
                    )
                current = getattr(self, _STATE_ATTR)
                impl = paths.get(PathKey(owner, name, current))
                if impl is not None:
                    return impl(self, *args, **kwargs)

                trap = traps.get((owner, name))
                if trap is None:
                    raise NotImplementedError(
                        f"Missing control path (state={current!r}) "
                        f"for {method.__qualname__!r}"
                    )
                raise trap(self, current)

            setattr(cls, name, dispatch)
            return sub_method

        return decorator

    return register
