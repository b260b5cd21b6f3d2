"""
Backend registry and lookup.

Concrete backends register themselves by string name through a class
decorator. Operations never name a backend class directly: they receive an
`IBackend` instance, either explicitly or from the engine configuration,
which resolves it here by name.

Usage
-----
Registering a backend:

    @BackendRegistry.register_backend("numpy")
    class NumpyBackend:
        ...

Resolving a backend:

    backend = BackendRegistry.get("numpy")

Notes
-----
- Registration keys must be unique unless explicitly overwritten.
- Backends are stateless, so one shared instance per name is created lazily
  and handed to every caller.
"""

from __future__ import annotations

import logging
from typing import Callable, ClassVar, Dict, Type, TypeVar

from ...domain._backend import IBackend

logger = logging.getLogger(__name__)

B = TypeVar("B", bound=type)


class BackendRegistry:
    """
    Class-level registry mapping backend names to backend classes.
    """

    BACKENDS: ClassVar[Dict[str, Type]] = {}
    _INSTANCES: ClassVar[Dict[str, IBackend]] = {}

    @classmethod
    def register_backend(
        cls, name: str, *, overwrite: bool = False
    ) -> Callable[[B], B]:
        """
        Decorator to register a backend class under `name`.

        Parameters
        ----------
        name:
            Registry key used to retrieve the backend later.
        overwrite:
            If False (default), raises if `name` is already registered.
        """
        if not isinstance(name, str) or not name:
            raise ValueError("Backend name must be a non-empty string")

        def decorator(backend_cls: B) -> B:
            if not overwrite and name in cls.BACKENDS:
                raise ValueError(f"Backend already registered: {name!r}")
            cls.BACKENDS[name] = backend_cls
            cls._INSTANCES.pop(name, None)
            logger.debug("registered backend %r -> %s", name, backend_cls.__name__)
            return backend_cls

        return decorator

    @classmethod
    def available(cls) -> tuple[str, ...]:
        """Return registered backend names (sorted)."""
        return tuple(sorted(cls.BACKENDS))

    @classmethod
    def get(cls, name: str) -> IBackend:
        """
        Return the shared backend instance registered under `name`.

        Raises
        ------
        ValueError
            If no backend is registered under `name`.
        """
        instance = cls._INSTANCES.get(name)
        if instance is not None:
            return instance
        try:
            backend_cls = cls.BACKENDS[name]
        except KeyError as e:
            available = ", ".join(cls.available()) or "<none>"
            raise ValueError(
                f"Unsupported backend name: {name!r}. Available: {available}"
            ) from e
        instance = backend_cls()
        cls._INSTANCES[name] = instance
        logger.debug("instantiated backend %r", name)
        return instance
