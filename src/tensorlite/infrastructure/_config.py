"""
Engine configuration.

A single process-wide `EngineConfig` selects the default compute backend,
the default element dtype of newly built tensors, and whether operations
record the autograd graph. Defaults can be overridden through environment
variables when the configuration is first built:

- `TENSORLITE_BACKEND`       backend name (default "numpy")
- `TENSORLITE_GRAD_ENABLED`  "0", "false", "no", "off" (any case) disable
                             graph recording (default enabled)
- `TENSORLITE_DTYPE`         default dtype name (default "float32")

Gradient tracking can also be switched off temporarily with `no_grad`, which
works both as a context manager and as a decorator. The same forward code
runs in both modes; only graph recording differs.
"""

from __future__ import annotations

import functools
import logging
import os
from dataclasses import dataclass, replace
from typing import Callable, Mapping, Optional, TypeVar

import numpy as np

from ..domain._backend import IBackend
from .backends import BackendRegistry

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable)

ENV_BACKEND = "TENSORLITE_BACKEND"
ENV_GRAD_ENABLED = "TENSORLITE_GRAD_ENABLED"
ENV_DTYPE = "TENSORLITE_DTYPE"

_FALSE_STRINGS = ("0", "false", "no", "off")


@dataclass(frozen=True)
class EngineConfig:
    """
    Immutable engine settings.

    Attributes
    ----------
    backend : str
        Registry name of the default backend.
    grad_enabled : bool
        Whether operations record `grad_fn` on their outputs.
    dtype : str
        NumPy dtype name used when a tensor is built from Python data.
    """

    backend: str = "numpy"
    grad_enabled: bool = True
    dtype: str = "float32"

    def __post_init__(self) -> None:
        if self.backend not in BackendRegistry.available():
            available = ", ".join(BackendRegistry.available()) or "<none>"
            raise ValueError(
                f"Unsupported backend name: {self.backend!r}. Available: {available}"
            )
        try:
            np.dtype(self.dtype)
        except TypeError as e:
            raise ValueError(f"Unsupported dtype name: {self.dtype!r}") from e

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """
        Build a configuration from environment variables.

        Parameters
        ----------
        environ : Mapping[str, str], optional
            Variables to read. Defaults to `os.environ`.
        """
        env = os.environ if environ is None else environ
        kwargs = {}
        if env.get(ENV_BACKEND):
            kwargs["backend"] = env[ENV_BACKEND]
        if env.get(ENV_GRAD_ENABLED) is not None:
            kwargs["grad_enabled"] = (
                env[ENV_GRAD_ENABLED].strip().lower() not in _FALSE_STRINGS
            )
        if env.get(ENV_DTYPE):
            kwargs["dtype"] = env[ENV_DTYPE]
        if kwargs:
            logger.debug("configuration overrides from environment: %s", kwargs)
        return cls(**kwargs)

    @property
    def np_dtype(self) -> np.dtype:
        return np.dtype(self.dtype)


_config: Optional[EngineConfig] = None


def get_config() -> EngineConfig:
    """Return the active configuration, building it from the environment once."""
    global _config
    if _config is None:
        _config = EngineConfig.from_env()
    return _config


def set_config(config: EngineConfig) -> EngineConfig:
    """
    Install `config` as the active configuration.

    Returns
    -------
    EngineConfig
        The previously active configuration, for later restoration.
    """
    global _config
    if not isinstance(config, EngineConfig):
        raise TypeError(f"expected EngineConfig, got {type(config).__name__}")
    previous = get_config()
    _config = config
    logger.debug("configuration set: %s", config)
    return previous


def reset_config() -> None:
    """Drop the active configuration; the next access re-reads the environment."""
    global _config
    _config = None


def is_grad_enabled() -> bool:
    return get_config().grad_enabled


def set_grad_enabled(enabled: bool) -> None:
    set_config(replace(get_config(), grad_enabled=bool(enabled)))


def default_backend() -> IBackend:
    """Resolve the configured backend from the registry."""
    return BackendRegistry.get(get_config().backend)


class no_grad:
    """Context manager / decorator that disables graph recording."""

    def __enter__(self) -> "no_grad":
        self._prev = is_grad_enabled()
        set_grad_enabled(False)
        return self

    def __exit__(self, *args) -> None:
        set_grad_enabled(self._prev)

    def __call__(self, fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(*a, **kw):
            with no_grad():
                return fn(*a, **kw)

        return wrapper
