"""
Compute backends.

Importing this package registers the shipped backends:

- "numpy":  `NumpyBackend`, vectorized NumPy kernels (default)
- "python": `ReferenceBackend`, per-element reference loops
"""

from ._registry import BackendRegistry
from ._numpy_backend import NumpyBackend
from ._reference_backend import ReferenceBackend

__all__ = ["BackendRegistry", "NumpyBackend", "ReferenceBackend"]
