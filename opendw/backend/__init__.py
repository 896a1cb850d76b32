"""
Solver backend module - LP/MIP solvers a formulation delegates to.

This module provides:
- SolverBackend: Abstract base class for custom backends
- HiGHSBackend: Default implementation using HiGHS
- CPLEXBackend: Optional implementation using IBM CPLEX (docplex)
- create_backend: Build a backend by name (default: config.default_solver)

Usage:
------
    >>> from opendw.backend import create_backend
    >>> result = formulation.optimize(create_backend(time_limit=60.0))

Creating a custom backend:

    >>> from opendw.backend import SolverBackend
    >>>
    >>> class MyGurobiBackend(SolverBackend):
    ...     def _load_impl(self, formulation):
    ...         ...
    ...     def _run_impl(self):
    ...         ...
"""

from typing import Optional

from opendw.backend.base import SolverBackend
from opendw.backend.highs import HIGHS_AVAILABLE, HiGHSBackend
from opendw.config import config

# Try to import CPLEX implementation
try:
    from opendw.backend.cplex import CPLEX_AVAILABLE, CPLEXBackend
except ImportError:
    CPLEX_AVAILABLE = False
    CPLEXBackend = None

_BACKENDS = {
    'highs': lambda: HiGHSBackend,
    'cplex': lambda: CPLEXBackend,
}


def create_backend(name: Optional[str] = None, **options) -> SolverBackend:
    """
    Build a solver backend by name.

    Args:
        name: 'highs' or 'cplex' (default: config.default_solver)
        **options: Passed to the backend constructor

    Returns:
        The backend

    Raises:
        ValueError: If the name is unknown
        ImportError: If the backend's solver is not installed
    """
    name = (name or config.default_solver).lower()
    if name not in _BACKENDS:
        raise ValueError(
            f"Unknown solver backend {name!r} (expected one of {sorted(_BACKENDS)})"
        )
    backend_cls = _BACKENDS[name]()
    if backend_cls is None:
        raise ImportError(f"Solver backend {name!r} is not available")
    return backend_cls(**options)


__all__ = [
    'SolverBackend',
    'HiGHSBackend',
    'HIGHS_AVAILABLE',
    'CPLEXBackend',
    'CPLEX_AVAILABLE',
    'create_backend',
]
