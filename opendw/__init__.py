"""
OpenDW: formulation data model for Dantzig-Wolfe column generation

Variables, constraints and sparse coefficients of a master problem and its
pricing subproblems, with the fast read-only views a column generation or
Lagrangian subgradient algorithm consumes on every iteration.
"""

__version__ = "0.1.0"

# Configuration
from opendw.config import config
from opendw.logging_config import setup_logging

# Core classes - these are the main user-facing API
from opendw.core import (
    CoefficientRelation,
    ConstrDuty,
    ConstrId,
    ConstrSense,
    Constraint,
    DualSolution,
    EntityStore,
    Flag,
    FormDuty,
    Formulation,
    FormulationRegistry,
    NotFoundError,
    OpenDWError,
    OptimizationResult,
    PrimalSolution,
    SolutionStatus,
    UnsupportedOperationError,
    VarDuty,
    VarId,
    VarKind,
    Variable,
    clone_in_formulation,
)

# Solver backends
from opendw.backend import (
    CPLEX_AVAILABLE,
    HIGHS_AVAILABLE,
    CPLEXBackend,
    HiGHSBackend,
    SolverBackend,
    create_backend,
)

# Column generation views and diagnostics
from opendw.colgen import (
    ColumnAlreadyInsertedColGenWarning,
    ReducedCostsCalculationHelper,
    SubgradientCalculationHelper,
    check_column_insertion,
)

__all__ = [
    # Version
    "__version__",
    # Configuration
    "config",
    "setup_logging",
    # Errors
    "OpenDWError",
    "NotFoundError",
    "UnsupportedOperationError",
    # Core classes
    "EntityStore",
    "CoefficientRelation",
    "VarId",
    "ConstrId",
    "Variable",
    "Constraint",
    "VarKind",
    "ConstrSense",
    "Flag",
    "VarDuty",
    "ConstrDuty",
    "FormDuty",
    "Formulation",
    "FormulationRegistry",
    "clone_in_formulation",
    # Solutions
    "SolutionStatus",
    "PrimalSolution",
    "DualSolution",
    "OptimizationResult",
    # Backends
    "SolverBackend",
    "HiGHSBackend",
    "HIGHS_AVAILABLE",
    "CPLEXBackend",
    "CPLEX_AVAILABLE",
    "create_backend",
    # Column generation
    "ReducedCostsCalculationHelper",
    "SubgradientCalculationHelper",
    "ColumnAlreadyInsertedColGenWarning",
    "check_column_insertion",
]
