"""
Core module - the formulation data model.

Components:
----------
- EntityStore: identifier -> entity container
- CoefficientRelation: dual-indexed sparse (constraint, variable) -> coefficient
- Variable / Constraint: entities with perennial and current value records
- Formulation: variables, constraints, coefficients, sense and solution records
- FormulationRegistry: arena of formulations (uid counters, parent links)
- Duties and flags: structural role tags and their categories
"""

from opendw.core.coefficients import CoefficientRelation
from opendw.core.duties import (
    CONVEXITY_CONSTR,
    DW_SP_CONSTR,
    DW_SP_VAR,
    MASTER_CONSTR,
    MASTER_REP_DW_SP_VAR,
    MASTER_REPRESENTATIVE_VAR,
    MASTER_VAR,
    ORIGIN_MASTER_VAR,
    ConstrDuty,
    Flag,
    FormDuty,
    VarDuty,
)
from opendw.core.exceptions import (
    NotFoundError,
    OpenDWError,
    UnsupportedOperationError,
)
from opendw.core.formulation import (
    Formulation,
    clone_in_formulation,
    clone_varconstr,
)
from opendw.core.ids import ConstrId, IdCounter, VarId
from opendw.core.registry import FormulationRegistry
from opendw.core.solution import (
    DualSolution,
    OptimizationResult,
    PrimalSolution,
    SolutionStatus,
)
from opendw.core.store import EntityStore
from opendw.core.varconstr import (
    ConstrData,
    ConstrKind,
    ConstrSense,
    Constraint,
    VarData,
    VarKind,
    VarSense,
    Variable,
)

__all__ = [
    # Errors
    "OpenDWError",
    "NotFoundError",
    "UnsupportedOperationError",
    # Tags
    "Flag",
    "VarDuty",
    "ConstrDuty",
    "FormDuty",
    "ORIGIN_MASTER_VAR",
    "MASTER_REP_DW_SP_VAR",
    "MASTER_REPRESENTATIVE_VAR",
    "MASTER_VAR",
    "DW_SP_VAR",
    "CONVEXITY_CONSTR",
    "MASTER_CONSTR",
    "DW_SP_CONSTR",
    # Identifiers and entities
    "VarId",
    "ConstrId",
    "IdCounter",
    "VarData",
    "ConstrData",
    "VarKind",
    "VarSense",
    "ConstrSense",
    "ConstrKind",
    "Variable",
    "Constraint",
    # Containers
    "EntityStore",
    "CoefficientRelation",
    # Formulations
    "Formulation",
    "FormulationRegistry",
    "clone_in_formulation",
    "clone_varconstr",
    # Solutions
    "SolutionStatus",
    "PrimalSolution",
    "DualSolution",
    "OptimizationResult",
]
