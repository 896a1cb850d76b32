"""
Duty and flag tags for variables, constraints and formulations.

A duty classifies the structural role of an entity inside a Dantzig-Wolfe
decomposition. Duties are grouped into categories (plain frozensets) and the
only thing the framework ever does with a duty is test membership in a
category:

    >>> VarDuty.MASTER_PURE_VAR.belongs_to(ORIGIN_MASTER_VAR)
    True
    >>> VarDuty.MASTER_COL in MASTER_REPRESENTATIVE_VAR
    False
"""

from enum import Enum, auto
from typing import FrozenSet


class Flag(Enum):
    """Origin of an entity: present at model build, added during search, or artificial."""
    STATIC = auto()
    DYNAMIC = auto()
    ARTIFICIAL = auto()


class _Duty(Enum):
    """Common behavior of duty enumerations."""

    def belongs_to(self, category: FrozenSet['_Duty']) -> bool:
        """Check if this duty is a member of a category."""
        return self in category


class VarDuty(_Duty):
    """Structural role of a variable."""
    ORIGINAL_VAR = auto()                  # Variable of the original (compact) formulation
    MASTER_PURE_VAR = auto()               # Original variable that stays in the master only
    MASTER_BRANCH_ON_ORIG_VAR = auto()     # Master variable created by branching on an original var
    MASTER_REP_PRICING_VAR = auto()        # Master representative of a subproblem variable
    MASTER_REP_PRICING_SETUP_VAR = auto()  # Master representative of a subproblem setup variable
    MASTER_COL = auto()                    # Column generated by a pricing subproblem
    MASTER_ART_VAR = auto()                # Artificial variable of the master
    DW_SP_PRICING_VAR = auto()             # Variable of a pricing subproblem
    DW_SP_SETUP_VAR = auto()               # Setup variable of a pricing subproblem


class ConstrDuty(_Duty):
    """Structural role of a constraint."""
    ORIGINAL_CONSTR = auto()
    MASTER_PURE_CONSTR = auto()                 # Involves pure master variables only
    MASTER_MIXED_CONSTR = auto()                # Links master and subproblem variables
    MASTER_CONVEXITY_CONSTR = auto()            # Bounds the multiplicity of a subproblem
    MASTER_BRANCH_ON_ORIG_VAR_CONSTR = auto()
    DW_SP_PURE_CONSTR = auto()


class FormDuty(Enum):
    """Role of a formulation in the master/subproblem/reformulation tree."""
    ORIGINAL = auto()
    DW_MASTER = auto()
    DW_SP = auto()
    REFORMULATION = auto()


# =============================================================================
# Variable categories
# =============================================================================

ORIGIN_MASTER_VAR: FrozenSet[VarDuty] = frozenset({
    VarDuty.MASTER_PURE_VAR,
    VarDuty.MASTER_BRANCH_ON_ORIG_VAR,
})

MASTER_REP_DW_SP_VAR: FrozenSet[VarDuty] = frozenset({
    VarDuty.MASTER_REP_PRICING_VAR,
    VarDuty.MASTER_REP_PRICING_SETUP_VAR,
})

# Representatives of original variables in the master
MASTER_REPRESENTATIVE_VAR: FrozenSet[VarDuty] = ORIGIN_MASTER_VAR | MASTER_REP_DW_SP_VAR

MASTER_VAR: FrozenSet[VarDuty] = MASTER_REPRESENTATIVE_VAR | frozenset({
    VarDuty.MASTER_COL,
    VarDuty.MASTER_ART_VAR,
})

DW_SP_VAR: FrozenSet[VarDuty] = frozenset({
    VarDuty.DW_SP_PRICING_VAR,
    VarDuty.DW_SP_SETUP_VAR,
})


# =============================================================================
# Constraint categories
# =============================================================================

CONVEXITY_CONSTR: FrozenSet[ConstrDuty] = frozenset({
    ConstrDuty.MASTER_CONVEXITY_CONSTR,
})

MASTER_CONSTR: FrozenSet[ConstrDuty] = CONVEXITY_CONSTR | frozenset({
    ConstrDuty.MASTER_PURE_CONSTR,
    ConstrDuty.MASTER_MIXED_CONSTR,
    ConstrDuty.MASTER_BRANCH_ON_ORIG_VAR_CONSTR,
})

DW_SP_CONSTR: FrozenSet[ConstrDuty] = frozenset({
    ConstrDuty.DW_SP_PURE_CONSTR,
})
