"""
Information extracted from the master to speed up column generation.

Both helpers are immutable snapshots built once from a master formulation:
- ReducedCostsCalculationHelper: costs and coefficients needed to price
  subproblem representatives and pure master variables
- SubgradientCalculationHelper: right-hand sides and coefficients needed to
  compute the Lagrangian subgradient

A snapshot stays valid while the explicit variables, constraints and
coefficients of the master do not change. Adding or deactivating a column or
a constraint requires a rebuild; changing bounds does not. Staleness is not
checked here.
"""

from types import MappingProxyType
from typing import Dict, Mapping, Optional, Set, Tuple

from opendw.config import config
from opendw.core.coefficients import CoefficientRelation
from opendw.core.duties import (
    CONVEXITY_CONSTR,
    MASTER_REP_DW_SP_VAR,
    MASTER_REPRESENTATIVE_VAR,
    ORIGIN_MASTER_VAR,
)
from opendw.core.formulation import Formulation
from opendw.core.ids import ConstrId, VarId


def _kept_constr_ids(master: Formulation) -> list:
    """Active, explicit constraints that are not convexity constraints."""
    return master.constr_ids(
        predicate=lambda c: c.is_explicit and c.duty not in CONVEXITY_CONSTR,
        active_only=True,
    )


def _submatrix(
    master: Formulation,
    constr_ids: list,
    var_ids: Set[VarId],
    capacity: Optional[int],
) -> CoefficientRelation:
    kept_constrs = set(constr_ids)
    return master.coefficients.extract(
        kept_constrs.__contains__,
        var_ids.__contains__,
        capacity=capacity,
        constr_ids=constr_ids,
    ).freeze()


def _costs_and_coeffs(
    master: Formulation,
    var_category,
    constr_ids: list,
    capacity: Optional[int],
) -> Tuple[Mapping[VarId, float], CoefficientRelation]:
    costs = {
        var_id: var.perennial_cost
        for var_id, var in master.variables
        if var.is_active and var.duty in var_category
    }
    return MappingProxyType(costs), _submatrix(master, constr_ids, set(costs), capacity)


class ReducedCostsCalculationHelper:
    """
    Extracted information to speed up the calculation of reduced costs.

    For DW subproblem representative variables:
    - dw_subprob_c: perennial cost of the active representatives
    - dw_subprob_A: master coefficients restricted to those variables

    For pure master variables:
    - master_c: perennial cost of the active pure master variables
    - master_A: master coefficients restricted to those variables

    Matrices only keep rows of active, explicit, non-convexity constraints.
    Reduced costs are `c - transpose(A) * dual`.

    Example:
        >>> helper = ReducedCostsCalculationHelper(master)
        >>> sp_rc, master_rc = helper.reduced_costs(dual_solution.values)
    """

    __slots__ = ("_dw_subprob_c", "_dw_subprob_A", "_master_c", "_master_A")

    def __init__(self, master: Formulation, capacity: Optional[int] = None):
        """
        Build the snapshot.

        Args:
            master: The master formulation
            capacity: Identifier-space hint for the matrices
                (default: config.max_nb_elems)
        """
        if capacity is None:
            capacity = config.max_nb_elems
        constr_ids = _kept_constr_ids(master)
        self._dw_subprob_c, self._dw_subprob_A = _costs_and_coeffs(
            master, MASTER_REP_DW_SP_VAR, constr_ids, capacity
        )
        self._master_c, self._master_A = _costs_and_coeffs(
            master, ORIGIN_MASTER_VAR, constr_ids, capacity
        )

    @property
    def dw_subprob_c(self) -> Mapping[VarId, float]:
        return self._dw_subprob_c

    @property
    def dw_subprob_A(self) -> CoefficientRelation:
        return self._dw_subprob_A

    @property
    def master_c(self) -> Mapping[VarId, float]:
        return self._master_c

    @property
    def master_A(self) -> CoefficientRelation:
        return self._master_A

    def reduced_costs(
        self,
        duals: Mapping[ConstrId, float]
    ) -> Tuple[Dict[VarId, float], Dict[VarId, float]]:
        """
        Evaluate `c - transpose(A) * duals` on both partitions.

        Args:
            duals: Mapping constraint id -> dual value

        Returns:
            (reduced costs of subproblem representatives,
             reduced costs of pure master variables)
        """
        return (
            _reduced_costs(self._dw_subprob_c, self._dw_subprob_A, duals),
            _reduced_costs(self._master_c, self._master_A, duals),
        )

    def __repr__(self) -> str:
        return (
            f"ReducedCostsCalculationHelper(dw_subprob_vars={len(self._dw_subprob_c)}, "
            f"master_vars={len(self._master_c)})"
        )


def _reduced_costs(costs, matrix, duals) -> Dict[VarId, float]:
    dual_contrib = matrix.transpose_mul(duals)
    return {var_id: c - dual_contrib.get(var_id, 0.0) for var_id, c in costs.items()}


class SubgradientCalculationHelper:
    """
    Precomputed information to speed up the subgradient calculation.

    - a: perennial rhs of every active, explicit, non-convexity master constraint
    - A: master coefficients on those constraints restricted to the
      representatives of original variables (pure master variables and DW
      subproblem representatives)

    Calculation is `a - A * (m .* z)` where:
    - m holds a multiplicity per variable (lower or upper subproblem
      multiplicity depending on the variable's reduced cost)
    - z concatenates the master solution (pure master variables) and the
      pricing solutions (subproblem representatives)

    `m .* z` mimics a solution in the original space.
    """

    __slots__ = ("_a", "_A")

    def __init__(self, master: Formulation, capacity: Optional[int] = None):
        """
        Build the snapshot.

        Args:
            master: The master formulation
            capacity: Identifier-space hint for the matrix
                (default: config.max_nb_elems)
        """
        if capacity is None:
            capacity = config.max_nb_elems
        constr_ids = _kept_constr_ids(master)
        self._a = MappingProxyType({
            constr_id: master.get_perennial_rhs(constr_id) for constr_id in constr_ids
        })
        rep_var_ids = {
            var_id for var_id, var in master.variables
            if var.duty in MASTER_REPRESENTATIVE_VAR
        }
        self._A = _submatrix(master, constr_ids, rep_var_ids, capacity)

    @property
    def a(self) -> Mapping[ConstrId, float]:
        return self._a

    @property
    def A(self) -> CoefficientRelation:
        return self._A

    def subgradient(
        self,
        solution: Mapping[VarId, float],
        multiplicities: Optional[Mapping[VarId, float]] = None,
    ) -> Dict[ConstrId, float]:
        """
        Evaluate `a - A * (m .* z)`.

        Args:
            solution: z, mapping variable id -> value
            multiplicities: m, mapping variable id -> multiplicity. Variables
                without an entry have multiplicity 1.

        Returns:
            Mapping constraint id -> subgradient component, one per entry of a
        """
        if multiplicities is None:
            scaled = solution
        else:
            scaled = {
                var_id: multiplicities.get(var_id, 1.0) * value
                for var_id, value in solution.items()
            }
        activity = self._A.mul(scaled)
        return {
            constr_id: rhs - activity.get(constr_id, 0.0)
            for constr_id, rhs in self._a.items()
        }

    def __repr__(self) -> str:
        return f"SubgradientCalculationHelper(constraints={len(self._a)}, nnz={self._A.nnz})"
