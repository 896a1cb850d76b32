"""
CPLEX implementation of the solver backend.

This module provides a backend using IBM CPLEX through the docplex API.
Like the HiGHS backend, it rebuilds the model from the formulation on every
optimize() call:
- active explicit variables become docplex variables (current cost, bounds
  and kind)
- active explicit constraints become linear constraints (current rhs, sense)

Usage:
    >>> from opendw.backend.cplex import CPLEXBackend
    >>> result = master.optimize(CPLEXBackend(time_limit=300))

Requirements:
    - IBM CPLEX must be installed
    - docplex package: pip install docplex
"""

import time
from typing import Any, Dict, List, Optional

try:
    from docplex.mp.model import Model as CplexModel
    from docplex.mp.solution import SolveSolution
    CPLEX_AVAILABLE = True
except ImportError:
    CPLEX_AVAILABLE = False
    CplexModel = None

from opendw.backend.base import SolverBackend
from opendw.core.ids import ConstrId, VarId
from opendw.core.solution import SolutionStatus
from opendw.core.varconstr import ConstrSense, VarKind, VarSense


def _map_cplex_status(solve_status: Any) -> SolutionStatus:
    """Map CPLEX solve status to our SolutionStatus."""
    if not CPLEX_AVAILABLE:
        return SolutionStatus.ERROR

    if solve_status is None:
        return SolutionStatus.NOT_SOLVED

    status_name = str(solve_status).lower()

    if 'optimal' in status_name:
        return SolutionStatus.OPTIMAL
    elif 'infeasible' in status_name and 'unbounded' in status_name:
        return SolutionStatus.INF_OR_UNBOUNDED
    elif 'infeasible' in status_name:
        return SolutionStatus.INFEASIBLE
    elif 'unbounded' in status_name:
        return SolutionStatus.UNBOUNDED
    elif 'time' in status_name or 'limit' in status_name or 'feasible' in status_name:
        # Feasible but not proven optimal: a limit stopped the search
        return SolutionStatus.TIME_LIMIT
    else:
        return SolutionStatus.ERROR


class CPLEXBackend(SolverBackend):
    """
    Solver backend using IBM CPLEX.

    Attributes:
        time_limit: Maximum solve time in seconds (None = no limit)
        verbosity: CPLEX output level (0 = silent, 1+ = verbose)
        threads: Number of threads to use (0 = automatic)
        solve_time: Wall time of the last run, in seconds
    """

    def __init__(
        self,
        time_limit: Optional[float] = None,
        verbosity: int = 0,
        threads: int = 0,
        mip_gap: float = 1e-4,
    ):
        """
        Initialize the CPLEX backend.

        Args:
            time_limit: Maximum solve time in seconds (None = no limit)
            verbosity: CPLEX output level (0 = silent)
            threads: Number of threads (0 = automatic)
            mip_gap: MIP optimality gap tolerance

        Raises:
            ImportError: If docplex/CPLEX is not available
        """
        if not CPLEX_AVAILABLE:
            raise ImportError(
                "CPLEX is not available. Install it with: pip install docplex\n"
                "Also ensure IBM CPLEX is installed and configured."
            )

        self._time_limit = time_limit
        self._verbosity = verbosity
        self._threads = threads
        self._mip_gap = mip_gap

        self._model: Optional[CplexModel] = None
        self._solution: Optional[SolveSolution] = None
        self._vars: Dict[VarId, Any] = {}
        self._constrs: Dict[ConstrId, Any] = {}
        self._is_mip = False
        self.solve_time = 0.0

    # =========================================================================
    # Abstract Method Implementations
    # =========================================================================

    def _load_impl(self, formulation) -> None:
        """Build a fresh docplex model from the formulation."""
        self._model = CplexModel(name=f"form_{formulation.uid}")
        self._model.context.solver.log_output = self._verbosity > 0
        if self._time_limit is not None:
            self._model.set_time_limit(self._time_limit)
        if self._threads > 0:
            self._model.context.cplex_parameters.threads = self._threads
        self._model.parameters.mip.tolerances.mipgap = self._mip_gap

        self._solution = None
        self._vars = {}
        self._constrs = {}
        self._is_mip = False

        for var_id, var in formulation.variables:
            if not (var.is_active and var.is_explicit):
                continue
            data = var.current_data
            lower, upper = data.lb, data.ub
            if data.sense == VarSense.POSITIVE:
                lower = max(lower, 0.0)
            elif data.sense == VarSense.NEGATIVE:
                upper = min(upper, 0.0)
            lower = None if lower == float('-inf') else lower
            upper = None if upper == float('inf') else upper

            name = var.name
            if data.kind == VarKind.CONTINUOUS:
                self._vars[var_id] = self._model.continuous_var(lb=lower, ub=upper, name=name)
            else:
                self._vars[var_id] = self._model.integer_var(lb=lower, ub=upper, name=name)
                self._is_mip = True

        self._model.minimize(self._model.sum(
            formulation.variables.get(var_id).cost * dvar
            for var_id, dvar in self._vars.items()
        ))

        for constr_id, constr in formulation.constraints:
            if not (constr.is_active and constr.is_explicit):
                continue
            expr = self._model.linear_expr()
            for var_id, coeff in formulation.coefficients.row(constr_id):
                dvar = self._vars.get(var_id)
                if dvar is not None:
                    expr += coeff * dvar

            rhs = constr.current_data.rhs
            if constr.sense == ConstrSense.GREATER:
                ct = expr >= rhs
            elif constr.sense == ConstrSense.LESS:
                ct = expr <= rhs
            else:
                ct = expr == rhs
            self._constrs[constr_id] = self._model.add_constraint(ct, ctname=constr.name)

    def _run_impl(self) -> None:
        start_time = time.time()
        self._solution = self._model.solve()
        self.solve_time = time.time() - start_time

    def get_termination_status(self) -> SolutionStatus:
        if self._model is None:
            return SolutionStatus.NOT_SOLVED
        if self._solution is None and self._model.solve_status is None:
            return SolutionStatus.INFEASIBLE
        return _map_cplex_status(self._model.solve_status)

    def get_result_count(self) -> int:
        return 0 if self._solution is None else 1

    def get_objective_value(self) -> float:
        return self._solution.objective_value

    def get_primal_values(self) -> Dict[VarId, float]:
        values = {}
        for var_id, dvar in self._vars.items():
            value = self._solution.get_value(dvar)
            if value is not None and abs(value) > 1e-10:
                values[var_id] = value
        return values

    def get_dual_values(self) -> Optional[Dict[ConstrId, float]]:
        """Constraint duals of an LP; None for a MIP."""
        if self._is_mip or self._solution is None:
            return None
        constr_ids: List[ConstrId] = list(self._constrs)
        if not constr_ids:
            return {}
        duals = self._model.dual_values([self._constrs[c] for c in constr_ids])
        return {
            constr_id: (dual if dual is not None else 0.0)
            for constr_id, dual in zip(constr_ids, duals)
        }

    def get_dual_bound(self) -> Optional[float]:
        if self._is_mip and self._solution is not None:
            return self._model.solve_details.best_bound
        return None

    # =========================================================================
    # CPLEX-specific Methods
    # =========================================================================

    @property
    def is_mip(self) -> bool:
        return self._is_mip

    def set_time_limit(self, seconds: float) -> None:
        """Set the solver time limit (applies from the next optimize())."""
        self._time_limit = seconds

    def set_verbosity(self, level: int) -> None:
        self._verbosity = level

    def get_model_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the last loaded model.

        Returns:
            Dictionary with model statistics
        """
        if self._model is None:
            return {'num_variables': 0, 'num_constraints': 0}
        return {
            'num_variables': self._model.number_of_variables,
            'num_constraints': self._model.number_of_constraints,
        }

    def __repr__(self) -> str:
        return f"CPLEXBackend(time_limit={self._time_limit}, threads={self._threads})"
