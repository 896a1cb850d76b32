"""
HiGHS implementation of the solver backend.

HiGHS is the default backend for OpenDW because:
- Open source (MIT license)
- High performance (competitive with commercial solvers)
- Good Python bindings (highspy)
- Solves both LPs (with duals) and MIPs

The backend rebuilds the HiGHS model from the formulation on every
optimize() call, so structural changes (new columns, new cuts, deactivated
entities) are always picked up:
- active explicit variables become columns (current cost and bounds)
- active explicit constraints become rows (current rhs and sense)

Usage:
    >>> from opendw.backend import HiGHSBackend
    >>> result = master.optimize(HiGHSBackend(time_limit=60.0))
    >>> result.dual_solution.values
"""

import math
import time
from typing import Any, Dict, List, Optional

try:
    import highspy
    HIGHS_AVAILABLE = True
except ImportError:
    HIGHS_AVAILABLE = False

from opendw.backend.base import SolverBackend
from opendw.config import config
from opendw.core.ids import ConstrId, VarId
from opendw.core.solution import SolutionStatus
from opendw.core.varconstr import ConstrSense, VarKind, VarSense


# HiGHS status mapping
def _map_highs_status(status) -> SolutionStatus:
    """Map HiGHS model status to our SolutionStatus."""
    if not HIGHS_AVAILABLE:
        return SolutionStatus.ERROR

    status_map = {
        highspy.HighsModelStatus.kNotset: SolutionStatus.NOT_SOLVED,
        highspy.HighsModelStatus.kLoadError: SolutionStatus.ERROR,
        highspy.HighsModelStatus.kModelError: SolutionStatus.ERROR,
        highspy.HighsModelStatus.kPresolveError: SolutionStatus.ERROR,
        highspy.HighsModelStatus.kSolveError: SolutionStatus.ERROR,
        highspy.HighsModelStatus.kPostsolveError: SolutionStatus.ERROR,
        highspy.HighsModelStatus.kModelEmpty: SolutionStatus.OPTIMAL,
        highspy.HighsModelStatus.kOptimal: SolutionStatus.OPTIMAL,
        highspy.HighsModelStatus.kInfeasible: SolutionStatus.INFEASIBLE,
        highspy.HighsModelStatus.kUnbounded: SolutionStatus.UNBOUNDED,
        highspy.HighsModelStatus.kUnboundedOrInfeasible: SolutionStatus.INF_OR_UNBOUNDED,
        highspy.HighsModelStatus.kTimeLimit: SolutionStatus.TIME_LIMIT,
        highspy.HighsModelStatus.kIterationLimit: SolutionStatus.ITERATION_LIMIT,
    }

    return status_map.get(status, SolutionStatus.ERROR)


def _highs_bound(value: float) -> float:
    """Convert +/-inf to the HiGHS infinity."""
    if math.isinf(value):
        return highspy.kHighsInf if value > 0 else -highspy.kHighsInf
    return value


class HiGHSBackend(SolverBackend):
    """
    Solver backend using HiGHS.

    Attributes:
        time_limit: Maximum solve time in seconds (None = no limit)
        verbosity: HiGHS output level (0 = silent, 1 = normal, 2 = verbose)
        solve_time: Wall time of the last run, in seconds
    """

    # HiGHS solution status code for a feasible solution
    _SOLUTION_FEASIBLE = 2

    def __init__(
        self,
        time_limit: Optional[float] = None,
        verbosity: int = 0,
        num_threads: Optional[int] = None,
    ):
        """
        Initialize the HiGHS backend.

        Args:
            time_limit: Maximum solve time in seconds (None = no limit)
            verbosity: HiGHS output level (0 = silent)
            num_threads: Threads HiGHS may use (default: config.num_threads)

        Raises:
            ImportError: If highspy is not installed
        """
        if not HIGHS_AVAILABLE:
            raise ImportError(
                "HiGHS is not available. Install it with: pip install highspy"
            )

        self._time_limit = time_limit
        self._verbosity = verbosity
        self._num_threads = num_threads if num_threads is not None else config.num_threads

        self._highs: Optional[highspy.Highs] = None
        self._col_var_ids: List[VarId] = []
        self._row_constr_ids: List[ConstrId] = []
        self._is_mip = False
        self.solve_time = 0.0

    # =========================================================================
    # Abstract Method Implementations
    # =========================================================================

    def _load_impl(self, formulation) -> None:
        """Build a fresh HiGHS model from the formulation."""
        self._highs = highspy.Highs()

        # Set options
        self._highs.setOptionValue('output_flag', self._verbosity > 0)
        self._highs.setOptionValue('log_to_console', self._verbosity > 0)
        if self._num_threads > 1:
            self._highs.setOptionValue('threads', self._num_threads)
        if self._time_limit is not None:
            self._highs.setOptionValue('time_limit', self._time_limit)

        self._highs.changeObjectiveSense(highspy.ObjSense.kMinimize)

        self._col_var_ids = []
        self._row_constr_ids = []
        self._is_mip = False

        col_index: Dict[VarId, int] = {}
        for var_id, var in formulation.variables:
            if not (var.is_active and var.is_explicit):
                continue
            data = var.current_data
            lower, upper = data.lb, data.ub
            if data.sense == VarSense.POSITIVE:
                lower = max(lower, 0.0)
            elif data.sense == VarSense.NEGATIVE:
                upper = min(upper, 0.0)

            # Add empty column (rows added later)
            self._highs.addCol(data.cost, _highs_bound(lower), _highs_bound(upper), 0, [], [])
            idx = len(self._col_var_ids)
            col_index[var_id] = idx
            self._col_var_ids.append(var_id)

            if data.kind != VarKind.CONTINUOUS:
                self._highs.changeColIntegrality(idx, highspy.HighsVarType.kInteger)
                self._is_mip = True

        for constr_id, constr in formulation.constraints:
            if not (constr.is_active and constr.is_explicit):
                continue
            indices = []
            values = []
            for var_id, coeff in formulation.coefficients.row(constr_id):
                idx = col_index.get(var_id)
                if idx is not None:
                    indices.append(idx)
                    values.append(coeff)

            rhs = constr.current_data.rhs
            if constr.sense == ConstrSense.GREATER:
                lower, upper = rhs, highspy.kHighsInf
            elif constr.sense == ConstrSense.LESS:
                lower, upper = -highspy.kHighsInf, rhs
            else:
                lower, upper = rhs, rhs

            self._highs.addRow(lower, upper, len(indices), indices, values)
            self._row_constr_ids.append(constr_id)

    def _run_impl(self) -> None:
        start_time = time.time()
        self._highs.run()
        self.solve_time = time.time() - start_time

    def get_termination_status(self) -> SolutionStatus:
        if self._highs is None:
            return SolutionStatus.NOT_SOLVED
        return _map_highs_status(self._highs.getModelStatus())

    def get_result_count(self) -> int:
        if self._highs is None:
            return 0
        if self._is_empty_model():
            # No column at all: the empty point is the (only) solution
            return 1
        info = self._highs.getInfo()
        return 1 if info.primal_solution_status == self._SOLUTION_FEASIBLE else 0

    def get_objective_value(self) -> float:
        if self._is_empty_model():
            return 0.0
        return self._highs.getInfo().objective_function_value

    def _is_empty_model(self) -> bool:
        return self._highs.getModelStatus() == highspy.HighsModelStatus.kModelEmpty

    def get_primal_values(self) -> Dict[VarId, float]:
        sol = self._highs.getSolution()
        values = {}
        for idx, var_id in enumerate(self._col_var_ids):
            value = sol.col_value[idx]
            if abs(value) > 1e-10:  # Only store non-zero
                values[var_id] = value
        return values

    def get_dual_values(self) -> Optional[Dict[ConstrId, float]]:
        """Row duals of an LP; None for a MIP or when HiGHS has no valid duals."""
        if self._is_mip:
            return None
        sol = self._highs.getSolution()
        if not sol.dual_valid:
            return None
        return {
            constr_id: sol.row_dual[idx]
            for idx, constr_id in enumerate(self._row_constr_ids)
        }

    def get_dual_bound(self) -> Optional[float]:
        if self._is_mip:
            return self._highs.getInfo().mip_dual_bound
        return None

    # =========================================================================
    # HiGHS-specific Methods
    # =========================================================================

    @property
    def is_mip(self) -> bool:
        """Whether the last loaded model had integer variables."""
        return self._is_mip

    def set_time_limit(self, seconds: float) -> None:
        """
        Set the solver time limit (applies from the next optimize()).

        Args:
            seconds: Maximum solve time in seconds
        """
        self._time_limit = seconds

    def set_verbosity(self, level: int) -> None:
        """
        Set the solver verbosity level (applies from the next optimize()).

        Args:
            level: 0 = silent, 1 = normal, 2 = verbose
        """
        self._verbosity = level

    def get_model_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the last loaded model.

        Returns:
            Dictionary with model statistics
        """
        if self._highs is None:
            return {'num_columns': 0, 'num_rows': 0, 'num_nonzeros': 0}
        return {
            'num_columns': self._highs.getNumCol(),
            'num_rows': self._highs.getNumRow(),
            'num_nonzeros': self._highs.getNumNz(),
        }

    def __repr__(self) -> str:
        return f"HiGHSBackend(time_limit={self._time_limit}, verbosity={self._verbosity})"
