"""
Solution records of a formulation.

This module defines:
- SolutionStatus: termination status reported by a solver backend
- PrimalSolution: variable id -> value, plus objective value
- DualSolution: constraint id -> value, plus dual bound
- OptimizationResult: what Formulation.optimize() returns
"""

import math
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Iterator, List, Optional, Tuple

from opendw.core.ids import ConstrId, VarId


class SolutionStatus(Enum):
    """
    Termination status of a backend solve.

    These statuses cover both LP and MIP solving outcomes.
    """
    OPTIMAL = auto()           # Optimal solution found
    INFEASIBLE = auto()        # Problem is infeasible
    UNBOUNDED = auto()         # Problem is unbounded
    INF_OR_UNBOUNDED = auto()  # Infeasible or unbounded (solver couldn't determine)
    TIME_LIMIT = auto()        # Time limit reached (may have feasible solution)
    ITERATION_LIMIT = auto()   # Iteration limit reached
    NODE_LIMIT = auto()        # Node limit reached (for MIP)
    NOT_SOLVED = auto()        # Solve not called yet
    ERROR = auto()             # Solver error occurred


@dataclass
class PrimalSolution:
    """
    Primal solution of a formulation.

    Only nonzero values are stored.

    Attributes:
        form_uid: Uid of the formulation the solution belongs to
        values: Mapping variable id -> value
        objective_value: Objective value reported for the solution
    """
    form_uid: Optional[int] = None
    values: Dict[VarId, float] = field(default_factory=dict)
    objective_value: float = math.inf

    def __post_init__(self):
        self.values = {k: v for k, v in self.values.items() if v != 0.0}

    def get(self, var_id: VarId, default: float = 0.0) -> float:
        return self.values.get(var_id, default)

    def items(self) -> Iterator[Tuple[VarId, float]]:
        return iter(self.values.items())

    @property
    def is_integer(self) -> bool:
        """True if all values are (nearly) integer."""
        tol = 1e-6
        return all(abs(v - round(v)) <= tol for v in self.values.values())

    def get_fractional_variables(self, tol: float = 1e-6) -> List[VarId]:
        """Variables with a fractional value, useful for branching decisions."""
        return [
            var_id for var_id, value in self.values.items()
            if abs(value - round(value)) > tol
        ]

    def __len__(self) -> int:
        return len(self.values)

    def __contains__(self, var_id: object) -> bool:
        return var_id in self.values

    def __repr__(self) -> str:
        return f"PrimalSolution(form={self.form_uid}, obj={self.objective_value:.4f}, nnz={len(self)})"


@dataclass
class DualSolution:
    """
    Dual solution of a formulation.

    Attributes:
        form_uid: Uid of the formulation the solution belongs to
        values: Mapping constraint id -> dual value
        bound: Dual bound reported with the solution
    """
    form_uid: Optional[int] = None
    values: Dict[ConstrId, float] = field(default_factory=dict)
    bound: float = -math.inf

    def get(self, constr_id: ConstrId, default: float = 0.0) -> float:
        return self.values.get(constr_id, default)

    def items(self) -> Iterator[Tuple[ConstrId, float]]:
        return iter(self.values.items())

    def __len__(self) -> int:
        return len(self.values)

    def __repr__(self) -> str:
        return f"DualSolution(form={self.form_uid}, bound={self.bound:.4f}, nnz={len(self)})"


@dataclass
class OptimizationResult:
    """
    Outcome of Formulation.optimize().

    When the backend has no result, objective_value is +inf,
    primal_solutions is empty and dual_solution is None. Callers must check
    has_solution before using the solutions.

    Attributes:
        status: Termination status reported by the backend
        objective_value: Objective of the best primal solution
        primal_solutions: Primal solutions found, best first
        dual_solution: Dual solution, if the backend provides one
    """
    status: SolutionStatus = SolutionStatus.NOT_SOLVED
    objective_value: float = math.inf
    primal_solutions: List[PrimalSolution] = field(default_factory=list)
    dual_solution: Optional[DualSolution] = None

    @property
    def has_solution(self) -> bool:
        return len(self.primal_solutions) > 0

    @property
    def best_primal_solution(self) -> Optional[PrimalSolution]:
        return self.primal_solutions[0] if self.primal_solutions else None

    @property
    def is_optimal(self) -> bool:
        return self.status == SolutionStatus.OPTIMAL

    def __iter__(self):
        # Allows `status, obj, sols, dual = form.optimize(...)`
        return iter((self.status, self.objective_value, self.primal_solutions, self.dual_solution))

    def summary(self) -> str:
        lines = [
            "OptimizationResult:",
            f"  Status: {self.status.name}",
            f"  Objective: {self.objective_value}",
            f"  Primal solutions: {len(self.primal_solutions)}",
            f"  Dual solution: {'yes' if self.dual_solution is not None else 'no'}",
        ]
        return "\n".join(lines)
