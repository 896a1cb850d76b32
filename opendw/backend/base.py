"""
Solver backend abstract base class.

A backend is the external LP/MIP solver a formulation delegates to. It
receives a formulation (variables, constraints, coefficient relation and
objective sense), runs to completion, then answers queries about the
outcome.

Design Philosophy:
-----------------
- optimize() is blocking; cancellation and time limits are backend options
- Results are read back through small query methods so the formulation never
  depends on a particular solver API
- Only the minimize sense is accepted

Customization Guide:
-------------------
To plug in another solver:

1. Subclass SolverBackend
2. Implement _load_impl (build the solver model from a formulation) and
   _run_impl (run it)
3. Implement the get_* query methods

Example:
    >>> class MyBackend(SolverBackend):
    ...     def _load_impl(self, formulation):
    ...         self._model = build_model(formulation)
    ...
    ...     def _run_impl(self):
    ...         self._model.solve()
    ...     ...
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Dict, Optional

from opendw.core.exceptions import UnsupportedOperationError
from opendw.core.ids import ConstrId, VarId
from opendw.core.solution import SolutionStatus

if TYPE_CHECKING:
    from opendw.core.formulation import Formulation


class SolverBackend(ABC):
    """
    Abstract "solve this formulation" capability.

    Lifecycle:
    ---------
    1. backend.optimize(formulation)
    2. backend.get_termination_status()
    3. If backend.get_result_count() >= 1: read objective, primal and dual values
    """

    def optimize(self, formulation: 'Formulation') -> None:
        """
        Load the formulation and run the solver to completion.

        Raises:
            UnsupportedOperationError: If the formulation is not a minimization
        """
        if not formulation.is_minimize:
            raise UnsupportedOperationError("Solver backends only accept the minimize sense")
        self._load_impl(formulation)
        self._run_impl()

    # =========================================================================
    # Abstract Methods (MUST be implemented by subclasses)
    # =========================================================================

    @abstractmethod
    def _load_impl(self, formulation: 'Formulation') -> None:
        """Build the solver model from the formulation."""
        pass

    @abstractmethod
    def _run_impl(self) -> None:
        """Run the solver on the loaded model."""
        pass

    @abstractmethod
    def get_termination_status(self) -> SolutionStatus:
        pass

    @abstractmethod
    def get_result_count(self) -> int:
        """Number of primal results available (0 if none)."""
        pass

    @abstractmethod
    def get_objective_value(self) -> float:
        pass

    @abstractmethod
    def get_primal_values(self) -> Dict[VarId, float]:
        """Mapping variable id -> value for the best result."""
        pass

    @abstractmethod
    def get_dual_values(self) -> Optional[Dict[ConstrId, float]]:
        """Mapping constraint id -> dual value, or None when unavailable (e.g. MIP)."""
        pass

    def get_dual_bound(self) -> Optional[float]:
        """Dual bound, if the backend provides one."""
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
