"""
Formulation module - a mathematical program of the decomposition.

A Formulation aggregates:
- a variable store and a constraint store (EntityStore)
- the coefficient relation between them (CoefficientRelation)
- the perennial right-hand side of every constraint
- the objective sense (minimize only)
- incumbent bounds and the best known primal/dual solution records
- a parent link (uid in a FormulationRegistry) forming the tree
  subproblem -> master -> reformulation

Formulations are mutated incrementally during search: pricing adds columns one
at a time, cuts add constraints. Entities are never deleted, only
deactivated, so identifiers stay valid for cloning and warm starts.

Solving is delegated to a SolverBackend through optimize().

Usage:
------
    >>> registry = FormulationRegistry()
    >>> master = registry.new_formulation(FormDuty.DW_MASTER)
    >>> x = master.create_variable("x", duty=VarDuty.MASTER_PURE_VAR, cost=2.0)
    >>> c = master.create_constraint("c", duty=ConstrDuty.MASTER_PURE_CONSTR,
    ...                              rhs=10.0, sense=ConstrSense.LESS,
    ...                              members={x.id: 1.0})
    >>> result = master.optimize(HiGHSBackend())
"""

import logging
import math
from typing import (
    Callable,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from opendw.backend.base import SolverBackend
from opendw.core.coefficients import CoefficientRelation
from opendw.core.duties import ConstrDuty, Flag, FormDuty, VarDuty
from opendw.core.exceptions import NotFoundError, UnsupportedOperationError
from opendw.core.ids import ConstrId, IdCounter, VarId
from opendw.core.solution import (
    DualSolution,
    OptimizationResult,
    PrimalSolution,
)
from opendw.core.store import EntityStore
from opendw.core.varconstr import (
    ConstrData,
    ConstrKind,
    ConstrSense,
    Constraint,
    VarConstr,
    VarData,
    VarKind,
    VarSense,
    Variable,
)

logger = logging.getLogger(__name__)

Id = Union[VarId, ConstrId]


class Formulation:
    """
    Variables, constraints and coefficients of one program of the decomposition.

    Attributes:
        uid: Unique formulation id
        duty: Role in the decomposition (FormDuty)
        parent_uid: Uid of the parent formulation in the registry (None at the root)
        variables: EntityStore VarId -> Variable
        constraints: EntityStore ConstrId -> Constraint
        coefficients: CoefficientRelation ConstrId x VarId -> float
        primal_inc_bound: Best primal bound known (+inf initially)
        dual_inc_bound: Best dual bound known (-inf initially)
        primal_solution_record: Best primal solution known
        dual_solution_record: Best dual solution known
        clone_origins: Mapping clone id -> (source formulation uid, origin id)
    """

    def __init__(
        self,
        uid: int,
        duty: FormDuty = FormDuty.ORIGINAL,
        parent_uid: Optional[int] = None,
        backend: Optional[SolverBackend] = None,
        var_counter: Optional[IdCounter] = None,
        constr_counter: Optional[IdCounter] = None,
    ):
        """
        Create an empty formulation.

        Args:
            uid: Unique formulation id
            duty: Role in the decomposition
            parent_uid: Uid of the parent formulation (non-owning)
            backend: Default solver backend used by optimize()
            var_counter: Shared source of variable uids (for create_variable)
            constr_counter: Shared source of constraint uids (for create_constraint)
        """
        self.uid = uid
        self.duty = duty
        self.parent_uid = parent_uid
        self.backend = backend

        self._var_counter = var_counter if var_counter is not None else IdCounter()
        self._constr_counter = constr_counter if constr_counter is not None else IdCounter()

        self.variables: EntityStore[VarId, Variable] = EntityStore(f"variables of form {uid}")
        self.constraints: EntityStore[ConstrId, Constraint] = EntityStore(f"constraints of form {uid}")
        self.coefficients = CoefficientRelation()
        self._constr_rhs: Dict[ConstrId, float] = {}

        self._minimize = True

        self.primal_inc_bound: float = math.inf
        self.dual_inc_bound: float = -math.inf
        self.primal_solution_record: Optional[PrimalSolution] = None
        self.dual_solution_record: Optional[DualSolution] = None

        self.clone_origins: Dict[Id, Tuple[int, Id]] = {}

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def is_minimize(self) -> bool:
        return self._minimize

    @property
    def objective_sense(self) -> str:
        return "Min" if self._minimize else "Max"

    @property
    def num_variables(self) -> int:
        return len(self.variables)

    @property
    def num_constraints(self) -> int:
        return len(self.constraints)

    # =========================================================================
    # Adding entities
    # =========================================================================

    def add(
        self,
        elem: VarConstr,
        membership: Optional[Mapping[Id, float]] = None
    ) -> None:
        """
        Register a variable or a constraint.

        Args:
            elem: Variable or Constraint
            membership: For a variable, mapping constraint id -> coefficient
                (its column); for a constraint, mapping variable id ->
                coefficient (its row). Replaces any previous content.

        Raises:
            TypeError: If elem is neither a Variable nor a Constraint
        """
        if isinstance(elem, Variable):
            self.variables.set(elem.id, elem)
            if membership is None:
                self.coefficients.add_column(elem.id)
            else:
                self.coefficients.reset_column(elem.id, membership)
        elif isinstance(elem, Constraint):
            self.constraints.set(elem.id, elem)
            self._constr_rhs[elem.id] = elem.perennial_rhs
            if membership is None:
                self.coefficients.add_row(elem.id)
            else:
                self.coefficients.reset_row(elem.id, membership)
        else:
            raise TypeError(f"Cannot add {type(elem).__name__} to a formulation")

    def add_all(
        self,
        elems: Sequence[VarConstr],
        memberships: Optional[Sequence[Mapping[Id, float]]] = None
    ) -> None:
        """
        Register several entities.

        Raises:
            ValueError: If memberships is given with a different length
        """
        if memberships is None:
            for elem in elems:
                self.add(elem)
            return
        if len(elems) != len(memberships):
            raise ValueError(
                f"Got {len(elems)} entities but {len(memberships)} memberships"
            )
        for elem, membership in zip(elems, memberships):
            self.add(elem, membership)

    def create_variable(
        self,
        name: str = "",
        duty: VarDuty = VarDuty.ORIGINAL_VAR,
        cost: float = 0.0,
        lb: float = 0.0,
        ub: float = math.inf,
        kind: VarKind = VarKind.CONTINUOUS,
        sense: VarSense = VarSense.POSITIVE,
        flag: Flag = Flag.STATIC,
        is_active: bool = True,
        is_explicit: bool = True,
        members: Optional[Mapping[ConstrId, float]] = None,
    ) -> Variable:
        """
        Create a variable with a fresh id and add it.

        Args:
            name: Variable name (default: x<uid>)
            duty: Structural role
            cost: Perennial cost
            lb, ub: Perennial bounds
            kind: Continuous, integer or binary
            sense: Sign restriction
            flag: STATIC at model build, DYNAMIC for generated columns
            is_active: Initial activity
            is_explicit: Whether the variable is sent to the backend
            members: Column of the variable (constraint id -> coefficient)

        Returns:
            The new Variable
        """
        var_id = VarId(
            self._var_counter.next(),
            origin_form_uid=self.uid,
            assigned_form_uid=self.uid,
            duty=duty,
        )
        data = VarData(
            cost=cost, lb=lb, ub=ub, kind=kind, sense=sense,
            is_active=is_active, is_explicit=is_explicit,
        )
        var = Variable(var_id, name, data, flag)
        self.add(var, members)
        return var

    def create_constraint(
        self,
        name: str = "",
        duty: ConstrDuty = ConstrDuty.ORIGINAL_CONSTR,
        rhs: float = 0.0,
        sense: ConstrSense = ConstrSense.GREATER,
        kind: ConstrKind = ConstrKind.ESSENTIAL,
        flag: Flag = Flag.STATIC,
        is_active: bool = True,
        is_explicit: bool = True,
        members: Optional[Mapping[VarId, float]] = None,
    ) -> Constraint:
        """
        Create a constraint with a fresh id and add it.

        Args:
            name: Constraint name (default: c<uid>)
            duty: Structural role
            rhs: Perennial right-hand side
            sense: Direction (>=, <=, ==)
            kind: Essential or facultative
            flag: STATIC at model build, DYNAMIC for cuts
            is_active: Initial activity
            is_explicit: Whether the constraint is sent to the backend
            members: Row of the constraint (variable id -> coefficient)

        Returns:
            The new Constraint
        """
        constr_id = ConstrId(
            self._constr_counter.next(),
            origin_form_uid=self.uid,
            assigned_form_uid=self.uid,
            duty=duty,
        )
        data = ConstrData(
            rhs=rhs, sense=sense, kind=kind,
            is_active=is_active, is_explicit=is_explicit,
        )
        constr = Constraint(constr_id, name, data, flag)
        self.add(constr, members)
        return constr

    # =========================================================================
    # Access
    # =========================================================================

    def get_var(self, var_id: VarId) -> Variable:
        """Raises NotFoundError if absent."""
        return self.variables.get(var_id)

    def get_constr(self, constr_id: ConstrId) -> Constraint:
        """Raises NotFoundError if absent."""
        return self.constraints.get(constr_id)

    def has_var(self, var_id: VarId) -> bool:
        return self.variables.contains(var_id)

    def has_constr(self, constr_id: ConstrId) -> bool:
        return self.constraints.contains(constr_id)

    def var_ids(
        self,
        duty_category: Optional[FrozenSet[VarDuty]] = None,
        predicate: Optional[Callable[[Variable], bool]] = None,
        active_only: bool = False,
    ) -> List[VarId]:
        """
        Ids of the variables matching all given filters.

        Args:
            duty_category: Keep variables whose duty is in this category
            predicate: Keep variables for which predicate(var) is True
            active_only: Keep currently active variables only
        """
        return list(self.variables.filter(
            lambda _, var: self._keep(var, duty_category, predicate, active_only)
        ))

    def constr_ids(
        self,
        duty_category: Optional[FrozenSet[ConstrDuty]] = None,
        predicate: Optional[Callable[[Constraint], bool]] = None,
        active_only: bool = False,
    ) -> List[ConstrId]:
        """Ids of the constraints matching all given filters (see var_ids)."""
        return list(self.constraints.filter(
            lambda _, constr: self._keep(constr, duty_category, predicate, active_only)
        ))

    @staticmethod
    def _keep(elem, duty_category, predicate, active_only) -> bool:
        if duty_category is not None and elem.duty not in duty_category:
            return False
        if active_only and not elem.is_active:
            return False
        return predicate is None or predicate(elem)

    def constr_members_of_var(self, var_id: VarId) -> Dict[ConstrId, float]:
        """Column of a variable: constraint id -> coefficient."""
        return self.coefficients.column_dict(var_id)

    def var_members_of_constr(self, constr_id: ConstrId) -> Dict[VarId, float]:
        """Row of a constraint: variable id -> coefficient."""
        return self.coefficients.row_dict(constr_id)

    def _entity(self, id: Id) -> VarConstr:
        if isinstance(id, VarId):
            return self.get_var(id)
        if isinstance(id, ConstrId):
            return self.get_constr(id)
        raise TypeError(f"Expected VarId or ConstrId, got {type(id).__name__}")

    # =========================================================================
    # Perennial and current values
    # =========================================================================

    def get_perennial_cost(self, var_id: VarId) -> float:
        return self.get_var(var_id).perennial_data.cost

    def get_cur_cost(self, var_id: VarId) -> float:
        return self.get_var(var_id).current_data.cost

    def set_cur_cost(self, var_id: VarId, cost: float) -> None:
        self.get_var(var_id).current_data.cost = cost

    def get_perennial_lb(self, var_id: VarId) -> float:
        return self.get_var(var_id).perennial_data.lb

    def get_perennial_ub(self, var_id: VarId) -> float:
        return self.get_var(var_id).perennial_data.ub

    def get_cur_lb(self, var_id: VarId) -> float:
        return self.get_var(var_id).current_data.lb

    def get_cur_ub(self, var_id: VarId) -> float:
        return self.get_var(var_id).current_data.ub

    def set_cur_bounds(
        self,
        var_id: VarId,
        lb: Optional[float] = None,
        ub: Optional[float] = None
    ) -> None:
        """Change the current bounds (None keeps the bound unchanged)."""
        data = self.get_var(var_id).current_data
        if lb is not None:
            data.lb = lb
        if ub is not None:
            data.ub = ub

    def get_perennial_rhs(self, constr_id: ConstrId) -> float:
        """Perennial rhs as recorded when the constraint was added."""
        try:
            return self._constr_rhs[constr_id]
        except KeyError:
            raise NotFoundError(constr_id, f"{constr_id!r} not found in form {self.uid}") from None

    def get_cur_rhs(self, constr_id: ConstrId) -> float:
        return self.get_constr(constr_id).current_data.rhs

    def set_cur_rhs(self, constr_id: ConstrId, rhs: float) -> None:
        self.get_constr(constr_id).current_data.rhs = rhs

    def is_active(self, id: Id) -> bool:
        return self._entity(id).is_active

    def is_explicit(self, id: Id) -> bool:
        return self._entity(id).is_explicit

    def activate(self, id: Id) -> None:
        self._entity(id).current_data.is_active = True

    def deactivate(self, id: Id) -> None:
        """Mark an entity inactive. It stays in the stores."""
        self._entity(id).current_data.is_active = False

    def reset_to_perennial(self, ids: Optional[Iterable[Id]] = None) -> int:
        """
        Restore current values from perennial values.

        Args:
            ids: Entities to reset (default: every variable and constraint)

        Returns:
            Number of entities reset
        """
        if ids is None:
            ids = list(self.variables.all_ids()) + list(self.constraints.all_ids())
        else:
            ids = list(ids)
        for id in ids:
            self._entity(id).reset_to_perennial()
        logger.debug("Form %d: reset %d entities to perennial values", self.uid, len(ids))
        return len(ids)

    # =========================================================================
    # Objective and solving
    # =========================================================================

    def register_objective_sense(self, minimize: bool) -> None:
        """
        Set the objective sense.

        Raises:
            UnsupportedOperationError: If minimize is False. Costs are never
                negated silently; the sense is left unchanged.
        """
        if not minimize:
            raise UnsupportedOperationError(
                f"Form {self.uid}: maximization is not supported"
            )
        self._minimize = True

    def optimize(
        self,
        backend: Optional[SolverBackend] = None,
        update_form: bool = True
    ) -> OptimizationResult:
        """
        Solve the formulation with a solver backend (blocking).

        Args:
            backend: Backend to use (default: self.backend)
            update_form: Overwrite the primal/dual solution records with the
                solutions found

        Returns:
            OptimizationResult. With no result from the backend:
            objective +inf, no primal solution, no dual solution.

        Raises:
            ValueError: If no backend is given and none is attached
        """
        backend = backend if backend is not None else self.backend
        if backend is None:
            raise ValueError(f"Form {self.uid}: no solver backend to optimize with")

        backend.optimize(self)
        status = backend.get_termination_status()
        logger.debug("Form %d: optimization finished with status %s", self.uid, status.name)

        if backend.get_result_count() < 1:
            logger.debug("Form %d: solver has no result to show", self.uid)
            return OptimizationResult(status, math.inf, [], None)

        primal_sol = PrimalSolution(
            form_uid=self.uid,
            values=backend.get_primal_values(),
            objective_value=backend.get_objective_value(),
        )
        dual_sol = None
        dual_values = backend.get_dual_values()
        if dual_values is not None:
            bound = backend.get_dual_bound()
            dual_sol = DualSolution(
                form_uid=self.uid,
                values=dual_values,
                bound=primal_sol.objective_value if bound is None else bound,
            )

        if update_form:
            self.primal_solution_record = primal_sol
            if dual_sol is not None:
                self.dual_solution_record = dual_sol

        return OptimizationResult(status, primal_sol.objective_value, [primal_sol], dual_sol)

    def compute_original_cost(self, solution: PrimalSolution) -> float:
        """
        Cost of a primal solution using perennial costs.

        Used to cross-check the objective value reported by the backend.
        """
        cost = 0.0
        for var_id, value in solution.items():
            cost += self.get_var(var_id).perennial_data.cost * value
        logger.debug("Form %d: intrinsic cost = %s", self.uid, cost)
        return cost

    def update_primal_inc_bound(self, value: float) -> bool:
        """Record a primal bound if it improves on the incumbent. Returns True if it did."""
        if value < self.primal_inc_bound:
            self.primal_inc_bound = value
            return True
        return False

    def update_dual_inc_bound(self, value: float) -> bool:
        """Record a dual bound if it improves on the incumbent. Returns True if it did."""
        if value > self.dual_inc_bound:
            self.dual_inc_bound = value
            return True
        return False

    # =========================================================================
    # Summary and Display
    # =========================================================================

    def summary(self) -> str:
        """
        Render the whole formulation (objective, constraints, variables).

        Entities appear in insertion order.
        """
        lines = [f"Formulation id = {self.uid} ({self.duty.name})"]

        terms = []
        for _, var in self.variables:
            op = "-" if var.cost < 0.0 else "+"
            terms.append(f"{op} {abs(var.cost)} {var.name}")
        lines.append(f"{self.objective_sense} " + " ".join(terms))

        for constr_id, constr in self.constraints:
            terms = []
            for var_id, coeff in self.coefficients.row(constr_id):
                name = self.get_var(var_id).name if self.has_var(var_id) else repr(var_id)
                op = "-" if coeff < 0.0 else "+"
                terms.append(f"{op} {abs(coeff)} {name}")
            lines.append(
                f" {constr.name} : {' '.join(terms)} {constr.sense.symbol} {constr.rhs}"
                f" ({constr.duty.name})"
            )

        for _, var in self.variables:
            data = var.current_data
            lines.append(
                f"{data.lb} <= {var.name} <= {data.ub}"
                f" ({data.kind.name} | {var.duty.name} | {var.flag.name})"
            )
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"Formulation(uid={self.uid}, duty={self.duty.name}, "
            f"vars={self.num_variables}, constrs={self.num_constraints})"
        )


# =============================================================================
# Cloning across formulations
# =============================================================================


def clone_varconstr(
    elem: VarConstr,
    src: Formulation,
    dest: Formulation,
    flag: Flag,
    duty: Union[VarDuty, ConstrDuty],
) -> VarConstr:
    """
    Clone one entity into another formulation, without its membership.

    The clone is a distinct entity with the new flag and duty, assigned to
    dest. dest.clone_origins records where it comes from.
    """
    clone = elem.copy(flag, duty, dest.uid)
    dest.add(clone)
    dest.clone_origins[clone.id] = (src.uid, elem.id)
    return clone


def clone_in_formulation(
    ids: Sequence[Id],
    src: Formulation,
    dest: Formulation,
    flag: Flag,
    duty: Union[VarDuty, ConstrDuty],
) -> List[VarConstr]:
    """
    Clone entities of src into dest together with their coefficients.

    For a variable, its column in src is installed into its column in dest;
    for a constraint, its row in src is installed into its row in dest. Clones keep the
    uid of their origin, so every (constraint, variable) pair of the source
    column/row is found with the same coefficient in dest.

    Args:
        ids: Ids of the entities to clone (all VarId or all ConstrId)
        src: Source formulation
        dest: Destination formulation
        flag: Flag of the clones
        duty: Duty of the clones

    Returns:
        The clones, in the order of ids

    Raises:
        NotFoundError: If an id is absent from src
    """
    clones = []
    for id in ids:
        if isinstance(id, VarId):
            membership = src.constr_members_of_var(id)
        elif isinstance(id, ConstrId):
            membership = src.var_members_of_constr(id)
        else:
            raise TypeError(f"Expected VarId or ConstrId, got {type(id).__name__}")
        clone = clone_varconstr(src._entity(id), src, dest, flag, duty)
        # Merge: pairs already present in dest for this uid are kept
        if isinstance(id, VarId):
            dest.coefficients.add_column(clone.id, membership)
        else:
            dest.coefficients.add_row(clone.id, membership)
        clones.append(clone)
    logger.debug(
        "Cloned %d entities from form %d into form %d as %s",
        len(clones), src.uid, dest.uid, duty.name,
    )
    return clones
