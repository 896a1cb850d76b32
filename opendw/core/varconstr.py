"""
Variable and constraint entities.

Every entity carries two explicit value records:
- perennial_data: the original model values (cost, bounds, rhs), fixed at
  creation and never changed afterwards
- current_data: the values in force during search (e.g. tightened by
  branching)

The current record starts as a copy of the perennial one. Going back to the
perennial values is an explicit call to reset_to_perennial().

Example:
    >>> var = Variable(VarId(1, duty=VarDuty.MASTER_PURE_VAR), "x", VarData(cost=2.0))
    >>> var.current_data.ub = 5.0
    >>> var.perennial_data.ub
    inf
    >>> var.reset_to_perennial()
    >>> var.current_data.ub
    inf
"""

import math
from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Optional, Union

from opendw.core.duties import ConstrDuty, Flag, VarDuty
from opendw.core.ids import ConstrId, VarId


class VarKind(Enum):
    """Domain of a variable."""
    CONTINUOUS = auto()
    INTEGER = auto()
    BINARY = auto()


class VarSense(Enum):
    """Sign restriction of a variable."""
    POSITIVE = auto()
    NEGATIVE = auto()
    FREE = auto()


class ConstrSense(Enum):
    """Direction of a constraint."""
    GREATER = auto()  # >=
    LESS = auto()     # <=
    EQUAL = auto()    # ==

    @property
    def symbol(self) -> str:
        return {ConstrSense.GREATER: ">=", ConstrSense.LESS: "<=", ConstrSense.EQUAL: "=="}[self]


class ConstrKind(Enum):
    """Whether a constraint is required for feasibility or only a valid inequality."""
    ESSENTIAL = auto()
    FACULTATIVE = auto()


@dataclass
class VarData:
    """
    Value record of a variable.

    Attributes:
        cost: Objective coefficient
        lb: Lower bound
        ub: Upper bound
        kind: Continuous, integer or binary
        sense: Sign restriction
        is_active: False once the variable has been deactivated
        is_explicit: False for variables that exist only implicitly (e.g.
            not sent to the solver backend)
    """
    cost: float = 0.0
    lb: float = 0.0
    ub: float = math.inf
    kind: VarKind = VarKind.CONTINUOUS
    sense: VarSense = VarSense.POSITIVE
    is_active: bool = True
    is_explicit: bool = True

    def __post_init__(self):
        if self.kind == VarKind.BINARY:
            self.lb = max(self.lb, 0.0)
            self.ub = min(self.ub, 1.0)


@dataclass
class ConstrData:
    """
    Value record of a constraint.

    Attributes:
        rhs: Right-hand side
        sense: Direction (>=, <=, ==)
        kind: Essential or facultative
        is_active: False once the constraint has been deactivated
        is_explicit: False for constraints that exist only implicitly
    """
    rhs: float = 0.0
    sense: ConstrSense = ConstrSense.GREATER
    kind: ConstrKind = ConstrKind.ESSENTIAL
    is_active: bool = True
    is_explicit: bool = True


class _VarConstr:
    """Behavior shared by variables and constraints."""

    def __init__(self, id, name: str, data, flag: Flag = Flag.STATIC):
        self.id = id
        self.name = name or f"{self._prefix}{id.uid}"
        self.flag = flag
        self.perennial_data = data
        self.current_data = replace(data)

    _prefix = "vc"

    @property
    def duty(self):
        return self.id.duty

    @property
    def is_active(self) -> bool:
        return self.current_data.is_active

    @property
    def is_explicit(self) -> bool:
        return self.current_data.is_explicit

    def reset_to_perennial(self) -> None:
        """Restore the current record from the perennial one."""
        self.current_data = replace(self.perennial_data)

    def _copy(self, new_id, flag: Flag):
        clone = self.__class__(new_id, self.name, replace(self.perennial_data), flag)
        clone.current_data = replace(self.current_data)
        return clone


class Variable(_VarConstr):
    """
    A variable of a formulation.

    Attributes:
        id: VarId (uid, duty, formulation uids)
        name: Human-readable name
        flag: STATIC, DYNAMIC or ARTIFICIAL
        perennial_data: Original VarData
        current_data: VarData in force during search
    """

    _prefix = "x"

    def __init__(
        self,
        id: VarId,
        name: str = "",
        data: Optional[VarData] = None,
        flag: Flag = Flag.STATIC
    ):
        super().__init__(id, name, data if data is not None else VarData(), flag)

    @property
    def perennial_cost(self) -> float:
        return self.perennial_data.cost

    @property
    def cost(self) -> float:
        """Current cost."""
        return self.current_data.cost

    def copy(self, flag: Flag, duty: VarDuty, form_uid: int) -> 'Variable':
        """
        Create a distinct variable with a new flag and duty in another formulation.

        The uid is kept so that memberships stay valid in the destination.
        """
        return self._copy(self.id.cloned(duty, form_uid), flag)

    def __repr__(self) -> str:
        return f"Variable({self.id.uid}, {self.name!r}, {self.duty.name})"


class Constraint(_VarConstr):
    """
    A constraint of a formulation.

    Attributes:
        id: ConstrId (uid, duty, formulation uids)
        name: Human-readable name
        flag: STATIC, DYNAMIC or ARTIFICIAL
        perennial_data: Original ConstrData
        current_data: ConstrData in force during search
    """

    _prefix = "c"

    def __init__(
        self,
        id: ConstrId,
        name: str = "",
        data: Optional[ConstrData] = None,
        flag: Flag = Flag.STATIC
    ):
        super().__init__(id, name, data if data is not None else ConstrData(), flag)

    @property
    def perennial_rhs(self) -> float:
        return self.perennial_data.rhs

    @property
    def rhs(self) -> float:
        """Current right-hand side."""
        return self.current_data.rhs

    @property
    def sense(self) -> ConstrSense:
        return self.current_data.sense

    def copy(self, flag: Flag, duty: ConstrDuty, form_uid: int) -> 'Constraint':
        """
        Create a distinct constraint with a new flag and duty in another formulation.

        The uid is kept so that memberships stay valid in the destination.
        """
        return self._copy(self.id.cloned(duty, form_uid), flag)

    def __repr__(self) -> str:
        return f"Constraint({self.id.uid}, {self.name!r}, {self.duty.name})"


VarConstr = Union[Variable, Constraint]
