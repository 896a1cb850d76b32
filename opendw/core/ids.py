"""
Identifiers of variables and constraints.

An identifier is a small immutable value. Equality, hashing and ordering
use only the integer uid, so an identifier stays stable for the entity's whole
lifetime: the duty and formulation fields are carried along for fast
filtering but never take part in comparisons.

Clones of an entity in another formulation keep the uid of the origin, which
is what lets coefficient memberships move between formulations unchanged.
"""

from dataclasses import dataclass, field, replace
from typing import Optional

from opendw.core.duties import ConstrDuty, VarDuty


@dataclass(frozen=True, order=True)
class _Id:
    uid: int
    origin_form_uid: Optional[int] = field(default=None, compare=False)
    assigned_form_uid: Optional[int] = field(default=None, compare=False)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.uid})"


@dataclass(frozen=True, order=True, repr=False)
class VarId(_Id):
    """
    Identifier of a variable.

    Attributes:
        uid: Unique integer, never reused
        duty: Structural role of the variable
        origin_form_uid: Formulation in which the variable was first created
        assigned_form_uid: Formulation this identifier belongs to
    """
    duty: VarDuty = field(default=VarDuty.ORIGINAL_VAR, compare=False)

    def cloned(self, duty: VarDuty, assigned_form_uid: int) -> 'VarId':
        """Identifier of a clone with a new duty in another formulation."""
        return replace(self, duty=duty, assigned_form_uid=assigned_form_uid)


@dataclass(frozen=True, order=True, repr=False)
class ConstrId(_Id):
    """
    Identifier of a constraint.

    Attributes:
        uid: Unique integer, never reused
        duty: Structural role of the constraint
        origin_form_uid: Formulation in which the constraint was first created
        assigned_form_uid: Formulation this identifier belongs to
    """
    duty: ConstrDuty = field(default=ConstrDuty.ORIGINAL_CONSTR, compare=False)

    def cloned(self, duty: ConstrDuty, assigned_form_uid: int) -> 'ConstrId':
        """Identifier of a clone with a new duty in another formulation."""
        return replace(self, duty=duty, assigned_form_uid=assigned_form_uid)


class IdCounter:
    """
    Monotonic source of unique integer ids.

    Example:
        >>> counter = IdCounter()
        >>> counter.next(), counter.next()
        (1, 2)
    """

    def __init__(self, start: int = 0):
        self._value = start

    @property
    def value(self) -> int:
        """Last id handed out."""
        return self._value

    def next(self) -> int:
        self._value += 1
        return self._value

    def __repr__(self) -> str:
        return f"IdCounter(value={self._value})"
