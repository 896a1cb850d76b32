"""
FormulationRegistry - arena owning the formulations of a decomposition.

Formulations refer to their parent by uid only. The registry resolves those
links and hands out the shared id counters, so variable and constraint uids
are unique across every formulation it creates.

Example:
    >>> registry = FormulationRegistry()
    >>> reform = registry.new_formulation(FormDuty.REFORMULATION)
    >>> master = registry.new_formulation(FormDuty.DW_MASTER, parent=reform)
    >>> sp = registry.new_formulation(FormDuty.DW_SP, parent=master)
    >>> registry.parent_of(sp) is master
    True
"""

from typing import Dict, Iterator, List, Optional

from opendw.backend.base import SolverBackend
from opendw.core.duties import FormDuty
from opendw.core.exceptions import NotFoundError
from opendw.core.formulation import Formulation
from opendw.core.ids import IdCounter


class FormulationRegistry:
    """
    Owner of formulations, indexed by uid.

    Attributes:
        form_counter: Source of formulation uids
        var_counter: Source of variable uids shared by all formulations
        constr_counter: Source of constraint uids shared by all formulations
    """

    def __init__(self):
        self.form_counter = IdCounter()
        self.var_counter = IdCounter()
        self.constr_counter = IdCounter()
        self._formulations: Dict[int, Formulation] = {}

    def new_formulation(
        self,
        duty: FormDuty = FormDuty.ORIGINAL,
        parent: Optional[Formulation] = None,
        backend: Optional[SolverBackend] = None,
    ) -> Formulation:
        """
        Create and register a formulation.

        Args:
            duty: Role in the decomposition
            parent: Parent formulation (must belong to this registry)
            backend: Default solver backend of the formulation

        Returns:
            The new Formulation

        Raises:
            ValueError: If parent belongs to another registry
        """
        parent_uid = None
        if parent is not None:
            if self._formulations.get(parent.uid) is not parent:
                raise ValueError(f"Formulation {parent.uid} is not registered here")
            parent_uid = parent.uid
        form = Formulation(
            self.form_counter.next(),
            duty=duty,
            parent_uid=parent_uid,
            backend=backend,
            var_counter=self.var_counter,
            constr_counter=self.constr_counter,
        )
        self._formulations[form.uid] = form
        return form

    def get(self, uid: int) -> Formulation:
        """Raises NotFoundError if no formulation has this uid."""
        try:
            return self._formulations[uid]
        except KeyError:
            raise NotFoundError(uid, f"Formulation {uid} not found in registry") from None

    def parent_of(self, form: Formulation) -> Optional[Formulation]:
        if form.parent_uid is None:
            return None
        return self.get(form.parent_uid)

    def children_of(self, form: Formulation) -> List[Formulation]:
        return [f for f in self._formulations.values() if f.parent_uid == form.uid]

    def formulations(self, duty: Optional[FormDuty] = None) -> List[Formulation]:
        """All formulations, optionally restricted to one duty."""
        return [
            f for f in self._formulations.values()
            if duty is None or f.duty == duty
        ]

    def __contains__(self, uid: object) -> bool:
        return uid in self._formulations

    def __iter__(self) -> Iterator[Formulation]:
        return iter(self._formulations.values())

    def __len__(self) -> int:
        return len(self._formulations)

    def __repr__(self) -> str:
        return f"FormulationRegistry(formulations={len(self)})"
