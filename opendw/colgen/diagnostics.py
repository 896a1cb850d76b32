"""
Diagnostics raised by column generation consumers.

A pricing subproblem must never return a column that already exists and is
active in the master with an improving (negative, in minimization) reduced
cost. When it does, something is wrong with the pricing code or the
reduced-cost tolerances. The report below describes the situation; it is
logged, never raised, and the consuming algorithm decides whether it is fatal.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from opendw.config import config
from opendw.core.formulation import Formulation
from opendw.core.ids import VarId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColumnAlreadyInsertedColGenWarning:
    """
    A subproblem generated an improving column that is already active in the master.

    Attributes:
        column_in_master: Whether the column exists in the master store
        column_is_active: Whether the column is currently active in the master
        column_reduced_cost: Reduced cost reported for the column
        column_id: Identifier of the column
        master: The master formulation
        subproblem: The pricing subproblem that generated the column
    """
    column_in_master: bool
    column_is_active: bool
    column_reduced_cost: float
    column_id: VarId
    master: Formulation = field(repr=False, compare=False)
    subproblem: Formulation = field(repr=False, compare=False)

    def __str__(self) -> str:
        return "\n".join([
            "Unexpected variable state during column insertion.",
            "======",
            f"Column id: {self.column_id.uid}.",
            f"Master formulation: {self.master.uid}. Subproblem formulation: {self.subproblem.uid}.",
            f"Reduced cost of the column: {self.column_reduced_cost}.",
            f"The column is in the master ? {self.column_in_master}.",
            f"The column is active ? {self.column_is_active}.",
            "======",
            "If the column is in the master and active, it means a subproblem found a solution",
            "with negative reduced cost that is already active in the master. This should not happen.",
            "======",
            "If you are using a pricing callback, make sure there is no bug in your code.",
            "If you are using a solver, check the reduced cost tolerance "
            "(config tolerance 'reduced_cost').",
            "======",
        ])


def check_column_insertion(
    master: Formulation,
    subproblem: Formulation,
    column_id: VarId,
    reduced_cost: float,
    tolerance: Optional[float] = None,
) -> Optional[ColumnAlreadyInsertedColGenWarning]:
    """
    Check a column returned by pricing before inserting it in the master.

    Args:
        master: The master formulation
        subproblem: The subproblem that generated the column
        column_id: Id of the generated column
        reduced_cost: Reduced cost reported by pricing
        tolerance: Reduced cost tolerance (default: config 'reduced_cost')

    Returns:
        The report if the column is already in the master, active and
        improving; None otherwise. The report is also logged as a warning.
    """
    if tolerance is None:
        tolerance = config.get_tolerance("reduced_cost")

    in_master = master.has_var(column_id)
    is_active = in_master and master.is_active(column_id)
    if not (is_active and reduced_cost < -tolerance):
        return None

    report = ColumnAlreadyInsertedColGenWarning(
        column_in_master=in_master,
        column_is_active=is_active,
        column_reduced_cost=reduced_cost,
        column_id=column_id,
        master=master,
        subproblem=subproblem,
    )
    logger.warning("%s", report)
    return report
