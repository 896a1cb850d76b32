"""
Column generation support - read-only views and diagnostics over a master.

- ReducedCostsCalculationHelper: costs and coefficients for pricing
- SubgradientCalculationHelper: rhs and coefficients for Lagrangian subgradients
- ColumnAlreadyInsertedColGenWarning: pricing-correctness report
"""

from opendw.colgen.diagnostics import (
    ColumnAlreadyInsertedColGenWarning,
    check_column_insertion,
)
from opendw.colgen.helpers import (
    ReducedCostsCalculationHelper,
    SubgradientCalculationHelper,
)

__all__ = [
    'ReducedCostsCalculationHelper',
    'SubgradientCalculationHelper',
    'ColumnAlreadyInsertedColGenWarning',
    'check_column_insertion',
]
