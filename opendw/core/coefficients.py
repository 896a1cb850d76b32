"""
CoefficientRelation - sparse (constraint, variable) -> coefficient store.

The relation is indexed on both axes:
- rows: constraint id -> {variable id: coefficient}
- columns: variable id -> {constraint id: coefficient}

Both indexes are updated together on every write, so reading a pair by row or
by column always gives the same value. Insertion is O(1) amortized and
iterating a row or a column is O(nonzeros in it).

A coefficient of exactly 0.0 is not stored; setting one removes the pair.

Example:
    >>> A = CoefficientRelation()
    >>> A.set(c1, x1, 1.0)
    >>> A.set(c1, x2, 2.0)
    >>> A.row(c1)
    [(VarId(1), 1.0), (VarId(2), 2.0)]
    >>> A.column(x2)
    [(ConstrId(3), 2.0)]
"""

from typing import (
    Callable,
    Dict,
    Hashable,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)

import numpy as np

from opendw.core.exceptions import UnsupportedOperationError

# Row and column keys are ConstrId / VarId in practice, any hashable works
RowKey = Hashable
ColKey = Hashable


class CoefficientRelation:
    """
    Bipartite sparse relation between constraints (rows) and variables (columns).

    Attributes:
        capacity: Optional pre-sizing hint for the identifier space. Storage
            grows dynamically; the hint is only recorded.
    """

    def __init__(self, capacity: Optional[int] = None):
        self._rows: Dict[RowKey, Dict[ColKey, float]] = {}
        self._cols: Dict[ColKey, Dict[RowKey, float]] = {}
        self._frozen = False
        self.capacity = capacity

    # =========================================================================
    # Mutation
    # =========================================================================

    def add_row(
        self,
        constr_id: RowKey,
        members: Optional[Mapping[ColKey, float]] = None
    ) -> None:
        """
        Register a row, optionally filling it.

        Args:
            constr_id: Constraint identifier
            members: Mapping variable id -> coefficient
        """
        self._check_mutable()
        self._rows.setdefault(constr_id, {})
        if members:
            for var_id, coeff in members.items():
                self.set(constr_id, var_id, coeff)

    def add_column(
        self,
        var_id: ColKey,
        members: Optional[Mapping[RowKey, float]] = None
    ) -> None:
        """
        Register a column, optionally filling it.

        Args:
            var_id: Variable identifier
            members: Mapping constraint id -> coefficient
        """
        self._check_mutable()
        self._cols.setdefault(var_id, {})
        if members:
            for constr_id, coeff in members.items():
                self.set(constr_id, var_id, coeff)

    def set(self, constr_id: RowKey, var_id: ColKey, coeff: float) -> None:
        """Set the coefficient of a pair (0.0 removes it)."""
        self._check_mutable()
        row = self._rows.setdefault(constr_id, {})
        col = self._cols.setdefault(var_id, {})
        if coeff == 0.0:
            row.pop(var_id, None)
            col.pop(constr_id, None)
            return
        row[var_id] = coeff
        col[constr_id] = coeff

    def reset_row(self, constr_id: RowKey, members: Mapping[ColKey, float]) -> None:
        """Replace the whole content of a row."""
        self._check_mutable()
        for var_id in list(self._rows.get(constr_id, ())):
            self.set(constr_id, var_id, 0.0)
        self.add_row(constr_id, members)

    def reset_column(self, var_id: ColKey, members: Mapping[RowKey, float]) -> None:
        """Replace the whole content of a column."""
        self._check_mutable()
        for constr_id in list(self._cols.get(var_id, ())):
            self.set(constr_id, var_id, 0.0)
        self.add_column(var_id, members)

    def freeze(self) -> 'CoefficientRelation':
        """Make the relation read-only. Returns self."""
        self._frozen = True
        return self

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def _check_mutable(self) -> None:
        if self._frozen:
            raise UnsupportedOperationError("CoefficientRelation is frozen")

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, constr_id: RowKey, var_id: ColKey, default: float = 0.0) -> float:
        return self._rows.get(constr_id, {}).get(var_id, default)

    def row(self, constr_id: RowKey) -> List[Tuple[ColKey, float]]:
        """Nonzeros of a row as (variable id, coefficient) pairs."""
        return list(self._rows.get(constr_id, {}).items())

    def column(self, var_id: ColKey) -> List[Tuple[RowKey, float]]:
        """Nonzeros of a column as (constraint id, coefficient) pairs."""
        return list(self._cols.get(var_id, {}).items())

    def row_dict(self, constr_id: RowKey) -> Dict[ColKey, float]:
        """Copy of a row as a dict."""
        return dict(self._rows.get(constr_id, {}))

    def column_dict(self, var_id: ColKey) -> Dict[RowKey, float]:
        """Copy of a column as a dict."""
        return dict(self._cols.get(var_id, {}))

    def has_row(self, constr_id: RowKey) -> bool:
        return constr_id in self._rows

    def has_column(self, var_id: ColKey) -> bool:
        return var_id in self._cols

    def row_ids(self) -> List[RowKey]:
        return list(self._rows)

    def column_ids(self) -> List[ColKey]:
        return list(self._cols)

    @property
    def nnz(self) -> int:
        """Number of stored nonzero coefficients."""
        return sum(len(row) for row in self._rows.values())

    def nonzeros(self) -> Iterator[Tuple[RowKey, ColKey, float]]:
        """Iterate over (constraint id, variable id, coefficient) triplets."""
        for constr_id, row in self._rows.items():
            for var_id, coeff in row.items():
                yield constr_id, var_id, coeff

    # =========================================================================
    # Extraction and algebra
    # =========================================================================

    def extract(
        self,
        keep_constr: Callable[[RowKey], bool],
        keep_var: Callable[[ColKey], bool],
        capacity: Optional[int] = None,
        constr_ids: Optional[Iterable[RowKey]] = None,
    ) -> 'CoefficientRelation':
        """
        Build a new relation holding only the pairs that pass both predicates.

        The source is left untouched.

        Args:
            keep_constr: Row predicate
            keep_var: Column predicate
            capacity: Pre-sizing hint recorded on the result
            constr_ids: Rows to scan (default: every row of the relation).
                Only rows passing keep_constr are kept either way.

        Returns:
            The extracted relation (mutable)
        """
        result = CoefficientRelation(capacity=capacity)
        candidates = self._rows if constr_ids is None else constr_ids
        for constr_id in candidates:
            if not keep_constr(constr_id):
                continue
            for var_id, coeff in self._rows.get(constr_id, {}).items():
                if keep_var(var_id):
                    result.set(constr_id, var_id, coeff)
        return result

    def mul(self, x: Mapping[ColKey, float]) -> Dict[RowKey, float]:
        """
        Sparse product A * x.

        Args:
            x: Mapping variable id -> value (missing ids count as 0)

        Returns:
            Mapping constraint id -> value for every row of the relation
        """
        result: Dict[RowKey, float] = {}
        for constr_id, row in self._rows.items():
            total = 0.0
            for var_id, coeff in row.items():
                value = x.get(var_id)
                if value:
                    total += coeff * value
            result[constr_id] = total
        return result

    def transpose_mul(self, y: Mapping[RowKey, float]) -> Dict[ColKey, float]:
        """
        Sparse product transpose(A) * y.

        Args:
            y: Mapping constraint id -> value (missing ids count as 0)

        Returns:
            Mapping variable id -> value for every column of the relation
        """
        result: Dict[ColKey, float] = {}
        for var_id, col in self._cols.items():
            total = 0.0
            for constr_id, coeff in col.items():
                value = y.get(constr_id)
                if value:
                    total += coeff * value
            result[var_id] = total
        return result

    def to_dense(
        self,
        constr_ids: Optional[Sequence[RowKey]] = None,
        var_ids: Optional[Sequence[ColKey]] = None,
    ) -> np.ndarray:
        """
        Dense numpy view of the relation.

        Args:
            constr_ids: Row order (default: rows sorted)
            var_ids: Column order (default: columns sorted)

        Returns:
            Array of shape (len(constr_ids), len(var_ids))
        """
        if constr_ids is None:
            constr_ids = sorted(self._rows)
        if var_ids is None:
            var_ids = sorted(self._cols)
        col_index = {var_id: j for j, var_id in enumerate(var_ids)}
        dense = np.zeros((len(constr_ids), len(var_ids)))
        for i, constr_id in enumerate(constr_ids):
            for var_id, coeff in self._rows.get(constr_id, {}).items():
                j = col_index.get(var_id)
                if j is not None:
                    dense[i, j] = coeff
        return dense

    def copy(self) -> 'CoefficientRelation':
        """Mutable deep copy."""
        return self.extract(lambda _: True, lambda _: True, capacity=self.capacity)

    def __len__(self) -> int:
        return self.nnz

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CoefficientRelation):
            return NotImplemented
        return dict(self._nonzero_items()) == dict(other._nonzero_items())

    def _nonzero_items(self):
        return (((c, v), coeff) for c, v, coeff in self.nonzeros())

    __hash__ = None  # mutable

    def __repr__(self) -> str:
        return (
            f"CoefficientRelation(rows={len(self._rows)}, "
            f"cols={len(self._cols)}, nnz={self.nnz})"
        )
