"""
EntityStore - identifier-keyed container for variables and constraints.

Setting an existing identifier replaces the stored value entirely (last write
wins, no merge). Insertion order has no meaning beyond making summaries
deterministic.
"""

from typing import (
    Callable,
    Dict,
    Generic,
    Hashable,
    Iterator,
    Set,
    Tuple,
    TypeVar,
)

from opendw.core.exceptions import NotFoundError

K = TypeVar('K', bound=Hashable)
V = TypeVar('V')


class EntityStore(Generic[K, V]):
    """
    Mapping from identifier to entity.

    Example:
        >>> store = EntityStore()
        >>> store.set(var.id, var)
        >>> store.contains(var.id)
        True
        >>> store.get(other_id)
        Traceback (most recent call last):
        ...
        opendw.core.exceptions.NotFoundError: VarId(7) not found
    """

    def __init__(self, name: str = "store"):
        self._name = name
        self._members: Dict[K, V] = {}

    def contains(self, key: K) -> bool:
        return key in self._members

    def get(self, key: K) -> V:
        """
        Get the value stored under an identifier.

        Raises:
            NotFoundError: If the identifier was never set
        """
        try:
            return self._members[key]
        except KeyError:
            raise NotFoundError(key, f"{key!r} not found in {self._name}") from None

    def set(self, key: K, value: V) -> None:
        """Insert or overwrite."""
        self._members[key] = value

    def all_ids(self) -> Set[K]:
        return set(self._members)

    def filter(self, predicate: Callable[[K, V], bool]) -> Dict[K, V]:
        """
        Get the entries matching a predicate.

        Args:
            predicate: Called with (id, value)

        Returns:
            New dict with the matching entries
        """
        return {k: v for k, v in self._members.items() if predicate(k, v)}

    def size(self) -> int:
        return len(self._members)

    def items(self) -> Iterator[Tuple[K, V]]:
        return iter(self._members.items())

    def __contains__(self, key: object) -> bool:
        return key in self._members

    def __getitem__(self, key: K) -> V:
        return self.get(key)

    def __iter__(self) -> Iterator[Tuple[K, V]]:
        return self.items()

    def __len__(self) -> int:
        return self.size()

    def summary(self) -> str:
        lines = [f"EntityStore '{self._name}' ({self.size()} entries):"]
        for key, value in self._members.items():
            lines.append(f"  {key!r} => {value!r}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"EntityStore('{self._name}', size={self.size()})"
