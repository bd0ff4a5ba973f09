# timegrid/util/ordered.py
from __future__ import annotations

from typing import Callable, Dict, Generic, Hashable, Iterable, Iterator, List, Tuple, TypeVar

T = TypeVar("T")


class OrderedKeySet(Generic[T]):
    """Insertion-ordered collection that keeps the first item seen per key.

    Used for resource lists (trainers, units, rooms) and deal values, where
    upstream data repeats the same entity and display order must stay stable.
    """

    def __init__(self, key: Callable[[T], Hashable], items: Iterable[T] = ()) -> None:
        self._key = key
        self._items: Dict[Hashable, T] = {}
        for item in items:
            self.add(item)

    def add(self, item: T) -> bool:
        """Add `item` unless its key is already present. Returns True if added."""
        k = self._key(item)
        if k in self._items:
            return False
        self._items[k] = item
        return True

    def __contains__(self, item: object) -> bool:
        try:
            return self._key(item) in self._items  # type: ignore[arg-type]
        except (AttributeError, TypeError):
            return False

    def __iter__(self) -> Iterator[T]:
        return iter(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def to_list(self) -> List[T]:
        return list(self._items.values())

    def to_tuple(self) -> Tuple[T, ...]:
        return tuple(self._items.values())


def unique_by(items: Iterable[T], key: Callable[[T], Hashable]) -> Tuple[T, ...]:
    return OrderedKeySet(key, items).to_tuple()
