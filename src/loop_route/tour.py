from __future__ import annotations

from typing import Dict, Generic, Iterable, Iterator, List, Tuple

from .errors import DuplicateStop, NotFound
from .geo import K


class Tour(Generic[K]):
    """Closed visiting order over stop ids.

    The order is kept as a dense list together with an id -> position map so
    neighbor lookups and edge scans are plain index arithmetic. A ``Tour`` is
    never modified in place; operations return a new instance.
    """

    __slots__ = ("_order", "_index")

    def __init__(self, ids: Iterable[K] = ()):
        order: List[K] = []
        index: Dict[K, int] = {}
        for sid in ids:
            if sid in index:
                raise DuplicateStop(f"stop {sid!r} appears more than once")
            index[sid] = len(order)
            order.append(sid)
        self._order = order
        self._index = index

    @classmethod
    def _trusted(cls, order: List[K]) -> "Tour[K]":
        tour = cls.__new__(cls)
        tour._order = order
        tour._index = {sid: i for i, sid in enumerate(order)}
        return tour

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[K]:
        return iter(self._order)

    def __contains__(self, sid: object) -> bool:
        return sid in self._index

    def __getitem__(self, pos: int) -> K:
        return self._order[pos]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Tour):
            return self._order == other._order
        return NotImplemented

    def __repr__(self) -> str:
        return f"Tour({self._order!r})"

    @property
    def ids(self) -> Tuple[K, ...]:
        return tuple(self._order)

    def as_list(self) -> List[K]:
        """Return the order as a fresh list, ready to be persisted."""
        return list(self._order)

    def position(self, sid: K) -> int:
        try:
            return self._index[sid]
        except KeyError:
            raise NotFound(f"stop {sid!r} is not on the route") from None

    def neighbors(self, sid: K) -> Tuple[K, K]:
        """Return ``(previous, next)`` of ``sid`` in cyclic order."""
        pos = self.position(sid)
        n = len(self._order)
        return self._order[pos - 1], self._order[(pos + 1) % n]

    def edges(self) -> Iterator[Tuple[K, K]]:
        """Yield consecutive pairs including the closing ``(last, first)`` edge.

        A single stop has no edges.
        """
        n = len(self._order)
        if n < 2:
            return
        for i in range(n):
            yield self._order[i], self._order[(i + 1) % n]

    def window(self, sid: K, before: int) -> List[K]:
        """Return the whole route rotated to start ``before`` stops ahead of ``sid``.

        Used for the member view that lists the stops handing a bag towards
        ``sid`` first. Routes with fewer than ``before`` stops start at the
        last stop, whoever ``sid`` is.
        """
        pos = self.position(sid)
        n = len(self._order)
        start = n - 1 if n < before else (pos - before) % n
        return self._order[start:] + self._order[:start]

    def inserted(self, pos: int, sid: K) -> "Tour[K]":
        if sid in self._index:
            raise DuplicateStop(f"stop {sid!r} is already on the route")
        order = self._order[:]
        order.insert(pos, sid)
        return Tour._trusted(order)

    def without(self, sid: K) -> "Tour[K]":
        pos = self.position(sid)
        return Tour._trusted(self._order[:pos] + self._order[pos + 1:])

