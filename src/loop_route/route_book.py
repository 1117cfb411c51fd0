from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Generic, Hashable, Mapping, Optional, Sequence, Tuple

from .config import EngineConfig
from .construction import build_tour
from .errors import StaleTourError
from .geo import K, Stop
from .incremental import insert_stop, remove_stop
from .tour import Tour

logger = logging.getLogger(__name__)


class TourState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    SEEDED = "seeded"
    MUTATED = "mutated"
    REBUILT = "rebuilt"


@dataclass
class TourRecord(Generic[K]):
    tour: Tour[K] = field(default_factory=Tour)
    version: int = 0
    state: TourState = TourState.UNINITIALIZED


class RouteBook:
    """In-memory owner of one route per loop.

    Each loop gets its own lock so mutations of the same route run one at a
    time while different loops proceed in parallel. Every mutation accepts an
    optional ``expected_version``; a mismatch raises
    :class:`~loop_route.errors.StaleTourError` and leaves the record as it was.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config
        self._records: Dict[Hashable, TourRecord] = {}
        self._locks: Dict[Hashable, threading.Lock] = {}
        self._guard = threading.Lock()

    def _entry(self, loop_id: Hashable) -> Tuple[threading.Lock, TourRecord]:
        with self._guard:
            lock = self._locks.get(loop_id)
            if lock is None:
                lock = self._locks[loop_id] = threading.Lock()
                self._records[loop_id] = TourRecord()
            return lock, self._records[loop_id]

    def get(self, loop_id: Hashable) -> TourRecord:
        """Return a snapshot of the loop's route; unknown loops are not registered."""
        with self._guard:
            lock = self._locks.get(loop_id)
            rec = self._records.get(loop_id)
        if lock is None:
            return TourRecord()
        with lock:
            return TourRecord(rec.tour, rec.version, rec.state)

    def forget(self, loop_id: Hashable) -> None:
        """Drop the loop's route, e.g. once the loop itself is deleted."""
        with self._guard:
            self._locks.pop(loop_id, None)
            self._records.pop(loop_id, None)

    def __contains__(self, loop_id: object) -> bool:
        with self._guard:
            return loop_id in self._locks

    def _check(self, loop_id: Hashable, rec: TourRecord, expected_version: Optional[int]) -> None:
        if expected_version is not None and expected_version != rec.version:
            raise StaleTourError(
                f"route of loop {loop_id!r} is at version {rec.version}, "
                f"expected {expected_version}"
            )

    def _commit(self, loop_id: Hashable, rec: TourRecord, tour: Tour, state: TourState) -> TourRecord:
        rec.tour = tour
        rec.version += 1
        rec.state = state
        logger.debug(
            "Loop %r route now version %d (%s, %d stops)",
            loop_id,
            rec.version,
            state.value,
            len(tour),
        )
        return TourRecord(rec.tour, rec.version, rec.state)

    def rebuild(
        self,
        loop_id: Hashable,
        stops: Sequence[Stop],
        *,
        expected_version: Optional[int] = None,
    ) -> TourRecord:
        """Replace the loop's route with a freshly built one.

        The first build of a loop moves it to ``SEEDED``, later ones to
        ``REBUILT``.
        """
        lock, rec = self._entry(loop_id)
        with lock:
            self._check(loop_id, rec, expected_version)
            tour = build_tour(stops, config=self.config)
            state = TourState.SEEDED if rec.state is TourState.UNINITIALIZED else TourState.REBUILT
            return self._commit(loop_id, rec, tour, state)

    def insert(
        self,
        loop_id: Hashable,
        stops_by_id: Mapping[Hashable, Stop],
        new_stop: Stop,
        *,
        expected_version: Optional[int] = None,
    ) -> Tuple[TourRecord, float]:
        """Add ``new_stop`` to the loop's route; an empty route is seeded with it."""
        lock, rec = self._entry(loop_id)
        with lock:
            self._check(loop_id, rec, expected_version)
            if not len(rec.tour):
                tour = build_tour([new_stop], config=self.config)
                state = TourState.SEEDED if rec.state is TourState.UNINITIALIZED else TourState.MUTATED
                return self._commit(loop_id, rec, tour, state), 0.0
            tour, delta = insert_stop(rec.tour, stops_by_id, new_stop, config=self.config)
            return self._commit(loop_id, rec, tour, TourState.MUTATED), delta

    def remove(
        self,
        loop_id: Hashable,
        stop_id: Hashable,
        *,
        expected_version: Optional[int] = None,
    ) -> TourRecord:
        lock, rec = self._entry(loop_id)
        with lock:
            self._check(loop_id, rec, expected_version)
            tour = remove_stop(rec.tour, stop_id)
            return self._commit(loop_id, rec, tour, TourState.MUTATED)
