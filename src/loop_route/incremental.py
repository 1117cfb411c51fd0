from __future__ import annotations

import logging
from typing import List, Mapping, Optional, Sequence, Tuple

from .config import DEFAULT_CONFIG, EngineConfig
from .construction import build_tour
from .errors import DuplicateStop, EmptyTour, NotFound
from .geo import K, Stop, lookup_stop, stop_distance
from .tour import Tour

logger = logging.getLogger(__name__)


def insert_stop(
    tour: Tour[K],
    stops_by_id: Mapping[K, Stop],
    new_stop: Stop[K],
    *,
    config: Optional[EngineConfig] = None,
) -> Tuple[Tour[K], float]:
    """Insert ``new_stop`` where it lengthens ``tour`` the least.

    Every other stop keeps its relative position. Returns the new tour and
    the length increase in kilometers. Costs within the configured tolerance
    are ties and go to the earliest edge in route order.
    """

    cfg = config or DEFAULT_CONFIG
    if new_stop.id in tour:
        raise DuplicateStop(f"stop {new_stop.id!r} is already on the route")
    if not len(tour):
        raise EmptyTour("cannot insert into an empty route; build one instead")

    points = [lookup_stop(stops_by_id, sid) for sid in tour]
    n = len(points)
    if n == 1:
        delta = 2 * stop_distance(points[0], new_stop)
        return tour.inserted(1, new_stop.id), delta

    best_pos = -1
    best_cost = 0.0
    for i in range(n):
        a = points[i]
        b = points[(i + 1) % n]
        cost = stop_distance(a, new_stop) + stop_distance(new_stop, b) - stop_distance(a, b)
        if best_pos < 0 or cost < best_cost - cfg.tolerance_km:
            best_pos = i
            best_cost = cost
    logger.debug(
        "Inserting %r after %r (+%.3f km)", new_stop.id, tour[best_pos], best_cost
    )
    return tour.inserted(best_pos + 1, new_stop.id), best_cost


def remove_stop(tour: Tour[K], stop_id: K) -> Tour[K]:
    """Return ``tour`` without ``stop_id``; its neighbors become adjacent."""
    if stop_id not in tour:
        raise NotFound(f"stop {stop_id!r} is not on the route")
    return tour.without(stop_id)


def removal_delta(tour: Tour[K], stops_by_id: Mapping[K, Stop], stop_id: K) -> float:
    """Return the length change (<= 0 up to rounding) of removing ``stop_id``."""
    prev, nxt = tour.neighbors(stop_id)
    if len(tour) == 1:
        return 0.0
    here = lookup_stop(stops_by_id, stop_id)
    p = lookup_stop(stops_by_id, prev)
    if len(tour) == 2:
        return -2 * stop_distance(p, here)
    q = lookup_stop(stops_by_id, nxt)
    return stop_distance(p, q) - stop_distance(p, here) - stop_distance(here, q)


def add_stop_to_route(
    order: Sequence[K],
    stops: Sequence[Stop[K]],
    new_id: K,
    *,
    config: Optional[EngineConfig] = None,
) -> List[K]:
    """Return the persisted ``order`` extended with the newly approved ``new_id``.

    ``stops`` is the loop's current stop set including the new member. Ids of
    the old order without a stop are dropped. When nothing of the old order
    remains the route is built from scratch.
    """

    stops_by_id = {s.id: s for s in stops}
    new_stop = lookup_stop(stops_by_id, new_id)
    kept = [sid for sid in order if sid in stops_by_id and sid != new_id]
    dropped = sum(1 for sid in order if sid not in stops_by_id)
    if dropped:
        logger.warning("Dropped %d route ids without a location", dropped)
    if not kept:
        return build_tour([new_stop], config=config).as_list()
    tour, delta = insert_stop(Tour(kept), stops_by_id, new_stop, config=config)
    logger.info("Added %r to route of %d stops (+%.3f km)", new_id, len(kept), delta)
    return tour.as_list()
