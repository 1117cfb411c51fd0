from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Generic, List, Mapping, Optional, Sequence

import numpy as np
from tqdm.auto import tqdm

from .config import DEFAULT_CONFIG, EngineConfig
from .errors import DuplicateStop, EmptyInput
from .geo import K, Stop, distance_matrix, lookup_stop, stop_distance
from .tour import Tour

logger = logging.getLogger(__name__)


@dataclass
class RouteOptimization(Generic[K]):
    order: List[K]
    current_length: float
    optimized_length: float

    @property
    def saving(self) -> float:
        return self.current_length - self.optimized_length


def tour_length(tour: Tour[K], stops_by_id: Mapping[K, Stop]) -> float:
    """Return the closed length of ``tour`` in kilometers."""
    return sum(
        stop_distance(lookup_stop(stops_by_id, a), lookup_stop(stops_by_id, b))
        for a, b in tour.edges()
    )


def _cycle_length(order: Sequence[int], dist: List[List[float]]) -> float:
    n = len(order)
    if n < 2:
        return 0.0
    return sum(dist[order[i]][order[(i + 1) % n]] for i in range(n))


def nearest_neighbor_order(dist: np.ndarray, tolerance: float = 0.0) -> List[int]:
    """Greedy visiting order over matrix indices starting at index 0.

    Distances within ``tolerance`` of the minimum count as ties and go to the
    lowest index.
    """

    n = dist.shape[0]
    if n == 0:
        return []
    order = [0]
    unvisited = np.arange(1, n)
    current = 0
    while unvisited.size:
        row = dist[current, unvisited]
        best = row.min()
        pick = int(np.flatnonzero(row <= best + tolerance)[0])
        current = int(unvisited[pick])
        order.append(current)
        unvisited = np.delete(unvisited, pick)
    return order


def two_opt(
    order: List[int],
    dist: List[List[float]],
    *,
    max_passes: int,
    tolerance: float = 0.0,
    show_progress: bool = False,
) -> List[int]:
    """Improve a cyclic ``order`` in place by segment reversal.

    A reversal is applied only when it shortens the cycle by more than
    ``tolerance``. ``order[0]`` never moves. Stops after a pass without
    changes or after ``max_passes`` passes.
    """

    n = len(order)
    if n < 4:
        return order
    passes = 0
    improved = True
    with tqdm(total=max_passes, desc="2-opt passes", unit="pass", disable=not show_progress) as bar:
        while improved and passes < max_passes:
            improved = False
            for i in range(n - 2):
                a = order[i]
                b = order[i + 1]
                for j in range(i + 2, n):
                    if i == 0 and j == n - 1:
                        continue  # edges share order[0]
                    c = order[j]
                    d = order[(j + 1) % n]
                    delta = dist[a][c] + dist[b][d] - dist[a][b] - dist[c][d]
                    if delta < -tolerance:
                        order[i + 1:j + 1] = order[i + 1:j + 1][::-1]
                        b = order[i + 1]
                        improved = True
            passes += 1
            bar.update(1)
    if improved:
        logger.warning("2-opt optimization reached pass limit %d", max_passes)
    else:
        logger.debug("2-opt converged after %d passes", passes)
    return order


def build_tour(
    stops: Sequence[Stop[K]],
    *,
    config: Optional[EngineConfig] = None,
    show_progress: bool = False,
) -> Tour[K]:
    """Build a route over ``stops`` from scratch.

    Nearest-neighbor construction from the first stop, followed by a bounded
    2-opt pass. The result depends only on the input order and coordinates.
    """

    cfg = config or DEFAULT_CONFIG
    stops = list(stops)
    if not stops:
        raise EmptyInput("cannot build a route without stops")
    seen = set()
    for s in stops:
        if s.id in seen:
            raise DuplicateStop(f"stop {s.id!r} given more than once")
        seen.add(s.id)

    dist_arr = distance_matrix(stops)
    order = nearest_neighbor_order(dist_arr, cfg.tolerance_km)
    dist = dist_arr.tolist()
    if cfg.improve:
        greedy_len = _cycle_length(order, dist)
        order = two_opt(
            order,
            dist,
            max_passes=cfg.max_passes(len(stops)),
            tolerance=cfg.tolerance_km,
            show_progress=show_progress,
        )
        logger.debug(
            "Built route over %d stops: greedy %.3f km, improved %.3f km",
            len(stops),
            greedy_len,
            _cycle_length(order, dist),
        )
    return Tour(stops[i].id for i in order)


def optimize_route(
    current_order: Sequence[K],
    stops: Sequence[Stop[K]],
    *,
    config: Optional[EngineConfig] = None,
) -> RouteOptimization[K]:
    """Compare the persisted ``current_order`` with a freshly built route.

    Ids in ``current_order`` that have no stop are left out of the current
    length, since they cannot be placed on the map.
    """

    stops_by_id = {s.id: s for s in stops}
    current = Tour(sid for sid in current_order if sid in stops_by_id)
    optimized = build_tour(stops, config=config)
    result = RouteOptimization(
        order=optimized.as_list(),
        current_length=tour_length(current, stops_by_id),
        optimized_length=tour_length(optimized, stops_by_id),
    )
    logger.info(
        "Route optimization: current %.3f km, optimized %.3f km",
        result.current_length,
        result.optimized_length,
    )
    return result
