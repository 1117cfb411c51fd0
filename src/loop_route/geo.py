from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Generic, Hashable, Mapping, Sequence, Tuple, TypeVar

import numpy as np

from .errors import InvalidCoordinate, NotFound

K = TypeVar("K", bound=Hashable)

# Mean Earth radius (IUGG) in kilometers
EARTH_RADIUS_KM = 6371.0088


def _check_component(value: Any, name: str, limit: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, np.floating, np.integer)):
        raise InvalidCoordinate(f"{name} must be a number, got {value!r}")
    val = float(value)
    if not math.isfinite(val):
        raise InvalidCoordinate(f"{name} must be finite, got {value!r}")
    if val < -limit or val > limit:
        raise InvalidCoordinate(f"{name} {val} outside [-{limit:g}, {limit:g}]")
    return val


def validate_point(lat: Any, lon: Any) -> Tuple[float, float]:
    """Return ``(lat, lon)`` as floats or raise :class:`InvalidCoordinate`."""
    return _check_component(lat, "latitude", 90.0), _check_component(lon, "longitude", 180.0)


@dataclass(frozen=True, eq=False)
class Stop(Generic[K]):
    """A member location on a loop's route.

    Identity is the ``id`` alone; two stops with the same id compare equal
    regardless of their coordinates.
    """

    id: K
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        lat, lon = validate_point(self.latitude, self.longitude)
        object.__setattr__(self, "latitude", lat)
        object.__setattr__(self, "longitude", lon)

    @property
    def point(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Stop):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


def haversine_km(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    """Return great-circle distance in kilometers between two lat/lon points."""

    lat1, lon1 = validate_point(*a)
    lat2, lon2 = validate_point(*b)
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dl = math.radians(lon2 - lon1)
    h = (
        math.sin(dphi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dl / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(1.0, max(0.0, h))))


def stop_distance(a: Stop, b: Stop) -> float:
    return haversine_km(a.point, b.point)


def lookup_stop(stops_by_id: Mapping[K, Stop], sid: K) -> Stop:
    try:
        return stops_by_id[sid]
    except KeyError:
        raise NotFound(f"no stop for route id {sid!r}") from None


def distance_matrix(stops: Sequence[Stop]) -> np.ndarray:
    """Return the pairwise haversine distance matrix for ``stops``.

    Row and column ``i`` correspond to ``stops[i]``. The diagonal is zero and
    the matrix is symmetric.
    """

    if not stops:
        return np.zeros((0, 0))
    lat = np.radians(np.array([s.latitude for s in stops], dtype=float))
    lon = np.radians(np.array([s.longitude for s in stops], dtype=float))
    dphi = lat[:, None] - lat[None, :]
    dl = lon[:, None] - lon[None, :]
    h = (
        np.sin(dphi / 2) ** 2
        + np.cos(lat)[:, None] * np.cos(lat)[None, :] * np.sin(dl / 2) ** 2
    )
    dist = 2 * EARTH_RADIUS_KM * np.arcsin(np.sqrt(np.clip(h, 0.0, 1.0)))
    # Force exact symmetry so tie-breaking does not depend on direction
    dist = np.minimum(dist, dist.T)
    np.fill_diagonal(dist, 0.0)
    return dist
