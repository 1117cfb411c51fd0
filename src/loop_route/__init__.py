"""Route ordering engine for the bag routes of clothing loops."""

from .errors import (
    RouteError,
    InvalidCoordinate,
    EmptyInput,
    EmptyTour,
    DuplicateStop,
    NotFound,
    StaleTourError,
)
from .geo import Stop, haversine_km, distance_matrix
from .tour import Tour
from .config import EngineConfig, load_config
from .construction import RouteOptimization, build_tour, optimize_route, tour_length
from .incremental import add_stop_to_route, insert_stop, remove_stop, removal_delta
from .loaders import load_stops, route_report
from .route_book import RouteBook, TourRecord, TourState

__all__ = [
    "RouteError",
    "InvalidCoordinate",
    "EmptyInput",
    "EmptyTour",
    "DuplicateStop",
    "NotFound",
    "StaleTourError",
    "Stop",
    "haversine_km",
    "distance_matrix",
    "Tour",
    "EngineConfig",
    "load_config",
    "RouteOptimization",
    "build_tour",
    "optimize_route",
    "tour_length",
    "add_stop_to_route",
    "insert_stop",
    "remove_stop",
    "removal_delta",
    "load_stops",
    "route_report",
    "RouteBook",
    "TourRecord",
    "TourState",
]
