import csv
import json
import logging
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from .geo import Stop, lookup_stop, stop_distance
from .tour import Tour

logger = logging.getLogger(__name__)

REPORT_COLUMNS = ["position", "id", "latitude", "longitude", "leg_km", "cumulative_km"]


def _first(row: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        val = row.get(key)
        if val is not None and val != "":
            return val
    return None


def _parse_number(value: Any) -> Any:
    # CSV cells arrive as text; anything unparsable is left for Stop to reject
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return value
    return value


def _stop_from_row(row: Mapping[str, Any], line: int) -> Optional[Stop]:
    sid = _first(row, "id", "uid", "user_uid")
    if sid is None:
        raise ValueError(f"stop entry {line} has no id")
    lat = _first(row, "latitude", "lat")
    lon = _first(row, "longitude", "lon", "lng")
    if lat is None or lon is None:
        logger.warning("Skipping stop %r without coordinates", sid)
        return None
    return Stop(sid, _parse_number(lat), _parse_number(lon))


def load_stops(path: str) -> List[Stop]:
    """Load member stops from a CSV or JSON file.

    CSV files need an ``id`` (or ``uid``) column plus ``latitude``/``lat`` and
    ``longitude``/``lon``/``lng`` columns. JSON files hold either a list of
    objects with the same keys or a top-level ``stops`` list. Entries without
    coordinates are skipped; invalid coordinates raise
    :class:`~loop_route.errors.InvalidCoordinate`.
    """

    if path.lower().endswith(".csv"):
        with open(path, newline="") as f:
            rows: List[Dict[str, Any]] = list(csv.DictReader(f))
    else:
        with open(path) as f:
            data = json.load(f)
        if isinstance(data, dict) and "stops" in data:
            rows = data["stops"]
        elif isinstance(data, list):
            rows = data
        else:
            raise ValueError("Unrecognized stop file format")

    stops: List[Stop] = []
    for line, row in enumerate(rows, start=1):
        if not isinstance(row, dict):
            raise ValueError(f"stop entry {line} is not an object")
        stop = _stop_from_row(row, line)
        if stop is not None:
            stops.append(stop)
    logger.info("Loaded %d stops from %s", len(stops), path)
    return stops


def load_order(path: str) -> List[Any]:
    """Load a persisted route order: a JSON list of ids or ``{"order": [...]}``."""
    with open(path) as f:
        data = json.load(f)
    if isinstance(data, dict) and "order" in data:
        data = data["order"]
    if not isinstance(data, list):
        raise ValueError("Route order file must contain a list of ids")
    return data


def route_report(tour: Tour, stops_by_id: Mapping[Any, Stop]) -> pd.DataFrame:
    """Return one row per stop with the leg from the previous stop.

    The first row's leg is the closing leg from the last stop, so the last
    ``cumulative_km`` is the route length.
    """

    rows = []
    total = 0.0
    ids = tour.as_list()
    for pos, sid in enumerate(ids):
        stop = lookup_stop(stops_by_id, sid)
        leg = 0.0
        if len(ids) > 1:
            leg = stop_distance(lookup_stop(stops_by_id, ids[pos - 1]), stop)
        total += leg
        rows.append({
            "position": pos,
            "id": sid,
            "latitude": stop.latitude,
            "longitude": stop.longitude,
            "leg_km": round(leg, 3),
            "cumulative_km": round(total, 3),
        })
    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def write_route_csv(csv_path: str, tour: Tour, stops_by_id: Mapping[Any, Stop]) -> None:
    route_report(tour, stops_by_id).to_csv(csv_path, index=False)
