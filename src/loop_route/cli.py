import argparse
import json
import logging
import sys
from typing import List, Optional

from tqdm.auto import tqdm

from .config import EngineConfig, load_config
from .construction import build_tour, optimize_route, tour_length
from .errors import RouteError
from .geo import lookup_stop
from .incremental import insert_stop, remove_stop
from .loaders import load_order, load_stops, write_route_csv
from .tour import Tour

logger = logging.getLogger(__name__)


class TqdmWriteHandler(logging.Handler):
    def emit(self, record):
        try:
            msg = self.format(record)
            tqdm.write(msg, file=sys.stderr)
            self.flush()
        except OSError:
            self.handleError(record)


def setup_logging(verbose: bool) -> None:
    handler = TqdmWriteHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s: %(name)s: %(message)s"))
    root_logger = logging.getLogger()
    for h in root_logger.handlers[:]:
        root_logger.removeHandler(h)
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.INFO if verbose else logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Order the stops of a loop's bag route")
    parser.add_argument("--config", help="engine settings (JSON or YAML)")
    parser.add_argument("--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("build", help="build a route from scratch")
    p.add_argument("stops", help="CSV or JSON file with member stops")
    p.add_argument("--report", help="write a per-stop leg report CSV")
    p.add_argument("--progress", action="store_true", help="show 2-opt progress")

    p = sub.add_parser("insert", help="add one stop to an existing route")
    p.add_argument("stops")
    p.add_argument("--order", required=True, help="JSON file with the current route order")
    p.add_argument("--id", required=True, dest="stop_id")
    p.add_argument("--report")

    p = sub.add_parser("remove", help="remove one stop from an existing route")
    p.add_argument("--order", required=True)
    p.add_argument("--id", required=True, dest="stop_id")

    p = sub.add_parser("optimize", help="compare the current route with a rebuilt one")
    p.add_argument("stops")
    p.add_argument("--order", help="JSON file with the current route order")
    p.add_argument("--report")

    p = sub.add_parser("length", help="length of a route in kilometers")
    p.add_argument("stops")
    p.add_argument("--order", required=True)
    return parser


def _find_id(order: List, raw: str):
    # Order files may store numeric ids while the command line gives text
    for sid in order:
        if str(sid) == raw:
            return sid
    return raw


def run(args: argparse.Namespace, config: EngineConfig) -> dict:
    if args.command == "remove":
        tour = Tour(load_order(args.order))
        tour = remove_stop(tour, _find_id(tour.as_list(), args.stop_id))
        return {"order": tour.as_list()}

    stops = load_stops(args.stops)
    stops_by_id = {s.id: s for s in stops}

    if args.command == "build":
        tour = build_tour(stops, config=config, show_progress=args.progress)
        result = {"order": tour.as_list(), "length_km": tour_length(tour, stops_by_id)}
    elif args.command == "insert":
        tour = Tour(load_order(args.order))
        new_stop = lookup_stop(stops_by_id, _find_id(list(stops_by_id), args.stop_id))
        tour, delta = insert_stop(tour, stops_by_id, new_stop, config=config)
        result = {"order": tour.as_list(), "delta_km": delta}
    elif args.command == "optimize":
        current = load_order(args.order) if args.order else []
        opt = optimize_route(current, stops, config=config)
        tour = Tour(opt.order)
        result = {
            "order": opt.order,
            "current_length_km": opt.current_length,
            "optimized_length_km": opt.optimized_length,
        }
    else:
        tour = Tour(load_order(args.order))
        return {"length_km": tour_length(tour, stops_by_id)}

    if getattr(args, "report", None):
        write_route_csv(args.report, tour, stops_by_id)
        logger.info("Wrote route report to %s", args.report)
    return result


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    try:
        config = load_config(args.config) if args.config else EngineConfig()
        result = run(args, config)
    except (RouteError, ValueError, OSError) as e:
        logger.error("%s", e)
        return 1
    print(json.dumps(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
