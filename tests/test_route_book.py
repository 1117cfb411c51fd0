from concurrent.futures import ThreadPoolExecutor

import pytest

from loop_route.errors import DuplicateStop, NotFound, StaleTourError
from loop_route.geo import Stop
from loop_route.route_book import RouteBook, TourState


def build_stops(n):
    return [Stop(f"u{i}", 52.0 + 0.01 * i, 4.0 + 0.02 * (i % 3)) for i in range(n)]


def test_new_loop_is_uninitialized():
    book = RouteBook()
    rec = book.get("loop-1")
    assert "loop-1" not in book
    assert rec.state is TourState.UNINITIALIZED
    assert rec.version == 0
    assert len(rec.tour) == 0


def test_lifecycle_states_and_versions():
    book = RouteBook()
    stops = build_stops(5)
    by_id = {s.id: s for s in stops}

    rec = book.rebuild("loop", stops[:4])
    assert rec.state is TourState.SEEDED and rec.version == 1

    rec, delta = book.insert("loop", by_id, stops[4], expected_version=1)
    assert rec.state is TourState.MUTATED and rec.version == 2
    assert "u4" in rec.tour
    assert delta >= 0

    rec = book.remove("loop", "u0", expected_version=2)
    assert rec.state is TourState.MUTATED and rec.version == 3
    assert "u0" not in rec.tour

    rec = book.rebuild("loop", stops)
    assert rec.state is TourState.REBUILT and rec.version == 4
    assert sorted(rec.tour) == sorted(by_id)


def test_stale_version_rejected_and_record_untouched():
    book = RouteBook()
    stops = build_stops(4)
    by_id = {s.id: s for s in stops}
    book.rebuild("loop", stops[:3])
    book.remove("loop", "u1")
    with pytest.raises(StaleTourError):
        book.insert("loop", by_id, stops[3], expected_version=1)
    rec = book.get("loop")
    assert rec.version == 2
    assert "u3" not in rec.tour


def test_failed_mutation_keeps_version():
    book = RouteBook()
    stops = build_stops(3)
    by_id = {s.id: s for s in stops}
    book.rebuild("loop", stops)
    with pytest.raises(DuplicateStop):
        book.insert("loop", by_id, stops[0])
    with pytest.raises(NotFound):
        book.remove("loop", "missing")
    assert book.get("loop").version == 1


def test_insert_seeds_empty_loop():
    book = RouteBook()
    stop = Stop("first", 52.0, 4.0)
    rec, delta = book.insert("loop", {}, stop)
    assert rec.tour.as_list() == ["first"]
    assert rec.state is TourState.SEEDED
    assert delta == 0.0


def test_returned_record_is_a_snapshot():
    book = RouteBook()
    stops = build_stops(3)
    rec = book.rebuild("loop", stops)
    book.remove("loop", "u2")
    assert rec.version == 1
    assert "u2" in rec.tour


def test_concurrent_inserts_are_serialized():
    book = RouteBook()
    stops = build_stops(24)
    by_id = {s.id: s for s in stops}
    book.rebuild("loop", stops[:2])

    def worker(stop):
        return book.insert("loop", by_id, stop)[0].version

    with ThreadPoolExecutor(max_workers=8) as pool:
        versions = list(pool.map(worker, stops[2:]))

    rec = book.get("loop")
    assert sorted(versions) == list(range(2, 24))
    assert rec.version == 23
    assert sorted(rec.tour) == sorted(by_id)


def test_loops_are_independent():
    book = RouteBook()
    book.rebuild("north", build_stops(3))
    assert book.get("south").version == 0
    assert book.get("north").version == 1


def test_forget_drops_loop():
    book = RouteBook()
    book.rebuild("loop", build_stops(3))
    assert "loop" in book
    book.forget("loop")
    assert "loop" not in book
    assert book.get("loop").version == 0
    book.forget("never-seen")
    rec = book.rebuild("loop", build_stops(2))
    assert rec.state is TourState.SEEDED and rec.version == 1
