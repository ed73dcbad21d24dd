import pytest

from agent_questing.pathing.cache import PathSegmentCache
from agent_questing.pathing.segments import PathSegment, RouteResult, RouteStatus, try_route

A = (0.0, 0.0, 0.0)
B = (10.0, 0.0, 0.0)
C = (10.0, 10.0, 0.0)
D = (20.0, 10.0, 0.0)


def seg(start, end, *middle, status=RouteStatus.COMPLETE):
    return PathSegment(start, end, (start, *middle, end), status)


def test_segment_length_defaults_to_polyline():
    segment = seg(A, C, B)
    assert segment.length == pytest.approx(20.0)
    assert segment.key == (A, C)


def test_append_drops_shared_joint_corner():
    combined = seg(A, B).append(seg(B, C))
    assert combined.start == A
    assert combined.end == C
    assert combined.corners == (A, B, C)
    assert combined.length == pytest.approx(20.0)
    assert combined.is_complete


def test_append_requires_matching_joint():
    with pytest.raises(ValueError):
        seg(A, B).append(seg(C, D))


def test_append_with_partial_is_partial():
    combined = seg(A, B).append(seg(B, C, status=RouteStatus.PARTIAL))
    assert combined.status is RouteStatus.PARTIAL


def test_store_rejects_incomplete_and_duplicate_keys():
    cache = PathSegmentCache()
    first = seg(A, B)
    assert cache.store(first)
    assert not cache.store(seg(A, B, (5.0, 5.0, 0.0)))
    assert not cache.store(seg(B, C, status=RouteStatus.PARTIAL))
    assert cache.get(A, B) is first
    assert (B, C) not in cache
    assert len(cache) == 1


def test_lookup_returns_segments_ending_at_destination():
    cache = PathSegmentCache()
    cache.store_all([seg(A, C), seg(B, C), seg(A, B)])
    cache.store(seg(D, C, status=RouteStatus.INVALID))

    found = cache.lookup(C)
    assert {s.start for s in found} == {A, B}
    assert cache.lookup((99.0, 0.0, 0.0)) == []
    assert cache.lookup((10, 10)) == found


def test_combine_chains_segments_transitively():
    closure = PathSegmentCache.combine([seg(A, B), seg(B, C), seg(C, D)])
    keys = {s.key for s in closure}

    assert keys == {(A, B), (B, C), (C, D), (A, C), (B, D), (A, D)}
    a_to_d = next(s for s in closure if s.key == (A, D))
    assert a_to_d.corners == (A, B, C, D)
    assert a_to_d.length == pytest.approx(30.0)


def test_combine_reaches_fixed_point():
    once = PathSegmentCache.combine([seg(A, B), seg(B, C), seg(C, D)])
    twice = PathSegmentCache.combine(once)
    assert {s.key for s in twice} == {s.key for s in once}


def test_combine_keeps_first_segment_for_key_and_skips_loops():
    direct = seg(A, C)
    closure = PathSegmentCache.combine([direct, seg(A, B), seg(B, C), seg(C, A)])

    by_key = {s.key: s for s in closure}
    assert by_key[(A, C)] is direct
    assert (A, A) not in by_key
    assert (C, C) not in by_key
    assert (C, B) in by_key


def test_combine_ignores_incomplete_and_does_not_mutate_input():
    inputs = [seg(A, B), seg(B, C, status=RouteStatus.PARTIAL)]
    closure = PathSegmentCache.combine(inputs)
    assert [s.key for s in closure] == [(A, B)]
    assert len(inputs) == 2


def test_try_route_reports_exceptions_as_invalid():
    class Broken:
        def route_between(self, start, end):
            raise RuntimeError("navmesh unavailable")

    segment = try_route(Broken(), A, B)
    assert segment.status is RouteStatus.INVALID
    assert not segment.is_complete


def test_from_route_copies_status_and_length():
    result = RouteResult(RouteStatus.PARTIAL, (A, B), 42.0)
    segment = PathSegment.from_route(A, C, result)
    assert segment.status is RouteStatus.PARTIAL
    assert segment.length == 42.0
    assert segment.end == C
