"""
Tests for bending, splitting and selecting walkways.

These operate on in-memory walkways only; the store is exercised by the
API tests.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from campusnav.services.editing import (
    BendSession,
    bend,
    find_closest_snap,
    segment_handles,
    select_by_polygon,
    select_by_rectangle,
    split_walkway,
    uncurve,
)
from campusnav.services.geometry import Coordinate
from campusnav.services.validation import WalkwayValidationError
from campusnav.services.walkways import Walkway


def _segment() -> Walkway:
    return Walkway(geometry=[(0, 0), (10, 0)], id="w1", name="Main walk", group="g1", segment_index=2)


def test_bend_builds_curve_through_control_points() -> None:
    bent = bend(_segment(), 0, (5, 3), samples=8)
    assert bent.curved is True
    assert bent.control == [Coordinate(0, 0), Coordinate(5, 3), Coordinate(10, 0)]
    assert len(bent.geometry) == 17
    assert bent.geometry[0] == Coordinate(0, 0)
    assert bent.geometry[8] == Coordinate(5, 3)
    assert bent.geometry[-1] == Coordinate(10, 0)
    assert bent.id == "w1"
    assert bent.name == "Main walk"


def test_bend_does_not_mutate_the_original() -> None:
    original = _segment()
    bend(original, 0, (5, 3))
    assert original.curved is False
    assert original.geometry == [Coordinate(0, 0), Coordinate(10, 0)]
    assert original.control == original.geometry


def test_bend_rejects_bad_segment_index_and_point() -> None:
    with pytest.raises(ValueError):
        bend(_segment(), 1, (5, 3))
    with pytest.raises(WalkwayValidationError):
        bend(_segment(), 0, (float("inf"), 3))


def test_uncurve_restores_control_polygon() -> None:
    bent = bend(_segment(), 0, (5, 3))
    straight = uncurve(bent)
    assert straight.curved is False
    assert straight.geometry == bent.control
    assert straight.control == bent.control


def test_segment_handles_are_control_midpoints() -> None:
    walkway = Walkway(geometry=[(0, 0), (4, 0), (4, 2)])
    assert segment_handles(walkway) == [Coordinate(2, 0), Coordinate(4, 1)]


def test_split_produces_two_fresh_straight_records() -> None:
    result = split_walkway(_segment(), (4, 0.5))
    assert result is not None
    first, second = result
    assert first.geometry == [Coordinate(0, 0), Coordinate(4, 0)]
    assert second.geometry == [Coordinate(4, 0), Coordinate(10, 0)]
    assert first.id and second.id
    assert len({first.id, second.id, "w1"}) == 3
    for half in (first, second):
        assert half.name == "Main walk"
        assert half.kind == "walkway"
        assert half.group == "g1"
        assert half.segment_index is None
        assert half.curved is False
        assert half.control == half.geometry


def test_split_of_curved_walkway_keeps_sampled_points() -> None:
    bent = bend(_segment(), 0, (5, 3), samples=4)
    a, b = bent.geometry[3], bent.geometry[4]
    cut = ((a.x + b.x) / 2, (a.y + b.y) / 2)
    first, second = split_walkway(bent, cut, segment_index=3)
    assert first.geometry[-1] == second.geometry[0]
    assert first.geometry[:4] == bent.geometry[:4]
    assert second.geometry[1:] == bent.geometry[4:]
    assert first.curved is False and second.curved is False


@pytest.mark.parametrize("point", [(0, 0), (10, 0), (-3, 1)])
def test_split_at_existing_endpoint_is_a_no_op(point) -> None:
    assert split_walkway(_segment(), point) is None


def test_find_closest_snap_picks_nearest_walkway() -> None:
    walkways = [
        Walkway(geometry=[(0, 0), (10, 0)], id="a"),
        Walkway(geometry=[(0, 5), (10, 5)], id="b"),
    ]
    snap = find_closest_snap(walkways, (2.5, 4))
    assert snap.walkway.id == "b"
    assert snap.snapped == Coordinate(2.5, 5)
    assert snap.distance == pytest.approx(1.0)
    assert find_closest_snap(walkways, (3, 2.5), max_distance=1.0) is None


def test_rectangle_selection_uses_half_length_threshold() -> None:
    walkways = [
        Walkway(geometry=[(0, 0), (10, 0)], id="forty"),
        Walkway(geometry=[(0, 0.5), (5, 0.5)], id="mostly_inside"),
        Walkway(geometry=[(-2, -0.5), (6, -0.5)], id="sixty"),
    ]
    selected = select_by_rectangle(walkways, (-1, -1, 4, 1))
    assert selected == ["mostly_inside", "sixty"]


def test_rectangle_ratio_exactly_at_threshold_is_selected() -> None:
    walkways = [Walkway(geometry=[(0, 0), (10, 0)], id="half")]
    assert select_by_rectangle(walkways, (-1, -1, 5, 1)) == ["half"]


def test_polygon_selection_requires_full_containment() -> None:
    polygon = [(-1, -1), (4, -1), (4, 1), (-1, 1)]
    walkways = [
        Walkway(geometry=[(0, 0), (10, 0)], id="forty"),
        Walkway(geometry=[(0, 0.5), (3, 0.5)], id="inside"),
        Walkway(geometry=[(-2, -0.5), (6, -0.5)], id="sixty"),
    ]
    assert select_by_polygon(walkways, polygon) == ["inside"]


def test_bend_session_previews_never_touch_the_walkway() -> None:
    walkway = _segment()
    session = BendSession(walkway, 0, samples=4)
    assert session.handle == Coordinate(5, 0)

    first = session.preview((5, 3))
    second = session.preview((5, -2))
    again = session.preview((5, 3))

    assert first == again
    assert second[4] == Coordinate(5, -2)
    assert session.original.control == [Coordinate(0, 0), Coordinate(10, 0)]
    assert walkway.curved is False


def test_bend_session_commit_saves_once() -> None:
    saved = []

    def save(w: Walkway) -> Walkway:
        saved.append(w)
        return w

    session = BendSession(_segment(), 0, samples=4)
    session.preview((5, 1))
    result = session.commit((5, 3), save)

    assert len(saved) == 1
    assert result.curved is True
    assert result.control[1] == Coordinate(5, 3)
    with pytest.raises(RuntimeError):
        session.preview((5, 1))
    with pytest.raises(RuntimeError):
        session.commit((5, 3), save)


def test_cancelled_session_persists_nothing() -> None:
    saved = []
    session = BendSession(_segment(), 0)
    session.preview((5, 3))
    session.cancel()
    with pytest.raises(RuntimeError):
        session.commit((5, 3), saved.append)
    assert saved == []


def test_session_closes_when_save_fails() -> None:
    def failing_save(w: Walkway) -> Walkway:
        raise OSError("disk full")

    session = BendSession(_segment(), 0)
    with pytest.raises(OSError):
        session.commit((5, 3), failing_save)
    assert session.state == BendSession.COMMITTED


def test_session_rejects_bad_segment_index() -> None:
    with pytest.raises(ValueError):
        BendSession(_segment(), 3)
