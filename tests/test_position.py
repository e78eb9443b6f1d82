"""Tests for position and extrusion-mode tracking."""

import pytest

from curvewelder.core.position import PositionTracker
from curvewelder.gcode.parser import parse_line


@pytest.fixture
def tracker():
    return PositionTracker()


def _run(tracker, *lines):
    point = None
    for line in lines:
        point = tracker.update(parse_line(line))
    return point


class TestMoves:
    def test_absolute_move(self, tracker):
        p = _run(tracker, "G1 X3 Y4 F1200")
        assert (p.x, p.y, p.z) == (3.0, 4.0, 0.0)
        assert p.distance == pytest.approx(5.0)
        assert p.f == 1200.0

    def test_feed_rate_is_modal(self, tracker):
        p = _run(tracker, "G1 X1 F900", "G1 X2")
        assert p.f == 900.0

    def test_missing_axes_keep_position(self, tracker):
        p = _run(tracker, "G1 X1 Y2 Z0.3", "G1 X5")
        assert (p.x, p.y, p.z) == (5.0, 2.0, 0.3)

    def test_relative_xyz(self, tracker):
        p = _run(tracker, "G1 X10 Y10", "G91", "G1 X1 Y-1")
        assert (p.x, p.y) == (11.0, 9.0)
        assert tracker.is_relative

    def test_non_move_returns_none(self, tracker):
        assert _run(tracker, "M104 S200") is None
        assert _run(tracker, "; comment") is None


class TestExtrusion:
    def test_absolute_extrusion(self, tracker):
        p = _run(tracker, "G1 X1 E1.5", "G1 X2 E2.0")
        assert p.e_offset == pytest.approx(2.0)
        assert p.e_relative == pytest.approx(0.5)
        assert not p.is_extruder_relative

    def test_relative_extrusion(self, tracker):
        p = _run(tracker, "M83", "G1 X1 E0.4", "G1 X2 E0.3")
        assert p.is_extruder_relative
        assert p.e_relative == pytest.approx(0.3)
        assert p.e_offset == pytest.approx(0.7)

    def test_retraction_is_negative(self, tracker):
        p = _run(tracker, "G1 X1 E5", "G1 E4")
        assert p.e_relative == pytest.approx(-1.0)
        assert p.distance == 0.0

    def test_g92_resets_extruder(self, tracker):
        p = _run(tracker, "G1 X1 E5", "G92 E0", "G1 X2 E0.25")
        assert p.e_relative == pytest.approx(0.25)

    def test_g90_leaves_extruder_mode(self, tracker):
        _run(tracker, "M83", "G90")
        assert tracker.is_extruder_relative

    def test_g90_influences_extruder(self):
        tracker = PositionTracker(g90_influences_extruder=True)
        _run(tracker, "M83", "G90")
        assert not tracker.is_extruder_relative
        _run(tracker, "G91")
        assert tracker.is_extruder_relative


class TestSetPosition:
    def test_g92_sets_axes(self, tracker):
        _run(tracker, "G1 X10 Y10", "G92 X0 Y0")
        p = _run(tracker, "G1 X1")
        assert (p.x, p.y) == (1.0, 0.0)
        assert p.distance == pytest.approx(1.0)

    def test_g28_homes(self, tracker):
        _run(tracker, "G1 X10 Y10 Z5 E3", "G28")
        pos = tracker.position
        assert (pos.x, pos.y, pos.z) == (0.0, 0.0, 0.0)
        assert pos.e == 3.0

    def test_g28_single_axis(self, tracker):
        _run(tracker, "G1 X10 Y10 Z5", "G28 Z")
        pos = tracker.position
        assert (pos.x, pos.y, pos.z) == (10.0, 10.0, 0.0)

    def test_current_point_is_anchor(self, tracker):
        _run(tracker, "M83", "G1 X4 Y3 E1 F600")
        anchor = tracker.current_point()
        assert (anchor.x, anchor.y) == (4.0, 3.0)
        assert anchor.distance == 0.0
        assert anchor.e_relative == 0.0
        assert anchor.is_extruder_relative
        assert anchor.f == 600.0
