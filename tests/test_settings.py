"""Tests for shape and welder settings."""

import dataclasses

import pytest

from curvewelder.config import defaults
from curvewelder.config.settings import CurveType, ShapeSettings, WelderSettings


class TestShapeSettings:
    def test_defaults(self):
        s = ShapeSettings()
        assert s.min_segments == defaults.DEFAULT_MIN_SEGMENTS
        assert s.max_segments == defaults.DEFAULT_MAX_SEGMENTS
        assert s.resolution_mm == defaults.DEFAULT_RESOLUTION_MM
        assert s.max_radius_mm == defaults.DEFAULT_MAX_RADIUS_MM
        assert not s.allow_3d_shapes
        assert not s.radius_was_clamped

    def test_radius_clamped_to_ceiling(self):
        s = ShapeSettings(max_radius_mm=50000.0)
        assert s.max_radius_mm == defaults.DEFAULT_MAX_RADIUS_MM
        assert s.radius_was_clamped

    def test_radius_below_ceiling_kept(self):
        s = ShapeSettings(max_radius_mm=250.0)
        assert s.max_radius_mm == 250.0
        assert not s.radius_was_clamped

    @pytest.mark.parametrize("value, expected", [(0, 3), (2, 3), (4, 4), (6, 6), (9, 6)])
    def test_precision_clamped(self, value, expected):
        s = ShapeSettings(xyz_precision=value, e_precision=value)
        assert s.xyz_precision == expected
        assert s.e_precision == expected

    def test_xyz_tolerance_follows_precision(self):
        assert ShapeSettings(xyz_precision=4).xyz_tolerance == pytest.approx(1e-4)

    def test_max_segments_raised_to_min(self):
        s = ShapeSettings(min_segments=20, max_segments=10)
        assert s.max_segments == 20

    @pytest.mark.parametrize("name", [
        "min_segments", "max_segments", "max_gcode_length",
        "mm_per_segment", "resolution_mm", "path_tolerance_percent",
    ])
    def test_negative_values_rejected(self, name):
        with pytest.raises(ValueError, match=name):
            ShapeSettings(**{name: -1})

    def test_non_positive_radius_rejected(self):
        with pytest.raises(ValueError):
            ShapeSettings(max_radius_mm=0.0)

    def test_clamp_flag_not_compared(self):
        assert ShapeSettings(max_radius_mm=20000.0) == ShapeSettings()

    def test_from_dict_ignores_unknown_keys(self):
        s = ShapeSettings.from_dict({"resolution_mm": 0.1, "radius_was_clamped": True, "bogus": 1})
        assert s.resolution_mm == 0.1
        assert not s.radius_was_clamped

    def test_frozen_after_construction(self):
        s = ShapeSettings()
        with pytest.raises(dataclasses.FrozenInstanceError):
            s.max_radius_mm = 1e6
        with pytest.raises(dataclasses.FrozenInstanceError):
            s.xyz_precision = 12
        assert s.max_radius_mm == defaults.DEFAULT_MAX_RADIUS_MM
        assert s.xyz_precision == defaults.DEFAULT_XYZ_PRECISION

    def test_replace_revalidates(self):
        s = dataclasses.replace(ShapeSettings(), max_radius_mm=1e6, xyz_precision=12)
        assert s.max_radius_mm == defaults.DEFAULT_MAX_RADIUS_MM
        assert s.radius_was_clamped
        assert s.xyz_precision == defaults.MAX_PRECISION


class TestWelderSettings:
    def test_defaults(self):
        s = WelderSettings()
        assert s.curve_type is CurveType.ARC
        assert not s.allow_travel
        assert s.extrusion_rate_variance_percent == defaults.DEFAULT_EXTRUSION_RATE_VARIANCE_PERCENT

    def test_from_dict_nested(self):
        s = WelderSettings.from_dict({
            "curve_type": "spline",
            "allow_travel": True,
            "shape": {"min_segments": 4},
        })
        assert s.curve_type is CurveType.SPLINE
        assert s.allow_travel
        assert s.shape.min_segments == 4

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "nested" / "welder.json"
        original = WelderSettings(
            shape=ShapeSettings(max_gcode_length=80),
            curve_type=CurveType.SPLINE,
            g90_influences_extruder=True,
        )
        original.save(path)
        assert path.exists()
        assert WelderSettings.load(path) == original

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            WelderSettings.load(tmp_path / "missing.json")
