"""Tests for G-code command formatting and line parsing."""

import pytest

from curvewelder.gcode.gcode_writer import (
    Term,
    fmt,
    format_command,
    integer_digits,
    is_negative,
    predict_command_length,
)
from curvewelder.gcode.parser import parse_line


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


class TestFormatting:
    def test_fixed_decimals(self):
        assert fmt(1.5, 3) == "1.500"
        assert fmt(-2.0, 5) == "-2.00000"
        assert fmt(1200.0, 0) == "1200"

    def test_negative_zero_keeps_sign(self):
        assert fmt(-0.0, 3) == "-0.000"
        assert is_negative(-0.0)
        assert not is_negative(0.0)

    def test_tiny_negative_prints_minus_zero(self):
        assert fmt(-0.0004, 3) == "-0.000"
        assert is_negative(-0.0004)

    def test_rounding_carry(self):
        assert fmt(9.9996, 3) == "10.000"
        assert integer_digits(9.9996, 3) == 2
        assert integer_digits(99.95, 0) == 3

    def test_format_command(self):
        terms = [Term("X", 1.0, 3), Term("Y", -2.5, 3), Term("F", 1500.0, 0)]
        assert format_command("G1", terms) == "G1 X1.000 Y-2.500 F1500"

    def test_keyword_alone(self):
        assert format_command("G5", []) == "G5"
        assert predict_command_length("G5", []) == 2


class TestLengthPrediction:
    @pytest.mark.parametrize("value", [
        0.0, -0.0, 0.0004, -0.0004, 0.0005, 1.0, -1.0, 9.9994, 9.9996, -9.9996,
        99.9999, 123.456789, -1000.5, 0.5, -0.5, 2.5, 1e6,
    ])
    @pytest.mark.parametrize("precision", [0, 3, 4, 5, 6])
    def test_term_length_matches_string(self, value, precision):
        term = Term("X", value, precision)
        assert len(term) == len(str(term))

    def test_command_length_matches_string(self):
        terms = [
            Term("X", -10.0, 3), Term("Y", 0.0, 3), Term("Z", 0.45, 3),
            Term("I", -10.0004, 3), Term("J", -0.0, 3),
            Term("E", 1.234567, 5), Term("F", 1200.0, 0),
        ]
        assert predict_command_length("G3", terms) == len(format_command("G3", terms))


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParseLine:
    def test_move_with_comment(self):
        cmd = parse_line("G01 X1.5 Y-2 E0.12345 ; perimeter")
        assert cmd.command == "G1"
        assert cmd.params == {"X": 1.5, "Y": -2.0, "E": 0.12345}
        assert cmd.decimals == {"X": 1, "Y": 0, "E": 5}
        assert cmd.comment == "perimeter"
        assert cmd.has_comment

    def test_packed_words(self):
        cmd = parse_line("G1X10Y5.25F1800")
        assert cmd.command == "G1"
        assert cmd.get("X") == 10.0
        assert cmd.get("Y") == 5.25
        assert cmd.get("F") == 1800.0

    def test_lowercase(self):
        cmd = parse_line("g0 x1 y2")
        assert cmd.command == "G0"
        assert cmd.has("X") and cmd.has("Y")

    def test_comment_only(self):
        cmd = parse_line("; layer 2")
        assert cmd.command is None
        assert cmd.params == {}
        assert cmd.comment == "layer 2"

    def test_paren_comment(self):
        cmd = parse_line("G1 X1 (inline) Y2")
        assert cmd.params == {"X": 1.0, "Y": 2.0}
        assert cmd.comment == "inline"

    def test_blank_line(self):
        cmd = parse_line("")
        assert cmd.command is None
        assert cmd.params == {}
        assert not cmd.has_comment

    def test_text_command_has_no_params(self):
        cmd = parse_line("M117 Layer 5 of 10")
        assert cmd.command == "M117"
        assert cmd.params == {}

    def test_modal_commands(self):
        assert parse_line("M83").command == "M83"
        assert parse_line("G92 E0").params == {"E": 0.0}
        assert parse_line("G90").command == "G90"

    def test_bare_axis_letters(self):
        cmd = parse_line("G28 X Y")
        assert cmd.command == "G28"
        assert cmd.params == {}
        assert cmd.flags == {"X", "Y"}

    def test_missing_word_default(self):
        cmd = parse_line("G1 X1")
        assert cmd.get("Z") is None
        assert cmd.get("Z", 3.0) == 3.0
