"""
Tests for astrometa.core.coercion - scalar coercion of raw header values
"""
from datetime import datetime, timezone

import pytest

from astrometa.core.coercion import (
    parse_sexagesimal, to_angle, to_bool, to_float, to_int, to_right_ascension,
    to_str, to_timestamp,
)


class TestParseSexagesimal:
    """Test sexagesimal parsing."""

    def test_negative_degrees(self):
        assert parse_sexagesimal("-45 12 34") == pytest.approx(-(45 + 12 / 60 + 34 / 3600))

    def test_positive_hours(self):
        assert parse_sexagesimal("12 34 56") == pytest.approx(12.582222, abs=1e-6)

    def test_colon_separated(self):
        assert parse_sexagesimal("12:34:56") == pytest.approx(12.582222, abs=1e-6)

    def test_mixed_separators(self):
        assert parse_sexagesimal("12: 34 :56") == pytest.approx(12.582222, abs=1e-6)

    def test_negative_zero_degrees_keeps_sign(self):
        assert parse_sexagesimal("-00 30 00") == pytest.approx(-0.5)

    def test_explicit_plus_sign(self):
        assert parse_sexagesimal("+10 30") == pytest.approx(10.5)

    def test_quoted_value(self):
        assert parse_sexagesimal("'+41 16 09'") == pytest.approx(41 + 16 / 60 + 9 / 3600)

    @pytest.mark.parametrize("value", [
        "12",
        "1 2 3 4",
        "ab cd",
        "12 -3 4",
        "12 +3",
        "12 3_0",
        "",
        None,
    ])
    def test_malformed_values(self, value):
        assert parse_sexagesimal(value) is None


class TestNumericCoercion:
    """Test float, int and bool coercion."""

    def test_float_with_whitespace(self):
        assert to_float(" 3.5 ") == 3.5

    def test_float_fits_d_exponent(self):
        assert to_float("1.5D+02") == 150.0

    def test_float_quoted(self):
        assert to_float("'2.5'") == 2.5

    @pytest.mark.parametrize("value", ["abc", "", None, "nan", "inf", "1_000", "1.5_0"])
    def test_float_rejects(self, value):
        assert to_float(value) is None

    def test_int(self):
        assert to_int("42") == 42

    def test_int_from_integral_float(self):
        assert to_int("3.0") == 3

    def test_int_rejects_fraction(self):
        assert to_int("3.5") is None

    def test_int_rejects_digit_separators(self):
        assert to_int("1_0") is None

    @pytest.mark.parametrize("value,expected", [
        ("T", True), ("true", True), ("1", True),
        ("F", False), ("FALSE", False), ("0", False),
        ("yes", None), (None, None),
    ])
    def test_bool(self, value, expected):
        assert to_bool(value) is expected


class TestStringCoercion:
    """Test string cleanup."""

    def test_strips_quotes_and_padding(self):
        assert to_str("'M31     '") == "M31"

    def test_unescapes_doubled_quotes(self):
        assert to_str("'O''Brien'") == "O'Brien"

    @pytest.mark.parametrize("value", ["''", "   ", "", None])
    def test_empty_is_none(self, value):
        assert to_str(value) is None


class TestAngles:
    """Test angle and right ascension coercion."""

    def test_numeric_ra_is_degrees(self):
        assert to_right_ascension("10.684") == pytest.approx(10.684)

    def test_sexagesimal_ra_is_hours(self):
        assert to_right_ascension("01 00 00") == pytest.approx(15.0)

    def test_sexagesimal_dec_is_degrees(self):
        assert to_angle("-05 30 00") == pytest.approx(-5.5)

    def test_invalid_angle(self):
        assert to_angle("north") is None


class TestTimestamp:
    """Test ISO-8601 timestamp parsing."""

    def test_utc_designator(self):
        assert to_timestamp("2024-03-02T03:00:00Z") == datetime(2024, 3, 2, 3, 0, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        result = to_timestamp("2024-03-02T03:00:00")
        assert result.tzinfo is not None
        assert result.utcoffset().total_seconds() == 0

    def test_space_separator(self):
        assert to_timestamp("2024-03-02 03:00:00") == datetime(2024, 3, 2, 3, 0, tzinfo=timezone.utc)

    def test_long_fraction_truncated(self):
        assert to_timestamp("2024-03-02T03:00:00.123456789").microsecond == 123456

    def test_short_fraction_padded(self):
        assert to_timestamp("2024-03-02T03:00:00.5").microsecond == 500000

    def test_offset_converted_to_utc(self):
        assert to_timestamp("2024-03-02T05:00:00+02:00") == datetime(2024, 3, 2, 3, 0, tzinfo=timezone.utc)

    def test_compact_negative_offset(self):
        assert to_timestamp("2024-03-02T03:00:00-0530") == datetime(2024, 3, 2, 8, 30, tzinfo=timezone.utc)

    def test_date_only(self):
        assert to_timestamp("2024-03-02") == datetime(2024, 3, 2, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [
        "2024-13-02T00:00:00",
        "2024-03-02T25:00:00",
        "2024-03-02T03:00:00+05:99",
        "2024-03-02T03:00:00+24:00",
        "2024-03-02T03:00:00-0560",
        "yesterday",
        "02/03/2024",
        "",
        None,
    ])
    def test_invalid(self, value):
        assert to_timestamp(value) is None
