import pytest

from scribe.timestamps import (
    ZERO_TIMESTAMP,
    ms_to_srt_time,
    normalize_timestamp,
    timestamp_to_ms,
)


class TestNormalizeTimestamp:

    @pytest.mark.parametrize("raw, expected", [
        ("123.456", "00:02:03.456"),
        ("5:30", "00:05:30.000"),
        ("01:02:03:456", "01:02:03.456"),
        ("", "00:00:00.000"),
        ("7", "00:00:07.000"),
        ("3725", "01:02:05.000"),
        ("0.5", "00:00:00.500"),
    ])
    def test_examples(self, raw, expected):
        assert normalize_timestamp(raw) == expected

    def test_three_components_with_millisecond_tail(self):
        assert normalize_timestamp("02:15.500") == "00:02:15.500"

    def test_three_components_with_two_digit_tail(self):
        assert normalize_timestamp("01:02:03") == "01:02:03.000"

    @pytest.mark.parametrize("canonical", [
        "00:00:00.000",
        "00:00:01.234",
        "01:02:03.456",
        "12:59:59.999",
    ])
    def test_idempotent_on_canonical(self, canonical):
        once = normalize_timestamp(canonical)
        assert once == canonical
        assert normalize_timestamp(once) == canonical

    def test_none_and_whitespace(self):
        assert normalize_timestamp(None) == ZERO_TIMESTAMP
        assert normalize_timestamp("   ") == ZERO_TIMESTAMP

    def test_strips_noise_characters(self):
        assert normalize_timestamp("[00:01:05.250]") == "00:01:05.250"
        assert normalize_timestamp("00:01:05,250s") == "00:01:05.000"

    def test_pads_and_truncates_fields(self):
        # ms is right-padded, other fields left-padded
        assert normalize_timestamp("1:2:3:4") == "01:02:03.400"
        assert normalize_timestamp("1:2:3:45678") == "01:02:03.456"
        assert normalize_timestamp("123:45") == "00:12:45.000"

    def test_extra_components_ignored(self):
        assert normalize_timestamp("01:02:03.456.789") == "01:02:03.456"

    def test_numeric_input(self):
        assert normalize_timestamp(12.5) == "00:00:12.500"

    def test_rounding_carries_into_seconds(self):
        assert normalize_timestamp("1.9996") == "00:00:02.000"

    def test_garbage_falls_back_to_zero(self):
        assert normalize_timestamp("soon") == ZERO_TIMESTAMP

    @pytest.mark.parametrize("raw", ["١٢:٣٤", "１２３", "٣.٥"])
    def test_non_ascii_digits_are_stripped(self, raw):
        out = normalize_timestamp(raw)
        assert out == ZERO_TIMESTAMP
        assert out.isascii()

    def test_seconds_beyond_two_digit_hours_are_clamped(self):
        assert normalize_timestamp("360000") == "99:59:59.999"
        assert normalize_timestamp("359999.999") == "99:59:59.999"
        assert normalize_timestamp("359999") == "99:59:59.000"


class TestConversions:

    def test_timestamp_to_ms(self):
        assert timestamp_to_ms("01:02:03.456") == 3723456
        assert timestamp_to_ms("02:15.500") == 135500

    def test_ms_to_srt_time(self):
        assert ms_to_srt_time(3723456) == "01:02:03,456"
        assert ms_to_srt_time(-5) == "00:00:00,000"
