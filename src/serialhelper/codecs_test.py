import unittest

from hamcrest import assert_that, is_, has_length

from serialhelper.codecs import to_bytes


class ToBytesTest(unittest.TestCase):

    def test_bytes_are_passed_through(self):
        assert_that(to_bytes(b"\x00\xff"), is_(b"\x00\xff"))
        assert_that(to_bytes(bytearray(b"ab")), is_(b"ab"))

    def test_integer_is_a_single_byte(self):
        assert_that(to_bytes(0), is_(b"\x00"))
        assert_that(to_bytes(255), is_(b"\xff"))

    def test_integer_is_truncated_to_lowest_byte(self):
        assert_that(to_bytes(0x1234), is_(b"\x34"))
        assert_that(to_bytes(-1), is_(b"\xff"))

    def test_integral_float_is_a_byte(self):
        assert_that(to_bytes(7.0), is_(b"\x07"))

    def test_fractional_float_is_text(self):
        assert_that(to_bytes(1.5), is_(b"1.5"))

    def test_booleans_and_none(self):
        assert_that(to_bytes(True), is_(b"\x01"))
        assert_that(to_bytes(False), is_(b"\x00"))
        assert_that(to_bytes(None), is_(b"\x00"))

    def test_sequence_keeps_length(self):
        result = to_bytes([1, 2, 3, 300])
        assert_that(result, has_length(4))
        assert_that(result, is_(bytes([1, 2, 3, 44])))
        assert_that(to_bytes((65, 66)), is_(b"AB"))

    def test_string_is_encoded(self):
        assert_that(to_bytes("battery\n"), is_(b"battery\n"))
        assert_that(to_bytes("é", "latin-1"), is_(b"\xe9"))
        assert_that(to_bytes("é"), is_(b"\xc3\xa9"))

    def test_other_values_are_stringified(self):
        assert_that(to_bytes({"a": 1}), is_(b"{'a': 1}"))

    def test_conversion_is_repeatable(self):
        for value in (42, [1, 2], "text", b"raw", None):
            assert_that(to_bytes(value), is_(to_bytes(value)))

    def test_sequence_elements_that_are_not_numbers_are_zero(self):
        assert_that(to_bytes(['a', '5', 2.9, None, float('nan')]), is_(b"\x00\x05\x02\x00\x00"))
