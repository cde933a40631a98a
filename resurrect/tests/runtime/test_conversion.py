"""Tests for value conversion."""

import pytest

from resurrect.runtime.conversion import (
    ConversionError,
    decode_value,
    encode_value,
    format_number,
    integer_range,
    pack_fixed,
    parse_number,
    unpack_fixed,
)


def describe_parse_number():
    def parses_integers(expect):
        expect(parse_number("42")) == 42
        expect(parse_number("-7")) == -7
        expect(parse_number("+3")) == 3

    def parses_decimals(expect):
        expect(parse_number("2.5")) == 2.5
        expect(parse_number(".5")) == 0.5
        expect(parse_number("1.0e3")) == 1000.0

    def parses_exponent_text(expect):
        expect(parse_number("1e-07")) == 1e-07
        expect(parse_number("1E+20")) == 1e20
        expect(parse_number("-2e3")) == -2000.0

    def rejects_overlong_integers(expect):
        expect(parse_number("9" * 5000)) == None

    def rejects_overflowing_exponents(expect):
        expect(parse_number("1e999")) == None

    def rejects_other_text(expect):
        expect(parse_number("")) == None
        expect(parse_number("12abc")) == None
        expect(parse_number("1_000")) == None
        expect(parse_number("nan")) == None
        expect(parse_number("e5")) == None
        expect(parse_number(" 1")) == None


def describe_decode_value():
    def decodes_text_kinds(expect):
        expect(decode_value(b"caf\xc3\xa9", "string", "f")) == "café"
        expect(decode_value(b"true", "boolean", "f")) == True
        expect(decode_value(b"0", "boolean", "f")) == False
        expect(decode_value(b"red", "enum", "f")) == "red"

    def rejects_invalid_numbers(expect):
        with pytest.raises(ConversionError) as e:
            decode_value(b"abc", "number", "port")
        expect(str(e.value)) == 'Field "port" is not a valid number'
        expect(e.value.actual) == "abc"

    def allows_empty_optional_numbers(expect):
        expect(decode_value(b"", "number", "n", required=False)) == None

    def resolves_type_aliases(expect):
        expect(decode_value(b"\x01\x00", "u16", "n")) == 256


def describe_fixed_width():
    def reports_integer_ranges(expect):
        expect(integer_range("uint8")) == (0, 255)
        expect(integer_range("int8")) == (-128, 127)
        expect(integer_range("u32")) == (0, 4294967295)
        expect(integer_range("float64")) == None
        expect(integer_range("string")) == None

    def packs_big_endian(expect):
        expect(pack_fixed("int32", -2)) == b"\xff\xff\xff\xfe"
        expect(pack_fixed("uint64", 1)) == b"\x00" * 7 + b"\x01"

    def unpacks_big_endian(expect):
        expect(unpack_fixed("int16", b"\xff\xfe")) == -2
        expect(unpack_fixed("float64", b"\x3f\xf8" + b"\x00" * 6)) == 1.5

    def rejects_wrong_length(expect):
        with pytest.raises(ConversionError):
            unpack_fixed("uint32", b"\x00\x01")

    def rejects_unpackable_values(expect):
        with pytest.raises(ConversionError):
            pack_fixed("uint8", 300)


def describe_encode_value():
    def formats_numbers_as_decimal_text(expect):
        expect(format_number(30.0)) == "30"
        expect(format_number(2.25)) == "2.25"
        expect(encode_value(-5, "number")) == b"-5"

    def formats_booleans(expect):
        expect(encode_value(True, "boolean")) == b"true"
        expect(encode_value(False, "boolean")) == b"false"

    def encodes_strings_as_utf8(expect):
        expect(encode_value("café", "string")) == b"caf\xc3\xa9"
