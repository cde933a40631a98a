"""Tests for the format string tokenizer."""

import pytest

from resurrect.compiler.tokenizer import FormatSyntaxError, field_names, tokenize
from resurrect.compiler.types import FieldToken, LiteralToken, OptionalToken


def describe_tokenize():
    def splits_literals_and_fields(expect):
        tokens = tokenize("LOGIN {username}\n")
        expect(tokens) == [LiteralToken("LOGIN "), FieldToken("username"), LiteralToken("\n")]

    def keeps_adjacent_fields_separate(expect):
        tokens = tokenize("{a}{b}")
        expect(tokens) == [FieldToken("a"), FieldToken("b")]

    def handles_empty_format(expect):
        expect(tokenize("")) == []

    def handles_literal_only_format(expect):
        expect(tokenize("PING\r\n")) == [LiteralToken("PING\r\n")]

    def strips_whitespace_around_field_names(expect):
        expect(tokenize("{ user_name }")) == [FieldToken("user_name")]

    def accepts_hyphenated_field_names(expect):
        expect(tokenize("{content-length}")) == [FieldToken("content-length")]

    def parses_optional_section(expect):
        tokens = tokenize("GET {path}[?{query}]\n")
        expect(tokens) == [
            LiteralToken("GET "),
            FieldToken("path"),
            OptionalToken(name="query", prefix="?", suffix="]"),
            LiteralToken("\n"),
        ]

    def keeps_suffix_text_inside_optional_section(expect):
        tokens = tokenize("[TIMEOUT:{seconds}s]")
        expect(tokens) == [OptionalToken(name="seconds", prefix="TIMEOUT:", suffix="s]")]
        expect(tokens[0].marker) == "[TIMEOUT:"

    def unescapes_special_characters(expect):
        tokens = tokenize(r"\{literal\} \[x\] \\ {f}")
        expect(tokens) == [LiteralToken("{literal} [x] \\ "), FieldToken("f")]

    def lists_field_names_in_order(expect):
        tokens = tokenize("START {id} | {payload} [TIMEOUT:{seconds}]\n\n")
        expect(field_names(tokens)) == ["id", "payload", "seconds"]


def describe_tokenize_errors():
    def rejects_unclosed_placeholder(expect):
        with pytest.raises(FormatSyntaxError) as e:
            tokenize("LOGIN {username")
        expect("Unclosed placeholder" in str(e.value)) == True

    def rejects_unmatched_closing_brace(expect):
        with pytest.raises(FormatSyntaxError) as e:
            tokenize("LOGIN username}")
        expect("Unmatched closing brace" in str(e.value)) == True
        expect(e.value.column) == 15

    def rejects_empty_field_name(expect):
        with pytest.raises(FormatSyntaxError) as e:
            tokenize("LOGIN {}")
        expect("Empty field name at column 7" in str(e.value)) == True
        expect(e.value.column) == 7

    def rejects_invalid_field_name(expect):
        with pytest.raises(FormatSyntaxError) as e:
            tokenize("{1st}")
        expect('Invalid field name "1st"' in str(e.value)) == True

    def rejects_unclosed_optional_section(expect):
        with pytest.raises(FormatSyntaxError) as e:
            tokenize("A [x{y}")
        expect("Unclosed optional section" in str(e.value)) == True

    def rejects_unmatched_closing_bracket(expect):
        with pytest.raises(FormatSyntaxError) as e:
            tokenize("A ]")
        expect("Unmatched closing bracket" in str(e.value)) == True

    def rejects_stray_closing_bracket_after_field(expect):
        with pytest.raises(FormatSyntaxError) as e:
            tokenize("{a}]")
        expect("Unmatched closing bracket at column 4" in str(e.value)) == True

    def rejects_empty_optional_section(expect):
        with pytest.raises(FormatSyntaxError) as e:
            tokenize("A []")
        expect("must contain a field placeholder" in str(e.value)) == True

    def rejects_optional_section_without_field(expect):
        with pytest.raises(FormatSyntaxError) as e:
            tokenize("A [static]")
        expect("must contain a field placeholder" in str(e.value)) == True

    def rejects_nested_optional_sections(expect):
        with pytest.raises(FormatSyntaxError) as e:
            tokenize("[a[{b}]]")
        expect("Nested optional section" in str(e.value)) == True

    def rejects_two_fields_in_one_section(expect):
        with pytest.raises(FormatSyntaxError) as e:
            tokenize("[{a}{b}]")
        expect("only one placeholder" in str(e.value)) == True
