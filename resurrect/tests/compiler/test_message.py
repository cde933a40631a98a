"""Tests for message definition compilation."""

import pytest

from resurrect.compiler.message import DefinitionError, compile_definition, compile_message
from resurrect.compiler.tokenizer import FormatSyntaxError
from resurrect.compiler.types import (
    FieldDefinition,
    FieldType,
    LiteralToken,
    MessageDefinition,
    ValidationRule,
)


def describe_compile_message():
    def compiles_declared_fields(expect, login_definition):
        compiled = compile_message(login_definition)
        expect(compiled.name) == "Login"
        expect([f.name for f in compiled.fields]) == ["username"]
        expect(compiled.required_fields) == ["username"]

    def reuses_compiled_result_for_equal_definitions(expect, login_definition):
        copy = MessageDefinition.from_dict(login_definition.to_dict())
        expect(compile_message(copy) is compile_message(login_definition)) == True

    def auto_discovers_undeclared_fields(expect):
        compiled = compile_message(MessageDefinition(name="M", format="{a} [x{b}]"))
        a, b = compiled.fields
        expect(a.type.kind) == "string"
        expect(a.required) == True
        expect(b.required) == False
        expect(a.description) == "Auto-discovered from format string"

    def keeps_field_order_of_format_string(expect, dic_definition):
        compiled = compile_message(dic_definition)
        expect([f.name for f in compiled.fields]) == ["id", "payload", "seconds"]

    def appends_missing_terminator(expect):
        compiled = compile_definition(MessageDefinition(name="M", format="PING {x}", terminator="\r\n"))
        expect(compiled.tokens[-1]) == LiteralToken("\r\n")

    def does_not_duplicate_existing_terminator(expect):
        compiled = compile_definition(MessageDefinition(name="M", format="PING {x}\r\n", terminator="\r\n"))
        expect(compiled.tokens[-1]) == LiteralToken("\r\n")
        expect(len(compiled.tokens)) == 3

    def normalizes_tokens(expect, dic_definition):
        compiled = compile_message(dic_definition)
        optional = compiled.tokens[4]
        expect(optional.padding) == " "
        expect(len(compiled.tokens)) == 6

    def rejects_fields_missing_from_format(expect):
        definition = MessageDefinition(
            name="M", format="A {a}", fields=[FieldDefinition(name="b")]
        )
        with pytest.raises(DefinitionError) as e:
            compile_definition(definition)
        expect('"b" is declared in M but not referenced' in str(e.value)) == True

    def rejects_duplicate_fields(expect):
        definition = MessageDefinition(
            name="M", format="A {a}", fields=[FieldDefinition(name="a"), FieldDefinition(name="a")]
        )
        with pytest.raises(DefinitionError):
            compile_definition(definition)

    def rejects_unknown_types(expect):
        definition = MessageDefinition(
            name="M", format="A {a}", fields=[FieldDefinition(name="a", type=FieldType(kind="blob"))]
        )
        with pytest.raises(DefinitionError) as e:
            compile_definition(definition)
        expect('unknown type "blob"' in str(e.value)) == True

    def rejects_enum_without_values(expect):
        definition = MessageDefinition(
            name="M", format="A {a}", fields=[FieldDefinition(name="a", type=FieldType(kind="enum"))]
        )
        with pytest.raises(DefinitionError):
            compile_definition(definition)

    def rejects_invalid_patterns(expect):
        definition = MessageDefinition(
            name="M",
            format="A {s}",
            fields=[FieldDefinition(name="s", validation=ValidationRule(pattern="[unclosed"))],
        )
        with pytest.raises(DefinitionError) as e:
            compile_definition(definition)
        expect('"s" in M has an invalid pattern' in str(e.value)) == True

    def propagates_format_errors(expect):
        with pytest.raises(FormatSyntaxError):
            compile_definition(MessageDefinition(name="M", format="A {a"))

    def accepts_required_field_in_optional_section(expect):
        definition = MessageDefinition(
            name="M", format="A[x{a}]", fields=[FieldDefinition(name="a", required=True)]
        )
        compiled = compile_definition(definition)
        expect(compiled.field("a").required) == True
