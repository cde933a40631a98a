"""Compile message definitions into tokens, fields and an automaton."""

import re
from dataclasses import dataclass
from functools import lru_cache

import structlog

from .automaton import Automaton, compile_automaton, normalize_tokens
from .tokenizer import field_names, tokenize
from .types import (
    FIXED_WIDTH_TYPES,
    TEXT_TYPES,
    FieldDefinition,
    FieldType,
    LiteralToken,
    MessageDefinition,
    OptionalToken,
    Token,
)

logger = structlog.get_logger(__name__)


class DefinitionError(RuntimeError):
    """Raised when a message definition is inconsistent with its format string."""


@dataclass(frozen=True)
class CompiledMessage:
    """Everything the engines need for one message type.

    Immutable once built, so a single instance may be shared by any number
    of concurrent parse and serialize calls.
    """

    definition: MessageDefinition
    tokens: tuple[Token, ...]
    fields: tuple[FieldDefinition, ...]
    automaton: Automaton

    @property
    def name(self) -> str:
        return self.definition.name

    def field(self, name: str) -> FieldDefinition | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    @property
    def required_fields(self) -> list[str]:
        return [f.name for f in self.fields if f.required]


def _with_terminator(tokens: list[Token], terminator: str | None) -> list[Token]:
    if not terminator:
        return tokens
    last = tokens[-1] if tokens else None
    if isinstance(last, LiteralToken) and last.text.endswith(terminator):
        return tokens
    return [*tokens, LiteralToken(text=terminator)]


def resolve_fields(definition: MessageDefinition, tokens: list[Token]) -> list[FieldDefinition]:
    """Merge declared fields with the names referenced by the format string.

    Names found only in the format string become string fields: required for
    ``{name}`` placeholders, optional inside ``[...]`` sections.

    Raises:
        DefinitionError: If a declared field is duplicated, has an unknown
            type or an invalid pattern, or is not referenced by the format
            string.
    """
    declared: dict[str, FieldDefinition] = {}
    for f in definition.fields:
        if f.name in declared:
            raise DefinitionError(
                f'Field "{f.name}" is declared more than once in {definition.name}'
            )
        kind = f.type.canonical
        if kind not in TEXT_TYPES and kind not in FIXED_WIDTH_TYPES:
            raise DefinitionError(
                f'Field "{f.name}" in {definition.name} has unknown type "{f.type.kind}"'
            )
        if kind == "enum" and not f.type.values:
            raise DefinitionError(f'Enum field "{f.name}" in {definition.name} declares no values')
        if f.validation and f.validation.pattern is not None:
            try:
                re.compile(f.validation.pattern)
            except re.error as e:
                raise DefinitionError(
                    f'Field "{f.name}" in {definition.name} has an invalid pattern: {e}'
                ) from e
        declared[f.name] = f

    referenced = field_names(tokens)
    for name in declared:
        if name not in referenced:
            raise DefinitionError(
                f'Field "{name}" is declared in {definition.name} but not referenced by its format '
                f'string. Referenced fields: {", ".join(referenced) or "none"}'
            )

    optional_names = {t.name for t in tokens if isinstance(t, OptionalToken)}
    resolved: list[FieldDefinition] = []
    seen: set[str] = set()

    for name in referenced:
        if name in seen:
            continue
        seen.add(name)

        if name in declared:
            f = declared[name]
            if name in optional_names and f.required:
                logger.warning(
                    "optional_field_declared_required", message=definition.name, field=name
                )
            resolved.append(f)
        else:
            resolved.append(
                FieldDefinition(
                    name=name,
                    type=FieldType(kind="string"),
                    required=name not in optional_names,
                    description="Auto-discovered from format string",
                )
            )

    return resolved


def compile_definition(definition: MessageDefinition) -> CompiledMessage:
    """Tokenize and compile a message definition.

    Raises:
        FormatSyntaxError: If the format string is malformed.
        DefinitionError: If the declared fields do not fit the format string.
    """
    tokens = _with_terminator(tokenize(definition.format), definition.terminator)
    fields = resolve_fields(definition, tokens)
    wire_tokens = normalize_tokens(tokens, {f.name: f for f in fields})

    automaton = compile_automaton(
        wire_tokens,
        {f.name: f for f in fields},
        message_name=definition.name,
        format_string=definition.format,
        delimiter=definition.delimiter,
    )

    return CompiledMessage(
        definition=definition,
        tokens=tuple(wire_tokens),
        fields=tuple(fields),
        automaton=automaton,
    )


@lru_cache(maxsize=256)
def _compile_cached(definition_json: str) -> CompiledMessage:
    return compile_definition(MessageDefinition.from_json(definition_json))


def compile_message(definition: MessageDefinition) -> CompiledMessage:
    """Compile a message definition, reusing earlier results for equal definitions."""
    return _compile_cached(definition.to_json())
