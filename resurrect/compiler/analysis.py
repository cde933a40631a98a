"""Structural analysis of compiled format strings."""

from dataclasses import dataclass, field
from enum import StrEnum, auto

from dataclasses_json import DataClassJsonMixin

from .message import CompiledMessage
from .types import FieldToken, LiteralToken, OptionalToken, Token


class SizeKind(StrEnum):
    """Classification of a message's wire size."""

    FIXED = auto()  # Only literals and fixed-width fields
    VARIABLE = auto()  # Size depends on field values or optional sections


@dataclass(frozen=True)
class FormatAnalysis(DataClassJsonMixin):
    """Summary of a message format for diagnostics and tooling."""

    name: str
    format: str
    field_order: list[str]
    required_fields: list[str]
    optional_fields: list[str]
    delimiters: list[str]
    prefix: str
    suffix: str
    has_fixed_strings: bool
    has_delimiters: bool
    has_optional_fields: bool
    min_size: int
    max_size: int | None  # None means unbounded
    size_kind: SizeKind
    complexity: int
    ambiguities: list[str] = field(default_factory=list)


def _is_dynamic(token: Token | None) -> bool:
    return isinstance(token, (FieldToken, OptionalToken))


def find_delimiters(tokens: list[Token]) -> list[str]:
    """Return literals that sit between two fields."""
    delimiters = []
    for i in range(1, len(tokens) - 1):
        token = tokens[i]
        between_fields = _is_dynamic(tokens[i - 1]) and _is_dynamic(tokens[i + 1])
        if isinstance(token, LiteralToken) and between_fields:
            delimiters.append(token.text)
    return delimiters


def find_ambiguities(compiled: CompiledMessage) -> list[str]:
    """Describe places where field boundaries cannot be resolved reliably."""
    tokens = list(compiled.tokens)
    ambiguities = []

    for token, nxt in zip(tokens, tokens[1:]):
        if isinstance(token, FieldToken) and isinstance(nxt, FieldToken):
            if _width(compiled, token.name) is None:
                ambiguities.append(
                    f"Ambiguous: Adjacent fields {{{token.name}}} and {{{nxt.name}}} "
                    "without delimiter"
                )

    trailing = [t for t in tokens if not isinstance(t, OptionalToken)]
    last = trailing[-1] if trailing else None
    if isinstance(last, FieldToken) and _width(compiled, last.name) is None:
        ambiguities.append(
            f"Field {{{last.name}}} is not followed by a literal; its end falls back to "
            "the configured terminators or the end of data"
        )

    return ambiguities


def _width(compiled: CompiledMessage, name: str) -> int | None:
    f = compiled.field(name)
    return f.type.width if f else None


def calculate_complexity(compiled: CompiledMessage) -> int:
    complexity = len(compiled.tokens)
    if any(isinstance(t, OptionalToken) for t in compiled.tokens):
        complexity += 5
    complexity += sum(1 for f in compiled.fields if f.validation)
    return complexity


def _sizes(compiled: CompiledMessage) -> tuple[int, int | None]:
    min_size = 0
    max_size: int | None = 0

    for token in compiled.tokens:
        if isinstance(token, LiteralToken):
            min_size += len(token.text.encode("utf-8"))
            if max_size is not None:
                max_size += len(token.text.encode("utf-8"))
        elif isinstance(token, FieldToken):
            width = _width(compiled, token.name)
            if width is None:
                max_size = None
            else:
                min_size += width
                if max_size is not None:
                    max_size += width
        elif isinstance(token, OptionalToken):
            width = _width(compiled, token.name)
            if width is None or max_size is None:
                max_size = None
            else:
                section = len(token.marker.encode("utf-8")) + len(token.suffix.encode("utf-8"))
                max_size += section + width

    return min_size, max_size


def analyze(compiled: CompiledMessage) -> FormatAnalysis:
    """Analyze a compiled message."""
    tokens = list(compiled.tokens)
    delimiters = find_delimiters(tokens)
    min_size, max_size = _sizes(compiled)
    first = tokens[0] if tokens else None
    last = tokens[-1] if tokens else None

    return FormatAnalysis(
        name=compiled.name,
        format=compiled.definition.format,
        field_order=[t.name for t in tokens if _is_dynamic(t)],  # type: ignore[union-attr]
        required_fields=[f.name for f in compiled.fields if f.required],
        optional_fields=[f.name for f in compiled.fields if not f.required],
        delimiters=delimiters,
        prefix=first.text if isinstance(first, LiteralToken) else "",
        suffix=last.text if isinstance(last, LiteralToken) else "",
        has_fixed_strings=any(isinstance(t, LiteralToken) for t in tokens),
        has_delimiters=compiled.definition.delimiter is not None or bool(delimiters),
        has_optional_fields=any(isinstance(t, OptionalToken) for t in tokens),
        min_size=min_size,
        max_size=max_size,
        size_kind=SizeKind.FIXED if max_size == min_size else SizeKind.VARIABLE,
        complexity=calculate_complexity(compiled),
        ambiguities=find_ambiguities(compiled),
    )
