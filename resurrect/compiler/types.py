"""Type definitions for format strings and message definitions."""

from dataclasses import dataclass, field

from dataclasses_json import DataClassJsonMixin


@dataclass(frozen=True)
class LiteralToken(DataClassJsonMixin):
    """A run of fixed text between dynamic tokens."""

    text: str
    kind: str = "literal"


@dataclass(frozen=True)
class FieldToken(DataClassJsonMixin):
    """A required ``{name}`` placeholder."""

    name: str
    kind: str = "field"


@dataclass(frozen=True)
class OptionalToken(DataClassJsonMixin):
    """An optional ``[prefix{name}suffix]`` section.

    The suffix includes the closing bracket. The opening bracket is kept
    separately in ``opener`` so the parser marker (``opener + prefix``) and
    the serializer output (``opener + prefix + value + suffix``) are built
    from the same bytes. ``padding`` is whitespace between a preceding field
    and the section, folded in by the compiler.
    """

    name: str
    prefix: str
    suffix: str
    opener: str = "["
    padding: str = ""
    kind: str = "optional"

    @property
    def marker(self) -> str:
        return self.opener + self.prefix


Token = LiteralToken | FieldToken | OptionalToken


# Fixed-width binary kinds: name -> (struct format char, size in bytes)
FIXED_WIDTH_TYPES: dict[str, tuple[str, int]] = {
    "int8": ("b", 1),
    "uint8": ("B", 1),
    "int16": ("h", 2),
    "uint16": ("H", 2),
    "int32": ("i", 4),
    "uint32": ("I", 4),
    "int64": ("q", 8),
    "uint64": ("Q", 8),
    "float32": ("f", 4),
    "float64": ("d", 8),
}

FIXED_WIDTH_ALIASES: dict[str, str] = {
    "i8": "int8",
    "u8": "uint8",
    "byte": "uint8",
    "i16": "int16",
    "u16": "uint16",
    "i32": "int32",
    "u32": "uint32",
    "i64": "int64",
    "u64": "uint64",
    "f32": "float32",
    "float": "float32",
    "f64": "float64",
    "double": "float64",
}

TEXT_TYPES = frozenset(["string", "number", "boolean", "enum", "bytes"])


def canonical_kind(kind: str) -> str:
    """Resolve a type alias (``u16``, ``double``...) to its canonical name."""
    return FIXED_WIDTH_ALIASES.get(kind, kind)


def is_fixed_width(kind: str) -> bool:
    """Check if a type kind is packed as fixed-width big-endian binary."""
    return canonical_kind(kind) in FIXED_WIDTH_TYPES


def known_types() -> list[str]:
    """Return every accepted type kind, aliases included."""
    return sorted(TEXT_TYPES | FIXED_WIDTH_TYPES.keys() | FIXED_WIDTH_ALIASES.keys())


@dataclass
class FieldType(DataClassJsonMixin):
    """Declared type of a field.

    - kind="enum": ``values`` lists the accepted members
    - kind="bytes": ``length`` fixes the byte length, None means variable
    """

    kind: str = "string"
    values: list[str] | None = None
    length: int | None = None

    @property
    def canonical(self) -> str:
        return canonical_kind(self.kind)

    @property
    def width(self) -> int | None:
        """Number of bytes the value occupies on the wire, if fixed."""
        if self.canonical in FIXED_WIDTH_TYPES:
            return FIXED_WIDTH_TYPES[self.canonical][1]
        if self.kind == "bytes":
            return self.length
        return None


@dataclass
class ValidationRule(DataClassJsonMixin):
    """Constraints checked before serialization."""

    pattern: str | None = None
    min_length: int | None = None
    max_length: int | None = None
    min: float | None = None
    max: float | None = None


@dataclass
class FieldDefinition(DataClassJsonMixin):
    """A field of a message type."""

    name: str
    type: FieldType = field(default_factory=FieldType)
    required: bool = True
    validation: ValidationRule | None = None
    description: str | None = None


@dataclass
class MessageDefinition(DataClassJsonMixin):
    """A message type as loaded from a protocol definition."""

    name: str
    format: str
    fields: list[FieldDefinition] = field(default_factory=list)
    direction: str = "bidirectional"
    delimiter: str | None = None
    terminator: str | None = None

    def field_map(self) -> dict[str, FieldDefinition]:
        return {f.name: f for f in self.fields}
