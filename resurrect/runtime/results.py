"""Result values returned by the parser and serializer engines."""

from dataclasses import dataclass, field
from typing import Any

from dataclasses_json import DataClassJsonMixin


@dataclass
class ParseError(DataClassJsonMixin):
    """Where and why a parse stopped.

    ``offset`` is absolute within the buffer handed to the engine. ``actual``
    holds a bounded excerpt of the buffer starting at ``offset``.
    """

    message: str
    state: str
    offset: int
    expected: str | None = None
    actual: str | None = None
    state_history: list[str] = field(default_factory=list)


@dataclass
class ParseResult(DataClassJsonMixin):
    success: bool
    message: dict[str, Any] | None = None
    bytes_consumed: int = 0
    error: ParseError | None = None


@dataclass
class SerializeError(DataClassJsonMixin):
    field: str
    message: str
    reason: str
    expected: str | None = None
    actual: str | None = None


@dataclass
class SerializeResult(DataClassJsonMixin):
    success: bool
    data: bytes | None = None
    error: SerializeError | None = None


@dataclass
class ValidationIssue(DataClassJsonMixin):
    """A single constraint violation found while validating a message."""

    field: str
    message: str
    reason: str
    expected: str | None = None
    actual: str | None = None


@dataclass
class ValidationResult(DataClassJsonMixin):
    valid: bool
    errors: list[ValidationIssue] = field(default_factory=list)
