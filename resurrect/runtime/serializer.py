"""Validate messages and serialize them by walking the compiled tokens."""

import math
import re
from collections.abc import Mapping
from typing import Any

import structlog

from ..compiler.message import CompiledMessage
from ..compiler.types import FieldDefinition, FieldToken, LiteralToken, OptionalToken
from .conversion import ConversionError, encode_value, integer_range
from .results import SerializeError, SerializeResult, ValidationIssue, ValidationResult

logger = structlog.get_logger(__name__)

_TYPE_NAMES = {
    "string": "a string",
    "enum": "a string",
    "number": "a number",
    "boolean": "a boolean",
    "bytes": "bytes",
}


def _type_name(value: Any) -> str:
    return type(value).__name__


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _has_type(value: Any, kind: str) -> bool:
    if kind in ("string", "enum"):
        return isinstance(value, str)
    if kind == "number":
        return _is_number(value)
    if kind == "boolean":
        return isinstance(value, bool)
    if kind == "bytes":
        return isinstance(value, (bytes, bytearray))
    if kind.startswith("float"):
        return _is_number(value)
    return isinstance(value, int) and not isinstance(value, bool)


def check_field(f: FieldDefinition, value: Any) -> list[ValidationIssue]:
    """Check one present value against its field's type and constraints."""
    kind = f.type.canonical
    name = f.name

    if not _has_type(value, kind):
        expected = _TYPE_NAMES.get(kind) or (
            f"a number ({kind})" if kind.startswith("float") else f"an integer ({kind})"
        )
        return [
            ValidationIssue(
                field=name,
                message=f'Field "{name}" must be {expected}',
                reason="invalid_type",
                expected=kind,
                actual=_type_name(value),
            )
        ]

    issues: list[ValidationIssue] = []

    if kind == "enum" and value not in (f.type.values or []):
        allowed = ", ".join(f.type.values or [])
        issues.append(
            ValidationIssue(
                field=name,
                message=f'Field "{name}" must be one of: {allowed}',
                reason="enum_value",
                expected=allowed,
                actual=value,
            )
        )

    if kind == "bytes" and f.type.length is not None and len(value) != f.type.length:
        issues.append(
            ValidationIssue(
                field=name,
                message=f'Field "{name}" must be exactly {f.type.length} bytes',
                reason="byte_length",
                expected=str(f.type.length),
                actual=str(len(value)),
            )
        )

    if kind == "number" and not math.isfinite(value):
        issues.append(
            ValidationIssue(
                field=name,
                message=f'Field "{name}" must be a finite number',
                reason="non_finite",
                expected="finite number",
                actual=str(value),
            )
        )

    bounds = integer_range(kind)
    if bounds is not None and not bounds[0] <= value <= bounds[1]:
        issues.append(
            ValidationIssue(
                field=name,
                message=f'Field "{name}" is out of range for {kind} ({bounds[0]}..{bounds[1]})',
                reason="out_of_range",
                expected=f"{bounds[0]}..{bounds[1]}",
                actual=str(value),
            )
        )

    rule = f.validation
    if rule is None:
        return issues

    if isinstance(value, (str, bytes, bytearray)):
        if rule.min_length is not None and len(value) < rule.min_length:
            issues.append(
                ValidationIssue(
                    field=name,
                    message=f'Field "{name}" must be at least {rule.min_length} characters',
                    reason="min_length",
                    expected=str(rule.min_length),
                    actual=str(len(value)),
                )
            )
        if rule.max_length is not None and len(value) > rule.max_length:
            issues.append(
                ValidationIssue(
                    field=name,
                    message=f'Field "{name}" must be at most {rule.max_length} characters',
                    reason="max_length",
                    expected=str(rule.max_length),
                    actual=str(len(value)),
                )
            )

    if isinstance(value, str) and rule.pattern is not None and not re.search(rule.pattern, value):
        issues.append(
            ValidationIssue(
                field=name,
                message=f'Field "{name}" does not match pattern {rule.pattern}',
                reason="pattern",
                expected=rule.pattern,
                actual=value,
            )
        )

    if _is_number(value):
        if rule.min is not None and value < rule.min:
            issues.append(
                ValidationIssue(
                    field=name,
                    message=f'Field "{name}" must be >= {rule.min:g}',
                    reason="min_value",
                    expected=f"{rule.min:g}",
                    actual=str(value),
                )
            )
        if rule.max is not None and value > rule.max:
            issues.append(
                ValidationIssue(
                    field=name,
                    message=f'Field "{name}" must be <= {rule.max:g}',
                    reason="max_value",
                    expected=f"{rule.max:g}",
                    actual=str(value),
                )
            )

    return issues


class SerializerEngine:
    """Validate and serialize messages of one compiled message type."""

    def __init__(self, compiled: CompiledMessage) -> None:
        self.compiled = compiled

    def validate(self, message: Mapping[str, Any]) -> ValidationResult:
        """Collect every constraint violation in ``message``."""
        errors: list[ValidationIssue] = []

        for f in self.compiled.fields:
            value = message.get(f.name)
            if value is None:
                if f.required:
                    errors.append(
                        ValidationIssue(
                            field=f.name,
                            message=f'Required field "{f.name}" is missing',
                            reason="missing_required_field",
                            expected="non-null value",
                            actual="undefined",
                        )
                    )
                continue
            errors.extend(check_field(f, value))

        return ValidationResult(valid=not errors, errors=errors)

    def serialize(self, message: Mapping[str, Any]) -> SerializeResult:
        """Validate ``message`` and encode it to bytes.

        Failures are returned in the result, never raised.
        """
        validation = self.validate(message)
        if not validation.valid:
            first = validation.errors[0]
            logger.info(
                "serialize_failed",
                message=self.compiled.name,
                field=first.field,
                issues=len(validation.errors),
            )
            return SerializeResult(
                success=False,
                error=SerializeError(
                    field=first.field,
                    message="; ".join(e.message for e in validation.errors),
                    reason="validation_failed",
                    expected=first.expected,
                    actual=first.actual,
                ),
            )

        try:
            data = self._encode(message)
        except ConversionError as e:
            logger.info("serialize_failed", message=self.compiled.name, reason=str(e))
            return SerializeResult(
                success=False,
                error=SerializeError(
                    field=e.field or "unknown",
                    message=str(e),
                    reason="serialization_error",
                    expected=e.expected,
                    actual=e.actual,
                ),
            )

        return SerializeResult(success=True, data=data)

    def _kind(self, name: str) -> str:
        f = self.compiled.field(name)
        return f.type.canonical if f else "string"

    def _encode_field(self, name: str, value: Any) -> bytes:
        try:
            return encode_value(value, self._kind(name))
        except ConversionError as e:
            raise ConversionError(str(e), e.expected, e.actual, field=name) from e

    def _encode(self, message: Mapping[str, Any]) -> bytes:
        parts: list[bytes] = []

        for token in self.compiled.tokens:
            if isinstance(token, LiteralToken):
                parts.append(token.text.encode("utf-8"))
            elif isinstance(token, FieldToken):
                value = message.get(token.name)
                if value is not None:
                    parts.append(self._encode_field(token.name, value))
            elif isinstance(token, OptionalToken):
                value = message.get(token.name)
                if value is not None:
                    parts.append(token.marker.encode("utf-8"))
                    parts.append(self._encode_field(token.name, value))
                    parts.append(token.suffix.encode("utf-8"))

        return b"".join(parts)
