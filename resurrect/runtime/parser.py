"""Interpreter that runs a compiled automaton over a byte buffer."""

from dataclasses import dataclass, field
from typing import Any

import structlog

from ..compiler.automaton import State, StateKind
from ..compiler.message import CompiledMessage
from ..config import EngineSettings, settings as default_settings
from .boundary import find_field_end
from .conversion import ConversionError, decode_text, decode_value
from .results import ParseError, ParseResult

logger = structlog.get_logger(__name__)


@dataclass
class ExecutionContext:
    """Mutable state of a single parse call."""

    state: str
    offset: int
    data: bytes
    fields: dict[str, Any] = field(default_factory=dict)
    state_history: list[str] = field(default_factory=list)
    completed: bool = False


class _Failure(Exception):
    def __init__(self, error: ParseError) -> None:
        super().__init__(error.message)
        self.error = error


class ParserEngine:
    """Parse buffers for one compiled message type.

    The engine holds no per-call state, so a single instance can serve
    concurrent callers.
    """

    def __init__(self, compiled: CompiledMessage, settings: EngineSettings | None = None) -> None:
        self.compiled = compiled
        self.automaton = compiled.automaton
        self.settings = settings or default_settings

    def parse(self, buffer: bytes, start_offset: int = 0) -> ParseResult:
        """Parse a message starting at ``start_offset``.

        Failures are returned in the result, never raised.

        Raises:
            TypeError: If ``buffer`` is not bytes-like.
            ValueError: If ``start_offset`` is negative or past the buffer.
        """
        if not isinstance(buffer, (bytes, bytearray, memoryview)):
            raise TypeError(f"buffer must be bytes, not {type(buffer).__name__}")
        data = bytes(buffer)
        if start_offset < 0 or start_offset > len(data):
            raise ValueError(f"start_offset {start_offset} is outside the buffer")

        ctx = ExecutionContext(
            state=self.automaton.initial,
            offset=start_offset,
            data=data,
            state_history=[self.automaton.initial],
        )

        try:
            self._run(ctx)
            self._check_required(ctx)
        except _Failure as e:
            logger.info(
                "parse_failed",
                message=self.compiled.name,
                state=e.error.state,
                offset=e.error.offset,
                reason=e.error.message,
            )
            return ParseResult(success=False, bytes_consumed=0, error=e.error)

        return ParseResult(
            success=True,
            message=dict(ctx.fields),
            bytes_consumed=ctx.offset - start_offset,
        )

    def _run(self, ctx: ExecutionContext) -> None:
        while not ctx.completed:
            state = self.automaton.state(ctx.state)
            if state is None:
                raise self._failure(ctx, "Internal error: invalid state", ctx.state)

            if state.kind == StateKind.ACCEPT:
                ctx.completed = True
                continue
            if state.kind == StateKind.ERROR:
                raise self._failure(ctx, state.error_message or "Parse error", state.id)

            if state.kind in (StateKind.MATCH_LITERAL, StateKind.MATCH_DELIMITER):
                self._match_literal(state, ctx)
            elif state.kind == StateKind.EXTRACT_FIELD:
                self._extract_field(state, ctx)
            elif state.kind == StateKind.OPTIONAL_FIELD:
                self._optional_field(state, ctx)

            self._transition(state, ctx)

    def _transition(self, state: State, ctx: ExecutionContext) -> None:
        for transition in state.transitions:
            if transition.condition.holds(ctx.data, ctx.offset):
                ctx.state = transition.target
                ctx.state_history.append(transition.target)
                return
        raise self._failure(
            ctx, "No valid transition from current state", state.id, "valid transition", "none"
        )

    def _match_literal(self, state: State, ctx: ExecutionContext) -> None:
        expected = state.expected or ""
        raw = expected.encode("utf-8")

        if ctx.offset + len(raw) > len(ctx.data):
            raise self._failure(ctx, "Unexpected end of data", state.id, expected)
        if not ctx.data.startswith(raw, ctx.offset):
            what = "delimiter" if state.kind == StateKind.MATCH_DELIMITER else "literal"
            raise self._failure(ctx, f'Expected {what} "{expected}"', state.id, expected)

        ctx.offset += len(raw)

    def _extract_field(self, state: State, ctx: ExecutionContext) -> None:
        name = state.action.target if state.action else None
        if not name:
            return

        end = find_field_end(
            self.automaton, state, ctx.data, ctx.offset, self.settings.fallback_terminators
        )
        if end is None:
            raise self._failure(
                ctx, f'Could not find end of field "{name}"', state.id, "field boundary"
            )

        definition = self.compiled.field(name)
        kind = state.metadata.field_type if state.metadata else "string"
        try:
            value = decode_value(
                ctx.data[ctx.offset : end],
                kind or "string",
                name,
                definition.required if definition else True,
            )
        except ConversionError as e:
            raise self._failure(ctx, str(e), state.id, e.expected, e.actual) from e

        if value is not None:
            ctx.fields[name] = value
        ctx.offset = end

    def _optional_field(self, state: State, ctx: ExecutionContext) -> None:
        name = state.action.target if state.action else None
        meta = state.metadata
        if not name or meta is None:
            return

        marker = (meta.marker or "").encode("utf-8")
        suffix = (meta.optional_suffix or "").encode("utf-8")
        if not ctx.data.startswith(marker, ctx.offset):
            logger.debug("optional_section_absent", field=name, offset=ctx.offset)
            return

        start = ctx.offset + len(marker)
        if meta.width is not None:
            end: int | None = start + meta.width
            if end > len(ctx.data) or not ctx.data.startswith(suffix, end):
                end = None
        elif suffix:
            found = ctx.data.find(suffix, start)
            end = found if found != -1 else None
        else:
            end = find_field_end(
                self.automaton, state, ctx.data, start, self.settings.fallback_terminators
            )

        if end is None:
            logger.debug("optional_section_unterminated", field=name, offset=ctx.offset)
            return

        try:
            value = decode_value(ctx.data[start:end], meta.field_type or "string", name, False)
        except ConversionError as e:
            logger.debug("optional_section_invalid", field=name, offset=ctx.offset, reason=str(e))
            return

        if value is not None:
            ctx.fields[name] = value
        ctx.offset = end + len(suffix)

    def _check_required(self, ctx: ExecutionContext) -> None:
        for f in self.compiled.fields:
            if f.required and f.name not in ctx.fields:
                raise self._failure(
                    ctx, f'Required field "{f.name}" not extracted', ctx.state, f.name
                )

    def _failure(
        self,
        ctx: ExecutionContext,
        message: str,
        state: str,
        expected: str | None = None,
        actual: str | None = None,
    ) -> _Failure:
        limit = self.settings.max_error_data_length
        if actual is None:
            actual = self._excerpt(ctx.data, ctx.offset)
        elif len(actual) > limit:
            actual = actual[:limit] + "..."
        return _Failure(
            ParseError(
                message=message,
                state=state,
                offset=ctx.offset,
                expected=expected,
                actual=actual,
                state_history=list(ctx.state_history),
            )
        )

    def _excerpt(self, data: bytes, offset: int) -> str:
        limit = self.settings.max_error_data_length
        excerpt = decode_text(data[offset : offset + limit])
        if len(data) - offset > limit:
            return excerpt + "..."
        return excerpt
