"""Format string tokenizer using Lark."""

import os
import re
from typing import Any

from lark import Lark
from lark.exceptions import UnexpectedCharacters, UnexpectedInput, UnexpectedToken, VisitError
from lark.lexer import Token as LarkToken
from lark.visitors import Transformer

from .types import FieldToken, LiteralToken, OptionalToken, Token

_g_parser: Lark | None = None

FIELD_NAME_RE = re.compile(r"[a-zA-Z_][a-zA-Z0-9_-]*")
_ESCAPE_RE = re.compile(r"\\([{}\[\]\\])")


class FormatSyntaxError(RuntimeError):
    """Raised when a format string is malformed."""

    def __init__(self, message: str, column: int | None = None) -> None:
        super().__init__(message)
        self.column = column


class _SectionText(str):
    pass


def _unescape(text: str) -> str:
    return _ESCAPE_RE.sub(r"\1", text)


class TokenTransformer(Transformer):
    """Transform the parse tree into format tokens."""

    def start(self, args: list[Any]) -> list[Token]:
        return list(args)

    def literal(self, args: list[Any]) -> LiteralToken:
        return LiteralToken(text=_unescape(str(args[0])))

    def section_text(self, args: list[Any]) -> _SectionText:
        return _SectionText(_unescape(str(args[0])))

    def field(self, args: list[Any]) -> FieldToken:
        brace = args[0]
        names = [a for a in args if isinstance(a, LarkToken) and a.type == "FIELD_NAME"]
        name = str(names[0]).strip() if names else ""

        if not name:
            raise FormatSyntaxError(f"Empty field name at column {brace.column}", brace.column)
        if not FIELD_NAME_RE.fullmatch(name):
            raise FormatSyntaxError(
                f'Invalid field name "{name}" at column {brace.column}. Field names must start '
                "with a letter or underscore and contain only letters, digits, underscores "
                "and hyphens",
                brace.column,
            )
        return FieldToken(name=name)

    def optional(self, args: list[Any]) -> OptionalToken:
        prefix = ""
        suffix = ""
        placeholder: FieldToken | None = None

        for arg in args:
            if isinstance(arg, FieldToken):
                placeholder = arg
            elif isinstance(arg, _SectionText):
                if placeholder is None:
                    prefix = str(arg)
                else:
                    suffix = str(arg)

        if placeholder is None:
            raise RuntimeError("Optional section without placeholder survived parsing")

        closer = args[-1]
        return OptionalToken(name=placeholder.name, prefix=prefix, suffix=suffix + str(closer))


def _describe(exc: UnexpectedInput) -> str:
    expected: set[str] = set(getattr(exc, "expected", None) or getattr(exc, "allowed", None) or ())

    if isinstance(exc, UnexpectedToken) and exc.token.type == "$END":
        if "RBRACE" in expected:
            return "Unclosed placeholder at end of format string"
        return "Unclosed optional section at end of format string"

    if isinstance(exc, UnexpectedCharacters):
        char = exc.char
    else:
        char = str(exc.token)[:1]  # type: ignore[attr-defined]

    if "RBRACE" in expected:
        reason = "Unclosed placeholder"
    elif char == "}":
        reason = "Unmatched closing brace"
    elif char == "]" and "LBRACE" in expected and "LSQB" not in expected:
        # inside a section, before its placeholder
        reason = "Optional section must contain a field placeholder"
    elif char == "]":
        reason = "Unmatched closing bracket"
    elif char == "[":
        reason = "Nested optional section"
    elif char == "{":
        reason = "Optional section may contain only one placeholder"
    else:
        reason = f"Unexpected character {char!r}"

    return f"{reason} at column {exc.column}"


def _get_parser() -> Lark:
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/formatstring.lark", encoding="utf-8") as f:
            grammar = f.read()
        _g_parser = Lark(grammar, parser="lalr")

    return _g_parser


def tokenize(text: str) -> list[Token]:
    """Lex a format string into literal, field and optional tokens.

    Raises:
        FormatSyntaxError: If braces or brackets are unbalanced, a field name
            is empty or invalid, or an optional section is malformed.
    """
    try:
        tree = _get_parser().parse(text)
    except UnexpectedInput as exc:
        column = exc.column if isinstance(exc.column, int) and exc.column > 0 else None
        raise FormatSyntaxError(f'{_describe(exc)} in format string "{text}"', column) from exc

    try:
        return TokenTransformer().transform(tree)
    except VisitError as exc:
        if isinstance(exc.orig_exc, FormatSyntaxError):
            raise exc.orig_exc from None
        raise


def field_names(tokens: list[Token]) -> list[str]:
    """Return the field names referenced by a token sequence, in order."""
    return [t.name for t in tokens if isinstance(t, (FieldToken, OptionalToken))]
