"""Compile a message definition once and parse or serialize it many times."""

from collections.abc import Mapping
from typing import Any

from ..compiler.message import CompiledMessage, compile_message
from ..compiler.types import MessageDefinition
from ..config import EngineSettings
from .parser import ParserEngine
from .results import ParseResult, SerializeResult, ValidationResult
from .serializer import SerializerEngine


class MessageCodec:
    """Parser and serializer for one message type.

    Example:
        codec = MessageCodec.from_dict({"name": "Login", "format": "LOGIN {username}\\n"})
        codec.parse(b"LOGIN alice\\n").message  # {"username": "alice"}
        codec.serialize({"username": "bob"}).data  # b"LOGIN bob\\n"
    """

    def __init__(
        self, definition: MessageDefinition, settings: EngineSettings | None = None
    ) -> None:
        self.compiled: CompiledMessage = compile_message(definition)
        self.parser = ParserEngine(self.compiled, settings)
        self.serializer = SerializerEngine(self.compiled)

    @classmethod
    def from_dict(
        cls, data: dict[str, Any], settings: EngineSettings | None = None
    ) -> "MessageCodec":
        return cls(MessageDefinition.from_dict(data), settings)

    @classmethod
    def from_format(cls, format_string: str, name: str = "Message") -> "MessageCodec":
        return cls(MessageDefinition(name=name, format=format_string))

    @property
    def name(self) -> str:
        return self.compiled.name

    def parse(self, buffer: bytes, start_offset: int = 0) -> ParseResult:
        return self.parser.parse(buffer, start_offset)

    def validate(self, message: Mapping[str, Any]) -> ValidationResult:
        return self.serializer.validate(message)

    def serialize(self, message: Mapping[str, Any]) -> SerializeResult:
        return self.serializer.serialize(message)
