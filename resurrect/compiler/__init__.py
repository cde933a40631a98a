"""Format string compiler."""

from .automaton import *
from .message import CompiledMessage as CompiledMessage
from .message import DefinitionError as DefinitionError
from .message import compile_message as compile_message
from .tokenizer import FormatSyntaxError as FormatSyntaxError
from .tokenizer import tokenize as tokenize
from .types import *
