"""Parser and serializer engines for compiled message types."""

from .boundary import find_field_end as find_field_end
from .codec import MessageCodec as MessageCodec
from .parser import ExecutionContext as ExecutionContext
from .parser import ParserEngine as ParserEngine
from .results import *
from .serializer import SerializerEngine as SerializerEngine
