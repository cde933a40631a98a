"""Resurrect - Compile protocol format strings into parsers and serializers."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("resurrect")
except PackageNotFoundError:
    __version__ = "(local)"
