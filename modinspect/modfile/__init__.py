"""go.mod reading and editing."""

from .exceptions import ModFileError, ModFileParseError
from .models import ModFile, Requirement
from .parser import Parser, parse_mod
from .writer import Writer

__all__ = [
    "ModFile",
    "ModFileError",
    "ModFileParseError",
    "Parser",
    "Requirement",
    "Writer",
    "parse_mod",
]
