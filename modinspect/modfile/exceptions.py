"""
Exception classes for go.mod handling.
"""

from typing import Optional


class ModFileError(Exception):
    """Base exception for go.mod read, parse and write errors."""

    pass


class ModFileParseError(ModFileError):
    """Raised when go.mod content is syntactically invalid."""

    def __init__(self, filename: str, line: Optional[int], message: str):
        self.filename = filename
        self.line = line
        self.message = message
        location = f"{filename}:{line}" if line is not None else filename
        super().__init__(f"{location}: {message}")
