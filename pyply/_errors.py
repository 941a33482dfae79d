"""
Exception types raised while decoding PLY splat files.

Every error is terminal for the call that raised it. All of them derive
from ``PlyError``, itself a ``ValueError``, so callers that only care about
"the file is bad" can catch a single type.
"""

from typing import Optional


class PlyError(ValueError):
    """Base class for all PLY decoding errors."""


class HeaderMalformed(PlyError):
    """The ``end_header`` sentinel (followed by a line terminator) is missing."""


class HeaderEncoding(PlyError):
    """The header bytes are not valid UTF-8."""


class HeaderMagic(PlyError):
    """The first header line is not ``ply``."""


class UnsupportedFormat(PlyError):
    """The ``format`` line names an unknown encoding."""


class MissingFormat(PlyError):
    """The header never declares a ``format``."""


class BadElementOrCount(PlyError):
    """An ``element`` line lacks a name or has a non-numeric count."""


class PropertyBeforeElement(PlyError):
    """A ``property`` line appears before any ``element`` line."""


class BadProperty(PlyError):
    """A ``property`` line is missing tokens."""


class BadPropertyType(PlyError):
    """A ``property`` line names an unknown scalar type."""


class UnknownDirective(PlyError):
    """A header line starts with an unrecognised keyword."""


class MissingElement(PlyError):
    """The requested element (normally ``vertex``) is not declared."""


class UnsupportedListProperty(PlyError):
    """The vertex element declares a list property."""


class MissingField(PlyError):
    """A required splat field cannot be found under any of its aliases.

    Attributes:
        field: Name of the missing field group (e.g. ``"x"``, ``"rotation"``)
    """

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"PLY: missing {field} in vertex")


class Truncated(PlyError):
    """The record data ends before all declared records were read."""


class NumberFormat(PlyError):
    """An ASCII record token cannot be parsed as a number."""
