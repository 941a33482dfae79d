"""
Header parsing for PLY files.

This module locates the header/data boundary, splits the header text with
the newline convention found at ``end_header`` and turns it into an ordered
list of element and property declarations.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union
import logging
import re

from ._errors import (
    BadElementOrCount,
    BadProperty,
    BadPropertyType,
    HeaderEncoding,
    HeaderMagic,
    HeaderMalformed,
    MissingFormat,
    PropertyBeforeElement,
    UnknownDirective,
    UnsupportedFormat,
)
from ._scalar import ScalarType

logger = logging.getLogger(__name__)

HEADER_SENTINEL = b"end_header"

_COUNT_RE = re.compile(r"\+?[0-9]+")


class PlyFormat(Enum):
    """Record encodings a PLY file may declare."""
    ASCII = "ascii"
    BINARY_LITTLE_ENDIAN = "binary_little_endian"
    BINARY_BIG_ENDIAN = "binary_big_endian"

    @property
    def is_binary(self) -> bool:
        return self is not PlyFormat.ASCII

    @property
    def little_endian(self) -> bool:
        return self is PlyFormat.BINARY_LITTLE_ENDIAN


@dataclass(frozen=True)
class ScalarProperty:
    """A fixed-width property holding one value per record."""
    name: str
    type: ScalarType


@dataclass(frozen=True)
class ListProperty:
    """A variable-length property: a count followed by that many items."""
    name: str
    count_type: ScalarType
    item_type: ScalarType


Property = Union[ScalarProperty, ListProperty]


@dataclass
class PlyElement:
    """An ``element`` declaration with its properties in file order."""
    name: str
    count: int
    properties: List[Property] = field(default_factory=list)

    def has_list_properties(self) -> bool:
        return any(isinstance(p, ListProperty) for p in self.properties)


@dataclass
class PlyHeader:
    """Parsed PLY header.

    Attributes:
        format: Record encoding
        version: Version token from the ``format`` line (normally ``1.0``)
        elements: Element declarations in file order
        comments: Text of ``comment`` lines
        obj_info: Text of ``obj_info`` lines
        data_offset: Byte offset of the first record
        newline: Line terminator found after ``end_header`` (``\\n`` or ``\\r\\n``)
    """
    format: PlyFormat
    version: str
    elements: List[PlyElement]
    comments: List[str]
    obj_info: List[str]
    data_offset: int
    newline: str

    @classmethod
    def from_bytes(cls, data: bytes) -> 'PlyHeader':
        """Parse the header at the start of a PLY buffer.

        Args:
            data: Whole file contents (only bytes before the data offset are
                inspected)

        Returns:
            Parsed PlyHeader object

        Raises:
            PlyError: One of the header error subclasses if the header is
                malformed
        """
        data_offset, newline = find_header_end(data)
        try:
            text = bytes(data[:data_offset]).decode("utf-8")
        except UnicodeDecodeError:
            raise HeaderEncoding("PLY: header is not valid utf-8")

        lines = [line.strip() for line in text.split(newline)]
        lines = [line for line in lines if line]
        if not lines or lines[0] != "ply":
            raise HeaderMagic('PLY: first line must be "ply"')

        fmt = None
        version = ""
        comments = []
        obj_info = []
        elements = []
        current = None

        for line in lines[1:]:
            if line == "end_header":
                break
            tokens = line.split()
            tag = tokens[0]

            if tag == "comment":
                comments.append(line[len("comment"):].strip())
            elif tag == "obj_info":
                obj_info.append(line[len("obj_info"):].strip())
            elif tag == "format":
                fmt = _parse_format(tokens[1] if len(tokens) > 1 else "")
                version = tokens[2] if len(tokens) > 2 else ""
            elif tag == "element":
                if current is not None:
                    elements.append(current)
                current = _parse_element(tokens)
            elif tag == "property":
                if current is None:
                    raise PropertyBeforeElement("PLY: property before element")
                current.properties.append(_parse_property(tokens))
            else:
                raise UnknownDirective(f"PLY: unknown header directive {line!r}")

        if current is not None:
            elements.append(current)
        if fmt is None:
            raise MissingFormat("PLY: missing format")

        header = cls(
            format=fmt,
            version=version,
            elements=elements,
            comments=comments,
            obj_info=obj_info,
            data_offset=data_offset,
            newline=newline,
        )
        logger.debug("Parsed %s", header)
        return header

    def find_element(self, name: str) -> Optional[PlyElement]:
        """Return the first element whose name matches case-insensitively."""
        wanted = name.lower()
        for element in self.elements:
            if element.name.lower() == wanted:
                return element
        return None

    def __str__(self) -> str:
        """String representation of the header."""
        elements = ", ".join(f"{e.name}[{e.count}]" for e in self.elements)
        return (f"PlyHeader(format={self.format.value}, elements=[{elements}], "
                f"data_offset={self.data_offset})")


def find_header_end(data: bytes) -> Tuple[int, str]:
    """Find the end of the header and the newline convention it uses.

    Args:
        data: Whole file contents

    Returns:
        Tuple of (offset just past the terminator, newline string)

    Raises:
        HeaderMalformed: If no ``end_header`` followed by LF or CRLF exists
    """
    start = 0
    while True:
        i = data.find(HEADER_SENTINEL, start)
        if i < 0:
            raise HeaderMalformed("PLY: can't find end_header")
        k = i + len(HEADER_SENTINEL)
        if data[k:k + 1] == b"\n":
            return k + 1, "\n"
        if data[k:k + 2] == b"\r\n":
            return k + 2, "\r\n"
        start = i + 1


def _parse_format(kind: str) -> PlyFormat:
    try:
        return PlyFormat(kind)
    except ValueError:
        raise UnsupportedFormat(f"PLY: unsupported format {kind!r}")


def _parse_element(tokens: List[str]) -> PlyElement:
    if len(tokens) < 3:
        raise BadElementOrCount("PLY: bad element")
    if not _COUNT_RE.fullmatch(tokens[2]):
        raise BadElementOrCount(f"PLY: bad element count {tokens[2]!r}")
    return PlyElement(name=tokens[1], count=int(tokens[2]))


def _parse_type(token: str) -> ScalarType:
    scalar_type = ScalarType.parse(token)
    if scalar_type is None:
        raise BadPropertyType(f"PLY: bad property type {token!r}")
    return scalar_type


def _parse_property(tokens: List[str]) -> Property:
    if len(tokens) < 2:
        raise BadProperty("PLY: bad property")
    if tokens[1] == "list":
        if len(tokens) < 5:
            raise BadProperty("PLY: bad list property")
        return ListProperty(
            name=tokens[4],
            count_type=_parse_type(tokens[2]),
            item_type=_parse_type(tokens[3]),
        )
    scalar_type = _parse_type(tokens[1])
    if len(tokens) < 3:
        raise BadProperty("PLY: bad scalar property")
    return ScalarProperty(name=tokens[2], type=scalar_type)
