"""
Scalar wire types and readers for PLY record data.

Binary records are fixed-width rows of scalars whose byte order is given by
the header's format line. ASCII records are whitespace-separated tokens.
Both readers widen values to double precision.
"""

from enum import Enum
from typing import List, Optional, Sequence, Tuple
import struct

import numpy as np

from ._errors import NumberFormat, Truncated


class ScalarType(Enum):
    """Primitive PLY property types.

    Each member's value is ``(size_in_bytes, numpy_code, struct_code)``.
    """
    CHAR = (1, "i1", "b")
    UCHAR = (1, "u1", "B")
    SHORT = (2, "i2", "h")
    USHORT = (2, "u2", "H")
    INT = (4, "i4", "i")
    UINT = (4, "u4", "I")
    FLOAT = (4, "f4", "f")
    DOUBLE = (8, "f8", "d")

    @property
    def size(self) -> int:
        return self.value[0]

    @property
    def is_byte(self) -> bool:
        """True for the 8-bit types, which hold colors as 0..255 directly."""
        return self.size == 1

    def dtype(self, little_endian: bool) -> np.dtype:
        """NumPy dtype for this type in the given byte order."""
        return np.dtype(("<" if little_endian else ">") + self.value[1])

    def struct_format(self, little_endian: bool) -> str:
        return ("<" if little_endian else ">") + self.value[2]

    @classmethod
    def parse(cls, token: str) -> Optional["ScalarType"]:
        """Look up a header type token, returning None if it is unknown."""
        return _TYPE_NAMES.get(token)


# Sized aliases are written by many exporters alongside the classic names.
_TYPE_NAMES = {
    "char": ScalarType.CHAR,
    "uchar": ScalarType.UCHAR,
    "short": ScalarType.SHORT,
    "ushort": ScalarType.USHORT,
    "int": ScalarType.INT,
    "uint": ScalarType.UINT,
    "float": ScalarType.FLOAT,
    "double": ScalarType.DOUBLE,
    "int8": ScalarType.CHAR,
    "uint8": ScalarType.UCHAR,
    "int16": ScalarType.SHORT,
    "uint16": ScalarType.USHORT,
    "int32": ScalarType.INT,
    "uint32": ScalarType.UINT,
    "float32": ScalarType.FLOAT,
    "float64": ScalarType.DOUBLE,
}


def record_layout(types: Sequence[ScalarType]) -> Tuple[List[int], int]:
    """Compute per-property byte offsets and the total record stride.

    Args:
        types: Property types in declaration order

    Returns:
        Tuple of (offsets, stride)
    """
    offsets = []
    stride = 0
    for scalar_type in types:
        offsets.append(stride)
        stride += scalar_type.size
    return offsets, stride


def read_scalar(data: bytes, offset: int, scalar_type: ScalarType, little_endian: bool) -> float:
    """Read a single binary scalar at a byte offset.

    Args:
        data: Whole file buffer
        offset: Absolute byte offset of the value
        scalar_type: Declared property type
        little_endian: Byte order of the file

    Returns:
        The value as a Python float

    Raises:
        Truncated: If the value extends past the end of the buffer
    """
    if offset < 0 or offset + scalar_type.size > len(data):
        raise Truncated("PLY: out of bounds while reading binary data")
    (value,) = struct.unpack_from(scalar_type.struct_format(little_endian), data, offset)
    return float(value)


def read_column(data: bytes, base: int, stride: int, count: int, offset: int,
                scalar_type: ScalarType, little_endian: bool) -> np.ndarray:
    """Read one property from ``count`` consecutive fixed-stride records.

    Args:
        data: Whole file buffer
        base: Byte offset of the first record
        stride: Size of one record in bytes
        count: Number of records
        offset: Offset of the property inside a record
        scalar_type: Declared property type
        little_endian: Byte order of the file

    Returns:
        (count,) float64 array

    Raises:
        Truncated: If the buffer ends before the last record's value
    """
    if count == 0:
        return np.zeros(0, dtype=np.float64)
    if count == 1:
        return np.array([read_scalar(data, base + offset, scalar_type, little_endian)])

    end = base + (count - 1) * stride + offset + scalar_type.size
    if end > len(data):
        raise Truncated("PLY: out of bounds while reading binary data")

    view = np.ndarray(
        shape=(count,),
        dtype=scalar_type.dtype(little_endian),
        buffer=data,
        offset=base + offset,
        strides=(stride,),
    )
    return view.astype(np.float64)


def parse_ascii_scalar(columns: Sequence[str], index: int) -> float:
    """Parse one column of a whitespace-split ASCII record.

    Raises:
        Truncated: If the record has fewer columns than ``index + 1``
        NumberFormat: If the token is not a decimal number
    """
    if index >= len(columns):
        raise Truncated("PLY ASCII: missing column")
    token = columns[index]
    # float() also accepts digit separators and non-ASCII digits, which PLY does not
    if "_" in token or not token.isascii():
        raise NumberFormat(f"PLY ASCII: failed to parse number {token!r}")
    try:
        return float(token)
    except ValueError:
        raise NumberFormat(f"PLY ASCII: failed to parse number {token!r}")
