"""
PyPly - Python library for decoding Gaussian Splatting PLY files.

This library reads PLY files (ASCII, binary little endian or binary big
endian) whose vertex element describes 3D Gaussian splats and decodes them
into flat NumPy buffers ready for a renderer: centers, upper-triangle
covariances, packed RGBA colors and a bounding box.

The main entry points are `parse_splat_ply()` for in-memory bytes and
`load()` for files.

Example:
    >>> import pyply
    >>> splats = pyply.load("scene.ply")
    >>> print(f"Loaded {splats.count} Gaussians ({splats.format})")
"""

from ._color import SH_C0
from ._core import SplatBuffers, load, parse_splat_ply, parse_splat_ply_with_opts, read_header
from ._errors import (
    BadElementOrCount,
    BadProperty,
    BadPropertyType,
    HeaderEncoding,
    HeaderMagic,
    HeaderMalformed,
    MissingElement,
    MissingField,
    MissingFormat,
    NumberFormat,
    PlyError,
    PropertyBeforeElement,
    Truncated,
    UnknownDirective,
    UnsupportedFormat,
    UnsupportedListProperty,
)
from ._header import ListProperty, PlyElement, PlyFormat, PlyHeader, ScalarProperty
from ._scalar import ScalarType

__version__ = "0.1.0"
__all__ = [
    "load",
    "parse_splat_ply",
    "parse_splat_ply_with_opts",
    "read_header",
    "SplatBuffers",
    "PlyHeader",
    "PlyElement",
    "PlyFormat",
    "ScalarProperty",
    "ListProperty",
    "ScalarType",
    "SH_C0",
    "PlyError",
    "HeaderMalformed",
    "HeaderEncoding",
    "HeaderMagic",
    "UnsupportedFormat",
    "MissingFormat",
    "BadElementOrCount",
    "PropertyBeforeElement",
    "BadProperty",
    "BadPropertyType",
    "UnknownDirective",
    "MissingElement",
    "UnsupportedListProperty",
    "MissingField",
    "Truncated",
    "NumberFormat",
]
