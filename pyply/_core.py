"""
Core functionality for decoding Gaussian splat PLY files.

This module drives the decode pipeline: header parsing, field resolution,
reading the vertex records (binary or ASCII) and assembling the flat
buffers a renderer consumes.
"""

from dataclasses import dataclass
from typing import BinaryIO, Dict, List, Sequence, Tuple, Union
import logging

import numpy as np

from ._color import (
    DEFAULT_RGB,
    decode_alpha,
    decode_rgb_ascii,
    decode_rgb_binary,
    decode_sh_dc,
    pack_rgba,
    to_byte,
)
from ._errors import NumberFormat, Truncated
from ._fields import ColorSource, Field, ResolvedFields, resolve_fields
from ._geometry import covariance_from_quat_scale, reorder_quaternion
from ._header import PlyFormat, PlyHeader
from ._scalar import parse_ascii_scalar, read_column, record_layout

logger = logging.getLogger(__name__)

Source = Union[str, BinaryIO]


@dataclass
class SplatBuffers:
    """Decoded splats as flat renderer-ready arrays.

    Attributes:
        count: Number of splats N
        format: ``"ascii"``, ``"binary_little_endian"`` or ``"binary_big_endian"``
        center: (3N,) float32, xyz per splat
        covariance: (6N,) float32, m11, m12, m13, m22, m23, m33 per splat
        rgba: (N,) uint32, ``R | G << 8 | B << 16 | A << 24``
        bbox_min: (3,) float32 component-wise minimum of all centers
        bbox_max: (3,) float32 component-wise maximum of all centers
    """
    count: int
    format: str
    center: np.ndarray
    covariance: np.ndarray
    rgba: np.ndarray
    bbox_min: np.ndarray
    bbox_max: np.ndarray

    def to_dict(self) -> Dict[str, np.ndarray]:
        """Per-splat arrays reshaped to (N, k), keyed by attribute name."""
        return {
            'center': self.center.reshape(-1, 3),
            'covariance': self.covariance.reshape(-1, 6),
            'rgba': self.rgba,
        }


def parse_splat_ply(data: bytes) -> SplatBuffers:
    """
    Decode Gaussian splats from PLY bytes using the usual 3DGS conventions.

    Scales are assumed to be stored as logarithms and opacity as a logit.

    Args:
        data: Whole PLY file contents

    Returns:
        SplatBuffers with the decoded splats

    Raises:
        PlyError: If the file is malformed, truncated or lacks required fields
    """
    return parse_splat_ply_with_opts(data, True, True)


def parse_splat_ply_with_opts(data: bytes, assume_log_scale: bool, assume_logit_opacity: bool,
                              *, vertex_element_name: str = "vertex",
                              default_rgb: Tuple[int, int, int] = DEFAULT_RGB) -> SplatBuffers:
    """
    Decode Gaussian splats from PLY bytes.

    Args:
        data: Whole PLY file contents
        assume_log_scale: Scales are stored as logarithms and get exponentiated
        assume_logit_opacity: Opacity is stored as a logit and goes through
            a sigmoid
        vertex_element_name: Element holding the splats (case-insensitive)
        default_rgb: Color used when the file has neither RGB nor SH DC fields

    Returns:
        SplatBuffers with the decoded splats

    Raises:
        PlyError: If the file is malformed, truncated or lacks required fields
    """
    if not isinstance(data, bytes):
        data = bytes(data)

    header = PlyHeader.from_bytes(data)
    fields = resolve_fields(header, vertex_element_name)
    if header.elements and header.elements[0].name.lower() != vertex_element_name.lower():
        logger.warning("Element %r is not first; its records are read from the start "
                       "of the data section", vertex_element_name)

    if header.format.is_binary:
        columns = _read_binary_columns(data, header, fields)
    else:
        columns = _read_ascii_columns(data, header, fields)

    buffers = _assemble(fields, columns, header.format, assume_log_scale,
                        assume_logit_opacity, default_rgb)
    logger.info("Decoded %d splats (%s)", buffers.count, buffers.format)
    return buffers


def load(source: Source, assume_log_scale: bool = True, assume_logit_opacity: bool = True,
         **kwargs) -> SplatBuffers:
    """
    Load Gaussian splats from a PLY file.

    The whole file is read into memory before decoding.

    Args:
        source: Path to .ply file or binary file-like object.
        assume_log_scale: See ``parse_splat_ply_with_opts``
        assume_logit_opacity: See ``parse_splat_ply_with_opts``
        **kwargs: ``vertex_element_name`` / ``default_rgb``

    Returns:
        SplatBuffers with the decoded splats

    Raises:
        RuntimeError: If the file cannot be read or decoded
    """
    try:
        data = _read_source(source)
        return parse_splat_ply_with_opts(data, assume_log_scale, assume_logit_opacity, **kwargs)
    except Exception as e:
        raise RuntimeError(f"Error reading PLY file: {e}") from e


def read_header(source: Union[Source, bytes]) -> PlyHeader:
    """
    Parse only the header of a PLY file.

    Args:
        source: Path, binary file-like object or the file contents

    Returns:
        Parsed PlyHeader

    Raises:
        RuntimeError: If the file cannot be read or the header is malformed
    """
    try:
        if isinstance(source, (bytes, bytearray, memoryview)):
            data = bytes(source)
        else:
            data = _read_source(source)
        return PlyHeader.from_bytes(data)
    except Exception as e:
        raise RuntimeError(f"Error reading PLY header: {e}") from e


def _read_source(source: Source) -> bytes:
    if isinstance(source, str):
        with open(source, 'rb') as f:
            return f.read()
    return source.read()


def _wanted_fields(fields: ResolvedFields) -> List[Field]:
    """Fields to read per record, in decode order."""
    wanted = list(fields.position) + list(fields.scale) + list(fields.rotation)
    wanted.append(fields.opacity)
    if fields.color is not None:
        wanted.extend(fields.color)
    return wanted


def _read_binary_columns(data: bytes, header: PlyHeader, fields: ResolvedFields) -> Dict[int, np.ndarray]:
    """Read every needed property of the vertex records as float64 columns.

    Args:
        data: Whole file buffer
        header: Parsed header
        fields: Resolved vertex fields

    Returns:
        Dictionary mapping property index to a (N,) column
    """
    offsets, stride = record_layout(fields.types)
    little = header.format.little_endian
    count = fields.count

    columns = {}
    for index, scalar_type in _wanted_fields(fields):
        if index not in columns:
            columns[index] = read_column(data, header.data_offset, stride, count,
                                         offsets[index], scalar_type, little)

    end = header.data_offset + count * stride
    if end < len(data):
        logger.warning("%d bytes found after the last vertex record", len(data) - end)
    return columns


def _read_ascii_columns(data: bytes, header: PlyHeader, fields: ResolvedFields) -> Dict[int, np.ndarray]:
    """Parse every needed column of the vertex records from ASCII lines.

    Args:
        data: Whole file buffer
        header: Parsed header (supplies the newline convention)
        fields: Resolved vertex fields

    Returns:
        Dictionary mapping property index to a (N,) column
    """
    try:
        text = data[header.data_offset:].decode("utf-8")
    except UnicodeDecodeError:
        raise NumberFormat("PLY ASCII: data is not valid utf-8")

    lines = [line for line in text.split(header.newline) if line.strip()]
    count = fields.count
    if len(lines) < count:
        raise Truncated(f"PLY ASCII: not enough vertex lines ({len(lines)} < {count})")
    if len(lines) > count:
        logger.warning("%d lines found after the last vertex record", len(lines) - count)

    indices = []
    for index, _ in _wanted_fields(fields):
        if index not in indices:
            indices.append(index)

    table = np.empty((count, len(indices)), dtype=np.float64)
    for i in range(count):
        parts = lines[i].split()
        for j, index in enumerate(indices):
            table[i, j] = parse_ascii_scalar(parts, index)

    return {index: table[:, j] for j, index in enumerate(indices)}


def _stack(columns: Dict[int, np.ndarray], group: Sequence[Field]) -> np.ndarray:
    return np.stack([columns[index] for index, _ in group], axis=1).astype(np.float32)


def _assemble(fields: ResolvedFields, columns: Dict[int, np.ndarray], fmt: PlyFormat,
              assume_log_scale: bool, assume_logit_opacity: bool,
              default_rgb: Tuple[int, int, int]) -> SplatBuffers:
    """Turn decoded columns into the output buffers."""
    count = fields.count
    center = np.empty((count, 3), dtype=np.float32)
    covariance = np.empty((count, 6), dtype=np.float32)
    rgba = np.empty(count, dtype=np.uint32)

    with np.errstate(over='ignore', invalid='ignore'):
        center[:] = _stack(columns, fields.position)

        quats = reorder_quaternion(_stack(columns, fields.rotation), fields.quat_layout)
        covariance[:] = covariance_from_quat_scale(quats, _stack(columns, fields.scale),
                                                   assume_log_scale)

        opacity = columns[fields.opacity[0]]
        alpha = to_byte(decode_alpha(opacity, assume_logit_opacity) * 255)

        if fields.color_source is ColorSource.RGB:
            raw = _stack(columns, fields.color)
            if fmt.is_binary:
                rgb = decode_rgb_binary(raw, [t for _, t in fields.color])
            else:
                rgb = decode_rgb_ascii(raw)
        elif fields.color_source is ColorSource.SH_DC:
            rgb = decode_sh_dc(_stack(columns, fields.color))
        else:
            rgb = np.tile(np.asarray(default_rgb, dtype=np.uint32), (count, 1))

        rgba[:] = pack_rgba(rgb, alpha)

    # fmin skips NaN; the seed keeps an all-NaN axis at +/-inf
    bbox_min = np.fmin.reduce(center, axis=0, initial=np.inf).astype(np.float32)
    bbox_max = np.fmax.reduce(center, axis=0, initial=-np.inf).astype(np.float32)

    return SplatBuffers(
        count=count,
        format=fmt.value,
        center=center.reshape(-1),
        covariance=covariance.reshape(-1),
        rgba=rgba,
        bbox_min=bbox_min,
        bbox_max=bbox_max,
    )
