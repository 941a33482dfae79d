"""
Opacity and color decoding.

Alpha and RGB channels end up as 8-bit values packed into one uint32 per
splat, laid out as ``R | G << 8 | B << 16 | A << 24``. Channel values are
floored, never rounded, after clamping to [0, 255]. Arithmetic is done in
float32 so the truncation matches what a GPU-side decoder produces.
"""

from typing import Sequence

import numpy as np

from ._scalar import ScalarType

# Zeroth-order real spherical harmonic, 1 / (2 * sqrt(pi))
SH_C0 = 0.28209479177387814

DEFAULT_RGB = (255, 255, 255)


def sigmoid(x: np.ndarray) -> np.ndarray:
    """Numerically stable logistic function.

    Uses ``1 / (1 + exp(-x))`` for x >= 0 and ``exp(x) / (1 + exp(x))``
    otherwise, so ``exp`` never overflows.
    """
    x = np.asarray(x, dtype=np.float32)
    z = np.exp(-np.abs(x))
    return np.where(x >= 0, 1 / (1 + z), z / (1 + z)).astype(np.float32)


def decode_alpha(raw: np.ndarray, assume_logit_opacity: bool) -> np.ndarray:
    """Recover alpha from stored opacity (logit-encoded or linear)."""
    raw = np.asarray(raw, dtype=np.float32)
    return sigmoid(raw) if assume_logit_opacity else raw


def to_byte(x: np.ndarray) -> np.ndarray:
    """Clamp to [0, 255] and floor to an integer channel value.

    NaN maps to 0.
    """
    x = np.nan_to_num(np.asarray(x, dtype=np.float32), nan=0.0)
    return np.floor(np.clip(x, 0, 255)).astype(np.uint32)


def decode_rgb_binary(values: np.ndarray, types: Sequence[ScalarType]) -> np.ndarray:
    """Channel bytes for explicit binary RGB properties.

    If all three declared types are 8-bit the values are already 0..255;
    otherwise they are taken as 0..1 and scaled.

    Args:
        values: (N, 3) raw red, green, blue values
        types: Declared types of the red, green, blue properties

    Returns:
        (N, 3) uint32 channel values
    """
    values = np.asarray(values, dtype=np.float32)
    if all(t.is_byte for t in types):
        return to_byte(values)
    return to_byte(values * 255)


def decode_rgb_ascii(values: np.ndarray) -> np.ndarray:
    """Channel bytes for explicit ASCII RGB columns.

    Text carries no useful type, so a record whose three values are all
    <= 1.0 is read as 0..1 and scaled; any other record is read as 0..255.

    Args:
        values: (N, 3) parsed red, green, blue values

    Returns:
        (N, 3) uint32 channel values
    """
    values = np.asarray(values, dtype=np.float32)
    as_unit = np.all(values <= 1.0, axis=1, keepdims=True)
    return to_byte(np.where(as_unit, values * 255, values))


def decode_sh_dc(values: np.ndarray) -> np.ndarray:
    """Channel bytes from the DC spherical-harmonic coefficients.

    Args:
        values: (N, 3) f_dc_0, f_dc_1, f_dc_2 coefficients

    Returns:
        (N, 3) uint32 channel values
    """
    values = np.asarray(values, dtype=np.float32)
    return to_byte((0.5 + np.float32(SH_C0) * values) * 255)


def pack_rgba(rgb: np.ndarray, alpha: np.ndarray) -> np.ndarray:
    """Pack channel bytes into ``R | G << 8 | B << 16 | A << 24``.

    Args:
        rgb: (N, 3) channel values in 0..255
        alpha: (N,) alpha channel values in 0..255

    Returns:
        (N,) uint32 array
    """
    rgb = np.asarray(rgb, dtype=np.uint32) & 0xFF
    alpha = np.asarray(alpha, dtype=np.uint32) & 0xFF
    return (rgb[:, 0]
            | (rgb[:, 1] << np.uint32(8))
            | (rgb[:, 2] << np.uint32(16))
            | (alpha << np.uint32(24))).astype(np.uint32)
