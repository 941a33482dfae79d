"""
Quaternion and scale to covariance conversion.

Each splat is an ellipsoid given by three axis scales and a rotation
quaternion. The renderer wants the equivalent 3x3 covariance
``R @ diag(s**2) @ R.T``; since it is symmetric only the upper triangle
(m11, m12, m13, m22, m23, m33) is produced.

All functions operate on whole (N, k) arrays at once.
"""

import numpy as np

from ._fields import QuatLayout

# Row/column indices of the upper triangle, in output order
_UPPER = (np.array([0, 0, 0, 1, 1, 2]), np.array([0, 1, 2, 1, 2, 2]))


def reorder_quaternion(raw: np.ndarray, layout: QuatLayout) -> np.ndarray:
    """Convert stored quaternion components to (x, y, z, w) order.

    Args:
        raw: (N, 4) array of components in stored order
        layout: Stored component order

    Returns:
        (N, 4) array in (x, y, z, w) order
    """
    raw = np.atleast_2d(raw)
    if layout is QuatLayout.WXYZ:
        return raw[:, [1, 2, 3, 0]]
    return raw


def normalize_quaternions(quats: np.ndarray) -> np.ndarray:
    """Scale quaternions to unit length.

    A zero quaternion is left as is (its norm is treated as 1), which makes
    it produce the identity rotation below.
    """
    quats = np.atleast_2d(quats)
    norms = np.sqrt(np.sum(quats * quats, axis=1, keepdims=True))
    norms = np.where(norms > 0, norms, 1.0).astype(quats.dtype)
    return quats / norms


def quaternion_to_matrix(quats: np.ndarray) -> np.ndarray:
    """Rotation matrices for unit quaternions in (x, y, z, w) order.

    Args:
        quats: (N, 4) array of unit quaternions

    Returns:
        (N, 3, 3) array of rotation matrices
    """
    quats = np.atleast_2d(quats)
    x, y, z, w = quats[:, 0], quats[:, 1], quats[:, 2], quats[:, 3]

    xx, yy, zz = x * x, y * y, z * z
    xy, xz, yz = x * y, x * z, y * z
    wx, wy, wz = w * x, w * y, w * z

    rot = np.empty((len(quats), 3, 3), dtype=quats.dtype)
    rot[:, 0, 0] = 1 - 2 * (yy + zz)
    rot[:, 0, 1] = 2 * (xy - wz)
    rot[:, 0, 2] = 2 * (xz + wy)
    rot[:, 1, 0] = 2 * (xy + wz)
    rot[:, 1, 1] = 1 - 2 * (xx + zz)
    rot[:, 1, 2] = 2 * (yz - wx)
    rot[:, 2, 0] = 2 * (xz - wy)
    rot[:, 2, 1] = 2 * (yz + wx)
    rot[:, 2, 2] = 1 - 2 * (xx + yy)
    return rot


def covariance_from_quat_scale(quats: np.ndarray, scales: np.ndarray,
                               assume_log_scale: bool = False) -> np.ndarray:
    """Compute the upper triangle of each splat's covariance matrix.

    Args:
        quats: (N, 4) quaternions in (x, y, z, w) order, not necessarily unit
        scales: (N, 3) axis scales
        assume_log_scale: Exponentiate scales first (3DGS stores log-scales)

    Returns:
        (N, 6) array of (m11, m12, m13, m22, m23, m33)
    """
    scales = np.atleast_2d(scales)
    if assume_log_scale:
        scales = np.exp(scales)

    rot = quaternion_to_matrix(normalize_quaternions(quats))
    # sum_j s_j^2 * R[:, i, j] * R[:, k, j]
    cov = np.einsum("nij,nj,nkj->nik", rot, scales * scales, rot)
    return cov[:, _UPPER[0], _UPPER[1]]
