"""SE(3) transformation utilities for field, robot, camera and marker frames.

All frames follow the field convention: X forward, Y left, Z up. Rigid
transforms are 4x4 homogeneous numpy matrices where ``T_a_b`` maps points
expressed in frame ``b`` into frame ``a``.
"""

import math
from typing import Iterable, Tuple

import cv2
import numpy as np


# Rotates field-convention axes (X fwd, Y left, Z up) into OpenCV's optical
# axes (X right, Y down, Z forward).
NWU_TO_OPTICAL = np.array(
    [
        [0.0, -1.0, 0.0],
        [0.0, 0.0, -1.0],
        [1.0, 0.0, 0.0],
    ],
    dtype=np.float64,
)


def rvec_tvec_to_matrix(rvec: np.ndarray, tvec: np.ndarray) -> np.ndarray:
    """
    Convert rotation vector and translation vector to 4x4 transformation matrix.

    Args:
        rvec: Rotation vector (3,) or (3,1)
        tvec: Translation vector (3,) or (3,1)

    Returns:
        4x4 homogeneous transformation matrix
    """
    rvec = np.array(rvec, dtype=np.float64).reshape(3)
    tvec = np.array(tvec, dtype=np.float64).reshape(3)

    R, _ = cv2.Rodrigues(rvec)

    T = np.eye(4)
    T[:3, :3] = R
    T[:3, 3] = tvec

    return T


def matrix_to_rvec_tvec(T: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Convert 4x4 transformation matrix to rotation vector and translation vector.

    Returns:
        (rvec, tvec) where rvec is (3,1) and tvec is (3,1)
    """
    R = np.ascontiguousarray(T[:3, :3], dtype=np.float64)
    tvec = np.array(T[:3, 3], dtype=np.float64).reshape(3, 1)

    rvec, _ = cv2.Rodrigues(R)

    return rvec, tvec


def invert_transform(T: np.ndarray) -> np.ndarray:
    """
    Invert a 4x4 homogeneous transformation matrix.

    For SE(3): T^-1 = [R^T, -R^T * t; 0, 1]
    """
    T_inv = np.eye(4)
    R = T[:3, :3]
    t = T[:3, 3]

    R_T = R.T
    T_inv[:3, :3] = R_T
    T_inv[:3, 3] = -R_T @ t

    return T_inv


def rotation_from_rpy(roll: float, pitch: float, yaw: float) -> np.ndarray:
    """Extrinsic X-Y-Z rotation (roll about X, then pitch about Y, then yaw about Z)."""
    cr, sr = math.cos(roll), math.sin(roll)
    cp, sp = math.cos(pitch), math.sin(pitch)
    cy, sy = math.cos(yaw), math.sin(yaw)

    Rx = np.array([[1.0, 0.0, 0.0], [0.0, cr, -sr], [0.0, sr, cr]])
    Ry = np.array([[cp, 0.0, sp], [0.0, 1.0, 0.0], [-sp, 0.0, cp]])
    Rz = np.array([[cy, -sy, 0.0], [sy, cy, 0.0], [0.0, 0.0, 1.0]])

    return Rz @ Ry @ Rx


def transform_from_xyz_rpy(
    x: float,
    y: float,
    z: float,
    roll: float = 0.0,
    pitch: float = 0.0,
    yaw: float = 0.0,
) -> np.ndarray:
    """Build a 4x4 transform from a translation (m) and roll/pitch/yaw (rad)."""
    T = np.eye(4)
    T[:3, :3] = rotation_from_rpy(roll, pitch, yaw)
    T[:3, 3] = [x, y, z]
    return T


def quaternion_to_matrix(w: float, x: float, y: float, z: float) -> np.ndarray:
    """Convert a (w, x, y, z) quaternion to a 3x3 rotation matrix."""
    norm = math.sqrt(w * w + x * x + y * y + z * z)
    if norm == 0.0:
        raise ValueError("zero-length quaternion")
    w, x, y, z = w / norm, x / norm, y / norm, z / norm

    xx, yy, zz = x * x, y * y, z * z
    xy, xz, yz = x * y, x * z, y * z
    wx, wy, wz = w * x, w * y, w * z

    return np.array(
        [
            [1 - 2 * (yy + zz), 2 * (xy - wz), 2 * (xz + wy)],
            [2 * (xy + wz), 1 - 2 * (xx + zz), 2 * (yz - wx)],
            [2 * (xz - wy), 2 * (yz + wx), 1 - 2 * (xx + yy)],
        ],
        dtype=np.float64,
    )


def wrap_angle(angle: float) -> float:
    """Wrap an angle in radians to (-pi, pi]."""
    wrapped = math.remainder(angle, 2.0 * math.pi)
    if wrapped == -math.pi:
        return math.pi
    return wrapped


def planar_components(T: np.ndarray) -> Tuple[float, float, float]:
    """Project a 3D transform onto the floor plane: (x, y, yaw)."""
    yaw = math.atan2(T[1, 0], T[0, 0])
    return float(T[0, 3]), float(T[1, 3]), yaw


def mean_rotation(rotations: Iterable[np.ndarray]) -> np.ndarray:
    """Chordal L2 mean of rotation matrices, projected back onto SO(3)."""
    stack = np.array([np.asarray(R, dtype=np.float64) for R in rotations])
    if stack.size == 0:
        raise ValueError("no rotations to average")

    U, _, Vt = np.linalg.svd(stack.mean(axis=0))
    D = np.diag([1.0, 1.0, np.sign(np.linalg.det(U @ Vt))])
    return U @ D @ Vt


def compute_relative_pose(T_a_b: np.ndarray, T_a_c: np.ndarray) -> np.ndarray:
    """
    Pose of frame ``c`` expressed in frame ``b``, given both in frame ``a``.

    T_b_c = inv(T_a_b) @ T_a_c
    """
    return invert_transform(T_a_b) @ T_a_c
