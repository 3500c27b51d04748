"""Simulated detector that sees the field layout from a known robot pose."""

from __future__ import annotations

import math
from typing import Callable, Optional

import cv2
import numpy as np

from .config import CameraConfig
from .field_layout import MarkerCatalog
from .sources import DetectionSource
from .transforms import (
    NWU_TO_OPTICAL,
    compute_relative_pose,
    matrix_to_rvec_tvec,
    rvec_tvec_to_matrix,
    transform_from_xyz_rpy,
)
from .vision_types import Detection, DetectionFrame, Pose2d


def camera_matrix(width: int, height: int, fov_diag_deg: float) -> np.ndarray:
    """Pinhole intrinsics with square pixels and a centered principal point."""
    diag_px = math.hypot(width, height)
    f = (diag_px / 2.0) / math.tan(math.radians(fov_diag_deg) / 2.0)
    return np.array(
        [
            [f, 0.0, width / 2.0],
            [0.0, f, height / 2.0],
            [0.0, 0.0, 1.0],
        ],
        dtype=np.float64,
    )


def marker_corners(size_m: float) -> np.ndarray:
    """Corners of a marker in its own frame (X out of the face, Y left, Z up)."""
    half = size_m / 2.0
    return np.array(
        [
            [0.0, half, -half],
            [0.0, -half, -half],
            [0.0, -half, half],
            [0.0, half, half],
        ],
        dtype=np.float64,
    )


class SimulatedDetectionSource(DetectionSource):
    """
    Produce the detections a camera would report from ``robot_pose()``.

    Markers are visible when they face the camera and all four corners project
    inside the image. Frame timestamps lag ``clock()`` by a random latency.
    """

    def __init__(
        self,
        camera: CameraConfig,
        catalog: MarkerCatalog,
        robot_pose: Callable[[], Pose2d],
        clock: Callable[[], float],
        marker_size_m: float = 0.1651,
        ambiguity_per_m: float = 0.05,
        translation_noise_m: float = 0.0,
        rotation_noise_rad: float = 0.0,
        seed: Optional[int] = None,
        connected: bool = True,
    ):
        self.camera = camera
        self.catalog = catalog
        self.robot_pose = robot_pose
        self.clock = clock
        self.ambiguity_per_m = ambiguity_per_m
        self.translation_noise_m = translation_noise_m
        self.rotation_noise_rad = rotation_noise_rad
        self.connected = connected
        self.K = camera_matrix(camera.width, camera.height, camera.fov_diag_deg)
        self._corners = marker_corners(marker_size_m)
        self._robot_to_camera = camera.robot_to_camera()
        self._rng = np.random.default_rng(seed)

    def _latency_s(self) -> float:
        ms = self._rng.normal(self.camera.avg_latency_ms, self.camera.latency_std_ms)
        return max(0.0, float(ms)) / 1000.0

    def _observe(self, marker_id: int, camera_to_marker: np.ndarray) -> Optional[Detection]:
        R = camera_to_marker[:3, :3]
        t = camera_to_marker[:3, 3]
        if t[0] <= 0.0:
            return None
        # the marker's face normal must point back toward the camera
        if float(R[:, 0] @ -t) <= 0.0:
            return None

        corners_cam = (R @ self._corners.T).T + t
        if np.any(corners_cam[:, 0] <= 0.0):
            return None
        optical_to_marker = np.eye(4)
        optical_to_marker[:3, :3] = NWU_TO_OPTICAL @ R
        optical_to_marker[:3, 3] = NWU_TO_OPTICAL @ t
        rvec, tvec = matrix_to_rvec_tvec(optical_to_marker)
        pixels, _ = cv2.projectPoints(self._corners, rvec, tvec, self.K, None)
        pixels = pixels.reshape(-1, 2)

        w, h = self.camera.width, self.camera.height
        if np.any(pixels[:, 0] < 0) or np.any(pixels[:, 0] >= w):
            return None
        if np.any(pixels[:, 1] < 0) or np.any(pixels[:, 1] >= h):
            return None

        area = float(cv2.contourArea(pixels.astype(np.float32))) / float(w * h) * 100.0
        dist = float(np.linalg.norm(t))

        observed = camera_to_marker
        if self.translation_noise_m > 0.0 or self.rotation_noise_rad > 0.0:
            noise = rvec_tvec_to_matrix(
                self._rng.normal(0.0, self.rotation_noise_rad, size=3),
                self._rng.normal(0.0, self.translation_noise_m, size=3),
            )
            observed = camera_to_marker @ noise

        return Detection(
            marker_id=marker_id,
            yaw_deg=math.degrees(math.atan2(t[1], t[0])),
            pitch_deg=math.degrees(math.atan2(t[2], math.hypot(t[0], t[1]))),
            area=area,
            camera_to_marker=observed,
            ambiguity=min(1.0, self.ambiguity_per_m * dist),
        )

    def get_latest(self) -> DetectionFrame:
        timestamp_s = self.clock() - self._latency_s()
        if not self.connected:
            return DetectionFrame((), timestamp_s, connected=False)

        pose = self.robot_pose()
        field_to_robot = transform_from_xyz_rpy(pose.x, pose.y, 0.0, yaw=pose.heading)
        field_to_camera = field_to_robot @ self._robot_to_camera

        detections = []
        for marker_id, field_to_marker in self.catalog.get_all_marker_poses():
            det = self._observe(marker_id, compute_relative_pose(field_to_camera, field_to_marker))
            if det is not None:
                detections.append(det)
        return DetectionFrame(tuple(detections), timestamp_s, connected=True)
