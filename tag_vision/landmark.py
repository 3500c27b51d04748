"""Robot-relative offset to the alliance's landmark ("speaker") marker."""

from __future__ import annotations

from typing import Iterable, Optional

import numpy as np

from .transforms import invert_transform, planar_components
from .vision_types import MAX_STD_DEV, Alliance, Detection, LandmarkOffset, Pose2d, StdDevs, Transform2d

RED_LANDMARK_ID = 3
BLUE_LANDMARK_ID = 7
DEFAULT_LANDMARK_MIN_DISTANCE_M = 5.0


def landmark_id_for_alliance(
    alliance: Optional[Alliance],
    red_id: int = RED_LANDMARK_ID,
    blue_id: int = BLUE_LANDMARK_ID,
) -> int:
    """Red alliance uses ``red_id``; blue or unknown alliance uses ``blue_id``."""
    return red_id if alliance is Alliance.RED else blue_id


def landmark_field_pose(field_to_landmark: Optional[np.ndarray], robot_to_marker: np.ndarray) -> Pose2d:
    """
    Landmark field pose composed with the observed robot-to-marker transform,
    projected onto the floor plane.

    A landmark missing from the catalog composes from the field origin.
    """
    base = np.eye(4) if field_to_landmark is None else np.asarray(field_to_landmark, dtype=np.float64)
    x, y, yaw = planar_components(base @ np.asarray(robot_to_marker, dtype=np.float64))
    return Pose2d(x, y, yaw)


def landmark_std_devs(
    baseline: StdDevs,
    distance_m: float,
    min_distance_m: float = DEFAULT_LANDMARK_MIN_DISTANCE_M,
) -> StdDevs:
    """
    X/Y uncertainty of a landmark sighting: ``baseline * distance`` once the
    marker is farther than ``min_distance_m``, untrusted otherwise.

    Heading is never trusted.
    """
    if not distance_m > min_distance_m:
        return StdDevs.untrusted()
    return StdDevs(
        min(baseline.x * distance_m, MAX_STD_DEV),
        min(baseline.y * distance_m, MAX_STD_DEV),
        MAX_STD_DEV,
    )


class LandmarkBearingCalculator:
    """
    Locate the landmark marker among the raw detections of one frame.

    Ambiguous detections are still used. The lateral (Y) offset is scaled by
    ``lateral_scale`` because this marker's mounting makes the camera
    over-report it.
    """

    def __init__(self, landmark_id: int, robot_to_camera: np.ndarray, lateral_scale: float = 0.5):
        self.landmark_id = landmark_id
        self.lateral_scale = lateral_scale
        self._camera_inverse = invert_transform(np.asarray(robot_to_camera, dtype=np.float64))

    def find(self, detections: Iterable[Detection]) -> Optional[Detection]:
        """First detection of the landmark marker, if any."""
        for det in detections:
            if det.marker_id == self.landmark_id:
                return det
        return None

    def compose(self, det: Detection) -> np.ndarray:
        """Camera-to-marker composed with the inverse camera mount, before correction."""
        # not robot_to_camera @ camera_to_marker; the bearing keeps this composition on purpose
        return np.asarray(det.camera_to_marker, dtype=np.float64) @ self._camera_inverse

    def offset(self, det: Optional[Detection]) -> LandmarkOffset:
        if det is None:
            return LandmarkOffset(Transform2d(), present=False)
        x, y, yaw = planar_components(self.compose(det))
        return LandmarkOffset(Transform2d(x, y * self.lateral_scale, yaw), present=True)

    def calculate(self, detections: Iterable[Detection]) -> LandmarkOffset:
        return self.offset(self.find(detections))
