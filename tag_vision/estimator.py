"""Robot pose estimation from filtered marker detections."""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import numpy as np

from .field_layout import MarkerCatalog
from .transforms import invert_transform, mean_rotation, planar_components, wrap_angle
from .vision_types import Detection, Pose2d, PoseEstimate

log = logging.getLogger(__name__)


class PoseSolverError(RuntimeError):
    """Raised when a solver cannot produce a trustworthy camera pose."""


def camera_pose_from_marker(det: Detection, field_to_marker: np.ndarray) -> np.ndarray:
    """
    Field pose of the camera implied by a single marker observation.

    T_field_camera = T_field_marker @ inv(T_camera_marker)
    """
    return field_to_marker @ invert_transform(np.asarray(det.camera_to_marker, dtype=np.float64))


class PoseSolver(ABC):
    @abstractmethod
    def solve(self, detections: Sequence[Detection], catalog: MarkerCatalog) -> Optional[np.ndarray]:
        """Return the camera's 4x4 field pose, or None when nothing can be solved."""


class LowestAmbiguitySolver(PoseSolver):
    """Trust the single least ambiguous detection of a known marker."""

    def solve(self, detections: Sequence[Detection], catalog: MarkerCatalog) -> Optional[np.ndarray]:
        known = [d for d in detections if d.marker_id in catalog]
        if not known:
            return None
        best = min(known, key=lambda d: d.ambiguity)
        return camera_pose_from_marker(best, catalog.get_field_pose(best.marker_id))


class MultiTagSolver(PoseSolver):
    """
    Combine the camera-pose hypotheses of every visible marker.

    Translations are averaged and rotations are averaged on SO(3). When only one
    marker is usable, or the hypotheses disagree by more than ``max_spread_m``,
    the fallback solver decides instead.
    """

    def __init__(self, max_spread_m: float = 1.0, fallback: Optional[PoseSolver] = None):
        self.max_spread_m = max_spread_m
        self.fallback = fallback or LowestAmbiguitySolver()

    def solve(self, detections: Sequence[Detection], catalog: MarkerCatalog) -> Optional[np.ndarray]:
        known = [d for d in detections if d.marker_id in catalog]
        if len(known) < 2:
            return self.fallback.solve(known, catalog)
        try:
            return self._solve_multi(known, catalog)
        except (PoseSolverError, np.linalg.LinAlgError) as exc:
            log.debug("multi-tag solve failed (%s); using fallback", exc)
            return self.fallback.solve(known, catalog)

    def _solve_multi(self, detections: Sequence[Detection], catalog: MarkerCatalog) -> np.ndarray:
        hypotheses = [camera_pose_from_marker(d, catalog.get_field_pose(d.marker_id)) for d in detections]

        translations = np.array([T[:3, 3] for T in hypotheses])
        center = translations.mean(axis=0)
        spread = float(np.linalg.norm(translations - center, axis=1).max())
        if spread > self.max_spread_m:
            raise PoseSolverError(f"marker hypotheses disagree by {spread:.2f} m")

        T = np.eye(4)
        T[:3, :3] = mean_rotation(H[:3, :3] for H in hypotheses)
        T[:3, 3] = center
        if not np.all(np.isfinite(T)):
            raise PoseSolverError("non-finite multi-tag solution")
        return T


class PoseEstimator:
    def __init__(
        self,
        catalog: MarkerCatalog,
        robot_to_camera: np.ndarray,
        solver: Optional[PoseSolver] = None,
        heading_correction_deg: float = 180.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.catalog = catalog
        self.solver = solver or MultiTagSolver()
        self.heading_correction_rad = math.radians(heading_correction_deg)
        self.logger = logger or log
        self._camera_to_robot = invert_transform(np.asarray(robot_to_camera, dtype=np.float64))

    def estimate(
        self,
        detections: Sequence[Detection],
        timestamp_s: float,
        source_timestamp_s: float,
    ) -> Optional[PoseEstimate]:
        """
        Robot field pose from already-filtered detections.

        Returns None when there is nothing to solve or the solver fails; a
        partial or non-finite pose is never returned.
        """
        if not detections:
            return None

        try:
            field_to_camera = self.solver.solve(detections, self.catalog)
        except (PoseSolverError, np.linalg.LinAlgError) as exc:
            self.logger.warning("pose solve failed: %s", exc)
            return None
        if field_to_camera is None:
            return None

        field_to_camera = np.asarray(field_to_camera, dtype=np.float64)
        if field_to_camera.shape != (4, 4) or not np.all(np.isfinite(field_to_camera)):
            self.logger.warning("solver returned an invalid camera pose; discarding")
            return None

        field_to_robot = field_to_camera @ self._camera_to_robot
        x, y, yaw = planar_components(field_to_robot)
        pose = Pose2d(x, y, wrap_angle(yaw + self.heading_correction_rad))
        return PoseEstimate(pose, timestamp_s, source_timestamp_s)
