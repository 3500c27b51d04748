"""Per-camera measurement pipeline and the multi-camera driver."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

import numpy as np

from .config import CameraConfig, VisionConfig
from .confidence import ConfidenceModel
from .debounce import Debouncer
from .detection_filter import filter_detections
from .estimator import MultiTagSolver, PoseEstimator, PoseSolver
from .field_layout import MarkerCatalog
from .landmark import (
    LandmarkBearingCalculator,
    landmark_field_pose,
    landmark_id_for_alliance,
    landmark_std_devs,
)
from .logging_utils import setup_logger
from .sources import DetectionSource
from .vision_types import Alliance, CameraInputs, StdDevs

AllianceProvider = Callable[[], Optional[Alliance]]


class VisionCamera:
    """
    Runs detection filtering, pose estimation, confidence, debouncing and the
    landmark offset for one camera, once per control cycle.

    Each instance owns its own debouncer; cameras never share state.
    """

    def __init__(
        self,
        camera: CameraConfig,
        source: DetectionSource,
        catalog: MarkerCatalog,
        config: Optional[VisionConfig] = None,
        alliance: Optional[AllianceProvider] = None,
        solver: Optional[PoseSolver] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or VisionConfig()
        self.camera = camera
        self.name = camera.name
        self.source = source
        self.catalog = catalog
        self.logger = logger or setup_logger(camera.name, self.config.log_level)

        self.robot_to_camera = camera.robot_to_camera()
        self.estimator = PoseEstimator(
            catalog,
            self.robot_to_camera,
            solver=solver or MultiTagSolver(max_spread_m=self.config.multi_tag_max_spread_m),
            heading_correction_deg=self.config.heading_correction_deg,
            logger=self.logger,
        )
        self.confidence = ConfidenceModel(
            catalog,
            single_tag_std_devs=self.config.single_tag_std_devs,
            multi_tag_std_devs=self.config.multi_tag_std_devs,
            single_tag_max_distance_m=self.config.single_tag_max_distance_m,
            distance_scale_divisor=self.config.distance_scale_divisor,
        )
        self.debouncer = Debouncer(self.config.debounce_s)

        # alliance is fixed for the match; resolve once
        resolved = alliance() if alliance is not None else None
        self.landmark_id = landmark_id_for_alliance(
            resolved, self.config.red_landmark_id, self.config.blue_landmark_id
        )
        self.landmark = LandmarkBearingCalculator(
            self.landmark_id, self.robot_to_camera, self.config.landmark_lateral_scale
        )
        self._was_connected = True

        self.logger.info(
            "camera ready: alliance=%s landmark_id=%d markers=%d",
            resolved.value if resolved is not None else "unknown",
            self.landmark_id,
            len(catalog),
        )

    def set_single_tag_std_devs(self, x: float, y: float, theta: float) -> None:
        self.confidence.set_single_tag_std_devs(x, y, theta)

    def set_multi_tag_std_devs(self, x: float, y: float, theta: float) -> None:
        self.confidence.set_multi_tag_std_devs(x, y, theta)

    def get_single_tag_std_devs(self) -> StdDevs:
        return self.confidence.single_tag_std_devs

    def get_multi_tag_std_devs(self) -> StdDevs:
        return self.confidence.multi_tag_std_devs

    def update(self, now_s: float) -> CameraInputs:
        frame = self.source.get_latest()

        if frame.connected != self._was_connected:
            if frame.connected:
                self.logger.info("camera reconnected")
            else:
                self.logger.warning("camera disconnected; treating frame as empty")
            self._was_connected = frame.connected

        raw = list(frame.detections) if frame.connected else []
        has_target = bool(raw)

        usable = filter_detections(raw, self.catalog, self.config.max_ambiguity)
        estimate = self.estimator.estimate(usable, now_s, frame.timestamp_s)
        std_devs = self.confidence.std_devs(usable, estimate)
        debounced = self.debouncer.calculate(has_target, now_s)
        landmark_det = self.landmark.find(raw)
        landmark = self.landmark.offset(landmark_det)

        diagnostics = {}
        if raw:
            best = max(raw, key=lambda d: d.area)
            camera_to_marker = np.asarray(best.camera_to_marker, dtype=np.float64)
            diagnostics = dict(
                marker_id=best.marker_id,
                yaw_deg=best.yaw_deg,
                pitch_deg=best.pitch_deg,
                area=best.area,
                ambiguity=best.ambiguity,
                camera_to_marker=camera_to_marker,
                robot_to_marker=self.robot_to_camera @ camera_to_marker,
            )
        if landmark_det is not None:
            camera_to_landmark = np.asarray(landmark_det.camera_to_marker, dtype=np.float64)
            diagnostics["landmark_pose"] = landmark_field_pose(
                self.catalog.get_field_pose(self.landmark_id),
                self.robot_to_camera @ camera_to_landmark,
            )
            diagnostics["landmark_std_devs"] = landmark_std_devs(
                self.confidence.single_tag_std_devs,
                float(np.linalg.norm(camera_to_landmark[:3, 3])),
                self.config.landmark_min_distance_m,
            )

        inputs = CameraInputs(
            camera_name=self.name,
            connected=frame.connected,
            has_target=has_target,
            has_target_debounced=debounced,
            target_count=len(usable),
            std_devs=std_devs,
            landmark=landmark,
            latest_timestamp_s=frame.timestamp_s,
            latency_s=max(0.0, now_s - frame.timestamp_s),
            estimate=estimate,
            **diagnostics,
        )

        if estimate is not None:
            pose = estimate.robot_pose
            self.logger.debug(
                "pose x=%.3f y=%.3f heading=%.3f targets=%d std=(%.3g, %.3g, %.3g)",
                pose.x,
                pose.y,
                pose.heading,
                len(usable),
                std_devs.x,
                std_devs.y,
                std_devs.theta,
            )
        return inputs


class VisionSystem:
    """Drives several independent cameras in one control cycle."""

    def __init__(self, cameras: Iterable[VisionCamera]):
        self.cameras = list(cameras)
        names = [c.name for c in self.cameras]
        if len(set(names)) != len(names):
            raise ValueError(f"camera names must be unique: {names}")

    def update(self, now_s: float) -> dict[str, CameraInputs]:
        return {cam.name: cam.update(now_s) for cam in self.cameras}

    def set_single_tag_std_devs(self, x: float, y: float, theta: float) -> None:
        for cam in self.cameras:
            cam.set_single_tag_std_devs(x, y, theta)

    def set_multi_tag_std_devs(self, x: float, y: float, theta: float) -> None:
        for cam in self.cameras:
            cam.set_multi_tag_std_devs(x, y, theta)
