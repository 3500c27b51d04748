from __future__ import annotations

import math
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

import numpy as np

# Largest finite double; an axis carrying this value must not be trusted.
MAX_STD_DEV = sys.float_info.max


class Alliance(Enum):
    RED = "red"
    BLUE = "blue"


@dataclass(frozen=True)
class Detection:
    marker_id: int
    yaw_deg: float
    pitch_deg: float
    area: float  # percent of the image
    camera_to_marker: Any = field(repr=False)  # 4x4 ndarray
    ambiguity: float = 0.0


@dataclass(frozen=True)
class DetectionFrame:
    detections: tuple[Detection, ...] = ()
    timestamp_s: float = 0.0
    connected: bool = True


@dataclass(frozen=True)
class Pose2d:
    x: float = 0.0
    y: float = 0.0
    heading: float = 0.0  # radians

    def distance_to(self, x: float, y: float) -> float:
        return math.hypot(self.x - x, self.y - y)


@dataclass(frozen=True)
class Transform2d:
    x: float = 0.0
    y: float = 0.0
    rotation: float = 0.0  # radians


@dataclass(frozen=True)
class PoseEstimate:
    robot_pose: Pose2d
    timestamp_s: float
    source_timestamp_s: float


@dataclass(frozen=True)
class StdDevs:
    x: float
    y: float
    theta: float

    @classmethod
    def from_array(cls, values) -> "StdDevs":
        a = np.asarray(values, dtype=np.float64).reshape(-1)
        if a.shape != (3,):
            raise ValueError("std devs must have exactly three components (x, y, theta)")
        return cls(float(a[0]), float(a[1]), float(a[2]))

    @classmethod
    def untrusted(cls) -> "StdDevs":
        return cls(MAX_STD_DEV, MAX_STD_DEV, MAX_STD_DEV)

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.theta], dtype=np.float64)


@dataclass(frozen=True)
class LandmarkOffset:
    transform: Transform2d = Transform2d()
    present: bool = False


@dataclass(frozen=True)
class CameraInputs:
    """Everything one camera measured in one control cycle."""

    camera_name: str
    connected: bool
    has_target: bool
    has_target_debounced: bool
    target_count: int
    std_devs: StdDevs
    landmark: LandmarkOffset
    latest_timestamp_s: float
    latency_s: float = 0.0
    estimate: Optional[PoseEstimate] = None
    marker_id: Optional[int] = None
    yaw_deg: float = 0.0
    pitch_deg: float = 0.0
    area: float = 0.0
    ambiguity: float = 0.0
    camera_to_marker: Any = field(default=None, repr=False)
    robot_to_marker: Any = field(default=None, repr=False)
    landmark_pose: Optional[Pose2d] = None
    landmark_std_devs: StdDevs = field(default_factory=StdDevs.untrusted)
