"""Per-camera AprilTag pose measurements with calibrated uncertainty."""

from .camera import VisionCamera, VisionSystem
from .config import CameraConfig, VisionConfig
from .field_layout import MarkerCatalog
from .vision_types import CameraInputs, Detection, PoseEstimate, StdDevs

__all__ = [
    "CameraConfig",
    "CameraInputs",
    "Detection",
    "MarkerCatalog",
    "PoseEstimate",
    "StdDevs",
    "VisionCamera",
    "VisionConfig",
    "VisionSystem",
]
