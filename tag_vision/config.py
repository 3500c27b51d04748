from __future__ import annotations

import json
import math
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any, Optional

import numpy as np

from .confidence import DEFAULT_MULTI_TAG_STD_DEVS, DEFAULT_SINGLE_TAG_STD_DEVS
from .transforms import transform_from_xyz_rpy


@dataclass
class CameraConfig:
    """Mount and simulated optics of one fixed camera."""

    name: str = "cam"
    # robot -> camera mount, meters and degrees
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    roll_deg: float = 0.0
    pitch_deg: float = 0.0
    yaw_deg: float = 0.0
    # simulation only
    width: int = 960
    height: int = 720
    fov_diag_deg: float = 75.0
    avg_latency_ms: float = 90.0
    latency_std_ms: float = 15.0

    def robot_to_camera(self) -> np.ndarray:
        return transform_from_xyz_rpy(
            self.x,
            self.y,
            self.z,
            math.radians(self.roll_deg),
            math.radians(self.pitch_deg),
            math.radians(self.yaw_deg),
        )

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def _default_cameras() -> list[CameraConfig]:
    return [
        CameraConfig(name="LLLeft", x=0.2, y=0.0, z=0.33, roll_deg=13.2, pitch_deg=0.0, yaw_deg=25.2),
        CameraConfig(name="LLRight", x=0.4, y=0.0, z=0.33, roll_deg=13.2, pitch_deg=0.0, yaw_deg=25.5),
    ]


@dataclass
class VisionConfig:
    field_layout_path: Optional[str] = None
    max_ambiguity: float = 0.45
    single_tag_max_distance_m: float = 3.0
    distance_scale_divisor: float = 30.0
    single_tag_std_devs: list[float] = field(default_factory=lambda: list(DEFAULT_SINGLE_TAG_STD_DEVS))
    multi_tag_std_devs: list[float] = field(default_factory=lambda: list(DEFAULT_MULTI_TAG_STD_DEVS))
    multi_tag_max_spread_m: float = 1.0
    debounce_s: float = 0.1
    heading_correction_deg: float = 180.0
    landmark_lateral_scale: float = 0.5
    landmark_min_distance_m: float = 5.0
    red_landmark_id: int = 3
    blue_landmark_id: int = 7
    marker_size_m: float = 0.1651
    log_level: str = "INFO"
    cameras: list[CameraConfig] = field(default_factory=_default_cameras)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def apply_overrides(self, **kwargs: Any) -> "VisionConfig":
        for key, value in kwargs.items():
            if value is not None and hasattr(self, key):
                setattr(self, key, value)
        return self


def _std_dev_triplet(value: Any, name: str) -> list[float]:
    if not isinstance(value, (list, tuple)) or len(value) != 3:
        raise ValueError(f"{name} must be a list of three numbers [x, y, theta]")
    return [float(v) for v in value]


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        import yaml  # type: ignore
    except Exception as exc:  # pragma: no cover - optional dependency
        raise RuntimeError(
            "YAML config requested but PyYAML is not installed. "
            "Install with: pip install pyyaml"
        ) from exc
    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError("YAML config root must be a mapping")
    return data


def _load_camera(raw: dict[str, Any]) -> CameraConfig:
    cam = CameraConfig()
    cam.name = str(raw.get("name", cam.name))
    cam.x = float(raw.get("x", cam.x))
    cam.y = float(raw.get("y", cam.y))
    cam.z = float(raw.get("z", cam.z))
    cam.roll_deg = float(raw.get("roll_deg", cam.roll_deg))
    cam.pitch_deg = float(raw.get("pitch_deg", cam.pitch_deg))
    cam.yaw_deg = float(raw.get("yaw_deg", cam.yaw_deg))
    cam.width = int(raw.get("width", cam.width))
    cam.height = int(raw.get("height", cam.height))
    cam.fov_diag_deg = float(raw.get("fov_diag_deg", cam.fov_diag_deg))
    cam.avg_latency_ms = float(raw.get("avg_latency_ms", cam.avg_latency_ms))
    cam.latency_std_ms = float(raw.get("latency_std_ms", cam.latency_std_ms))
    return cam


def load_config(path: str | Path) -> VisionConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")

    if p.suffix.lower() in {".yaml", ".yml"}:
        raw = _load_yaml(p)
    else:
        with p.open("r", encoding="utf-8") as fp:
            raw = json.load(fp)

    if not isinstance(raw, dict):
        raise ValueError("Config root must be a JSON/YAML object")

    cfg = VisionConfig()
    layout = raw.get("field_layout_path", cfg.field_layout_path)
    if layout is not None:
        # relative layout paths are resolved against the config file
        layout_path = Path(layout)
        if not layout_path.is_absolute():
            layout_path = p.parent / layout_path
        cfg.field_layout_path = str(layout_path)
    cfg.max_ambiguity = float(raw.get("max_ambiguity", cfg.max_ambiguity))
    cfg.single_tag_max_distance_m = float(raw.get("single_tag_max_distance_m", cfg.single_tag_max_distance_m))
    cfg.distance_scale_divisor = float(raw.get("distance_scale_divisor", cfg.distance_scale_divisor))
    if "single_tag_std_devs" in raw:
        cfg.single_tag_std_devs = _std_dev_triplet(raw["single_tag_std_devs"], "single_tag_std_devs")
    if "multi_tag_std_devs" in raw:
        cfg.multi_tag_std_devs = _std_dev_triplet(raw["multi_tag_std_devs"], "multi_tag_std_devs")
    cfg.multi_tag_max_spread_m = float(raw.get("multi_tag_max_spread_m", cfg.multi_tag_max_spread_m))
    cfg.debounce_s = float(raw.get("debounce_s", cfg.debounce_s))
    cfg.heading_correction_deg = float(raw.get("heading_correction_deg", cfg.heading_correction_deg))
    cfg.landmark_lateral_scale = float(raw.get("landmark_lateral_scale", cfg.landmark_lateral_scale))
    cfg.landmark_min_distance_m = float(raw.get("landmark_min_distance_m", cfg.landmark_min_distance_m))
    cfg.red_landmark_id = int(raw.get("red_landmark_id", cfg.red_landmark_id))
    cfg.blue_landmark_id = int(raw.get("blue_landmark_id", cfg.blue_landmark_id))
    cfg.marker_size_m = float(raw.get("marker_size_m", cfg.marker_size_m))
    cfg.log_level = str(raw.get("log_level", cfg.log_level)).upper()

    cams_raw = raw.get("cameras")
    if cams_raw is not None:
        if not isinstance(cams_raw, list) or not all(isinstance(c, dict) for c in cams_raw):
            raise ValueError("cameras must be a list of camera mappings")
        cfg.cameras = [_load_camera(c) for c in cams_raw]
        names = [c.name for c in cfg.cameras]
        if len(set(names)) != len(names):
            raise ValueError(f"camera names must be unique: {names}")

    return cfg
