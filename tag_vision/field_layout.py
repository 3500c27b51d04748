"""Marker catalog: known field poses of every fiducial on the field."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping, Optional

import numpy as np

from .transforms import quaternion_to_matrix

log = logging.getLogger(__name__)


class MarkerCatalog:
    """Read-only lookup from marker id to its 4x4 field pose."""

    def __init__(self, poses: Mapping[int, np.ndarray]):
        self._poses: dict[int, np.ndarray] = {}
        for marker_id, pose in poses.items():
            T = np.array(pose, dtype=np.float64)
            if T.shape != (4, 4):
                raise ValueError(f"pose for marker {marker_id} must be 4x4, got {T.shape}")
            T.setflags(write=False)
            self._poses[int(marker_id)] = T

    def __contains__(self, marker_id: object) -> bool:
        return marker_id in self._poses

    def __len__(self) -> int:
        return len(self._poses)

    @property
    def marker_ids(self) -> list[int]:
        return sorted(self._poses)

    def get_field_pose(self, marker_id: int) -> Optional[np.ndarray]:
        return self._poses.get(marker_id)

    def get_all_marker_poses(self) -> list[tuple[int, np.ndarray]]:
        return [(mid, self._poses[mid]) for mid in self.marker_ids]

    @classmethod
    def from_layout(cls, layout: Mapping[str, Any]) -> "MarkerCatalog":
        """
        Build a catalog from a WPILib-style AprilTag layout mapping::

            {"tags": [{"ID": 7, "pose": {"translation": {"x":..,"y":..,"z":..},
                                         "rotation": {"quaternion": {"W":..,"X":..,"Y":..,"Z":..}}}}]}
        """
        tags = layout.get("tags")
        if not isinstance(tags, list):
            raise ValueError("layout must contain a 'tags' list")

        poses: dict[int, np.ndarray] = {}
        for tag in tags:
            try:
                marker_id = int(tag["ID"])
                translation = tag["pose"]["translation"]
                q = tag["pose"]["rotation"]["quaternion"]

                def _q(key: str) -> float:
                    return float(q.get(key, q.get(key.lower())))

                T = np.eye(4)
                T[:3, :3] = quaternion_to_matrix(_q("W"), _q("X"), _q("Y"), _q("Z"))
                T[:3, 3] = [
                    float(translation["x"]),
                    float(translation["y"]),
                    float(translation["z"]),
                ]
            except (KeyError, TypeError, ValueError) as exc:
                log.warning("skipping malformed layout entry %r: %s", tag, exc)
                continue
            poses[marker_id] = T

        return cls(poses)


def load_field_layout(path: str | Path) -> MarkerCatalog:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Field layout not found: {p}")
    with p.open("r", encoding="utf-8") as fp:
        raw = json.load(fp)
    if not isinstance(raw, dict):
        raise ValueError("Field layout root must be a JSON object")

    catalog = MarkerCatalog.from_layout(raw)
    log.info("loaded field layout %s with %d markers", p, len(catalog))
    return catalog
