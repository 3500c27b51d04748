"""Heuristic measurement standard deviations for vision pose estimates."""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from .field_layout import MarkerCatalog
from .vision_types import MAX_STD_DEV, Detection, PoseEstimate, StdDevs

DEFAULT_SINGLE_TAG_STD_DEVS = (4.0, 4.0, 8.0)
DEFAULT_MULTI_TAG_STD_DEVS = (0.5, 0.5, 1.0)


class ConfidenceModel:
    """
    Scale a baseline std-dev vector by target count and average distance.

    The result is ``baseline * (1 + avg_dist**2 / distance_scale_divisor) / n``,
    using the multi-tag baseline when more than one marker contributes. A single
    marker farther than ``single_tag_max_distance_m`` is not trusted at all.
    """

    def __init__(
        self,
        catalog: MarkerCatalog,
        single_tag_std_devs: Sequence[float] = DEFAULT_SINGLE_TAG_STD_DEVS,
        multi_tag_std_devs: Sequence[float] = DEFAULT_MULTI_TAG_STD_DEVS,
        single_tag_max_distance_m: float = 3.0,
        distance_scale_divisor: float = 30.0,
    ):
        self.catalog = catalog
        self.single_tag_max_distance_m = single_tag_max_distance_m
        self.distance_scale_divisor = distance_scale_divisor
        self._single = StdDevs.from_array(single_tag_std_devs)
        self._multi = StdDevs.from_array(multi_tag_std_devs)

    @property
    def single_tag_std_devs(self) -> StdDevs:
        return self._single

    @property
    def multi_tag_std_devs(self) -> StdDevs:
        return self._multi

    def set_single_tag_std_devs(self, x: float, y: float, theta: float) -> None:
        self._single = StdDevs(float(x), float(y), float(theta))

    def set_multi_tag_std_devs(self, x: float, y: float, theta: float) -> None:
        self._multi = StdDevs(float(x), float(y), float(theta))

    def std_devs(self, detections: Sequence[Detection], estimate: Optional[PoseEstimate]) -> StdDevs:
        if estimate is None:
            return self._single

        num_tags = 0
        total_dist = 0.0
        for det in detections:
            field_pose = self.catalog.get_field_pose(det.marker_id)
            if field_pose is None:
                continue
            num_tags += 1
            total_dist += estimate.robot_pose.distance_to(field_pose[0, 3], field_pose[1, 3])

        if num_tags == 0:
            return self._single

        avg_dist = total_dist / num_tags

        if num_tags == 1 and avg_dist > self.single_tag_max_distance_m:
            return StdDevs.untrusted()

        baseline = self._multi if num_tags > 1 else self._single
        scale = (1.0 + avg_dist * avg_dist / self.distance_scale_divisor) / num_tags
        base = baseline.as_array()
        # an axis at the sentinel stays the sentinel, whatever the scale
        with np.errstate(over="ignore"):
            scaled = np.where(base >= MAX_STD_DEV, MAX_STD_DEV, np.minimum(base * scale, MAX_STD_DEV))
        return StdDevs.from_array(scaled)
