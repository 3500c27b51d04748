import math

import numpy as np
import pytest

from tag_vision.field_layout import MarkerCatalog
from tag_vision.transforms import transform_from_xyz_rpy
from tag_vision.vision_types import Detection


@pytest.fixture
def catalog():
    """Two markers on the field origin wall plus the blue speaker marker."""
    return MarkerCatalog(
        {
            1: transform_from_xyz_rpy(0.0, 0.0, 1.0),
            2: transform_from_xyz_rpy(0.0, 2.0, 1.0),
            7: transform_from_xyz_rpy(-0.038, 5.548, 1.451),
            3: transform_from_xyz_rpy(16.579, 4.983, 1.451, yaw=math.pi),
        }
    )


@pytest.fixture
def make_detection():
    def _make(marker_id, camera_to_marker=None, ambiguity=0.1, area=1.0, yaw_deg=0.0, pitch_deg=0.0):
        if camera_to_marker is None:
            camera_to_marker = np.eye(4)
        return Detection(
            marker_id=marker_id,
            yaw_deg=yaw_deg,
            pitch_deg=pitch_deg,
            area=area,
            camera_to_marker=np.asarray(camera_to_marker, dtype=np.float64),
            ambiguity=ambiguity,
        )

    return _make
