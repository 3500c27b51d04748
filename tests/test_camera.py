import logging
import math

import numpy as np
import pytest

from tag_vision.camera import VisionCamera, VisionSystem
from tag_vision.config import CameraConfig, VisionConfig
from tag_vision.estimator import PoseSolver
from tag_vision.sources import ReplaySource, StaticSource
from tag_vision.transforms import compute_relative_pose, transform_from_xyz_rpy
from tag_vision.vision_types import MAX_STD_DEV, Alliance, DetectionFrame, StdDevs

SINGLE = [1.0, 2.0, 3.0]
MULTI = [0.2, 0.4, 0.6]


class FixedSolver(PoseSolver):
    """Test double: always reports the same camera field pose."""

    def __init__(self, pose):
        self.pose = pose

    def solve(self, detections, catalog):
        return self.pose


def _config(**kwargs):
    cfg = VisionConfig(single_tag_std_devs=list(SINGLE), multi_tag_std_devs=list(MULTI))
    return cfg.apply_overrides(**kwargs)


def _camera(catalog, source, name="cam", config=None, **kwargs):
    return VisionCamera(
        CameraConfig(name=name),
        source,
        catalog,
        config or _config(),
        logger=logging.getLogger(f"test.{name}"),
        **kwargs,
    )


def test_empty_frame(catalog):
    cam = _camera(catalog, StaticSource([], timestamp_s=0.95))
    inputs = cam.update(1.0)

    assert inputs.has_target is False
    assert inputs.has_target_debounced is False
    assert inputs.estimate is None
    assert inputs.std_devs == StdDevs(*SINGLE)
    assert inputs.landmark.present is False
    assert inputs.target_count == 0
    assert inputs.marker_id is None
    assert inputs.latest_timestamp_s == 0.95
    assert inputs.latency_s == pytest.approx(0.05)


def test_single_target_four_meters(catalog, make_detection):
    """Marker 1 sits at the origin; the solver puts the camera 4 m away."""
    source = StaticSource([make_detection(1, ambiguity=0.1)], timestamp_s=2.0)
    cfg = _config(single_tag_max_distance_m=5.0)
    cam = _camera(catalog, source, config=cfg, solver=FixedSolver(transform_from_xyz_rpy(4.0, 0.0, 0.5)))

    inputs = cam.update(2.04)

    assert inputs.estimate is not None
    assert inputs.estimate.robot_pose.x == pytest.approx(4.0)
    assert inputs.estimate.source_timestamp_s == 2.0
    assert inputs.estimate.timestamp_s == 2.04
    assert np.allclose(inputs.std_devs.as_array(), np.array(SINGLE) * (1.0 + 16.0 / 30.0))


def test_single_target_four_meters_default_cutoff(catalog, make_detection):
    source = StaticSource([make_detection(1, ambiguity=0.1)], timestamp_s=2.0)
    cam = _camera(catalog, source, solver=FixedSolver(transform_from_xyz_rpy(4.0, 0.0, 0.5)))

    inputs = cam.update(2.04)

    assert inputs.estimate is not None
    assert inputs.std_devs == StdDevs(MAX_STD_DEV, MAX_STD_DEV, MAX_STD_DEV)


def test_ambiguous_detection_does_not_change_result(catalog, make_detection):
    field_to_camera = transform_from_xyz_rpy(2.0, 1.0, 0.4, yaw=math.pi)
    good = make_detection(1, compute_relative_pose(field_to_camera, catalog.get_field_pose(1)), ambiguity=0.1)
    bogus = make_detection(2, transform_from_xyz_rpy(0.5, 3.0, 0.0), ambiguity=0.6, area=9.0)

    clean = _camera(catalog, StaticSource([good])).update(1.0)
    noisy = _camera(catalog, StaticSource([good, bogus])).update(1.0)

    assert clean.estimate == noisy.estimate
    assert clean.std_devs == noisy.std_devs
    assert noisy.target_count == 1
    # diagnostics still describe the largest raw target
    assert noisy.marker_id == 2


def test_only_ambiguous_detections(catalog, make_detection):
    inputs = _camera(catalog, StaticSource([make_detection(1, ambiguity=0.9)])).update(1.0)
    assert inputs.has_target is True
    assert inputs.estimate is None
    assert inputs.std_devs == StdDevs(*SINGLE)


def test_best_target_diagnostics(catalog, make_detection):
    mount = CameraConfig(name="cam", x=0.2, z=0.33)
    dets = [
        make_detection(1, transform_from_xyz_rpy(2.0, 0.0, 0.0), area=0.5, yaw_deg=3.0),
        make_detection(2, transform_from_xyz_rpy(1.0, 0.5, 0.2), area=2.5, yaw_deg=-7.0, pitch_deg=4.0),
    ]
    cam = VisionCamera(mount, StaticSource(dets), catalog, _config(), logger=logging.getLogger("test.diag"))

    inputs = cam.update(1.0)

    assert inputs.marker_id == 2
    assert inputs.yaw_deg == -7.0
    assert inputs.pitch_deg == 4.0
    assert inputs.area == 2.5
    assert np.allclose(inputs.robot_to_marker[:3, 3], [1.2, 0.5, 0.53])


def test_disconnected_camera_is_treated_as_empty(catalog, make_detection):
    source = StaticSource([make_detection(1)], connected=False)
    inputs = _camera(catalog, source).update(1.0)

    assert inputs.connected is False
    assert inputs.has_target is False
    assert inputs.estimate is None
    assert inputs.std_devs == StdDevs(*SINGLE)


def test_reconnect_resumes_estimates(catalog, make_detection):
    field_to_camera = transform_from_xyz_rpy(2.0, 1.0, 0.4, yaw=math.pi)
    det = make_detection(1, compute_relative_pose(field_to_camera, catalog.get_field_pose(1)))
    source = ReplaySource(
        [
            DetectionFrame((det,), 0.0, connected=False),
            DetectionFrame((det,), 0.02, connected=True),
        ]
    )
    cam = _camera(catalog, source)

    assert cam.update(0.02).estimate is None
    assert cam.update(0.04).estimate is not None


def test_debounced_target_over_cycles(catalog, make_detection):
    source = StaticSource([])
    cam = _camera(catalog, source)

    assert cam.update(0.0).has_target_debounced is False
    source.set([make_detection(1)], timestamp_s=0.5)
    assert cam.update(1.0).has_target_debounced is False
    assert cam.update(1.05).has_target_debounced is False
    assert cam.update(1.1).has_target_debounced is True
    source.set([])
    assert cam.update(1.12).has_target_debounced is True
    assert cam.update(1.3).has_target_debounced is False


def test_landmark_follows_alliance(catalog, make_detection):
    dets = [make_detection(3, transform_from_xyz_rpy(2.0, 0.4, 0.0))]
    red = _camera(catalog, StaticSource(dets), alliance=lambda: Alliance.RED)
    blue = _camera(catalog, StaticSource(dets), alliance=lambda: Alliance.BLUE)

    assert red.landmark_id == 3
    assert red.update(1.0).landmark.present is True
    assert blue.landmark_id == 7
    assert blue.update(1.0).landmark.present is False


def test_alliance_resolved_once(catalog):
    calls = []

    def provider():
        calls.append(1)
        return Alliance.RED

    cam = _camera(catalog, StaticSource([]), alliance=provider)
    for i in range(5):
        cam.update(i * 0.02)
    assert len(calls) == 1


def test_std_dev_setters_and_getters(catalog):
    cam = _camera(catalog, StaticSource([]))
    cam.set_single_tag_std_devs(5.0, 6.0, 7.0)
    cam.set_multi_tag_std_devs(0.1, 0.2, 0.3)

    assert cam.get_single_tag_std_devs() == StdDevs(5.0, 6.0, 7.0)
    assert cam.get_multi_tag_std_devs() == StdDevs(0.1, 0.2, 0.3)
    assert cam.update(0.0).std_devs == StdDevs(5.0, 6.0, 7.0)


def test_cameras_do_not_share_debounce_state(catalog, make_detection):
    seeing = _camera(catalog, StaticSource([make_detection(1)]), name="left")
    blind = _camera(catalog, StaticSource([]), name="right")
    system = VisionSystem([seeing, blind])

    system.update(0.0)
    out = system.update(0.2)

    assert set(out) == {"left", "right"}
    assert out["left"].has_target_debounced is True
    assert out["right"].has_target_debounced is False
    assert seeing.debouncer is not blind.debouncer


def test_system_setters_reach_every_camera(catalog):
    cams = [_camera(catalog, StaticSource([]), name=n) for n in ("a", "b")]
    system = VisionSystem(cams)
    system.set_single_tag_std_devs(9.0, 9.0, 9.0)
    system.set_multi_tag_std_devs(0.3, 0.3, 0.3)
    for cam in cams:
        assert cam.get_single_tag_std_devs() == StdDevs(9.0, 9.0, 9.0)
        assert cam.get_multi_tag_std_devs() == StdDevs(0.3, 0.3, 0.3)


def test_duplicate_camera_names_rejected(catalog):
    with pytest.raises(ValueError):
        VisionSystem([_camera(catalog, StaticSource([])), _camera(catalog, StaticSource([]))])


def test_inputs_are_immutable(catalog):
    inputs = _camera(catalog, StaticSource([])).update(0.0)
    with pytest.raises(AttributeError):
        inputs.has_target = True


def test_distant_landmark_pose_and_std_devs(catalog, make_detection):
    # red landmark (marker 3) sits at x=16.579 facing back down the field
    dets = [make_detection(3, transform_from_xyz_rpy(6.0, 0.0, 0.0))]
    inputs = _camera(catalog, StaticSource(dets), alliance=lambda: Alliance.RED).update(1.0)

    assert inputs.landmark.present is True
    assert inputs.landmark_std_devs == StdDevs(1.0 * 6.0, 2.0 * 6.0, MAX_STD_DEV)
    assert inputs.landmark_pose.x == pytest.approx(16.579 - 6.0)
    assert inputs.landmark_pose.y == pytest.approx(4.983)


def test_close_landmark_is_untrusted(catalog, make_detection):
    dets = [make_detection(3, transform_from_xyz_rpy(2.0, 0.0, 0.0))]
    inputs = _camera(catalog, StaticSource(dets), alliance=lambda: Alliance.RED).update(1.0)

    assert inputs.landmark_pose is not None
    assert inputs.landmark_std_devs == StdDevs.untrusted()


def test_landmark_distance_threshold_from_config(catalog, make_detection):
    dets = [make_detection(3, transform_from_xyz_rpy(6.0, 0.0, 0.0))]
    cfg = _config(landmark_min_distance_m=7.0)
    inputs = _camera(catalog, StaticSource(dets), config=cfg, alliance=lambda: Alliance.RED).update(1.0)
    assert inputs.landmark_std_devs == StdDevs.untrusted()


def test_no_landmark_outputs_without_landmark(catalog, make_detection):
    inputs = _camera(catalog, StaticSource([make_detection(1)])).update(1.0)
    assert inputs.landmark_pose is None
    assert inputs.landmark_std_devs == StdDevs.untrusted()
