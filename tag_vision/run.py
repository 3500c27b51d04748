import argparse
import math
import sys
from typing import Optional

from .camera import VisionCamera, VisionSystem
from .config import VisionConfig, load_config
from .field_layout import load_field_layout
from .logging_utils import add_file_handler, setup_logger, setup_package_logger
from .sim import SimulatedDetectionSource
from .vision_types import Alliance, Pose2d


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Run the vision pipeline against simulated cameras at a fixed robot pose"
    )
    ap.add_argument("--config", help="Path to JSON/YAML config")
    ap.add_argument("--layout", help="AprilTag field layout JSON (overrides config)")
    ap.add_argument("--cycles", type=int, default=50)
    ap.add_argument("--period", type=float, default=0.02, help="Control period (sec)")
    ap.add_argument("--alliance", choices=["red", "blue"])
    ap.add_argument("--x", type=float, default=4.0, help="True robot x (m)")
    ap.add_argument("--y", type=float, default=5.5, help="True robot y (m)")
    ap.add_argument("--heading-deg", type=float, default=180.0, help="True robot heading (deg)")
    ap.add_argument("--noise-m", type=float, default=0.0, help="Simulated translation noise (m)")
    ap.add_argument("--rotation-noise-deg", type=float, default=0.0, help="Simulated rotation noise (deg)")
    ap.add_argument("--seed", type=int)
    ap.add_argument("--heading-correction-deg", type=float)
    ap.add_argument("--log-level")
    ap.add_argument("--log-file")

    return ap


def _apply_args(cfg: VisionConfig, args: argparse.Namespace) -> VisionConfig:
    cfg.apply_overrides(
        field_layout_path=args.layout,
        heading_correction_deg=args.heading_correction_deg,
        log_level=args.log_level.upper() if args.log_level else None,
    )
    return cfg


def main(argv: Optional[list[str]] = None) -> int:
    ap = _build_parser()
    args = ap.parse_args(argv)

    cfg = load_config(args.config) if args.config else VisionConfig()
    cfg = _apply_args(cfg, args)
    if not cfg.field_layout_path:
        ap.error("a field layout is required (--layout or field_layout_path in --config)")

    setup_package_logger(cfg.log_level)
    catalog = load_field_layout(cfg.field_layout_path)

    sim_time = {"now": 0.0}
    true_pose = Pose2d(args.x, args.y, math.radians(args.heading_deg))
    alliance = Alliance(args.alliance) if args.alliance else None

    cameras = []
    for i, cam_cfg in enumerate(cfg.cameras):
        logger = setup_logger(cam_cfg.name, cfg.log_level)
        if args.log_file:
            add_file_handler(logger, cam_cfg.name, args.log_file)
        source = SimulatedDetectionSource(
            cam_cfg,
            catalog,
            robot_pose=lambda: true_pose,
            clock=lambda: sim_time["now"],
            marker_size_m=cfg.marker_size_m,
            translation_noise_m=args.noise_m,
            rotation_noise_rad=math.radians(args.rotation_noise_deg),
            seed=None if args.seed is None else args.seed + i,
        )
        cameras.append(
            VisionCamera(cam_cfg, source, catalog, cfg, alliance=lambda: alliance, logger=logger)
        )
    system = VisionSystem(cameras)

    estimates = {cam.name: 0 for cam in cameras}
    for cycle in range(args.cycles):
        sim_time["now"] = cycle * args.period
        for name, inputs in system.update(sim_time["now"]).items():
            if inputs.estimate is not None:
                estimates[name] += 1

    for cam in cameras:
        cam.logger.info(
            "summary cycles=%d estimates=%d debounced_target=%s",
            args.cycles,
            estimates[cam.name],
            cam.debouncer.stable_value,
        )
    print(estimates)
    return 0


if __name__ == "__main__":
    sys.exit(main())
