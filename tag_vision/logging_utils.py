from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(camera)s] %(message)s"


class CameraNameFilter(logging.Filter):
    """Stamp records with the camera they belong to (``-`` for shared modules)."""

    def __init__(self, camera_name: str = "-"):
        super().__init__()
        self.camera_name = camera_name

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "camera"):
            record.camera = self.camera_name
        return True


def _handler(handler: logging.Handler, camera_name: str) -> logging.Handler:
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(CameraNameFilter(camera_name))
    return handler


def setup_package_logger(level: int | str = logging.INFO) -> logging.Logger:
    """Console logging for the shared modules (estimator, field layout, ...)."""
    logger = logging.getLogger("tag_vision")
    logger.setLevel(level)
    if not logger.handlers:
        logger.addHandler(_handler(logging.StreamHandler(), "-"))
    return logger


def setup_logger(camera_name: str, level: int | str = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(f"tag_vision.camera.{camera_name}")
    logger.setLevel(level)
    logger.propagate = False

    if not logger.handlers:
        logger.addHandler(_handler(logging.StreamHandler(), camera_name))

    return logger


def add_file_handler(logger: logging.Logger, camera_name: str, log_path: str) -> None:
    logger.addHandler(_handler(logging.FileHandler(log_path), camera_name))
