from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from .vision_types import Detection, DetectionFrame


class DetectionSource(ABC):
    """Black-box marker detector: returns whatever its latest cached frame holds."""

    @abstractmethod
    def get_latest(self) -> DetectionFrame: ...


class StaticSource(DetectionSource):
    """Always reports the same frame; settable between cycles."""

    def __init__(
        self,
        detections: Iterable[Detection] = (),
        timestamp_s: float = 0.0,
        connected: bool = True,
    ):
        self.frame = DetectionFrame(tuple(detections), timestamp_s, connected)

    def set(
        self,
        detections: Iterable[Detection] = (),
        timestamp_s: Optional[float] = None,
        connected: bool = True,
    ) -> None:
        ts = self.frame.timestamp_s if timestamp_s is None else timestamp_s
        self.frame = DetectionFrame(tuple(detections), ts, connected)

    def get_latest(self) -> DetectionFrame:
        return self.frame


class ReplaySource(DetectionSource):
    """Plays back recorded frames one per call, then repeats the last one."""

    def __init__(self, frames: Iterable[DetectionFrame]):
        self.frames = list(frames)
        if not self.frames:
            raise ValueError("ReplaySource needs at least one frame")
        self.idx = 0

    def get_latest(self) -> DetectionFrame:
        frame = self.frames[min(self.idx, len(self.frames) - 1)]
        self.idx += 1
        return frame
