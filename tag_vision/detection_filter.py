import logging
from typing import Iterable

from .field_layout import MarkerCatalog
from .vision_types import Detection

log = logging.getLogger(__name__)

DEFAULT_MAX_AMBIGUITY = 0.45


def is_usable(det: Detection, catalog: MarkerCatalog, max_ambiguity: float = DEFAULT_MAX_AMBIGUITY) -> bool:
    if det.marker_id not in catalog:
        log.debug("rejecting marker %d: not in field layout", det.marker_id)
        return False
    if not det.ambiguity <= max_ambiguity:
        log.debug(
            "rejecting marker %d: ambiguity %.3f > %.3f",
            det.marker_id,
            det.ambiguity,
            max_ambiguity,
        )
        return False
    return True


def filter_detections(
    detections: Iterable[Detection],
    catalog: MarkerCatalog,
    max_ambiguity: float = DEFAULT_MAX_AMBIGUITY,
) -> list[Detection]:
    """
    Keep detections of known markers whose ambiguity is within the threshold.

    Duplicate ids within one frame are all kept.
    """
    return [d for d in detections if is_usable(d, catalog, max_ambiguity)]
