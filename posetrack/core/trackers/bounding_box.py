from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from posetrack.core.geometry import bbox_iou
from posetrack.core.trackers.base import PoseTracker, TrackerConfig
from posetrack.core.types import Person


class BoundingBoxSimilarity:
    """Intersection-over-union of the detection and track bounding boxes.

    A pose without a bbox has no geometric basis for comparison and always
    scores 0, so it can never be matched.
    """

    def similarity(self, detection: Person, track: Person) -> float:
        if detection.bbox is None or track.bbox is None:
            return 0.0
        return bbox_iou(detection.bbox, track.bbox)

    def similarity_matrix(self, detections: Sequence[Person], tracks: Sequence[Person]) -> np.ndarray:
        """Vectorized IoU for every (detection, track) pair."""

        if not detections or not tracks:
            return np.zeros((len(detections), len(tracks)), dtype=np.float64)

        nan_box = (np.nan, np.nan, np.nan, np.nan)
        det_boxes = np.array([d.bbox if d.bbox is not None else nan_box for d in detections], dtype=np.float64)
        track_boxes = np.array([t.bbox if t.bbox is not None else nan_box for t in tracks], dtype=np.float64)

        xA = np.maximum(det_boxes[:, None, 0], track_boxes[None, :, 0])
        yA = np.maximum(det_boxes[:, None, 1], track_boxes[None, :, 1])
        xB = np.minimum(det_boxes[:, None, 2], track_boxes[None, :, 2])
        yB = np.minimum(det_boxes[:, None, 3], track_boxes[None, :, 3])
        overlap = (xA < xB) & (yA < yB)
        inter = np.where(overlap, (xB - xA) * (yB - yA), 0.0)
        det_area = (det_boxes[:, 2] - det_boxes[:, 0]) * (det_boxes[:, 3] - det_boxes[:, 1])
        track_area = (track_boxes[:, 2] - track_boxes[:, 0]) * (track_boxes[:, 3] - track_boxes[:, 1])
        union = det_area[:, None] + track_area[None, :] - inter
        with np.errstate(invalid="ignore", divide="ignore"):
            iou = np.where(overlap & (union > 0.0), inter / union, 0.0)
        return iou


class BoundingBoxTracker(PoseTracker):
    """`PoseTracker` linking poses by bounding-box IoU."""

    def __init__(self, config: TrackerConfig | None = None) -> None:
        super().__init__(config=config, similarity=BoundingBoxSimilarity())
