"""Pose pipeline orchestration.

This module ties together crop-region estimation, pose inference and tracking
into a single per-frame processing pipeline. The crop for each frame comes from
the most confident pose of the previous frame.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Protocol

from posetrack.core.crop import CropConfig, CropRegionEstimator
from posetrack.core.geometry import keypoints_bbox, to_absolute
from posetrack.core.trackers.base import PoseTracker
from posetrack.core.trackers.bounding_box import BoundingBoxTracker
from posetrack.core.types import BBox, CropRegion, Frame, FrameResult, Person

logger = logging.getLogger(__name__)


class PoseEstimator(Protocol):
    """Minimal inference interface expected by `PosePipeline`."""

    def estimate(self, image: Frame, crop: BBox | None = None) -> list[Person]:
        """Return poses with keypoints in full-image pixel coordinates."""


class PosePipeline:
    """End-to-end per-frame pose processing.

    Responsibilities:
    - pick the crop region from the previous frame's keypoints
    - run the pose estimator on that region
    - order detections by confidence and assign track ids

    Not thread-safe: frames must be processed one at a time, in timestamp order.
    """

    def __init__(
        self,
        estimator: PoseEstimator,
        tracker: PoseTracker | None = None,
        crop_config: CropConfig | None = None,
        *,
        crop_enabled: bool = True,
        max_persons: int = 6,
        bbox_min_score: float = 0.2,
        suppress_inference_errors: bool = False,
    ) -> None:
        if max_persons < 1:
            raise ValueError("max_persons must be >= 1")
        self.estimator = estimator
        self.tracker = tracker or BoundingBoxTracker()
        self.crop_estimator = CropRegionEstimator(crop_config)
        self.crop_enabled = crop_enabled
        self.max_persons = max_persons
        self.bbox_min_score = bbox_min_score
        self.suppress_inference_errors = suppress_inference_errors
        self.frame_id = 0
        self.last_inference_time_ms = -1.0
        self._previous: Person | None = None

    @property
    def previous_person(self) -> Person | None:
        return self._previous

    def reset(self) -> None:
        """Forget previous keypoints and all tracks."""

        self._previous = None
        self.tracker.reset()

    def close(self) -> None:
        close = getattr(self.estimator, "close", None)
        if callable(close):
            close()
        self._previous = None

    def _prepare(self, persons: list[Person]) -> list[Person]:
        out: list[Person] = []
        for p in persons:
            if p.bbox is None:
                p = p.with_bbox(keypoints_bbox(p.keypoints, self.bbox_min_score))
            out.append(p)
        # The tracker expects the most confident detections first.
        out.sort(key=lambda p: p.score, reverse=True)
        return out[: self.max_persons]

    def process(self, image: Frame, timestamp: int) -> FrameResult:
        """Process one frame captured at `timestamp` (microseconds)."""

        self.frame_id += 1
        h, w = image.shape[:2]

        region: CropRegion | None = None
        crop: BBox | None = None
        if self.crop_enabled:
            region = self.crop_estimator.estimate(self._previous, w, h)
            crop = to_absolute(region.as_bbox(), w, h)

        t0 = time.perf_counter()
        try:
            detections = self.estimator.estimate(image, crop)
        except Exception:
            if not self.suppress_inference_errors:
                raise
            logger.exception("Pose inference failed on frame %d", self.frame_id)
            detections = []
        self.last_inference_time_ms = (time.perf_counter() - t0) * 1000.0

        persons = self.tracker.update(self._prepare(list(detections)), timestamp)
        if persons:
            self._previous = persons[0]
        else:
            if self._previous is not None:
                logger.debug("No pose on frame %d; next crop falls back to full image", self.frame_id)
            self._previous = None

        return FrameResult(
            frame_id=self.frame_id,
            timestamp=timestamp,
            crop_region=region,
            persons=persons,
            inference_ms=self.last_inference_time_ms,
        )


def frame_result_to_dict(result: FrameResult) -> dict[str, Any]:
    """Convert a `FrameResult` into JSON-friendly primitives."""

    region = result.crop_region
    return {
        "frame_id": result.frame_id,
        "timestamp": result.timestamp,
        "crop_region": list(region.as_bbox()) if region is not None else None,
        "inference_ms": result.inference_ms,
        "persons": [
            {
                "id": p.id,
                "score": p.score,
                "bbox": list(p.bbox) if p.bbox is not None else None,
                "keypoints": p.to_array().tolist(),
            }
            for p in result.persons
        ],
    }
