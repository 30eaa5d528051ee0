from __future__ import annotations

from collections.abc import Iterable

import numpy as np

from posetrack.core.types import BBox, KeyPoint, Person


def _clamp(v: float, lo: float, hi: float) -> float:
    return lo if v < lo else hi if v > hi else v


def clamp_bbox(bbox: BBox, frame_w: int, frame_h: int) -> BBox:
    x1, y1, x2, y2 = bbox
    x1 = _clamp(x1, 0.0, float(frame_w))
    x2 = _clamp(x2, 0.0, float(frame_w))
    y1 = _clamp(y1, 0.0, float(frame_h))
    y2 = _clamp(y2, 0.0, float(frame_h))
    if x2 < x1:
        x1, x2 = x2, x1
    if y2 < y1:
        y1, y2 = y2, y1
    return (x1, y1, x2, y2)


def bbox_area(bbox: BBox) -> float:
    x1, y1, x2, y2 = bbox
    return max(0.0, x2 - x1) * max(0.0, y2 - y1)


def intersect_bbox(a: BBox, b: BBox) -> BBox | None:
    """Return the overlap of two boxes, or None when they do not overlap on an axis."""

    x1 = max(a[0], b[0])
    y1 = max(a[1], b[1])
    x2 = min(a[2], b[2])
    y2 = min(a[3], b[3])
    if x1 >= x2 or y1 >= y2:
        return None
    return (x1, y1, x2, y2)


def bbox_iou(a: BBox, b: BBox) -> float:
    inter_box = intersect_bbox(a, b)
    if inter_box is None:
        return 0.0
    inter = bbox_area(inter_box)
    union = bbox_area(a) + bbox_area(b) - inter
    if union <= 0.0:  # pragma: no cover
        return 0.0  # pragma: no cover
    return inter / union


def to_absolute(bbox: BBox, frame_w: int, frame_h: int) -> BBox:
    """Map a bbox normalized to [0, 1] onto pixel coordinates."""

    x1, y1, x2, y2 = bbox
    return (x1 * frame_w, y1 * frame_h, x2 * frame_w, y2 * frame_h)


def to_normalized(bbox: BBox, frame_w: int, frame_h: int) -> BBox:
    """Map a pixel bbox onto coordinates normalized to the frame size."""

    if frame_w <= 0 or frame_h <= 0:
        raise ValueError("frame size must be positive")
    x1, y1, x2, y2 = bbox
    return (x1 / frame_w, y1 / frame_h, x2 / frame_w, y2 / frame_h)


def crop_bbox_to_int(bbox: BBox) -> tuple[int, int, int, int]:
    """Round a pixel bbox outwards to integer coordinates with at least 1px extent.

    Negative coordinates are kept: crops may extend past the image and get padded.
    """

    x1, y1, x2, y2 = bbox
    xi1 = int(np.floor(x1))
    yi1 = int(np.floor(y1))
    xi2 = int(np.ceil(x2))
    yi2 = int(np.ceil(y2))
    if xi2 <= xi1:
        xi2 = xi1 + 1
    if yi2 <= yi1:
        yi2 = yi1 + 1
    return xi1, yi1, xi2, yi2


def reproject_keypoints(keypoints: Iterable[KeyPoint], dx: float, dy: float) -> tuple[KeyPoint, ...]:
    """Shift crop-local keypoints by the crop's top-left offset into image space."""

    return tuple(
        KeyPoint(
            body_part=kp.body_part,
            coordinate=(kp.x + float(dx), kp.y + float(dy)),
            score=kp.score,
        )
        for kp in keypoints
    )


def reproject_person(person: Person, dx: float, dy: float) -> Person:
    bbox = person.bbox
    if bbox is not None:
        x1, y1, x2, y2 = bbox
        bbox = (x1 + dx, y1 + dy, x2 + dx, y2 + dy)
    return Person(
        keypoints=reproject_keypoints(person.keypoints, dx, dy),
        score=person.score,
        bbox=bbox,
        id=person.id,
    )


def keypoints_bbox(keypoints: Iterable[KeyPoint], min_score: float = 0.0) -> BBox | None:
    """Return the tight bbox around keypoints scoring above `min_score`."""

    pts = [kp.coordinate for kp in keypoints if kp.score > min_score]
    if not pts:
        return None
    arr = np.asarray(pts, dtype=np.float64)
    return (
        float(arr[:, 0].min()),
        float(arr[:, 1].min()),
        float(arr[:, 0].max()),
        float(arr[:, 1].max()),
    )
