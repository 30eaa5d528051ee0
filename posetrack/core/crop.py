"""Adaptive crop-region estimation.

The crop for the next frame is derived from the keypoints found in the previous
frame: a square centered on the hips, large enough to hold the torso and every
confident joint. When the torso is not trusted, or the estimate would not fit
in the image, the full image padded to a square is used instead.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from posetrack.core.geometry import to_normalized
from posetrack.core.types import TORSO_JOINTS, BodyPart, CropRegion, KeyPoint, Person, validate_keypoints


@dataclass(frozen=True)
class CropConfig:
    min_keypoint_score: float = 0.2
    torso_expansion_ratio: float = 1.9
    body_expansion_ratio: float = 1.2

    def __post_init__(self) -> None:
        if not 0.0 <= self.min_keypoint_score <= 1.0:
            raise ValueError("min_keypoint_score must be in [0, 1]")
        if self.torso_expansion_ratio <= 0 or self.body_expansion_ratio <= 0:
            raise ValueError("expansion ratios must be > 0")


@dataclass(frozen=True)
class TorsoAndBodyDistances:
    """Maximum per-axis distances from the crop center (pixels)."""

    max_torso_x: float
    max_torso_y: float
    max_body_x: float
    max_body_y: float


def default_crop_region(image_width: int, image_height: int) -> CropRegion:
    """Return the full image padded to a square, centered on the longer axis."""

    if image_width <= 0 or image_height <= 0:
        raise ValueError("image size must be positive")

    if image_width > image_height:
        height = image_width / image_height
        y_min = (image_height / 2.0 - image_width / 2.0) / image_height
        return CropRegion(0.0, y_min, 1.0, y_min + height)

    width = image_height / image_width
    x_min = (image_width / 2.0 - image_height / 2.0) / image_width
    return CropRegion(x_min, 0.0, x_min + width, 1.0)


def _as_keypoints(previous: Person | Sequence[KeyPoint]) -> Sequence[KeyPoint]:
    if isinstance(previous, Person):
        return previous.keypoints
    keypoints = tuple(previous)
    validate_keypoints(keypoints)
    return keypoints


def torso_visible(keypoints: Sequence[KeyPoint], min_score: float = 0.2) -> bool:
    """Whether at least one hip and at least one shoulder score above `min_score`."""

    hips = (
        keypoints[BodyPart.LEFT_HIP].score > min_score
        or keypoints[BodyPart.RIGHT_HIP].score > min_score
    )
    shoulders = (
        keypoints[BodyPart.LEFT_SHOULDER].score > min_score
        or keypoints[BodyPart.RIGHT_SHOULDER].score > min_score
    )
    return hips and shoulders


def torso_and_body_distances(
    keypoints: Sequence[KeyPoint],
    center_x: float,
    center_y: float,
    min_score: float = 0.2,
) -> TorsoAndBodyDistances:
    """Measure how far the torso joints and all confident joints reach from the center.

    Torso joints are measured regardless of their score; body joints only when
    they score above `min_score`.
    """

    max_torso_x = 0.0
    max_torso_y = 0.0
    for joint in TORSO_JOINTS:
        kp = keypoints[joint]
        max_torso_x = max(max_torso_x, abs(center_x - kp.x))
        max_torso_y = max(max_torso_y, abs(center_y - kp.y))

    max_body_x = 0.0
    max_body_y = 0.0
    for kp in keypoints:
        if kp.score <= min_score:
            continue
        max_body_x = max(max_body_x, abs(center_x - kp.x))
        max_body_y = max(max_body_y, abs(center_y - kp.y))

    return TorsoAndBodyDistances(
        max_torso_x=max_torso_x,
        max_torso_y=max_torso_y,
        max_body_x=max_body_x,
        max_body_y=max_body_y,
    )


def estimate_crop_region(
    previous: Person | Sequence[KeyPoint] | None,
    image_width: int,
    image_height: int,
    config: CropConfig | None = None,
) -> CropRegion:
    """Return the crop region for the next frame.

    Args:
        previous: Image-absolute keypoints from the preceding inference, or None
            on the first frame / after a failed inference.
        image_width: Full image width in pixels.
        image_height: Full image height in pixels.
        config: Score threshold and expansion ratios.

    Returns:
        A square region normalized to the image size.
    """

    cfg = config or CropConfig()
    if previous is None:
        return default_crop_region(image_width, image_height)

    keypoints = _as_keypoints(previous)
    if not torso_visible(keypoints, cfg.min_keypoint_score):
        return default_crop_region(image_width, image_height)

    left_hip = keypoints[BodyPart.LEFT_HIP]
    right_hip = keypoints[BodyPart.RIGHT_HIP]
    center_x = (left_hip.x + right_hip.x) / 2.0
    center_y = (left_hip.y + right_hip.y) / 2.0

    dist = torso_and_body_distances(keypoints, center_x, center_y, cfg.min_keypoint_score)
    half = max(
        dist.max_torso_x * cfg.torso_expansion_ratio,
        dist.max_torso_y * cfg.torso_expansion_ratio,
        dist.max_body_x * cfg.body_expansion_ratio,
        dist.max_body_y * cfg.body_expansion_ratio,
    )
    # Never reach further than the farthest image edge from the center.
    half = min(
        half,
        max(center_x, image_width - center_x, center_y, image_height - center_y),
    )

    if half > max(image_width, image_height) / 2.0:
        return default_crop_region(image_width, image_height)

    x_min, y_min, x_max, y_max = to_normalized(
        (center_x - half, center_y - half, center_x + half, center_y + half),
        image_width,
        image_height,
    )
    return CropRegion(x_min, y_min, x_max, y_max)


class CropRegionEstimator:
    """Stateless wrapper binding a `CropConfig`.

    The caller threads the previous frame's keypoints through explicitly.
    """

    def __init__(self, config: CropConfig | None = None) -> None:
        self.config = config or CropConfig()

    def estimate(
        self,
        previous: Person | Sequence[KeyPoint] | None,
        image_width: int,
        image_height: int,
    ) -> CropRegion:
        return estimate_crop_region(previous, image_width, image_height, self.config)
