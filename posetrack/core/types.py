"""Shared type definitions used across the pose tracking core.

This module centralizes the small, stable value types (body parts, keypoints,
poses, crop regions) so the crop estimator, tracker and pipeline code can stay
strongly typed. Every value here is immutable: tagging a pose with a track id
returns a new `Person`.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from enum import IntEnum

import numpy as np

from posetrack.core.errors import MalformedPose

Frame = np.ndarray

BBox = tuple[float, float, float, float]
Point = tuple[float, float]


class BodyPart(IntEnum):
    """The 17 COCO body landmarks, indexed by their position in model output."""

    NOSE = 0
    LEFT_EYE = 1
    RIGHT_EYE = 2
    LEFT_EAR = 3
    RIGHT_EAR = 4
    LEFT_SHOULDER = 5
    RIGHT_SHOULDER = 6
    LEFT_ELBOW = 7
    RIGHT_ELBOW = 8
    LEFT_WRIST = 9
    RIGHT_WRIST = 10
    LEFT_HIP = 11
    RIGHT_HIP = 12
    LEFT_KNEE = 13
    RIGHT_KNEE = 14
    LEFT_ANKLE = 15
    RIGHT_ANKLE = 16

    @classmethod
    def from_index(cls, index: int) -> BodyPart:
        """Return the body part at `index`; raises `ValueError` when out of range."""

        return cls(int(index))


NUM_KEYPOINTS = len(BodyPart)

TORSO_JOINTS: tuple[BodyPart, ...] = (
    BodyPart.LEFT_SHOULDER,
    BodyPart.RIGHT_SHOULDER,
    BodyPart.LEFT_HIP,
    BodyPart.RIGHT_HIP,
)


@dataclass(frozen=True)
class KeyPoint:
    """One landmark estimate in pixel coordinates."""

    body_part: BodyPart
    coordinate: Point
    score: float

    @property
    def x(self) -> float:
        return self.coordinate[0]

    @property
    def y(self) -> float:
        return self.coordinate[1]


@dataclass(frozen=True)
class Person:
    """One detected pose: 17 ordered keypoints, an optional bbox and a track id.

    `id` stays `None` until a tracker assigns one.
    """

    keypoints: tuple[KeyPoint, ...]
    score: float
    bbox: BBox | None = None
    id: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "keypoints", tuple(self.keypoints))
        validate_keypoints(self.keypoints)

    @classmethod
    def from_keypoints(
        cls,
        keypoints: Iterable[KeyPoint],
        bbox: BBox | None = None,
    ) -> Person:
        """Build a person whose score is the mean keypoint score."""

        kps = tuple(keypoints)
        validate_keypoints(kps)
        score = float(sum(kp.score for kp in kps)) / NUM_KEYPOINTS
        return cls(keypoints=kps, score=score, bbox=bbox)

    @classmethod
    def from_array(cls, arr: np.ndarray, bbox: BBox | None = None) -> Person:
        """Build a person from an array of shape (17, 3) -> x, y, score."""

        data = np.asarray(arr, dtype=np.float64)
        if data.ndim != 2 or data.shape[0] != NUM_KEYPOINTS or data.shape[1] < 3:
            raise MalformedPose(
                f"expected keypoint array of shape ({NUM_KEYPOINTS}, 3), got {data.shape}"
            )
        kps = tuple(
            KeyPoint(
                body_part=BodyPart(i),
                coordinate=(float(row[0]), float(row[1])),
                score=float(row[2]),
            )
            for i, row in enumerate(data)
        )
        return cls.from_keypoints(kps, bbox=bbox)

    def to_array(self) -> np.ndarray:
        """Return keypoints as an array of shape (17, 3) -> x, y, score."""

        return np.array([(kp.x, kp.y, kp.score) for kp in self.keypoints], dtype=np.float64)

    def keypoint(self, part: BodyPart) -> KeyPoint:
        return self.keypoints[int(part)]

    def with_id(self, track_id: int) -> Person:
        return replace(self, id=track_id)

    def with_bbox(self, bbox: BBox | None) -> Person:
        return replace(self, bbox=bbox)


def validate_keypoints(keypoints: tuple[KeyPoint, ...]) -> None:
    """Raise `MalformedPose` unless there is exactly one keypoint per body part, in order."""

    if len(keypoints) != NUM_KEYPOINTS:
        raise MalformedPose(f"expected {NUM_KEYPOINTS} keypoints, got {len(keypoints)}")
    for i, kp in enumerate(keypoints):
        if kp.body_part != i:
            raise MalformedPose(f"keypoint {i} is {kp.body_part!r}, expected {BodyPart(i)!r}")


@dataclass(frozen=True)
class CropRegion:
    """Square region of interest in coordinates normalized to the image size.

    Values may fall outside [0, 1] on the shorter image axis when the image is
    padded to a square.
    """

    x_min: float
    y_min: float
    x_max: float
    y_max: float

    @property
    def width(self) -> float:
        return self.x_max - self.x_min

    @property
    def height(self) -> float:
        return self.y_max - self.y_min

    def as_bbox(self) -> BBox:
        return (self.x_min, self.y_min, self.x_max, self.y_max)


@dataclass
class FrameResult:
    """Per-frame output of the pose pipeline."""

    frame_id: int
    timestamp: int
    crop_region: CropRegion | None
    persons: list[Person]
    inference_ms: float = 0.0
