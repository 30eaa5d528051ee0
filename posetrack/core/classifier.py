"""Pose classification on top of tracked keypoints.

The classification model is an injected callable; this module only prepares its
input vector and labels its output.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import numpy as np

from posetrack.core.types import NUM_KEYPOINTS, Person

PoseModel = Callable[[np.ndarray], np.ndarray]


def load_labels(path: str | Path) -> list[str]:
    """Read one label per non-empty line."""

    with open(path, encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip()]


def pose_to_input_vector(person: Person | None) -> np.ndarray:
    """Flatten a pose to a (1, 51) float32 vector of [y, x, score] per keypoint.

    A missing pose yields all zeros.
    """

    vec = np.zeros((1, NUM_KEYPOINTS * 3), dtype=np.float32)
    if person is None:
        return vec
    arr = person.to_array()
    vec[0, 0::3] = arr[:, 1]
    vec[0, 1::3] = arr[:, 0]
    vec[0, 2::3] = arr[:, 2]
    return vec


class PoseClassifier:
    """Labels a pose with per-class scores from an injected model."""

    def __init__(self, model: PoseModel, labels: Sequence[str]) -> None:
        self.model = model
        self.labels = list(labels)

    def classify(self, person: Person | None) -> list[tuple[str, float]]:
        scores = np.asarray(self.model(pose_to_input_vector(person)), dtype=np.float64).reshape(-1)
        if scores.shape[0] != len(self.labels):
            raise ValueError(f"model returned {scores.shape[0]} scores for {len(self.labels)} labels")
        return [(label, float(score)) for label, score in zip(self.labels, scores, strict=True)]

    def close(self) -> None:
        close = getattr(self.model, "close", None)
        if callable(close):
            close()
