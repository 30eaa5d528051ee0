from __future__ import annotations

import itertools
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

import numpy as np

from posetrack.core.errors import DimensionMismatch
from posetrack.core.types import Person

logger = logging.getLogger(__name__)


class SimilarityStrategy(Protocol):
    """Scores how likely a detection and a tracked pose belong to the same person.

    Strategies may also provide `similarity_matrix(detections, tracks)` to score
    every pair at once; the tracker uses it when present.
    """

    def similarity(self, detection: Person, track: Person) -> float:
        """Return a score in [0, 1]; larger means more similar."""


@dataclass(frozen=True)
class TrackerConfig:
    """Tracker limits.

    `max_age` uses the same unit as the timestamps passed to `update`
    (microseconds).
    """

    max_age: int = 1_000_000
    max_tracks: int = 18
    min_similarity: float = 0.15

    def __post_init__(self) -> None:
        if self.max_age < 0:
            raise ValueError("max_age must be >= 0")
        if self.max_tracks < 1:
            raise ValueError("max_tracks must be >= 1")
        if not 0.0 <= self.min_similarity <= 1.0:
            raise ValueError("min_similarity must be in [0, 1]")


@dataclass(frozen=True)
class Track:
    """Latest pose snapshot for one identity and when it was last seen."""

    person: Person
    last_timestamp: int

    @property
    def id(self) -> int | None:
        return self.person.id


class PoseTracker:
    """Greedy multi-person tracker with a pluggable similarity strategy.

    Each update drops tracks older than `max_age`, links detections to the most
    similar unmatched track (detections are visited in caller order, which must
    be most confident first), spawns tracks for the rest and keeps only the
    `max_tracks` most recently seen tracks. Track ids start at 1 and are never
    reused, including after `reset()`.
    """

    def __init__(self, config: TrackerConfig | None = None, similarity: SimilarityStrategy | None = None) -> None:
        if similarity is None:
            from posetrack.core.trackers.bounding_box import BoundingBoxSimilarity

            similarity = BoundingBoxSimilarity()
        self.config = config or TrackerConfig()
        self.similarity = similarity
        self._tracks: list[Track] = []
        self._id_iter = itertools.count(1)

    @property
    def tracks(self) -> tuple[Track, ...]:
        return tuple(self._tracks)

    def reset(self) -> None:
        """Drop every track. Ids keep counting up from where they were."""

        self._tracks = []

    def compute_similarity(self, detections: Sequence[Person], tracks: Sequence[Track]) -> list[list[float]]:
        """Return the [num_detections][num_tracks] similarity matrix.

        Raises `DimensionMismatch` when a strategy's matrix has any other shape.
        """

        if not detections or not tracks:
            return []
        matrix_fn = getattr(self.similarity, "similarity_matrix", None)
        if matrix_fn is None:
            return [[float(self.similarity.similarity(det, track.person)) for track in tracks] for det in detections]

        expected = (len(detections), len(tracks))
        try:
            matrix = np.asarray(matrix_fn(detections, [track.person for track in tracks]), dtype=float)
        except (TypeError, ValueError) as e:
            raise DimensionMismatch(f"similarity matrix is not a {expected[0]} x {expected[1]} array") from e
        if matrix.ndim != 2 or matrix.shape != expected:
            raise DimensionMismatch(
                f"similarity matrix has shape {matrix.shape}, expected {expected[0]} x {expected[1]}"
            )
        return matrix.tolist()

    def update(self, detections: Sequence[Person], timestamp: int) -> list[Person]:
        """Assign track ids to `detections` observed at `timestamp` (microseconds).

        Returns id-tagged copies of the detections, in input order.
        """

        detections_list = list(detections)
        alive = [t for t in self._tracks if timestamp - t.last_timestamp <= self.config.max_age]

        sim = self.compute_similarity(detections_list, alive)

        expired = len(self._tracks) - len(alive)
        if expired:
            logger.debug("Expired %d track(s) at t=%d", expired, timestamp)

        tracks = list(alive)
        out: list[Person | None] = [None] * len(detections_list)
        unmatched_tracks = list(range(len(tracks)))
        unmatched_dets: list[int] = []

        for di, det in enumerate(detections_list):
            if not unmatched_tracks:
                unmatched_dets.append(di)
                continue

            best_ti = -1
            best_sim = -1.0
            for ti in unmatched_tracks:
                s = sim[di][ti]
                # A zero score never links, whatever the threshold.
                if s > 0.0 and s >= self.config.min_similarity and s > best_sim:
                    best_ti = ti
                    best_sim = s

            if best_ti < 0:
                unmatched_dets.append(di)
                continue

            track_id = tracks[best_ti].id
            tagged = det.with_id(track_id)
            tracks[best_ti] = Track(person=tagged, last_timestamp=timestamp)
            out[di] = tagged
            unmatched_tracks.remove(best_ti)

        for di in unmatched_dets:
            new_id = next(self._id_iter)
            tagged = detections_list[di].with_id(new_id)
            tracks.append(Track(person=tagged, last_timestamp=timestamp))
            out[di] = tagged
            logger.debug("Spawned track %d at t=%d", new_id, timestamp)

        # Stable sort: equally recent tracks keep their existing order.
        tracks.sort(key=lambda t: t.last_timestamp, reverse=True)
        evicted = tracks[self.config.max_tracks :]
        if evicted:
            logger.debug("Evicted track(s) %s over capacity", [t.id for t in evicted])
        self._tracks = tracks[: self.config.max_tracks]

        return [p for p in out if p is not None]

