import numpy as np
import pytest

from posetrack.core.geometry import (
    bbox_area,
    bbox_iou,
    clamp_bbox,
    crop_bbox_to_int,
    intersect_bbox,
    keypoints_bbox,
    reproject_keypoints,
    reproject_person,
    to_absolute,
    to_normalized,
)
from posetrack.core.types import BodyPart, KeyPoint, Person


def test_clamp_bbox_swaps_and_clamps():
    out = clamp_bbox((200.0, 60.0, -10.0, -5.0), frame_w=100, frame_h=50)
    assert out == (0.0, 0.0, 100.0, 50.0)


def test_intersect_bbox_requires_overlap_on_both_axes():
    assert intersect_bbox((0, 0, 10, 10), (5, 5, 15, 15)) == (5, 5, 10, 10)
    # Touching edges do not overlap.
    assert intersect_bbox((0, 0, 10, 10), (10, 0, 20, 10)) is None
    assert intersect_bbox((0, 0, 10, 10), (0, 20, 10, 30)) is None


def test_bbox_iou_values():
    assert bbox_iou((0.0, 0.0, 10.0, 10.0), (20.0, 20.0, 30.0, 30.0)) == 0.0
    assert bbox_iou((0.0, 0.0, 10.0, 10.0), (0.0, 0.0, 10.0, 10.0)) == 1.0
    assert bbox_iou((0.0, 0.0, 10.0, 10.0), (1.0, 1.0, 11.0, 11.0)) == pytest.approx(81.0 / 119.0)
    assert bbox_iou((0.0, 0.0, 0.0, 0.0), (0.0, 0.0, 0.0, 0.0)) == 0.0
    assert bbox_area((0.0, 0.0, -1.0, 5.0)) == 0.0


def test_normalized_absolute_mapping():
    assert to_absolute((0.5, 0.25, 1.0, 1.0), 200, 100) == (100.0, 25.0, 200.0, 100.0)
    assert to_normalized((100.0, 25.0, 200.0, 100.0), 200, 100) == (0.5, 0.25, 1.0, 1.0)
    with pytest.raises(ValueError):
        to_normalized((0.0, 0.0, 1.0, 1.0), 0, 100)


def test_crop_bbox_to_int_keeps_negative_and_expands_degenerate():
    assert crop_bbox_to_int((-10.5, 2.2, 30.1, 40.0)) == (-11, 2, 31, 40)
    x1, y1, x2, y2 = crop_bbox_to_int((5.0, 5.0, 5.0, 5.0))
    assert (x2 - x1) == 1
    assert (y2 - y1) == 1


def _person(score=0.9):
    arr = np.zeros((17, 3), dtype=float)
    arr[:, 0] = np.arange(17) + 10.0
    arr[:, 1] = np.arange(17) + 20.0
    arr[:, 2] = score
    return Person.from_array(arr, bbox=(10.0, 20.0, 26.0, 36.0))


def test_reproject_keypoints_shifts_coordinates():
    kps = [KeyPoint(BodyPart.NOSE, (1.0, 2.0), 0.9)]
    out = reproject_keypoints(kps, dx=5.0, dy=-2.0)
    assert out[0].coordinate == (6.0, 0.0)
    assert out[0].score == 0.9
    assert out[0].body_part is BodyPart.NOSE


def test_reproject_person_shifts_bbox_and_keeps_id():
    p = _person().with_id(4)
    out = reproject_person(p, dx=100.0, dy=50.0)
    assert out.bbox == (110.0, 70.0, 126.0, 86.0)
    assert out.keypoints[0].coordinate == (110.0, 70.0)
    assert out.id == 4
    assert out.score == p.score


def test_keypoints_bbox_ignores_low_scores():
    arr = np.zeros((17, 3), dtype=float)
    arr[5] = (10.0, 20.0, 0.9)
    arr[12] = (40.0, 80.0, 0.9)
    arr[0] = (-100.0, -100.0, 0.1)
    p = Person.from_array(arr)
    assert keypoints_bbox(p.keypoints, min_score=0.2) == (10.0, 20.0, 40.0, 80.0)
    assert keypoints_bbox(p.keypoints, min_score=0.95) is None
