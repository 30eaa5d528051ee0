import numpy as np
import pytest

from posetrack.core.errors import MalformedPose
from posetrack.core.types import BodyPart, CropRegion, KeyPoint, Person


def _array(score=0.5):
    arr = np.zeros((17, 3), dtype=float)
    arr[:, 0] = np.arange(17)
    arr[:, 1] = np.arange(17) * 2
    arr[:, 2] = score
    return arr


def test_body_part_indices_are_dense():
    assert len(BodyPart) == 17
    assert [int(p) for p in BodyPart] == list(range(17))
    assert BodyPart.from_index(11) is BodyPart.LEFT_HIP
    assert BodyPart.from_index(16) is BodyPart.RIGHT_ANKLE


def test_body_part_out_of_range_raises():
    with pytest.raises(ValueError):
        BodyPart.from_index(17)
    with pytest.raises(ValueError):
        BodyPart.from_index(-1)


def test_person_from_array_scores_mean_of_keypoints():
    arr = _array()
    arr[0, 2] = 1.0
    p = Person.from_array(arr, bbox=(0.0, 0.0, 1.0, 1.0))
    assert p.id is None
    assert p.score == pytest.approx((16 * 0.5 + 1.0) / 17)
    assert p.keypoint(BodyPart.LEFT_SHOULDER).coordinate == (5.0, 10.0)
    np.testing.assert_allclose(p.to_array(), arr)


def test_person_rejects_wrong_keypoint_count():
    with pytest.raises(MalformedPose):
        Person.from_array(np.zeros((16, 3)))

    kps = [KeyPoint(BodyPart(i), (0.0, 0.0), 0.5) for i in range(16)]
    with pytest.raises(MalformedPose):
        Person(keypoints=tuple(kps), score=0.5)


def test_person_rejects_out_of_order_keypoints():
    kps = [KeyPoint(BodyPart(i), (0.0, 0.0), 0.5) for i in range(17)]
    kps[0], kps[1] = kps[1], kps[0]
    with pytest.raises(MalformedPose):
        Person.from_keypoints(kps)


def test_malformed_pose_is_a_value_error():
    with pytest.raises(ValueError):
        Person.from_array(np.zeros((17, 2)))


def test_with_id_returns_copy():
    p = Person.from_array(_array())
    tagged = p.with_id(3)
    assert tagged.id == 3
    assert p.id is None
    assert tagged.keypoints == p.keypoints


def test_crop_region_extents():
    region = CropRegion(0.25, -0.5, 0.75, 1.5)
    assert region.width == 0.5
    assert region.height == 2.0
    assert region.as_bbox() == (0.25, -0.5, 0.75, 1.5)
