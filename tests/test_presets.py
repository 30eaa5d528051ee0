import pytest

from posetrack.core.config.presets import PRESETS, list_presets, preset_patch
from posetrack.core.config.settings import PoseTrackSettings


def test_list_presets_labels_every_preset():
    items = list_presets()
    assert [p["id"] for p in items] == list(PRESETS.keys())
    assert all(p["label"] for p in items)


def test_preset_patch_returns_copy():
    patch = preset_patch("single_person")
    patch["max_persons"] = 99
    assert PRESETS["single_person"]["max_persons"] == 1


def test_unknown_preset_raises():
    with pytest.raises(KeyError):
        preset_patch("nope")


@pytest.mark.parametrize("preset_id", list(PRESETS.keys()))
def test_presets_are_valid_settings(preset_id):
    settings = PoseTrackSettings(**preset_patch(preset_id))
    assert settings.tracker_max_tracks == PRESETS[preset_id]["tracker_max_tracks"]
