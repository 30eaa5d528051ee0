from pathlib import Path

import pytest

from posetrack.core.config import settings as cfg
from posetrack.core.crop import CropConfig
from posetrack.core.trackers.base import TrackerConfig


def test_load_settings_reads_updated_file(tmp_path: Path, monkeypatch):
    conf_path = tmp_path / "config.yml"
    conf_path.write_text("tracker_max_tracks: 4\ntracker_min_similarity: 0.3\n", encoding="utf-8")
    monkeypatch.setenv("PTK_CONFIG", str(conf_path))

    first = cfg.load_settings()
    assert first.tracker_max_tracks == 4
    assert first.tracker_min_similarity == 0.3

    conf_path.write_text("tracker_max_tracks: 2\ntracker_min_similarity: 0.5\n", encoding="utf-8")

    second = cfg.load_settings()
    assert second.tracker_max_tracks == 2
    assert second.tracker_min_similarity == 0.5


def test_env_overrides_yaml(tmp_path: Path, monkeypatch):
    conf_path = tmp_path / "config.yml"
    conf_path.write_text("tracker_max_age_ms: 250\nmax_persons: 3\n", encoding="utf-8")
    monkeypatch.setenv("PTK_CONFIG", str(conf_path))
    monkeypatch.setenv("PTK_TRACKER_MAX_AGE_MS", "2000")

    settings = cfg.load_settings()
    assert settings.tracker_max_age_ms == 2000
    assert settings.max_persons == 3


def test_missing_config_file_uses_defaults(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("PTK_CONFIG", str(tmp_path / "missing.yml"))
    settings = cfg.load_settings()
    assert settings.tracker_max_tracks == 18
    assert settings.crop_enabled is True


def test_validation():
    with pytest.raises(ValueError):
        cfg.PoseTrackSettings(confidence=0.0)
    with pytest.raises(ValueError):
        cfg.PoseTrackSettings(tracker_max_age_ms=-1)
    with pytest.raises(ValueError):
        cfg.PoseTrackSettings(tracker_max_tracks=0)
    with pytest.raises(ValueError):
        cfg.PoseTrackSettings(tracker_min_similarity=1.1)
    with pytest.raises(ValueError):
        cfg.PoseTrackSettings(crop_min_keypoint_score=-0.1)
    with pytest.raises(ValueError):
        cfg.PoseTrackSettings(crop_torso_expansion_ratio=0.0)
    with pytest.raises(ValueError):
        cfg.PoseTrackSettings(max_persons=0)


def test_settings_to_dict_round_trips():
    settings = cfg.PoseTrackSettings(max_persons=2)
    data = cfg.settings_to_dict(settings)
    assert data["max_persons"] == 2
    assert cfg.settings_to_dict(cfg.PoseTrackSettings(**data)) == data


def test_component_configs_from_settings():
    settings = cfg.PoseTrackSettings(
        tracker_max_age_ms=1500,
        tracker_max_tracks=5,
        tracker_min_similarity=0.25,
        crop_min_keypoint_score=0.3,
        crop_torso_expansion_ratio=2.0,
        crop_body_expansion_ratio=1.5,
    )
    assert cfg.tracker_config_from_settings(settings) == TrackerConfig(
        max_age=1_500_000, max_tracks=5, min_similarity=0.25
    )
    assert cfg.crop_config_from_settings(settings) == CropConfig(
        min_keypoint_score=0.3, torso_expansion_ratio=2.0, body_expansion_ratio=1.5
    )
