from __future__ import annotations

from typing import Any


# Tracker presets. Each is a partial settings patch applied over the loaded
# settings.
#
# Notes:
# - tracker_max_age_ms: how long an unseen person keeps their id
# - tracker_min_similarity: lower values keep ids through fast motion but swap
#   ids more easily between people standing close together
# - crop_enabled: the torso-centered crop only helps when one person dominates


PRESETS: dict[str, dict[str, Any]] = {
    # One subject filling most of the frame (fitness, physio).
    "single_person": {
        "tracker_max_age_ms": 1000,
        "tracker_max_tracks": 1,
        "tracker_min_similarity": 0.1,
        "crop_enabled": True,
        "max_persons": 1,
    },
    # A few people, moderate motion.
    "multi_person": {
        "tracker_max_age_ms": 1000,
        "tracker_max_tracks": 18,
        "tracker_min_similarity": 0.15,
        "crop_enabled": False,
        "max_persons": 6,
    },
    # Many overlapping people; require tighter overlap before linking.
    "crowded": {
        "tracker_max_age_ms": 500,
        "tracker_max_tracks": 32,
        "tracker_min_similarity": 0.3,
        "crop_enabled": False,
        "max_persons": 16,
    },
}


PRESET_LABELS: dict[str, str] = {
    "single_person": "Single person",
    "multi_person": "Multi person",
    "crowded": "Crowded",
}


def list_presets() -> list[dict[str, Any]]:
    return [
        {
            "id": preset_id,
            "label": PRESET_LABELS.get(preset_id, preset_id),
            "settings": PRESETS[preset_id],
        }
        for preset_id in PRESETS.keys()
    ]


def preset_patch(preset_id: str) -> dict[str, Any]:
    if preset_id not in PRESETS:
        raise KeyError(preset_id)
    return dict(PRESETS[preset_id])
