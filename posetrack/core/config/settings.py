"""Pose tracking configuration.

Settings are loaded from YAML defaults and overridden by environment variables
prefixed with `PTK_`.
"""

from __future__ import annotations

import importlib
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any, cast

import pydantic
import yaml
from pydantic import Field

from posetrack.core.crop import CropConfig
from posetrack.core.trackers.base import TrackerConfig

_pydantic_field_validator = getattr(pydantic, "field_validator", None)
if _pydantic_field_validator is not None:
    _field_validator: Callable[..., Any] = _pydantic_field_validator
else:
    # Pydantic v1: allow module reloads in tests without "duplicate validator" errors.
    def _field_validator(*args: Any, **kwargs: Any) -> Callable[..., Any]:
        kwargs.setdefault("allow_reuse", True)
        return pydantic.validator(*args, **kwargs)

try:
    _pydantic_settings = importlib.import_module("pydantic_settings")
except ModuleNotFoundError:
    _pydantic_settings = None

if _pydantic_settings is not None:
    BaseSettings = cast(Any, _pydantic_settings.BaseSettings)
    SettingsConfigDict = getattr(_pydantic_settings, "SettingsConfigDict", None)
else:
    try:
        # Pydantic v1
        from pydantic import BaseSettings
    except ImportError:
        # Pydantic v2 without pydantic-settings.
        from pydantic.v1 import BaseSettings

    SettingsConfigDict = None


class PoseTrackSettings(BaseSettings):
    """Runtime configuration loaded from YAML defaults and `PTK_` env overrides."""

    model_name: str = Field("yolo11n-pose.pt")
    confidence: float = 0.3

    # Tracker. Age is configured in milliseconds; the tracker works in microseconds.
    tracker_max_age_ms: int = 1000
    tracker_max_tracks: int = 18
    tracker_min_similarity: float = 0.15

    # Crop region estimation from the previous frame's keypoints.
    crop_enabled: bool = True
    crop_min_keypoint_score: float = 0.2
    crop_torso_expansion_ratio: float = 1.9
    crop_body_expansion_ratio: float = 1.2

    max_persons: int = 6

    # Pydantic v2 uses model_config; Pydantic v1 uses inner Config.
    if SettingsConfigDict is not None:
        model_config = SettingsConfigDict(
            env_prefix="PTK_", validate_assignment=True, protected_namespaces=()
        )
    else:

        class Config:
            env_prefix = "PTK_"
            validate_assignment = True

    @_field_validator("confidence")
    def _validate_confidence(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError("confidence must be in (0, 1]")
        return v

    @_field_validator("tracker_max_age_ms")
    def _validate_tracker_max_age_ms(cls, v: int) -> int:
        if v < 0:
            raise ValueError("tracker_max_age_ms must be >= 0")
        return int(v)

    @_field_validator("tracker_max_tracks")
    def _validate_tracker_max_tracks(cls, v: int) -> int:
        if v < 1:
            raise ValueError("tracker_max_tracks must be >= 1")
        return int(v)

    @_field_validator("tracker_min_similarity", "crop_min_keypoint_score")
    def _validate_unit_interval(cls, v: float) -> float:
        if not 0.0 <= float(v) <= 1.0:
            raise ValueError("value must be in [0, 1]")
        return float(v)

    @_field_validator("crop_torso_expansion_ratio", "crop_body_expansion_ratio")
    def _validate_expansion_ratio(cls, v: float) -> float:
        if float(v) <= 0.0:
            raise ValueError("expansion ratio must be > 0")
        return float(v)

    @_field_validator("max_persons")
    def _validate_max_persons(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_persons must be >= 1")
        return int(v)


def settings_to_dict(settings: PoseTrackSettings) -> dict[str, Any]:
    """Convert settings to a plain dict (supports Pydantic v1 and v2)."""

    if hasattr(settings, "model_dump"):
        return cast(dict[str, Any], settings.model_dump())
    return cast(dict[str, Any], settings.dict())


def _fields_set(obj: object) -> set[str]:
    """Return the set of fields explicitly provided/overridden on a Pydantic model."""

    fields_set = getattr(obj, "model_fields_set", None)
    if fields_set is not None:
        return set(fields_set)
    return set(getattr(obj, "__fields_set__", set()))


def _config_path() -> Path:
    """Return the YAML configuration path (defaults to config/posetrack.config.yml)."""

    return Path(os.getenv("PTK_CONFIG", "config/posetrack.config.yml"))


def load_settings() -> PoseTrackSettings:
    """Load settings from YAML and environment variables.

    YAML provides defaults; environment variables override.
    """

    data: dict[str, Any] = {}
    path = _config_path()
    if path.exists():
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    env_settings = PoseTrackSettings()
    env_overrides: dict[str, Any] = {
        name: getattr(env_settings, name) for name in _fields_set(env_settings)
    }

    merged = {**data, **env_overrides}
    return PoseTrackSettings(**merged)


def tracker_config_from_settings(settings: PoseTrackSettings) -> TrackerConfig:
    return TrackerConfig(
        max_age=settings.tracker_max_age_ms * 1000,
        max_tracks=settings.tracker_max_tracks,
        min_similarity=settings.tracker_min_similarity,
    )


def crop_config_from_settings(settings: PoseTrackSettings) -> CropConfig:
    return CropConfig(
        min_keypoint_score=settings.crop_min_keypoint_score,
        torso_expansion_ratio=settings.crop_torso_expansion_ratio,
        body_expansion_ratio=settings.crop_body_expansion_ratio,
    )
