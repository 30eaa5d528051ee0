from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

import cv2

from posetrack.core.config.presets import list_presets, preset_patch
from posetrack.core.config.settings import (
    PoseTrackSettings,
    crop_config_from_settings,
    load_settings,
    settings_to_dict,
    tracker_config_from_settings,
)
from posetrack.core.pipeline import PosePipeline, frame_result_to_dict
from posetrack.core.trackers.bounding_box import BoundingBoxTracker

logger = logging.getLogger(__name__)


class _DummyEstimator:
    def estimate(self, image, crop=None):  # pragma: no cover - trivial
        return []


def build_settings(args) -> PoseTrackSettings:
    data = settings_to_dict(load_settings())
    if args.preset:
        data.update(preset_patch(args.preset))
    if args.model:
        data["model_name"] = args.model
    if args.model_size:
        from posetrack.core.detectors.yolo import resolve_yolo11_pose_model

        data["model_name"] = resolve_yolo11_pose_model(None, args.model_size)
    if args.conf is not None:
        data["confidence"] = args.conf
    if args.no_crop:
        data["crop_enabled"] = False
    return PoseTrackSettings(**data)


def run(args):
    settings = build_settings(args)
    cap = cv2.VideoCapture(args.input)
    if not cap.isOpened():
        raise SystemExit(f"Cannot open video {args.input}")

    if args.mock:
        estimator = _DummyEstimator()
    else:
        from posetrack.core.detectors.yolo import YoloPoseEstimator

        estimator = YoloPoseEstimator(settings.model_name, conf=settings.confidence)

    pipeline = PosePipeline(
        estimator=estimator,
        tracker=BoundingBoxTracker(tracker_config_from_settings(settings)),
        crop_config=crop_config_from_settings(settings),
        crop_enabled=settings.crop_enabled,
        max_persons=settings.max_persons,
        suppress_inference_errors=True,
    )
    fps = cap.get(cv2.CAP_PROP_FPS) or 30.0
    outputs = []
    frame_index = 0
    while True:
        ok, frame = cap.read()
        if not ok:
            break
        # Frame index based timestamps stay strictly increasing even when the
        # container reports no position.
        timestamp_us = int(round(frame_index * 1_000_000 / fps))
        frame_index += 1
        result = pipeline.process(frame, timestamp_us)
        outputs.append(frame_result_to_dict(result))
        if args.max_frames and len(outputs) >= args.max_frames:
            break
    cap.release()
    pipeline.close()

    out_path = Path(args.output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(outputs, f, indent=2)
    logger.info("Wrote %d frame results to %s", len(outputs), out_path)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run pose tracking on a video")
    parser.add_argument("--input", required=True, help="Path to video file")
    parser.add_argument("--output", required=True, help="Where to save JSON output")
    parser.add_argument("--model", default=None, help="Override the pose model")
    parser.add_argument("--model-size", default=None, help="YOLO11 pose size: n|s|m|l|x")
    parser.add_argument("--conf", type=float, default=None)
    presets = list_presets()
    parser.add_argument(
        "--preset",
        default=None,
        choices=[p["id"] for p in presets],
        help="Tracker preset: " + ", ".join(f"{p['id']} ({p['label']})" for p in presets),
    )
    parser.add_argument("--no-crop", action="store_true", help="Always run on the full frame")
    parser.add_argument("--max-frames", type=int, default=0, help="Limit frames for quick tests")
    parser.add_argument(
        "--mock", action="store_true", help="Use dummy estimator (no model download)"
    )
    return parser


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    run(build_parser().parse_args())
