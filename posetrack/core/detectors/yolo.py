"""Ultralytics YOLO pose model integration.

Keypoints are returned in full-image pixel coordinates: the estimator runs on
the requested crop and shifts results back by the crop offset.
"""

from __future__ import annotations

import importlib
import logging
from contextlib import nullcontext
from typing import Any

import numpy as np
from ultralytics import YOLO

from posetrack.core.geometry import clamp_bbox, crop_bbox_to_int, reproject_person
from posetrack.core.types import NUM_KEYPOINTS, BBox, Person

logger = logging.getLogger(__name__)

YOLO11_POSE_MODEL_SIZES = ("n", "s", "m", "l", "x")
YOLO11_POSE_DEFAULT_MODEL = "yolo11n-pose.pt"


def resolve_yolo11_pose_model(model_name: str | None, model_size: str | None) -> str:
    """Resolve the YOLO11 pose model name from an optional size override."""

    if model_size:
        size = str(model_size).strip().lower()
        if size not in YOLO11_POSE_MODEL_SIZES:
            raise ValueError("model_size must be one of: n, s, m, l, x")
        return f"yolo11{size}-pose.pt"
    return model_name or YOLO11_POSE_DEFAULT_MODEL


def crop_image(image: np.ndarray, bbox: BBox) -> tuple[np.ndarray, int, int]:
    """Cut `bbox` out of `image`, zero-padding whatever lies outside the image.

    Returns (crop, x_offset, y_offset) where the offsets are the crop's top-left
    corner in image coordinates.
    """

    h, w = image.shape[:2]
    x1, y1, x2, y2 = crop_bbox_to_int(bbox)
    out_shape = (y2 - y1, x2 - x1) + tuple(image.shape[2:])
    out = np.zeros(out_shape, dtype=image.dtype)

    vx1, vy1, vx2, vy2 = (int(v) for v in clamp_bbox((x1, y1, x2, y2), w, h))
    if vx2 > vx1 and vy2 > vy1:
        out[vy1 - y1 : vy2 - y1, vx1 - x1 : vx2 - x1] = image[vy1:vy2, vx1:vx2]
    return out, x1, y1


def _to_numpy(value: Any) -> np.ndarray:
    if hasattr(value, "cpu"):
        value = value.cpu()
    return value.numpy() if hasattr(value, "numpy") else np.asarray(value)


class YoloPoseEstimator:
    """Pose estimator wrapper around an Ultralytics YOLO pose model."""

    def __init__(self, model_name: str = YOLO11_POSE_DEFAULT_MODEL, conf: float = 0.3) -> None:
        self.model_name = model_name
        self.is_onnx = model_name.lower().endswith(".onnx")
        self.device: str = "cpu"
        self._torch_inference_mode: Any | None = None
        if not self.is_onnx:
            try:
                torch = importlib.import_module("torch")
                self._torch_inference_mode = torch.inference_mode
            except ImportError:
                self._torch_inference_mode = None

        logger.info("Loading pose model %s", model_name)
        self.model = YOLO(model_name, task="pose")
        self.conf = conf
        self._predict_kwargs = {
            "conf": self.conf,
            "verbose": False,
            "classes": [0],
            "device": self.device,
        }

    def estimate(self, image: np.ndarray, crop: BBox | None = None) -> list[Person]:
        """Run the pose model on `crop` (pixel bbox) of `image`, or the whole image."""

        if crop is not None:
            frame, dx, dy = crop_image(image, crop)
        else:
            frame, dx, dy = image, 0, 0

        infer_ctx = (
            self._torch_inference_mode()
            if self._torch_inference_mode is not None
            else nullcontext()
        )
        with infer_ctx:
            results = self.model.predict(frame, **self._predict_kwargs)

        if not results:
            return []
        result = results[0]
        boxes = getattr(result, "boxes", None)
        kpts = getattr(result, "keypoints", None)
        if boxes is None or len(boxes) == 0 or kpts is None or kpts.data is None:
            return []

        xyxy_np = _to_numpy(boxes.xyxy)
        kpts_np = _to_numpy(kpts.data)
        if kpts_np.ndim != 3 or kpts_np.shape[1] != NUM_KEYPOINTS:
            logger.debug("Ignoring keypoints of unexpected shape %s", kpts_np.shape)
            return []
        if kpts_np.shape[2] < 3:
            # Models without visibility output: treat every keypoint as confident.
            kpts_np = np.concatenate([kpts_np, np.ones(kpts_np.shape[:2] + (1,))], axis=2)

        out: list[Person] = []
        for bbox, kp in zip(xyxy_np, kpts_np, strict=False):
            person = Person.from_array(
                kp[:, :3],
                bbox=(float(bbox[0]), float(bbox[1]), float(bbox[2]), float(bbox[3])),
            )
            out.append(reproject_person(person, float(dx), float(dy)))
        return out
