"""Exceptions raised for contract violations.

Degenerate geometry, unmatched detections and stale tracks are regular outcomes
and never raise.
"""

from __future__ import annotations


class PoseTrackError(Exception):
    """Base class for errors raised by the pose tracking core."""


class MalformedPose(PoseTrackError, ValueError):
    """A pose does not carry exactly one keypoint per body part, in order."""


class DimensionMismatch(PoseTrackError, ValueError):
    """A similarity matrix does not match the detection and track counts."""
