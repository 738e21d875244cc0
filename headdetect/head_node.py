"""Streaming head-detection pipeline: transform, range filter, detect, mark."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import numpy as np

from .detector import Detector, HeadPose

logger = logging.getLogger(__name__)

_WARN_PERIOD_S = 2.0


class TransformError(RuntimeError):
    """A cloud could not be brought into the target frame."""


@dataclass(frozen=True)
class NodeConfig:
    """Runtime parameters of the head-detection pipeline."""

    cloud_topic: str = "cloud_concatenated"
    target_frame: str = "world"
    detect_every: int = 1
    tf_timeout: float = 0.05
    max_distance: float = 2.5
    min_z: float = 1.4

    def __post_init__(self) -> None:
        if self.detect_every < 1:
            raise ValueError("detect_every must be at least 1")


@dataclass(frozen=True)
class Marker:
    """A translucent red cube placed at a detected head pose."""

    stamp: Any
    frame_id: str
    position: tuple[float, float, float]
    orientation: tuple[float, float, float, float]
    ns: str = "head_detector"
    marker_id: int = 0
    shape: str = "cube"
    action: str = "add"
    scale: tuple[float, float, float] = (0.25, 0.25, 0.25)
    color: tuple[float, float, float, float] = (1.0, 0.0, 0.0, 0.6)
    lifetime: float = 0.3


Transform = Callable[[np.ndarray, str, str, Any, float], np.ndarray]


def filter_cloud(points, max_distance: float, min_z: float) -> np.ndarray:
    """Keep finite points with XY radius <= max_distance and z >= min_z."""
    pts = np.asarray(points, dtype=float)
    if pts.size == 0:
        return np.empty((0, 3))
    if pts.ndim != 2 or pts.shape[1] != 3:
        raise ValueError("points must have shape (N, 3)")
    xy2 = pts[:, 0] ** 2 + pts[:, 1] ** 2
    z = pts[:, 2]
    with np.errstate(invalid="ignore"):
        keep = (
            np.isfinite(xy2)
            & np.isfinite(z)
            & (xy2 <= max_distance * max_distance)
            & (z >= min_z)
        )
    return pts[keep]


def quaternion_from_rpy(roll: float, pitch: float, yaw: float) -> tuple[float, float, float, float]:
    """Quaternion ``(x, y, z, w)`` for fixed-axis roll, pitch, yaw angles."""
    hr, hp, hy = roll * 0.5, pitch * 0.5, yaw * 0.5
    cr, sr = math.cos(hr), math.sin(hr)
    cp, sp = math.cos(hp), math.sin(hp)
    cy, sy = math.cos(hy), math.sin(hy)
    return (
        sr * cp * cy - cr * sp * sy,
        cr * sp * cy + sr * cp * sy,
        cr * cp * sy - sr * sp * cy,
        cr * cp * cy + sr * sp * sy,
    )


def _same_frame_only(points: np.ndarray, target_frame: str, source_frame: str,
                     stamp: Any, timeout: float) -> np.ndarray:
    if source_frame != target_frame:
        raise TransformError(
            f"no transform from {source_frame!r} to {target_frame!r}"
        )
    return points


@dataclass
class HeadDetectorPipeline:
    """Runs the detector on every Nth cloud and yields a marker for the best head."""

    config: NodeConfig = field(default_factory=NodeConfig)
    detector: Detector = field(default_factory=Detector)
    transform: Optional[Transform] = None

    def __init__(self, config: NodeConfig | None = None,
                 detector: Detector | None = None,
                 transform: Transform | None = None) -> None:
        self.config = config if config is not None else NodeConfig()
        self.detector = detector if detector is not None else Detector()
        self.transform = transform if transform is not None else _same_frame_only
        self._frame_count = 0
        self._last_warning: float | None = None
        logger.info(
            "head detector ready: input=%r target_frame=%r detect_every=%d "
            "tf_timeout=%.3f s max_distance(XY)=%.2f m min_z=%.2f m",
            self.config.cloud_topic, self.config.target_frame,
            self.config.detect_every, self.config.tf_timeout,
            self.config.max_distance, self.config.min_z,
        )

    def _warn_throttled(self, message: str, *args: Any) -> None:
        now = time.monotonic()
        if self._last_warning is None or now - self._last_warning >= _WARN_PERIOD_S:
            self._last_warning = now
            logger.warning(message, *args)

    def process(self, points, frame_id: str, stamp: Any) -> Marker | None:
        """Handle one incoming cloud; return a marker when a head is found."""
        index = self._frame_count
        self._frame_count += 1
        if index % self.config.detect_every != 0:
            return None

        try:
            cloud = np.asarray(
                self.transform(np.asarray(points, dtype=float), self.config.target_frame,
                               frame_id, stamp, self.config.tf_timeout),
                dtype=float,
            )
        except TransformError as exc:
            self._warn_throttled("TF lookup failed: %s", exc)
            return None

        cloud = filter_cloud(cloud, self.config.max_distance, self.config.min_z)
        if len(cloud) == 0:
            return None

        heads = self.detector.detect_heads(cloud)
        if not heads:
            return None
        return self._marker(heads[0], stamp)

    def _marker(self, pose: HeadPose, stamp: Any) -> Marker:
        return Marker(
            stamp=stamp,
            frame_id=self.config.target_frame,
            position=(pose.x, pose.y, pose.z),
            orientation=quaternion_from_rpy(pose.roll, pose.pitch, pose.yaw),
        )