"""Merge up to four point clouds into one cloud in a common frame."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

import numpy as np

logger = logging.getLogger(__name__)

MAX_INPUTS = 4


@dataclass(frozen=True)
class ConcatenateConfig:
    """Target frame, number of inputs to merge and output rate."""

    target_frame: str = "base_link"
    clouds: int = 2
    hz: float = 10.0

    def __post_init__(self) -> None:
        if self.hz <= 0:
            raise ValueError("hz must be positive")

    @property
    def period_ms(self) -> int:
        """Timer period in whole milliseconds."""
        return int(1000.0 / self.hz)


@dataclass
class _Slot:
    cloud: Any = None
    received: bool = False
    recent: bool = False


class PointcloudConcatenator:
    """Keeps the latest cloud of each input and merges them on demand.

    ``transform(cloud, target_frame)`` must return the cloud's points in the
    target frame as an array with one row per point.
    """

    def __init__(self, config: ConcatenateConfig | None,
                 transform: Callable[[Any, str], np.ndarray]) -> None:
        self.config = config if config is not None else ConcatenateConfig()
        self.transform = transform
        self._slots = [_Slot() for _ in range(MAX_INPUTS)]
        logger.info(
            "params: target_frame=%s clouds=%d hz=%.1f",
            self.config.target_frame, self.config.clouds, self.config.hz,
        )

    def receive(self, index: int, cloud: Any) -> None:
        """Store the newest cloud for input ``index`` (1 to 4)."""
        if not 1 <= index <= MAX_INPUTS:
            raise ValueError(f"input index must be 1..{MAX_INPUTS}, got {index}")
        slot = self._slots[index - 1]
        slot.cloud = cloud
        slot.received = True
        slot.recent = True

    def _points(self, cloud: Any) -> np.ndarray:
        return np.asarray(self.transform(cloud, self.config.target_frame), dtype=float)

    def update(self, has_subscribers: bool, stamp: Any) -> tuple[Any, np.ndarray] | None:
        """Merge the stored clouds; return ``(stamp, points)`` or None."""
        if not has_subscribers or self.config.clouds < 1:
            return None
        if not any(slot.received for slot in self._slots):
            logger.warning("No pointclouds received yet")
            return None

        first = self._slots[0]
        if not first.recent:
            logger.warning("Reusing last cloud1")
        first.recent = False
        if not first.received:
            logger.warning("Transform cloud1 failed")
            return None
        try:
            output = self._points(first.cloud)
        except Exception:
            logger.warning("Transform cloud1 failed")
            return None

        parts = [output]
        for slot in self._slots[1:self.config.clouds]:
            if not slot.received:
                continue
            if not slot.recent:
                logger.warning("Reusing last cloud")
            slot.recent = False
            parts.append(self._points(slot.cloud))

        return stamp, np.concatenate(parts, axis=0)