"""Command-line entry points: detect heads in a PLY file, or spin it in place."""

from __future__ import annotations

import argparse
import itertools
import math
import sys
import time
from typing import Iterator, NamedTuple, Optional

import numpy as np

from .cloud_utils import PlyError, load_ply
from .detector import Detector, HeadPose


class _Frame(NamedTuple):
    index: int
    angle_deg: float
    points: np.ndarray
    pose: Optional[HeadPose]


def rotate_z(points, angle_rad: float) -> np.ndarray:
    """Rotate an (N, 3) cloud about the +Z axis by ``angle_rad``."""
    pts = np.asarray(points, dtype=float)
    if pts.size == 0:
        return np.empty((0, 3))
    if pts.ndim != 2 or pts.shape[1] != 3:
        raise ValueError("points must have shape (N, 3)")
    c, s = math.cos(angle_rad), math.sin(angle_rad)
    rotation = np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])
    return pts @ rotation.T


def spin_frames(points, detector, step_deg: float = 5.0,
                detect_every: int = 5) -> Iterator[_Frame]:
    """Yield the cloud rotated a little further about Z on every frame.

    The detector runs only on every ``detect_every``-th frame; between runs
    the last result is carried forward. Each item holds the frame index, the
    rotation angle in degrees, the rotated points and the current pose.
    """
    if detect_every < 1:
        raise ValueError("detect_every must be at least 1")
    pts = np.asarray(points, dtype=float)
    angle = 0.0
    pose: Optional[HeadPose] = None
    for frame in itertools.count():
        rotated = rotate_z(pts, math.radians(angle))
        if frame % detect_every == 0:
            heads = detector.detect_heads(rotated)
            pose = heads[0] if heads else None
        yield _Frame(frame, angle, rotated, pose)
        angle += step_deg
        if angle >= 360.0:
            angle -= 360.0


def _format_pose(pose: HeadPose) -> str:
    return (
        f"x={pose.x:.3f} y={pose.y:.3f} z={pose.z:.3f} "
        f"yaw={pose.yaw:.3f} pitch={pose.pitch:.3f} roll={pose.roll:.3f}"
    )


def _load(path: str) -> Optional[np.ndarray]:
    try:
        return load_ply(path)
    except PlyError:
        print(f"Error reading {path}", file=sys.stderr)
        return None


def main(argv=None) -> int:
    """Detect heads in one PLY file and print their poses."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print("Usage: HeadDetector <file.ply>", file=sys.stderr)
        return 1
    path = args[0]
    cloud = _load(path)
    if cloud is None:
        return 1

    heads = Detector().detect_heads(cloud)
    print(f"Detected {len(heads)} head(s)")
    for i, pose in enumerate(heads):
        print(f"head {i}: {_format_pose(pose)}")
    return 0


def _realtime_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="HeadDetectorRealtime",
        description="Rotate a cloud about Z and detect the head periodically.",
    )
    parser.add_argument("path", help="PLY file to load")
    parser.add_argument("--step", type=float, default=5.0,
                        help="rotation per frame in degrees")
    parser.add_argument("--detect-every", type=int, default=5,
                        help="run the detector every N frames")
    parser.add_argument("--frames", type=int, default=None,
                        help="stop after this many frames (default: run until interrupted)")
    parser.add_argument("--interval", type=float, default=0.038,
                        help="pause between frames in seconds")
    return parser


def realtime_main(argv=None) -> int:
    """Spin a PLY cloud frame by frame and report the tracked head pose."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print("Usage: HeadDetectorRealtime <file.ply>", file=sys.stderr)
        return 1
    opts = _realtime_parser().parse_args(args)
    if opts.detect_every < 1:
        print("--detect-every must be at least 1", file=sys.stderr)
        return 1

    cloud = _load(opts.path)
    if cloud is None:
        return 1
    print(f"Loaded {len(cloud)} points")

    frames = spin_frames(cloud, Detector(), opts.step, opts.detect_every)
    if opts.frames is not None:
        frames = itertools.islice(frames, max(opts.frames, 0))
    try:
        for frame in frames:
            status = _format_pose(frame.pose) if frame.pose is not None else "no head"
            print(f"frame {frame.index} angle {frame.angle_deg:.1f}: {status}")
            if opts.interval > 0:
                time.sleep(opts.interval)
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())