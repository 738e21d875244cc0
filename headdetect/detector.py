"""Sliding-window Haar-cascade head detector over a solid integral volume."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from .integral_volume import IntegralVolume
from .masks import STAGE1, STAGE2, SYM_FB, SYM_LR, HaarMask

_WINDOW_CHUNK = 32


@dataclass(frozen=True)
class HeadPose:
    """Head centre in metres and its yaw, pitch and roll in radians."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    yaw: float = 0.0
    pitch: float = 0.0
    roll: float = 0.0


def _rotation_matrix(yaw: float, pitch: float, roll: float) -> np.ndarray:
    cy, sy = math.cos(yaw), math.sin(yaw)
    cp, sp = math.cos(pitch), math.sin(pitch)
    cr, sr = math.cos(roll), math.sin(roll)
    return np.array(
        [
            [cy * cp, cy * sp * sr - sy * cr, cy * sp * cr + sy * sr],
            [sy * cp, sy * sp * sr + cy * cr, sy * sp * cr - cy * sr],
            [-sp, cp * sr, cp * cr],
        ]
    )


def rot_zyx(yaw: float, pitch: float, roll: float,
            x: float, y: float, z: float) -> tuple[float, float, float]:
    """Rotate a vector by intrinsic Z-Y-X (yaw, pitch, roll) angles."""
    rx, ry, rz = _rotation_matrix(yaw, pitch, roll) @ np.array([x, y, z], dtype=float)
    return float(rx), float(ry), float(rz)


class _BoxSampler:
    """Vectorised inclusive box sums over an integral volume."""

    def __init__(self, volume: IntegralVolume) -> None:
        # A zero layer in front of each axis makes "index - 1" lookups safe.
        self._table = np.pad(volume.data, ((1, 0), (1, 0), (1, 0)))
        self._origin = np.asarray(volume.origin, dtype=float)
        self._limits = np.array([volume.nx, volume.ny, volume.nz], dtype=float)
        self._cell = volume.cell

    def _indices(self, v: np.ndarray) -> np.ndarray:
        i = np.trunc((v - self._origin) / self._cell)
        return np.clip(i, 0, self._limits).astype(np.int64)

    def sums(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        lo = self._indices(np.minimum(a, b))
        hi = self._indices(np.maximum(a, b))
        x0, y0, z0 = lo[..., 0], lo[..., 1], lo[..., 2]
        x1, y1, z1 = hi[..., 0] + 1, hi[..., 1] + 1, hi[..., 2] + 1
        t = self._table
        total = (
            t[z1, y1, x1]
            - t[z1, y1, x0]
            - t[z1, y0, x1]
            - t[z0, y1, x1]
            + t[z1, y0, x0]
            + t[z0, y1, x0]
            + t[z0, y0, x1]
            - t[z0, y0, x0]
        )
        empty = (x1 <= x0) | (y1 <= y0) | (z1 <= z0)
        return np.where(empty, 0, total)


def _box_arrays(boxes) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    d0 = np.array([(b.dx0, b.dy0, b.dz0) for b in boxes], dtype=float).reshape(-1, 3)
    d1 = np.array([(b.dx1, b.dy1, b.dz1) for b in boxes], dtype=float).reshape(-1, 3)
    w = np.array([b.w for b in boxes], dtype=float)
    return d0, d1, w


@dataclass(frozen=True)
class Detector:
    """3-D sliding-window head detector with a two-stage mask cascade.

    Stage 1 gates each window with axis-aligned masks; stage 2 scores every
    yaw/pitch/roll combination with rotated masks. At most the single best
    pose is returned, and only when its score is positive.
    """

    cell: float = 0.045
    step_factor: float = 2.5
    min_masks_hit: int = 3
    sym_thresh: float = 140.0
    sym_penalty: float = 2.5
    angle_steps: int = 9
    search_depth: float = 0.30
    stage1: tuple[HaarMask, ...] = STAGE1
    stage2: tuple[HaarMask, ...] = STAGE2

    def _angles(self) -> list[float]:
        step = 2.0 * math.pi / self.angle_steps
        return [i * step for i in range(self.angle_steps)]

    def _window_centres(self, volume: IntegralVolume) -> np.ndarray:
        min_x, max_x, min_y, max_y, _min_z, max_z = volume.bounds()
        step = self.cell * self.step_factor
        z0 = max_z - self.search_depth
        nx = int((max_x - min_x) / step)
        ny = int((max_y - min_y) / step)
        nz = int((max_z - z0) / step)
        if nx <= 0 or ny <= 0 or nz <= 0:
            return np.empty((0, 3))
        xs = min_x + np.arange(nx) * step
        ys = min_y + np.arange(ny) * step
        zs = z0 + np.arange(nz) * step
        grid = np.meshgrid(xs, ys, zs, indexing="ij")
        return np.stack(grid, axis=-1).reshape(-1, 3)

    def _stage1_pass(self, sampler: _BoxSampler, centres: np.ndarray) -> np.ndarray:
        ok = np.ones(len(centres), dtype=bool)
        c = centres[:, None, :]
        for mask in self.stage1:
            d0, d1, w = _box_arrays(mask.active_boxes())
            score = sampler.sums(c + d0, c + d1) @ w
            ok &= score > 0.0
        return ok

    def detect_heads(self, points) -> list[HeadPose]:
        """Return the best head pose in the cloud, or an empty list."""
        pts = np.asarray(points, dtype=float)
        if pts.size == 0:
            return []
        volume = IntegralVolume.from_points(pts, self.cell)
        sampler = _BoxSampler(volume)

        centres = self._window_centres(volume)
        if len(centres) == 0:
            return []
        candidates = centres[self._stage1_pass(sampler, centres)]
        if len(candidates) == 0 or len(self.stage2) < self.min_masks_hit:
            return []

        angles = self._angles()
        orientations = [(y, p, r) for y in angles for p in angles for r in angles]
        rotations = np.array([_rotation_matrix(*o) for o in orientations])

        prepared = []
        for mask in self.stage2:
            d0, d1, w = _box_arrays(mask.leading_boxes())
            r0 = np.einsum("oij,bj->obi", rotations, d0)
            r1 = np.einsum("oij,bj->obi", rotations, d1)
            symmetric = mask is SYM_LR or mask is SYM_FB
            prepared.append((symmetric, np.minimum(r0, r1), np.maximum(r0, r1), w))

        n_orient = len(orientations)
        best_score = -math.inf
        best_pose: HeadPose | None = None
        for start in range(0, len(candidates), _WINDOW_CHUNK):
            chunk = candidates[start:start + _WINDOW_CHUNK]
            c = chunk[:, None, None, :]
            valid = np.ones((len(chunk), n_orient), dtype=bool)
            occ = np.zeros((len(chunk), n_orient))
            sym = np.zeros((len(chunk), n_orient))
            for symmetric, lo, hi, w in prepared:
                ms = sampler.sums(c + lo, c + hi) @ w
                if symmetric:
                    d = np.abs(ms)
                    valid &= d <= self.sym_thresh
                    sym += d
                else:
                    valid &= ms > 0.0
                    occ += ms
            score = np.where(valid, occ - self.sym_penalty * sym, -np.inf)
            k = int(np.argmax(score))
            value = float(score.flat[k])
            if value > best_score:
                best_score = value
                wi, oi = divmod(k, n_orient)
                cx, cy, cz = (float(v) for v in chunk[wi])
                yaw, pitch, roll = orientations[oi]
                best_pose = HeadPose(cx, cy, cz, yaw, pitch, roll)

        if best_pose is not None and best_score > 0.0:
            return [best_pose]
        return []