"""Summed-volume table built from a shell point cloud."""

from __future__ import annotations

import math

import numpy as np


class IntegralVolume:
    """Inclusive 3-D prefix sum over a regular voxel grid.

    The grid has ``(nx+1) x (ny+1) x (nz+1)`` cells of edge ``cell``
    starting at the origin ``(ox, oy, oz)``. Box sums are O(1).
    """

    def __init__(self, nx: int, ny: int, nz: int, cell: float,
                 ox: float, oy: float, oz: float) -> None:
        if cell <= 0:
            raise ValueError("cell must be positive")
        self._nx, self._ny, self._nz = int(nx), int(ny), int(nz)
        self._cell = float(cell)
        self._ox, self._oy, self._oz = float(ox), float(oy), float(oz)
        self._data = np.zeros((self._nz + 1, self._ny + 1, self._nx + 1), dtype=np.int64)

    @classmethod
    def from_points(cls, points, cell: float) -> "IntegralVolume":
        """Voxelise a closed shell, fill its interior and build the table."""
        pts = np.asarray(points, dtype=float)
        if pts.size == 0:
            raise ValueError("empty cloud")
        if pts.ndim != 2 or pts.shape[1] < 3:
            raise ValueError("points must have shape (N, 3)")
        pts = pts[:, :3]
        if not np.all(np.isfinite(pts)):
            raise ValueError("points must be finite")
        if cell <= 0:
            raise ValueError("cell must be positive")

        mins = pts.min(axis=0) - 0.5 * cell
        maxs = pts.max(axis=0)
        nx, ny, nz = (int(v) + 1 for v in (maxs - mins) / cell)
        volume = cls(nx, ny, nz, cell, *mins)

        idx = np.trunc((pts - mins) / cell).astype(np.int64)
        idx = np.clip(idx, 0, [nx, ny, nz])
        shell = np.zeros((nz + 1, ny + 1, nx + 1), dtype=bool)
        shell[idx[:, 2], idx[:, 1], idx[:, 0]] = True

        outside = _flood_outside(~shell)
        occupied = (~outside).astype(np.int64)
        for axis in (2, 1, 0):
            np.cumsum(occupied, axis=axis, out=occupied)
        volume._data = occupied
        return volume

    @property
    def nx(self) -> int:
        return self._nx

    @property
    def ny(self) -> int:
        return self._ny

    @property
    def nz(self) -> int:
        return self._nz

    @property
    def cell(self) -> float:
        return self._cell

    @property
    def origin(self) -> tuple[float, float, float]:
        return (self._ox, self._oy, self._oz)

    @property
    def data(self) -> np.ndarray:
        """Read-only prefix-sum table indexed ``[z, y, x]``."""
        view = self._data.view()
        view.flags.writeable = False
        return view

    def bounds(self) -> tuple[float, float, float, float, float, float]:
        """World extents as ``(min_x, max_x, min_y, max_y, min_z, max_z)``."""
        return (
            self._ox, self._ox + self._nx * self._cell,
            self._oy, self._oy + self._ny * self._cell,
            self._oz, self._oz + self._nz * self._cell,
        )

    def _index(self, v: float, origin: float, n: int) -> int:
        i = math.trunc((v - origin) / self._cell)
        return min(max(i, 0), n)

    def _at(self, x: int, y: int, z: int) -> int:
        if x < 0 or y < 0 or z < 0:
            return 0
        return int(self._data[z, y, x])

    def sum(self, x0: float, y0: float, z0: float,
            x1: float, y1: float, z1: float) -> int:
        """Occupied-voxel count in the inclusive, clamped world-space box."""
        x0, x1 = sorted((x0, x1))
        y0, y1 = sorted((y0, y1))
        z0, z1 = sorted((z0, z1))

        ix0 = self._index(x0, self._ox, self._nx)
        iy0 = self._index(y0, self._oy, self._ny)
        iz0 = self._index(z0, self._oz, self._nz)
        ix1 = self._index(x1, self._ox, self._nx)
        iy1 = self._index(y1, self._oy, self._ny)
        iz1 = self._index(z1, self._oz, self._nz)
        if ix1 < ix0 or iy1 < iy0 or iz1 < iz0:
            return 0

        at = self._at
        return (
            at(ix1, iy1, iz1)
            - at(ix0 - 1, iy1, iz1)
            - at(ix1, iy0 - 1, iz1)
            - at(ix1, iy1, iz0 - 1)
            + at(ix0 - 1, iy0 - 1, iz1)
            + at(ix0 - 1, iy1, iz0 - 1)
            + at(ix1, iy0 - 1, iz0 - 1)
            - at(ix0 - 1, iy0 - 1, iz0 - 1)
        )


def _flood_outside(empty: np.ndarray) -> np.ndarray:
    """Mark empty cells 6-connected to any face of the grid."""
    seed = np.zeros_like(empty)
    seed[0, :, :] = seed[-1, :, :] = True
    seed[:, 0, :] = seed[:, -1, :] = True
    seed[:, :, 0] = seed[:, :, -1] = True
    outside = seed & empty
    while True:
        grown = outside.copy()
        grown[1:] |= outside[:-1]
        grown[:-1] |= outside[1:]
        grown[:, 1:] |= outside[:, :-1]
        grown[:, :-1] |= outside[:, 1:]
        grown[:, :, 1:] |= outside[:, :, :-1]
        grown[:, :, :-1] |= outside[:, :, 1:]
        grown &= empty
        if np.array_equal(grown, outside):
            return outside
        outside = grown