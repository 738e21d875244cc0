"""Point-cloud file I/O and voxel-grid down-sampling."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

_PLY_TYPES = {
    "char": "i1", "int8": "i1",
    "uchar": "u1", "uint8": "u1",
    "short": "i2", "int16": "i2",
    "ushort": "u2", "uint16": "u2",
    "int": "i4", "int32": "i4",
    "uint": "u4", "uint32": "u4",
    "float": "f4", "float32": "f4",
    "double": "f8", "float64": "f8",
}

_FORMATS = {"ascii": None, "binary_little_endian": "<", "binary_big_endian": ">"}


class PlyError(ValueError):
    """A PLY file could not be read or is malformed."""


@dataclass
class _Property:
    name: str
    dtype: str
    count_dtype: str | None = None


@dataclass
class _Element:
    name: str
    count: int
    properties: list[_Property] = field(default_factory=list)

    @property
    def scalar_only(self) -> bool:
        return all(p.count_dtype is None for p in self.properties)


def _ply_type(name: str) -> str:
    try:
        return _PLY_TYPES[name]
    except KeyError:
        raise PlyError(f"unknown PLY property type {name!r}") from None


def _parse_header(raw: bytes) -> tuple[str, list[_Element], bytes]:
    if not raw.startswith(b"ply"):
        raise PlyError("missing 'ply' magic")
    end = raw.find(b"end_header")
    if end < 0:
        raise PlyError("missing end_header")
    newline = raw.find(b"\n", end)
    body = raw[newline + 1:] if newline >= 0 else b""
    lines = raw[:end].decode("ascii", errors="replace").splitlines()

    fmt: str | None = None
    elements: list[_Element] = []
    for line in lines[1:]:
        parts = line.split()
        if not parts or parts[0] in ("comment", "obj_info"):
            continue
        try:
            keyword = parts[0]
            if keyword == "format":
                fmt = parts[1]
                if fmt not in _FORMATS:
                    raise PlyError(f"unsupported PLY format {fmt!r}")
            elif keyword == "element":
                elements.append(_Element(parts[1], int(parts[2])))
            elif keyword == "property":
                if not elements:
                    raise PlyError("property before any element")
                if parts[1] == "list":
                    prop = _Property(parts[4], _ply_type(parts[3]), _ply_type(parts[2]))
                else:
                    prop = _Property(parts[2], _ply_type(parts[1]))
                elements[-1].properties.append(prop)
            else:
                raise PlyError(f"unexpected header line {line!r}")
        except (IndexError, ValueError) as exc:
            if isinstance(exc, PlyError):
                raise
            raise PlyError(f"malformed header line {line!r}") from exc
    if fmt is None:
        raise PlyError("missing format line")
    return fmt, elements, body


def _read_ascii(elements: list[_Element], body: bytes) -> dict[str, np.ndarray]:
    tokens = body.split()
    pos = 0
    try:
        for element in elements:
            scalars = [p for p in element.properties if p.count_dtype is None]
            if element.scalar_only:
                n = len(element.properties)
                block = tokens[pos:pos + element.count * n]
                if len(block) < element.count * n:
                    raise PlyError(f"truncated data in element {element.name!r}")
                pos += element.count * n
                table = np.array(block, dtype=float).reshape(element.count, n)
                columns = {p.name: table[:, i] for i, p in enumerate(element.properties)}
            else:
                collected: dict[str, list[float]] = {p.name: [] for p in scalars}
                for _ in range(element.count):
                    for prop in element.properties:
                        if prop.count_dtype is None:
                            collected[prop.name].append(float(tokens[pos]))
                            pos += 1
                        else:
                            pos += 1 + int(tokens[pos])
                if pos > len(tokens):
                    raise PlyError(f"truncated data in element {element.name!r}")
                columns = {k: np.array(v, dtype=float) for k, v in collected.items()}
            if element.name == "vertex":
                return columns
    except IndexError as exc:
        raise PlyError("truncated PLY data") from exc
    except ValueError as exc:
        if isinstance(exc, PlyError):
            raise
        raise PlyError("malformed PLY data") from exc
    raise PlyError("no vertex element")


def _read_binary(elements: list[_Element], body: bytes, endian: str) -> dict[str, np.ndarray]:
    offset = 0
    try:
        for element in elements:
            if element.count == 0:
                columns = {p.name: np.empty(0) for p in element.properties
                           if p.count_dtype is None}
            elif element.scalar_only:
                dtype = np.dtype([(p.name, endian + p.dtype) for p in element.properties])
                if offset + dtype.itemsize * element.count > len(body):
                    raise PlyError(f"truncated data in element {element.name!r}")
                rows = np.frombuffer(body, dtype=dtype, count=element.count, offset=offset)
                offset += dtype.itemsize * element.count
                columns = {p.name: rows[p.name].astype(float) for p in element.properties}
            else:
                collected: dict[str, list[float]] = {
                    p.name: [] for p in element.properties if p.count_dtype is None
                }
                for _ in range(element.count):
                    for prop in element.properties:
                        if prop.count_dtype is None:
                            dt = np.dtype(endian + prop.dtype)
                            collected[prop.name].append(
                                float(np.frombuffer(body, dtype=dt, count=1, offset=offset)[0])
                            )
                            offset += dt.itemsize
                        else:
                            cdt = np.dtype(endian + prop.count_dtype)
                            n = int(np.frombuffer(body, dtype=cdt, count=1, offset=offset)[0])
                            offset += cdt.itemsize + n * np.dtype(prop.dtype).itemsize
                if offset > len(body):
                    raise PlyError(f"truncated data in element {element.name!r}")
                columns = {k: np.array(v, dtype=float) for k, v in collected.items()}
            if element.name == "vertex":
                return columns
    except ValueError as exc:
        if isinstance(exc, PlyError):
            raise
        raise PlyError("truncated or malformed PLY data") from exc
    raise PlyError("no vertex element")


def load_ply(path) -> np.ndarray:
    """Read the x, y, z vertex coordinates of a PLY file as an (N, 3) array."""
    try:
        raw = Path(path).read_bytes()
    except OSError as exc:
        raise PlyError(f"could not read PLY file: {path}") from exc
    fmt, elements, body = _parse_header(raw)
    endian = _FORMATS[fmt]
    if endian is None:
        columns = _read_ascii(elements, body)
    else:
        columns = _read_binary(elements, body, endian)
    missing = [axis for axis in "xyz" if axis not in columns]
    if missing:
        raise PlyError(f"vertex element lacks properties: {', '.join(missing)}")
    return np.column_stack([columns["x"], columns["y"], columns["z"]]).reshape(-1, 3)


def save_ply(path, points) -> None:
    """Write points as a binary little-endian PLY with float x, y, z."""
    pts = np.asarray(points, dtype=float)
    if pts.size == 0:
        pts = pts.reshape(0, 3)
    if pts.ndim != 2 or pts.shape[1] != 3:
        raise ValueError("points must have shape (N, 3)")
    header = (
        "ply\n"
        "format binary_little_endian 1.0\n"
        f"element vertex {len(pts)}\n"
        "property float x\n"
        "property float y\n"
        "property float z\n"
        "end_header\n"
    )
    with open(path, "wb") as fh:
        fh.write(header.encode("ascii"))
        fh.write(pts.astype("<f4").tobytes())


def voxelize(points, leaf_size: float) -> np.ndarray:
    """Replace the points in each cubic voxel by their centroid.

    Non-finite points are dropped. Output is ordered by voxel index with x
    varying fastest, then y, then z.
    """
    if leaf_size <= 0:
        raise ValueError("leaf_size must be positive")
    pts = np.asarray(points, dtype=float)
    if pts.size == 0:
        return np.empty((0, 3))
    if pts.ndim != 2 or pts.shape[1] != 3:
        raise ValueError("points must have shape (N, 3)")
    pts = pts[np.all(np.isfinite(pts), axis=1)]
    if len(pts) == 0:
        return np.empty((0, 3))
    ijk = np.floor(pts / leaf_size).astype(np.int64)
    keys = ijk[:, ::-1]
    unique, inverse = np.unique(keys, axis=0, return_inverse=True)
    inverse = np.asarray(inverse).reshape(-1)
    counts = np.bincount(inverse, minlength=len(unique))
    sums = np.zeros((len(unique), 3))
    np.add.at(sums, inverse, pts)
    return sums / counts[:, None]