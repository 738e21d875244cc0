# headdetect

headdetect finds a human head in a 3-D point cloud. It uses a sliding-window
Haar cascade over a solid integral volume.

The cloud is taken to be a *shell*: points that lie on the surface of a body.
The detector flood-fills that shell into a solid voxel grid. It then builds an
inclusive 3-D prefix sum, so the number of occupied voxels in any axis-aligned
box is an O(1) lookup.

The search runs in two stages:

- **Stage 1** is a coarse, axis-aligned "sphere gate". It rejects windows that
  do not look like a head-sized blob.
- **Stage 2** scores each remaining window against three masks at every
  combination of yaw, pitch and roll. The masks are a sphere on a neck
  ("lollipop"), the same with shoulders added, and an axis cross. By default
  the angles are 9 steps over a full turn.

Windows are placed over the whole XY extent of the cloud and over its top
0.30 m in Z. The result is the single best pose, and only when its score is
positive; otherwise it is an empty list.

## Installation

```
pip install .
```

The only runtime dependency is numpy. To run the tests:

```
pip install .[test]
pytest
```

## Command line

Detect a head in an ASCII or binary PLY file:

```
headdetect scan.ply
```

The command prints `Detected N head(s)`, followed by one line for each pose
found. Each line gives the head's centre in metres and its yaw, pitch and roll
in radians. If the file cannot be read, the command prints an error and exits
with status 1.

Spin the cloud about the Z axis and run the detector periodically:

```
headdetect-realtime scan.ply
```

It prints the number of points loaded, then one line per frame: the frame
index, the rotation angle and the current head pose, or `no head`. It runs
until interrupted. These options change its behaviour:

| Option           | Default | Meaning                                     |
|------------------|---------|---------------------------------------------|
| `--step`         | 5.0     | rotation per frame, in degrees              |
| `--detect-every` | 5       | run the detector every N frames             |
| `--frames`       | none    | stop after this many frames                 |
| `--interval`     | 0.038   | pause between frames, in seconds            |

Between detector runs, the last pose found is carried forward.

## Library use

```python
from headdetect.cloud_utils import load_ply, voxelize
from headdetect.detector import Detector

points = load_ply("scan.ply")          # (N, 3) float array
points = voxelize(points, 0.01)        # optional down-sampling

heads = Detector().detect_heads(points)
if heads:
    pose = heads[0]
    print(pose.x, pose.y, pose.z, pose.yaw, pose.pitch, pose.roll)
```

`Detector` is a frozen dataclass. Its fields can be changed at construction:
`cell` (voxel size, 0.045 m), `step_factor` (window stride as a multiple of
`cell`, 2.5), `min_masks_hit`, `sym_thresh`, `sym_penalty`, `angle_steps`,
`search_depth`, `stage1` and `stage2`.

### Building blocks

- `headdetect.integral_volume.IntegralVolume`:
  - `IntegralVolume.from_points(points, cell)` voxelises and fills a shell
    cloud. It raises `ValueError` on an empty or non-finite cloud.
  - `sum(x0, y0, z0, x1, y1, z1)` counts occupied voxels in a world-space box.
    The box is inclusive and clamped to the grid.
  - `bounds()` returns `(min_x, max_x, min_y, max_y, min_z, max_z)`.
  - `nx`, `ny`, `nz`, `cell`, `origin` and a read-only `data` table describe
    the grid.
- `headdetect.masks` defines `HaarBox` and `HaarMask`, the geometry of the
  cascade, with the stage lists `STAGE1` and `STAGE2`.
- `headdetect.detector.rot_zyx(yaw, pitch, roll, x, y, z)` rotates a point
  with the Z-Y-X convention used by the cascade.
- `headdetect.cloud_utils`:
  - `load_ply(path)` reads ASCII, binary little-endian and binary big-endian
    PLY files. It returns the vertex x, y, z columns and raises `PlyError`
    when the file is unreadable or malformed.
  - `save_ply(path, points)` writes a binary little-endian PLY with float
    x, y, z.
  - `voxelize(points, leaf_size)` replaces the points in each voxel by their
    centroid and drops non-finite points.

### Streaming pipeline

`headdetect.head_node.HeadDetectorPipeline(config, detector, transform)`
handles a stream of clouds. Each call to `process(points, frame_id, stamp)`
does the following:

1. It skips the cloud unless it is one of every `detect_every` frames.
2. It moves the cloud into the target frame through
   `transform(points, target_frame, source_frame, stamp, timeout)`. When that
   raises `TransformError`, a throttled warning is logged and `None` is
   returned. With no transform given, only clouds already in the target frame
   are accepted.
3. It keeps finite points within `max_distance` in the XY plane and at or
   above `min_z`. The helper `filter_cloud` does this step.
4. It returns a `Marker`: a 25 cm translucent red cube at the best head pose,
   oriented by `quaternion_from_rpy`. If no head is found, it returns `None`.

`NodeConfig` holds the settings and their defaults:

| Setting        | Default              |
|----------------|----------------------|
| `cloud_topic`  | `cloud_concatenated` |
| `target_frame` | `world`              |
| `detect_every` | 1                    |
| `tf_timeout`   | 0.05 s               |
| `max_distance` | 2.5 m                |
| `min_z`        | 1.4 m                |

### Merging clouds

`headdetect.concatenate.PointcloudConcatenator(config, transform)` merges up
to four input clouds into one, in a target frame.

- Feed it clouds with `receive(index, cloud)`, where `index` runs from 1 to 4.
- `transform(cloud, target_frame)` must return the cloud's points in the
  target frame.
- Call `update(has_subscribers, stamp)` on each tick. It returns
  `(stamp, points)` with the merged points, or `None` when there is nothing to
  publish. Nothing is returned if there are no subscribers, if no cloud has
  arrived yet, or if input 1 is missing or fails to transform.
- Settings live in `ConcatenateConfig`. The target frame defaults to
  `base_link`, the number of clouds to 2 and the rate to 10 Hz; `period_ms`
  gives the tick period.

## What this package does not do

- It draws nothing. Neither command opens a viewer; both print poses as text.
- It does not connect to any message bus or transform service. The pipeline
  and the concatenator are plain objects; you pass clouds in, supply the
  transform, and publish what they return yourself. `cloud_topic` is only
  recorded and logged.