"""3-D Haar-cascade head detection on point clouds, with PLY I/O, filtering and cloud merging."""

__version__ = "0.1.0"