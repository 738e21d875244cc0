[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "headdetect"
version = "0.1.0"
description = "3-D Haar-cascade head detection on point clouds, with cloud filtering and concatenation helpers"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["point cloud", "head detection", "haar cascade", "integral volume", "ply", "3d"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Image Recognition",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
headdetect = "headdetect.cli:main"
headdetect-realtime = "headdetect.cli:realtime_main"

[tool.hatch.build.targets.wheel]
packages = ["headdetect"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
