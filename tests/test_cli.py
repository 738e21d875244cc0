import itertools
import math

import numpy as np
import pytest

from headdetect.cli import main, realtime_main, rotate_z, spin_frames
from headdetect.cloud_utils import save_ply
from headdetect.detector import HeadPose


class _RecordingDetector:
    """Returns scripted results and records every cloud it is given."""

    def __init__(self, results):
        self._results = list(results)
        self.calls = []

    def detect_heads(self, points):
        self.calls.append(np.array(points))
        return self._results.pop(0) if self._results else []


@pytest.fixture
def cloud():
    rng = np.random.default_rng(7)
    return rng.uniform(-1.0, 1.0, size=(20, 3))


@pytest.fixture
def small_ply(tmp_path):
    pts = np.array(
        [[0.0, 0.0, 0.0], [0.05, 0.0, 0.0], [0.0, 0.05, 0.0],
         [0.0, 0.0, 0.05], [0.05, 0.05, 0.05]]
    )
    path = tmp_path / "small.ply"
    save_ply(path, pts)
    return path


def test_rotate_z_quarter_turn():
    out = rotate_z([[1.0, 0.0, 2.0]], math.pi / 2)
    assert np.allclose(out, [[0.0, 1.0, 2.0]])


def test_rotate_z_preserves_radius_and_height(cloud):
    out = rotate_z(cloud, 1.234)
    assert np.allclose(np.hypot(out[:, 0], out[:, 1]), np.hypot(cloud[:, 0], cloud[:, 1]))
    assert np.allclose(out[:, 2], cloud[:, 2])


def test_rotate_z_round_trip(cloud):
    back = rotate_z(rotate_z(cloud, 0.7), -0.7)
    assert np.allclose(back, cloud)


def test_rotate_z_empty_and_bad_shape():
    assert rotate_z([], 1.0).shape == (0, 3)
    with pytest.raises(ValueError):
        rotate_z([[1.0, 2.0]], 1.0)


def test_spin_frames_angles_and_rotation(cloud):
    det = _RecordingDetector([])
    frames = list(itertools.islice(spin_frames(cloud, det, 5.0, 5), 4))
    assert [f.index for f in frames] == [0, 1, 2, 3]
    assert [f.angle_deg for f in frames] == [0.0, 5.0, 10.0, 15.0]
    for f in frames:
        assert np.allclose(f.points, rotate_z(cloud, math.radians(f.angle_deg)))


def test_spin_frames_wraps_angle(cloud):
    det = _RecordingDetector([])
    frames = list(itertools.islice(spin_frames(cloud, det, 90.0, 1), 6))
    angles = [f.angle_deg for f in frames]
    assert all(0.0 <= a < 360.0 for a in angles)
    assert angles[4] == angles[0]
    assert angles[5] == angles[1]


def test_spin_frames_detection_cadence_and_carry(cloud):
    pose = HeadPose(1.0, 2.0, 3.0, 0.1, 0.2, 0.3)
    det = _RecordingDetector([[pose], []])
    frames = list(itertools.islice(spin_frames(cloud, det, 5.0, 5), 10))
    assert len(det.calls) == 2
    assert all(f.pose == pose for f in frames[:5])
    assert all(f.pose is None for f in frames[5:])
    assert np.allclose(det.calls[1], frames[5].points)


def test_spin_frames_rejects_bad_cadence(cloud):
    with pytest.raises(ValueError):
        next(spin_frames(cloud, _RecordingDetector([]), 5.0, 0))


def test_main_without_arguments(capsys):
    assert main([]) == 1
    assert "Usage" in capsys.readouterr().err


def test_main_missing_file(tmp_path, capsys):
    missing = tmp_path / "absent.ply"
    assert main([str(missing)]) == 1
    assert "Error reading" in capsys.readouterr().err


def test_main_reports_detections(small_ply, capsys):
    assert main([str(small_ply)]) == 0
    out = capsys.readouterr().out
    assert "Detected 0 head(s)" in out


def test_realtime_main_runs_given_frames(small_ply, capsys):
    code = realtime_main([str(small_ply), "--frames", "3", "--interval", "0"])
    assert code == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "Loaded 5 points"
    frame_lines = [ln for ln in lines if ln.startswith("frame ")]
    assert len(frame_lines) == 3


def test_realtime_main_missing_file(tmp_path, capsys):
    missing = tmp_path / "absent.ply"
    assert realtime_main([str(missing), "--frames", "1"]) == 1
    assert "Error reading" in capsys.readouterr().err


def test_realtime_main_without_arguments(capsys):
    assert realtime_main([]) == 1
    assert "Usage" in capsys.readouterr().err