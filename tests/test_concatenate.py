import logging

import numpy as np
import pytest

from headdetect.concatenate import ConcatenateConfig, PointcloudConcatenator


def _shift(cloud, target_frame):
    return np.asarray(cloud, dtype=float) + 1.0


A = np.array([[0.0, 0.0, 0.0], [1.0, 2.0, 3.0]])
B = np.array([[5.0, 5.0, 5.0]])
C = np.array([[9.0, 9.0, 9.0]])


def test_config_defaults_and_period():
    cfg = ConcatenateConfig()
    assert (cfg.target_frame, cfg.clouds, cfg.hz) == ("base_link", 2, 10.0)
    assert cfg.period_ms == 100
    with pytest.raises(ValueError):
        ConcatenateConfig(hz=0)


def test_no_subscribers_returns_none():
    cat = PointcloudConcatenator(ConcatenateConfig(), _shift)
    cat.receive(1, A)
    assert cat.update(False, 1) is None


def test_zero_clouds_returns_none():
    cat = PointcloudConcatenator(ConcatenateConfig(clouds=0), _shift)
    cat.receive(1, A)
    assert cat.update(True, 1) is None


def test_nothing_received_warns(caplog):
    cat = PointcloudConcatenator(ConcatenateConfig(), _shift)
    with caplog.at_level(logging.WARNING):
        assert cat.update(True, 1) is None
    assert "No pointclouds received yet" in caplog.text


def test_single_cloud_is_transformed():
    cat = PointcloudConcatenator(ConcatenateConfig(), _shift)
    cat.receive(1, A)
    stamp, points = cat.update(True, 7)
    assert stamp == 7
    np.testing.assert_array_equal(points, A + 1.0)


def test_two_clouds_concatenated_in_order():
    cat = PointcloudConcatenator(ConcatenateConfig(clouds=2), _shift)
    cat.receive(2, B)
    cat.receive(1, A)
    _, points = cat.update(True, 0)
    np.testing.assert_array_equal(points, np.vstack([A, B]) + 1.0)


def test_inputs_beyond_count_are_ignored():
    cat = PointcloudConcatenator(ConcatenateConfig(clouds=2), _shift)
    cat.receive(1, A)
    cat.receive(3, C)
    _, points = cat.update(True, 0)
    assert len(points) == len(A)


def test_four_clouds():
    cat = PointcloudConcatenator(ConcatenateConfig(clouds=4), _shift)
    for i, cloud in enumerate((A, B, C, B), start=1):
        cat.receive(i, cloud)
    _, points = cat.update(True, 0)
    np.testing.assert_array_equal(points, np.vstack([A, B, C, B]) + 1.0)


def test_missing_first_cloud_returns_none():
    cat = PointcloudConcatenator(ConcatenateConfig(), _shift)
    cat.receive(2, B)
    assert cat.update(True, 0) is None


def test_first_transform_failure_returns_none(caplog):
    def failing(cloud, frame):
        raise LookupError("no tf")

    cat = PointcloudConcatenator(ConcatenateConfig(), failing)
    cat.receive(1, A)
    with caplog.at_level(logging.WARNING):
        assert cat.update(True, 0) is None
    assert "Transform cloud1 failed" in caplog.text


def test_reuse_of_stale_clouds(caplog):
    cat = PointcloudConcatenator(ConcatenateConfig(), _shift)
    cat.receive(1, A)
    cat.receive(2, B)
    _, first = cat.update(True, 0)
    with caplog.at_level(logging.WARNING):
        _, second = cat.update(True, 1)
    np.testing.assert_array_equal(first, second)
    assert "Reusing last cloud1" in caplog.text
    assert "Reusing last cloud" in caplog.text


def test_transform_receives_target_frame():
    seen = []

    def recording(cloud, frame):
        seen.append(frame)
        return np.asarray(cloud, dtype=float)

    cat = PointcloudConcatenator(ConcatenateConfig(target_frame="map"), recording)
    cat.receive(1, A)
    cat.receive(2, B)
    stamp, points = cat.update(True, 3)
    assert seen == ["map", "map"]
    assert stamp == 3
    np.testing.assert_array_equal(points, np.vstack([A, B]))


@pytest.mark.parametrize("index", [0, 5, -1])
def test_receive_rejects_bad_index(index):
    cat = PointcloudConcatenator(ConcatenateConfig(), _shift)
    with pytest.raises(ValueError):
        cat.receive(index, A)