import numpy as np
import pandas as pd
import pytest

from station_pompage.core.models import TelemetrySample
from station_pompage.data.preprocessing import levels_to_meters, moving_average, prepare_levels


def test_moving_average_partial_leading_window():
    assert moving_average([1.0, 2.0, 3.0, 4.0], 2) == [1.0, 1.5, 2.5, 3.5]
    assert moving_average([3.0, 6.0, 9.0], 3) == [3.0, 4.5, 6.0]


def test_moving_average_window_one_is_identity():
    values = [1.25, 0.5, 7.0]
    assert moving_average(values, 1) == values


def test_moving_average_window_larger_than_series():
    out = moving_average([1.0, 2.0, 4.0], 10)
    assert out == pytest.approx([1.0, 1.5, 7.0 / 3.0])


def test_moving_average_matches_trailing_mean():
    rng = np.random.default_rng(0)
    values = rng.uniform(0.0, 5.0, size=50).tolist()
    w = 7
    expected = [float(np.mean(values[max(0, i - w + 1) : i + 1])) for i in range(len(values))]
    assert moving_average(values, w) == pytest.approx(expected)


def test_moving_average_empty_and_invalid():
    assert moving_average([], 3) == []
    with pytest.raises(ValueError):
        moving_average([1.0], 0)
    with pytest.raises(ValueError):
        moving_average([1.0], -2)


def test_levels_conversion_and_filter_switch():
    ts = pd.date_range("2025-01-01", periods=3, freq="h")
    samples = [TelemetrySample(t, v) for t, v in zip(ts, [100.0, 200.0, 300.0])]
    assert levels_to_meters(samples) == [1.0, 2.0, 3.0]
    assert prepare_levels(samples, False, 2) == [1.0, 2.0, 3.0]
    assert prepare_levels(samples, True, None) == [1.0, 2.0, 3.0]
    assert prepare_levels(samples, True, 2) == [1.0, 1.5, 2.5]
